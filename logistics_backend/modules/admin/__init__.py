# logistics_backend/modules/admin/__init__.py
"""
Admin module - back office

Features:
- AD001: Admin user creation (super admins only)
- AD002: Driver management: listing, creation, approval, KYC review, soft delete
- AD003: Client management: listing, detail, status changes
- AD004: Own activity log

Every mutating endpoint records an activity entry for the acting admin.

Architecture:
- router.py: back-office endpoints
- service.py: management rules on top of the identity store
- schemas.py: request/response models
"""

from .router import router
from .service import AdminService

__all__ = [
    "router",
    "AdminService"
]
