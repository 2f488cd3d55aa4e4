# logistics_backend/modules/identity/__init__.py
"""
Identity module - drivers, clients and admins

Features:
- ID001: Driver self-registration (pending, KYC pending)
- ID002: Client self-registration (pending, billing terms)
- ID003: Login for every principal type with admin lockout and sessions
- ID004: KYC / business document uploads

Architecture:
- service.py: registration, login and upload rules
- repository.py: account lookups, listings and writes

The HTTP surface lives in api/v1/auth.py.
"""

from .service import IdentityService
from .repository import IdentityRepository

__all__ = [
    "IdentityService",
    "IdentityRepository"
]
