# logistics_backend/modules/dispatch/__init__.py
"""
Dispatch module - driver assignment

Features:
- DS001: Assign an eligible driver to a pending shipment (all or nothing)
- DS002: Eligible driver listing for dispatchers

Architecture:
- router.py: dispatch endpoints, mounted under /shipments
- coordinator.py: assignment rules across the shipment and identity stores
"""

from .router import router
from .coordinator import AssignmentCoordinator

__all__ = [
    "router",
    "AssignmentCoordinator"
]
