# logistics_backend/modules/payments/__init__.py
"""
Payments module - payment ledger per shipment

Features:
- PA001: Payment creation (one per shipment, billing terms resolution)
- PA002: Scoped payment listing and detail
- PA003: Administrative status updates
- PA004: Refunds (opened pending)
- PA005: Refund completion, refunded / partially_refunded derivation
- PA006: Partial payments

Architecture:
- router.py: payment endpoints
- service.py: loading, scoping and persisting payments
- ledger.py: status, refund and partial payment rules
- repository.py: payment queries and writes
- schemas.py: request/response models
"""

from .router import router
from .service import PaymentService
from .repository import PaymentRepository

__all__ = [
    "router",
    "PaymentService",
    "PaymentRepository"
]
