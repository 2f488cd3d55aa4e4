# logistics_backend/modules/shipments/__init__.py
"""
Shipments module - shipment lifecycle ledger

Features:
- SH001: Shipment request by a client or an admin on behalf of a client
- SH002: Scoped shipment listing and detail
- SH003: Public tracking by tracking number
- SH004: Status transitions with an append-only timeline
- SH005: Cancellation
- SH006: Issues and ratings
- SH007: Documents and photos

Architecture:
- router.py: shipment endpoints
- service.py: creation and lifecycle rules
- state_machine.py: allowed status moves and timeline entries
- repository.py: shipment queries and writes
- schemas.py: request/response models
"""

from .router import router
from .service import ShipmentService
from .repository import ShipmentRepository

__all__ = [
    "router",
    "ShipmentService",
    "ShipmentRepository"
]
