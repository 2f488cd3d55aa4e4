# logistics_backend/modules/shipments/state_machine.py
"""
Shipment status machine.

The adjacency table below is the only source of allowed moves. A successful
transition appends exactly one timeline entry and keeps ``status`` equal to
the newest entry; a rejected one leaves the shipment untouched.
"""
from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional

from logistics_backend.core.exceptions import InvalidTransitionError, ValidationError
from logistics_backend.shared.database.models import Shipment
from logistics_backend.shared.domain.actors import Actor, SYSTEM, actor_stamp
from logistics_backend.shared.domain.enums import ShipmentStatus
from logistics_backend.shared.utils.dates import iso, utcnow

S = ShipmentStatus

ALLOWED_TRANSITIONS: Mapping[ShipmentStatus, FrozenSet[ShipmentStatus]] = {
    S.PENDING: frozenset({S.ASSIGNED, S.CANCELLED}),
    S.ASSIGNED: frozenset({S.PICKED, S.CANCELLED}),
    S.PICKED: frozenset({S.PACKED, S.PROCESSING, S.FAILED}),
    S.PACKED: frozenset({S.PROCESSING, S.IN_TRANSIT}),
    S.PROCESSING: frozenset({S.IN_TRANSIT, S.FAILED}),
    S.IN_TRANSIT: frozenset({S.OUT_FOR_DELIVERY, S.DELIVERED, S.FAILED}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED, S.FAILED, S.RETURNED}),
    S.DELIVERED: frozenset(),
    S.FAILED: frozenset({S.PROCESSING, S.CANCELLED}),
    S.RETURNED: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)


def parse_status(value) -> ShipmentStatus:
    try:
        return ShipmentStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown shipment status: {value}", "status")


def can_transition(current, requested) -> bool:
    return parse_status(requested) in ALLOWED_TRANSITIONS[parse_status(current)]


def allowed_next(current) -> FrozenSet[ShipmentStatus]:
    return ALLOWED_TRANSITIONS[parse_status(current)]


def timeline_entry(
    status: ShipmentStatus,
    actor: Actor,
    notes: Optional[str] = None,
    location: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    return {
        "status": ShipmentStatus(status).value,
        "timestamp": iso(now or utcnow()),
        "location": location,
        "notes": notes,
        **actor_stamp(actor),
    }


def start_timeline(shipment: Shipment, now: Optional[datetime] = None) -> Dict[str, Any]:
    """First entry of a new shipment, written by the system"""
    entry = timeline_entry(S.PENDING, SYSTEM, "Shipment request created", now=now)
    shipment.timeline_entries = []
    shipment._append_timeline(entry)
    return entry


def transition(
    shipment: Shipment,
    new_status,
    actor: Actor,
    notes: Optional[str] = None,
    location: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Move ``shipment`` to ``new_status`` or raise InvalidTransitionError"""
    current = parse_status(shipment.status)
    requested = parse_status(new_status)

    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, requested.value)

    now = now or utcnow()
    entry = timeline_entry(requested, actor, notes, location, now)
    shipment._append_timeline(entry)

    if requested == S.PICKED:
        shipment.actual_pickup_date = now
    elif requested == S.DELIVERED:
        shipment.actual_delivery_date = now

    return entry
