# tests/test_state_machine.py
from datetime import datetime

import pytest

from logistics_backend.core.exceptions import InvalidTransitionError, ValidationError
from logistics_backend.modules.shipments import state_machine
from logistics_backend.shared.database.models import Shipment
from logistics_backend.shared.domain.actors import AdminActor, DriverActor, SYSTEM
from logistics_backend.shared.domain.enums import ShipmentStatus

NOW = datetime(2030, 3, 1, 9, 30)


def new_shipment(status=ShipmentStatus.PENDING):
    shipment = Shipment()
    state_machine.start_timeline(shipment, NOW)
    shipment.status = ShipmentStatus(status).value
    return shipment


def test_start_timeline():
    shipment = Shipment()
    entry = state_machine.start_timeline(shipment, NOW)

    assert shipment.status == "pending"
    assert entry == {
        "status": "pending",
        "timestamp": NOW.isoformat(),
        "location": None,
        "notes": "Shipment request created",
        "updated_by": "system",
        "updated_by_id": None,
    }


def test_transition_appends_one_entry():
    shipment = new_shipment()
    state_machine.transition(shipment, "assigned", AdminActor(7), notes="Assigned to driver Dana Reyes", now=NOW)

    assert shipment.status == "assigned"
    assert len(shipment.timeline_entries) == 2
    latest = shipment.current_status_info
    assert latest["status"] == "assigned"
    assert latest["updated_by"] == "admin"
    assert latest["updated_by_id"] == 7


@pytest.mark.parametrize("current", list(ShipmentStatus))
@pytest.mark.parametrize("requested", list(ShipmentStatus))
def test_only_table_moves_are_accepted(current, requested):
    shipment = new_shipment(current)
    before = list(shipment.timeline_entries)

    if requested in state_machine.ALLOWED_TRANSITIONS[current]:
        state_machine.transition(shipment, requested, SYSTEM, now=NOW)
        assert shipment.status == requested.value
        assert len(shipment.timeline_entries) == len(before) + 1
    else:
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(shipment, requested, SYSTEM, now=NOW)
        assert shipment.status == current.value
        assert shipment.timeline_entries == before


def test_terminal_statuses():
    assert state_machine.TERMINAL_STATUSES == {
        ShipmentStatus.DELIVERED, ShipmentStatus.RETURNED, ShipmentStatus.CANCELLED
    }


def test_pickup_and_delivery_dates_are_stamped():
    shipment = new_shipment(ShipmentStatus.ASSIGNED)
    picked_at = datetime(2030, 3, 2, 8, 0)
    delivered_at = datetime(2030, 3, 3, 17, 45)

    state_machine.transition(shipment, "picked", DriverActor(3), now=picked_at)
    state_machine.transition(shipment, "packed", DriverActor(3), now=picked_at)
    state_machine.transition(shipment, "in_transit", DriverActor(3), now=picked_at)
    state_machine.transition(shipment, "delivered", DriverActor(3), now=delivered_at)

    assert shipment.actual_pickup_date == picked_at
    assert shipment.actual_delivery_date == delivered_at
    assert [e["status"] for e in shipment.timeline_entries] == [
        "pending", "picked", "packed", "in_transit", "delivered"
    ]


def test_error_carries_both_statuses():
    shipment = new_shipment()
    with pytest.raises(InvalidTransitionError) as exc_info:
        state_machine.transition(shipment, "delivered", SYSTEM, now=NOW)

    assert exc_info.value.details == {"current_status": "pending", "requested_status": "delivered"}
    assert exc_info.value.status_code == 409


def test_unknown_status():
    with pytest.raises(ValidationError):
        state_machine.transition(new_shipment(), "teleported", SYSTEM, now=NOW)


def test_unknown_actor_is_rejected():
    with pytest.raises(TypeError):
        state_machine.transition(new_shipment(), "assigned", object(), now=NOW)
