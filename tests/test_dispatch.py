# tests/test_dispatch.py
import pytest

from conftest import auth_headers, make_admin, make_client, make_driver, make_shipment
from logistics_backend.core.exceptions import IneligibleDriverError, InvalidStateError, NotFoundError
from logistics_backend.modules.dispatch import AssignmentCoordinator
from logistics_backend.shared.domain.actors import AdminActor


async def test_assign_sets_driver_and_status(db):
    client, driver, admin = make_client(db), make_driver(db), make_admin(db)
    shipment = make_shipment(db, client)

    assigned = await AssignmentCoordinator(db).assign_driver(shipment.id, driver.id, AdminActor(admin.id))

    assert assigned.driver_id == driver.id
    assert assigned.status == "assigned"
    latest = assigned.current_status_info
    assert latest["notes"] == f"Assigned to driver {driver.full_name}"
    assert latest["updated_by"] == "admin"
    assert latest["updated_by_id"] == admin.id


@pytest.mark.parametrize("status, kyc_status", [
    ("pending", "approved"),
    ("approved", "in_review"),
    ("suspended", "approved"),
])
async def test_ineligible_driver_leaves_shipment_untouched(db, status, kyc_status):
    client = make_client(db)
    driver = make_driver(db, status=status, kyc_status=kyc_status)
    shipment = make_shipment(db, client)

    with pytest.raises(IneligibleDriverError) as exc_info:
        await AssignmentCoordinator(db).assign_driver(shipment.id, driver.id, AdminActor(1))

    assert exc_info.value.details == {"driver_status": status, "kyc_status": kyc_status}
    db.refresh(shipment)
    assert shipment.driver_id is None
    assert shipment.status == "pending"
    assert len(shipment.timeline_entries) == 1


async def test_only_pending_shipments_are_assigned(db):
    client, first, second = make_client(db), make_driver(db), make_driver(db)
    shipment = make_shipment(db, client, first, status="assigned")

    with pytest.raises(InvalidStateError):
        await AssignmentCoordinator(db).assign_driver(shipment.id, second.id, AdminActor(1))

    db.refresh(shipment)
    assert shipment.driver_id == first.id


async def test_missing_records(db):
    client, driver = make_client(db), make_driver(db)
    shipment = make_shipment(db, client)
    coordinator = AssignmentCoordinator(db)

    with pytest.raises(NotFoundError):
        await coordinator.assign_driver(9999, driver.id, AdminActor(1))
    with pytest.raises(NotFoundError):
        await coordinator.assign_driver(shipment.id, 9999, AdminActor(1))


async def test_eligible_drivers_count_open_shipments(db):
    client = make_client(db)
    busy, idle = make_driver(db), make_driver(db)
    make_driver(db, status="pending", kyc_status="pending")
    make_shipment(db, client, busy, status="in_transit")
    make_shipment(db, client, busy, status="delivered")

    drivers = await AssignmentCoordinator(db).eligible_drivers()

    counts = {d["id"]: d["active_shipments"] for d in drivers}
    assert counts == {busy.id: 1, idle.id: 0}


def test_assign_endpoint_requires_shipment_update_permission(client, db):
    shipper, driver = make_client(db), make_driver(db)
    shipment = make_shipment(db, shipper)
    reader = make_admin(db, role="operator", permissions={"shipments": ["read"]})
    dispatcher = make_admin(db, role="operator", permissions={"shipments": ["read", "update"]})

    denied = client.put(
        f"/api/v1/shipments/{shipment.id}/assign",
        json={"driver_id": driver.id},
        headers=auth_headers("admin", reader)
    )
    assert denied.status_code == 403

    response = client.put(
        f"/api/v1/shipments/{shipment.id}/assign",
        json={"driver_id": driver.id},
        headers=auth_headers("admin", dispatcher)
    )
    assert response.status_code == 200
    body = response.json()["shipment"]
    assert body["status"] == "assigned"
    assert body["driver_id"] == driver.id


def test_assigning_ineligible_driver_returns_422(client, db):
    shipper = make_client(db)
    driver = make_driver(db, status="pending", kyc_status="pending")
    admin = make_admin(db)
    shipment = make_shipment(db, shipper)

    response = client.put(
        f"/api/v1/shipments/{shipment.id}/assign",
        json={"driver_id": driver.id},
        headers=auth_headers("admin", admin)
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ineligible_driver"


def test_eligible_drivers_endpoint(client, db):
    driver = make_driver(db)
    make_driver(db, status="rejected", kyc_status="rejected")
    admin = make_admin(db, role="operator", permissions={"drivers": ["read"]})

    response = client.get("/api/v1/shipments/dispatch/eligible-drivers", headers=auth_headers("admin", admin))

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["drivers"][0]["id"] == driver.id
    assert body["drivers"][0]["active_shipments"] == 0
