# tests/test_shipments.py
from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import (
    auth_headers, make_admin, make_client, make_driver, make_shipment, shipment_payload
)
from logistics_backend.core.exceptions import (
    ForbiddenError, InvalidStateError, InvalidTransitionError, NotFoundError, ValidationError
)
from logistics_backend.modules.shipments import ShipmentService
from logistics_backend.modules.shipments.schemas import (
    CancelRequest, IssueReport, RatingRequest, ShipmentCreate, StatusUpdate
)
from logistics_backend.shared.domain.actors import AdminActor, ClientActor, DriverActor
from logistics_backend.shared.utils.dates import utcnow


def manifest(**overrides) -> ShipmentCreate:
    return ShipmentCreate.model_validate(shipment_payload(**overrides))


# ==================== SERVICE ====================

async def test_create_computes_totals_and_starts_pending(db):
    client = make_client(db)
    service = ShipmentService(db)

    shipment = await service.create_shipment(manifest(), ClientActor(client.id))

    assert shipment.client_id == client.id
    assert shipment.total_weight == Decimal("10.00")
    assert shipment.total_value == Decimal("50.00")
    assert shipment.status == "pending"
    assert shipment.shipment_id.startswith("SH")
    assert shipment.tracking_number.startswith("TRK")
    assert shipment.timeline_entries == [shipment.current_status_info]
    assert shipment.current_status_info["updated_by"] == "system"


async def test_total_value_is_zero_without_item_values(db):
    client = make_client(db)
    items = [{"name": "Box", "quantity": 3, "weight": 0.5, "category": "Documents"}]

    shipment = await ShipmentService(db).create_shipment(manifest(items=items), ClientActor(client.id))

    assert shipment.total_weight == Decimal("1.50")
    assert shipment.total_value == Decimal("0.00")


@pytest.mark.parametrize("overrides, field", [
    ({"description": "too short"}, "description"),
    ({"items": []}, "items"),
    ({"items": [{"name": "Box", "quantity": 0, "weight": 1, "category": "Other"}]}, "items[0].quantity"),
    ({"items": [{"name": "Box", "quantity": 1, "weight": 0.05, "category": "Other"}]}, "items[0].weight"),
])
async def test_manifest_validation(db, overrides, field):
    client = make_client(db)

    with pytest.raises(ValidationError) as exc_info:
        await ShipmentService(db).create_shipment(manifest(**overrides), ClientActor(client.id))

    assert exc_info.value.field == field


async def test_schedule_validation(db):
    client = make_client(db)
    service = ShipmentService(db)
    now = utcnow()

    past = manifest(requested_pickup_date=(now - timedelta(hours=1)).isoformat())
    with pytest.raises(ValidationError) as exc_info:
        await service.create_shipment(past, ClientActor(client.id), now=now)
    assert exc_info.value.field == "requested_pickup_date"

    pickup = now + timedelta(days=2)
    backwards = manifest(
        requested_pickup_date=pickup.isoformat(),
        requested_delivery_date=pickup.isoformat()
    )
    with pytest.raises(ValidationError) as exc_info:
        await service.create_shipment(backwards, ClientActor(client.id), now=now)
    assert exc_info.value.field == "requested_delivery_date"


async def test_admin_creates_on_behalf_of_client(db):
    client = make_client(db)
    admin = make_admin(db)
    service = ShipmentService(db)

    with pytest.raises(ValidationError):
        await service.create_shipment(manifest(), AdminActor(admin.id))
    with pytest.raises(NotFoundError):
        await service.create_shipment(manifest(client_id=9999), AdminActor(admin.id))

    shipment = await service.create_shipment(manifest(client_id=client.id), AdminActor(admin.id))
    assert shipment.client_id == client.id


async def test_drivers_cannot_create(db):
    driver = make_driver(db)
    with pytest.raises(ForbiddenError):
        await ShipmentService(db).create_shipment(manifest(), DriverActor(driver.id))


async def test_visibility_is_scoped(db):
    owner, other = make_client(db), make_client(db)
    driver, other_driver = make_driver(db), make_driver(db)
    shipment = make_shipment(db, owner, driver, status="assigned")
    service = ShipmentService(db)

    assert (await service.get_shipment(shipment.id, ClientActor(owner.id))).id == shipment.id
    assert (await service.get_shipment(shipment.id, DriverActor(driver.id))).id == shipment.id
    with pytest.raises(NotFoundError):
        await service.get_shipment(shipment.id, ClientActor(other.id))
    with pytest.raises(NotFoundError):
        await service.get_shipment(shipment.id, DriverActor(other_driver.id))

    shipments, total = await service.list_shipments(ClientActor(other.id))
    assert (shipments, total) == ([], 0)
    shipments, total = await service.list_shipments(AdminActor(1))
    assert total == 1


async def test_driver_moves_assigned_shipment(db):
    client, driver = make_client(db), make_driver(db)
    shipment = make_shipment(db, client, driver, status="assigned")

    updated = await ShipmentService(db).update_status(
        shipment.id, StatusUpdate(status="picked", notes="Collected at dock 3"), DriverActor(driver.id)
    )

    assert updated.status == "picked"
    assert updated.actual_pickup_date is not None
    assert updated.current_status_info["updated_by"] == "driver"
    assert updated.current_status_info["notes"] == "Collected at dock 3"


async def test_status_update_rejections(db):
    client, driver = make_client(db), make_driver(db)
    pending = make_shipment(db, client)
    service = ShipmentService(db)

    with pytest.raises(ForbiddenError):
        await service.update_status(pending.id, StatusUpdate(status="cancelled"), ClientActor(client.id))
    with pytest.raises(InvalidStateError):
        await service.update_status(pending.id, StatusUpdate(status="assigned"), AdminActor(1))
    with pytest.raises(InvalidTransitionError):
        await service.update_status(pending.id, StatusUpdate(status="delivered"), AdminActor(1))

    db.refresh(pending)
    assert pending.status == "pending"
    assert len(pending.timeline_entries) == 1


async def test_cancel_records_cancellation(db):
    client = make_client(db)
    shipment = make_shipment(db, client)

    cancelled = await ShipmentService(db).cancel(
        shipment.id, CancelRequest(reason="Order withdrawn", refund_amount="15"), ClientActor(client.id)
    )

    assert cancelled.status == "cancelled"
    assert cancelled.is_cancelled
    assert cancelled.cancellation["reason"] == "Order withdrawn"
    assert cancelled.cancellation["cancelled_by"] == "client"
    assert cancelled.cancellation["cancelled_by_id"] == client.id
    assert cancelled.cancellation["refund_amount"] == "15.00"


async def test_cancel_after_pickup_is_refused(db):
    client, driver = make_client(db), make_driver(db)
    shipment = make_shipment(db, client, driver, status="picked")
    service = ShipmentService(db)

    with pytest.raises(InvalidTransitionError):
        await service.cancel(shipment.id, CancelRequest(reason="Too late"), ClientActor(client.id))
    with pytest.raises(ForbiddenError):
        await service.cancel(shipment.id, CancelRequest(reason="Not mine"), DriverActor(driver.id))

    db.refresh(shipment)
    assert shipment.cancellation is None
    assert shipment.status == "picked"


async def test_report_issue(db):
    client, driver = make_client(db), make_driver(db)
    shipment = make_shipment(db, client, driver, status="in_transit")

    updated = await ShipmentService(db).report_issue(
        shipment.id, IssueReport(type="delay", description="Road closed on I-35"), DriverActor(driver.id)
    )

    assert len(updated.issues) == 1
    issue = updated.issues[0]
    assert issue["type"] == "delay"
    assert issue["reported_by"] == "driver"
    assert issue["reported_by_id"] == driver.id
    assert issue["resolved"] is False
    assert updated.status == "in_transit"


async def test_rating_rules(db):
    client, driver = make_client(db), make_driver(db)
    in_transit = make_shipment(db, client, driver, status="in_transit")
    delivered = make_shipment(db, client, driver, status="delivered")
    service = ShipmentService(db)

    with pytest.raises(InvalidStateError):
        await service.rate(in_transit.id, RatingRequest(rating=5), ClientActor(client.id))
    with pytest.raises(ValidationError):
        await service.rate(delivered.id, RatingRequest(rating=6), ClientActor(client.id))
    with pytest.raises(ForbiddenError):
        await service.rate(delivered.id, RatingRequest(rating=4), AdminActor(1))

    rated = await service.rate(delivered.id, RatingRequest(rating=5, feedback="On time"), ClientActor(client.id))
    assert rated.client_rating["rating"] == 5
    assert rated.driver_rating is None

    rated = await service.rate(delivered.id, RatingRequest(rating=4), DriverActor(driver.id))
    assert rated.driver_rating["rating"] == 4

    with pytest.raises(InvalidStateError):
        await service.rate(delivered.id, RatingRequest(rating=1), ClientActor(client.id))


# ==================== API ====================

def test_client_creates_shipment(client, db):
    shipper = make_client(db)

    response = client.post("/api/v1/shipments", json=shipment_payload(), headers=auth_headers("client", shipper))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    shipment = body["shipment"]
    assert Decimal(shipment["total_weight"]) == Decimal("10.00")
    assert shipment["status"] == "pending"
    assert [entry["status"] for entry in shipment["timeline"]] == ["pending"]


def test_invalid_body_returns_400(client, db):
    shipper = make_client(db)
    payload = shipment_payload()
    del payload["pickup_address"]

    response = client.post("/api/v1/shipments", json=payload, headers=auth_headers("client", shipper))

    assert response.status_code == 400
    assert response.json()["error_code"] == "validation_error"


def test_domain_validation_returns_field(client, db):
    shipper = make_client(db)

    response = client.post(
        "/api/v1/shipments",
        json=shipment_payload(description="short"),
        headers=auth_headers("client", shipper)
    )

    assert response.status_code == 400
    assert response.json()["details"] == {"field": "description"}


def test_public_tracking_hides_street_addresses(client, db):
    shipper = make_client(db)
    shipment = make_shipment(db, shipper)

    response = client.get(f"/api/v1/shipments/track/{shipment.tracking_number}")

    assert response.status_code == 200
    tracked = response.json()["shipment"]
    assert tracked["status"] == "pending"
    assert tracked["pickup_location"] == {"city": "Austin", "state": "TX"}
    assert tracked["delivery_location"] == {"city": "Dallas", "state": "TX"}
    assert "street" not in str(tracked)

    assert client.get("/api/v1/shipments/track/TRKUNKNOWN").status_code == 404


def test_client_cannot_change_status(client, db):
    shipper = make_client(db)
    shipment = make_shipment(db, shipper)

    response = client.put(
        f"/api/v1/shipments/{shipment.id}/status",
        json={"status": "cancelled"},
        headers=auth_headers("client", shipper)
    )

    assert response.status_code == 403
    assert response.json()["error_code"] == "forbidden"


def test_other_clients_shipment_is_not_found(client, db):
    owner, other = make_client(db), make_client(db)
    shipment = make_shipment(db, owner)

    response = client.get(f"/api/v1/shipments/{shipment.id}", headers=auth_headers("client", other))

    assert response.status_code == 404


def test_invalid_transition_returns_409(client, db):
    shipper = make_client(db)
    admin = make_admin(db)
    shipment = make_shipment(db, shipper)

    response = client.put(
        f"/api/v1/shipments/{shipment.id}/status",
        json={"status": "delivered"},
        headers=auth_headers("admin", admin)
    )

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "invalid_transition"
    assert body["details"] == {"current_status": "pending", "requested_status": "delivered"}


def test_unauthenticated_requests_are_rejected(client):
    response = client.get("/api/v1/shipments")
    assert response.status_code == 401


def test_driver_uploads_delivery_photo(client, db, storage):
    shipper, driver = make_client(db), make_driver(db)
    shipment = make_shipment(db, shipper, driver, status="in_transit")

    response = client.post(
        f"/api/v1/shipments/{shipment.id}/photos",
        data={"photo_type": "delivery_proof", "description": "Left at reception",
              "latitude": "32.7767", "longitude": "-96.797"},
        files=[("files", ("proof.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg"))],
        headers=auth_headers("driver", driver)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    photo = body["added"][0]
    assert photo["type"] == "delivery_proof"
    assert photo["location"] == {"latitude": 32.7767, "longitude": -96.797}
    assert photo["taken_by_id"] == driver.id
    assert len(storage.uploads) == 1


def test_admin_attaches_documents(client, db, storage):
    shipper = make_client(db)
    admin = make_admin(db)
    shipment = make_shipment(db, shipper)

    response = client.post(
        f"/api/v1/shipments/{shipment.id}/documents",
        data={"document_type": "invoice"},
        files=[("files", ("invoice.pdf", b"%PDF-1.4", "application/pdf"))],
        headers=auth_headers("admin", admin)
    )

    assert response.status_code == 200
    assert response.json()["added"][0]["uploaded_by"] == "admin"
    assert storage.uploads[0]["folder"] == f"shipments/{shipment.shipment_id}/documents"


def test_rejected_photo_batch_uploads_nothing(client, db, storage):
    shipper, driver = make_client(db), make_driver(db)
    shipment = make_shipment(db, shipper, driver, status="in_transit")

    response = client.post(
        f"/api/v1/shipments/{shipment.id}/photos",
        data={"photo_type": "delivery_proof"},
        files=[
            ("files", ("proof.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg")),
            ("files", ("notes.txt", b"left at door", "text/plain")),
        ],
        headers=auth_headers("driver", driver)
    )

    assert response.status_code == 400
    assert storage.uploads == []
    db.refresh(shipment)
    assert shipment.photos == []


def test_rejected_document_batch_uploads_nothing(client, db, storage):
    shipment = make_shipment(db, make_client(db))
    admin = make_admin(db)

    response = client.post(
        f"/api/v1/shipments/{shipment.id}/documents",
        data={"document_type": "invoice"},
        files=[
            ("files", ("invoice.pdf", b"%PDF-1.4", "application/pdf")),
            ("files", ("invoice.exe", b"MZ", "application/octet-stream")),
        ],
        headers=auth_headers("admin", admin)
    )

    assert response.status_code == 400
    assert storage.uploads == []
