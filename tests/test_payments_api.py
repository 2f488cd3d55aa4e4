# tests/test_payments_api.py
from datetime import timedelta
from decimal import Decimal

from conftest import auth_headers, make_admin, make_client, make_driver, make_shipment
from logistics_backend.shared.utils.dates import utcnow

FINANCE = {"payments": ["create", "read", "update"]}


def payment_payload(shipment_id: int, **overrides):
    payload = {
        "shipment_id": shipment_id,
        "amount": {"subtotal": "90.00", "tax": "10.00"},
        "charges": [{"description": "Base rate", "type": "base_rate", "amount": "90.00"}],
        "due_date": (utcnow() + timedelta(days=30)).isoformat(),
    }
    payload.update(overrides)
    return payload


def create_payment(client, admin, shipment, **overrides):
    response = client.post(
        "/api/v1/payments",
        json=payment_payload(shipment.id, **overrides),
        headers=auth_headers("admin", admin)
    )
    assert response.status_code == 201, response.text
    return response.json()["payment"]


def test_create_payment(client, db):
    shipper = make_client(db, payment_terms="net_15")
    shipment = make_shipment(db, shipper)
    admin = make_admin(db, role="manager", permissions=FINANCE)

    payment = create_payment(client, admin, shipment)

    assert payment["payment_id"].startswith("PAY")
    assert payment["client_id"] == shipper.id
    assert payment["shipment_id"] == shipment.id
    assert Decimal(payment["total"]) == Decimal("100.00")
    assert payment["status"] == "pending"
    assert payment["status_display"] == "Pending Payment"
    assert payment["terms"] == "net_15"
    assert [entry["status"] for entry in payment["timeline"]] == ["pending"]
    assert payment["charges"][0]["amount"] == "90.00"


def test_explicit_terms_and_total(client, db):
    shipment = make_shipment(db, make_client(db))
    admin = make_admin(db)

    payment = create_payment(
        client, admin, shipment,
        amount={"subtotal": "90.00", "tax": "10.00", "total": "95.00"},
        terms="net_60"
    )

    assert Decimal(payment["total"]) == Decimal("95.00")
    assert payment["terms"] == "net_60"


def test_one_payment_per_shipment(client, db):
    shipment = make_shipment(db, make_client(db))
    admin = make_admin(db)
    create_payment(client, admin, shipment)

    response = client.post("/api/v1/payments", json=payment_payload(shipment.id), headers=auth_headers("admin", admin))

    assert response.status_code == 409
    assert response.json()["error_code"] == "duplicate_payment"


def test_unknown_shipment(client, db):
    admin = make_admin(db)
    response = client.post("/api/v1/payments", json=payment_payload(9999), headers=auth_headers("admin", admin))
    assert response.status_code == 404


def test_create_requires_payments_permission(client, db):
    shipper = make_client(db)
    shipment = make_shipment(db, shipper)
    dispatcher = make_admin(db, role="operator", permissions={"shipments": ["read", "update"]})

    as_operator = client.post(
        "/api/v1/payments", json=payment_payload(shipment.id), headers=auth_headers("admin", dispatcher)
    )
    as_client = client.post(
        "/api/v1/payments", json=payment_payload(shipment.id), headers=auth_headers("client", shipper)
    )

    assert as_operator.status_code == 403
    assert as_client.status_code == 403


def test_clients_only_see_their_payments(client, db):
    owner, other = make_client(db), make_client(db)
    admin = make_admin(db)
    payment = create_payment(client, admin, make_shipment(db, owner))
    create_payment(client, admin, make_shipment(db, other))

    own = client.get(f"/api/v1/payments/{payment['id']}", headers=auth_headers("client", owner))
    foreign = client.get(f"/api/v1/payments/{payment['id']}", headers=auth_headers("client", other))
    listed = client.get("/api/v1/payments", params={"client_id": other.id}, headers=auth_headers("client", owner))

    assert own.status_code == 200
    assert foreign.status_code == 404
    assert listed.status_code == 200
    assert listed.json()["total"] == 1
    assert listed.json()["payments"][0]["id"] == payment["id"]


def test_drivers_cannot_read_payments(client, db):
    driver = make_driver(db)
    response = client.get("/api/v1/payments", headers=auth_headers("driver", driver))
    assert response.status_code == 403


def test_partial_payments_then_refund(client, db):
    admin = make_admin(db)
    headers = auth_headers("admin", admin)
    payment = create_payment(client, admin, make_shipment(db, make_client(db)))
    url = f"/api/v1/payments/{payment['id']}"

    first = client.post(f"{url}/partial", json={"amount": "60", "method": "bank_transfer"}, headers=headers)
    assert first.status_code == 200
    assert Decimal(first.json()["remaining_balance"]) == Decimal("40.00")
    assert first.json()["payment"]["status"] == "processing"

    over = client.post(f"{url}/partial", json={"amount": "41", "method": "cash"}, headers=headers)
    assert over.status_code == 422
    assert over.json()["error_code"] == "insufficient_balance"

    last = client.post(f"{url}/partial", json={"amount": "40", "method": "cash"}, headers=headers)
    assert last.json()["payment"]["status"] == "completed"
    assert last.json()["payment"]["paid_date"] is not None

    refund = client.post(f"{url}/refund", json={"amount": "25", "reason": "service_issue"}, headers=headers)
    assert refund.status_code == 200
    refund_id = refund.json()["refund"]["refund_id"]
    assert refund.json()["refund"]["status"] == "pending"

    completed = client.put(f"{url}/refunds/{refund_id}", json={"status": "completed"}, headers=headers)
    assert completed.status_code == 200
    assert completed.json()["payment"]["status"] == "partially_refunded"
    assert Decimal(completed.json()["payment"]["total_refunded"]) == Decimal("25.00")


def test_refund_on_pending_payment_is_refused(client, db):
    admin = make_admin(db)
    payment = create_payment(client, admin, make_shipment(db, make_client(db)))

    response = client.post(
        f"/api/v1/payments/{payment['id']}/refund",
        json={"amount": "10", "reason": "client_request"},
        headers=auth_headers("admin", admin)
    )

    assert response.status_code == 409
    assert response.json()["message"] == "Can only refund completed payments"


def test_status_update(client, db):
    admin = make_admin(db)
    payment = create_payment(client, admin, make_shipment(db, make_client(db)))
    url = f"/api/v1/payments/{payment['id']}/status"

    completed = client.put(url, json={"status": "completed", "transaction_id": "txn_42"}, headers=auth_headers("admin", admin))
    refused = client.put(url, json={"status": "refunded"}, headers=auth_headers("admin", admin))

    assert completed.status_code == 200
    assert completed.json()["payment"]["transaction_id"] == "txn_42"
    assert completed.json()["payment"]["remaining_balance"] == "0.00"
    assert refused.status_code == 400
