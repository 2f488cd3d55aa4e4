# tests/test_activity.py
from conftest import auth_headers, make_admin, make_client, make_driver, make_shipment


def test_successful_admin_action_is_logged(client, db):
    admin = make_admin(db)
    shipment = make_shipment(db, make_client(db))
    driver = make_driver(db)

    response = client.put(
        f"/api/v1/shipments/{shipment.id}/assign",
        json={"driver_id": driver.id},
        headers={**auth_headers("admin", admin), "User-Agent": "dispatch-console/2.1"}
    )
    assert response.status_code == 200

    db.refresh(admin)
    assert admin.total_actions == 1
    entry = admin.activity_log[-1]
    assert entry["action"] == "update"
    assert entry["module"] == "shipments"
    assert entry["target_type"] == "shipment"
    assert entry["target_id"] == str(shipment.id)
    assert entry["success"] is True
    assert entry["error_message"] is None
    assert entry["user_agent"] == "dispatch-console/2.1"


def test_failed_admin_action_is_logged(client, db):
    admin = make_admin(db)
    shipment = make_shipment(db, make_client(db))
    driver = make_driver(db, status="pending", kyc_status="pending")

    response = client.put(
        f"/api/v1/shipments/{shipment.id}/assign",
        json={"driver_id": driver.id},
        headers=auth_headers("admin", admin)
    )
    assert response.status_code == 422

    db.refresh(admin)
    entry = admin.activity_log[-1]
    assert entry["success"] is False
    assert entry["error_message"].startswith("Driver is not eligible")


def test_non_admin_calls_are_not_logged(client, db):
    shipper = make_client(db)
    admin = make_admin(db)
    shipment = make_shipment(db, shipper)

    response = client.post(
        f"/api/v1/shipments/{shipment.id}/cancel",
        json={"reason": "No longer needed"},
        headers=auth_headers("client", shipper)
    )
    assert response.status_code == 200

    db.refresh(admin)
    assert admin.activity_log == []


def test_activity_endpoint_lists_newest_first(client, db):
    admin = make_admin(db)
    shipper = make_client(db)
    first, second = make_shipment(db, shipper), make_shipment(db, shipper)
    headers = auth_headers("admin", admin)

    for shipment in (first, second):
        client.post(f"/api/v1/shipments/{shipment.id}/issues",
                    json={"type": "damage", "description": "Crushed corner"}, headers=headers)

    response = client.get("/api/v1/admin/activity", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [a["target_id"] for a in body["activities"]] == [str(second.id), str(first.id)]
