# tests/conftest.py
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import date, timedelta
from decimal import Decimal
from itertools import count
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from logistics_backend.config.database import get_db
from logistics_backend.core.auth.service import AuthService
from logistics_backend.main import app
from logistics_backend.modules.shipments import state_machine
from logistics_backend.shared.database.models import Admin, Base, Client, Driver, Shipment
from logistics_backend.shared.domain.actors import SYSTEM
from logistics_backend.shared.services.storage_service import get_storage_service
from logistics_backend.shared.utils.dates import utcnow

PASSWORD = "password123"
PASSWORD_HASH = AuthService.get_password_hash(PASSWORD)

_sequence = count(1)


class InMemoryStorage:
    """Stand-in for the Cloudinary store; keeps uploads in a list"""

    def __init__(self):
        self.uploads: List[Dict[str, Any]] = []

    async def upload(self, content, folder, filename, content_type=None, metadata=None):
        url = f"https://files.test/{folder}/{len(self.uploads)}_{filename}"
        self.uploads.append({
            "content": content,
            "folder": folder,
            "filename": filename,
            "content_type": content_type,
            "metadata": metadata or {},
            "url": url,
        })
        return url


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def client(db, storage):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ==================== FACTORIES ====================

def make_driver(db, status: str = "approved", kyc_status: str = "approved", **overrides) -> Driver:
    n = next(_sequence)
    values = dict(
        first_name="Dana",
        last_name=f"Reyes{n}",
        email=f"driver{n}@example.com",
        phone=f"+1555000{n:04d}",
        password_hash=PASSWORD_HASH,
        driver_license_number=f"DL{n:06d}",
        license_expiry=date.today() + timedelta(days=365),
        date_of_birth=date(1990, 5, 20),
        address={"street": "1 Main St", "city": "Austin", "state": "TX", "zip_code": "73301", "country": "US"},
        vehicle={"type": "van", "plate_number": f"VAN{n}"},
        emergency_contact={},
        status=status,
        kyc_status=kyc_status,
        kyc_documents={},
        admin_notes=[],
    )
    values.update(overrides)
    driver = Driver(**values)
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return driver


def make_client(db, status: str = "active", **overrides) -> Client:
    n = next(_sequence)
    values = dict(
        company_name=f"Acme Widgets {n}",
        contact_person={"first_name": "Lee", "last_name": "Chen", "position": "Logistics Manager"},
        email=f"shipper{n}@example.com",
        phone=f"+1555100{n:04d}",
        password_hash=PASSWORD_HASH,
        business_registration_number=f"BRN{n:06d}",
        tax_id=f"TAX{n}",
        industry_type="Retail",
        business_address={},
        billing_address={},
        status=status,
        verification_documents={},
        verification_status="pending",
        admin_notes=[],
        payment_terms="net_30",
        credit_limit=0,
        current_balance=0,
    )
    values.update(overrides)
    client = Client(**values)
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def make_admin(db, role: str = "super_admin", permissions: Optional[Dict[str, List[str]]] = None,
               **overrides) -> Admin:
    n = next(_sequence)
    values = dict(
        first_name="Sam",
        last_name=f"Okafor{n}",
        email=f"admin{n}@example.com",
        phone=f"+1555200{n:04d}",
        password_hash=PASSWORD_HASH,
        employee_id=f"EMP{n:04d}",
        department="Operations",
        position="Dispatcher",
        role=role,
        permissions=permissions or {},
        status="active",
        activity_log=[],
        active_sessions=[],
        login_attempts=0,
        total_logins=0,
        total_actions=0,
    )
    values.update(overrides)
    admin = Admin(**values)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def make_shipment(db, client: Client, driver: Optional[Driver] = None, status: str = "pending",
                  **overrides) -> Shipment:
    """A persisted shipment; ``status`` other than pending is reached through real transitions"""
    n = next(_sequence)
    now = utcnow()
    values = dict(
        shipment_id=f"SHTEST{n:05d}",
        tracking_number=f"TRKTEST{n:08d}",
        client_id=client.id,
        description="Two pallets of widgets",
        items=[{"name": "Widget", "quantity": 2, "weight": 5.0, "category": "Other"}],
        total_weight=Decimal("10.00"),
        total_value=Decimal("0.00"),
        pickup_address={"street": "1 Dock Rd", "city": "Austin", "state": "TX", "zip_code": "73301"},
        delivery_address={"street": "9 Bay St", "city": "Dallas", "state": "TX", "zip_code": "75201"},
        requested_pickup_date=now + timedelta(days=1),
        requested_delivery_date=now + timedelta(days=3),
        pricing={},
        requirements={},
        issues=[],
        documents=[],
        photos=[],
    )
    values.update(overrides)
    shipment = Shipment(**values)
    state_machine.start_timeline(shipment, now)

    path = {
        "pending": [],
        "assigned": ["assigned"],
        "picked": ["assigned", "picked"],
        "in_transit": ["assigned", "picked", "packed", "in_transit"],
        "delivered": ["assigned", "picked", "packed", "in_transit", "delivered"],
    }[status]
    if path:
        shipment.driver_id = driver.id
    for step in path:
        state_machine.transition(shipment, step, SYSTEM, now=now)

    db.add(shipment)
    db.commit()
    db.refresh(shipment)
    return shipment


def auth_headers(principal_type: str, account, session_id: Optional[str] = None) -> Dict[str, str]:
    token = AuthService.create_access_token(account.id, principal_type, session_id=session_id)
    return {"Authorization": f"Bearer {token}"}


def shipment_payload(**overrides) -> Dict[str, Any]:
    pickup = utcnow() + timedelta(days=1)
    payload = {
        "description": "Two pallets of widgets for the Dallas store",
        "items": [
            {"name": "Widget crate", "quantity": 2, "weight": 5, "category": "Other",
             "value": {"amount": "25.00", "currency": "USD"}}
        ],
        "pickup_address": {"street": "1 Dock Rd", "city": "Austin", "state": "TX", "zip_code": "73301"},
        "delivery_address": {"street": "9 Bay St", "city": "Dallas", "state": "TX", "zip_code": "75201"},
        "requested_pickup_date": pickup.isoformat(),
        "requested_delivery_date": (pickup + timedelta(days=2)).isoformat(),
    }
    payload.update(overrides)
    return payload
