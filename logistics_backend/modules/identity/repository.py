# logistics_backend/modules/identity/repository.py
import logging
from typing import List, Optional, Tuple, Type, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from logistics_backend.core.exceptions import ConflictError
from logistics_backend.shared.database.models import Admin, Client, Driver, Shipment
from logistics_backend.shared.database.models import TERMINAL_SHIPMENT_STATUSES
from logistics_backend.shared.database.persistence import commit_changes
from logistics_backend.shared.domain.enums import DriverStatus, KycStatus, ShipmentStatus

logger = logging.getLogger(__name__)

Account = Union[Driver, Client, Admin]


class IdentityRepository:
    def __init__(self, db: Session):
        self.db = db

    # ---------- lookups ----------

    def get_driver(self, driver_id: int) -> Optional[Driver]:
        return self.db.get(Driver, driver_id)

    def get_client(self, client_id: int) -> Optional[Client]:
        return self.db.get(Client, client_id)

    def get_admin(self, admin_id: int) -> Optional[Admin]:
        return self.db.get(Admin, admin_id)

    def find_by_email(self, model: Type[Account], email: str) -> Optional[Account]:
        return self.db.query(model).filter(func.lower(model.email) == email.lower()).first()

    def driver_exists(self, email: str, phone: str, license_number: str) -> bool:
        return self.db.query(Driver.id).filter(
            or_(
                func.lower(Driver.email) == email.lower(),
                Driver.phone == phone,
                Driver.driver_license_number == license_number
            )
        ).first() is not None

    def client_exists(self, email: str, registration_number: str) -> bool:
        return self.db.query(Client.id).filter(
            or_(
                func.lower(Client.email) == email.lower(),
                Client.business_registration_number == registration_number
            )
        ).first() is not None

    def admin_exists(self, email: str, employee_id: str) -> bool:
        return self.db.query(Admin.id).filter(
            or_(func.lower(Admin.email) == email.lower(), Admin.employee_id == employee_id)
        ).first() is not None

    # ---------- listings ----------

    def list_drivers(
        self,
        status: Optional[str] = None,
        kyc_status: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Driver], int]:
        query = self.db.query(Driver)
        if status:
            query = query.filter(Driver.status == status)
        if kyc_status:
            query = query.filter(Driver.kyc_status == kyc_status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Driver.first_name).like(pattern),
                func.lower(Driver.last_name).like(pattern),
                func.lower(Driver.email).like(pattern),
                func.lower(Driver.driver_license_number).like(pattern)
            ))
        total = query.count()
        drivers = query.order_by(Driver.created_at.desc(), Driver.id.desc()).offset(skip).limit(limit).all()
        return drivers, total

    def list_clients(
        self,
        status: Optional[str] = None,
        verification_status: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Client], int]:
        query = self.db.query(Client)
        if status:
            query = query.filter(Client.status == status)
        if verification_status:
            query = query.filter(Client.verification_status == verification_status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Client.company_name).like(pattern),
                func.lower(Client.email).like(pattern),
                func.lower(Client.business_registration_number).like(pattern)
            ))
        total = query.count()
        clients = query.order_by(Client.created_at.desc(), Client.id.desc()).offset(skip).limit(limit).all()
        return clients, total

    def list_eligible_drivers(self) -> List[Driver]:
        return self.db.query(Driver).filter(
            Driver.status == DriverStatus.APPROVED.value,
            Driver.kyc_status == KycStatus.APPROVED.value
        ).order_by(Driver.last_name, Driver.first_name).all()

    def count_active_shipments(self, driver_id: int) -> int:
        return self.db.query(func.count(Shipment.id)).filter(
            Shipment.driver_id == driver_id,
            Shipment.status.notin_(TERMINAL_SHIPMENT_STATUSES)
        ).scalar() or 0

    def shipment_status_counts(self, **filters) -> dict:
        query = self.db.query(Shipment.status, func.count(Shipment.id))
        for column, value in filters.items():
            query = query.filter(getattr(Shipment, column) == value)
        counts = dict(query.group_by(Shipment.status).all())
        return {status.value: counts.get(status.value, 0) for status in ShipmentStatus}

    # ---------- writes ----------

    def add(self, account: Account, conflict_message: str) -> Account:
        self.db.add(account)
        commit_changes(self.db, type(account).__name__, lambda e: ConflictError(conflict_message))
        self.db.refresh(account)
        logger.info(f"✅ {type(account).__name__} #{account.id} created")
        return account

    def save(self, account: Account, conflict_message: Optional[str] = None) -> Account:
        on_conflict = (lambda e: ConflictError(conflict_message)) if conflict_message else None
        commit_changes(self.db, type(account).__name__, on_conflict)
        self.db.refresh(account)
        return account
