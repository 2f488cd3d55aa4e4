# logistics_backend/modules/admin/service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from logistics_backend.core.auth.schemas import DriverRegisterRequest
from logistics_backend.core.auth.service import AuthService
from logistics_backend.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from logistics_backend.core.permissions import PermissionSet
from logistics_backend.modules.identity import IdentityRepository, IdentityService
from logistics_backend.modules.identity.service import DRIVER_CONFLICT
from logistics_backend.shared.database.models import Admin, Client, Driver
from logistics_backend.shared.domain.actors import AdminActor
from logistics_backend.shared.domain.enums import AdminStatus, DriverStatus, KycStatus
from logistics_backend.shared.utils.dates import iso, utcnow
from .schemas import AdminCreate, ClientStatusUpdate, DriverStatusUpdate, KycReview

logger = logging.getLogger(__name__)

ADMIN_CONFLICT = "Admin with this email or employee ID already exists"


def admin_note(note: str, actor: AdminActor, note_type: str, now: datetime) -> Dict[str, Any]:
    return {"note": note, "added_by": actor.id, "added_at": iso(now), "type": note_type}


class AdminService:
    """Back-office management of admins, drivers and clients"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = IdentityRepository(db)

    # ==================== ADMIN USERS ====================

    async def create_admin(self, data: AdminCreate, actor: AdminActor) -> Admin:
        if self.repository.admin_exists(data.email, data.employee_id):
            raise ConflictError(ADMIN_CONFLICT)

        permissions = PermissionSet.from_dict(
            {module.value: [action.value for action in actions] for module, actions in data.permissions.items()}
        )
        admin = Admin(
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            email=data.email.lower(),
            phone=data.phone,
            password_hash=AuthService.get_password_hash(data.password),
            employee_id=data.employee_id.strip(),
            department=data.department.value,
            position=data.position.strip(),
            hire_date=data.hire_date or utcnow().date(),
            role=data.role.value,
            permissions=permissions.to_dict(),
            status=AdminStatus.ACTIVE.value,
            activity_log=[],
            active_sessions=[],
            login_attempts=0,
            total_logins=0,
            total_actions=0,
            created_by_id=actor.id,
        )
        admin = self.repository.add(admin, ADMIN_CONFLICT)
        logger.info(f"Admin {admin.email} ({admin.role}) created by admin #{actor.id}")
        return admin

    # ==================== DRIVERS ====================

    def _driver(self, driver_id: int) -> Driver:
        driver = self.repository.get_driver(driver_id)
        if driver is None:
            raise NotFoundError("Driver", driver_id)
        return driver

    async def list_drivers(self, page: int = 1, size: int = 20, **filters) -> Tuple[List[Driver], int]:
        return self.repository.list_drivers(skip=(page - 1) * size, limit=size, **filters)

    async def get_driver(self, driver_id: int) -> Tuple[Driver, Dict[str, int]]:
        driver = self._driver(driver_id)
        return driver, self.repository.shipment_status_counts(driver_id=driver.id)

    async def create_driver(
        self,
        data: DriverRegisterRequest,
        actor: AdminActor,
        now: Optional[datetime] = None
    ) -> Driver:
        """Drivers created from the back office start pending, like self-registered ones"""
        now = now or utcnow()
        driver = IdentityService(self.db).build_driver(data, now)
        driver.admin_notes = [admin_note("Created by admin", actor, "created", now)]
        driver = self.repository.add(driver, DRIVER_CONFLICT)
        logger.info(f"Driver {driver.email} created by admin #{actor.id}")
        return driver

    async def update_driver_status(
        self,
        driver_id: int,
        data: DriverStatusUpdate,
        actor: AdminActor,
        now: Optional[datetime] = None
    ) -> Driver:
        now = now or utcnow()
        driver = self._driver(driver_id)
        if driver.status == DriverStatus.TERMINATED.value:
            raise InvalidStateError("Terminated drivers cannot change status")

        previous = driver.status
        driver.status = data.status.value
        if data.reason and data.status.value in (DriverStatus.REJECTED.value, DriverStatus.SUSPENDED.value):
            driver.admin_notes = list(driver.admin_notes or []) + [
                admin_note(data.reason, actor, data.status.value, now)
            ]

        driver = self.repository.save(driver)
        logger.info(f"Driver #{driver.id} status {previous} -> {driver.status} by admin #{actor.id}")
        return driver

    async def review_kyc(
        self,
        driver_id: int,
        data: KycReview,
        actor: AdminActor,
        now: Optional[datetime] = None
    ) -> Driver:
        """Record per-document verification flags and the KYC decision"""
        now = now or utcnow()
        driver = self._driver(driver_id)

        documents = {name: dict(doc) for name, doc in (driver.kyc_documents or {}).items()}
        for verification in data.document_verifications:
            doc_type = verification.document_type.value
            if doc_type in documents:
                documents[doc_type]["verified"] = verification.verified
        driver.kyc_documents = documents

        driver.kyc_status = data.kyc_status.value
        driver.kyc_reviewed_at = now
        driver.kyc_reviewed_by = actor.id
        if data.kyc_status.value == KycStatus.REJECTED.value:
            driver.kyc_rejection_reason = data.notes
        else:
            driver.kyc_rejection_reason = None

        if data.notes:
            driver.admin_notes = list(driver.admin_notes or []) + [
                admin_note(data.notes, actor, "kyc_review", now)
            ]

        driver = self.repository.save(driver)
        logger.info(f"KYC for driver #{driver.id} {driver.kyc_status} by admin #{actor.id}")
        return driver

    async def delete_driver(
        self,
        driver_id: int,
        actor: AdminActor,
        now: Optional[datetime] = None
    ) -> Driver:
        """Soft delete: the driver is terminated, its history stays"""
        driver = self._driver(driver_id)

        active = self.repository.count_active_shipments(driver.id)
        if active:
            logger.warning(f"Refused to delete driver #{driver.id}: {active} active shipment(s)")
            raise InvalidStateError(f"Cannot delete driver with {active} active shipment(s)")

        driver.status = DriverStatus.TERMINATED.value
        driver.admin_notes = list(driver.admin_notes or []) + [
            admin_note("Driver account terminated", actor, "terminated", now or utcnow())
        ]
        driver = self.repository.save(driver)
        logger.info(f"Driver #{driver.id} terminated by admin #{actor.id}")
        return driver

    # ==================== CLIENTS ====================

    def _client(self, client_id: int) -> Client:
        client = self.repository.get_client(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    async def list_clients(self, page: int = 1, size: int = 20, **filters) -> Tuple[List[Client], int]:
        return self.repository.list_clients(skip=(page - 1) * size, limit=size, **filters)

    async def get_client(self, client_id: int) -> Tuple[Client, Dict[str, int]]:
        client = self._client(client_id)
        return client, self.repository.shipment_status_counts(client_id=client.id)

    async def update_client_status(
        self,
        client_id: int,
        data: ClientStatusUpdate,
        actor: AdminActor,
        now: Optional[datetime] = None
    ) -> Client:
        now = now or utcnow()
        client = self._client(client_id)

        previous = client.status
        client.status = data.status.value
        if data.verification_status is not None:
            client.verification_status = data.verification_status.value
        if data.reason:
            client.admin_notes = list(client.admin_notes or []) + [
                admin_note(data.reason, actor, "status_change", now)
            ]

        client = self.repository.save(client)
        logger.info(f"Client #{client.id} status {previous} -> {client.status} by admin #{actor.id}")
        return client

    # ==================== ACTIVITY ====================

    @staticmethod
    def activity_page(admin: Admin, page: int = 1, size: int = 20) -> Tuple[List[Dict[str, Any]], int]:
        """Newest entries first"""
        entries = list(reversed(admin.activity.entries()))
        start = (page - 1) * size
        return entries[start:start + size], len(entries)
