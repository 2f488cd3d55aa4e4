# logistics_backend/modules/identity/service.py
import logging
import secrets
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from fastapi import UploadFile
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from logistics_backend.config.settings import settings
from logistics_backend.core.auth.dependencies import Principal
from logistics_backend.core.auth.schemas import (
    AdminProfile, AdminProfileUpdate, ClientProfile, ClientProfileUpdate, ClientRegisterRequest,
    DriverProfile, DriverProfileUpdate, DriverRegisterRequest
)
from logistics_backend.core.auth.service import AuthService
from logistics_backend.core.exceptions import (
    AccountInactiveError, AccountLockedError, ConflictError, UnauthenticatedError, ValidationError
)
from logistics_backend.shared.database.models import Admin, Client, Driver
from logistics_backend.shared.domain.enums import (
    ClientStatus, DriverStatus, KycStatus, PrincipalType, VerificationStatus
)
from logistics_backend.shared.services.storage_service import StorageService, read_upload
from logistics_backend.shared.utils.dates import iso, utcnow
from .repository import IdentityRepository

logger = logging.getLogger(__name__)

LOGIN_MODELS = {
    PrincipalType.DRIVER.value: Driver,
    PrincipalType.CLIENT.value: Client,
    PrincipalType.ADMIN.value: Admin,
}

DRIVER_CONFLICT = "Driver with this email, phone, or license number already exists"
CLIENT_CONFLICT = "Client with this email or business registration number already exists"
PHONE_CONFLICT = "Phone number is already in use"

PROFILE_UPDATES = {
    PrincipalType.DRIVER.value: DriverProfileUpdate,
    PrincipalType.CLIENT.value: ClientProfileUpdate,
    PrincipalType.ADMIN.value: AdminProfileUpdate,
}


def age_on(birth_date: date, today: date) -> int:
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


class IdentityService:
    """Registration, login and document uploads for drivers, clients and admins"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = IdentityRepository(db)

    # ==================== REGISTRATION ====================

    def build_driver(self, data: DriverRegisterRequest, now: Optional[datetime] = None) -> Driver:
        """Validate and build a pending driver; shared by self-registration and admin creation"""
        today = (now or utcnow()).date()

        if self.repository.driver_exists(data.email, data.phone, data.driver_license_number):
            raise ConflictError(DRIVER_CONFLICT)
        if data.license_expiry <= today:
            raise ValidationError("Driver license has expired", "license_expiry")
        if age_on(data.date_of_birth, today) < settings.minimum_driver_age:
            raise ValidationError(
                f"Driver must be at least {settings.minimum_driver_age} years old", "date_of_birth"
            )

        return Driver(
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            email=data.email.lower(),
            phone=data.phone,
            password_hash=AuthService.get_password_hash(data.password),
            driver_license_number=data.driver_license_number.strip(),
            license_expiry=data.license_expiry,
            date_of_birth=data.date_of_birth,
            address=data.address.model_dump(),
            vehicle=data.vehicle.model_dump(exclude_none=True) if data.vehicle else {},
            emergency_contact=data.emergency_contact.model_dump() if data.emergency_contact else {},
            status=DriverStatus.PENDING.value,
            kyc_status=KycStatus.PENDING.value,
            kyc_documents={},
            admin_notes=[],
        )

    async def register_driver(self, data: DriverRegisterRequest, now: Optional[datetime] = None) -> Tuple[Driver, str]:
        driver = self.repository.add(self.build_driver(data, now), DRIVER_CONFLICT)
        token = AuthService.create_access_token(driver.id, PrincipalType.DRIVER.value)
        logger.info(f"Driver registered: {driver.email}")
        return driver, token

    async def register_client(self, data: ClientRegisterRequest) -> Tuple[Client, str]:
        if self.repository.client_exists(data.email, data.business_registration_number):
            raise ConflictError(CLIENT_CONFLICT)

        client = Client(
            company_name=data.company_name.strip(),
            contact_person=data.contact_person.model_dump(exclude_none=True),
            email=data.email.lower(),
            phone=data.phone,
            password_hash=AuthService.get_password_hash(data.password),
            business_registration_number=data.business_registration_number.strip(),
            tax_id=data.tax_id,
            industry_type=data.industry_type.value,
            business_address=data.business_address.model_dump() if data.business_address else {},
            billing_address=data.billing_address.model_dump() if data.billing_address else {},
            status=ClientStatus.PENDING.value,
            verification_documents={},
            verification_status=VerificationStatus.PENDING.value,
            admin_notes=[],
            payment_terms=data.payment_terms.value,
            credit_limit=0,
            current_balance=0
        )
        client = self.repository.add(client, CLIENT_CONFLICT)
        token = AuthService.create_access_token(client.id, PrincipalType.CLIENT.value)
        logger.info(f"Client registered: {client.email}")
        return client, token

    # ==================== LOGIN ====================

    async def login(
        self,
        email: str,
        password: str,
        user_type: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Tuple[Any, str]:
        """
        Authenticate a principal and issue a token.

        Unknown email and wrong password produce the same error. Failed admin
        attempts are counted and lock the account once the limit is reached;
        the account status and the lock are only checked after the password
        matches.
        """
        now = now or utcnow()
        user_type = PrincipalType(user_type).value
        account = self.repository.find_by_email(LOGIN_MODELS[user_type], email)

        if account is None:
            logger.warning(f"Login failed for unknown {user_type} {email}")
            raise UnauthenticatedError("Invalid credentials")

        if not AuthService.verify_password(password, account.password_hash):
            if user_type == PrincipalType.ADMIN.value:
                account.register_failed_login(now)
                self.repository.save(account)
                logger.warning(f"Failed admin login for {email} ({account.login_attempts} attempts)")
            raise UnauthenticatedError("Invalid credentials")

        if not account.is_active_account:
            raise AccountInactiveError()

        if user_type == PrincipalType.ADMIN.value and account.is_locked(now):
            logger.warning(f"Login refused for locked admin {email} until {account.locked_until}")
            raise AccountLockedError()

        session_id = None
        if user_type == PrincipalType.ADMIN.value:
            session_id = secrets.token_hex(32)
            account.reset_login_attempts()
            account.add_session(session_id, ip_address, user_agent, now=now)
        else:
            account.last_login = now

        self.repository.save(account)
        token = AuthService.create_access_token(account.id, user_type, session_id=session_id)
        logger.info(f"✅ {user_type} login: {account.email}")
        return account, token

    async def logout(self, principal: Principal) -> bool:
        """Ends the admin session carried by the token; no-op for drivers and clients"""
        if not principal.is_admin or not principal.session_id:
            return False
        admin = principal.account
        removed = admin.remove_session(principal.session_id)
        if removed:
            self.repository.save(admin)
            logger.info(f"Admin {admin.email} logged out")
        return removed

    # ==================== DOCUMENTS ====================

    async def upload_kyc_documents(
        self,
        driver: Driver,
        files: Dict[str, Optional[UploadFile]],
        storage: StorageService,
        now: Optional[datetime] = None
    ) -> Driver:
        """Store KYC documents; a complete set moves the driver to in_review"""
        now = now or utcnow()
        uploads = {name: upload for name, upload in files.items() if upload is not None}
        if not uploads:
            raise ValidationError("No files uploaded", "files")

        contents = {
            doc_type: await read_upload(upload, settings.allowed_document_formats, doc_type)
            for doc_type, upload in uploads.items()
        }

        documents = dict(driver.kyc_documents or {})
        for doc_type, upload in uploads.items():
            url = await storage.upload(
                contents[doc_type],
                folder=f"kyc/driver_{driver.id}",
                filename=upload.filename or doc_type,
                content_type=upload.content_type,
                metadata={"driver_id": driver.id, "document_type": doc_type}
            )
            documents[doc_type] = {"url": url, "upload_date": iso(now), "verified": False}

        driver.kyc_documents = documents
        if driver.kyc_completion >= 100:
            driver.kyc_status = KycStatus.IN_REVIEW.value
            driver.kyc_submitted_at = now

        driver = self.repository.save(driver)
        logger.info(f"KYC documents uploaded for driver #{driver.id} ({driver.kyc_completion}%)")
        return driver

    async def upload_business_documents(
        self,
        client: Client,
        files: Dict[str, Optional[UploadFile]],
        storage: StorageService,
        now: Optional[datetime] = None
    ) -> Client:
        now = now or utcnow()
        uploads = {name: upload for name, upload in files.items() if upload is not None}
        if not uploads:
            raise ValidationError("No files uploaded", "files")

        contents = {
            doc_type: await read_upload(upload, settings.allowed_document_formats, doc_type)
            for doc_type, upload in uploads.items()
        }

        documents = dict(client.verification_documents or {})
        for doc_type, upload in uploads.items():
            url = await storage.upload(
                contents[doc_type],
                folder=f"business/client_{client.id}",
                filename=upload.filename or doc_type,
                content_type=upload.content_type,
                metadata={"client_id": client.id, "document_type": doc_type}
            )
            documents[doc_type] = {"url": url, "upload_date": iso(now), "verified": False}

        client.verification_documents = documents
        if client.verification_completion >= 100:
            client.verification_status = VerificationStatus.IN_REVIEW.value

        client = self.repository.save(client)
        logger.info(f"Business documents uploaded for client #{client.id}")
        return client

    # ==================== PROFILES ====================

    async def update_profile(self, principal: Principal, updates: Dict[str, Any]):
        """
        Self-service profile update.

        Only the fields of the principal type's update schema are applied;
        credentials, status, role and permissions stay untouched.
        """
        schema = PROFILE_UPDATES[principal.principal_type]
        try:
            data = schema.model_validate(updates)
        except SchemaValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise ValidationError(f"Invalid {field}: {error['msg']}", field)

        changes = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No profile fields to update")

        account = principal.account
        for name, value in changes.items():
            setattr(account, name, value.strip() if isinstance(value, str) else value)

        account = self.repository.save(account, PHONE_CONFLICT)
        logger.info(f"Profile updated for {principal.principal_type} #{account.id}: {', '.join(changes)}")
        return account

    @staticmethod
    def principal_summary(account, principal_type: str) -> Dict[str, Any]:
        if principal_type == PrincipalType.CLIENT.value:
            name = account.company_name
        else:
            name = account.full_name
        return {
            "id": account.id,
            "email": account.email,
            "principal_type": principal_type,
            "name": name,
            "status": account.status,
            "role": account.role if principal_type == PrincipalType.ADMIN.value else principal_type,
        }

    @staticmethod
    def profile(principal: Principal) -> Dict[str, Any]:
        if principal.principal_type == PrincipalType.DRIVER.value:
            schema = DriverProfile
        elif principal.principal_type == PrincipalType.CLIENT.value:
            schema = ClientProfile
        else:
            schema = AdminProfile
        return schema.model_validate(principal.account).model_dump(mode="json")
