# logistics_backend/api/v1/auth.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Request, UploadFile, status
from sqlalchemy.orm import Session

from logistics_backend.config.database import get_db
from logistics_backend.core.auth.dependencies import (
    Principal, get_client_principal, get_current_principal, get_driver_principal
)
from logistics_backend.core.auth.schemas import (
    ClientRegisterRequest, DocumentUploadResponse, DriverRegisterRequest, LoginRequest,
    MeResponse, PrincipalInfo, ProfileUpdateResponse, TokenResponse
)
from logistics_backend.modules.identity import IdentityService
from logistics_backend.shared.schemas.common import BaseResponse
from logistics_backend.shared.services.storage_service import StorageService, get_storage_service

router = APIRouter()


def _token_response(account, principal_type: str, token: str, message: str) -> TokenResponse:
    return TokenResponse(
        message=message,
        access_token=token,
        principal=PrincipalInfo(**IdentityService.principal_summary(account, principal_type))
    )


@router.post("/driver/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_driver(
    data: DriverRegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Self-registration for drivers

    The driver starts as `pending` with KYC `pending`; an admin has to approve
    both before the driver can be assigned shipments.
    """
    service = IdentityService(db)
    driver, token = await service.register_driver(data)
    return _token_response(driver, "driver", token, "Driver registered successfully")


@router.post("/client/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_client(
    data: ClientRegisterRequest,
    db: Session = Depends(get_db)
):
    """Self-registration for shipper companies"""
    service = IdentityService(db)
    client, token = await service.register_client(data)
    return _token_response(client, "client", token, "Client registered successfully")


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Login for drivers, clients and admins

    **Admin protection:**
    - 5 consecutive failed attempts lock the account for 30 minutes
    - a successful login opens a session (at most 5 are kept)
    """
    service = IdentityService(db)
    account, token = await service.login(
        credentials.email,
        credentials.password,
        credentials.user_type.value,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
    return _token_response(account, credentials.user_type.value, token, "Login successful")


@router.get("/me", response_model=MeResponse)
async def get_me(current_user: Principal = Depends(get_current_principal)):
    return MeResponse(
        principal_type=current_user.principal_type,
        profile=IdentityService.profile(current_user)
    )


@router.post("/logout", response_model=BaseResponse)
async def logout(
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    service = IdentityService(db)
    await service.logout(current_user)
    return BaseResponse(success=True, message="Logged out successfully")


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    updates: Dict[str, Any] = Body(...),
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """
    Update the caller's own profile

    **Editable fields:**
    - drivers: name, phone, address, vehicle, emergency contact
    - clients: company name, contact person, phone, industry, addresses
    - admins: name, phone

    Email, password, status, role and permissions are never changed here.
    """
    service = IdentityService(db)
    await service.update_profile(current_user, updates)
    return ProfileUpdateResponse(
        principal_type=current_user.principal_type,
        profile=IdentityService.profile(current_user)
    )


@router.post("/driver/kyc", response_model=DocumentUploadResponse)
async def upload_kyc_documents(
    profile_photo: Optional[UploadFile] = File(None),
    license_photo: Optional[UploadFile] = File(None),
    national_id: Optional[UploadFile] = File(None),
    proof_of_address: Optional[UploadFile] = File(None),
    current_user: Principal = Depends(get_driver_principal),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """
    Upload KYC documents

    Once all four documents are on file the KYC status moves to `in_review`.
    """
    service = IdentityService(db)
    driver = await service.upload_kyc_documents(
        current_user.account,
        {
            "profile_photo": profile_photo,
            "license_photo": license_photo,
            "national_id": national_id,
            "proof_of_address": proof_of_address,
        },
        storage
    )
    return DocumentUploadResponse(
        message="KYC documents uploaded successfully",
        documents=driver.kyc_documents,
        completion=driver.kyc_completion,
        status=driver.kyc_status
    )


@router.post("/client/documents", response_model=DocumentUploadResponse)
async def upload_business_documents(
    business_license: Optional[UploadFile] = File(None),
    tax_certificate: Optional[UploadFile] = File(None),
    current_user: Principal = Depends(get_client_principal),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    service = IdentityService(db)
    client = await service.upload_business_documents(
        current_user.account,
        {"business_license": business_license, "tax_certificate": tax_certificate},
        storage
    )
    return DocumentUploadResponse(
        message="Business documents uploaded successfully",
        documents=client.verification_documents,
        completion=client.verification_completion,
        status=client.verification_status
    )
