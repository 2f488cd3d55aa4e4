# logistics_backend/modules/admin/router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from logistics_backend.config.database import get_db
from logistics_backend.core.activity import log_admin_activity
from logistics_backend.core.auth.dependencies import (
    Principal, get_admin_principal, get_super_admin, require_permission
)
from logistics_backend.core.auth.schemas import AdminProfile, DriverRegisterRequest
from logistics_backend.shared.domain.enums import (
    ActivityAction, AdminAction, AdminModule, ClientStatus, DriverStatus, KycStatus, VerificationStatus
)
from .schemas import (
    ActivityEntry, ActivityLogResponse, AdminCreate, AdminCreatedResponse, ClientAdminDetail,
    ClientListResponse, ClientResponse, ClientStatusUpdate, DriverAdminDetail, DriverListResponse,
    DriverResponse, DriverStatusUpdate, KycReview
)
from .service import AdminService

router = APIRouter()


def _pages(total: int, size: int) -> int:
    return (total + size - 1) // size


# ==================== AD001: ADMIN USERS ====================

@router.post("/users", response_model=AdminCreatedResponse, status_code=status.HTTP_201_CREATED)
@log_admin_activity(ActivityAction.CREATE, AdminModule.USERS)
async def create_admin_user(
    admin_data: AdminCreate,
    request: Request,
    current_user: Principal = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    """
    AD001: Create an admin user

    **Access:** super admins only. The new admin can be an admin, manager or
    operator with an explicit module permission set.
    """
    service = AdminService(db)
    admin = await service.create_admin(admin_data, current_user.actor)
    return AdminCreatedResponse(
        message="Admin user created successfully",
        admin=AdminProfile.model_validate(admin)
    )


# ==================== AD002: DRIVERS ====================

@router.get("/drivers", response_model=DriverListResponse)
async def list_drivers(
    status_filter: Optional[DriverStatus] = Query(None, alias="status"),
    kyc_status: Optional[KycStatus] = Query(None),
    search: Optional[str] = Query(None, description="Name, email or license number"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: Principal = Depends(require_permission(AdminModule.DRIVERS, AdminAction.READ)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    drivers, total = await service.list_drivers(
        page=page,
        size=size,
        status=status_filter.value if status_filter else None,
        kyc_status=kyc_status.value if kyc_status else None,
        search=search
    )
    return DriverListResponse(
        drivers=[DriverAdminDetail.model_validate(d) for d in drivers],
        total=total,
        page=page,
        size=size,
        pages=_pages(total, size)
    )


@router.post("/drivers", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
@log_admin_activity(ActivityAction.CREATE, AdminModule.DRIVERS)
async def create_driver(
    driver_data: DriverRegisterRequest,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.DRIVERS, AdminAction.CREATE)),
    db: Session = Depends(get_db)
):
    """Create a driver account; it starts pending until approved"""
    service = AdminService(db)
    driver = await service.create_driver(driver_data, current_user.actor)
    return DriverResponse(message="Driver created successfully", driver=DriverAdminDetail.model_validate(driver))


@router.get("/drivers/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int,
    current_user: Principal = Depends(require_permission(AdminModule.DRIVERS, AdminAction.READ)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    driver, stats = await service.get_driver(driver_id)
    return DriverResponse(
        message="Driver retrieved",
        driver=DriverAdminDetail.model_validate(driver),
        shipment_stats=stats
    )


@router.put("/drivers/{driver_id}/status", response_model=DriverResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.DRIVERS)
async def update_driver_status(
    driver_id: int,
    status_data: DriverStatusUpdate,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.DRIVERS, AdminAction.APPROVE)),
    db: Session = Depends(get_db)
):
    """
    Approve, reject or suspend a driver

    A reason given with a rejection or suspension is kept in the admin notes.
    """
    service = AdminService(db)
    driver = await service.update_driver_status(driver_id, status_data, current_user.actor)
    return DriverResponse(
        message=f"Driver status updated to {driver.status}",
        driver=DriverAdminDetail.model_validate(driver)
    )


@router.put("/drivers/{driver_id}/kyc", response_model=DriverResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.DRIVERS)
async def review_driver_kyc(
    driver_id: int,
    review: KycReview,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.DRIVERS, AdminAction.APPROVE)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    driver = await service.review_kyc(driver_id, review, current_user.actor)
    return DriverResponse(
        message=f"Driver KYC status updated to {driver.kyc_status}",
        driver=DriverAdminDetail.model_validate(driver)
    )


@router.delete("/drivers/{driver_id}", response_model=DriverResponse)
@log_admin_activity(ActivityAction.DELETE, AdminModule.DRIVERS)
async def delete_driver(
    driver_id: int,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.DRIVERS, AdminAction.DELETE)),
    db: Session = Depends(get_db)
):
    """Soft delete; refused while the driver has shipments in progress"""
    service = AdminService(db)
    driver = await service.delete_driver(driver_id, current_user.actor)
    return DriverResponse(message="Driver deactivated successfully", driver=DriverAdminDetail.model_validate(driver))


# ==================== AD003: CLIENTS ====================

@router.get("/clients", response_model=ClientListResponse)
async def list_clients(
    status_filter: Optional[ClientStatus] = Query(None, alias="status"),
    verification_status: Optional[VerificationStatus] = Query(None),
    search: Optional[str] = Query(None, description="Company name, email or registration number"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: Principal = Depends(require_permission(AdminModule.CLIENTS, AdminAction.READ)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    clients, total = await service.list_clients(
        page=page,
        size=size,
        status=status_filter.value if status_filter else None,
        verification_status=verification_status.value if verification_status else None,
        search=search
    )
    return ClientListResponse(
        clients=[ClientAdminDetail.model_validate(c) for c in clients],
        total=total,
        page=page,
        size=size,
        pages=_pages(total, size)
    )


@router.get("/clients/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    current_user: Principal = Depends(require_permission(AdminModule.CLIENTS, AdminAction.READ)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    client, stats = await service.get_client(client_id)
    return ClientResponse(
        message="Client retrieved",
        client=ClientAdminDetail.model_validate(client),
        shipment_stats=stats
    )


@router.put("/clients/{client_id}/status", response_model=ClientResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.CLIENTS)
async def update_client_status(
    client_id: int,
    status_data: ClientStatusUpdate,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.CLIENTS, AdminAction.APPROVE)),
    db: Session = Depends(get_db)
):
    """Activate, suspend or deactivate a client account"""
    service = AdminService(db)
    client = await service.update_client_status(client_id, status_data, current_user.actor)
    return ClientResponse(
        message=f"Client status updated to {client.status}",
        client=ClientAdminDetail.model_validate(client)
    )


# ==================== AD004: ACTIVITY ====================

@router.get("/activity", response_model=ActivityLogResponse)
async def get_my_activity(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: Principal = Depends(get_admin_principal)
):
    """Own activity log, newest first (the oldest entries are dropped past 1000)"""
    entries, total = AdminService.activity_page(current_user.account, page, size)
    return ActivityLogResponse(
        activities=[ActivityEntry(**entry) for entry in entries],
        total=total,
        page=page,
        size=size,
        pages=_pages(total, size)
    )
