# logistics_backend/modules/shipments/router.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from logistics_backend.config.database import get_db
from logistics_backend.core.activity import log_admin_activity
from logistics_backend.core.auth.dependencies import Principal, require_principal_types
from logistics_backend.shared.domain.enums import (
    ActivityAction, AdminModule, ServiceType, ShipmentDocumentType, ShipmentPhotoType,
    ShipmentPriority, ShipmentStatus
)
from logistics_backend.shared.services.storage_service import StorageService, get_storage_service
from .schemas import (
    AttachmentsResponse, CancelRequest, IssueReport, RatingRequest, ShipmentCreate, ShipmentDetail,
    ShipmentListResponse, ShipmentResponse, ShipmentSummary, StatusUpdate, TrackingInfo, TrackingResponse
)
from .service import ShipmentService

router = APIRouter()

any_party = require_principal_types(["driver", "client", "admin"])


def _shipment_response(shipment, message: str) -> ShipmentResponse:
    return ShipmentResponse(message=message, shipment=ShipmentDetail.model_validate(shipment))


@router.post("", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
@log_admin_activity(ActivityAction.CREATE, AdminModule.SHIPMENTS)
async def create_shipment(
    shipment_data: ShipmentCreate,
    request: Request,
    current_user: Principal = Depends(require_principal_types(["client", "admin"])),
    db: Session = Depends(get_db)
):
    """
    SH001: Request a new shipment

    **Features:**
    - Clients create shipments for themselves
    - Admins create on behalf of a client (`client_id` required)
    - Manifest totals are computed once, at creation
    - The shipment starts `pending` with a system timeline entry
    """
    service = ShipmentService(db)
    shipment = await service.create_shipment(shipment_data, current_user.actor)
    return _shipment_response(shipment, "Shipment created successfully")


@router.get("", response_model=ShipmentListResponse)
async def list_shipments(
    status_filter: Optional[ShipmentStatus] = Query(None, alias="status"),
    priority: Optional[ShipmentPriority] = Query(None),
    service_type: Optional[ServiceType] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, description="Tracking number or shipment ID"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: Principal = Depends(any_party),
    db: Session = Depends(get_db)
):
    """
    SH002: List shipments

    Drivers only see shipments assigned to them and clients only their own.
    """
    service = ShipmentService(db)
    shipments, total = await service.list_shipments(
        current_user.actor,
        page=page,
        size=size,
        status=status_filter.value if status_filter else None,
        priority=priority.value if priority else None,
        service_type=service_type.value if service_type else None,
        start_date=start_date,
        end_date=end_date,
        search=search
    )
    return ShipmentListResponse(
        shipments=[ShipmentSummary.model_validate(s) for s in shipments],
        total=total,
        page=page,
        size=size,
        pages=(total + size - 1) // size
    )


@router.get("/track/{tracking_number}", response_model=TrackingResponse)
async def track_shipment(
    tracking_number: str,
    db: Session = Depends(get_db)
):
    """SH003: Public tracking by tracking number"""
    service = ShipmentService(db)
    snapshot = await service.track(tracking_number)
    return TrackingResponse(shipment=TrackingInfo(**snapshot))


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: int,
    current_user: Principal = Depends(any_party),
    db: Session = Depends(get_db)
):
    service = ShipmentService(db)
    shipment = await service.get_shipment(shipment_id, current_user.actor)
    return _shipment_response(shipment, "Shipment retrieved")


@router.put("/{shipment_id}/status", response_model=ShipmentResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.SHIPMENTS)
async def update_shipment_status(
    shipment_id: int,
    status_data: StatusUpdate,
    request: Request,
    current_user: Principal = Depends(require_principal_types(["driver", "admin"])),
    db: Session = Depends(get_db)
):
    """
    SH004: Move a shipment through its lifecycle

    **Allowed moves:**
    - pending -> assigned, cancelled
    - assigned -> picked, cancelled
    - picked -> packed, processing, failed
    - packed -> processing, in_transit
    - processing -> in_transit, failed
    - in_transit -> out_for_delivery, delivered, failed
    - out_for_delivery -> delivered, failed, returned
    - failed -> processing, cancelled

    Drivers can only update shipments assigned to them.
    """
    service = ShipmentService(db)
    shipment = await service.update_status(shipment_id, status_data, current_user.actor)
    return _shipment_response(shipment, f"Shipment status updated to {shipment.status}")


@router.post("/{shipment_id}/cancel", response_model=ShipmentResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.SHIPMENTS)
async def cancel_shipment(
    shipment_id: int,
    cancel_data: CancelRequest,
    request: Request,
    current_user: Principal = Depends(require_principal_types(["client", "admin"])),
    db: Session = Depends(get_db)
):
    """SH005: Cancel a pending, assigned or failed shipment"""
    service = ShipmentService(db)
    shipment = await service.cancel(shipment_id, cancel_data, current_user.actor)
    return _shipment_response(shipment, "Shipment cancelled successfully")


@router.post("/{shipment_id}/issues", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.SHIPMENTS)
async def report_issue(
    shipment_id: int,
    issue: IssueReport,
    request: Request,
    current_user: Principal = Depends(any_party),
    db: Session = Depends(get_db)
):
    service = ShipmentService(db)
    shipment = await service.report_issue(shipment_id, issue, current_user.actor)
    return _shipment_response(shipment, "Issue reported successfully")


@router.post("/{shipment_id}/rating", response_model=ShipmentResponse)
async def rate_shipment(
    shipment_id: int,
    rating: RatingRequest,
    current_user: Principal = Depends(require_principal_types(["driver", "client"])),
    db: Session = Depends(get_db)
):
    """
    SH006: Rate a delivered shipment

    The client rates the service and the driver rates the client; each
    rating can only be given once.
    """
    service = ShipmentService(db)
    shipment = await service.rate(shipment_id, rating, current_user.actor)
    return _shipment_response(shipment, "Rating submitted successfully")


@router.post("/{shipment_id}/documents", response_model=AttachmentsResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.SHIPMENTS)
async def upload_shipment_documents(
    shipment_id: int,
    request: Request,
    document_type: ShipmentDocumentType = Form(...),
    files: List[UploadFile] = File(...),
    current_user: Principal = Depends(require_principal_types(["driver", "admin"])),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    service = ShipmentService(db)
    shipment, added = await service.upload_documents(
        shipment_id, document_type, files, current_user.actor, storage
    )
    return AttachmentsResponse(
        message="Documents uploaded successfully",
        shipment_id=shipment.shipment_id,
        added=added,
        total=len(shipment.documents)
    )


@router.post("/{shipment_id}/photos", response_model=AttachmentsResponse)
async def upload_shipment_photos(
    shipment_id: int,
    photo_type: ShipmentPhotoType = Form(...),
    files: List[UploadFile] = File(...),
    description: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None, ge=-90, le=90),
    longitude: Optional[float] = Form(None, ge=-180, le=180),
    current_user: Principal = Depends(require_principal_types(["driver"])),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """SH007: Proof-of-pickup / proof-of-delivery photos from the assigned driver"""
    service = ShipmentService(db)
    shipment, added = await service.upload_photos(
        shipment_id,
        photo_type,
        files,
        current_user.actor,
        storage,
        description=description,
        latitude=latitude,
        longitude=longitude
    )
    return AttachmentsResponse(
        message="Photos uploaded successfully",
        shipment_id=shipment.shipment_id,
        added=added,
        total=len(shipment.photos)
    )
