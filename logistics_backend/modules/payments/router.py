# logistics_backend/modules/payments/router.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from logistics_backend.config.database import get_db
from logistics_backend.core.activity import log_admin_activity
from logistics_backend.core.auth.dependencies import Principal, require_permission, require_principal_types
from logistics_backend.shared.domain.enums import ActivityAction, AdminAction, AdminModule, PaymentStatus
from .schemas import (
    PartialPaymentRequest, PartialPaymentResponse, PaymentCreate, PaymentDetail, PaymentListResponse,
    PaymentResponse, PaymentStatusUpdate, PaymentSummary, RefundRequest, RefundResponse, RefundStatusUpdate
)
from .service import PaymentService

router = APIRouter()


def _detail(payment) -> PaymentDetail:
    return PaymentDetail.model_validate(payment)


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
@log_admin_activity(ActivityAction.CREATE, AdminModule.PAYMENTS)
async def create_payment(
    payment_data: PaymentCreate,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.PAYMENTS, AdminAction.CREATE)),
    db: Session = Depends(get_db)
):
    """
    PA001: Create the payment record for a shipment

    **Rules:**
    - One payment per shipment
    - `total` defaults to subtotal + tax - discount
    - `terms` default to the client's billing terms, then net_30
    """
    service = PaymentService(db)
    payment = await service.create_payment(payment_data, current_user.actor)
    return PaymentResponse(message="Payment created successfully", payment=_detail(payment))


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    client_id: Optional[int] = Query(None, description="Admins only"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    overdue: bool = Query(False),
    search: Optional[str] = Query(None, description="Payment ID"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: Principal = Depends(require_principal_types(["client", "admin"])),
    db: Session = Depends(get_db)
):
    """PA002: List payments; clients only see their own"""
    service = PaymentService(db)
    payments, total = await service.list_payments(
        current_user.actor,
        page=page,
        size=size,
        client_id=client_id,
        overdue=overdue,
        status=status_filter.value if status_filter else None,
        start_date=start_date,
        end_date=end_date,
        search=search
    )
    return PaymentListResponse(
        payments=[PaymentSummary.model_validate(p) for p in payments],
        total=total,
        page=page,
        size=size,
        pages=(total + size - 1) // size
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    current_user: Principal = Depends(require_principal_types(["client", "admin"])),
    db: Session = Depends(get_db)
):
    service = PaymentService(db)
    payment = await service.get_payment(payment_id, current_user.actor)
    return PaymentResponse(message="Payment retrieved", payment=_detail(payment))


@router.put("/{payment_id}/status", response_model=PaymentResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.PAYMENTS)
async def update_payment_status(
    payment_id: int,
    status_data: PaymentStatusUpdate,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.PAYMENTS, AdminAction.UPDATE)),
    db: Session = Depends(get_db)
):
    """
    PA003: Set the payment status

    Accepts processing, completed, failed or cancelled. `completed` stamps the
    paid date.
    """
    service = PaymentService(db)
    payment = await service.update_status(payment_id, status_data, current_user.actor)
    return PaymentResponse(message="Payment status updated successfully", payment=_detail(payment))


@router.post("/{payment_id}/refund", response_model=RefundResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.PAYMENTS)
async def process_refund(
    payment_id: int,
    refund_data: RefundRequest,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.PAYMENTS, AdminAction.UPDATE)),
    db: Session = Depends(get_db)
):
    """
    PA004: Open a refund on a completed payment

    The refund starts `pending`; the payment status only changes once
    refunds are completed.
    """
    service = PaymentService(db)
    payment, refund = await service.add_refund(payment_id, refund_data, current_user.actor)
    return RefundResponse(message="Refund processed successfully", refund=refund, payment=_detail(payment))


@router.put("/{payment_id}/refunds/{refund_id}", response_model=RefundResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.PAYMENTS)
async def update_refund_status(
    payment_id: int,
    refund_id: str,
    refund_status: RefundStatusUpdate,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.PAYMENTS, AdminAction.UPDATE)),
    db: Session = Depends(get_db)
):
    """PA005: Move a refund to processing, completed or failed"""
    service = PaymentService(db)
    payment, refund = await service.update_refund_status(
        payment_id,
        refund_id,
        refund_status.status,
        current_user.actor,
        gateway_refund_id=refund_status.gateway_refund_id
    )
    return RefundResponse(message=f"Refund {refund['status']}", refund=refund, payment=_detail(payment))


@router.post("/{payment_id}/partial", response_model=PartialPaymentResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.PAYMENTS)
async def record_partial_payment(
    payment_id: int,
    partial_data: PartialPaymentRequest,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.PAYMENTS, AdminAction.UPDATE)),
    db: Session = Depends(get_db)
):
    """PA006: Record a partial payment; the one that clears the balance completes the payment"""
    service = PaymentService(db)
    payment, partial = await service.record_partial_payment(payment_id, partial_data, current_user.actor)
    return PartialPaymentResponse(
        message="Partial payment recorded successfully",
        partial_payment=partial,
        remaining_balance=payment.remaining_balance,
        payment=_detail(payment)
    )
