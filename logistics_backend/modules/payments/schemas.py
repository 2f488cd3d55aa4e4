# logistics_backend/modules/payments/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from logistics_backend.shared.domain.enums import (
    ChargeType, Currency, GatewayProvider, PartialPaymentMethod, PaymentMethodType, PaymentStatus,
    PaymentTerms, RefundMethod, RefundReason, RefundStatus
)
from logistics_backend.shared.schemas.common import BaseResponse


# ==================== REQUESTS ====================

class AmountInput(BaseModel):
    subtotal: Decimal = Field(..., ge=0)
    tax: Decimal = Field(Decimal("0"), ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    total: Optional[Decimal] = Field(None, ge=0, description="Defaults to subtotal + tax - discount")
    currency: Currency = Currency.USD


class Charge(BaseModel):
    description: str = Field(..., min_length=1)
    type: ChargeType
    amount: Decimal = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    rate: Optional[Decimal] = None


class PaymentMethodInfo(BaseModel):
    type: PaymentMethodType
    details: Dict[str, Any] = {}


class GatewayInfo(BaseModel):
    provider: GatewayProvider = GatewayProvider.MANUAL
    gateway_transaction_id: Optional[str] = None
    gateway_response: Optional[Dict[str, Any]] = None


class InvoiceInfo(BaseModel):
    invoice_number: Optional[str] = None
    invoice_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    invoice_url: Optional[str] = None


class PaymentNotes(BaseModel):
    internal: Optional[str] = None
    client: Optional[str] = None


class PaymentCreate(BaseModel):
    shipment_id: int = Field(..., description="Internal id of the shipment being billed")
    amount: AmountInput
    charges: List[Charge] = []
    payment_method: Optional[PaymentMethodInfo] = None
    gateway: Optional[GatewayInfo] = None
    due_date: datetime
    terms: Optional[PaymentTerms] = None
    invoice: Optional[InvoiceInfo] = None
    notes: Optional[PaymentNotes] = None

    class Config:
        json_schema_extra = {
            "example": {
                "shipment_id": 1,
                "amount": {"subtotal": "90.00", "tax": "10.00", "currency": "USD"},
                "charges": [{"description": "Base rate", "type": "base_rate", "amount": "90.00"}],
                "due_date": "2030-01-31T00:00:00",
                "terms": "net_30"
            }
        }


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    notes: Optional[str] = Field(None, max_length=500)
    transaction_id: Optional[str] = Field(None, min_length=1)
    gateway_response: Optional[Dict[str, Any]] = None


class RefundRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    reason: RefundReason
    reason_description: Optional[str] = Field(None, max_length=500)
    refund_method: RefundMethod = RefundMethod.ORIGINAL_METHOD


class RefundStatusUpdate(BaseModel):
    status: RefundStatus
    gateway_refund_id: Optional[str] = None


class PartialPaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    method: PartialPaymentMethod
    transaction_id: Optional[str] = Field(None, min_length=1)


# ==================== RESPONSES ====================

class PaymentSummary(BaseModel):
    id: int
    payment_id: str
    client_id: int
    shipment_id: int
    total: Decimal
    currency: str
    status: PaymentStatus
    status_display: str
    due_date: datetime
    paid_date: Optional[datetime] = None
    terms: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentDetail(PaymentSummary):
    transaction_id: Optional[str] = None
    amount: Dict[str, Any]
    charges: List[Dict[str, Any]] = []
    payment_method: Dict[str, Any] = {}
    gateway: Dict[str, Any] = {}
    timeline: List[Dict[str, Any]] = Field(validation_alias=AliasChoices("timeline_entries", "timeline"))
    refunds: List[Dict[str, Any]] = []
    partial_payments: List[Dict[str, Any]] = []
    invoice: Optional[Dict[str, Any]] = None
    notes: Optional[Dict[str, Any]] = None
    total_refunded: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    days_overdue: int
    updated_at: Optional[datetime] = None


class PaymentResponse(BaseResponse):
    success: bool = True
    payment: PaymentDetail


class PaymentListResponse(BaseResponse):
    success: bool = True
    payments: List[PaymentSummary]
    total: int
    page: int
    size: int
    pages: int


class RefundResponse(BaseResponse):
    success: bool = True
    refund: Dict[str, Any]
    payment: PaymentDetail


class PartialPaymentResponse(BaseResponse):
    success: bool = True
    partial_payment: Dict[str, Any]
    remaining_balance: Decimal
    payment: PaymentDetail
