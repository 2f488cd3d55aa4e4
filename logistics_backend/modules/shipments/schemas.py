# logistics_backend/modules/shipments/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from logistics_backend.shared.domain.enums import (
    Currency, DimensionUnit, ItemCategory, IssueType, ServiceType, ShipmentPriority, ShipmentStatus
)
from logistics_backend.shared.schemas.common import BaseResponse, Coordinates, LocationInfo


# ==================== REQUESTS ====================

class Dimensions(BaseModel):
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    unit: DimensionUnit = DimensionUnit.CM


class ItemValue(BaseModel):
    amount: Decimal
    currency: Currency = Currency.USD


class ShipmentItem(BaseModel):
    """One manifest line; quantity and weight limits are enforced by the service"""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    quantity: int
    weight: float = Field(..., description="Weight per unit in kg")
    dimensions: Optional[Dimensions] = None
    value: Optional[ItemValue] = None
    category: ItemCategory
    is_fragile: bool = False
    special_handling: Optional[str] = None


class ShipmentAddress(BaseModel):
    name: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = "US"
    coordinates: Optional[Coordinates] = None
    special_instructions: Optional[str] = None


class TimeWindow(BaseModel):
    start: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    end: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class Pricing(BaseModel):
    base_rate: Optional[Decimal] = None
    distance_rate: Optional[Decimal] = None
    weight_rate: Optional[Decimal] = None
    urgency_rate: Optional[Decimal] = None
    special_handling_rate: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    currency: Currency = Currency.USD


class Requirements(BaseModel):
    temperature_controlled: bool = False
    temperature_range: Optional[Dict[str, float]] = None
    hazardous_material: bool = False
    hazard_class: Optional[str] = None
    signature_required: bool = False
    age_verification_required: bool = False


class ShipmentCreate(BaseModel):
    client_id: Optional[int] = Field(None, description="Required when an admin creates on behalf of a client")
    description: str
    items: List[ShipmentItem]
    pickup_address: ShipmentAddress
    delivery_address: ShipmentAddress
    service_type: ServiceType = ServiceType.STANDARD
    priority: ShipmentPriority = ShipmentPriority.MEDIUM
    requested_pickup_date: datetime
    requested_delivery_date: datetime
    pickup_time_window: Optional[TimeWindow] = None
    delivery_time_window: Optional[TimeWindow] = None
    pricing: Optional[Pricing] = None
    requirements: Optional[Requirements] = None


class StatusUpdate(BaseModel):
    status: ShipmentStatus
    notes: Optional[str] = Field(None, max_length=500)
    location: Optional[LocationInfo] = None


class AssignDriverRequest(BaseModel):
    driver_id: int


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    refund_amount: Optional[Decimal] = Field(None, ge=0)


class IssueReport(BaseModel):
    type: IssueType
    description: str = Field(..., min_length=1, max_length=1000)


class RatingRequest(BaseModel):
    rating: int
    feedback: Optional[str] = Field(None, max_length=500)


# ==================== RESPONSES ====================

class ShipmentSummary(BaseModel):
    id: int
    shipment_id: str
    tracking_number: str
    client_id: int
    driver_id: Optional[int] = None
    description: str
    status: ShipmentStatus
    service_type: str
    priority: str
    total_weight: Decimal
    total_value: Optional[Decimal] = None
    requested_pickup_date: datetime
    requested_delivery_date: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShipmentDetail(ShipmentSummary):
    items: List[Dict[str, Any]]
    pickup_address: Dict[str, Any]
    delivery_address: Dict[str, Any]
    pickup_time_window: Optional[Dict[str, Any]] = None
    delivery_time_window: Optional[Dict[str, Any]] = None
    actual_pickup_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    pricing: Optional[Dict[str, Any]] = None
    requirements: Optional[Dict[str, Any]] = None
    timeline: List[Dict[str, Any]] = Field(validation_alias=AliasChoices("timeline_entries", "timeline"))
    current_status_info: Optional[Dict[str, Any]] = None
    estimated_transit_time: Optional[int] = None
    issues: List[Dict[str, Any]] = []
    cancellation: Optional[Dict[str, Any]] = None
    client_rating: Optional[Dict[str, Any]] = None
    driver_rating: Optional[Dict[str, Any]] = None
    documents: List[Dict[str, Any]] = []
    photos: List[Dict[str, Any]] = []
    updated_at: Optional[datetime] = None


class ShipmentResponse(BaseResponse):
    success: bool = True
    shipment: ShipmentDetail


class ShipmentListResponse(BaseResponse):
    success: bool = True
    shipments: List[ShipmentSummary]
    total: int
    page: int
    size: int
    pages: int


class TrackingInfo(BaseModel):
    shipment_id: str
    tracking_number: str
    status: ShipmentStatus
    timeline: List[Dict[str, Any]]
    current_status_info: Optional[Dict[str, Any]] = None
    estimated_transit_time: Optional[int] = None
    client_name: Optional[str] = None
    pickup_location: Dict[str, Optional[str]]
    delivery_location: Dict[str, Optional[str]]


class TrackingResponse(BaseResponse):
    success: bool = True
    shipment: TrackingInfo


class AttachmentsResponse(BaseResponse):
    success: bool = True
    shipment_id: str
    added: List[Dict[str, Any]]
    total: int


class EligibleDriver(BaseModel):
    id: int
    full_name: str
    email: str
    phone: str
    vehicle: Dict[str, Any]
    active_shipments: int


class EligibleDriversResponse(BaseResponse):
    success: bool = True
    drivers: List[EligibleDriver]
    count: int
