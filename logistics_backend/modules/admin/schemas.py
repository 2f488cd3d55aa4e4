# logistics_backend/modules/admin/schemas.py
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from logistics_backend.core.auth.schemas import AdminProfile, ClientProfile, DriverProfile
from logistics_backend.shared.domain.enums import (
    AdminAction, AdminModule, Department, KycDocumentType, VerificationStatus
)
from logistics_backend.shared.schemas.common import BaseResponse


class CreatableAdminRole(str, Enum):
    """Roles a super admin can hand out"""
    ADMIN = "admin"
    MANAGER = "manager"
    OPERATOR = "operator"


class DriverDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class KycDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ClientDecision(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


# ==================== ADMIN USERS ====================

class AdminCreate(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=20)
    password: str = Field(..., min_length=8)
    role: CreatableAdminRole
    department: Department
    position: str = Field(..., min_length=1, max_length=100)
    employee_id: str = Field(..., min_length=1, max_length=50)
    hire_date: Optional[date] = None
    permissions: Dict[AdminModule, List[AdminAction]] = {}

    class Config:
        json_schema_extra = {
            "example": {
                "first_name": "Sam",
                "last_name": "Okafor",
                "email": "sam.okafor@acme-logistics.com",
                "phone": "+15557654321",
                "password": "dispatch123",
                "role": "operator",
                "department": "Operations",
                "position": "Dispatcher",
                "employee_id": "EMP-0042",
                "permissions": {"shipments": ["read", "update"], "drivers": ["read"]}
            }
        }


class AdminCreatedResponse(BaseResponse):
    success: bool = True
    admin: AdminProfile


# ==================== DRIVERS ====================

class DriverStatusUpdate(BaseModel):
    status: DriverDecision
    reason: Optional[str] = Field(None, max_length=500)


class DocumentVerification(BaseModel):
    document_type: KycDocumentType
    verified: bool


class KycReview(BaseModel):
    kyc_status: KycDecision
    document_verifications: List[DocumentVerification] = []
    notes: Optional[str] = Field(None, max_length=500)


class DriverAdminDetail(DriverProfile):
    admin_notes: List[Dict[str, Any]] = []
    kyc_submitted_at: Optional[datetime] = None
    kyc_reviewed_at: Optional[datetime] = None
    kyc_reviewed_by: Optional[int] = None


class DriverResponse(BaseResponse):
    success: bool = True
    driver: DriverAdminDetail
    shipment_stats: Optional[Dict[str, int]] = None


class DriverListResponse(BaseResponse):
    success: bool = True
    drivers: List[DriverAdminDetail]
    total: int
    page: int
    size: int
    pages: int


# ==================== CLIENTS ====================

class ClientStatusUpdate(BaseModel):
    status: ClientDecision
    reason: Optional[str] = Field(None, max_length=500)
    verification_status: Optional[VerificationStatus] = None


class ClientAdminDetail(ClientProfile):
    admin_notes: List[Dict[str, Any]] = []


class ClientResponse(BaseResponse):
    success: bool = True
    client: ClientAdminDetail
    shipment_stats: Optional[Dict[str, int]] = None


class ClientListResponse(BaseResponse):
    success: bool = True
    clients: List[ClientAdminDetail]
    total: int
    page: int
    size: int
    pages: int


# ==================== ACTIVITY ====================

class ActivityEntry(BaseModel):
    action: str
    module: str
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    description: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool = True
    error_message: Optional[str] = None
    timestamp: Optional[str] = None


class ActivityLogResponse(BaseResponse):
    success: bool = True
    activities: List[ActivityEntry]
    total: int
    page: int
    size: int
    pages: int
