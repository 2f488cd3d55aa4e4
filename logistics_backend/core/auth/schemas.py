# logistics_backend/core/auth/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from logistics_backend.shared.domain.enums import IndustryType, PaymentTerms, PrincipalType
from logistics_backend.shared.schemas.common import BaseResponse, PostalAddress


class LoginRequest(BaseModel):
    """Login for any principal type"""
    email: EmailStr
    password: str = Field(..., min_length=1)
    user_type: PrincipalType

    class Config:
        json_schema_extra = {
            "example": {
                "email": "dispatch@acme-logistics.com",
                "password": "Sup3rSecret!",
                "user_type": "admin"
            }
        }


class VehicleInfo(BaseModel):
    type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1950, le=2100)
    plate_number: Optional[str] = None
    color: Optional[str] = None
    capacity_kg: Optional[float] = Field(None, ge=0)


class EmergencyContact(BaseModel):
    name: str
    relationship: Optional[str] = None
    phone: str


class DriverRegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=20)
    password: str = Field(..., min_length=8)
    driver_license_number: str = Field(..., min_length=1, max_length=50)
    license_expiry: date
    date_of_birth: date
    address: PostalAddress
    vehicle: Optional[VehicleInfo] = None
    emergency_contact: Optional[EmergencyContact] = None

    class Config:
        json_schema_extra = {
            "example": {
                "first_name": "Dana",
                "last_name": "Reyes",
                "email": "dana.reyes@example.com",
                "phone": "+15551234567",
                "password": "driverpass1",
                "driver_license_number": "D1234567",
                "license_expiry": "2030-01-01",
                "date_of_birth": "1990-05-20",
                "address": {"street": "1 Main St", "city": "Austin", "state": "TX", "zip_code": "73301"}
            }
        }


class ContactPerson(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    position: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class ClientRegisterRequest(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=100)
    contact_person: ContactPerson
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=20)
    password: str = Field(..., min_length=8)
    business_registration_number: str = Field(..., min_length=1, max_length=50)
    tax_id: str = Field(..., min_length=1, max_length=50)
    industry_type: IndustryType
    business_address: Optional[PostalAddress] = None
    billing_address: Optional[PostalAddress] = None
    payment_terms: PaymentTerms = PaymentTerms.NET_30


# Profile updates carry only self-service fields; anything else in the body
# (email, password, status, role, permissions...) is ignored.

class DriverProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, min_length=7, max_length=20)
    address: Optional[PostalAddress] = None
    vehicle: Optional[VehicleInfo] = None
    emergency_contact: Optional[EmergencyContact] = None

    class Config:
        json_schema_extra = {
            "example": {
                "phone": "+15559876543",
                "vehicle": {"type": "box_truck", "plate_number": "TX-4411", "capacity_kg": 3500}
            }
        }


class ClientProfileUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=100)
    contact_person: Optional[ContactPerson] = None
    phone: Optional[str] = Field(None, min_length=7, max_length=20)
    industry_type: Optional[IndustryType] = None
    business_address: Optional[PostalAddress] = None
    billing_address: Optional[PostalAddress] = None


class AdminProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, min_length=7, max_length=20)


class PrincipalInfo(BaseModel):
    id: int
    email: str
    principal_type: PrincipalType
    name: str
    status: str
    role: str


class TokenResponse(BaseResponse):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    principal: PrincipalInfo


class DriverProfile(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str
    driver_license_number: str
    license_expiry: date
    date_of_birth: date
    address: Dict[str, Any]
    vehicle: Dict[str, Any]
    emergency_contact: Optional[Dict[str, Any]] = None
    status: str
    kyc_status: str
    kyc_documents: Dict[str, Any]
    kyc_completion: int
    is_eligible: bool
    kyc_rejection_reason: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientProfile(BaseModel):
    id: int
    company_name: str
    contact_person: Dict[str, Any]
    email: str
    phone: str
    business_registration_number: str
    tax_id: Optional[str] = None
    industry_type: str
    business_address: Dict[str, Any]
    billing_address: Optional[Dict[str, Any]] = None
    status: str
    verification_status: str
    verification_documents: Dict[str, Any]
    verification_completion: int
    payment_terms: str
    credit_limit: Decimal
    current_balance: Decimal
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminProfile(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: Optional[str] = None
    employee_id: str
    department: str
    position: str
    hire_date: Optional[date] = None
    role: str
    permissions: Dict[str, Any]
    status: str
    last_login: Optional[datetime] = None
    total_logins: int = 0
    total_actions: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MeResponse(BaseResponse):
    success: bool = True
    principal_type: PrincipalType
    profile: Dict[str, Any]


class ProfileUpdateResponse(MeResponse):
    message: str = "Profile updated successfully"


class DocumentUploadResponse(BaseResponse):
    success: bool = True
    documents: Dict[str, Any]
    completion: int
    status: str
