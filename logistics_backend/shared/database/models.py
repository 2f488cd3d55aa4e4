# logistics_backend/shared/database/models.py
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Text, JSON,
    Numeric, ForeignKey, func
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

from logistics_backend.config.settings import settings
from logistics_backend.shared.domain.enums import (
    ShipmentStatus, PaymentStatus, RefundStatus, PartialPaymentStatus,
    DriverStatus, KycStatus, KycDocumentType, BusinessDocumentType,
    INACTIVE_ACCOUNT_STATUSES
)
from logistics_backend.shared.domain.ordered_log import OrderedLog
from logistics_backend.shared.utils.dates import utcnow, iso
from logistics_backend.shared.utils.money import to_decimal

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON on any other dialect (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")

TERMINAL_SHIPMENT_STATUSES = frozenset({
    ShipmentStatus.DELIVERED.value,
    ShipmentStatus.RETURNED.value,
    ShipmentStatus.CANCELLED.value,
})

PAYMENT_STATUS_LABELS = {
    "pending": "Pending Payment",
    "processing": "Processing Payment",
    "completed": "Payment Completed",
    "failed": "Payment Failed",
    "cancelled": "Payment Cancelled",
    "refunded": "Fully Refunded",
    "partially_refunded": "Partially Refunded",
}


# =====================================================
# TIMESTAMP MIXIN
# =====================================================
class TimestampMixin:
    """Adds created_at / updated_at columns"""
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp(), onupdate=func.current_timestamp())


# =====================================================
# IDENTITY STORE
# =====================================================

class Driver(Base, TimestampMixin):
    """Delivery driver"""
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(30), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    driver_license_number = Column(String(50), unique=True, nullable=False)
    license_expiry = Column(Date, nullable=False)
    date_of_birth = Column(Date, nullable=False)

    address = Column(JSONType, nullable=False, default=dict)
    vehicle = Column(JSONType, nullable=False, default=dict)
    emergency_contact = Column(JSONType, default=dict)

    status = Column(String(20), nullable=False, default=DriverStatus.PENDING.value, index=True)
    kyc_status = Column(String(20), nullable=False, default=KycStatus.PENDING.value, index=True)
    kyc_documents = Column(JSONType, nullable=False, default=dict)
    kyc_submitted_at = Column(DateTime)
    kyc_reviewed_at = Column(DateTime)
    kyc_reviewed_by = Column(Integer, ForeignKey("admins.id"))
    kyc_rejection_reason = Column(Text)
    admin_notes = Column(JSONType, nullable=False, default=list)

    last_login = Column(DateTime)

    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    shipments = relationship("Shipment", back_populates="driver")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def kyc_completion(self) -> int:
        documents = self.kyc_documents or {}
        uploaded = sum(
            1 for doc_type in KycDocumentType
            if (documents.get(doc_type.value) or {}).get("url")
        )
        return round(uploaded / len(KycDocumentType) * 100)

    @property
    def is_eligible(self) -> bool:
        return (
            self.status == DriverStatus.APPROVED.value
            and self.kyc_status == KycStatus.APPROVED.value
        )

    @property
    def is_active_account(self) -> bool:
        return self.status not in INACTIVE_ACCOUNT_STATUSES


class Client(Base, TimestampMixin):
    """Shipper company"""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String(100), nullable=False)
    contact_person = Column(JSONType, nullable=False, default=dict)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(30), nullable=False)
    password_hash = Column(String(255), nullable=False)

    business_registration_number = Column(String(50), unique=True, nullable=False)
    tax_id = Column(String(50))
    industry_type = Column(String(50), nullable=False)
    business_address = Column(JSONType, nullable=False, default=dict)
    billing_address = Column(JSONType, default=dict)

    status = Column(String(20), nullable=False, default="pending", index=True)
    verification_documents = Column(JSONType, nullable=False, default=dict)
    verification_status = Column(String(20), nullable=False, default="pending")
    admin_notes = Column(JSONType, nullable=False, default=list)

    payment_terms = Column(String(20), nullable=False, default=settings.default_payment_terms)
    credit_limit = Column(Numeric(12, 2), nullable=False, default=0)
    current_balance = Column(Numeric(12, 2), nullable=False, default=0)

    last_login = Column(DateTime)

    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    shipments = relationship("Shipment", back_populates="client")
    payments = relationship("Payment", back_populates="client")

    @property
    def contact_name(self) -> str:
        contact = self.contact_person or {}
        return f"{contact.get('first_name', '')} {contact.get('last_name', '')}".strip()

    @property
    def verification_completion(self) -> int:
        documents = self.verification_documents or {}
        uploaded = sum(
            1 for doc_type in BusinessDocumentType
            if (documents.get(doc_type.value) or {}).get("url")
        )
        return round(uploaded / len(BusinessDocumentType) * 100)

    @property
    def is_active_account(self) -> bool:
        return self.status not in INACTIVE_ACCOUNT_STATUSES


class Admin(Base, TimestampMixin):
    """Back-office administrator"""
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(30))
    password_hash = Column(String(255), nullable=False)

    employee_id = Column(String(50), unique=True, nullable=False)
    department = Column(String(50), nullable=False)
    position = Column(String(100), nullable=False)
    hire_date = Column(Date)

    role = Column(String(20), nullable=False, default="operator")
    # module -> list of actions
    permissions = Column(JSONType, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="active")

    activity_log = Column(JSONType, nullable=False, default=list)
    active_sessions = Column(JSONType, nullable=False, default=list)

    login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime)
    last_login = Column(DateTime)
    total_logins = Column(Integer, nullable=False, default=0)
    total_actions = Column(Integer, nullable=False, default=0)

    created_by_id = Column(Integer, ForeignKey("admins.id"))

    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"

    @property
    def is_active_account(self) -> bool:
        return self.status not in INACTIVE_ACCOUNT_STATUSES

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        if self.locked_until is None:
            return False
        return self.locked_until > (now or utcnow())

    # ---------- login attempts ----------

    def register_failed_login(self, now: Optional[datetime] = None):
        """Count a failed attempt; lock the account once the limit is reached"""
        now = now or utcnow()
        # an expired lock starts a fresh count
        if self.locked_until is not None and self.locked_until <= now:
            self.locked_until = None
            self.login_attempts = 0

        self.login_attempts = (self.login_attempts or 0) + 1
        if self.login_attempts >= settings.admin_max_login_attempts and not self.is_locked(now):
            self.locked_until = now + timedelta(minutes=settings.admin_lockout_minutes)

    def reset_login_attempts(self):
        self.login_attempts = 0
        self.locked_until = None

    # ---------- sessions ----------

    @property
    def sessions(self) -> OrderedLog:
        return OrderedLog(self.active_sessions, cap=settings.admin_max_sessions)

    def add_session(self, session_id: str, ip_address: Optional[str] = None,
                    user_agent: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        entry = {
            "session_id": session_id,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "login_time": iso(now),
            "last_activity": iso(now),
        }
        log = self.sessions
        log.append(entry)
        self.active_sessions = log.entries()
        self.last_login = now
        self.total_logins = (self.total_logins or 0) + 1
        return entry

    def remove_session(self, session_id: str) -> bool:
        remaining = [s for s in (self.active_sessions or []) if s.get("session_id") != session_id]
        removed = len(remaining) != len(self.active_sessions or [])
        self.active_sessions = remaining
        return removed

    def has_session(self, session_id: str) -> bool:
        return any(s.get("session_id") == session_id for s in (self.active_sessions or []))

    # ---------- activity ----------

    @property
    def activity(self) -> OrderedLog:
        return OrderedLog(self.activity_log, cap=settings.admin_activity_log_limit)

    def log_activity(self, action: str, module: str, target_id: Optional[str] = None,
                     target_type: Optional[str] = None, description: Optional[str] = None,
                     ip_address: Optional[str] = None, user_agent: Optional[str] = None,
                     success: bool = True, error_message: Optional[str] = None,
                     now: Optional[datetime] = None) -> Dict[str, Any]:
        entry = {
            "action": action,
            "module": module,
            "target_id": target_id,
            "target_type": target_type,
            "description": description,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "success": success,
            "error_message": error_message,
            "timestamp": iso(now or utcnow()),
        }
        log = self.activity
        log.append(entry)
        self.activity_log = log.entries()
        self.total_actions = (self.total_actions or 0) + 1
        return entry


# =====================================================
# SHIPMENT LEDGER
# =====================================================

class Shipment(Base, TimestampMixin):
    """Shipment aggregate: manifest, addresses, schedule and audit trail"""
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True)
    shipment_id = Column(String(40), unique=True, nullable=False, index=True)
    tracking_number = Column(String(40), unique=True, nullable=False, index=True)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), index=True)

    description = Column(String(500), nullable=False)
    items = Column(JSONType, nullable=False, default=list)
    total_weight = Column(Numeric(12, 2), nullable=False, default=0)
    total_value = Column(Numeric(14, 2))

    pickup_address = Column(JSONType, nullable=False)
    delivery_address = Column(JSONType, nullable=False)

    service_type = Column(String(20), nullable=False, default="standard")
    priority = Column(String(20), nullable=False, default="medium")

    requested_pickup_date = Column(DateTime, nullable=False)
    requested_delivery_date = Column(DateTime, nullable=False)
    pickup_time_window = Column(JSONType)
    delivery_time_window = Column(JSONType)
    actual_pickup_date = Column(DateTime)
    actual_delivery_date = Column(DateTime)

    pricing = Column(JSONType, default=dict)
    requirements = Column(JSONType, default=dict)

    status = Column(String(30), nullable=False, default=ShipmentStatus.PENDING.value, index=True)
    timeline_entries = Column("timeline", JSONType, nullable=False, default=list)

    issues = Column(JSONType, nullable=False, default=list)
    cancellation = Column(JSONType)
    client_rating = Column(JSONType)
    driver_rating = Column(JSONType)
    documents = Column(JSONType, nullable=False, default=list)
    photos = Column(JSONType, nullable=False, default=list)

    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    client = relationship("Client", back_populates="shipments")
    driver = relationship("Driver", back_populates="shipments")
    payment = relationship("Payment", back_populates="shipment", uselist=False)

    @property
    def timeline(self) -> OrderedLog:
        return OrderedLog(self.timeline_entries)

    def _append_timeline(self, entry: Dict[str, Any]):
        log = self.timeline
        log.append(entry)
        self.timeline_entries = log.entries()
        self.status = entry["status"]

    def _append_to(self, attribute: str, entry: Dict[str, Any]):
        # JSON columns only register a change on reassignment
        setattr(self, attribute, list(getattr(self, attribute) or []) + [entry])

    @property
    def current_status_info(self) -> Optional[Dict[str, Any]]:
        return self.timeline.latest()

    @property
    def estimated_transit_time(self) -> Optional[int]:
        if not self.requested_pickup_date or not self.requested_delivery_date:
            return None
        delta = self.requested_delivery_date - self.requested_pickup_date
        return math.ceil(delta.total_seconds() / 86400)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_SHIPMENT_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return bool((self.cancellation or {}).get("is_cancelled"))


# =====================================================
# PAYMENT LEDGER
# =====================================================

class Payment(Base, TimestampMixin):
    """Payment aggregate for exactly one shipment"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(String(40), unique=True, nullable=False, index=True)
    transaction_id = Column(String(100), unique=True)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    # at most one payment per shipment
    shipment_id = Column(Integer, ForeignKey("shipments.id"), unique=True, nullable=False)

    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    charges = Column(JSONType, nullable=False, default=list)
    payment_method = Column(JSONType, nullable=False, default=dict)
    gateway = Column(JSONType, nullable=False, default=dict)

    status = Column(String(30), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    timeline_entries = Column("timeline", JSONType, nullable=False, default=list)
    refunds = Column(JSONType, nullable=False, default=list)
    partial_payments = Column(JSONType, nullable=False, default=list)

    invoice = Column(JSONType, default=dict)
    notes = Column(JSONType, default=dict)
    due_date = Column(DateTime, nullable=False)
    paid_date = Column(DateTime)
    terms = Column(String(20), nullable=False, default=settings.default_payment_terms)

    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    client = relationship("Client", back_populates="payments")
    shipment = relationship("Shipment", back_populates="payment")

    @property
    def timeline(self) -> OrderedLog:
        return OrderedLog(self.timeline_entries)

    def _append_timeline(self, entry: Dict[str, Any]):
        log = self.timeline
        log.append(entry)
        self.timeline_entries = log.entries()
        self.status = entry["status"]

    @property
    def amount(self) -> Dict[str, Any]:
        return {
            "subtotal": to_decimal(self.subtotal),
            "tax": to_decimal(self.tax),
            "discount": to_decimal(self.discount),
            "total": to_decimal(self.total),
            "currency": self.currency,
        }

    @property
    def total_refunded(self):
        return sum(
            (to_decimal(r["amount"]) for r in (self.refunds or [])
             if r.get("status") == RefundStatus.COMPLETED.value),
            to_decimal(0)
        )

    @property
    def total_paid(self):
        return sum(
            (to_decimal(p["amount"]) for p in (self.partial_payments or [])
             if p.get("status") == PartialPaymentStatus.COMPLETED.value),
            to_decimal(0)
        )

    @property
    def remaining_balance(self):
        if self.status == PaymentStatus.COMPLETED.value:
            return to_decimal(0)
        return to_decimal(self.total) - self.total_paid

    @property
    def status_display(self) -> str:
        return PAYMENT_STATUS_LABELS.get(self.status, self.status)

    def days_overdue_at(self, now: Optional[datetime] = None) -> int:
        if self.status == PaymentStatus.COMPLETED.value or self.due_date is None:
            return 0
        now = now or utcnow()
        if now <= self.due_date:
            return 0
        return math.ceil((now - self.due_date).total_seconds() / 86400)

    @property
    def days_overdue(self) -> int:
        return self.days_overdue_at()

    def find_refund(self, refund_id: str) -> Optional[Dict[str, Any]]:
        for refund in self.refunds or []:
            if refund.get("refund_id") == refund_id:
                return refund
        return None

