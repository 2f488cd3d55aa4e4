# logistics_backend/shared/domain/enums.py
from enum import Enum


# =====================================================
# SHIPMENTS
# =====================================================

class ShipmentStatus(str, Enum):
    """Shipment lifecycle states"""
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED = "picked"
    PACKED = "packed"
    PROCESSING = "processing"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    FAILED = "failed"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class ItemCategory(str, Enum):
    ELECTRONICS = "Electronics"
    CLOTHING = "Clothing"
    FOOD = "Food"
    DOCUMENTS = "Documents"
    MACHINERY = "Machinery"
    CHEMICALS = "Chemicals"
    OTHER = "Other"


class DimensionUnit(str, Enum):
    CM = "cm"
    INCH = "inch"


class ServiceType(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    SAME_DAY = "same_day"


class ShipmentPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class IssueType(str, Enum):
    DELAY = "delay"
    DAMAGE = "damage"
    LOST = "lost"
    WRONG_ADDRESS = "wrong_address"
    RECIPIENT_UNAVAILABLE = "recipient_unavailable"
    WEATHER = "weather"
    VEHICLE_BREAKDOWN = "vehicle_breakdown"
    OTHER = "other"


class ShipmentDocumentType(str, Enum):
    PICKUP_RECEIPT = "pickup_receipt"
    DELIVERY_RECEIPT = "delivery_receipt"
    INVOICE = "invoice"
    INSURANCE = "insurance"
    CUSTOMS = "customs"
    OTHER = "other"


class ShipmentPhotoType(str, Enum):
    PICKUP_PROOF = "pickup_proof"
    DELIVERY_PROOF = "delivery_proof"
    DAMAGE = "damage"
    PACKAGE_CONDITION = "package_condition"
    OTHER = "other"


# =====================================================
# PAYMENTS
# =====================================================

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"


class ChargeType(str, Enum):
    BASE_RATE = "base_rate"
    DISTANCE = "distance"
    WEIGHT = "weight"
    URGENCY = "urgency"
    SPECIAL_HANDLING = "special_handling"
    FUEL_SURCHARGE = "fuel_surcharge"
    INSURANCE = "insurance"
    OTHER = "other"


class PaymentMethodType(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    CASH = "cash"
    CHECK = "check"
    ACCOUNT_CREDIT = "account_credit"


class PartialPaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    CASH = "cash"
    CHECK = "check"


class PartialPaymentStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class GatewayProvider(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    SQUARE = "square"
    AUTHORIZE_NET = "authorize_net"
    MANUAL = "manual"


class PaymentTerms(str, Enum):
    IMMEDIATE = "immediate"
    NET_15 = "net_15"
    NET_30 = "net_30"
    NET_45 = "net_45"
    NET_60 = "net_60"


class RefundReason(str, Enum):
    CANCELLED_SHIPMENT = "cancelled_shipment"
    SERVICE_ISSUE = "service_issue"
    OVERCHARGE = "overcharge"
    DUPLICATE_PAYMENT = "duplicate_payment"
    CLIENT_REQUEST = "client_request"
    OTHER = "other"


class RefundMethod(str, Enum):
    ORIGINAL_METHOD = "original_method"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    ACCOUNT_CREDIT = "account_credit"


class RefundStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# =====================================================
# IDENTITY
# =====================================================

class PrincipalType(str, Enum):
    DRIVER = "driver"
    CLIENT = "client"
    ADMIN = "admin"


class DriverStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class KycStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class KycDocumentType(str, Enum):
    PROFILE_PHOTO = "profile_photo"
    LICENSE_PHOTO = "license_photo"
    NATIONAL_ID = "national_id"
    PROOF_OF_ADDRESS = "proof_of_address"


class ClientStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class BusinessDocumentType(str, Enum):
    BUSINESS_LICENSE = "business_license"
    TAX_CERTIFICATE = "tax_certificate"


class IndustryType(str, Enum):
    MANUFACTURING = "Manufacturing"
    RETAIL = "Retail"
    E_COMMERCE = "E-commerce"
    HEALTHCARE = "Healthcare"
    FOOD_AND_BEVERAGE = "Food & Beverage"
    AUTOMOTIVE = "Automotive"
    ELECTRONICS = "Electronics"
    OTHER = "Other"


class AdminRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    OPERATOR = "operator"


class AdminStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class Department(str, Enum):
    OPERATIONS = "Operations"
    CUSTOMER_SERVICE = "Customer Service"
    FINANCE = "Finance"
    IT = "IT"
    MANAGEMENT = "Management"
    HR = "HR"


class AdminModule(str, Enum):
    DRIVERS = "drivers"
    CLIENTS = "clients"
    SHIPMENTS = "shipments"
    PAYMENTS = "payments"
    REPORTS = "reports"
    SETTINGS = "settings"
    USERS = "users"


class AdminAction(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"


class ActivityAction(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    VIEW = "view"
    EXPORT = "export"


# Statuses that block authentication for any principal type
INACTIVE_ACCOUNT_STATUSES = frozenset({"suspended", "inactive", "terminated"})
