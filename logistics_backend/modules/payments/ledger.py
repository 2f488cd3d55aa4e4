# logistics_backend/modules/payments/ledger.py
"""
Payment ledger rules.

Payment status has no adjacency table: an admin may set any of
``UPDATABLE_STATUSES`` at any time. Refund statuses (``refunded`` and
``partially_refunded``) are only ever derived from the completed refunds.
Every precondition is checked before the payment is touched.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from logistics_backend.core.exceptions import (
    InsufficientBalanceError, InvalidStateError, NotFoundError, ValidationError
)
from logistics_backend.shared.database.models import Payment
from logistics_backend.shared.domain.actors import Actor, SYSTEM, actor_stamp
from logistics_backend.shared.domain.enums import (
    PartialPaymentMethod, PartialPaymentStatus, PaymentStatus, RefundMethod, RefundReason, RefundStatus
)
from logistics_backend.shared.utils.dates import iso, utcnow
from logistics_backend.shared.utils.identifiers import generate_partial_payment_id, generate_refund_id
from logistics_backend.shared.utils.money import money_str, to_decimal

P = PaymentStatus

UPDATABLE_STATUSES = frozenset({P.PROCESSING, P.COMPLETED, P.FAILED, P.CANCELLED})
REFUNDABLE_STATUSES = frozenset({P.COMPLETED.value, P.PARTIALLY_REFUNDED.value})
CLOSED_FOR_PARTIALS = frozenset({P.CANCELLED.value, P.REFUNDED.value, P.PARTIALLY_REFUNDED.value})
FINAL_REFUND_STATUSES = frozenset({RefundStatus.COMPLETED.value, RefundStatus.FAILED.value})


def timeline_entry(
    status: PaymentStatus,
    actor: Actor,
    notes: Optional[str] = None,
    amount: Optional[Decimal] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    return {
        "status": PaymentStatus(status).value,
        "timestamp": iso(now or utcnow()),
        "notes": notes,
        "amount": money_str(amount) if amount is not None else None,
        **actor_stamp(actor),
    }


def start_timeline(payment: Payment, now: Optional[datetime] = None) -> Dict[str, Any]:
    entry = timeline_entry(P.PENDING, SYSTEM, "Payment record created", now=now)
    payment.timeline_entries = []
    payment._append_timeline(entry)
    return entry


def _append_status(payment: Payment, status: PaymentStatus, actor: Actor, notes: Optional[str],
                   amount: Optional[Decimal], now: datetime) -> Dict[str, Any]:
    entry = timeline_entry(status, actor, notes, amount, now)
    payment._append_timeline(entry)
    if status == P.COMPLETED:
        payment.paid_date = now
    return entry


def update_status(
    payment: Payment,
    new_status,
    actor: Actor,
    notes: Optional[str] = None,
    transaction_id: Optional[str] = None,
    gateway_response: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Administrative status change; ``completed`` stamps ``paid_date``"""
    try:
        status = PaymentStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown payment status: {new_status}", "status")
    if status not in UPDATABLE_STATUSES:
        allowed = ", ".join(sorted(s.value for s in UPDATABLE_STATUSES))
        raise ValidationError(f"Payment status can only be set to one of: {allowed}", "status")

    entry = _append_status(payment, status, actor, notes, None, now or utcnow())

    if transaction_id:
        payment.transaction_id = transaction_id
    if gateway_response:
        payment.gateway = {**(payment.gateway or {}), "gateway_response": gateway_response}
    return entry


def recompute_refund_status(payment: Payment, actor: Actor, now: Optional[datetime] = None) -> bool:
    """
    Derive refunded / partially_refunded from completed refunds.

    Returns True when the status changed (a timeline entry was appended).
    """
    refunded = payment.total_refunded
    if refunded <= 0:
        return False

    if refunded >= to_decimal(payment.total):
        status = P.REFUNDED
        notes = f"Fully refunded: ${refunded}"
    else:
        status = P.PARTIALLY_REFUNDED
        notes = f"Partially refunded: ${refunded}"

    if payment.status == status.value:
        return False
    _append_status(payment, status, actor, notes, refunded, now or utcnow())
    return True


def add_refund(
    payment: Payment,
    amount,
    reason,
    actor: Actor,
    refund_method=RefundMethod.ORIGINAL_METHOD,
    reason_description: Optional[str] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Append a pending refund against a settled payment"""
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Refund amount must be greater than zero", "amount")
    if payment.status not in REFUNDABLE_STATUSES:
        raise InvalidStateError("Can only refund completed payments")

    available = to_decimal(payment.total) - payment.total_refunded
    if amount > available:
        raise InsufficientBalanceError(
            "Refund amount exceeds available balance",
            {"requested": money_str(amount), "available": money_str(available)}
        )

    now = now or utcnow()
    refund = {
        "refund_id": generate_refund_id(),
        "amount": money_str(amount),
        "reason": RefundReason(reason).value,
        "reason_description": reason_description,
        "refund_date": iso(now),
        "refund_method": RefundMethod(refund_method).value,
        "status": RefundStatus.PENDING.value,
        "gateway_refund_id": None,
        "processed_by": actor.id,
    }
    payment.refunds = list(payment.refunds or []) + [refund]
    recompute_refund_status(payment, actor, now)
    return refund


def update_refund_status(
    payment: Payment,
    refund_id: str,
    new_status,
    actor: Actor,
    gateway_refund_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Move a refund to processing, completed or failed.

    Completing a refund re-checks that completed refunds stay within the
    payment total and recomputes the payment status.
    """
    try:
        status = RefundStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown refund status: {new_status}", "status")

    refund = payment.find_refund(refund_id)
    if refund is None:
        raise NotFoundError("Refund", refund_id)
    if refund["status"] in FINAL_REFUND_STATUSES:
        raise InvalidStateError(f"Refund {refund_id} is already {refund['status']}")
    if status == RefundStatus.PENDING:
        raise ValidationError("A refund cannot be moved back to pending", "status")

    if status == RefundStatus.COMPLETED:
        completed = payment.total_refunded + to_decimal(refund["amount"])
        if completed > to_decimal(payment.total):
            raise InsufficientBalanceError(
                "Completed refunds would exceed the payment total",
                {"refunded": money_str(payment.total_refunded), "requested": refund["amount"]}
            )

    updated = {**refund, "status": status.value}
    if gateway_refund_id:
        updated["gateway_refund_id"] = gateway_refund_id
    payment.refunds = [updated if r.get("refund_id") == refund_id else r for r in payment.refunds]

    recompute_refund_status(payment, actor, now)
    return updated


def record_partial_payment(
    payment: Payment,
    amount,
    method,
    actor: Actor,
    transaction_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Append a completed partial payment; the last one completes the payment"""
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero", "amount")
    if payment.status in CLOSED_FOR_PARTIALS:
        raise InvalidStateError(f"Cannot record partial payments on a {payment.status} payment")

    remaining = payment.remaining_balance
    if amount > remaining:
        raise InsufficientBalanceError(
            "Payment amount exceeds remaining balance",
            {"requested": money_str(amount), "remaining": money_str(remaining)}
        )

    now = now or utcnow()
    partial = {
        "payment_id": generate_partial_payment_id(),
        "amount": money_str(amount),
        "paid_date": iso(now),
        "method": PartialPaymentMethod(method).value,
        "transaction_id": transaction_id,
        "status": PartialPaymentStatus.COMPLETED.value,
    }
    payment.partial_payments = list(payment.partial_payments or []) + [partial]

    if remaining - amount <= 0:
        _append_status(payment, P.COMPLETED, actor, "Payment completed with partial payments", None, now)
    else:
        _append_status(payment, P.PROCESSING, actor, f"Partial payment received: ${amount}", amount, now)
    return partial
