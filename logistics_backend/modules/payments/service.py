# logistics_backend/modules/payments/service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from logistics_backend.config.settings import settings
from logistics_backend.core.exceptions import (
    DuplicatePaymentError, ForbiddenError, NotFoundError, ValidationError
)
from logistics_backend.shared.database.models import Payment
from logistics_backend.shared.domain.actors import (
    Actor, AdminActor, ClientActor, DriverActor, SystemActor
)
from logistics_backend.shared.domain.enums import RefundStatus
from logistics_backend.shared.utils.dates import as_naive_utc, utcnow
from logistics_backend.shared.utils.identifiers import generate_payment_id
from logistics_backend.shared.utils.money import money_str, to_decimal
from . import ledger
from .repository import PaymentRepository
from .schemas import PartialPaymentRequest, PaymentCreate, PaymentStatusUpdate, RefundRequest

logger = logging.getLogger(__name__)


def resolve_terms(explicit: Optional[str], client) -> str:
    """Explicit terms win, then the client's billing terms, then the default"""
    if explicit:
        return explicit
    if client is not None and client.payment_terms:
        return client.payment_terms
    return settings.default_payment_terms


class PaymentService:
    """Payment records for shipments: settlement, refunds and partial payments"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = PaymentRepository(db)

    async def create_payment(
        self,
        data: PaymentCreate,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Payment:
        shipment = self.repository.get_shipment(data.shipment_id)
        if shipment is None:
            raise NotFoundError("Shipment", data.shipment_id)
        if self.repository.get_by_shipment(shipment.id) is not None:
            logger.warning(f"Duplicate payment refused for shipment {shipment.shipment_id}")
            raise DuplicatePaymentError("Payment already exists for this shipment")

        amount = data.amount
        subtotal, tax, discount = to_decimal(amount.subtotal), to_decimal(amount.tax), to_decimal(amount.discount)
        total = to_decimal(amount.total) if amount.total is not None else subtotal + tax - discount
        if total < 0:
            raise ValidationError("Discount cannot exceed subtotal plus tax", "amount.discount")

        payment = Payment(
            payment_id=generate_payment_id(),
            client_id=shipment.client_id,
            shipment_id=shipment.id,
            subtotal=subtotal,
            tax=tax,
            discount=discount,
            total=total,
            currency=amount.currency.value,
            charges=[
                {**charge.model_dump(mode="json"), "amount": money_str(charge.amount)}
                for charge in data.charges
            ],
            payment_method=data.payment_method.model_dump(mode="json") if data.payment_method else {},
            gateway=data.gateway.model_dump(mode="json") if data.gateway else {"provider": "manual"},
            refunds=[],
            partial_payments=[],
            invoice=data.invoice.model_dump(mode="json", exclude_none=True) if data.invoice else {},
            notes=data.notes.model_dump(exclude_none=True) if data.notes else {},
            due_date=as_naive_utc(data.due_date),
            terms=resolve_terms(data.terms.value if data.terms else None, shipment.client),
        )
        ledger.start_timeline(payment, now)

        payment = self.repository.add(payment)
        logger.info(f"Payment {payment.payment_id}: {money_str(total)} {payment.currency} due {payment.due_date:%Y-%m-%d}")
        return payment

    # ==================== QUERIES ====================

    def get_visible_payment(self, payment_pk: int, actor: Actor) -> Payment:
        payment = self.repository.get_by_id(payment_pk)
        if payment is None:
            raise NotFoundError("Payment", payment_pk)
        if isinstance(actor, ClientActor):
            if payment.client_id != actor.id:
                raise NotFoundError("Payment", payment_pk)
        elif isinstance(actor, DriverActor):
            raise ForbiddenError("Drivers cannot access payments")
        elif not isinstance(actor, (AdminActor, SystemActor)):
            raise TypeError(f"Unknown actor: {actor!r}")
        return payment

    async def get_payment(self, payment_pk: int, actor: Actor) -> Payment:
        return self.get_visible_payment(payment_pk, actor)

    async def list_payments(
        self,
        actor: Actor,
        page: int = 1,
        size: int = 20,
        client_id: Optional[int] = None,
        overdue: bool = False,
        now: Optional[datetime] = None,
        **filters
    ) -> Tuple[List[Payment], int]:
        if isinstance(actor, ClientActor):
            client_id = actor.id
        elif isinstance(actor, DriverActor):
            raise ForbiddenError("Drivers cannot access payments")
        elif not isinstance(actor, (AdminActor, SystemActor)):
            raise TypeError(f"Unknown actor: {actor!r}")

        return self.repository.list_payments(
            client_id=client_id,
            overdue_at=(now or utcnow()) if overdue else None,
            skip=(page - 1) * size,
            limit=size,
            **filters
        )

    # ==================== LEDGER MUTATIONS ====================

    async def update_status(
        self,
        payment_pk: int,
        data: PaymentStatusUpdate,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Payment:
        payment = self.get_visible_payment(payment_pk, actor)
        previous = payment.status
        ledger.update_status(
            payment,
            data.status,
            actor,
            notes=data.notes,
            transaction_id=data.transaction_id,
            gateway_response=data.gateway_response,
            now=now
        )
        payment = self.repository.save(payment)
        logger.info(f"Payment {payment.payment_id}: {previous} -> {payment.status}")
        return payment

    async def add_refund(
        self,
        payment_pk: int,
        data: RefundRequest,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Tuple[Payment, Dict[str, Any]]:
        payment = self.get_visible_payment(payment_pk, actor)
        refund = ledger.add_refund(
            payment,
            data.amount,
            data.reason,
            actor,
            refund_method=data.refund_method,
            reason_description=data.reason_description,
            now=now
        )
        payment = self.repository.save(payment)
        logger.info(f"Refund {refund['refund_id']} of {refund['amount']} opened on {payment.payment_id}")
        return payment, refund

    async def update_refund_status(
        self,
        payment_pk: int,
        refund_id: str,
        status: RefundStatus,
        actor: Actor,
        gateway_refund_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Tuple[Payment, Dict[str, Any]]:
        payment = self.get_visible_payment(payment_pk, actor)
        refund = ledger.update_refund_status(
            payment, refund_id, status, actor, gateway_refund_id=gateway_refund_id, now=now
        )
        payment = self.repository.save(payment)
        logger.info(f"Refund {refund_id} on {payment.payment_id} is now {refund['status']} (payment {payment.status})")
        return payment, refund

    async def record_partial_payment(
        self,
        payment_pk: int,
        data: PartialPaymentRequest,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Tuple[Payment, Dict[str, Any]]:
        payment = self.get_visible_payment(payment_pk, actor)
        partial = ledger.record_partial_payment(
            payment, data.amount, data.method, actor, transaction_id=data.transaction_id, now=now
        )
        payment = self.repository.save(payment)
        logger.info(
            f"Partial payment {partial['payment_id']} of {partial['amount']} on {payment.payment_id}, "
            f"remaining {payment.remaining_balance}"
        )
        return payment, partial
