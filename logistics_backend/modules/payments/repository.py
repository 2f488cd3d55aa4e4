# logistics_backend/modules/payments/repository.py
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from logistics_backend.core.exceptions import ConflictError, DuplicatePaymentError
from logistics_backend.shared.database.models import Payment, Shipment
from logistics_backend.shared.database.persistence import commit_changes
from logistics_backend.shared.domain.enums import PaymentStatus

logger = logging.getLogger(__name__)


class PaymentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, payment_pk: int) -> Optional[Payment]:
        return self.db.get(Payment, payment_pk)

    def get_by_shipment(self, shipment_pk: int) -> Optional[Payment]:
        return self.db.query(Payment).filter(Payment.shipment_id == shipment_pk).first()

    def get_shipment(self, shipment_pk: int) -> Optional[Shipment]:
        return self.db.get(Shipment, shipment_pk)

    def list_payments(
        self,
        client_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        overdue_at: Optional[datetime] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Payment], int]:
        query = self.db.query(Payment)

        if client_id is not None:
            query = query.filter(Payment.client_id == client_id)
        if status:
            query = query.filter(Payment.status == status)
        if start_date:
            query = query.filter(Payment.created_at >= start_date)
        if end_date:
            query = query.filter(Payment.created_at <= end_date)
        if overdue_at is not None:
            query = query.filter(
                Payment.due_date < overdue_at,
                Payment.status != PaymentStatus.COMPLETED.value
            )
        if search:
            query = query.filter(func.upper(Payment.payment_id).like(f"%{search.upper()}%"))

        total = query.count()
        payments = (
            query.order_by(Payment.created_at.desc(), Payment.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return payments, total

    def add(self, payment: Payment) -> Payment:
        """Insert a payment; losing the one-per-shipment race raises DuplicatePaymentError"""
        shipment_pk = payment.shipment_id

        def integrity_error(e):
            if self.get_by_shipment(shipment_pk) is not None:
                return DuplicatePaymentError("Payment already exists for this shipment")
            return ConflictError("Payment identifiers collided, retry the request")

        self.db.add(payment)
        commit_changes(self.db, "Payment", integrity_error)
        self.db.refresh(payment)
        logger.info(f"✅ Payment {payment.payment_id} created for shipment #{shipment_pk}")
        return payment

    def save(self, payment: Payment) -> Payment:
        commit_changes(
            self.db, "Payment",
            lambda e: ConflictError("Transaction ID is already recorded on another payment")
        )
        self.db.refresh(payment)
        return payment
