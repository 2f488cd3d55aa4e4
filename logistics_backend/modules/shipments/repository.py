# logistics_backend/modules/shipments/repository.py
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from logistics_backend.core.exceptions import ConflictError
from logistics_backend.shared.database.models import Client, Driver, Shipment
from logistics_backend.shared.database.persistence import commit_changes

logger = logging.getLogger(__name__)


class ShipmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, shipment_id: int) -> Optional[Shipment]:
        return self.db.get(Shipment, shipment_id)

    def get_by_tracking_number(self, tracking_number: str) -> Optional[Shipment]:
        return self.db.query(Shipment).filter(
            func.upper(Shipment.tracking_number) == tracking_number.upper()
        ).first()

    def get_client(self, client_id: int) -> Optional[Client]:
        return self.db.get(Client, client_id)

    def get_driver(self, driver_id: int) -> Optional[Driver]:
        return self.db.get(Driver, driver_id)

    def list_shipments(
        self,
        client_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        service_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Shipment], int]:
        """Filtered page of shipments, newest first, with the unpaged total"""
        query = self.db.query(Shipment)

        if client_id is not None:
            query = query.filter(Shipment.client_id == client_id)
        if driver_id is not None:
            query = query.filter(Shipment.driver_id == driver_id)
        if status:
            query = query.filter(Shipment.status == status)
        if priority:
            query = query.filter(Shipment.priority == priority)
        if service_type:
            query = query.filter(Shipment.service_type == service_type)
        if start_date:
            query = query.filter(Shipment.created_at >= start_date)
        if end_date:
            query = query.filter(Shipment.created_at <= end_date)
        if search:
            pattern = f"%{search.upper()}%"
            query = query.filter(or_(
                func.upper(Shipment.tracking_number).like(pattern),
                func.upper(Shipment.shipment_id).like(pattern)
            ))

        total = query.count()
        shipments = (
            query.order_by(Shipment.created_at.desc(), Shipment.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return shipments, total

    def add(self, shipment: Shipment) -> Shipment:
        self.db.add(shipment)
        commit_changes(
            self.db, "Shipment",
            lambda e: ConflictError("Shipment identifiers collided, retry the request")
        )
        self.db.refresh(shipment)
        logger.info(f"✅ Shipment {shipment.shipment_id} created ({shipment.tracking_number})")
        return shipment

    def save(self, shipment: Shipment) -> Shipment:
        """Commit pending changes; a stale version raises ConcurrentModificationError"""
        commit_changes(self.db, "Shipment")
        self.db.refresh(shipment)
        return shipment

    def discard(self):
        self.db.rollback()
