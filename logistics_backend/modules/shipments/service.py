# logistics_backend/modules/shipments/service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.orm import Session

from logistics_backend.config.settings import settings
from logistics_backend.core.exceptions import (
    ForbiddenError, InvalidStateError, InvalidTransitionError, NotFoundError, ValidationError
)
from logistics_backend.shared.database.models import Shipment
from logistics_backend.shared.domain.actors import (
    Actor, AdminActor, ClientActor, DriverActor, SystemActor, actor_stamp
)
from logistics_backend.shared.domain.enums import (
    ShipmentDocumentType, ShipmentPhotoType, ShipmentStatus
)
from logistics_backend.shared.services.storage_service import StorageService, read_upload
from logistics_backend.shared.utils.dates import as_naive_utc, iso, utcnow
from logistics_backend.shared.utils.identifiers import generate_shipment_id, generate_tracking_number
from logistics_backend.shared.utils.money import money_str, to_decimal
from . import state_machine
from .repository import ShipmentRepository
from .schemas import CancelRequest, IssueReport, RatingRequest, ShipmentCreate, StatusUpdate

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 500
MIN_ITEM_WEIGHT = Decimal("0.1")
MAX_PHOTO_DESCRIPTION = 200


def validate_manifest(data: ShipmentCreate, now: datetime):
    """Raise ValidationError for the first manifest or schedule problem found"""
    description = (data.description or "").strip()
    if not MIN_DESCRIPTION_LENGTH <= len(description) <= MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be between {MIN_DESCRIPTION_LENGTH} and {MAX_DESCRIPTION_LENGTH} characters",
            "description"
        )

    if not data.items:
        raise ValidationError("At least one item is required", "items")

    for index, item in enumerate(data.items):
        if item.quantity < 1:
            raise ValidationError(f"Item {index + 1} quantity must be at least 1", f"items[{index}].quantity")
        if to_decimal(item.weight) < MIN_ITEM_WEIGHT:
            raise ValidationError(f"Item {index + 1} weight must be at least 0.1 kg", f"items[{index}].weight")
        if item.value is not None and item.value.amount < 0:
            raise ValidationError(f"Item {index + 1} value cannot be negative", f"items[{index}].value")

    pickup = as_naive_utc(data.requested_pickup_date)
    delivery = as_naive_utc(data.requested_delivery_date)
    if pickup < now:
        raise ValidationError("Pickup date cannot be in the past", "requested_pickup_date")
    if delivery <= pickup:
        raise ValidationError("Delivery date must be after pickup date", "requested_delivery_date")


def manifest_totals(data: ShipmentCreate) -> Tuple[Decimal, Decimal]:
    total_weight = sum(
        (to_decimal(item.weight) * item.quantity for item in data.items), Decimal("0")
    )
    total_value = sum(
        (to_decimal(item.value.amount) * item.quantity for item in data.items if item.value is not None),
        Decimal("0")
    )
    return to_decimal(total_weight), to_decimal(total_value)


def can_view(shipment: Shipment, actor: Actor) -> bool:
    """Drivers see their assigned shipments, clients their own, admins everything"""
    if isinstance(actor, DriverActor):
        return shipment.driver_id == actor.id
    if isinstance(actor, ClientActor):
        return shipment.client_id == actor.id
    if isinstance(actor, (AdminActor, SystemActor)):
        return True
    raise TypeError(f"Unknown actor: {actor!r}")


class ShipmentService:
    """Shipment lifecycle: creation, status transitions and auxiliary records"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = ShipmentRepository(db)

    # ==================== CREATION ====================

    async def create_shipment(
        self,
        data: ShipmentCreate,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Shipment:
        now = now or utcnow()

        if isinstance(actor, ClientActor):
            client_id = actor.id
        elif isinstance(actor, (AdminActor, SystemActor)):
            if data.client_id is None:
                raise ValidationError("Client ID is required when creating a shipment for a client", "client_id")
            client_id = data.client_id
        elif isinstance(actor, DriverActor):
            raise ForbiddenError("Drivers cannot create shipments")
        else:
            raise TypeError(f"Unknown actor: {actor!r}")

        if self.repository.get_client(client_id) is None:
            raise NotFoundError("Client", client_id)

        validate_manifest(data, now)
        total_weight, total_value = manifest_totals(data)

        shipment = Shipment(
            shipment_id=generate_shipment_id(),
            tracking_number=generate_tracking_number(),
            client_id=client_id,
            description=data.description.strip(),
            items=[item.model_dump(mode="json", exclude_none=True) for item in data.items],
            total_weight=total_weight,
            total_value=total_value,
            pickup_address=data.pickup_address.model_dump(mode="json", exclude_none=True),
            delivery_address=data.delivery_address.model_dump(mode="json", exclude_none=True),
            service_type=data.service_type.value,
            priority=data.priority.value,
            requested_pickup_date=as_naive_utc(data.requested_pickup_date),
            requested_delivery_date=as_naive_utc(data.requested_delivery_date),
            pickup_time_window=data.pickup_time_window.model_dump() if data.pickup_time_window else None,
            delivery_time_window=data.delivery_time_window.model_dump() if data.delivery_time_window else None,
            pricing=data.pricing.model_dump(mode="json", exclude_none=True) if data.pricing else {},
            requirements=data.requirements.model_dump(mode="json") if data.requirements else {},
            issues=[],
            documents=[],
            photos=[],
        )
        state_machine.start_timeline(shipment, now)

        shipment = self.repository.add(shipment)
        logger.info(f"Shipment {shipment.shipment_id} requested for client #{client_id}: {total_weight} kg")
        return shipment

    # ==================== QUERIES ====================

    def get_visible_shipment(self, shipment_pk: int, actor: Actor) -> Shipment:
        """Load a shipment the actor may see; anything else is reported as missing"""
        shipment = self.repository.get_by_id(shipment_pk)
        if shipment is None or not can_view(shipment, actor):
            raise NotFoundError("Shipment", shipment_pk)
        return shipment

    async def get_shipment(self, shipment_pk: int, actor: Actor) -> Shipment:
        return self.get_visible_shipment(shipment_pk, actor)

    async def list_shipments(
        self,
        actor: Actor,
        page: int = 1,
        size: int = 20,
        **filters
    ) -> Tuple[List[Shipment], int]:
        if isinstance(actor, DriverActor):
            filters["driver_id"] = actor.id
        elif isinstance(actor, ClientActor):
            filters["client_id"] = actor.id
        elif not isinstance(actor, (AdminActor, SystemActor)):
            raise TypeError(f"Unknown actor: {actor!r}")

        return self.repository.list_shipments(skip=(page - 1) * size, limit=size, **filters)

    async def track(self, tracking_number: str) -> Dict[str, Any]:
        """Public snapshot: status, timeline and city-level locations only"""
        shipment = self.repository.get_by_tracking_number(tracking_number.strip())
        if shipment is None:
            raise NotFoundError("Shipment", tracking_number)

        return {
            "shipment_id": shipment.shipment_id,
            "tracking_number": shipment.tracking_number,
            "status": shipment.status,
            "timeline": shipment.timeline.entries(),
            "current_status_info": shipment.current_status_info,
            "estimated_transit_time": shipment.estimated_transit_time,
            "client_name": shipment.client.company_name if shipment.client else None,
            "pickup_location": _city_of(shipment.pickup_address),
            "delivery_location": _city_of(shipment.delivery_address),
        }

    # ==================== STATUS ====================

    async def update_status(
        self,
        shipment_pk: int,
        data: StatusUpdate,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Shipment:
        """
        Status transition requested by a driver or an admin.

        Drivers can only move shipments assigned to them. Moving to
        ``assigned`` needs a driver on the shipment, which only the dispatch
        assignment sets.
        """
        if isinstance(actor, ClientActor):
            raise ForbiddenError("Clients cannot change shipment status")
        if not isinstance(actor, (DriverActor, AdminActor, SystemActor)):
            raise TypeError(f"Unknown actor: {actor!r}")

        shipment = self.get_visible_shipment(shipment_pk, actor)

        if data.status == ShipmentStatus.ASSIGNED and shipment.driver_id is None:
            raise InvalidStateError("A driver must be assigned through dispatch before moving to assigned")

        previous = shipment.status
        state_machine.transition(
            shipment,
            data.status,
            actor,
            notes=data.notes,
            location=data.location.model_dump(mode="json", exclude_none=True) if data.location else None,
            now=now
        )

        shipment = self.repository.save(shipment)
        logger.info(f"Shipment {shipment.shipment_id}: {previous} -> {shipment.status} by {actor.role}")
        return shipment

    async def cancel(
        self,
        shipment_pk: int,
        data: CancelRequest,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Shipment:
        if isinstance(actor, DriverActor):
            raise ForbiddenError("Drivers cannot cancel shipments")

        now = now or utcnow()
        shipment = self.get_visible_shipment(shipment_pk, actor)

        try:
            state_machine.transition(shipment, ShipmentStatus.CANCELLED, actor, notes=data.reason, now=now)
        except InvalidTransitionError:
            logger.warning(f"Cancel refused for {shipment.shipment_id} in status {shipment.status}")
            raise

        stamp = actor_stamp(actor)
        shipment.cancellation = {
            "is_cancelled": True,
            "reason": data.reason,
            "cancelled_by": stamp["updated_by"],
            "cancelled_by_id": stamp["updated_by_id"],
            "cancelled_at": iso(now),
            "refund_amount": money_str(data.refund_amount) if data.refund_amount is not None else None,
        }

        shipment = self.repository.save(shipment)
        logger.info(f"Shipment {shipment.shipment_id} cancelled by {actor.role}")
        return shipment

    # ==================== AUXILIARY RECORDS ====================

    async def report_issue(
        self,
        shipment_pk: int,
        data: IssueReport,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Shipment:
        shipment = self.get_visible_shipment(shipment_pk, actor)
        stamp = actor_stamp(actor)
        shipment._append_to("issues", {
            "type": data.type.value,
            "description": data.description,
            "reported_by": stamp["updated_by"],
            "reported_by_id": stamp["updated_by_id"],
            "reported_at": iso(now or utcnow()),
            "resolved": False,
        })
        shipment = self.repository.save(shipment)
        logger.warning(f"Issue '{data.type.value}' reported on {shipment.shipment_id} by {actor.role}")
        return shipment

    async def rate(
        self,
        shipment_pk: int,
        data: RatingRequest,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Shipment:
        """Clients rate the service, drivers rate the client; each slot once, after delivery"""
        if isinstance(actor, ClientActor):
            slot = "client_rating"
        elif isinstance(actor, DriverActor):
            slot = "driver_rating"
        elif isinstance(actor, (AdminActor, SystemActor)):
            raise ForbiddenError("Only the client or the assigned driver can rate a shipment")
        else:
            raise TypeError(f"Unknown actor: {actor!r}")

        if not 1 <= data.rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", "rating")

        shipment = self.get_visible_shipment(shipment_pk, actor)
        if shipment.status != ShipmentStatus.DELIVERED.value:
            raise InvalidStateError("Only delivered shipments can be rated")
        if getattr(shipment, slot):
            raise InvalidStateError("Shipment has already been rated")

        setattr(shipment, slot, {
            "rating": data.rating,
            "feedback": data.feedback,
            "date": iso(now or utcnow()),
        })
        return self.repository.save(shipment)

    async def upload_documents(
        self,
        shipment_pk: int,
        document_type: ShipmentDocumentType,
        files: List[UploadFile],
        actor: Actor,
        storage: StorageService,
        now: Optional[datetime] = None
    ) -> Tuple[Shipment, List[Dict[str, Any]]]:
        if isinstance(actor, ClientActor):
            raise ForbiddenError("Clients cannot upload shipment documents")
        if not files:
            raise ValidationError("No files uploaded", "files")

        now = now or utcnow()
        shipment = self.get_visible_shipment(shipment_pk, actor)
        stamp = actor_stamp(actor)

        contents = [await read_upload(upload, settings.allowed_document_formats, "files") for upload in files]

        added = []
        for upload, content in zip(files, contents):
            url = await storage.upload(
                content,
                folder=f"shipments/{shipment.shipment_id}/documents",
                filename=upload.filename or document_type.value,
                content_type=upload.content_type,
                metadata={"shipment_id": shipment.shipment_id, "document_type": document_type.value}
            )
            added.append({
                "type": document_type.value,
                "name": upload.filename,
                "url": url,
                "upload_date": iso(now),
                "uploaded_by": stamp["updated_by"],
                "uploaded_by_id": stamp["updated_by_id"],
            })

        shipment.documents = list(shipment.documents or []) + added
        shipment = self.repository.save(shipment)
        logger.info(f"{len(added)} document(s) attached to {shipment.shipment_id}")
        return shipment, added

    async def upload_photos(
        self,
        shipment_pk: int,
        photo_type: ShipmentPhotoType,
        files: List[UploadFile],
        actor: Actor,
        storage: StorageService,
        description: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> Tuple[Shipment, List[Dict[str, Any]]]:
        if not isinstance(actor, DriverActor):
            raise ForbiddenError("Only the assigned driver can upload shipment photos")
        if not files:
            raise ValidationError("No files uploaded", "files")
        if description and len(description) > MAX_PHOTO_DESCRIPTION:
            raise ValidationError(
                f"Photo description must not exceed {MAX_PHOTO_DESCRIPTION} characters", "description"
            )

        now = now or utcnow()
        shipment = self.get_visible_shipment(shipment_pk, actor)
        location = None
        if latitude is not None and longitude is not None:
            location = {"latitude": latitude, "longitude": longitude}

        contents = [await read_upload(upload, settings.allowed_image_formats, "files") for upload in files]

        added = []
        for upload, content in zip(files, contents):
            url = await storage.upload(
                content,
                folder=f"shipments/{shipment.shipment_id}/photos",
                filename=upload.filename or photo_type.value,
                content_type=upload.content_type,
                metadata={"shipment_id": shipment.shipment_id, "photo_type": photo_type.value}
            )
            added.append({
                "type": photo_type.value,
                "url": url,
                "description": description,
                "timestamp": iso(now),
                "location": location,
                "taken_by": actor.role,
                "taken_by_id": actor.id,
            })

        shipment.photos = list(shipment.photos or []) + added
        shipment = self.repository.save(shipment)
        logger.info(f"📤 {len(added)} {photo_type.value} photo(s) attached to {shipment.shipment_id}")
        return shipment, added


def _city_of(address: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    address = address or {}
    return {"city": address.get("city"), "state": address.get("state")}
