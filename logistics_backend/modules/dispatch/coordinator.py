# logistics_backend/modules/dispatch/coordinator.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from logistics_backend.core.exceptions import IneligibleDriverError, InvalidStateError, NotFoundError
from logistics_backend.modules.identity.repository import IdentityRepository
from logistics_backend.modules.shipments import state_machine
from logistics_backend.modules.shipments.repository import ShipmentRepository
from logistics_backend.shared.database.models import Shipment
from logistics_backend.shared.domain.actors import Actor
from logistics_backend.shared.domain.enums import ShipmentStatus

logger = logging.getLogger(__name__)


class AssignmentCoordinator:
    """Pairs pending shipments with approved, KYC-verified drivers"""

    def __init__(self, db: Session):
        self.db = db
        self.shipments = ShipmentRepository(db)
        self.identities = IdentityRepository(db)

    async def assign_driver(
        self,
        shipment_pk: int,
        driver_id: int,
        actor: Actor,
        now: Optional[datetime] = None
    ) -> Shipment:
        """
        Set the driver and move the shipment to ``assigned`` in one write.

        Nothing is persisted unless every check passes and the commit
        succeeds.
        """
        shipment = self.shipments.get_by_id(shipment_pk)
        if shipment is None:
            raise NotFoundError("Shipment", shipment_pk)

        driver = self.identities.get_driver(driver_id)
        if driver is None:
            raise NotFoundError("Driver", driver_id)

        if not driver.is_eligible:
            logger.warning(
                f"Driver #{driver.id} not eligible for {shipment.shipment_id} "
                f"(status={driver.status}, kyc={driver.kyc_status})"
            )
            raise IneligibleDriverError(
                "Driver is not eligible for assignment. Must be approved with verified KYC.",
                {"driver_status": driver.status, "kyc_status": driver.kyc_status}
            )

        if shipment.status != ShipmentStatus.PENDING.value:
            raise InvalidStateError(f"Only pending shipments can be assigned (current: {shipment.status})")

        try:
            shipment.driver_id = driver.id
            state_machine.transition(
                shipment,
                ShipmentStatus.ASSIGNED,
                actor,
                notes=f"Assigned to driver {driver.full_name}",
                now=now
            )
        except Exception:
            self.shipments.discard()
            raise

        shipment = self.shipments.save(shipment)
        logger.info(f"✅ {shipment.shipment_id} assigned to driver #{driver.id} ({driver.full_name})")
        return shipment

    async def eligible_drivers(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": driver.id,
                "full_name": driver.full_name,
                "email": driver.email,
                "phone": driver.phone,
                "vehicle": driver.vehicle or {},
                "active_shipments": self.identities.count_active_shipments(driver.id),
            }
            for driver in self.identities.list_eligible_drivers()
        ]
