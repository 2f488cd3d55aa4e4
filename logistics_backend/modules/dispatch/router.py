# logistics_backend/modules/dispatch/router.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from logistics_backend.config.database import get_db
from logistics_backend.core.activity import log_admin_activity
from logistics_backend.core.auth.dependencies import Principal, require_permission
from logistics_backend.modules.shipments.schemas import (
    AssignDriverRequest, EligibleDriver, EligibleDriversResponse, ShipmentDetail, ShipmentResponse
)
from logistics_backend.shared.domain.enums import ActivityAction, AdminAction, AdminModule
from .coordinator import AssignmentCoordinator

router = APIRouter()


@router.get("/dispatch/eligible-drivers", response_model=EligibleDriversResponse)
async def list_eligible_drivers(
    current_user: Principal = Depends(require_permission(AdminModule.DRIVERS, AdminAction.READ)),
    db: Session = Depends(get_db)
):
    """DS002: Approved drivers with verified KYC, with their open shipment count"""
    coordinator = AssignmentCoordinator(db)
    drivers = await coordinator.eligible_drivers()
    return EligibleDriversResponse(
        drivers=[EligibleDriver(**driver) for driver in drivers],
        count=len(drivers)
    )


@router.put("/{shipment_id}/assign", response_model=ShipmentResponse)
@log_admin_activity(ActivityAction.UPDATE, AdminModule.SHIPMENTS)
async def assign_driver(
    shipment_id: int,
    assignment: AssignDriverRequest,
    request: Request,
    current_user: Principal = Depends(require_permission(AdminModule.SHIPMENTS, AdminAction.UPDATE)),
    db: Session = Depends(get_db)
):
    """
    DS001: Assign a driver to a pending shipment

    **Checks:**
    - Shipment and driver exist
    - Driver is approved with approved KYC
    - Shipment is still pending
    """
    coordinator = AssignmentCoordinator(db)
    shipment = await coordinator.assign_driver(shipment_id, assignment.driver_id, current_user.actor)
    return ShipmentResponse(
        message="Driver assigned successfully",
        shipment=ShipmentDetail.model_validate(shipment)
    )
