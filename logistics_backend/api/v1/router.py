# logistics_backend/api/v1/router.py
from fastapi import APIRouter

from logistics_backend.api.v1.auth import router as auth_router
from logistics_backend.modules.admin import router as admin_router
from logistics_backend.modules.dispatch import router as dispatch_router
from logistics_backend.modules.payments import router as payments_router
from logistics_backend.modules.shipments import router as shipments_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

# dispatch goes first so /shipments/dispatch/... is not captured by /shipments/{shipment_id}
api_router.include_router(
    dispatch_router,
    prefix="/shipments",
    tags=["Dispatch"]
)

api_router.include_router(
    shipments_router,
    prefix="/shipments",
    tags=["Shipments"]
)

api_router.include_router(
    payments_router,
    prefix="/payments",
    tags=["Payments"]
)

api_router.include_router(
    admin_router,
    prefix="/admin",
    tags=["Admin"]
)
