# logistics_backend/core/activity.py
import logging
from functools import wraps
from typing import Any, Dict, Optional

from logistics_backend.core.exceptions import LogisticsError
from logistics_backend.shared.database.models import Admin
from logistics_backend.shared.database.persistence import commit_changes
from logistics_backend.shared.domain.enums import ActivityAction, AdminModule

logger = logging.getLogger(__name__)

# path parameters that identify the target of an admin action, in lookup order
TARGET_PARAMETERS = ("refund_id", "shipment_id", "payment_id", "driver_id", "client_id", "admin_id")


def log_admin_activity(action: ActivityAction, module: AdminModule):
    """
    Record one activity entry for an admin-invoked endpoint.

    The wrapped endpoint must receive ``current_user`` and ``db`` as keyword
    arguments (FastAPI dependencies). Successful calls and domain failures
    (LogisticsError) are both recorded; the failure is re-raised unchanged.
    Non-admin callers pass straight through.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            principal = kwargs.get("current_user")
            db = kwargs.get("db")
            if principal is None or db is None or not principal.is_admin:
                return await func(*args, **kwargs)

            target_type, target_id = _find_target(kwargs)
            request = kwargs.get("request")
            try:
                result = await func(*args, **kwargs)
            except LogisticsError as e:
                _record(db, principal.id, action, module, target_type, target_id, request,
                        success=False, error_message=e.message)
                raise

            _record(db, principal.id, action, module, target_type, target_id, request, success=True)
            return result
        return wrapper
    return decorator


def _find_target(kwargs: Dict[str, Any]):
    for name in TARGET_PARAMETERS:
        if kwargs.get(name) is not None:
            return name[:-3], str(kwargs[name])
    return None, None


def _record(db, admin_id: int, action, module, target_type: Optional[str], target_id: Optional[str],
            request, success: bool, error_message: Optional[str] = None):
    admin = db.get(Admin, admin_id)
    if admin is None:
        return

    action = ActivityAction(action).value
    module = AdminModule(module).value
    description = f"{action} {target_type or module}"
    if target_id:
        description += f" (ID: {target_id})"

    admin.log_activity(
        action,
        module,
        target_id=target_id,
        target_type=target_type,
        description=description,
        ip_address=request.client.host if request is not None and request.client else None,
        user_agent=request.headers.get("user-agent") if request is not None else None,
        success=success,
        error_message=error_message
    )
    try:
        commit_changes(db, "Admin")
    except LogisticsError as e:
        # the endpoint outcome stands even when its audit entry cannot be saved
        logger.error(f"❌ Activity log not saved for admin {admin_id}: {e.message}")
