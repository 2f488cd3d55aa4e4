# logistics_backend/core/auth/dependencies.py
from dataclasses import dataclass
from typing import List, Optional, Union

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from logistics_backend.config.database import get_db
from logistics_backend.core.auth.service import AuthService
from logistics_backend.core.exceptions import (
    AccountInactiveError, ForbiddenError, UnauthenticatedError
)
from logistics_backend.core.permissions import PermissionSet, authorize
from logistics_backend.shared.database.models import Admin, Client, Driver
from logistics_backend.shared.domain.actors import Actor, actor_from_principal
from logistics_backend.shared.domain.enums import AdminAction, AdminModule

security = HTTPBearer(auto_error=False)

PRINCIPAL_MODELS = {
    "driver": Driver,
    "client": Client,
    "admin": Admin,
}


@dataclass
class Principal:
    """Authenticated caller resolved from a bearer token"""
    principal_type: str
    account: Union[Driver, Client, Admin]
    session_id: Optional[str] = None

    @property
    def id(self) -> int:
        return self.account.id

    @property
    def role(self) -> str:
        if self.principal_type == "admin":
            return self.account.role
        return self.principal_type

    @property
    def permission_set(self) -> PermissionSet:
        if self.principal_type != "admin":
            return PermissionSet({})
        return PermissionSet.from_dict(self.account.permissions)

    @property
    def actor(self) -> Actor:
        return actor_from_principal(self.principal_type, self.account.id)

    @property
    def is_admin(self) -> bool:
        return self.principal_type == "admin"


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Principal:
    """Resolve the bearer token into a driver, client or admin"""
    if credentials is None:
        raise UnauthenticatedError("Not authorized to access this route")

    payload = AuthService.verify_token(credentials.credentials)
    if payload is None:
        raise UnauthenticatedError("Invalid or expired token")

    principal_type = payload.get("principal_type")
    subject = payload.get("sub")
    model = PRINCIPAL_MODELS.get(principal_type)
    if model is None or subject is None or not str(subject).isdigit():
        raise UnauthenticatedError("Invalid token payload")

    account = db.get(model, int(subject))
    if account is None:
        raise UnauthenticatedError("Principal not found")

    if not account.is_active_account:
        raise AccountInactiveError()

    session_id = payload.get("sid")
    if principal_type == "admin" and session_id and not account.has_session(session_id):
        raise UnauthenticatedError("Session has ended, please log in again")

    return Principal(principal_type=principal_type, account=account, session_id=session_id)


def require_principal_types(allowed_types: List[str]):
    """Factory for a dependency that only lets the listed principal types through"""
    def principal_checker(current_user: Principal = Depends(get_current_principal)) -> Principal:
        if current_user.principal_type not in allowed_types:
            raise ForbiddenError(
                f"Access denied for '{current_user.principal_type}'. Allowed: {allowed_types}"
            )
        return current_user
    return principal_checker


def require_permission(module: AdminModule, action: AdminAction):
    """Factory for a dependency that requires an admin holding module:action"""
    def permission_checker(current_user: Principal = Depends(get_current_principal)) -> Principal:
        if not current_user.is_admin:
            raise ForbiddenError("Access denied. Admin role required.")
        if not authorize(current_user, module, action):
            raise ForbiddenError(
                f"Permission denied. Required: {AdminAction(action).value} access to "
                f"{AdminModule(module).value} module"
            )
        return current_user
    return permission_checker


def require_admin_roles(allowed_roles: List[str]):
    def role_checker(current_user: Principal = Depends(get_current_principal)) -> Principal:
        if not current_user.is_admin:
            raise ForbiddenError("Access denied. Admin role required.")
        if current_user.role not in allowed_roles:
            raise ForbiddenError(f"Admin role '{current_user.role}' is not authorized for this route")
        return current_user
    return role_checker


# Dependencies by principal type
def get_driver_principal(current_user: Principal = Depends(require_principal_types(["driver"]))):
    return current_user


def get_client_principal(current_user: Principal = Depends(require_principal_types(["client"]))):
    return current_user


def get_admin_principal(current_user: Principal = Depends(require_principal_types(["admin"]))):
    return current_user


def get_super_admin(current_user: Principal = Depends(require_admin_roles(["super_admin"]))):
    return current_user
