# logistics_backend/shared/domain/actors.py
"""
Who performed a ledger mutation.

Timeline entries, issues, documents and photos record the actor's role and
id. An actor is one of four variants; code that consumes actors must handle
all of them.
"""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class DriverActor:
    id: int
    role: str = "driver"


@dataclass(frozen=True)
class ClientActor:
    id: int
    role: str = "client"


@dataclass(frozen=True)
class AdminActor:
    id: int
    role: str = "admin"


@dataclass(frozen=True)
class SystemActor:
    role: str = "system"

    @property
    def id(self) -> Optional[int]:
        return None


Actor = Union[DriverActor, ClientActor, AdminActor, SystemActor]

SYSTEM = SystemActor()


def actor_stamp(actor: Actor) -> dict:
    """Serialisable ``updated_by`` / ``updated_by_id`` pair for an audit entry"""
    if isinstance(actor, (DriverActor, ClientActor, AdminActor)):
        return {"updated_by": actor.role, "updated_by_id": actor.id}
    if isinstance(actor, SystemActor):
        return {"updated_by": actor.role, "updated_by_id": None}
    raise TypeError(f"Unknown actor: {actor!r}")


def actor_from_principal(principal_type: str, principal_id: int) -> Actor:
    if principal_type == "driver":
        return DriverActor(principal_id)
    if principal_type == "client":
        return ClientActor(principal_id)
    if principal_type == "admin":
        return AdminActor(principal_id)
    raise TypeError(f"Unknown principal type: {principal_type}")
