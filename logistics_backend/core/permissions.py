# logistics_backend/core/permissions.py
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Union

from logistics_backend.shared.domain.enums import AdminAction, AdminModule, AdminRole


@dataclass(frozen=True)
class PermissionSet:
    """Immutable mapping of admin module -> allowed actions"""
    grants: Mapping[AdminModule, FrozenSet[AdminAction]] = field(default_factory=dict)

    def permits(self, module: Union[AdminModule, str], action: Union[AdminAction, str]) -> bool:
        return AdminAction(action) in self.grants.get(AdminModule(module), frozenset())

    def modules(self) -> List[AdminModule]:
        return [module for module in AdminModule if self.grants.get(module)]

    def to_dict(self) -> Dict[str, List[str]]:
        """JSON-column form, in enum declaration order"""
        return {
            module.value: [action.value for action in AdminAction if action in actions]
            for module, actions in self.grants.items()
            if actions
        }

    @classmethod
    def from_dict(cls, data: Union[Mapping[str, Iterable[str]], Iterable[Mapping], None]) -> "PermissionSet":
        """
        Build from ``{"shipments": ["read", "update"]}`` or from the list form
        ``[{"module": "shipments", "actions": ["read"]}]``.
        Unknown modules or actions raise ValueError.
        """
        if not data:
            return cls({})
        if isinstance(data, Mapping):
            pairs = data.items()
        else:
            pairs = [(item["module"], item.get("actions", [])) for item in data]

        grants: Dict[AdminModule, FrozenSet[AdminAction]] = {}
        for module, actions in pairs:
            parsed = frozenset(AdminAction(action) for action in actions)
            key = AdminModule(module)
            grants[key] = grants.get(key, frozenset()) | parsed
        return cls(grants)

    @classmethod
    def full(cls) -> "PermissionSet":
        return cls({module: frozenset(AdminAction) for module in AdminModule})


def authorize(principal, module: Union[AdminModule, str], action: Union[AdminAction, str]) -> bool:
    """
    Module/action check for an authenticated principal.

    Only admins hold module permissions; a super admin is allowed
    everything without consulting the permission set.
    """
    if getattr(principal, "principal_type", None) != "admin":
        return False
    if principal.role == AdminRole.SUPER_ADMIN.value:
        return True
    return principal.permission_set.permits(module, action)
