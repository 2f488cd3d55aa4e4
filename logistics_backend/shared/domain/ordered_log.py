# logistics_backend/shared/domain/ordered_log.py
from copy import deepcopy
from typing import Any, Dict, Iterator, List, Optional


class OrderedLog:
    """
    Append-only ordered log of audit entries.

    Wraps the list stored in an aggregate's JSON column. Entries are never
    edited in place; with a ``cap`` the oldest entries are evicted as new
    ones arrive (admin activity log, active sessions).
    """

    def __init__(self, entries: Optional[List[Dict[str, Any]]] = None, cap: Optional[int] = None):
        if cap is not None and cap < 1:
            raise ValueError("cap must be a positive integer")
        self._entries: List[Dict[str, Any]] = list(entries or [])
        self.cap = cap
        self._evict()

    def append(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        self._entries.append(deepcopy(entry))
        self._evict()
        return entry

    def latest(self) -> Optional[Dict[str, Any]]:
        if not self._entries:
            return None
        return deepcopy(self._entries[-1])

    def entries(self) -> List[Dict[str, Any]]:
        """Copy of the entries, oldest first, safe to assign back to a JSON column"""
        return deepcopy(self._entries)

    def _evict(self):
        if self.cap is not None and len(self._entries) > self.cap:
            del self._entries[:len(self._entries) - self.cap]

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(deepcopy(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"OrderedLog(len={len(self._entries)}, cap={self.cap})"
