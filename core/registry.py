from __future__ import annotations

import copy
import threading
from typing import Any, Dict, List


class Registry:
    """Concurrent name -> document store.

    Used once for tools and once for resources. A second ``put`` under an
    existing name overwrites the previous document. Documents are copied on
    the way in and on the way out, so listings are always whole snapshots.
    """

    def __init__(self, kind: str = "entry") -> None:
        self.kind = kind
        self._lock = threading.Lock()
        self._entries: Dict[str, Any] = {}

    def put(self, name: str, value: Any) -> None:
        stored = copy.deepcopy(value)
        with self._lock:
            self._entries[name] = stored

    def list(self) -> List[Any]:
        # No ordering guarantee; callers must not rely on insertion order.
        with self._lock:
            values = list(self._entries.values())
        return copy.deepcopy(values)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
