from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, Set, Tuple

ObjectKey = Tuple[str, str, str]  # (kind, namespace, name)
OwnerKey = Tuple[str, str]  # (namespace, name)


class ObjectTracker:
    """Remembers which brokers reference which ConfigMaps and Secrets.

    A watch on those objects looks up ``owners()`` to re-queue the brokers
    whose configuration changed.
    """

    def __init__(self) -> None:
        self._owners: Dict[ObjectKey, Set[OwnerKey]] = defaultdict(set)
        self._lock = threading.RLock()

    def track(self, kind: str, namespace: str, name: str, owner: OwnerKey) -> None:
        with self._lock:
            self._owners[(kind, namespace, name)].add(owner)

    def owners(self, kind: str, namespace: str, name: str) -> Set[OwnerKey]:
        with self._lock:
            return set(self._owners.get((kind, namespace, name), ()))

    def forget(self, owner: OwnerKey) -> None:
        with self._lock:
            for key in list(self._owners):
                self._owners[key].discard(owner)
                if not self._owners[key]:
                    del self._owners[key]
