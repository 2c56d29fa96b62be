"""In-memory adapters for every port; used by tests and local runs."""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Tuple

from broker_controller.core.exceptions import (
    ConflictError,
    NotFoundError,
    TopicAdminError,
)
from broker_controller.domain.models.broker import Broker
from broker_controller.domain.models.secret import Secret
from broker_controller.infra.ports import TopicDescription


class MemoryConfigMaps:
    def __init__(self, data: Optional[Dict[Tuple[str, str], Dict[str, str]]] = None) -> None:
        self.data = dict(data or {})

    def put(self, namespace: str, name: str, data: Dict[str, str]) -> None:
        self.data[(namespace, name)] = dict(data)

    def delete(self, namespace: str, name: str) -> None:
        self.data.pop((namespace, name), None)

    def get(self, namespace: str, name: str) -> Dict[str, str]:
        try:
            return dict(self.data[(namespace, name)])
        except KeyError:
            raise NotFoundError("ConfigMap", namespace, name) from None


class MemorySecrets:
    def __init__(self) -> None:
        self.secrets: Dict[Tuple[str, str], Secret] = {}
        self.updates = 0

    def put(self, secret: Secret) -> None:
        self.secrets[(secret.namespace, secret.name)] = secret

    def get(self, namespace: str, name: str) -> Secret:
        try:
            return self.secrets[(namespace, name)]
        except KeyError:
            raise NotFoundError("Secret", namespace, name) from None

    def update(self, secret: Secret) -> Secret:
        key = (secret.namespace, secret.name)
        if key not in self.secrets:
            raise NotFoundError("Secret", secret.namespace, secret.name)
        self.updates += 1
        # the API server bumps resourceVersion on every write
        version = int(self.secrets[key].resource_version or 0) + 1
        stored = secret.model_copy(deep=True, update={"resource_version": str(version)})
        self.secrets[key] = stored
        return stored


class MemoryContractRepository:
    """Versioned blob; the version token is a counter bumped on every write."""

    def __init__(self) -> None:
        self.data: Optional[str] = None
        self.version: Optional[int] = None
        self.writes = 0
        self._lock = threading.Lock()

    def read(self) -> Tuple[Optional[str], str]:
        with self._lock:
            if self.version is None:
                raise NotFoundError("ConfigMap", "memory", "contract")
            return self.data, str(self.version)

    def create(self) -> str:
        with self._lock:
            if self.version is None:
                self.version = 1
            return str(self.version)

    def write(self, data: str, version: str) -> str:
        with self._lock:
            if self.version is None or str(self.version) != version:
                raise ConflictError(f"contract version {version} is stale (current {self.version})")
            self.data = data
            self.version += 1
            self.writes += 1
            return str(self.version)

    def bump(self) -> None:
        """Simulate a concurrent writer."""
        with self._lock:
            self.version = (self.version or 0) + 1


class MemoryPodSet:
    def __init__(self, role: str, pods: int = 1, running: bool = True) -> None:
        self.role = role
        self.running = running
        self.pods: List[Dict[str, str]] = [{} for _ in range(pods)]
        self.fail_with: Optional[Exception] = None

    def is_running(self) -> bool:
        return self.running

    def annotate(self, key: str, value: str) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        patched = 0
        for annotations in self.pods:
            if annotations.get(key) != value:
                annotations[key] = value
                patched += 1
        return patched


class MemoryBrokers:
    def __init__(self) -> None:
        self.brokers: Dict[Tuple[str, str], Broker] = {}

    def put(self, broker: Broker) -> None:
        self.brokers[broker.key] = broker

    def get(self, namespace: str, name: str) -> Broker:
        try:
            return self.brokers[(namespace, name)].model_copy(deep=True)
        except KeyError:
            raise NotFoundError("Broker", namespace, name) from None

    def update_status(self, broker: Broker) -> Broker:
        if broker.key not in self.brokers:
            raise NotFoundError("Broker", broker.namespace, broker.name)
        self.brokers[broker.key] = broker.model_copy(deep=True)
        return broker


class MemoryKafkaCluster:
    """A fake cluster; ``connect`` is a ``TopicAdminFactory``."""

    def __init__(self) -> None:
        self.topics: Dict[str, TopicDescription] = {}
        self.created: List[str] = []
        self.deleted: List[str] = []
        self.connections = 0
        self.open_connections = 0
        self.last_security: Dict[str, Any] = {}
        self.fail_with: Optional[Exception] = None

    def connect(self, bootstrap_servers: List[str], security: Dict[str, Any]) -> "MemoryTopicAdmin":
        if self.fail_with is not None:
            raise self.fail_with
        self.connections += 1
        self.open_connections += 1
        self.last_security = dict(security)
        return MemoryTopicAdmin(self)


class MemoryTopicAdmin:
    def __init__(self, cluster: MemoryKafkaCluster) -> None:
        self._cluster = cluster
        self._closed = False

    def _check(self) -> None:
        if self._closed:
            raise TopicAdminError("admin client closed")

    def describe_topics(self, names: List[str]) -> List[TopicDescription]:
        self._check()
        return [self._cluster.topics.get(n, TopicDescription(name=n, error_code=3)) for n in names]

    def create_topic(self, name: str, num_partitions: int, replication_factor: int,
                     configs: Dict[str, str]) -> bool:
        self._check()
        if name in self._cluster.topics:
            return False
        self._cluster.topics[name] = TopicDescription(
            name=name,
            partitions=num_partitions,
            replication_factor=replication_factor,
            configs=dict(configs),
        )
        self._cluster.created.append(name)
        return True

    def delete_topic(self, name: str) -> bool:
        self._check()
        if self._cluster.topics.pop(name, None) is None:
            return False
        self._cluster.deleted.append(name)
        return True

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._cluster.open_connections -= 1
