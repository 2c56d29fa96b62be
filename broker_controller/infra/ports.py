"""Capability interfaces between the reconcile core and external systems.

Every port has a Kubernetes/Kafka adapter (``infra.kube``, ``infra.kafka``)
and an in-memory adapter (``infra.memory``).
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from broker_controller.domain.models.broker import Broker
from broker_controller.domain.models.secret import Secret


class ConfigMapSource(Protocol):
    def get(self, namespace: str, name: str) -> Dict[str, str]:
        """Return the data of a ConfigMap; raise ``NotFoundError`` if absent."""


class SecretRepository(Protocol):
    def get(self, namespace: str, name: str) -> Secret:
        """Raise ``NotFoundError`` if absent."""

    def update(self, secret: Secret) -> Secret:
        """Persist finalizers; raise ``NotFoundError`` or ``ConflictError``."""


class ContractRepository(Protocol):
    """Raw storage of the shared contract document plus its version token."""

    def read(self) -> Tuple[Optional[str], str]:
        """Return ``(data, version)``; raise ``NotFoundError`` if absent."""

    def create(self) -> str:
        """Create an empty document and return its version token."""

    def write(self, data: str, version: str) -> str:
        """Store *data* if *version* still matches; raise ``ConflictError`` otherwise."""


class PodSet(Protocol):
    """A population of data-plane processes selected by label."""

    role: str

    def is_running(self) -> bool: ...

    def annotate(self, key: str, value: str) -> int:
        """Set ``key=value`` on every pod not already carrying it; return pods patched."""


class BrokerRepository(Protocol):
    def get(self, namespace: str, name: str) -> Broker: ...

    def update_status(self, broker: Broker) -> Broker: ...


class TopicDescription(BaseModel):
    name: str
    error_code: int = 0
    partitions: int = 0
    replication_factor: int = 0
    configs: Dict[str, str] = Field(default_factory=dict)


class TopicAdmin(Protocol):
    """One connection to a Kafka cluster's admin interface."""

    def describe_topics(self, names: List[str]) -> List[TopicDescription]: ...

    def create_topic(self, name: str, num_partitions: int, replication_factor: int,
                     configs: Dict[str, str]) -> bool:
        """Return False when the topic already existed."""

    def delete_topic(self, name: str) -> bool:
        """Return False when the topic did not exist."""

    def close(self) -> None: ...


# (bootstrap_servers, security kwargs) -> connected admin
TopicAdminFactory = Callable[[List[str], Dict[str, Any]], TopicAdmin]
