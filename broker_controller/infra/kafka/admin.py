"""Kafka Admin façade built on kafka-python."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from kafka.admin import KafkaAdminClient, NewTopic  # kafka-python
from kafka.errors import (
    KafkaError,
    TopicAlreadyExistsError,
    UnknownTopicOrPartitionError,
)

from broker_controller.core.config import Settings, get_settings
from broker_controller.core.exceptions import TopicAdminError
from broker_controller.infra.ports import TopicDescription

logger = logging.getLogger(__name__)


def _api_version(raw: Optional[str]) -> Optional[tuple]:
    """'2.5.0' -> (2, 5, 0)"""
    if not raw:
        return None
    return tuple(int(p) for p in raw.split("."))


class KafkaAdminFacade:
    """One admin connection to a Kafka cluster. Call ``close()`` when done."""

    def __init__(
        self,
        bootstrap_servers: List[str],
        security: Optional[Dict[str, Any]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        kw: Dict[str, Any] = dict(
            bootstrap_servers=bootstrap_servers,
            client_id="kafka-broker-controller",
            request_timeout_ms=settings.request_timeout_ms,
            metadata_max_age_ms=settings.metadata_max_age_ms,
            api_version_auto_timeout_ms=settings.api_version_auto_timeout_ms,
        )
        if settings.kafka_api_version:
            kw["api_version"] = _api_version(settings.kafka_api_version)
        kw.update(security or {"security_protocol": "PLAINTEXT"})
        try:
            self._client = KafkaAdminClient(**kw)
        except KafkaError as exc:
            raise TopicAdminError(
                f"cannot obtain Kafka cluster admin for {','.join(bootstrap_servers)}: {exc}"
            ) from exc

    # ---------- Topic CRUD -------------------------------------------------

    def describe_topics(self, names: List[str]) -> List[TopicDescription]:
        """Describe *names*; missing topics come back with a non-zero error code."""
        try:
            existing = set(self._client.list_topics())
            present = [n for n in names if n in existing]
            raw = self._client.describe_topics(present) if present else []
        except KafkaError as exc:
            raise TopicAdminError(f"failed to describe topics {names}: {exc}") from exc

        by_name = {t["topic"]: t for t in raw}
        out: List[TopicDescription] = []
        for name in names:
            t = by_name.get(name)
            if t is None:
                out.append(TopicDescription(name=name, error_code=UnknownTopicOrPartitionError.errno))
                continue
            parts = t.get("partitions") or []
            out.append(
                TopicDescription(
                    name=name,
                    error_code=t.get("error_code", 0),
                    partitions=len(parts),
                    replication_factor=len(parts[0]["replicas"]) if parts else 0,
                )
            )
        return out

    def create_topic(
        self,
        name: str,
        num_partitions: int,
        replication_factor: int,
        configs: Dict[str, str],
    ) -> bool:
        """Create a new topic if it does not exist.

        Returns
        -------
        bool
            False when the topic already existed.
        """
        new_topic = NewTopic(
            name=name,
            num_partitions=num_partitions,
            replication_factor=replication_factor,
            topic_configs=dict(configs),
        )
        try:
            self._client.create_topics([new_topic])
        except TopicAlreadyExistsError:
            # idempotent create
            return False
        except KafkaError as exc:
            raise TopicAdminError(f"failed to create topic {name}: {exc}") from exc
        return True

    def delete_topic(self, name: str) -> bool:
        """Delete *name*; returns False when it was already gone."""
        try:
            self._client.delete_topics([name])
        except UnknownTopicOrPartitionError:
            return False
        except KafkaError as exc:
            raise TopicAdminError(f"failed to delete topic {name}: {exc}") from exc
        return True

    def close(self) -> None:
        try:
            self._client.close()
        except KafkaError as exc:
            logger.warning("failed to close Kafka admin client: %s", exc)


def connect_admin(bootstrap_servers: List[str], security: Dict[str, Any]) -> KafkaAdminFacade:
    """Default ``TopicAdminFactory``."""
    return KafkaAdminFacade(bootstrap_servers, security)
