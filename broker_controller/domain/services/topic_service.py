"""Broker topic lifecycle on the external Kafka cluster."""
from __future__ import annotations

import contextlib
import logging
from typing import Any, Dict, Iterator, List, Optional

from broker_controller.core.config import Settings
from broker_controller.core.exceptions import TopicAdminError, TopicsNotPresentOrInvalidError
from broker_controller.domain.models.broker import Broker
from broker_controller.domain.models.topic import TopicConfig
from broker_controller.infra.ports import TopicAdmin, TopicAdminFactory

logger = logging.getLogger(__name__)


def broker_topic(prefix: str, broker: Broker) -> str:
    """Name of a self-managed topic: ``<prefix><namespace>-<name>``."""
    return f"{prefix}{broker.namespace}-{broker.name}"


class TopicService:
    """Creates, validates and deletes broker topics.

    A topic named by the external-topic annotation is managed by somebody
    else: it is validated but never created or deleted.
    """

    def __init__(self, connect: TopicAdminFactory, settings: Settings) -> None:
        self._connect = connect
        self._prefix = settings.topic_prefix
        self._annotation = settings.external_topic_annotation

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #
    def external_topic(self, broker: Broker) -> Optional[str]:
        return broker.annotations.get(self._annotation)

    def topic_name(self, broker: Broker) -> str:
        external = self.external_topic(broker)
        return external if external is not None else broker_topic(self._prefix, broker)

    @contextlib.contextmanager
    def _admin(self, config: TopicConfig, security: Dict[str, Any]) -> Iterator[TopicAdmin]:
        admin = self._connect(config.bootstrap_servers, security)
        try:
            yield admin
        finally:
            admin.close()

    @staticmethod
    def are_present_and_valid(admin: TopicAdmin, names: List[str]) -> bool:
        """True when every topic exists, has no error and at least one partition."""
        described = admin.describe_topics(names)
        if len(described) != len(names):
            return False
        return all(t.error_code == 0 and t.partitions > 0 for t in described)

    # ------------------------------------------------------------------ #
    # Commands                                                            #
    # ------------------------------------------------------------------ #
    def resolve(self, broker: Broker, config: TopicConfig, security: Dict[str, Any]) -> str:
        """Return the broker topic, creating it when self-managed.

        Raises
        ------
        TopicsNotPresentOrInvalidError
            The external topic is missing, invalid or could not be described.
        TopicAdminError
            The cluster could not be reached or refused the create.
        """
        external = self.external_topic(broker)
        with self._admin(config, security) as admin:
            if external is not None:
                try:
                    valid = self.are_present_and_valid(admin, [external])
                except TopicAdminError as exc:
                    raise TopicsNotPresentOrInvalidError([external], exc) from exc
                if not valid:
                    raise TopicsNotPresentOrInvalidError([external])
                return external

            name = broker_topic(self._prefix, broker)
            created = admin.create_topic(
                name,
                num_partitions=config.num_partitions,
                replication_factor=config.replication_factor,
                configs=config.configs,
            )
            logger.debug("topic %s %s", name, "created" if created else "already exists")
            return name

    def delete(self, broker: Broker, config: TopicConfig, security: Dict[str, Any]) -> Optional[str]:
        """Delete a self-managed topic; not-found counts as deleted.

        Returns the deleted topic name, or None for an external topic.
        """
        if self.external_topic(broker) is not None:
            return None
        name = broker_topic(self._prefix, broker)
        with self._admin(config, security) as admin:
            if not admin.delete_topic(name):
                logger.debug("topic %s already gone", name)
        return name
