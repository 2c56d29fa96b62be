"""Resolves a broker's topic configuration from its ConfigMap.

The live ConfigMap may be deleted before the broker. Every successful
resolution therefore copies the ConfigMap data into the broker's status
annotations, and a missing ConfigMap is rebuilt from those annotations.
The rebuilt copy is only a guess: when it cannot be parsed the original
not-found error is reported, not the parse failure.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from pydantic import ValidationError

from broker_controller.core.exceptions import ConfigResolutionError, NotFoundError
from broker_controller.domain.models.broker import Broker
from broker_controller.domain.models.topic import TopicConfig
from broker_controller.infra.ports import ConfigMapSource

logger = logging.getLogger(__name__)


@dataclass
class ConfigSource:
    namespace: str
    name: str
    data: Dict[str, str] = field(default_factory=dict)
    rebuilt: bool = False
    # set when rebuilt: the lookup failure that triggered the rebuild
    not_found: NotFoundError | None = None


@dataclass
class ResolvedConfig:
    topic_config: TopicConfig
    source: ConfigSource


class ConfigResolver:
    def __init__(self, config_maps: ConfigMapSource) -> None:
        self._config_maps = config_maps

    def source(self, broker: Broker) -> ConfigSource:
        """Fetch the live ConfigMap, or rebuild it from status annotations.

        Errors other than not-found propagate.
        """
        ref = broker.spec.config
        if ref.kind.lower() != "configmap":
            raise ConfigResolutionError(f"supported config Kind: ConfigMap - got {ref.kind}")

        namespace = broker.config_namespace
        try:
            data = self._config_maps.get(namespace, ref.name)
        except NotFoundError as exc:
            logger.debug("ConfigMap %s/%s not found, rebuilding from status annotations", namespace, ref.name)
            return ConfigSource(
                namespace=namespace,
                name=ref.name,
                data=dict(broker.status.annotations),
                rebuilt=True,
                not_found=exc,
            )
        return ConfigSource(namespace=namespace, name=ref.name, data=data)

    def parse(self, broker: Broker, source: ConfigSource) -> TopicConfig:
        try:
            return TopicConfig.from_data(source.data)
        except ValidationError as exc:
            if source.rebuilt:
                raise ConfigResolutionError(
                    f"unable to build topic config, failed to get configmap "
                    f"{source.namespace}/{source.name}: {source.not_found}"
                ) from source.not_found
            raise ConfigResolutionError(
                f"unable to build topic config from configmap: {exc.error_count()} invalid field(s)"
                f" - ConfigMap data: {source.data}"
            ) from exc

    def resolve(self, broker: Broker) -> ResolvedConfig:
        source = self.source(broker)
        topic_config = self.parse(broker, source)
        if not source.rebuilt:
            store_as_status_annotations(broker, source.data)
        return ResolvedConfig(topic_config=topic_config, source=source)


def store_as_status_annotations(broker: Broker, data: Dict[str, str]) -> None:
    """Save ConfigMap data on the broker status so a deleted ConfigMap can be rebuilt."""
    broker.status.annotations.update(data)
