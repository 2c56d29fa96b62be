"""Broker config resolution and reconstruction from status annotations."""

import pytest
from pydantic import ValidationError

from broker_controller.core.exceptions import ConfigResolutionError
from broker_controller.domain.models.broker import ConfigReference
from broker_controller.domain.models.topic import TopicConfig
from broker_controller.domain.services.config_resolver import ConfigResolver
from broker_controller.infra.memory import MemoryConfigMaps

DATA = {
    "bootstrap.servers": "k1:9092, k2:9092",
    "default.topic.partitions": "4",
    "default.topic.replication.factor": "2",
    "default.topic.config.Retention.MS": "1000",
}


@pytest.fixture
def config_maps() -> MemoryConfigMaps:
    maps = MemoryConfigMaps()
    maps.put("ns", "kafka-broker-config", DATA)
    return maps


@pytest.fixture
def resolver(config_maps) -> ConfigResolver:
    return ConfigResolver(config_maps)


class TestTopicConfig:
    def test_from_data(self) -> None:
        cfg = TopicConfig.from_data(DATA)
        assert cfg.bootstrap_servers == ["k1:9092", "k2:9092"]
        assert cfg.bootstrap_servers_str == "k1:9092,k2:9092"
        assert cfg.num_partitions == 4
        assert cfg.replication_factor == 2
        assert cfg.configs == {"retention.ms": "1000"}

    @pytest.mark.parametrize(
        "override",
        [
            {"bootstrap.servers": ""},
            {"default.topic.partitions": "0"},
            {"default.topic.replication.factor": "x"},
        ],
    )
    def test_invalid(self, override) -> None:
        with pytest.raises(ValidationError):
            TopicConfig.from_data({**DATA, **override})


class TestConfigResolver:
    def test_resolve_stores_annotations(self, resolver, broker) -> None:
        resolved = resolver.resolve(broker)

        assert resolved.source.rebuilt is False
        assert resolved.topic_config.num_partitions == 4
        assert broker.status.annotations == DATA

    def test_config_namespace_defaults_to_broker_namespace(self, resolver, broker) -> None:
        broker.spec.config = ConfigReference(name="kafka-broker-config")

        assert resolver.source(broker).namespace == "ns"

    def test_unsupported_kind(self, resolver, broker) -> None:
        broker.spec.config.kind = "Secret"

        with pytest.raises(ConfigResolutionError, match="ConfigMap"):
            resolver.resolve(broker)

    def test_rebuilt_source_does_not_overwrite_annotations(self, resolver, config_maps, broker) -> None:
        broker.status.annotations = dict(DATA)
        config_maps.delete("ns", "kafka-broker-config")

        resolved = resolver.resolve(broker)

        assert resolved.source.rebuilt is True
        assert resolved.topic_config.bootstrap_servers == ["k1:9092", "k2:9092"]
        assert broker.status.annotations == DATA

    def test_unparseable_rebuild_reports_lookup_failure(self, resolver, config_maps, broker) -> None:
        config_maps.delete("ns", "kafka-broker-config")

        with pytest.raises(ConfigResolutionError, match="ConfigMap ns/kafka-broker-config not found"):
            resolver.resolve(broker)

    def test_invalid_live_config(self, resolver, config_maps, broker) -> None:
        config_maps.put("ns", "kafka-broker-config", {"bootstrap.servers": "k1:9092"})

        with pytest.raises(ConfigResolutionError, match="invalid field"):
            resolver.resolve(broker)
        assert broker.status.annotations == {}
