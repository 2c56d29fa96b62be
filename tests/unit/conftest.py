"""Shared fixtures: a reconciler wired to in-memory adapters."""

import pytest

from broker_controller.core.config import Settings
from broker_controller.domain.models.broker import Broker, BrokerSpec, ConfigReference
from broker_controller.domain.models.probe import Addressable, ProbeStatus
from broker_controller.domain.models.secret import Secret
from broker_controller.infra.memory import MemoryKafkaCluster
from broker_controller.services.controller import build_controller, memory_adapters
from broker_controller.services.prober import ReadinessProber

CONFIG = {
    "bootstrap.servers": "k1:9092",
    "default.topic.partitions": "10",
    "default.topic.replication.factor": "3",
}


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def cluster() -> MemoryKafkaCluster:
    return MemoryKafkaCluster()


@pytest.fixture
def adapters(cluster):
    a = memory_adapters(cluster)
    a.config_maps.put("ns", "kafka-broker-config", CONFIG)
    return a


@pytest.fixture
def prober() -> ReadinessProber:
    return ReadinessProber()


@pytest.fixture
def controller(settings, adapters, prober):
    return build_controller(settings, adapters, prober=prober, sleep=lambda _: None)


@pytest.fixture
def reconciler(controller):
    return controller.reconciler


@pytest.fixture
def broker() -> Broker:
    return Broker(
        uid="B1",
        namespace="ns",
        name="B1",
        generation=1,
        spec=BrokerSpec(config=ConfigReference(kind="ConfigMap", namespace="ns", name="kafka-broker-config")),
    )


@pytest.fixture
def secret() -> Secret:
    return Secret(
        uid="S1",
        namespace="ns",
        name="kafka-secret",
        resource_version="7",
        data={
            "protocol": "SASL_PLAINTEXT",
            "sasl.mechanism": "SCRAM-SHA-512",
            "user": "broker",
            "password": "s3cret",
        },
    )


@pytest.fixture
def set_probe(reconciler, prober):
    """Make the prober report *status* for a broker's address."""

    def _set(broker: Broker, status: ProbeStatus) -> None:
        prober.probe(Addressable(address=reconciler.address(broker), resource_key=broker.key), status)
        prober.observe(broker.key, status)

    return _set
