from broker_controller.domain.models.broker import (
    Broker,
    BrokerSpec,
    BrokerStatus,
    Condition,
    ConfigReference,
    DeliverySpec,
)
from broker_controller.domain.models.contract import (
    Contract,
    EgressConfig,
    Ingress,
    Reference,
    Resource,
)
from broker_controller.domain.models.probe import Addressable, ProbeStatus
from broker_controller.domain.models.secret import Secret
from broker_controller.domain.models.topic import TopicConfig

__all__ = [
    "Addressable",
    "Broker",
    "BrokerSpec",
    "BrokerStatus",
    "Condition",
    "ConfigReference",
    "Contract",
    "DeliverySpec",
    "EgressConfig",
    "Ingress",
    "ProbeStatus",
    "Reference",
    "Resource",
    "Secret",
    "TopicConfig",
]
