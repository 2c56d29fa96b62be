"""Composition root: builds the reconciler on real or in-memory adapters."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from broker_controller.core.config import Settings
from broker_controller.core.exceptions import ControllerError, NotFoundError
from broker_controller.domain.models.broker import Broker
from broker_controller.domain.services.config_resolver import ConfigResolver
from broker_controller.domain.services.contract_store import ContractStore
from broker_controller.domain.services.reconciler import BrokerReconciler, ReconcileResult
from broker_controller.domain.services.rollout import DISPATCHER, RECEIVER, HardRollout, SoftRollout
from broker_controller.domain.services.secret_finalizer import SecretFinalizer
from broker_controller.domain.services.topic_service import TopicService
from broker_controller.domain.services.tracker import ObjectTracker
from broker_controller.infra import memory
from broker_controller.infra.ports import (
    BrokerRepository,
    ConfigMapSource,
    ContractRepository,
    PodSet,
    SecretRepository,
    TopicAdminFactory,
)
from broker_controller.services.prober import ReadinessProber

logger = logging.getLogger(__name__)


class BrokerController:
    """Fetches a broker, runs one pass, and writes its status back once."""

    def __init__(
        self,
        reconciler: BrokerReconciler,
        brokers: BrokerRepository,
        contracts: ContractStore,
        prober: ReadinessProber,
    ) -> None:
        self.reconciler = reconciler
        self.brokers = brokers
        self.contracts = contracts
        self.prober = prober

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        return self._run(self.brokers.get(namespace, name), self.reconciler.reconcile)

    def finalize(self, namespace: str, name: str) -> ReconcileResult:
        return self._run(self.brokers.get(namespace, name), self.reconciler.finalize)

    def sync(self, namespace: str, name: str) -> Optional[ReconcileResult]:
        """Reconcile or finalize depending on whether the broker is being deleted."""
        try:
            broker = self.brokers.get(namespace, name)
        except NotFoundError:
            logger.debug("broker %s/%s gone, nothing to sync", namespace, name)
            return None
        if broker.deletion_timestamp:
            return self._run(broker, self.reconciler.finalize)
        return self._run(broker, self.reconciler.reconcile)

    def _run(self, broker: Broker, step: Callable[[Broker], ReconcileResult]) -> ReconcileResult:
        try:
            result = step(broker)
        except ControllerError:
            try:
                self.brokers.update_status(broker)
            except ControllerError as exc:
                logger.warning("failed to update status of %s/%s: %s", broker.namespace, broker.name, exc)
            raise
        self.brokers.update_status(broker)
        return result


@dataclass
class Adapters:
    config_maps: ConfigMapSource
    secrets: SecretRepository
    contract_repo: ContractRepository
    receiver_pods: PodSet
    dispatcher_pods: PodSet
    brokers: BrokerRepository
    connect: TopicAdminFactory


def build_controller(
    settings: Settings,
    adapters: Adapters,
    prober: Optional[ReadinessProber] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> BrokerController:
    prober = prober or ReadinessProber(settings.probe_interval_sec, settings.probe_timeout_sec)
    contracts = ContractStore(adapters.contract_repo)
    kwargs = {"sleep": sleep} if sleep is not None else {}
    reconciler = BrokerReconciler(
        settings=settings,
        configs=ConfigResolver(adapters.config_maps),
        secrets=SecretFinalizer(adapters.secrets),
        topics=TopicService(adapters.connect, settings),
        contracts=contracts,
        receiver=HardRollout(adapters.receiver_pods, settings.generation_annotation_key),
        dispatcher=SoftRollout(adapters.dispatcher_pods, settings.generation_annotation_key),
        prober=prober,
        tracker=ObjectTracker(),
        **kwargs,
    )
    return BrokerController(reconciler, adapters.brokers, contracts, prober)


def kube_adapters(settings: Settings) -> Adapters:
    """Adapters on the cluster the process runs in (or the local kubeconfig)."""
    from kubernetes import client, config as kube_config

    from broker_controller.infra.kafka.admin import connect_admin
    from broker_controller.infra.kube.brokers import KubeBrokerRepository
    from broker_controller.infra.kube.core import (
        KubeConfigMapSource,
        KubeContractRepository,
        KubePodSet,
        KubeSecretRepository,
    )

    try:
        kube_config.load_incluster_config()
    except kube_config.ConfigException:
        kube_config.load_kube_config()

    core = client.CoreV1Api()
    ns = settings.system_namespace
    return Adapters(
        config_maps=KubeConfigMapSource(core),
        secrets=KubeSecretRepository(core),
        contract_repo=KubeContractRepository(
            core, ns, settings.contract_config_map_name, settings.contract_config_map_key
        ),
        receiver_pods=KubePodSet(core, RECEIVER, ns, settings.receiver_label_selector),
        dispatcher_pods=KubePodSet(core, DISPATCHER, ns, settings.dispatcher_label_selector),
        brokers=KubeBrokerRepository(client.CustomObjectsApi()),
        connect=connect_admin,
    )


def memory_adapters(cluster: Optional[memory.MemoryKafkaCluster] = None) -> Adapters:
    cluster = cluster or memory.MemoryKafkaCluster()
    return Adapters(
        config_maps=memory.MemoryConfigMaps(),
        secrets=memory.MemorySecrets(),
        contract_repo=memory.MemoryContractRepository(),
        receiver_pods=memory.MemoryPodSet(RECEIVER),
        dispatcher_pods=memory.MemoryPodSet(DISPATCHER),
        brokers=memory.MemoryBrokers(),
        connect=cluster.connect,
    )
