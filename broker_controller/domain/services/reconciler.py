"""Broker reconciler: converges a Broker into the data-plane contract.

``reconcile`` and ``finalize`` are the two entry points called by the work
queue, at most once in flight per broker. Both re-run their whole body on a
contract version conflict, since the diff must be recomputed against a fresh
read. Any other failure is recorded on the broker status and raised for the
caller to re-queue.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from pydantic import BaseModel

from broker_controller.core.config import Settings
from broker_controller.core.exceptions import (
    ConflictError,
    ControllerError,
    DataPlaneNotAvailableError,
    RolloutError,
    TopicError,
    TopicsNotPresentOrInvalidError,
)
from broker_controller.core.log import method_logger
from broker_controller.core.retry import Backoff, retry_on_conflict
from broker_controller.domain.models.broker import Broker
from broker_controller.domain.models.contract import Ingress, Reference, Resource
from broker_controller.domain.models.probe import Addressable, ProbeStatus
from broker_controller.domain.models.secret import Secret
from broker_controller.domain.models.topic import TopicConfig
from broker_controller.domain.services.config_resolver import ConfigResolver
from broker_controller.domain.services.contract_store import ContractStore, StoredContract
from broker_controller.domain.services.egress import egress_config_from_delivery
from broker_controller.domain.services.rollout import RolloutSignaler
from broker_controller.domain.services.secret_finalizer import SecretFinalizer, finalizer_name
from broker_controller.domain.services.status import StatusConditionManager
from broker_controller.domain.services.topic_service import TopicService
from broker_controller.domain.services.tracker import ObjectTracker
from broker_controller.infra.kafka.security import security_options
from broker_controller.services.prober import ReadinessProber

logger = logging.getLogger(__name__)


class ReconcileResult(BaseModel):
    """``requeue_after`` asks the work queue for a delayed retry (seconds)."""

    requeue_after: Optional[float] = None


def ingress_path(broker: Broker) -> str:
    return f"/{broker.namespace}/{broker.name}"


class BrokerReconciler:
    def __init__(
        self,
        *,
        settings: Settings,
        configs: ConfigResolver,
        secrets: SecretFinalizer,
        topics: TopicService,
        contracts: ContractStore,
        receiver: RolloutSignaler,
        dispatcher: RolloutSignaler,
        prober: ReadinessProber,
        tracker: Optional[ObjectTracker] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._configs = configs
        self._secrets = secrets
        self._topics = topics
        self._contracts = contracts
        self._receiver = receiver
        self._dispatcher = dispatcher
        self._prober = prober
        self._tracker = tracker or ObjectTracker()
        self._backoff = Backoff.from_settings(settings)
        self._sleep = sleep

    # ------------------------------------------------------------------ #
    # Entry points                                                        #
    # ------------------------------------------------------------------ #
    def reconcile(self, broker: Broker) -> ReconcileResult:
        return retry_on_conflict(lambda: self._reconcile(broker), self._backoff, self._sleep)

    def finalize(self, broker: Broker) -> ReconcileResult:
        return retry_on_conflict(lambda: self._finalize(broker), self._backoff, self._sleep)

    # ------------------------------------------------------------------ #
    # Helpers                                                             #
    # ------------------------------------------------------------------ #
    def address(self, broker: Broker) -> str:
        return f"{self._settings.ingress_scheme}://{self._settings.ingress_host}{ingress_path(broker)}"

    def _addressable(self, broker: Broker) -> Addressable:
        return Addressable(address=self.address(broker), resource_key=broker.key)

    def _resource(
        self, broker: Broker, topic: str, config: TopicConfig, secret: Optional[Secret]
    ) -> Resource:
        return Resource(
            uid=broker.uid,
            topics=[topic],
            ingress=Ingress(path=ingress_path(broker)),
            bootstrap_servers=config.bootstrap_servers_str,
            auth=secret.reference() if secret is not None else None,
            reference=Reference(uuid=broker.uid, namespace=broker.namespace, name=broker.name),
            egress_config=egress_config_from_delivery(
                broker.spec.delivery,
                self._settings.default_backoff_delay_ms,
                namespace=broker.namespace,
                cluster_domain=self._settings.cluster_domain,
            ),
        )

    # ------------------------------------------------------------------ #
    # Reconcile                                                           #
    # ------------------------------------------------------------------ #
    def _reconcile(self, broker: Broker) -> ReconcileResult:
        log = method_logger(logger, "reconcile", broker)
        status = StatusConditionManager(broker)
        broker.status.observed_generation = broker.generation

        if not (self._receiver.is_running() and self._dispatcher.is_running()):
            status.data_plane_not_available()
            raise DataPlaneNotAvailableError("receiver or dispatcher pods are not running")
        status.data_plane_available()

        try:
            resolved = self._configs.resolve(broker)
            secret = self._secrets.resolve(resolved.source)
            security = security_options(secret)
        except ControllerError as exc:
            status.failed_to_resolve_config(exc)
            raise
        status.config_resolved()
        self._tracker.track("ConfigMap", resolved.source.namespace, resolved.source.name, broker.key)
        log.debug("config resolved: %s", resolved.topic_config)

        if secret is not None:
            log.debug("secret reference %s/%s", secret.namespace, secret.name)
            secret = self._secrets.add(finalizer_name(self._settings.finalizer_domain, broker), secret)
            self._tracker.track("Secret", secret.namespace, secret.name, broker.key)

        topic_name = self._topics.topic_name(broker)
        try:
            topic = self._topics.resolve(broker, resolved.topic_config, security)
        except TopicsNotPresentOrInvalidError as exc:
            status.topics_not_present_or_invalid(exc)
            raise
        except TopicError as exc:
            status.failed_to_create_topic(topic_name, exc)
            raise
        status.topic_ready(topic, created=self._topics.external_topic(broker) is None)

        try:
            stored = self._contracts.get_or_create()
        except ConflictError:
            raise
        except ControllerError as exc:
            status.failed_to_get_contract(exc)
            raise

        try:
            resource = self._resource(broker, topic, resolved.topic_config, secret)
        except ControllerError as exc:
            status.failed_to_resolve_config(exc)
            raise
        broker.status.dead_letter_sink_uri = (
            resource.egress_config.dead_letter if resource.egress_config else None
        )

        index = self._contracts.find_by_owner(stored.contract, broker.uid)
        changed = self._contracts.upsert(stored.contract, resource, index)
        log.debug("contract entry changed: %s", changed)
        if changed:
            self._contracts.increment_generation(stored.contract)
            self._persist(stored, status, log)
        status.contract_updated()

        # Signal even when nothing changed: a previous pass may have failed to.
        self._notify(stored.contract.generation, status, log)

        addressable = self._addressable(broker)
        observed = self._prober.probe(addressable, ProbeStatus.READY)
        if observed != ProbeStatus.READY:
            # re-queued by the prober once the status changes
            status.probe_not_ready(observed)
            return ReconcileResult()
        status.addressable(addressable.address)
        log.debug("broker ready at %s", addressable.address)
        return ReconcileResult()

    def _persist(self, stored: StoredContract, status: StatusConditionManager, log) -> None:
        try:
            self._contracts.persist(stored)
        except ConflictError:
            raise
        except ControllerError as exc:
            status.failed_to_update_contract(exc)
            log.error("failed to update contract: %s", exc)
            raise
        log.debug("contract updated to generation %d", stored.contract.generation)

    def _notify(self, generation: int, status: Optional[StatusConditionManager], log) -> None:
        """Receiver failures raise; dispatcher failures are only reported."""
        try:
            self._receiver.notify(generation)
        except RolloutError as exc:
            if status is not None:
                status.failed_to_update_receiver_pods(exc)
            log.error("%s", exc)
            raise
        if status is not None:
            status.receiver_annotated()

        err = self._dispatcher.notify(generation)
        if status is None:
            return
        if err is not None:
            status.failed_to_update_dispatcher_pods(err)
        else:
            status.dispatcher_annotated()

    # ------------------------------------------------------------------ #
    # Finalize                                                            #
    # ------------------------------------------------------------------ #
    def _finalize(self, broker: Broker) -> ReconcileResult:
        log = method_logger(logger, "finalize", broker)

        stored = self._contracts.get_or_create()
        if self._contracts.remove(stored.contract, broker.uid):
            self._contracts.increment_generation(stored.contract)
            self._contracts.persist(stored)
            log.debug("removed contract entry, generation %d", stored.contract.generation)

        self._notify(stored.contract.generation, None, log)
        broker.status.address = None

        # Deleting the topic while a receiver still produces to it makes that
        # producer block on metadata refresh: wait until the address is gone.
        observed = self._prober.probe(self._addressable(broker), ProbeStatus.NOT_READY)
        if observed != ProbeStatus.NOT_READY:
            log.debug("probe status %s, re-queueing", observed.value)
            return ReconcileResult(requeue_after=self._settings.finalize_requeue_delay_sec)

        try:
            source = self._configs.source(broker)
        except ConflictError:
            raise
        except ControllerError as exc:
            log.warning("broker config unobtainable, skipping cleanup: %s", exc)
            source = None
        if source is None or not source.data:
            # config already gone, nothing left to clean up
            self._forget(broker)
            return ReconcileResult()

        secret = self._secrets.resolve(source)
        if self._topics.external_topic(broker) is None:
            topic_config = self._configs.parse(broker, source)
            try:
                topic = self._topics.delete(broker, topic_config, security_options(secret))
                log.debug("topic %s deleted", topic)
            except TopicError as exc:
                log.warning("leaving topic %s behind: %s", self._topics.topic_name(broker), exc)

        self._secrets.remove(finalizer_name(self._settings.finalizer_domain, broker), secret)
        self._forget(broker)
        return ReconcileResult()

    def _forget(self, broker: Broker) -> None:
        self._prober.forget(broker.key)
        self._tracker.forget(broker.key)
