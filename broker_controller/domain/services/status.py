"""Broker status conditions written by the reconciler."""
from __future__ import annotations

from typing import Optional

from broker_controller.domain.models.broker import Broker, Condition
from broker_controller.domain.models.probe import ProbeStatus

DATA_PLANE_AVAILABLE = "DataPlaneAvailable"
CONFIG_PARSED = "ConfigParsed"
TOPIC_READY = "TopicReady"
CONTRACT_UPDATED = "ConfigMapUpdated"
RECEIVER_ANNOTATED = "ReceiverPodsAnnotated"
DISPATCHER_ANNOTATED = "DispatcherPodsAnnotated"
PROBE_SUCCEEDED = "ProbeSucceeded"
ADDRESSABLE = "Addressable"
READY = "Ready"

# Conditions that must all be True for the broker to be Ready.
# DispatcherPodsAnnotated is informational only.
HAPPY = (
    DATA_PLANE_AVAILABLE,
    CONFIG_PARSED,
    TOPIC_READY,
    CONTRACT_UPDATED,
    RECEIVER_ANNOTATED,
    PROBE_SUCCEEDED,
    ADDRESSABLE,
)


class StatusConditionManager:
    """Sets conditions on one broker and keeps ``Ready`` consistent with them."""

    def __init__(self, broker: Broker) -> None:
        self.broker = broker
        for t in HAPPY:
            if self.broker.status.get_condition(t) is None:
                self._set(t, "Unknown")

    def _set(
        self,
        type_: str,
        status: str,
        reason: Optional[str] = None,
        message: Optional[str] = None,
        severity: Optional[str] = None,
    ) -> None:
        self.broker.status.set_condition(
            Condition(type=type_, status=status, reason=reason, message=message, severity=severity)
        )
        self._update_ready()

    def _update_ready(self) -> None:
        conditions = [self.broker.status.get_condition(t) for t in HAPPY]
        failed = next((c for c in conditions if c is not None and c.status == "False"), None)
        if failed is not None:
            ready = Condition(type=READY, status="False", reason=failed.reason, message=failed.message)
        elif all(c is not None and c.status == "True" for c in conditions):
            ready = Condition(type=READY, status="True")
        else:
            ready = Condition(type=READY, status="Unknown")
        self.broker.status.set_condition(ready)

    @property
    def is_ready(self) -> bool:
        c = self.broker.status.get_condition(READY)
        return c is not None and c.status == "True"

    # ---------- data plane ----------
    def data_plane_available(self) -> None:
        self._set(DATA_PLANE_AVAILABLE, "True")

    def data_plane_not_available(self) -> None:
        self._set(DATA_PLANE_AVAILABLE, "False", "DataPlaneNotAvailable",
                  "receiver or dispatcher pods are not running")

    # ---------- config ----------
    def config_resolved(self) -> None:
        self._set(CONFIG_PARSED, "True")

    def failed_to_resolve_config(self, err: Exception) -> None:
        self._set(CONFIG_PARSED, "False", "FailedToResolveConfig", str(err))

    # ---------- topic ----------
    def topic_ready(self, topic: str, created: bool = True) -> None:
        if created:
            self._set(TOPIC_READY, "True", "TopicCreated", f"topic {topic} created")
        else:
            self._set(TOPIC_READY, "True", "TopicPresent", f"topic {topic} present and valid")

    def topics_not_present_or_invalid(self, err: Exception) -> None:
        self._set(TOPIC_READY, "False", "TopicsNotPresentOrInvalid", str(err))

    def failed_to_create_topic(self, topic: str, err: Exception) -> None:
        self._set(TOPIC_READY, "False", "FailedToCreateTopic", f"failed to create topic {topic}: {err}")

    # ---------- contract ----------
    def failed_to_get_contract(self, err: Exception) -> None:
        self._set(CONTRACT_UPDATED, "False", "FailedToGetDataFromConfigMap", str(err))

    def failed_to_update_contract(self, err: Exception) -> None:
        self._set(CONTRACT_UPDATED, "False", "FailedToUpdateConfigMap", str(err))

    def contract_updated(self) -> None:
        self._set(CONTRACT_UPDATED, "True")

    # ---------- rollout ----------
    def receiver_annotated(self) -> None:
        self._set(RECEIVER_ANNOTATED, "True")

    def failed_to_update_receiver_pods(self, err: Exception) -> None:
        self._set(RECEIVER_ANNOTATED, "False", "FailedToUpdateReceiverPodsAnnotation", str(err))

    def dispatcher_annotated(self) -> None:
        self._set(DISPATCHER_ANNOTATED, "True")

    def failed_to_update_dispatcher_pods(self, err: Exception) -> None:
        self._set(DISPATCHER_ANNOTATED, "False", "FailedToUpdateDispatcherPodsAnnotation", str(err),
                  severity="Warning")

    # ---------- address ----------
    def probe_not_ready(self, status: ProbeStatus) -> None:
        self.broker.status.address = None
        self._set(PROBE_SUCCEEDED, "Unknown", "ProbeStatus", f"probe status: {status.value}")

    def addressable(self, address: str) -> None:
        self.broker.status.address = address
        self._set(PROBE_SUCCEEDED, "True")
        self._set(ADDRESSABLE, "True")
