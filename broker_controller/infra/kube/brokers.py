"""Broker custom objects (``eventing.knative.dev/v1``)."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from kubernetes.client import ApiException, CustomObjectsApi

from broker_controller.domain.models.broker import (
    Broker,
    BrokerSpec,
    BrokerStatus,
    Condition,
    ConfigReference,
    DeliverySpec,
    KReference,
)
from broker_controller.infra.kube.core import translate

GROUP = "eventing.knative.dev"
VERSION = "v1"
PLURAL = "brokers"


def _reference(ref: Dict[str, Any] | None) -> KReference | None:
    if not ref:
        return None
    return KReference(
        kind=ref.get("kind", ""),
        name=ref.get("name", ""),
        namespace=ref.get("namespace", ""),
        api_version=ref.get("apiVersion", "v1"),
    )


def broker_from_object(obj: Dict[str, Any]) -> Broker:
    """Build a Broker from the JSON form returned by the API server."""
    meta = obj.get("metadata", {})
    spec = obj.get("spec", {})
    status = obj.get("status", {}) or {}

    cfg = spec.get("config") or {}
    delivery = spec.get("delivery")
    sink = (delivery or {}).get("deadLetterSink") or {}
    return Broker(
        uid=meta["uid"],
        namespace=meta["namespace"],
        name=meta["name"],
        generation=meta.get("generation"),
        deletion_timestamp=meta.get("deletionTimestamp"),
        annotations=meta.get("annotations") or {},
        spec=BrokerSpec(
            config=ConfigReference(
                kind=cfg.get("kind", ""),
                namespace=cfg.get("namespace", ""),
                name=cfg.get("name", ""),
                api_version=cfg.get("apiVersion", "v1"),
            ),
            delivery=DeliverySpec(
                retry=delivery.get("retry"),
                backoff_policy=delivery.get("backoffPolicy"),
                backoff_delay=delivery.get("backoffDelay"),
                dead_letter_sink=sink.get("uri"),
                dead_letter_sink_ref=_reference(sink.get("ref")),
                timeout=delivery.get("timeout"),
            ) if delivery else None,
        ),
        status=BrokerStatus(
            observed_generation=status.get("observedGeneration"),
            conditions=[
                Condition(
                    type=c["type"],
                    status=c.get("status", "Unknown"),
                    reason=c.get("reason"),
                    message=c.get("message"),
                    severity=c.get("severity") or None,
                    last_transition_time=c.get("lastTransitionTime"),
                )
                for c in status.get("conditions") or []
            ],
            annotations=status.get("annotations") or {},
            address=(status.get("address") or {}).get("url"),
            dead_letter_sink_uri=status.get("deadLetterSinkUri"),
        ),
    )


def status_to_object(broker: Broker) -> Dict[str, Any]:
    """Status sub-resource body for a merge patch."""
    now = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    st = broker.status
    return {
        "observedGeneration": st.observed_generation,
        "conditions": [
            {
                "type": c.type,
                "status": c.status,
                "reason": c.reason,
                "message": c.message,
                "severity": c.severity,
                "lastTransitionTime": c.last_transition_time or now,
            }
            for c in st.conditions
        ],
        "annotations": st.annotations,
        "address": {"url": st.address} if st.address else None,
        "deadLetterSinkUri": st.dead_letter_sink_uri,
    }


class KubeBrokerRepository:
    def __init__(self, api: CustomObjectsApi) -> None:
        self._api = api

    def get(self, namespace: str, name: str) -> Broker:
        try:
            obj = self._api.get_namespaced_custom_object(GROUP, VERSION, namespace, PLURAL, name)
        except ApiException as exc:
            raise translate(exc, "Broker", namespace, name) from exc
        return broker_from_object(obj)

    def update_status(self, broker: Broker) -> Broker:
        body = {"status": status_to_object(broker)}
        try:
            obj = self._api.patch_namespaced_custom_object_status(
                GROUP, VERSION, broker.namespace, PLURAL, broker.name, body
            )
        except ApiException as exc:
            raise translate(exc, "Broker", broker.namespace, broker.name) from exc
        return broker_from_object(obj)
