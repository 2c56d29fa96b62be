"""Egress (delivery) configuration derived from a broker's delivery policy."""
from __future__ import annotations

from datetime import timedelta
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from broker_controller.core.exceptions import ConfigResolutionError
from broker_controller.domain.models.broker import DeliverySpec, KReference
from broker_controller.domain.models.contract import EgressConfig

_TIMEDELTA = TypeAdapter(timedelta)


def duration_ms(value: str) -> int:
    """Milliseconds in an ISO-8601 duration such as ``PT0.5S`` or ``P1W``."""
    try:
        delta = _TIMEDELTA.validate_python(value.strip())
    except ValidationError as exc:
        raise ConfigResolutionError(f"invalid ISO-8601 duration {value!r}") from exc
    if delta < timedelta(0):
        raise ConfigResolutionError(f"negative duration {value!r}")
    return int(round(delta.total_seconds() * 1000))


def resolve_sink_ref(ref: KReference, uri: str | None, namespace: str, cluster_domain: str) -> str:
    """Address of an addressable reference; only core Services resolve without a lookup."""
    if ref.kind != "Service" or ref.api_version not in ("v1", ""):
        raise ConfigResolutionError(
            f"failed to resolve dead letter sink {ref.api_version}/{ref.kind} {ref.name}"
        )
    base = f"http://{ref.name}.{ref.namespace or namespace}.svc.{cluster_domain}"
    if not uri:
        return base
    return f"{base}/{uri.lstrip('/')}"


def egress_config_from_delivery(
    delivery: Optional[DeliverySpec],
    default_backoff_delay_ms: int,
    *,
    namespace: str = "",
    cluster_domain: str = "cluster.local",
) -> Optional[EgressConfig]:
    """No delivery policy means the data plane's defaults apply.

    A ``ref`` dead-letter sink is resolved in *namespace* unless it names its own.
    """
    if delivery is None:
        return None
    dead_letter = delivery.dead_letter_sink
    if delivery.dead_letter_sink_ref is not None:
        dead_letter = resolve_sink_ref(delivery.dead_letter_sink_ref, dead_letter, namespace, cluster_domain)
    return EgressConfig(
        retry=delivery.retry or 0,
        backoff_policy=delivery.backoff_policy or "exponential",
        backoff_delay=(
            duration_ms(delivery.backoff_delay)
            if delivery.backoff_delay
            else default_backoff_delay_ms
        ),
        dead_letter=dead_letter,
        timeout=duration_ms(delivery.timeout) if delivery.timeout else None,
    )
