"""Broker desired-state object: spec read by the reconciler, status written by it."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal

from pydantic import BaseModel, Field


def _now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class ConfigReference(BaseModel):
    """Pointer to the broker's configuration source (a ConfigMap)."""

    kind: str = "ConfigMap"
    namespace: str = ""
    name: str
    api_version: str = "v1"


class KReference(BaseModel):
    """Addressable object named as a delivery destination."""

    kind: str
    name: str
    namespace: str = ""
    api_version: str = "v1"


class DeliverySpec(BaseModel):
    """Retry and dead-letter policy applied by the delivery-facing processes.

    Durations are ISO-8601 strings (``PT0.2S``), as declared on the object.
    """

    retry: int | None = Field(default=None, ge=0)
    backoff_policy: Literal["exponential", "linear"] | None = None
    backoff_delay: str | None = None
    dead_letter_sink: str | None = Field(default=None, description="Dead-letter URI, or a path relative to the ref")
    dead_letter_sink_ref: KReference | None = None
    timeout: str | None = None


class BrokerSpec(BaseModel):
    config: ConfigReference
    delivery: DeliverySpec | None = None


class Condition(BaseModel):
    type: str
    status: Literal["True", "False", "Unknown"] = "Unknown"
    reason: str | None = None
    message: str | None = None
    severity: Literal["Error", "Warning", "Info"] | None = None
    last_transition_time: str | None = None


class BrokerStatus(BaseModel):
    """Status sub-resource; owned by the reconciler."""

    observed_generation: int | None = None
    conditions: List[Condition] = Field(default_factory=list)
    annotations: Dict[str, str] = Field(default_factory=dict)
    address: str | None = None
    dead_letter_sink_uri: str | None = None

    def get_condition(self, type_: str) -> Condition | None:
        for c in self.conditions:
            if c.type == type_:
                return c
        return None

    def set_condition(self, condition: Condition) -> None:
        """Replace the condition of the same type; the transition time moves only with the status."""
        previous = self.get_condition(condition.type)
        if previous is not None and previous.status == condition.status:
            condition.last_transition_time = previous.last_transition_time
        else:
            condition.last_transition_time = _now()
        self.conditions = [c for c in self.conditions if c.type != condition.type]
        self.conditions.append(condition)
        self.conditions.sort(key=lambda c: c.type)


class Broker(BaseModel):
    """A declared broker. Only ``status`` is mutated by the controller."""

    uid: str
    namespace: str
    name: str
    generation: int | None = None
    deletion_timestamp: str | None = None
    annotations: Dict[str, str] = Field(default_factory=dict)
    spec: BrokerSpec
    status: BrokerStatus = Field(default_factory=BrokerStatus)

    @property
    def key(self) -> tuple[str, str]:
        return (self.namespace, self.name)

    @property
    def config_namespace(self) -> str:
        """Namespace of the config source, defaulting to the broker's own."""
        return self.spec.config.namespace or self.namespace
