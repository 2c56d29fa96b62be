"""Shared data-plane contract: the document replicated to every data-plane pod.

Wire keys are camelCase; Python attributes are snake_case.
"""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Reference(_Wire):
    """Identity of a Kubernetes object; ``version`` only set for credentials."""

    uuid: str
    namespace: str
    name: str
    version: str | None = None


class Ingress(_Wire):
    path: str


class EgressConfig(_Wire):
    """Delivery policy; delays and timeouts in milliseconds."""

    retry: int = 0
    backoff_policy: Literal["exponential", "linear"] = "exponential"
    backoff_delay: int = 0
    dead_letter: str | None = None
    timeout: int | None = None


class Resource(_Wire):
    """One broker's entry in the contract. Exactly one per ``uid``."""

    uid: str
    topics: List[str] = Field(default_factory=list)
    ingress: Ingress
    bootstrap_servers: str
    auth: Reference | None = None
    reference: Reference | None = None
    egress_config: EgressConfig | None = None


class Contract(_Wire):
    generation: int = Field(default=0, ge=0)
    resources: List[Resource] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Contract":
        return cls.model_validate_json(raw)
