"""Credential object referenced by a broker configuration source."""
from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field

from broker_controller.domain.models.contract import Reference


class Secret(BaseModel):
    """Decoded view of a Secret; ``data`` values are plain strings."""

    uid: str
    namespace: str
    name: str
    resource_version: str = ""
    finalizers: List[str] = Field(default_factory=list)
    data: Dict[str, str] = Field(default_factory=dict)

    def reference(self) -> Reference:
        return Reference(
            uuid=self.uid,
            namespace=self.namespace,
            name=self.name,
            version=self.resource_version,
        )
