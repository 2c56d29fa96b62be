from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import BaseModel


class ProbeStatus(str, Enum):
    UNKNOWN = "Unknown"
    READY = "Ready"
    NOT_READY = "NotReady"


class Addressable(BaseModel):
    """Public address of a broker plus the key it is re-queued under."""

    address: str
    resource_key: Tuple[str, str]
