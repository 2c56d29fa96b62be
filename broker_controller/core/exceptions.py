"""Controller error taxonomy and RFC 7807 *Problem Details* support."""
from __future__ import annotations

from typing import Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class ControllerError(Exception):
    """Base class of every error raised by the reconcile core."""


class ConflictError(ControllerError):
    """Version token of a shared object did not match what was read.

    Always retryable: the whole reconcile body is re-run against a fresh read.
    """


class NotFoundError(ControllerError):
    """An object does not exist in the external store."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        super().__init__(f"{kind} {namespace}/{name} not found")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ConfigResolutionError(ControllerError):
    """The broker configuration source cannot be turned into a TopicConfig."""


class TopicError(ControllerError):
    """Base class for topic related failures."""


class TopicAdminError(TopicError):
    """The topic admin interface failed or answered with an error code."""


class TopicsNotPresentOrInvalidError(TopicError):
    """An externally-managed topic is missing or unusable."""

    def __init__(self, topics: Iterable[str], cause: Exception | None = None) -> None:
        self.topics = list(topics)
        self.cause = cause
        msg = f"topics {self.topics} not present or invalid"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class DataPlaneNotAvailableError(ControllerError):
    """Receiver or dispatcher processes are not running."""


class ContractError(ControllerError):
    """The shared contract document could not be read or written."""


class RolloutError(ControllerError):
    """A process population could not be told about a new contract generation."""

    def __init__(self, role: str, cause: Exception) -> None:
        super().__init__(f"failed to update {role} pods annotation: {cause}")
        self.role = role
        self.cause = cause


def is_conflict(exc: BaseException) -> bool:
    """Classifier used by the retry-on-conflict combinator."""
    return isinstance(exc, ConflictError)


# --------------------------------------------------------------------------- #
# Problem details (admin API)                                                 #
# --------------------------------------------------------------------------- #
class ProblemDetail(BaseModel):
    """Data model that serialises to RFC 7807 JSON.

    Attributes
    ----------
    type : str
        A URI reference that identifies the problem type.
    title : str
        A short human-readable summary of the problem type.
    status : int
        The HTTP status code.
    detail : str | None
        A human-readable explanation specific to this occurrence.
    instance : str
        A URI reference that identifies the specific occurrence.
    """

    model_config = ConfigDict(json_schema_extra={"required": ["type", "title", "status"]})

    type: str = Field(default="about:blank", examples=["/conflict"])
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: Optional[str] = None
    instance: str = Field(default_factory=lambda: f"urn:uuid:{uuid4()}")


class ProblemDetailException(Exception):
    """Raise inside routers to trigger a 7807 response."""

    def __init__(
        self,
        status_code: int,
        title: str,
        type_: str = "about:blank",
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(detail or title)
        self.problem = ProblemDetail(
            status=status_code,
            title=title,
            type=type_,
            detail=detail,
        )
