"""Tells data-plane pods that a new contract generation exists.

The signal is an annotation holding the generation; writing a new value
makes the pods reload the contract. The two roles tolerate failure
differently:

* receiver (ingress-facing): events for an unknown broker are rejected, so a
  broker is not ready until every receiver knows it. Failure is hard.
* dispatcher (delivery-facing): already eventually consistent and resyncs on
  its own. Failure is soft: logged and reported, never blocking.
"""
from __future__ import annotations

import logging
from typing import Optional

from broker_controller.core.exceptions import ControllerError, RolloutError
from broker_controller.infra.ports import PodSet

logger = logging.getLogger(__name__)

RECEIVER = "receiver"
DISPATCHER = "dispatcher"


class RolloutSignaler:
    """Publishes a generation to one pod population."""

    def __init__(self, pods: PodSet, annotation_key: str) -> None:
        self.pods = pods
        self.annotation_key = annotation_key

    @property
    def role(self) -> str:
        return self.pods.role

    def is_running(self) -> bool:
        return self.pods.is_running()

    def _publish(self, generation: int) -> None:
        patched = self.pods.annotate(self.annotation_key, str(generation))
        logger.debug("%s pods annotated with generation %d (%d patched)", self.role, generation, patched)

    def notify(self, generation: int) -> Optional[RolloutError]:
        raise NotImplementedError


class HardRollout(RolloutSignaler):
    def notify(self, generation: int) -> Optional[RolloutError]:
        """Raise ``RolloutError`` on failure."""
        try:
            self._publish(generation)
        except ControllerError as exc:
            raise RolloutError(self.role, exc) from exc
        return None


class SoftRollout(RolloutSignaler):
    def notify(self, generation: int) -> Optional[RolloutError]:
        """Return the failure instead of raising it."""
        try:
            self._publish(generation)
        except ControllerError as exc:
            logger.warning(
                "failed to update %s pods annotation to trigger an immediate contract refresh: %s",
                self.role, exc,
            )
            return RolloutError(self.role, exc)
        return None
