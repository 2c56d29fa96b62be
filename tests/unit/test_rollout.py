"""Generation signalling to receiver and dispatcher pods."""

import pytest

from broker_controller.core.exceptions import ControllerError, RolloutError
from broker_controller.domain.services.rollout import DISPATCHER, RECEIVER, HardRollout, SoftRollout
from broker_controller.infra.memory import MemoryPodSet


class TestHardRollout:
    def test_annotates_every_pod(self) -> None:
        pods = MemoryPodSet(RECEIVER, pods=3)

        assert HardRollout(pods, "volumeGeneration").notify(7) is None
        assert pods.pods == [{"volumeGeneration": "7"}] * 3

    def test_already_annotated_pods_are_skipped(self) -> None:
        pods = MemoryPodSet(RECEIVER, pods=2)
        pods.pods[0]["volumeGeneration"] = "7"

        assert pods.annotate("volumeGeneration", "7") == 1

    def test_failure_raises(self) -> None:
        pods = MemoryPodSet(RECEIVER)
        pods.fail_with = ControllerError("boom")

        with pytest.raises(RolloutError, match="receiver"):
            HardRollout(pods, "volumeGeneration").notify(1)


class TestSoftRollout:
    def test_failure_is_returned(self) -> None:
        pods = MemoryPodSet(DISPATCHER)
        pods.fail_with = ControllerError("boom")

        err = SoftRollout(pods, "volumeGeneration").notify(1)

        assert isinstance(err, RolloutError)
        assert err.role == DISPATCHER

    def test_success(self) -> None:
        pods = MemoryPodSet(DISPATCHER)
        signaler = SoftRollout(pods, "volumeGeneration")

        assert signaler.notify(2) is None
        assert signaler.role == DISPATCHER
        assert signaler.is_running()
