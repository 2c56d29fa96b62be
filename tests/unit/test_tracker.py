"""Referenced-object tracking."""

from broker_controller.domain.services.tracker import ObjectTracker


class TestObjectTracker:
    def test_track_and_forget(self) -> None:
        tracker = ObjectTracker()
        tracker.track("ConfigMap", "ns", "cfg", ("ns", "a"))
        tracker.track("ConfigMap", "ns", "cfg", ("ns", "b"))
        tracker.track("Secret", "ns", "s", ("ns", "a"))

        assert tracker.owners("ConfigMap", "ns", "cfg") == {("ns", "a"), ("ns", "b")}

        tracker.forget(("ns", "a"))

        assert tracker.owners("ConfigMap", "ns", "cfg") == {("ns", "b")}
        assert tracker.owners("Secret", "ns", "s") == set()
