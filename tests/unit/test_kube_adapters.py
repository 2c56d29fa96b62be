"""Kubernetes adapters against a mocked API client."""

import base64
import copy
from unittest.mock import MagicMock

import pytest
from kubernetes.client import (
    ApiException,
    V1ConfigMap,
    V1ObjectMeta,
    V1Pod,
    V1PodList,
    V1PodStatus,
    V1Secret,
)

from broker_controller.core.exceptions import ConflictError, ControllerError, NotFoundError
from broker_controller.domain.models.broker import Condition
from broker_controller.infra.kube.brokers import KubeBrokerRepository, broker_from_object, status_to_object
from broker_controller.infra.kube.core import (
    KubeConfigMapSource,
    KubeContractRepository,
    KubePodSet,
    KubeSecretRepository,
)


def cm(data, version="10") -> V1ConfigMap:
    return V1ConfigMap(metadata=V1ObjectMeta(name="c", namespace="ns", resource_version=version), data=data)


def pod(name, phase="Running", annotations=None) -> V1Pod:
    return V1Pod(metadata=V1ObjectMeta(name=name, annotations=annotations), status=V1PodStatus(phase=phase))


@pytest.fixture
def api() -> MagicMock:
    return MagicMock()


class TestConfigMaps:
    def test_get(self, api) -> None:
        api.read_namespaced_config_map.return_value = cm({"bootstrap.servers": "k1:9092"})

        assert KubeConfigMapSource(api).get("ns", "c") == {"bootstrap.servers": "k1:9092"}

    def test_not_found(self, api) -> None:
        api.read_namespaced_config_map.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(NotFoundError):
            KubeConfigMapSource(api).get("ns", "c")


class TestContractRepository:
    def test_read(self, api) -> None:
        api.read_namespaced_config_map.return_value = cm({"data": '{"generation": 2}'})

        assert KubeContractRepository(api, "knative-eventing", "c").read() == ('{"generation": 2}', "10")

    def test_write_carries_version(self, api) -> None:
        api.replace_namespaced_config_map.return_value = cm({}, version="11")
        repo = KubeContractRepository(api, "knative-eventing", "c")

        assert repo.write("{}", "10") == "11"
        body = api.replace_namespaced_config_map.call_args.args[2]
        assert body.metadata.resource_version == "10"
        assert body.data == {"data": "{}"}

    def test_write_conflict(self, api) -> None:
        api.replace_namespaced_config_map.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(ConflictError):
            KubeContractRepository(api, "knative-eventing", "c").write("{}", "10")

    def test_concurrent_create(self, api) -> None:
        api.create_namespaced_config_map.side_effect = ApiException(status=409, reason="AlreadyExists")

        with pytest.raises(ConflictError):
            KubeContractRepository(api, "knative-eventing", "c").create()


class TestSecrets:
    def test_get_decodes_data(self, api) -> None:
        api.read_namespaced_secret.return_value = V1Secret(
            metadata=V1ObjectMeta(uid="S1", name="s", namespace="ns", resource_version="3", finalizers=["a/b"]),
            data={"user": base64.b64encode(b"broker").decode()},
        )

        secret = KubeSecretRepository(api).get("ns", "s")

        assert secret.data == {"user": "broker"}
        assert secret.finalizers == ["a/b"]
        assert secret.resource_version == "3"

    def test_update_conflict(self, api) -> None:
        api.read_namespaced_secret.return_value = V1Secret(metadata=V1ObjectMeta(uid="S1", name="s", namespace="ns"))
        api.patch_namespaced_secret.side_effect = ApiException(status=409, reason="Conflict")
        repo = KubeSecretRepository(api)

        with pytest.raises(ConflictError):
            repo.update(repo.get("ns", "s"))


class TestPodSet:
    def test_is_running(self, api) -> None:
        api.list_namespaced_pod.return_value = V1PodList(items=[pod("a", "Pending"), pod("b")])

        assert KubePodSet(api, "receiver", "knative-eventing", "app=r").is_running()

    def test_no_pods_is_not_running(self, api) -> None:
        api.list_namespaced_pod.return_value = V1PodList(items=[])

        assert not KubePodSet(api, "receiver", "knative-eventing", "app=r").is_running()

    def test_annotate_skips_current_and_vanished_pods(self, api) -> None:
        api.list_namespaced_pod.return_value = V1PodList(
            items=[pod("a", annotations={"volumeGeneration": "2"}), pod("b"), pod("c")]
        )
        api.patch_namespaced_pod.side_effect = [None, ApiException(status=404, reason="Not Found")]

        patched = KubePodSet(api, "receiver", "knative-eventing", "app=r").annotate("volumeGeneration", "2")

        assert patched == 1
        assert [c.args[0] for c in api.patch_namespaced_pod.call_args_list] == ["b", "c"]

    def test_list_failure(self, api) -> None:
        api.list_namespaced_pod.side_effect = ApiException(status=500, reason="Internal")

        with pytest.raises(ControllerError, match="receiver"):
            KubePodSet(api, "receiver", "knative-eventing", "app=r").annotate("k", "1")


OBJECT = {
    "metadata": {
        "uid": "B1",
        "namespace": "ns",
        "name": "default",
        "generation": 4,
        "annotations": {"kafka.eventing.knative.dev/external.topic": "orders"},
    },
    "spec": {
        "config": {"kind": "ConfigMap", "namespace": "ns", "name": "kafka-broker-config", "apiVersion": "v1"},
        "delivery": {"retry": 3, "backoffDelay": "PT1S", "deadLetterSink": {"uri": "http://dls"}},
    },
    "status": {
        "observedGeneration": 3,
        "conditions": [{"type": "Ready", "status": "True"}],
        "annotations": {"bootstrap.servers": "k1:9092"},
        "address": {"url": "http://ingress/ns/default"},
    },
}

STAMP = "2026-01-01T00:00:00Z"

class TestBrokers:
    def test_broker_from_object(self) -> None:
        broker = broker_from_object(OBJECT)

        assert broker.key == ("ns", "default")
        assert broker.generation == 4
        assert broker.spec.delivery.dead_letter_sink == "http://dls"
        assert broker.spec.delivery.backoff_delay == "PT1S"
        assert broker.status.get_condition("Ready").status == "True"
        assert broker.status.address == "http://ingress/ns/default"
        assert broker.deletion_timestamp is None

    def test_status_to_object(self) -> None:
        broker = broker_from_object(OBJECT)
        broker.status.set_condition(Condition(type="TopicReady", status="False", reason="FailedToCreateTopic"))

        body = status_to_object(broker)

        assert body["observedGeneration"] == 3
        assert body["address"] == {"url": "http://ingress/ns/default"}
        assert [c["type"] for c in body["conditions"]] == ["Ready", "TopicReady"]
        assert all(c["lastTransitionTime"].endswith("Z") for c in body["conditions"])

    def test_transition_time_moves_only_with_status(self) -> None:
        obj = copy.deepcopy(OBJECT)
        obj["status"]["conditions"] = [
            {"type": "Ready", "status": "True", "lastTransitionTime": STAMP},
            {"type": "TopicReady", "status": "True", "lastTransitionTime": STAMP},
        ]
        broker = broker_from_object(obj)
        broker.status.set_condition(Condition(type="Ready", status="True", reason="Again"))
        broker.status.set_condition(Condition(type="TopicReady", status="False", reason="FailedToCreateTopic"))

        times = {c["type"]: c["lastTransitionTime"] for c in status_to_object(broker)["conditions"]}

        assert times["Ready"] == STAMP
        assert times["TopicReady"] != STAMP
        assert times["TopicReady"].endswith("Z")

    def test_dead_letter_ref(self) -> None:
        obj = copy.deepcopy(OBJECT)
        obj["spec"]["delivery"]["deadLetterSink"] = {"ref": {"kind": "Service", "name": "dls", "apiVersion": "v1"}}

        delivery = broker_from_object(obj).spec.delivery

        assert delivery.dead_letter_sink is None
        assert delivery.dead_letter_sink_ref.kind == "Service"
        assert delivery.dead_letter_sink_ref.name == "dls"
        assert delivery.dead_letter_sink_ref.namespace == ""

    def test_get_not_found(self, api) -> None:
        api.get_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(NotFoundError):
            KubeBrokerRepository(api).get("ns", "default")
