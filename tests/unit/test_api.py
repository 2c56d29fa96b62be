"""Admin HTTP API."""

import pytest
from fastapi.testclient import TestClient

from broker_controller.core.security import create_access_token
from broker_controller.domain.models.broker import Broker, BrokerSpec, ConfigReference
from broker_controller.domain.models.probe import ProbeStatus
from server import app


@pytest.fixture
def default_broker(adapters) -> Broker:
    broker = Broker(
        uid="B1",
        namespace="ns",
        name="default",
        generation=1,
        spec=BrokerSpec(config=ConfigReference(namespace="ns", name="kafka-broker-config")),
    )
    adapters.brokers.put(broker)
    return broker


@pytest.fixture
def client(controller, default_broker):
    # no `with`: skip the lifespan so the in-memory controller is used
    app.state.controller = controller
    yield TestClient(app)
    del app.state.controller


@pytest.fixture
def auth() -> dict:
    return {"Authorization": f"Bearer {create_access_token('tester')}"}


class TestBrokersApi:
    def test_get_broker(self, client) -> None:
        resp = client.get("/api/v1/brokers/ns/default")

        assert resp.status_code == 200
        assert resp.json()["uid"] == "B1"

    def test_unknown_broker_is_problem_document(self, client) -> None:
        resp = client.get("/api/v1/brokers/ns/missing")

        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["title"] == "Not Found"

    def test_reconcile_requires_token(self, client) -> None:
        resp = client.post("/api/v1/brokers/ns/default/reconcile")

        assert resp.status_code == 401
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["title"] == "Unauthorized"
        assert resp.json()["detail"] == "Missing token"

    def test_non_bearer_scheme_is_rejected(self, client) -> None:
        resp = client.post("/api/v1/brokers/ns/default/reconcile", headers={"Authorization": "Basic abc"})

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Missing token"

    def test_bad_token(self, client) -> None:
        resp = client.post("/api/v1/brokers/ns/default/reconcile", headers={"Authorization": "Bearer nope"})

        assert resp.status_code == 401
        assert resp.json()["title"] == "Unauthorized"

    def test_token_without_scope(self, client) -> None:
        token = create_access_token("viewer", scopes=("brokers:read",))

        resp = client.post("/api/v1/brokers/ns/default/reconcile", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 401
        assert "lacks scope" in resp.json()["detail"]

    def test_reconcile(self, client, auth, adapters) -> None:
        resp = client.post("/api/v1/brokers/ns/default/reconcile", headers=auth)

        assert resp.status_code == 200
        assert resp.json() == {"requeue_after": None}
        assert adapters.brokers.get("ns", "default").status.observed_generation == 1

    def test_reconcile_failure(self, client, auth, adapters) -> None:
        adapters.receiver_pods.running = False

        resp = client.post("/api/v1/brokers/ns/default/reconcile", headers=auth)

        assert resp.status_code == 500
        assert resp.json()["title"] == "DataPlaneNotAvailableError"

    def test_finalize_requeues_while_ready(self, client, auth, default_broker, set_probe) -> None:
        set_probe(default_broker, ProbeStatus.READY)

        resp = client.post("/api/v1/brokers/ns/default/finalize", headers=auth)

        assert resp.json() == {"requeue_after": 5.0}

    def test_invalid_name(self, client) -> None:
        assert client.get("/api/v1/brokers/ns/Not_Valid").status_code == 422


class TestContractApi:
    def test_empty_contract(self, client) -> None:
        assert client.get("/api/v1/contract").json() == {"generation": 0, "resources": []}

    def test_contract_after_reconcile(self, client, auth) -> None:
        client.post("/api/v1/brokers/ns/default/reconcile", headers=auth)

        body = client.get("/api/v1/contract").json()

        assert body["generation"] == 1
        assert body["resources"][0]["ingress"] == {"path": "/ns/default"}

    def test_probes(self, client, auth) -> None:
        client.post("/api/v1/brokers/ns/default/reconcile", headers=auth)

        assert client.get("/api/v1/probes").json() == [
            {"namespace": "ns", "name": "default", "status": "Unknown"}
        ]


class TestMetricsAndHealth:
    def test_healthz(self, client) -> None:
        assert client.get("/healthz").json() == {"status": "ok"}

    def test_metrics(self, client, auth) -> None:
        client.post("/api/v1/brokers/ns/default/reconcile", headers=auth)

        text = client.get("/metrics").text

        assert "broker_contract_generation 1.0" in text
        assert "broker_contract_resources 1.0" in text
        assert 'broker_probe_ready{namespace="ns",name="default",status="Unknown"} 0.0' in text
