"""Environment-driven settings."""

from broker_controller.core.config import Settings


class TestSettings:
    def test_defaults(self, settings) -> None:
        assert settings.system_namespace == "knative-eventing"
        assert settings.ingress_host == "kafka-broker-ingress.knative-eventing.svc.cluster.local"
        assert settings.finalize_requeue_delay_sec == 5.0
        assert settings.cors_allow_origins is None

    def test_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("BROKER_CONTROLLER_SYSTEM_NAMESPACE", "eventing")
        monkeypatch.setenv("BROKER_CONTROLLER_TOPIC_PREFIX", "kb-")

        s = Settings(_env_file=None)

        assert s.system_namespace == "eventing"
        assert s.topic_prefix == "kb-"
        assert s.ingress_host.endswith(".eventing.svc.cluster.local")

    def test_cors_comma_separated(self) -> None:
        s = Settings(_env_file=None, cors_allow_origins="http://a, http://b")
        assert s.cors_allow_origins == ["http://a", "http://b"]

    def test_cors_json(self) -> None:
        s = Settings(_env_file=None, cors_allow_origins='["http://a"]')
        assert s.cors_allow_origins == ["http://a"]
