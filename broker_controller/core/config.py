# broker_controller/core/config.py
import json
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central controller settings loaded from environment variables (and .env).

    Notes
    -----
    - Every variable is prefixed with ``BROKER_CONTROLLER_``, e.g.
      ``BROKER_CONTROLLER_SYSTEM_NAMESPACE=knative-eventing``.
    - The conflict retry knobs mirror the standard exponential backoff used for
      optimistic-concurrency retries (4 steps, 10ms, factor 5, 10% jitter).
    - `cors_allow_origins` accepts JSON array or comma-separated string.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BROKER_CONTROLLER_",
        extra="ignore",
    )

    # ---------- Data plane ----------
    system_namespace: str = "knative-eventing"
    contract_config_map_name: str = "kafka-broker-brokers-triggers"
    contract_config_map_key: str = "data"
    ingress_name: str = "kafka-broker-ingress"
    ingress_scheme: str = "http"
    cluster_domain: str = "cluster.local"
    receiver_label_selector: str = "app=kafka-broker-receiver"
    dispatcher_label_selector: str = "app=kafka-broker-dispatcher"
    generation_annotation_key: str = "volumeGeneration"

    # ---------- Broker conventions ----------
    topic_prefix: str = "knative-broker-"
    external_topic_annotation: str = "kafka.eventing.knative.dev/external.topic"
    finalizer_domain: str = "kafka.eventing"
    default_backoff_delay_ms: int = Field(default=200, ge=0)

    # ---------- Reconcile loop ----------
    finalize_requeue_delay_sec: float = Field(default=5.0, gt=0)
    conflict_retry_steps: int = Field(default=4, ge=1)
    conflict_retry_duration_sec: float = Field(default=0.01, ge=0)
    conflict_retry_factor: float = Field(default=5.0, ge=1.0)
    conflict_retry_jitter: float = Field(default=0.1, ge=0)

    # ---------- Readiness prober ----------
    probe_interval_sec: float = Field(default=1.0, gt=0)
    probe_timeout_sec: float = Field(default=2.0, gt=0)

    # ---------- Kafka client/admin ----------
    kafka_api_version: str | None = None

    # Client timeouts (ms)
    request_timeout_ms: int = 20_000
    metadata_max_age_ms: int = 30_000
    api_version_auto_timeout_ms: int = 10_000

    # ---------- Admin API ----------
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    log_level: str = "INFO"
    # "kubernetes" or "memory" (local runs without a cluster)
    adapters: str = "kubernetes"

    # ---------- CORS ----------
    cors_allow_origins: list[str] | None = None

    @field_validator("cors_allow_origins", mode="before")
    def _parse_cors_origins(cls, v):
        """Accept JSON array or comma-separated string."""
        if v is None:
            return None
        if isinstance(v, str):
            try:
                parsed = json.loads(v)  # JSON array
                if isinstance(parsed, list):
                    return [str(s).strip() for s in parsed if str(s).strip()]
            except ValueError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @property
    def ingress_host(self) -> str:
        """Cluster-local hostname of the ingress service."""
        return f"{self.ingress_name}.{self.system_namespace}.svc.{self.cluster_domain}"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
