"""Topic parameters resolved from a broker configuration source."""
from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

# Well-known keys of the broker configuration source.
BOOTSTRAP_SERVERS_KEY = "bootstrap.servers"
NUM_PARTITIONS_KEY = "default.topic.partitions"
REPLICATION_FACTOR_KEY = "default.topic.replication.factor"
TOPIC_CONFIG_PREFIX = "default.topic.config."
AUTH_SECRET_NAME_KEY = "auth.secret.ref.name"


class TopicConfig(BaseModel):
    """Desired shape of a broker topic and where its cluster lives."""

    bootstrap_servers: List[str] = Field(..., min_length=1)
    num_partitions: int = Field(..., ge=1)
    replication_factor: int = Field(..., ge=1)
    configs: Dict[str, str] = Field(default_factory=dict)

    @field_validator("bootstrap_servers", mode="before")
    @classmethod
    def split_servers(cls, v):
        """Accept a comma-separated string as found in config sources."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("configs")
    @classmethod
    def lowercase_keys(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Ensure config keys are case-insensitive."""
        return {k.lower(): val for k, val in v.items()}

    @property
    def bootstrap_servers_str(self) -> str:
        return ",".join(self.bootstrap_servers)

    @classmethod
    def from_data(cls, data: Dict[str, str]) -> "TopicConfig":
        """Parse a config-source key/value map.

        Raises pydantic's ``ValidationError`` when a required key is missing or
        malformed.
        """
        return cls(
            bootstrap_servers=data.get(BOOTSTRAP_SERVERS_KEY, ""),
            num_partitions=data.get(NUM_PARTITIONS_KEY),
            replication_factor=data.get(REPLICATION_FACTOR_KEY),
            configs={
                k[len(TOPIC_CONFIG_PREFIX):]: v
                for k, v in data.items()
                if k.startswith(TOPIC_CONFIG_PREFIX)
            },
        )
