"""Logging setup and per-invocation loggers."""
from __future__ import annotations

import logging
from typing import Any, MutableMapping

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(level: str) -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=lvl, format=LOG_FORMAT)
    # kafka-python is chatty on connect/close
    logging.getLogger("kafka").setLevel(max(lvl, logging.WARNING))


class MethodLogger(logging.LoggerAdapter):
    """Prefixes every record with the action and the object key."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]):
        extra = self.extra or {}
        prefix = f"[{extra.get('action')} {extra.get('namespace')}/{extra.get('name')} uid={extra.get('uid')}]"
        return f"{prefix} {msg}", kwargs


def method_logger(logger: logging.Logger, action: str, obj) -> MethodLogger:
    """Return a logger bound to one reconcile or finalize invocation for *obj*."""
    return MethodLogger(
        logger,
        {"action": action, "namespace": obj.namespace, "name": obj.name, "uid": obj.uid},
    )
