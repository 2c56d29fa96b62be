"""Credential lookup and the finalizer that pins a Secret while a broker uses it."""
from __future__ import annotations

import logging
from typing import Optional

from broker_controller.core.exceptions import ConflictError, ControllerError, NotFoundError
from broker_controller.domain.models.broker import Broker
from broker_controller.domain.models.secret import Secret
from broker_controller.domain.models.topic import AUTH_SECRET_NAME_KEY
from broker_controller.domain.services.config_resolver import ConfigSource
from broker_controller.infra.ports import SecretRepository

logger = logging.getLogger(__name__)


def finalizer_name(domain: str, broker: Broker) -> str:
    return f"{domain}/{broker.uid}"


class SecretFinalizer:
    def __init__(self, secrets: SecretRepository) -> None:
        self._secrets = secrets

    def resolve(self, source: ConfigSource) -> Optional[Secret]:
        """The Secret named by ``auth.secret.ref.name``, in the config namespace.

        No reference, or a reference to a missing Secret, means no credential.
        """
        name = source.data.get(AUTH_SECRET_NAME_KEY)
        if not name:
            return None
        try:
            return self._secrets.get(source.namespace, name)
        except NotFoundError:
            logger.warning("secret %s/%s referenced by %s/%s not found, proceeding without auth",
                           source.namespace, name, source.namespace, source.name)
            return None

    def add(self, finalizer: str, secret: Secret) -> Secret:
        """Pin *secret*; return it as persisted (with its new resource version)."""
        if finalizer in secret.finalizers:
            return secret
        updated = secret.model_copy(update={"finalizers": [*secret.finalizers, finalizer]})
        return self._update(updated, f"failed to add finalizer to Secret {secret.namespace}/{secret.name}")

    def remove(self, finalizer: str, secret: Optional[Secret]) -> None:
        if secret is None:
            return
        kept = [f for f in secret.finalizers if f != finalizer]
        if len(kept) == len(secret.finalizers):
            return
        updated = secret.model_copy(update={"finalizers": kept})
        self._update(
            updated,
            f"failed to remove finalizer {finalizer} from Secret {secret.namespace}/{secret.name}",
        )

    def _update(self, secret: Secret, context: str) -> Secret:
        try:
            return self._secrets.update(secret)
        except NotFoundError:
            # already gone
            return secret
        except ConflictError:
            raise
        except ControllerError as exc:
            raise ControllerError(f"{context}: {exc}") from exc
