"""ConfigMap, Secret and Pod adapters on the official Kubernetes client."""
from __future__ import annotations

import base64
import logging
from typing import Dict, Optional, Tuple

from kubernetes.client import ApiException, CoreV1Api, V1ConfigMap, V1ObjectMeta

from broker_controller.core.exceptions import (
    ConflictError,
    ContractError,
    ControllerError,
    NotFoundError,
)
from broker_controller.domain.models.secret import Secret

logger = logging.getLogger(__name__)


def translate(exc: ApiException, kind: str, namespace: str, name: str) -> ControllerError:
    """Map an API failure onto the controller taxonomy."""
    if exc.status == 404:
        return NotFoundError(kind, namespace, name)
    if exc.status == 409:
        return ConflictError(f"{kind} {namespace}/{name} was modified concurrently")
    return ControllerError(f"{kind} {namespace}/{name}: {exc.status} {exc.reason}")


class KubeConfigMapSource:
    def __init__(self, api: CoreV1Api) -> None:
        self._api = api

    def get(self, namespace: str, name: str) -> Dict[str, str]:
        try:
            cm = self._api.read_namespaced_config_map(name, namespace)
        except ApiException as exc:
            raise translate(exc, "ConfigMap", namespace, name) from exc
        return dict(cm.data or {})


class KubeContractRepository:
    """The contract stored as JSON under one key of a ConfigMap.

    The ConfigMap's ``resourceVersion`` is the optimistic-concurrency token.
    """

    def __init__(self, api: CoreV1Api, namespace: str, name: str, key: str = "data") -> None:
        self._api = api
        self.namespace = namespace
        self.name = name
        self.key = key

    def read(self) -> Tuple[Optional[str], str]:
        try:
            cm = self._api.read_namespaced_config_map(self.name, self.namespace)
        except ApiException as exc:
            raise translate(exc, "ConfigMap", self.namespace, self.name) from exc
        return (cm.data or {}).get(self.key), cm.metadata.resource_version

    def create(self) -> str:
        body = V1ConfigMap(metadata=V1ObjectMeta(name=self.name, namespace=self.namespace), data={})
        try:
            cm = self._api.create_namespaced_config_map(self.namespace, body)
        except ApiException as exc:
            if exc.status == 409:
                # created concurrently; retry from a fresh read
                raise ConflictError(f"ConfigMap {self.namespace}/{self.name} already exists") from exc
            raise ContractError(f"failed to create contract ConfigMap: {exc.status} {exc.reason}") from exc
        logger.info("created contract ConfigMap %s/%s", self.namespace, self.name)
        return cm.metadata.resource_version

    def write(self, data: str, version: str) -> str:
        body = V1ConfigMap(
            metadata=V1ObjectMeta(name=self.name, namespace=self.namespace, resource_version=version),
            data={self.key: data},
        )
        try:
            cm = self._api.replace_namespaced_config_map(self.name, self.namespace, body)
        except ApiException as exc:
            raise translate(exc, "ConfigMap", self.namespace, self.name) from exc
        return cm.metadata.resource_version


class KubeSecretRepository:
    def __init__(self, api: CoreV1Api) -> None:
        self._api = api

    def get(self, namespace: str, name: str) -> Secret:
        try:
            s = self._api.read_namespaced_secret(name, namespace)
        except ApiException as exc:
            raise translate(exc, "Secret", namespace, name) from exc
        return Secret(
            uid=s.metadata.uid,
            namespace=s.metadata.namespace,
            name=s.metadata.name,
            resource_version=s.metadata.resource_version or "",
            finalizers=list(s.metadata.finalizers or []),
            data={k: base64.b64decode(v).decode() for k, v in (s.data or {}).items()},
        )

    def update(self, secret: Secret) -> Secret:
        # JSON patch carrying resourceVersion so a concurrent change yields 409
        patch = [
            {"op": "replace", "path": "/metadata/resourceVersion", "value": secret.resource_version},
            {"op": "add", "path": "/metadata/finalizers", "value": list(secret.finalizers)},
        ]
        try:
            s = self._api.patch_namespaced_secret(secret.name, secret.namespace, patch)
        except ApiException as exc:
            raise translate(exc, "Secret", secret.namespace, secret.name) from exc
        return secret.model_copy(update={"resource_version": s.metadata.resource_version or ""})


class KubePodSet:
    """Pods of one data-plane role, selected by label."""

    def __init__(self, api: CoreV1Api, role: str, namespace: str, label_selector: str) -> None:
        self._api = api
        self.role = role
        self.namespace = namespace
        self.label_selector = label_selector

    def _pods(self):
        try:
            return self._api.list_namespaced_pod(self.namespace, label_selector=self.label_selector).items
        except ApiException as exc:
            raise ControllerError(
                f"failed to list {self.role} pods ({self.label_selector}): {exc.status} {exc.reason}"
            ) from exc

    def is_running(self) -> bool:
        return any(p.status is not None and p.status.phase == "Running" for p in self._pods())

    def annotate(self, key: str, value: str) -> int:
        patched = 0
        for pod in self._pods():
            if (pod.metadata.annotations or {}).get(key) == value:
                continue
            body = {"metadata": {"annotations": {key: value}}}
            try:
                self._api.patch_namespaced_pod(pod.metadata.name, self.namespace, body)
            except ApiException as exc:
                if exc.status == 404:
                    # pod went away; its replacement mounts the current contract
                    continue
                raise translate(exc, "Pod", self.namespace, pod.metadata.name) from exc
            patched += 1
        return patched
