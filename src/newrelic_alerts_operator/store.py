"""Declarative object store: the operator's view of the Kubernetes API."""

from __future__ import annotations

import base64
import copy
import time
from typing import Any, Protocol

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from . import metrics
from .constants import API_GROUP, API_VERSION, PLURALS
from .utils.errors import ConflictError, NotFoundError
from .utils.rate_limit import k8s_limiter


class ObjectStore(Protocol):
    """Protocol defining the object store operations used by the reconcilers."""

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """Return the object body, raising NotFoundError when absent."""
        ...

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create an object, raising ConflictError when the name is taken."""
        ...

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Replace an object and its status.

        The write is checked against metadata.resourceVersion and raises
        ConflictError when the stored object has moved on.
        """
        ...

    def delete(self, kind: str, namespace: str, name: str) -> None:
        """Delete an object, raising NotFoundError when absent."""
        ...

    def list(self, kind: str, namespace: str, label_selector: str | None = None) -> list[dict[str, Any]]:
        """List objects of a kind in a namespace."""
        ...

    def get_secret(self, namespace: str, name: str) -> dict[str, bytes]:
        """Return the decoded data of a Secret, raising NotFoundError when absent."""
        ...


def _translate(e: ApiException, kind: str, namespace: str, name: str) -> Exception:
    if e.status == 404:
        return NotFoundError(f"{kind} {namespace}/{name} not found")
    if e.status == 409:
        return ConflictError(f"{kind} {namespace}/{name} conflict: {e.reason}")
    return e


def get_k8s_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


class KubernetesObjectStore:
    """ObjectStore backed by the custom objects and core v1 APIs."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi | None = None,
        core_api: client.CoreV1Api | None = None,
    ) -> None:
        if custom_api is None or core_api is None:
            get_k8s_config()
        self.custom_api = custom_api or client.CustomObjectsApi()
        self.core_api = core_api or client.CoreV1Api()

    def _call(self, operation: str, kind: str, namespace: str, name: str, fn: Any, /, **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            k8s_limiter.wait()
            result = fn(**kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except ApiException as e:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise _translate(e, kind, namespace, name) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        return self._call(
            f"get_{kind.lower()}", kind, namespace, name,
            self.custom_api.get_namespaced_custom_object,
            group=API_GROUP, version=API_VERSION, namespace=namespace, plural=PLURALS[kind], name=name,
        )

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        meta = body.get("metadata", {})
        namespace, name = meta.get("namespace", "default"), meta.get("name", "")
        body = copy.deepcopy(body)
        status = body.pop("status", None)
        created = self._call(
            f"create_{kind.lower()}", kind, namespace, name,
            self.custom_api.create_namespaced_custom_object,
            group=API_GROUP, version=API_VERSION, namespace=namespace, plural=PLURALS[kind], body=body,
        )
        if status:
            created["status"] = status
            created = self._replace_status(kind, created)
        return created

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        meta = body.get("metadata", {})
        namespace, name = meta.get("namespace", "default"), meta.get("name", "")
        updated = self._call(
            f"update_{kind.lower()}", kind, namespace, name,
            self.custom_api.replace_namespaced_custom_object,
            group=API_GROUP, version=API_VERSION, namespace=namespace, plural=PLURALS[kind], name=name,
            body=body,
        )
        updated_meta = updated.get("metadata", {})
        if "status" not in body:
            return updated
        # Removing the last finalizer of a deleting object lets the API server drop it
        if updated_meta.get("deletionTimestamp") and not updated_meta.get("finalizers"):
            return updated
        # Status is a subresource: write it with the resourceVersion returned above
        updated["status"] = body["status"]
        return self._replace_status(kind, updated)

    def _replace_status(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        meta = body.get("metadata", {})
        namespace, name = meta.get("namespace", "default"), meta.get("name", "")
        return self._call(
            f"update_{kind.lower()}_status", kind, namespace, name,
            self.custom_api.replace_namespaced_custom_object_status,
            group=API_GROUP, version=API_VERSION, namespace=namespace, plural=PLURALS[kind], name=name,
            body=body,
        )

    def delete(self, kind: str, namespace: str, name: str) -> None:
        self._call(
            f"delete_{kind.lower()}", kind, namespace, name,
            self.custom_api.delete_namespaced_custom_object,
            group=API_GROUP, version=API_VERSION, namespace=namespace, plural=PLURALS[kind], name=name,
        )

    def list(self, kind: str, namespace: str, label_selector: str | None = None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        result = self._call(
            f"list_{kind.lower()}", kind, namespace, "",
            self.custom_api.list_namespaced_custom_object,
            group=API_GROUP, version=API_VERSION, namespace=namespace, plural=PLURALS[kind], **kwargs,
        )
        return list(result.get("items", []))

    def get_secret(self, namespace: str, name: str) -> dict[str, bytes]:
        secret = self._call(
            "get_secret", "Secret", namespace, name,
            self.core_api.read_namespaced_secret,
            name=name, namespace=namespace,
        )
        data: dict[str, bytes] = {}
        for key, value in (secret.data or {}).items():
            # The client hands out base64 text; some versions already decode to bytes
            data[key] = value if isinstance(value, bytes) else base64.b64decode(value)
        return data
