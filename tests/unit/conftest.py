"""Shared fixtures: an in-memory object store and a recording alerts client."""

from __future__ import annotations

import copy
from typing import Any
from unittest.mock import patch

import pytest

from newrelic_alerts_operator.constants import API_GROUP_VERSION
from newrelic_alerts_operator.services.newrelic.fake import FakeAlertsClient
from newrelic_alerts_operator.utils.errors import ConflictError, NotFoundError


class InMemoryObjectStore:
    """ObjectStore double that mimics the API server rules the reconcilers rely on.

    - writes are checked against metadata.resourceVersion
    - deleting an object with finalizers only sets its deletionTimestamp
    - removing the last finalizer of a deleting object drops it
    """

    def __init__(self, call_log: list[tuple[str, Any]] | None = None):
        self.objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.secrets: dict[tuple[str, str], dict[str, bytes]] = {}
        self.call_log = call_log if call_log is not None else []
        self.fail_on: dict[str, Exception] = {}
        self._version = 0
        self._uid = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _record(self, op: str, kind: str, name: str) -> None:
        self.call_log.append((f"store.{op}", (kind, name)))
        error = self.fail_on.get(op)
        if error is not None:
            raise error

    @staticmethod
    def _key(kind: str, body: dict[str, Any]) -> tuple[str, str, str]:
        meta = body["metadata"]
        return kind, meta.get("namespace", "default"), meta["name"]

    def add(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Seed an object without recording a call."""
        stored = copy.deepcopy(body)
        stored.setdefault("apiVersion", API_GROUP_VERSION)
        stored.setdefault("kind", kind)
        meta = stored["metadata"]
        meta.setdefault("namespace", "default")
        self._uid += 1
        meta.setdefault("uid", f"uid-{self._uid}")
        meta["resourceVersion"] = self._next_version()
        self.objects[self._key(kind, stored)] = stored
        return copy.deepcopy(stored)

    def stored(self, kind: str, name: str, namespace: str = "default") -> dict[str, Any] | None:
        body = self.objects.get((kind, namespace, name))
        return copy.deepcopy(body) if body is not None else None

    def names(self, kind: str) -> set[str]:
        return {name for k, _, name in self.objects if k == kind}

    def add_secret(self, namespace: str, name: str, data: dict[str, bytes]) -> None:
        self.secrets[(namespace, name)] = dict(data)

    # ObjectStore

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        self._record("get", kind, name)
        body = self.objects.get((kind, namespace, name))
        if body is None:
            raise NotFoundError(f"{kind} {namespace}/{name} not found")
        return copy.deepcopy(body)

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create", kind, body["metadata"]["name"])
        if self._key(kind, body) in self.objects:
            raise ConflictError(f"{kind} {body['metadata']['name']} already exists")
        return self.add(kind, body)

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        self._record("update", kind, body["metadata"]["name"])
        key = self._key(kind, body)
        current = self.objects.get(key)
        if current is None:
            raise NotFoundError(f"{kind} {key[2]} not found")
        version = body["metadata"].get("resourceVersion")
        if version and version != current["metadata"]["resourceVersion"]:
            raise ConflictError(f"{kind} {key[2]} was modified")

        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self._next_version()
        if current["metadata"].get("deletionTimestamp"):
            stored["metadata"]["deletionTimestamp"] = current["metadata"]["deletionTimestamp"]
            if not stored["metadata"].get("finalizers"):
                del self.objects[key]
                return copy.deepcopy(stored)
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def delete(self, kind: str, namespace: str, name: str) -> None:
        self._record("delete", kind, name)
        key = (kind, namespace, name)
        current = self.objects.get(key)
        if current is None:
            raise NotFoundError(f"{kind} {namespace}/{name} not found")
        if current["metadata"].get("finalizers"):
            current["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
            current["metadata"]["resourceVersion"] = self._next_version()
        else:
            del self.objects[key]

    def list(self, kind: str, namespace: str, label_selector: str | None = None) -> list[dict[str, Any]]:
        self._record("list", kind, "")
        items = [copy.deepcopy(b) for (k, ns, _), b in self.objects.items() if k == kind and ns == namespace]
        if label_selector:
            wanted = dict(pair.split("=", 1) for pair in label_selector.split(","))
            items = [
                b for b in items
                if all(b["metadata"].get("labels", {}).get(k) == v for k, v in wanted.items())
            ]
        return items

    def get_secret(self, namespace: str, name: str) -> dict[str, bytes]:
        self._record("get_secret", "Secret", name)
        data = self.secrets.get((namespace, name))
        if data is None:
            raise NotFoundError(f"Secret {namespace}/{name} not found")
        return dict(data)


@pytest.fixture(autouse=True)
def kopf_event():
    """Keep kopf from posting events outside of a running operator."""
    with patch("kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def call_log() -> list[tuple[str, Any]]:
    return []


@pytest.fixture
def store(call_log) -> InMemoryObjectStore:
    return InMemoryObjectStore(call_log)


@pytest.fixture
def fake_client(call_log) -> FakeAlertsClient:
    return FakeAlertsClient(call_log)


@pytest.fixture
def client_factory(fake_client):
    """Factory handing out the shared fake client and recording its arguments."""

    def factory(api_key: str, region: str) -> FakeAlertsClient:
        factory.calls.append((api_key, region))
        return fake_client

    factory.calls = []
    return factory


def condition_entry(name: str, query: str = "SELECT count(*) FROM Transaction", threshold: Any = 5) -> dict[str, Any]:
    """An embedded condition as written in a Policy spec."""
    return {
        "spec": {
            "name": name,
            "type": "NRQL",
            "enabled": True,
            "nrql": {"query": query, "since_value": "3"},
            "terms": [
                {
                    "duration": 5,
                    "operator": "above",
                    "priority": "critical",
                    "threshold": threshold,
                    "time_function": "all",
                }
            ],
        }
    }


def policy_body(
    name: str = "my-policy",
    conditions: list[dict[str, Any]] | None = None,
    status: dict[str, Any] | None = None,
    finalizers: list[str] | None = None,
    **spec: Any,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "metadata": {"name": name, "namespace": "default", "finalizers": list(finalizers or [])},
        "spec": {
            "name": f"{name} alerts",
            "incident_preference": "PER_POLICY",
            "api_key": "NRAK-TESTKEY123456",
            "region": "US",
            "conditions": conditions or [],
            **spec,
        },
    }
    if status is not None:
        body["status"] = status
    return body
