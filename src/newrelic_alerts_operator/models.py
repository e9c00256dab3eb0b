"""Typed views of the Policy, NrqlAlertCondition and AlertsChannel custom resources.

Specs and statuses are frozen dataclasses so drift detection is a plain
structural ``==`` over immutable snapshots. Generated values (resource names of
embedded conditions, resource versions, timestamps) are kept out of the
comparison.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, replace
from typing import Any, ClassVar

from .constants import (
    API_GROUP_VERSION,
    KIND_CHANNEL,
    KIND_CONDITION,
    KIND_POLICY,
)
from .services.newrelic.models import AlertChannel, AlertPolicy, NrqlCondition


def _quantity(value: Any) -> str:
    """Normalize a numeric-or-string quantity so 5, "5" and 5.0 compare equal."""
    if value is None or value == "":
        return ""
    if isinstance(value, (int, float)):
        return f"{value:g}"
    try:
        return f"{float(value):g}"
    except ValueError:
        return str(value)


@dataclass(frozen=True)
class APIKeySecret:
    """Pointer to the secret field holding a New Relic API key."""

    name: str = ""
    namespace: str = ""
    key_name: str = ""

    def __bool__(self) -> bool:
        return bool(self.name)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> APIKeySecret:
        data = data or {}
        return cls(
            name=data.get("name", ""),
            namespace=data.get("namespace", ""),
            key_name=data.get("key_name", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AlertConditionTerm:
    duration: str = ""
    operator: str = ""
    priority: str = ""
    threshold: str = ""
    time_function: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AlertConditionTerm:
        return cls(
            duration=_quantity(data.get("duration")),
            operator=data.get("operator", ""),
            priority=data.get("priority", ""),
            threshold=_quantity(data.get("threshold")),
            time_function=data.get("time_function", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NrqlQuery:
    query: str = ""
    since_value: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> NrqlQuery:
        data = data or {}
        return cls(query=data.get("query", ""), since_value=str(data.get("since_value", "")))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Fields copied down from the parent Policy when a condition is generated
DENORMALIZED_CONDITION_FIELDS = ("existing_policy_id", "api_key", "api_key_secret", "region")


@dataclass(frozen=True)
class ConditionSpec:
    """Desired state of one NRQL alert condition."""

    name: str = ""
    type: str = "NRQL"
    nrql: NrqlQuery = field(default_factory=NrqlQuery)
    terms: tuple[AlertConditionTerm, ...] = ()
    runbook_url: str = ""
    value_function: str = ""
    violation_close_timer: int = 0
    expected_groups: int = 0
    ignore_overlap: bool = False
    enabled: bool = False
    id: int = 0
    existing_policy_id: int = 0
    api_key: str = ""
    api_key_secret: APIKeySecret = field(default_factory=APIKeySecret)
    region: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ConditionSpec:
        data = data or {}
        return cls(
            name=data.get("name", ""),
            type=data.get("type", "NRQL"),
            nrql=NrqlQuery.from_dict(data.get("nrql")),
            terms=tuple(AlertConditionTerm.from_dict(t) for t in data.get("terms") or []),
            runbook_url=data.get("runbook_url", ""),
            value_function=data.get("value_function", ""),
            violation_close_timer=int(data.get("violation_close_timer", 0) or 0),
            expected_groups=int(data.get("expected_groups", 0) or 0),
            ignore_overlap=bool(data.get("ignore_overlap", False)),
            enabled=bool(data.get("enabled", False)),
            id=int(data.get("id", 0) or 0),
            existing_policy_id=int(data.get("existing_policy_id", 0) or 0),
            api_key=data.get("api_key", ""),
            api_key_secret=APIKeySecret.from_dict(data.get("api_key_secret")),
            region=data.get("region", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "name": self.name,
            "type": self.type,
            "nrql": self.nrql.to_dict(),
            "terms": [t.to_dict() for t in self.terms],
            "runbook_url": self.runbook_url,
            "value_function": self.value_function,
            "violation_close_timer": self.violation_close_timer,
            "expected_groups": self.expected_groups,
            "ignore_overlap": self.ignore_overlap,
            "enabled": self.enabled,
            "id": self.id,
            "existing_policy_id": self.existing_policy_id,
            "api_key": self.api_key,
            "region": self.region,
        }
        if self.api_key_secret:
            data["api_key_secret"] = self.api_key_secret.to_dict()
        return data

    def semantic_dict(self) -> dict[str, Any]:
        """The user-authored fields, without values copied down from the parent."""
        data = self.to_dict()
        for key in DENORMALIZED_CONDITION_FIELDS:
            data.pop(key, None)
        return data

    def semantic_equal(self, other: ConditionSpec) -> bool:
        return self.semantic_dict() == other.semantic_dict()

    def with_parent(self, policy_id: int, api_key: str, api_key_secret: APIKeySecret, region: str) -> ConditionSpec:
        return replace(
            self,
            existing_policy_id=policy_id,
            api_key=api_key,
            api_key_secret=api_key_secret,
            region=region,
        )

    def to_api(self, condition_id: int = 0) -> NrqlCondition:
        return NrqlCondition(
            id=condition_id,
            name=self.name,
            type="static" if self.type.upper() == "NRQL" else self.type.lower(),
            enabled=self.enabled,
            nrql={"query": self.nrql.query, "since_value": self.nrql.since_value},
            terms=[t.to_dict() for t in self.terms],
            runbook_url=self.runbook_url,
            value_function=self.value_function,
            violation_time_limit_seconds=self.violation_close_timer,
            expected_groups=self.expected_groups,
            ignore_overlap=self.ignore_overlap,
        )


@dataclass(frozen=True)
class PolicyCondition:
    """A condition embedded in a Policy spec.

    `resource_name` is the generated name of the child NrqlAlertCondition
    resource. It is only filled in applied snapshots and never compared.
    """

    spec: ConditionSpec
    resource_name: str = field(default="", compare=False)

    @property
    def key(self) -> str:
        return self.spec.name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyCondition:
        # Both the full object form {"spec": {...}} and a bare spec are accepted
        spec = data.get("spec") if "spec" in data else data
        return cls(
            spec=ConditionSpec.from_dict(spec),
            resource_name=(data.get("metadata") or {}).get("name", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"spec": self.spec.to_dict()}
        if self.resource_name:
            data["metadata"] = {"name": self.resource_name}
        return data


@dataclass(frozen=True)
class PolicySpec:
    name: str = ""
    incident_preference: str = "PER_POLICY"
    conditions: tuple[PolicyCondition, ...] = ()
    api_key: str = ""
    api_key_secret: APIKeySecret = field(default_factory=APIKeySecret)
    region: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PolicySpec:
        data = data or {}
        return cls(
            name=data.get("name", ""),
            incident_preference=data.get("incident_preference") or "PER_POLICY",
            conditions=tuple(PolicyCondition.from_dict(c) for c in data.get("conditions") or []),
            api_key=data.get("api_key", ""),
            api_key_secret=APIKeySecret.from_dict(data.get("api_key_secret")),
            region=data.get("region", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "incident_preference": self.incident_preference,
            "conditions": [c.to_dict() for c in self.conditions],
            "api_key": self.api_key,
            "region": self.region,
        }
        if self.api_key_secret:
            data["api_key_secret"] = self.api_key_secret.to_dict()
        return data

    def to_api(self, policy_id: int = 0) -> AlertPolicy:
        return AlertPolicy(id=policy_id, name=self.name, incident_preference=self.incident_preference)


@dataclass(frozen=True)
class ChannelLinks:
    policy_ids: tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChannelLinks:
        data = data or {}
        return cls(policy_ids=tuple(int(p) for p in data.get("policy_ids") or []))

    def to_dict(self) -> dict[str, Any]:
        return {"policy_ids": list(self.policy_ids)}


@dataclass(frozen=True)
class ChannelSpec:
    name: str = ""
    type: str = ""
    links: ChannelLinks = field(default_factory=ChannelLinks)
    # Kept as sorted key/value pairs so the frozen snapshot stays hashable and comparable
    configuration: tuple[tuple[str, Any], ...] = ()
    api_key: str = ""
    api_key_secret: APIKeySecret = field(default_factory=APIKeySecret)
    region: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChannelSpec:
        data = data or {}
        configuration = data.get("configuration") or {}
        return cls(
            name=data.get("name", ""),
            type=data.get("type", ""),
            links=ChannelLinks.from_dict(data.get("links")),
            configuration=tuple(sorted((k, _freeze(v)) for k, v in configuration.items())),
            api_key=data.get("api_key", ""),
            api_key_secret=APIKeySecret.from_dict(data.get("api_key_secret")),
            region=data.get("region", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "links": self.links.to_dict(),
            "configuration": {k: _thaw(v) for k, v in self.configuration},
            "api_key": self.api_key,
            "region": self.region,
        }
        if self.api_key_secret:
            data["api_key_secret"] = self.api_key_secret.to_dict()
        return data

    def to_api(self, channel_id: int = 0) -> AlertChannel:
        return AlertChannel(
            id=channel_id,
            name=self.name,
            type=self.type,
            configuration={k: _thaw(v) for k, v in self.configuration},
            policy_ids=list(self.links.policy_ids),
        )


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, list):
        return ("__list__",) + tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, tuple):
        if value and value[0] == "__list__":
            return [_thaw(v) for v in value[1:]]
        return {k: _thaw(v) for k, v in value}
    return value


@dataclass(frozen=True)
class PolicyStatus:
    policy_id: int = 0
    applied_spec: PolicySpec | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PolicyStatus:
        data = data or {}
        applied = data.get("applied_spec")
        return cls(
            policy_id=int(data.get("policy_id", 0) or 0),
            applied_spec=PolicySpec.from_dict(applied) if applied is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "policy_id": self.policy_id,
            "applied_spec": self.applied_spec.to_dict() if self.applied_spec is not None else None,
        }


@dataclass(frozen=True)
class ConditionStatus:
    condition_id: int = 0
    applied_spec: ConditionSpec | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ConditionStatus:
        data = data or {}
        applied = data.get("applied_spec")
        return cls(
            condition_id=int(data.get("condition_id", 0) or 0),
            applied_spec=ConditionSpec.from_dict(applied) if applied is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition_id": self.condition_id,
            "applied_spec": self.applied_spec.to_dict() if self.applied_spec is not None else None,
        }


@dataclass(frozen=True)
class ChannelStatus:
    channel_id: int = 0
    applied_spec: ChannelSpec | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChannelStatus:
        data = data or {}
        applied = data.get("applied_spec")
        return cls(
            channel_id=int(data.get("channel_id", 0) or 0),
            applied_spec=ChannelSpec.from_dict(applied) if applied is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "applied_spec": self.applied_spec.to_dict() if self.applied_spec is not None else None,
        }


@dataclass
class ObjectMeta:
    """The subset of Kubernetes object metadata the reconcilers read or write.

    Everything else found in the original metadata (annotations, managedFields,
    creationTimestamp, ...) is carried through untouched on write.
    """

    name: str
    namespace: str = "default"
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    resource_version: str = ""
    generation: int = 0
    owner_references: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_deleting(self) -> bool:
        return bool(self.deletion_timestamp)

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ObjectMeta:
        return cls(
            name=data.get("name", ""),
            namespace=data.get("namespace", "default"),
            uid=data.get("uid", ""),
            labels=dict(data.get("labels") or {}),
            finalizers=list(data.get("finalizers") or []),
            deletion_timestamp=data.get("deletionTimestamp"),
            resource_version=data.get("resourceVersion", ""),
            generation=int(data.get("generation", 0) or 0),
            owner_references=list(data.get("ownerReferences") or []),
            raw=copy.deepcopy(data),
        )

    def to_dict(self) -> dict[str, Any]:
        data = copy.deepcopy(self.raw)
        data.update({"name": self.name, "namespace": self.namespace, "finalizers": list(self.finalizers)})
        optional = {
            "uid": self.uid,
            "labels": dict(self.labels),
            "resourceVersion": self.resource_version,
            "ownerReferences": list(self.owner_references),
            "deletionTimestamp": self.deletion_timestamp,
        }
        for key, value in optional.items():
            if value:
                data[key] = value
            else:
                data.pop(key, None)
        return data

    def as_event_target(self, kind: str) -> dict[str, Any]:
        """Minimal object reference accepted by kopf.event."""
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": kind,
            "metadata": {"name": self.name, "namespace": self.namespace, "uid": self.uid},
        }


@dataclass
class Resource:
    """Common body conversion for the operator's custom resources."""

    kind: ClassVar[str]
    spec_type: ClassVar[type]
    status_type: ClassVar[type]

    metadata: ObjectMeta
    spec: Any
    status: Any

    @classmethod
    def from_body(cls, body: dict[str, Any]):
        return cls(
            metadata=ObjectMeta.from_dict(body.get("metadata") or {}),
            spec=cls.spec_type.from_dict(body.get("spec")),
            status=cls.status_type.from_dict(body.get("status")),
        )

    def to_body(self) -> dict[str, Any]:
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": self.kind,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def is_synced(self) -> bool:
        return self.spec == self.status.applied_spec


@dataclass
class Policy(Resource):
    kind: ClassVar[str] = KIND_POLICY
    spec_type: ClassVar[type] = PolicySpec
    status_type: ClassVar[type] = PolicyStatus

    spec: PolicySpec = field(default_factory=PolicySpec)
    status: PolicyStatus = field(default_factory=PolicyStatus)


@dataclass
class NrqlAlertCondition(Resource):
    kind: ClassVar[str] = KIND_CONDITION
    spec_type: ClassVar[type] = ConditionSpec
    status_type: ClassVar[type] = ConditionStatus

    spec: ConditionSpec = field(default_factory=ConditionSpec)
    status: ConditionStatus = field(default_factory=ConditionStatus)


@dataclass
class AlertsChannel(Resource):
    kind: ClassVar[str] = KIND_CHANNEL
    spec_type: ClassVar[type] = ChannelSpec
    status_type: ClassVar[type] = ChannelStatus

    spec: ChannelSpec = field(default_factory=ChannelSpec)
    status: ChannelStatus = field(default_factory=ChannelStatus)
