"""Models for New Relic Alerts REST API payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AlertPolicy:
    """An alert policy as exchanged with /alerts_policies."""

    name: str
    incident_preference: str = "PER_POLICY"
    id: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {"policy": {"name": self.name, "incident_preference": self.incident_preference}}

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> AlertPolicy:
        return cls(
            id=int(data.get("id", 0)),
            name=data.get("name", ""),
            incident_preference=data.get("incident_preference", "PER_POLICY"),
        )


@dataclass
class NrqlCondition:
    """A NRQL alert condition as exchanged with /alerts_nrql_conditions."""

    name: str
    nrql: dict[str, Any]
    terms: list[dict[str, Any]] = field(default_factory=list)
    type: str = "static"
    enabled: bool = True
    runbook_url: str = ""
    value_function: str = ""
    violation_time_limit_seconds: int = 0
    expected_groups: int = 0
    ignore_overlap: bool = False
    id: int = 0

    def to_payload(self) -> dict[str, Any]:
        condition: dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "enabled": self.enabled,
            "terms": self.terms,
            "nrql": self.nrql,
        }
        if self.runbook_url:
            condition["runbook_url"] = self.runbook_url
        if self.value_function:
            condition["value_function"] = self.value_function
        if self.violation_time_limit_seconds:
            condition["violation_time_limit_seconds"] = self.violation_time_limit_seconds
        if self.expected_groups:
            condition["expected_groups"] = self.expected_groups
        if self.ignore_overlap:
            condition["ignore_overlap"] = self.ignore_overlap
        return {"nrql_condition": condition}

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> NrqlCondition:
        return cls(
            id=int(data.get("id", 0)),
            name=data.get("name", ""),
            nrql=data.get("nrql", {}),
            terms=data.get("terms", []),
            type=data.get("type", "static"),
            enabled=data.get("enabled", True),
            runbook_url=data.get("runbook_url", ""),
            value_function=data.get("value_function", ""),
            violation_time_limit_seconds=int(data.get("violation_time_limit_seconds", 0)),
            expected_groups=int(data.get("expected_groups", 0)),
            ignore_overlap=bool(data.get("ignore_overlap", False)),
        )


@dataclass
class AlertChannel:
    """A notification channel as exchanged with /alerts_channels."""

    name: str
    type: str
    configuration: dict[str, Any] = field(default_factory=dict)
    policy_ids: list[int] = field(default_factory=list)
    id: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "channel": {
                "name": self.name,
                "type": self.type,
                "configuration": self.configuration,
            }
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> AlertChannel:
        return cls(
            id=int(data.get("id", 0)),
            name=data.get("name", ""),
            type=data.get("type", ""),
            configuration=data.get("configuration", {}),
            policy_ids=list(data.get("links", {}).get("policy_ids", [])),
        )
