"""Deterministic in-memory AlertsClient for tests.

Every operation counts its calls, records its arguments and can be stubbed:
assigning a callable to ``<operation>_stub`` replaces the default behaviour,
which keeps remote objects in plain dictionaries and hands out sequential IDs.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

from ...utils.errors import NewRelicAPIError
from .models import AlertChannel, AlertPolicy, NrqlCondition

OPERATIONS = (
    "list_policies",
    "create_policy",
    "update_policy",
    "delete_policy",
    "list_nrql_conditions",
    "create_nrql_condition",
    "update_nrql_condition",
    "delete_nrql_condition",
    "list_channels",
    "create_channel",
    "update_channel",
    "delete_channel",
)


class FakeAlertsClient:
    """AlertsClient test double with call counters and stubbable responses."""

    def __init__(self, call_log: list[tuple[str, Any]] | None = None, first_id: int = 1000):
        self.policies: dict[int, AlertPolicy] = {}
        self.conditions: dict[int, tuple[int, NrqlCondition]] = {}
        self.channels: dict[int, AlertChannel] = {}
        self.call_log = call_log if call_log is not None else []
        self.calls: dict[str, list[tuple[Any, ...]]] = {op: [] for op in OPERATIONS}
        self._next_id = first_id
        for op in OPERATIONS:
            setattr(self, f"{op}_stub", None)

    def __getattr__(self, item: str) -> int:
        # <operation>_call_count
        if item.endswith("_call_count") and item[: -len("_call_count")] in OPERATIONS:
            return len(self.calls[item[: -len("_call_count")]])
        raise AttributeError(item)

    @property
    def total_call_count(self) -> int:
        return sum(len(c) for c in self.calls.values())

    def _record(self, op: str, *args: Any) -> Callable[..., Any] | None:
        self.calls[op].append(args)
        self.call_log.append((f"remote.{op}", args[0] if len(args) == 1 else args))
        return getattr(self, f"{op}_stub")

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def list_policies(self, name: str | None = None) -> list[AlertPolicy]:
        stub = self._record("list_policies", name)
        if stub:
            return stub(name)
        return [p for p in self.policies.values() if name is None or p.name == name]

    def create_policy(self, policy: AlertPolicy) -> AlertPolicy:
        stub = self._record("create_policy", policy)
        if stub:
            return stub(policy)
        created = replace(policy, id=self._new_id())
        self.policies[created.id] = created
        return created

    def update_policy(self, policy: AlertPolicy) -> AlertPolicy:
        stub = self._record("update_policy", policy)
        if stub:
            return stub(policy)
        if policy.id not in self.policies:
            raise NewRelicAPIError(404, f"policy {policy.id} not found", operation="update_policy")
        self.policies[policy.id] = policy
        return policy

    def delete_policy(self, policy_id: int) -> None:
        stub = self._record("delete_policy", policy_id)
        if stub:
            return stub(policy_id)
        if self.policies.pop(policy_id, None) is None:
            raise NewRelicAPIError(404, f"policy {policy_id} not found", operation="delete_policy")

    def list_nrql_conditions(self, policy_id: int) -> list[NrqlCondition]:
        stub = self._record("list_nrql_conditions", policy_id)
        if stub:
            return stub(policy_id)
        return [c for pid, c in self.conditions.values() if pid == policy_id]

    def create_nrql_condition(self, policy_id: int, condition: NrqlCondition) -> NrqlCondition:
        stub = self._record("create_nrql_condition", policy_id, condition)
        if stub:
            return stub(policy_id, condition)
        created = replace(condition, id=self._new_id())
        self.conditions[created.id] = (policy_id, created)
        return created

    def update_nrql_condition(self, condition: NrqlCondition) -> NrqlCondition:
        stub = self._record("update_nrql_condition", condition)
        if stub:
            return stub(condition)
        if condition.id not in self.conditions:
            raise NewRelicAPIError(404, f"condition {condition.id} not found", operation="update_nrql_condition")
        policy_id, _ = self.conditions[condition.id]
        self.conditions[condition.id] = (policy_id, condition)
        return condition

    def delete_nrql_condition(self, condition_id: int) -> None:
        stub = self._record("delete_nrql_condition", condition_id)
        if stub:
            return stub(condition_id)
        if self.conditions.pop(condition_id, None) is None:
            raise NewRelicAPIError(404, f"condition {condition_id} not found", operation="delete_nrql_condition")

    def list_channels(self, name: str | None = None) -> list[AlertChannel]:
        stub = self._record("list_channels", name)
        if stub:
            return stub(name)
        return [c for c in self.channels.values() if name is None or c.name == name]

    def create_channel(self, channel: AlertChannel) -> AlertChannel:
        stub = self._record("create_channel", channel)
        if stub:
            return stub(channel)
        created = replace(channel, id=self._new_id())
        self.channels[created.id] = created
        return created

    def update_channel(self, channel: AlertChannel) -> AlertChannel:
        stub = self._record("update_channel", channel)
        if stub:
            return stub(channel)
        # Delete then create, like the REST client; a stubbed create fails the second half
        self.channels.pop(channel.id, None)
        if self.create_channel_stub:
            return self.create_channel_stub(replace(channel, id=0))
        replaced = replace(channel, id=self._new_id())
        self.channels[replaced.id] = replaced
        return replaced

    def delete_channel(self, channel_id: int) -> None:
        stub = self._record("delete_channel", channel_id)
        if stub:
            return stub(channel_id)
        if self.channels.pop(channel_id, None) is None:
            raise NewRelicAPIError(404, f"channel {channel_id} not found", operation="delete_channel")
