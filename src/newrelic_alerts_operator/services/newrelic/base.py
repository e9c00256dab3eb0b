"""Base alerting client interface."""

from __future__ import annotations

from typing import Protocol

from .models import AlertChannel, AlertPolicy, NrqlCondition


class AlertsClient(Protocol):
    """Protocol defining the remote alerting operations the reconcilers rely on."""

    def list_policies(self, name: str | None = None) -> list[AlertPolicy]:
        """List alert policies, optionally filtered by name."""
        ...

    def create_policy(self, policy: AlertPolicy) -> AlertPolicy:
        """Create a policy and return it with its assigned ID."""
        ...

    def update_policy(self, policy: AlertPolicy) -> AlertPolicy:
        """Update the policy identified by policy.id."""
        ...

    def delete_policy(self, policy_id: int) -> None:
        """Delete a policy."""
        ...

    def list_nrql_conditions(self, policy_id: int) -> list[NrqlCondition]:
        """List the NRQL conditions of a policy."""
        ...

    def create_nrql_condition(self, policy_id: int, condition: NrqlCondition) -> NrqlCondition:
        """Create a NRQL condition under a policy."""
        ...

    def update_nrql_condition(self, condition: NrqlCondition) -> NrqlCondition:
        """Update the NRQL condition identified by condition.id."""
        ...

    def delete_nrql_condition(self, condition_id: int) -> None:
        """Delete a NRQL condition."""
        ...

    def list_channels(self, name: str | None = None) -> list[AlertChannel]:
        """List notification channels, optionally filtered by name."""
        ...

    def create_channel(self, channel: AlertChannel) -> AlertChannel:
        """Create a notification channel."""
        ...

    def update_channel(self, channel: AlertChannel) -> AlertChannel:
        """Replace the channel identified by channel.id, returning the current channel."""
        ...

    def delete_channel(self, channel_id: int) -> None:
        """Delete a notification channel."""
        ...
