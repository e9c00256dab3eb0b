"""Reconciler for AlertsChannel resources."""

from __future__ import annotations

from dataclasses import replace

from .. import metrics
from ..builders.alerts import create_alerts_client
from ..constants import CHANNEL_FINALIZER, KIND_CHANNEL
from ..models import AlertsChannel, ChannelStatus
from ..services.newrelic.models import AlertChannel
from ..store import ObjectStore
from ..tracing import trace_span
from ..utils.context import ReconcileContext
from ..utils.errors import NewRelicAPIError, ValidationError
from ..utils.events import emit_remote_adopted, emit_remote_created, emit_remote_updated
from .base import BaseReconciler, ClientFactory


class ChannelReconciler(BaseReconciler):
    """Keeps a notification channel in New Relic in line with its resource.

    The REST API cannot modify a channel, so a changed spec replaces the remote
    channel and the new id is recorded.
    """

    resource_type = AlertsChannel

    def __init__(self, store: ObjectStore, client_factory: ClientFactory = create_alerts_client):
        super().__init__(KIND_CHANNEL, store, client_factory, CHANNEL_FINALIZER)

    def sync(self, channel: AlertsChannel, ctx: ReconcileContext) -> None:
        if not channel.spec.name or not channel.spec.type:
            raise ValidationError("channel name and type are required")

        channel_id = channel.status.channel_id
        adopted = False
        if channel_id == 0:
            existing = self.discover(channel, ctx)
            if existing is not None:
                channel_id = existing.id
                # A channel of another type cannot be reused as is
                adopted = existing.type == channel.spec.type

        if channel_id == 0:
            channel_id = self._remote(channel, ctx, "create", lambda: ctx.client.create_channel(channel.spec.to_api()))
            emit_remote_created(channel.metadata.as_event_target(self.kind), "channel", channel_id)
        elif not adopted:
            try:
                channel_id = self._remote(
                    channel, ctx, "update", lambda: ctx.client.update_channel(channel.spec.to_api(channel_id))
                )
            except NewRelicAPIError as e:
                if e.operation != "delete_channel":
                    # Old channel is gone; the next pass discovers or recreates it
                    self._forget_remote(channel)
                raise
            emit_remote_updated(channel.metadata.as_event_target(self.kind), "channel", channel_id)

        channel.status = ChannelStatus(channel_id=channel_id, applied_spec=channel.spec)
        self.persist(channel)

    def _forget_remote(self, channel: AlertsChannel) -> None:
        if channel.status.channel_id == 0:
            return
        self.log_warning(channel.metadata, f"Channel {channel.status.channel_id} was removed by a failed replace",
                         reason="ReplaceInterrupted", channel_id=channel.status.channel_id)
        channel.status = replace(channel.status, channel_id=0)
        self.persist(channel)

    def _remote(self, channel: AlertsChannel, ctx: ReconcileContext, operation: str, call) -> int:
        with trace_span(f"{operation}_channel", kind=self.kind, attributes={"channel.name": channel.spec.name}):
            try:
                result = call()
            except NewRelicAPIError as e:
                metrics.remote_operations_total.labels(kind=self.kind, operation=operation, result="failed").inc()
                self.log_remote_failure(channel, ctx, f"Failed to {operation} channel via New Relic API", e,
                                        channel_id=channel.status.channel_id)
                raise
        metrics.remote_operations_total.labels(kind=self.kind, operation=operation, result="success").inc()
        return result.id

    def discover(self, channel: AlertsChannel, ctx: ReconcileContext) -> AlertChannel | None:
        """Return the remote channel with exactly the same name, if any."""
        try:
            existing = ctx.client.list_channels(channel.spec.name)
        except NewRelicAPIError as e:
            self.log_remote_failure(channel, ctx, "Failed to list existing channels", e,
                                    channel_name=channel.spec.name)
            raise

        for remote in existing:
            if remote.name == channel.spec.name:
                emit_remote_adopted(channel.metadata.as_event_target(self.kind), "channel", remote.id)
                return remote
        return None

    def finalize(self, channel: AlertsChannel, ctx: ReconcileContext) -> None:
        if not channel.metadata.has_finalizer(self.finalizer):
            return

        channel_id = channel.status.channel_id
        if channel_id != 0:
            self.delete_remote(channel, ctx, "channel", channel_id, ctx.client.delete_channel)
        self.remove_finalizer(channel)
