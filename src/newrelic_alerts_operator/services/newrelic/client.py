"""New Relic Alerts REST API (v2) client implementation."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from ... import metrics
from ...constants import REQUEST_TIMEOUT_SECONDS
from ...utils.errors import NewRelicAPIError
from ...utils.rate_limit import newrelic_limiter
from .models import AlertChannel, AlertPolicy, NrqlCondition

logger = logging.getLogger(__name__)


class NewRelicAlertsClient:
    """Alerts client bound to one API key and one region endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: New Relic REST API key
            base_url: REST v2 base URL of the account's region
            timeout: Timeout in seconds applied to every request
            session: Optional pre-built session (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-Api-Key": api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        url: str | None = None,
    ) -> requests.Response:
        """Issue one HTTP request, raising NewRelicAPIError for non-2xx responses."""
        start_time = time.time()
        try:
            newrelic_limiter.wait()
            response = self.session.request(
                method,
                url or f"{self.base_url}{path}",
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            metrics.api_call_total.labels(api_type="newrelic", operation=operation, result="error").inc()
            raise NewRelicAPIError(0, str(e), operation=operation) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="newrelic", operation=operation).observe(duration)

        if not response.ok:
            metrics.api_call_total.labels(api_type="newrelic", operation=operation, result="error").inc()
            raise NewRelicAPIError(response.status_code, response.text[:500], operation=operation)

        metrics.api_call_total.labels(api_type="newrelic", operation=operation, result="success").inc()
        return response

    def _list(self, path: str, operation: str, key: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Collect every page of a list endpoint by following the Link header."""
        items: list[dict[str, Any]] = []
        response = self._request("GET", path, operation, params=params)
        while True:
            items.extend(response.json().get(key, []))
            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                return items
            response = self._request("GET", path, operation, url=next_url)

    # Policies

    def list_policies(self, name: str | None = None) -> list[AlertPolicy]:
        """List alert policies, filtered server-side by name when given."""
        params = {"filter[name]": name} if name else None
        data = self._list("/alerts_policies.json", "list_policies", "policies", params=params)
        return [AlertPolicy.from_payload(p) for p in data]

    def create_policy(self, policy: AlertPolicy) -> AlertPolicy:
        response = self._request("POST", "/alerts_policies.json", "create_policy", json=policy.to_payload())
        created = AlertPolicy.from_payload(response.json().get("policy", {}))
        logger.info(f"Created alert policy {created.name} with id {created.id}")
        return created

    def update_policy(self, policy: AlertPolicy) -> AlertPolicy:
        response = self._request(
            "PUT", f"/alerts_policies/{policy.id}.json", "update_policy", json=policy.to_payload()
        )
        return AlertPolicy.from_payload(response.json().get("policy", {}))

    def delete_policy(self, policy_id: int) -> None:
        self._request("DELETE", f"/alerts_policies/{policy_id}.json", "delete_policy")
        logger.info(f"Deleted alert policy {policy_id}")

    # NRQL conditions

    def list_nrql_conditions(self, policy_id: int) -> list[NrqlCondition]:
        data = self._list(
            "/alerts_nrql_conditions.json",
            "list_nrql_conditions",
            "nrql_conditions",
            params={"policy_id": policy_id},
        )
        return [NrqlCondition.from_payload(c) for c in data]

    def create_nrql_condition(self, policy_id: int, condition: NrqlCondition) -> NrqlCondition:
        response = self._request(
            "POST",
            f"/alerts_nrql_conditions/policies/{policy_id}.json",
            "create_nrql_condition",
            json=condition.to_payload(),
        )
        return NrqlCondition.from_payload(response.json().get("nrql_condition", {}))

    def update_nrql_condition(self, condition: NrqlCondition) -> NrqlCondition:
        response = self._request(
            "PUT",
            f"/alerts_nrql_conditions/{condition.id}.json",
            "update_nrql_condition",
            json=condition.to_payload(),
        )
        return NrqlCondition.from_payload(response.json().get("nrql_condition", {}))

    def delete_nrql_condition(self, condition_id: int) -> None:
        self._request("DELETE", f"/alerts_nrql_conditions/{condition_id}.json", "delete_nrql_condition")

    # Channels

    def list_channels(self, name: str | None = None) -> list[AlertChannel]:
        """List notification channels; the API has no name filter so it is applied here."""
        data = self._list("/alerts_channels.json", "list_channels", "channels")
        channels = [AlertChannel.from_payload(c) for c in data]
        if name:
            channels = [c for c in channels if c.name == name]
        return channels

    def create_channel(self, channel: AlertChannel) -> AlertChannel:
        response = self._request("POST", "/alerts_channels.json", "create_channel", json=channel.to_payload())
        # The create endpoint answers with a list holding the single new channel
        created = (response.json().get("channels") or [{}])[0]
        result = AlertChannel.from_payload(created)
        if channel.policy_ids:
            self.link_channel_to_policies(result.id, channel.policy_ids)
            result.policy_ids = list(channel.policy_ids)
        return result

    def update_channel(self, channel: AlertChannel) -> AlertChannel:
        """Replace a channel.

        Channels cannot be modified in place through the REST API, so the old
        channel is deleted and a new one created; the returned channel carries
        the new ID. An old channel that is already gone does not stop the
        create, so a replace interrupted between the two calls can be retried.
        """
        if channel.id:
            try:
                self.delete_channel(channel.id)
            except NewRelicAPIError as e:
                if not e.is_not_found:
                    raise
                logger.info(f"Channel {channel.id} already deleted, creating its replacement")
        return self.create_channel(AlertChannel(
            name=channel.name,
            type=channel.type,
            configuration=channel.configuration,
            policy_ids=channel.policy_ids,
        ))

    def delete_channel(self, channel_id: int) -> None:
        self._request("DELETE", f"/alerts_channels/{channel_id}.json", "delete_channel")

    def link_channel_to_policies(self, channel_id: int, policy_ids: list[int]) -> None:
        for policy_id in policy_ids:
            self._request(
                "PUT",
                "/alerts_policy_channels.json",
                "link_policy_channel",
                params={"policy_id": policy_id, "channel_ids": channel_id},
            )
