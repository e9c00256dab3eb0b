"""Tests for the in-memory alerts client."""

from __future__ import annotations

import pytest

from newrelic_alerts_operator.services.newrelic.fake import FakeAlertsClient
from newrelic_alerts_operator.services.newrelic.models import AlertPolicy
from newrelic_alerts_operator.utils.errors import NewRelicAPIError


class TestFakeAlertsClient:
    """Test cases for FakeAlertsClient."""

    def test_sequential_ids_and_counters(self):
        client = FakeAlertsClient(first_id=10)
        a = client.create_policy(AlertPolicy(name="a"))
        b = client.create_policy(AlertPolicy(name="b"))
        assert (a.id, b.id) == (11, 12)
        assert client.create_policy_call_count == 2
        assert client.total_call_count == 2

    def test_stub_overrides_default(self):
        client = FakeAlertsClient()
        client.update_policy_stub = lambda policy: AlertPolicy(name=policy.name, id=99)
        assert client.update_policy(AlertPolicy(name="a", id=1)).id == 99

    def test_missing_object_is_404(self):
        client = FakeAlertsClient()
        with pytest.raises(NewRelicAPIError) as exc_info:
            client.delete_policy(1)
        assert exc_info.value.is_not_found

    def test_shared_call_log(self):
        log = []
        client = FakeAlertsClient(call_log=log)
        client.list_policies("a")
        client.delete_channel_stub = lambda channel_id: None
        client.delete_channel(3)
        assert log == [("remote.list_policies", "a"), ("remote.delete_channel", 3)]

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            FakeAlertsClient().unknown_call_count
