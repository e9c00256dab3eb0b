"""Tests for the alerts client builder."""

from __future__ import annotations

import pytest

from newrelic_alerts_operator.builders import create_alerts_client
from newrelic_alerts_operator.services.newrelic.client import NewRelicAlertsClient


class TestCreateAlertsClient:
    """Test cases for create_alerts_client function."""

    def test_us_region(self):
        client = create_alerts_client("NRAK-TESTKEY123456", "US")
        assert isinstance(client, NewRelicAlertsClient)
        assert client.base_url == "https://api.newrelic.com/v2"
        assert client.session.headers["X-Api-Key"] == "NRAK-TESTKEY123456"

    def test_eu_region_case_insensitive(self):
        assert create_alerts_client("NRAK-TESTKEY123456", "eu").base_url == "https://api.eu.newrelic.com/v2"

    def test_blank_region_defaults_to_us(self):
        assert create_alerts_client("NRAK-TESTKEY123456", "").base_url == "https://api.newrelic.com/v2"

    def test_unknown_region(self):
        with pytest.raises(ValueError, match="Unsupported region"):
            create_alerts_client("NRAK-TESTKEY123456", "APAC")

    def test_blank_key(self):
        with pytest.raises(ValueError, match="blank"):
            create_alerts_client("", "US")

    def test_new_client_every_call(self):
        assert create_alerts_client("NRAK-A00000000", "US") is not create_alerts_client("NRAK-A00000000", "US")
