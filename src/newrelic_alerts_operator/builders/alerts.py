"""Builder for New Relic alerts client instances."""

from __future__ import annotations

from ..constants import REGION_BASE_URLS, REGION_US
from ..services.newrelic.base import AlertsClient
from ..services.newrelic.client import NewRelicAlertsClient


def create_alerts_client(api_key: str, region: str) -> AlertsClient:
    """Create an alerts client bound to an API key and region.

    Args:
        api_key: New Relic REST API key
        region: Account region ("US" or "EU", case-insensitive, empty means US)

    Returns:
        Configured alerts client

    Raises:
        ValueError: If the key is blank or the region is unknown
    """
    if not api_key:
        raise ValueError("api key is blank")

    region_key = (region or REGION_US).upper()
    base_url = REGION_BASE_URLS.get(region_key)
    if base_url is None:
        raise ValueError(f"Unsupported region: {region}")

    return NewRelicAlertsClient(api_key=api_key, base_url=base_url)
