"""Builders for alerting clients."""

from .alerts import create_alerts_client

__all__ = ["create_alerts_client"]
