"""Utility functions for the New Relic Alerts Operator."""
