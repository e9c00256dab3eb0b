"""New Relic Alerts REST API client, models and test double."""
