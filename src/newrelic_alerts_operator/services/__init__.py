"""Remote alerting service clients."""
