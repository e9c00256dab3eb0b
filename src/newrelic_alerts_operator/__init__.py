"""Kubernetes operator that keeps New Relic alert policies, NRQL conditions and channels in sync."""

__version__ = "0.1.0"
