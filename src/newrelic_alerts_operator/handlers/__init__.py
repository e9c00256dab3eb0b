"""Reconcilers for the operator's custom resources."""

from .base import BaseReconciler, run_handler
from .channel import ChannelReconciler
from .condition import ConditionReconciler
from .policy import PolicyReconciler

__all__ = [
    "BaseReconciler",
    "ChannelReconciler",
    "ConditionReconciler",
    "PolicyReconciler",
    "run_handler",
]
