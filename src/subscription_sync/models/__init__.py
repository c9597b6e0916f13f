"""
Data models for the subscription sync tool.
"""

from .subscription import (
    SubscriptionStatus, ViewerSubscription, SubscriptionRecord,
    RemoteSubscriptionState, status_value
)

__all__ = [
    "SubscriptionStatus",
    "ViewerSubscription",
    "SubscriptionRecord",
    "RemoteSubscriptionState",
    "status_value"
]
