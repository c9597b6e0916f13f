"""
GitHub API access for subscription management.
"""

from .github_client import GitHubClient, SubscriptionClient, RateLimitInfo

__all__ = [
    "GitHubClient",
    "SubscriptionClient",
    "RateLimitInfo"
]
