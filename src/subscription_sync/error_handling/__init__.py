"""
Error types for the subscription sync tool.
"""

from .exceptions import (
    SubscriptionSyncError, ConfigurationError, AuthorizationError,
    ManifestError, ManifestNotFoundError, ManifestFormatError,
    GitHubAPIError, InvalidStatusError
)

__all__ = [
    "SubscriptionSyncError",
    "ConfigurationError",
    "AuthorizationError",
    "ManifestError",
    "ManifestNotFoundError",
    "ManifestFormatError",
    "GitHubAPIError",
    "InvalidStatusError"
]
