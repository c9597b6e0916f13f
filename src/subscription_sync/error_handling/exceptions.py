"""
Custom exceptions for the subscription sync tool.
"""

from typing import Optional, Dict, Any, List


class SubscriptionSyncError(Exception):
    """
    Base exception for all subscription sync errors.

    Every error the tool raises on purpose derives from this class, so the
    command line layer can report it uniformly and exit non-zero.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize subscription sync error.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [self.message]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        if self.cause:
            parts.append(f"Caused by: {self.cause}")

        return " | ".join(parts)


class ConfigurationError(SubscriptionSyncError):
    """
    Exception for configuration errors.

    Raised when a required setting (token, organization) is missing or a
    configured value is out of range.
    """

    def __init__(
        self,
        message: str,
        config_section: Optional[str] = None,
        config_key: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if config_section:
            context['config_section'] = config_section
        if config_key:
            context['config_key'] = config_key

        kwargs['context'] = context
        super().__init__(message, **kwargs)

        self.config_section = config_section
        self.config_key = config_key


class AuthorizationError(SubscriptionSyncError):
    """Raised when the authenticated user may not act on the organization."""

    def __init__(
        self,
        message: str,
        organization: Optional[str] = None,
        user: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if organization:
            context['organization'] = organization
        if user:
            context['user'] = user

        kwargs['context'] = context
        super().__init__(message, **kwargs)

        self.organization = organization
        self.user = user


class ManifestError(SubscriptionSyncError):
    """
    Exception for manifest file errors.

    Base class for everything that can go wrong reading or writing the
    local subscription manifest.
    """

    def __init__(
        self,
        message: str,
        manifest_path: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if manifest_path:
            context['manifest_path'] = manifest_path

        kwargs['context'] = context
        super().__init__(message, **kwargs)

        self.manifest_path = manifest_path


class ManifestNotFoundError(ManifestError):
    """Raised when an operation needs the manifest and the file is absent."""


class ManifestFormatError(ManifestError):
    """
    Raised when the manifest exists but is not a valid subscription list.

    ``invalid_entries`` holds the zero-based indexes of offending records.
    """

    def __init__(
        self,
        message: str,
        manifest_path: Optional[str] = None,
        invalid_entries: Optional[List[int]] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if invalid_entries:
            context['invalid_entries'] = invalid_entries

        kwargs['context'] = context
        super().__init__(message, manifest_path=manifest_path, **kwargs)

        self.invalid_entries = invalid_entries or []


class GitHubAPIError(SubscriptionSyncError):
    """
    Exception for GitHub API errors.

    Raised for non-2xx responses, GraphQL error payloads and transport
    failures. The tool never retries, so this always ends the operation
    unless the caller explicitly isolates per-repository failures.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
        url: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if status_code:
            context['status_code'] = status_code
        if url:
            context['url'] = url

        kwargs['context'] = context
        super().__init__(message, **kwargs)

        self.status_code = status_code
        self.response_data = response_data
        self.url = url


class InvalidStatusError(SubscriptionSyncError):
    """Raised when update meets a manifest status it cannot act on."""

    def __init__(
        self,
        message: str,
        repo: Optional[str] = None,
        status: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if repo:
            context['repo'] = repo
        if status is not None:
            context['status'] = status

        kwargs['context'] = context
        super().__init__(message, **kwargs)

        self.repo = repo
        self.status = status
