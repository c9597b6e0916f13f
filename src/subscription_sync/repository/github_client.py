"""
GitHub API client for reading and changing repository watch settings.
"""

import requests
import logging
from typing import Dict, Any, Iterator, Optional, Protocol
from dataclasses import dataclass
from datetime import datetime
import json

from .. import __version__
from ..config import GitHubConfig
from ..error_handling import GitHubAPIError
from ..models import RemoteSubscriptionState

logger = logging.getLogger(__name__)

RATE_LIMIT_WARNING_THRESHOLD = 10

ORG_REPOSITORIES_QUERY = """
query($login: String!, $first: Int!, $after: String) {
  organization(login: $login) {
    repositories(first: $first, after: $after, orderBy: {field: NAME, direction: ASC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        nameWithOwner
        viewerSubscription
        isArchived
      }
    }
  }
}
"""


@dataclass
class RateLimitInfo:
    """GitHub API rate limit information."""
    limit: int
    remaining: int
    reset_time: datetime
    used: int


class SubscriptionClient(Protocol):
    """Capabilities the reconciliation engine needs from a GitHub client."""

    def iter_org_repositories(self, org: str, page_size: Optional[int] = None) -> Iterator[RemoteSubscriptionState]:
        ...

    def set_subscribed(self, repo: str) -> None:
        ...

    def delete_subscription(self, repo: str) -> None:
        ...

    def set_ignored(self, repo: str) -> None:
        ...

    def is_org_member(self, org: str) -> bool:
        ...

    def get_authenticated_user(self) -> str:
        ...


class GitHubClient:
    """
    GitHub API client for subscription management.

    Repository listing goes through the GraphQL API, subscription changes
    and the membership check through REST. Requests are made one at a time
    and are never retried: any failure raises ``GitHubAPIError``.
    """

    def __init__(self, config: GitHubConfig, session: Optional[requests.Session] = None):
        """
        Initialize GitHub API client.

        Args:
            config: GitHub section of the application configuration
            session: Optional pre-built session (tests pass a fake)
        """
        self.access_token = config.access_token
        self.base_url = config.api_base_url
        self.graphql_url = config.graphql_url
        self.timeout = config.timeout
        self.page_size = config.page_size

        self.session = session or requests.Session()
        self._setup_session()

        self._rate_limit_info: Optional[RateLimitInfo] = None

    def _setup_session(self) -> None:
        """Set up the requests session with headers and authentication."""
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"github-subscription-sync/{__version__}"
        }

        if self.access_token:
            headers["Authorization"] = f"bearer {self.access_token}"

        self.session.headers.update(headers)

    def _make_request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Make a single request to the GitHub API.

        Args:
            method: HTTP method (GET, PUT, DELETE, POST)
            url: Absolute URL, or an endpoint relative to the REST base URL
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            GitHubAPIError: If the request fails or returns a non-2xx status
        """
        if not url.startswith(("http://", "https://")):
            url = f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"

        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                timeout=self.timeout,
                **kwargs
            )
        except requests.exceptions.RequestException as e:
            raise GitHubAPIError(f"Request to {url} failed: {e}", url=url, cause=e) from e

        self._update_rate_limit_info(response)

        if not response.ok:
            error_data = None
            try:
                error_data = response.json()
            except (json.JSONDecodeError, ValueError):
                pass

            error_message = f"GitHub API request failed: {method} {url} returned {response.status_code}"
            if isinstance(error_data, dict) and "message" in error_data:
                error_message += f" - {error_data['message']}"

            raise GitHubAPIError(
                error_message,
                status_code=response.status_code,
                response_data=error_data,
                url=url
            )

        return response

    def _update_rate_limit_info(self, response: requests.Response) -> None:
        """
        Record rate limit information from response headers.

        Args:
            response: HTTP response object
        """
        headers = response.headers

        if "X-RateLimit-Limit" not in headers:
            return

        self._rate_limit_info = RateLimitInfo(
            limit=int(headers["X-RateLimit-Limit"]),
            remaining=int(headers.get("X-RateLimit-Remaining", 0)),
            reset_time=datetime.fromtimestamp(int(headers.get("X-RateLimit-Reset", 0))),
            used=int(headers.get("X-RateLimit-Used", 0))
        )

        if self._rate_limit_info.remaining < RATE_LIMIT_WARNING_THRESHOLD:
            logger.warning(
                f"GitHub rate limit nearly exhausted: {self._rate_limit_info.remaining} "
                f"requests left until {self._rate_limit_info.reset_time:%H:%M:%S}"
            )

    def get_rate_limit_info(self) -> Optional[RateLimitInfo]:
        """
        Get the rate limit information of the most recent response.

        Returns:
            Rate limit information or None if not available
        """
        return self._rate_limit_info

    def _json(self, response: requests.Response, url: str) -> Dict[str, Any]:
        """
        Decode a successful response body that must be a JSON object.

        Raises:
            GitHubAPIError: If the body is not JSON or not an object
        """
        try:
            payload = response.json()
        except ValueError as e:
            raise GitHubAPIError(
                f"GitHub API returned a non-JSON body from {url}",
                status_code=response.status_code,
                url=url,
                cause=e
            ) from e

        if not isinstance(payload, dict):
            raise GitHubAPIError(
                f"GitHub API returned {type(payload).__name__} instead of an object from {url}",
                status_code=response.status_code,
                response_data=payload,
                url=url
            )
        return payload

    def get_authenticated_user(self) -> str:
        """
        Return the login of the user the token belongs to.

        Raises:
            GitHubAPIError: If authentication fails
        """
        try:
            response = self._make_request("GET", "/user")
        except GitHubAPIError as e:
            if e.status_code == 401:
                logger.error("GitHub authentication failed: invalid or missing access token")
            raise

        login = self._json(response, "/user").get("login", "unknown")
        logger.info(f"Authenticated as GitHub user: {login}")
        return login

    def is_org_member(self, org: str) -> bool:
        """
        Check whether the authenticated user is an active member of ``org``.

        Args:
            org: Organization login

        Returns:
            True for an active membership, False when there is none

        Raises:
            GitHubAPIError: For failures other than "no membership"
        """
        try:
            response = self._make_request("GET", f"/user/memberships/orgs/{org}")
        except GitHubAPIError as e:
            if e.status_code in (403, 404):
                logger.info(f"No membership in organization {org} ({e.status_code})")
                return False
            raise

        state = self._json(response, f"/user/memberships/orgs/{org}").get("state")
        logger.debug(f"Membership state in {org}: {state}")
        return state == "active"

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a GraphQL query and return its ``data`` object.

        Raises:
            GitHubAPIError: On HTTP failure or when the payload carries ``errors``
        """
        response = self._make_request(
            "POST", self.graphql_url, json={"query": query, "variables": variables}
        )
        payload = self._json(response, self.graphql_url)

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(
                error.get("message", str(error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise GitHubAPIError(
                f"GraphQL query failed: {messages}",
                status_code=response.status_code,
                response_data=payload,
                url=self.graphql_url
            )

        return payload.get("data") or {}

    def iter_org_repositories(self, org: str, page_size: Optional[int] = None) -> Iterator[RemoteSubscriptionState]:
        """
        Yield the viewer's watch state for every repository of ``org``.

        Repositories come in ascending name order. Pages are fetched one
        after another; a failure on any page raises and ends the iteration.

        Args:
            org: Organization login
            page_size: Repositories per page (defaults to the configured size)
        """
        first = page_size or self.page_size
        cursor: Optional[str] = None
        page = 0

        while True:
            page += 1
            data = self.graphql(
                ORG_REPOSITORIES_QUERY,
                {"login": org, "first": first, "after": cursor}
            )

            organization = data.get("organization")
            if organization is None:
                raise GitHubAPIError(f"Organization not found or not visible: {org}")

            connection = organization["repositories"]
            nodes = connection.get("nodes") or []
            logger.debug(f"Fetched page {page} of {org} repositories ({len(nodes)} entries)")

            for node in nodes:
                if node is None:
                    continue
                if node.get("viewerSubscription") is None:
                    logger.warning(
                        f"Skipping {node.get('nameWithOwner', '<unnamed>')}: "
                        "no viewerSubscription in response"
                    )
                    continue
                try:
                    state = RemoteSubscriptionState.from_graphql_node(node)
                except (KeyError, ValueError) as e:
                    raise GitHubAPIError(
                        f"Unexpected repository entry in GraphQL response: {node!r}",
                        response_data=node,
                        cause=e
                    ) from e
                yield state

            page_info = connection["pageInfo"]
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info["endCursor"]

    def set_subscribed(self, repo: str) -> None:
        """Watch all activity of ``repo``."""
        self._make_request("PUT", f"/repos/{repo}/subscription", json={"subscribed": True})
        logger.info(f"Subscribed to {repo}")

    def delete_subscription(self, repo: str) -> None:
        """Drop the explicit subscription so only participation notifies."""
        self._make_request("DELETE", f"/repos/{repo}/subscription")
        logger.info(f"Removed subscription for {repo}")

    def set_ignored(self, repo: str) -> None:
        """Ignore all notifications from ``repo``."""
        self._make_request("PUT", f"/repos/{repo}/subscription", json={"ignored": True})
        logger.info(f"Ignoring {repo}")
