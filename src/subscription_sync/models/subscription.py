"""
Subscription data models: manifest records and remote watch state.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Union


class SubscriptionStatus(str, Enum):
    """Desired subscription state as written in the manifest."""
    SUBSCRIBED = "SUBSCRIBED"
    UNSUBSCRIBED = "UNSUBSCRIBED"
    IGNORE = "IGNORE"

    @classmethod
    def parse(cls, value: str) -> Union["SubscriptionStatus", str]:
        """
        Return the enum member for ``value``, or ``value`` itself if unknown.

        Unknown strings are kept verbatim so they survive a load/save cycle
        and are only rejected by the operation that has to act on them.
        """
        try:
            return cls(value)
        except ValueError:
            return value


class ViewerSubscription(str, Enum):
    """GitHub's tri-state ``viewerSubscription`` value."""
    SUBSCRIBED = "SUBSCRIBED"
    UNSUBSCRIBED = "UNSUBSCRIBED"
    IGNORED = "IGNORED"


_REMOTE_TO_MANIFEST = {
    ViewerSubscription.SUBSCRIBED: SubscriptionStatus.SUBSCRIBED,
    ViewerSubscription.UNSUBSCRIBED: SubscriptionStatus.UNSUBSCRIBED,
    ViewerSubscription.IGNORED: SubscriptionStatus.IGNORE,
}


def status_value(status: Union[SubscriptionStatus, str]) -> str:
    """Plain string form of a status, whether it is a member or a raw string."""
    return status.value if isinstance(status, SubscriptionStatus) else str(status)


@dataclass(frozen=True)
class SubscriptionRecord:
    """
    One entry of the manifest.

    ``repo`` is the ``owner/name`` key, ``status`` the desired watch state and
    ``new`` marks repositories that were not in the manifest before the most
    recent export.
    """

    repo: str
    status: Union[SubscriptionStatus, str]
    new: bool = False

    def with_status(self, status: SubscriptionStatus) -> "SubscriptionRecord":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repo": self.repo,
            "status": status_value(self.status),
            "new": self.new,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubscriptionRecord":
        return cls(
            repo=data["repo"],
            status=SubscriptionStatus.parse(data["status"]),
            new=data.get("new", False),
        )


@dataclass(frozen=True)
class RemoteSubscriptionState:
    """Watch state of one repository as reported by GitHub for the viewer."""

    repo: str
    viewer_subscription: ViewerSubscription
    is_archived: bool = False

    @property
    def manifest_status(self) -> SubscriptionStatus:
        return _REMOTE_TO_MANIFEST[self.viewer_subscription]

    @property
    def is_ignored(self) -> bool:
        return self.viewer_subscription == ViewerSubscription.IGNORED

    @classmethod
    def from_graphql_node(cls, node: Dict[str, Any]) -> "RemoteSubscriptionState":
        """
        Build from a GraphQL ``Repository`` node.

        Args:
            node: Mapping with ``nameWithOwner``, ``viewerSubscription`` and
                ``isArchived`` keys

        Returns:
            Remote state for the repository
        """
        return cls(
            repo=node["nameWithOwner"],
            viewer_subscription=ViewerSubscription(node["viewerSubscription"]),
            is_archived=bool(node.get("isArchived", False)),
        )
