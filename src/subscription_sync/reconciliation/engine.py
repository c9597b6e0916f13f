"""
Reconciliation between the manifest and the subscriptions on GitHub.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import click

from ..error_handling import GitHubAPIError, InvalidStatusError
from ..models import (
    RemoteSubscriptionState, SubscriptionRecord, SubscriptionStatus, status_value
)
from ..repository import SubscriptionClient

logger = logging.getLogger(__name__)

RemoteState = Dict[str, RemoteSubscriptionState]


@dataclass
class UpdateResult:
    """Outcome of an update run, by repository name."""
    skipped: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class ReconciliationEngine:
    """
    Computes and applies the difference between desired and actual state.

    The manifest is the desired state, GitHub the actual one. Everything
    runs sequentially; ``update`` issues at most one mutation per record and
    waits for it before moving on.
    """

    def __init__(
        self,
        client: SubscriptionClient,
        org: str,
        progress: Callable[[str], None] = click.echo,
        page_size: Optional[int] = None
    ):
        """
        Args:
            client: GitHub client (or anything with the same capabilities)
            org: Organization login
            progress: Sink for per-repository progress lines
            page_size: Repositories per GraphQL page
        """
        self.client = client
        self.org = org
        self.progress = progress
        self.page_size = page_size

        self._mutations = {
            SubscriptionStatus.SUBSCRIBED: self.client.set_subscribed,
            SubscriptionStatus.UNSUBSCRIBED: self.client.delete_subscription,
            SubscriptionStatus.IGNORE: self.client.set_ignored,
        }

    def fetch_remote(self) -> RemoteState:
        """
        Fetch the viewer's watch state for the organization.

        Archived repositories and repositories the viewer ignores are left
        out. Insertion order follows the API's ascending name order.
        """
        remote: RemoteState = {}
        skipped = 0

        for state in self.client.iter_org_repositories(self.org, self.page_size):
            if state.is_archived or state.is_ignored:
                skipped += 1
                continue
            remote[state.repo] = state

        logger.info(
            f"Fetched {len(remote)} repositories from {self.org} "
            f"({skipped} archived or ignored left out)"
        )
        return remote

    def export(
        self,
        previous: Sequence[SubscriptionRecord],
        remote: RemoteState
    ) -> List[SubscriptionRecord]:
        """
        Build a fresh manifest from the remote state.

        ``new`` is set for repositories missing from ``previous``. Entries of
        ``previous`` that are no longer returned by GitHub are dropped.
        """
        known = {record.repo for record in previous}

        records = [
            SubscriptionRecord(
                repo=state.repo,
                status=state.manifest_status,
                new=state.repo not in known
            )
            for state in remote.values()
        ]

        dropped = known - set(remote)
        if dropped:
            logger.info(f"Dropping {len(dropped)} repositories no longer returned: {sorted(dropped)}")

        return records

    def update(
        self,
        records: Sequence[SubscriptionRecord],
        remote: RemoteState,
        continue_on_error: bool = False
    ) -> UpdateResult:
        """
        Push the manifest's desired state to GitHub, record by record.

        Args:
            records: Manifest records, processed in order
            remote: Current remote state from ``fetch_remote``
            continue_on_error: Record failed mutations and keep going instead
                of stopping at the first one

        Returns:
            Which repositories were skipped, updated or failed

        Raises:
            InvalidStatusError: On a status with no matching mutation
            GitHubAPIError: On a failed mutation unless ``continue_on_error``
        """
        result = UpdateResult()

        for record in records:
            state = remote.get(record.repo)
            current = state.manifest_status if state else SubscriptionStatus.IGNORE

            if record.status == current:
                self.progress(f"{record.repo}: already up-to-date")
                result.skipped.append(record.repo)
                continue

            mutation = self._mutations.get(record.status)
            if mutation is None:
                raise InvalidStatusError(
                    f"Unknown status {status_value(record.status)!r} for {record.repo}",
                    repo=record.repo,
                    status=status_value(record.status)
                )

            self.progress(f"{record.repo}: updating to {status_value(record.status)}...")
            try:
                mutation(record.repo)
            except GitHubAPIError as e:
                if not continue_on_error:
                    raise
                logger.error(f"Failed to update {record.repo}: {e}")
                self.progress(f"{record.repo}: ...failed ({e.message})")
                result.failed.append((record.repo, e.message))
                continue

            self.progress(f"{record.repo}: ...updated")
            result.updated.append(record.repo)

        logger.info(
            f"Update finished: {len(result.updated)} updated, "
            f"{len(result.skipped)} up-to-date, {len(result.failed)} failed"
        )
        return result

    @staticmethod
    def unsubscribe_new(
        records: Sequence[SubscriptionRecord]
    ) -> Tuple[List[SubscriptionRecord], List[str]]:
        """
        Flip new, subscribed repositories to unsubscribed.

        Returns:
            The rewritten records in the original order, and the repositories
            that changed
        """
        rewritten = []
        changed = []

        for record in records:
            if record.new and record.status == SubscriptionStatus.SUBSCRIBED:
                rewritten.append(record.with_status(SubscriptionStatus.UNSUBSCRIBED))
                changed.append(record.repo)
            else:
                rewritten.append(record)

        return rewritten, changed

    @staticmethod
    def review_rows(records: Sequence[SubscriptionRecord]) -> List[Tuple[str, str]]:
        return sorted((status_value(record.status), record.repo) for record in records)

    @classmethod
    def render_review(cls, records: Sequence[SubscriptionRecord]) -> str:
        """Column-aligned ``STATUS  repo`` listing sorted by status then name."""
        rows = cls.review_rows(records)
        if not rows:
            return ""

        width = max(len(status) for status, _ in rows)
        return "\n".join(f"{status:<{width}}  {repo}" for status, repo in rows)
