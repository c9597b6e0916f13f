"""
Orchestration of the four sync operations around the reconciliation engine.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import click

from .config import AppConfig
from .error_handling import AuthorizationError, ConfigurationError
from .manifest import ManifestStore
from .reconciliation import ReconciliationEngine, UpdateResult
from .repository import GitHubClient, SubscriptionClient

logger = logging.getLogger(__name__)


@dataclass
class ExportSummary:
    """Counts reported after an export."""
    total: int
    new: int
    dropped: int


class SyncManager:
    """
    Runs export, update, unsubscribe-new and review.

    All settings come from the ``AppConfig`` handed in; nothing is read from
    process-wide state. Each operation first runs ``preflight`` so that a
    missing token, a missing manifest or a missing org membership stops the
    run before any change is made.
    """

    def __init__(
        self,
        config: AppConfig,
        client: Optional[SubscriptionClient] = None,
        progress: Callable[[str], None] = click.echo
    ):
        """
        Args:
            config: Application configuration
            client: GitHub client; built from ``config.github`` when omitted
            progress: Sink for per-repository progress lines
        """
        self.config = config
        self.org = config.sync.organization
        self.store = ManifestStore(config.sync.manifest_path)
        self._client = client
        self.progress = progress
        self._engine: Optional[ReconciliationEngine] = None

    @property
    def client(self) -> SubscriptionClient:
        if self._client is None:
            self._client = GitHubClient(self.config.github)
        return self._client

    @property
    def engine(self) -> ReconciliationEngine:
        if self._engine is None:
            self._engine = ReconciliationEngine(
                self.client,
                self.org,
                progress=self.progress,
                page_size=self.config.github.page_size
            )
        return self._engine

    def preflight(self, require_manifest: bool) -> None:
        """
        Check every precondition of an operation.

        Raises:
            ConfigurationError: No token or no organization configured
            ManifestNotFoundError: The operation needs a manifest that is absent
            AuthorizationError: The user is not an active member of the organization
            GitHubAPIError: The membership check itself failed
        """
        if self._client is None and not self.config.github.access_token:
            raise ConfigurationError(
                "No GitHub token configured; set GITHUB_TOKEN or github.access_token",
                config_section="github",
                config_key="access_token"
            )

        if not self.org:
            raise ConfigurationError(
                "No organization configured",
                config_section="sync",
                config_key="organization"
            )

        if require_manifest and not self.store.exists():
            # load() raises the descriptive ManifestNotFoundError
            self.store.load()

        if not self.client.is_org_member(self.org):
            user = self.client.get_authenticated_user()
            raise AuthorizationError(
                f"GitHub user {user} is not a member of the {self.org} organization",
                organization=self.org,
                user=user
            )

        logger.debug(f"Preflight passed for {self.org}")

    def export(self) -> ExportSummary:
        """Replace the manifest with the current remote state."""
        self.preflight(require_manifest=False)

        previous = self.store.load_or_empty()
        remote = self.engine.fetch_remote()
        records = self.engine.export(previous, remote)

        self.store.save(records)

        previous_keys = {record.repo for record in previous}
        return ExportSummary(
            total=len(records),
            new=sum(1 for record in records if record.new),
            dropped=len(previous_keys - set(remote))
        )

    def update(self, continue_on_error: Optional[bool] = None) -> UpdateResult:
        """Push the manifest to GitHub."""
        self.preflight(require_manifest=True)

        if continue_on_error is None:
            continue_on_error = self.config.sync.continue_on_error

        records = self.store.load()
        remote = self.engine.fetch_remote()
        return self.engine.update(records, remote, continue_on_error=continue_on_error)

    def unsubscribe_new(self) -> List[str]:
        """Mark new, subscribed repositories as unsubscribed in the manifest."""
        self.preflight(require_manifest=True)

        records, changed = ReconciliationEngine.unsubscribe_new(self.store.load())
        if changed:
            self.store.save(records)
        else:
            logger.info("No new subscribed repositories to change")
        return changed

    def review(self) -> str:
        """Render the manifest as a status-sorted listing."""
        self.preflight(require_manifest=True)

        return ReconciliationEngine.render_review(self.store.load())
