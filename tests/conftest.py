import json
import pytest
from typing import Any, Dict, List, Optional, Tuple

from subscription_sync.config import AppConfig, GitHubConfig, LoggingConfig, SyncConfig
from subscription_sync.error_handling import GitHubAPIError
from subscription_sync.models import RemoteSubscriptionState, ViewerSubscription


# -----------------------
# Fake subscription client
# -----------------------
class FakeClient:
    """In-memory stand-in for GitHubClient that records every call."""

    def __init__(
        self,
        repos: Optional[List[RemoteSubscriptionState]] = None,
        member: bool = True,
        fail_on: Optional[Dict[str, str]] = None,
        login: str = "octocat",
    ):
        self.repos = list(repos or [])
        self.member = member
        self.login = login
        self.fail_on = fail_on or {}
        self.calls: List[Tuple[str, str]] = []

    def iter_org_repositories(self, org, page_size=None):
        self.calls.append(("list", org))
        for repo in self.repos:
            yield repo

    def is_org_member(self, org):
        self.calls.append(("member", org))
        return self.member

    def get_authenticated_user(self):
        self.calls.append(("user", ""))
        return self.login

    def _mutate(self, name, repo):
        self.calls.append((name, repo))
        if repo in self.fail_on:
            raise GitHubAPIError(self.fail_on[repo], status_code=500)

    def set_subscribed(self, repo):
        self._mutate("subscribe", repo)

    def delete_subscription(self, repo):
        self._mutate("delete", repo)

    def set_ignored(self, repo):
        self._mutate("ignore", repo)

    @property
    def mutations(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("subscribe", "delete", "ignore")]


def remote(repo: str, status: str, archived: bool = False) -> RemoteSubscriptionState:
    return RemoteSubscriptionState(repo, ViewerSubscription(status), archived)


# -----------------------
# Fake requests session
# -----------------------
class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.content = b"" if payload is None else json.dumps(payload).encode()

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Replays queued responses and remembers the requests made."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses or [])
        self.requests: List[Dict[str, Any]] = []

    def request(self, method, url, timeout=None, **kwargs):
        self.requests.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        github=GitHubConfig(access_token="test-token"),
        sync=SyncConfig(organization="exercism", manifest_path=str(tmp_path / "subscriptions.json")),
        logging=LoggingConfig(),
    )


@pytest.fixture
def manifest_path(app_config):
    from pathlib import Path
    return Path(app_config.sync.manifest_path)


def write_manifest(path, rows: List[Dict[str, Any]]) -> None:
    path.write_text(json.dumps(rows, indent=2) + "\n", encoding="utf-8")


def read_manifest(path) -> List[Dict[str, Any]]:
    return json.loads(path.read_text(encoding="utf-8"))
