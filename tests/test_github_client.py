import pytest
import requests

from conftest import FakeResponse, FakeSession
from subscription_sync.config import GitHubConfig
from subscription_sync.error_handling import GitHubAPIError
from subscription_sync.models import ViewerSubscription
from subscription_sync.repository import GitHubClient


def make_client(responses, **config):
    session = FakeSession(responses)
    client = GitHubClient(GitHubConfig(access_token="secret", **config), session=session)
    return client, session


def page(nodes, has_next=False, cursor=None):
    return FakeResponse(200, {
        "data": {
            "organization": {
                "repositories": {
                    "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                    "nodes": nodes,
                }
            }
        }
    })


def node(name, status="SUBSCRIBED", archived=False):
    return {"nameWithOwner": name, "viewerSubscription": status, "isArchived": archived}


def test_session_headers():
    _, session = make_client([])

    assert session.headers["Authorization"] == "bearer secret"
    assert session.headers["Accept"] == "application/vnd.github+json"
    assert session.headers["User-Agent"].startswith("github-subscription-sync/")


def test_iter_org_repositories_follows_cursor():
    client, session = make_client([
        page([node("exercism/a"), node("exercism/b", "IGNORED")], has_next=True, cursor="c1"),
        page([node("exercism/c", "UNSUBSCRIBED", archived=True)]),
    ])

    repos = list(client.iter_org_repositories("exercism"))

    assert [r.repo for r in repos] == ["exercism/a", "exercism/b", "exercism/c"]
    assert repos[1].viewer_subscription == ViewerSubscription.IGNORED
    assert repos[2].is_archived

    first, second = session.requests
    assert first["method"] == "POST"
    assert first["url"] == "https://api.github.com/graphql"
    assert first["json"]["variables"] == {"login": "exercism", "first": 100, "after": None}
    assert "orderBy: {field: NAME, direction: ASC}" in first["json"]["query"]
    assert second["json"]["variables"]["after"] == "c1"


def test_iter_org_repositories_uses_configured_page_size():
    client, session = make_client([page([])], page_size=25)

    list(client.iter_org_repositories("exercism"))

    assert session.requests[0]["json"]["variables"]["first"] == 25


def test_failure_on_later_page_aborts():
    client, _ = make_client([
        page([node("exercism/a")], has_next=True, cursor="c1"),
        FakeResponse(502, {"message": "Bad gateway"}),
    ])

    with pytest.raises(GitHubAPIError) as excinfo:
        list(client.iter_org_repositories("exercism"))

    assert excinfo.value.status_code == 502
    assert "Bad gateway" in excinfo.value.message


def test_graphql_errors_raise():
    client, _ = make_client([
        FakeResponse(200, {"data": None, "errors": [{"message": "Could not resolve to an Organization"}]}),
    ])

    with pytest.raises(GitHubAPIError, match="Could not resolve"):
        list(client.iter_org_repositories("nope"))


def test_missing_organization_raises():
    client, _ = make_client([FakeResponse(200, {"data": {"organization": None}})])

    with pytest.raises(GitHubAPIError, match="Organization not found"):
        list(client.iter_org_repositories("nope"))


def test_mutations_hit_subscription_endpoint():
    client, session = make_client([
        FakeResponse(200, {"subscribed": True}),
        FakeResponse(204),
        FakeResponse(200, {"ignored": True}),
    ])

    client.set_subscribed("exercism/x")
    client.delete_subscription("exercism/x")
    client.set_ignored("exercism/x")

    calls = [(r["method"], r["url"], r.get("json")) for r in session.requests]
    url = "https://api.github.com/repos/exercism/x/subscription"
    assert calls == [
        ("PUT", url, {"subscribed": True}),
        ("DELETE", url, None),
        ("PUT", url, {"ignored": True}),
    ]


def test_transport_error_is_wrapped():
    client, _ = make_client([requests.exceptions.ConnectionError("offline")])

    with pytest.raises(GitHubAPIError, match="offline"):
        client.set_subscribed("exercism/x")


@pytest.mark.parametrize("response,expected", [
    (FakeResponse(200, {"state": "active"}), True),
    (FakeResponse(200, {"state": "pending"}), False),
    (FakeResponse(404, {"message": "Not Found"}), False),
    (FakeResponse(403, {"message": "Forbidden"}), False),
])
def test_is_org_member(response, expected):
    client, session = make_client([response])

    assert client.is_org_member("exercism") is expected
    assert session.requests[0]["url"] == "https://api.github.com/user/memberships/orgs/exercism"


def test_is_org_member_propagates_auth_failure():
    client, _ = make_client([FakeResponse(401, {"message": "Bad credentials"})])

    with pytest.raises(GitHubAPIError) as excinfo:
        client.is_org_member("exercism")

    assert excinfo.value.status_code == 401


def test_rate_limit_headers_recorded():
    client, _ = make_client([
        FakeResponse(200, {"login": "octocat"}, headers={
            "X-RateLimit-Limit": "5000",
            "X-RateLimit-Remaining": "4999",
            "X-RateLimit-Reset": "1700000000",
            "X-RateLimit-Used": "1",
        }),
    ])

    assert client.get_authenticated_user() == "octocat"
    info = client.get_rate_limit_info()
    assert info.limit == 5000
    assert info.remaining == 4999


def test_non_json_graphql_body_raises_api_error():
    client, _ = make_client([FakeResponse(200, None)])

    with pytest.raises(GitHubAPIError, match="non-JSON body") as excinfo:
        list(client.iter_org_repositories("exercism"))

    assert isinstance(excinfo.value.cause, ValueError)


@pytest.mark.parametrize("payload", [["active"], "active"])
def test_non_object_membership_body_raises_api_error(payload):
    client, _ = make_client([FakeResponse(200, payload)])

    with pytest.raises(GitHubAPIError, match="instead of an object"):
        client.is_org_member("exercism")


def test_authenticated_user_non_json_body_raises_api_error():
    client, _ = make_client([FakeResponse(200, None)])

    with pytest.raises(GitHubAPIError):
        client.get_authenticated_user()


def test_repository_without_viewer_subscription_is_skipped():
    client, _ = make_client([
        page([node("exercism/a"), node("exercism/b", None), node("exercism/c", "UNSUBSCRIBED")]),
    ])

    repos = list(client.iter_org_repositories("exercism"))

    assert [r.repo for r in repos] == ["exercism/a", "exercism/c"]
