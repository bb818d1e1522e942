"""Tests for GitHubClient (REST issues and GraphQL board calls)."""

import os
from unittest.mock import Mock, patch

import pytest
import requests

from kanban_sync_engine.config import GitHubSettings
from kanban_sync_engine.config_schema import build_config
from kanban_sync_engine.errors import RemoteError
from kanban_sync_engine.remote.client import GitHubClient

SESSION_REQUEST = "kanban_sync_engine.remote.client.requests.Session.request"


def _config(**overrides):
    raw = {"owner": "acme", "repo": "widgets", "statusMap": {}}
    raw.update(overrides)
    return build_config(raw)


def _board_config():
    return _config(projectId="P_1", statusFieldId="F_STATUS", dueDateFieldId="F_DUE")


def _response(data):
    response = Mock()
    response.json.return_value = data
    response.raise_for_status.return_value = None
    return response


def _issue(number, **extra):
    data = {
        "number": number,
        "node_id": f"I_{number}",
        "title": f"Issue {number}",
        "body": "text",
        "state": "open",
        "labels": [{"name": "priority:high"}],
        "milestone": {"title": "v1", "number": 3},
        "html_url": f"https://github.com/acme/widgets/issues/{number}",
        "closed_at": None,
        "updated_at": "2026-01-01T00:00:00Z",
    }
    data.update(extra)
    return data


@pytest.fixture
def client():
    return GitHubClient(GitHubSettings(token="tok", timeout=30.0), _config())


# ---------------------------------------------------------------------------
# Session and URLs
# ---------------------------------------------------------------------------


def test_session_headers(client):
    assert client.session.headers["Authorization"] == "Bearer tok"
    assert client.session.headers["Accept"] == "application/vnd.github+json"


def test_no_token_no_auth_header():
    client = GitHubClient(GitHubSettings(), _config())
    assert "Authorization" not in client.session.headers


def test_urls(client):
    assert client.repo_url == "https://api.github.com/repos/acme/widgets"
    assert client.graphql_url == "https://api.github.com/graphql"


def test_enterprise_graphql_url():
    client = GitHubClient(
        GitHubSettings(api_url="https://ghe.example.com/api/v3"), _config()
    )
    assert client.graphql_url == "https://ghe.example.com/api/graphql"


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


@patch(SESSION_REQUEST)
def test_list_issues_skips_pull_requests(mock_request, client):
    mock_request.return_value = _response(
        [_issue(1), _issue(2, pull_request={"url": "x"})]
    )

    issues = client.list_issues()

    assert [i.number for i in issues] == [1]
    issue = issues[0]
    assert issue.labels == ["priority:high"]
    assert issue.milestone == "v1"
    assert issue.url == "https://github.com/acme/widgets/issues/1"
    args, kwargs = mock_request.call_args
    assert args == ("GET", "https://api.github.com/repos/acme/widgets/issues")
    assert kwargs["params"] == {"state": "all", "per_page": 100, "page": 1}
    assert kwargs["timeout"] == (10, 30.0)


@patch(SESSION_REQUEST)
def test_list_issues_paginates(mock_request, client):
    mock_request.side_effect = [
        _response([_issue(n) for n in range(1, 101)]),
        _response([_issue(101)]),
    ]

    issues = client.list_issues()

    assert len(issues) == 101
    assert mock_request.call_args_list[1][1]["params"]["page"] == 2


@patch(SESSION_REQUEST)
def test_http_error_becomes_remote_error(mock_request, client):
    response = _response({})
    response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
    mock_request.return_value = response

    with pytest.raises(RemoteError, match="404"):
        client.list_issues()


@patch(SESSION_REQUEST)
def test_connection_error_becomes_remote_error(mock_request, client):
    mock_request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(RemoteError, match="Cannot reach GitHub"):
        client.list_issues()


@patch(SESSION_REQUEST)
def test_create_issue_resolves_milestone(mock_request, client):
    mock_request.side_effect = [
        _response([{"title": "v1", "number": 3}]),
        _response(_issue(7)),
    ]

    issue = client.create_issue("T", "body", ["tag:a"], milestone="v1")

    assert issue.number == 7
    method, url = mock_request.call_args[0]
    assert (method, url) == ("POST", "https://api.github.com/repos/acme/widgets/issues")
    assert mock_request.call_args[1]["json"] == {
        "title": "T",
        "body": "body",
        "labels": ["tag:a"],
        "milestone": 3,
    }


@patch(SESSION_REQUEST)
def test_non_json_body_becomes_remote_error(mock_request, client):
    response = _response(None)
    response.json.side_effect = ValueError("Expecting value")
    mock_request.return_value = response

    with pytest.raises(RemoteError, match="non-JSON"):
        client.list_issues()


@patch(SESSION_REQUEST)
def test_milestones_paginate(mock_request, client):
    first_page = [{"title": f"m{n}", "number": n} for n in range(1, 101)]
    mock_request.side_effect = [
        _response(first_page),
        _response([{"title": "v9", "number": 101}]),
        _response(_issue(7)),
    ]

    client.create_issue("T", "body", [], milestone="v9")

    pages = [c[1]["params"]["page"] for c in mock_request.call_args_list[:2]]
    assert pages == [1, 2]
    assert mock_request.call_args[1]["json"]["milestone"] == 101


@patch(SESSION_REQUEST)
def test_create_issue_unknown_milestone_omitted(mock_request, client):
    mock_request.side_effect = [_response([]), _response(_issue(7))]

    client.create_issue("T", "body", [], milestone="v9")

    assert mock_request.call_args[1]["json"] == {"title": "T", "body": "body"}


@patch(SESSION_REQUEST)
def test_update_issue_sends_only_given_fields(mock_request, client):
    mock_request.return_value = _response(_issue(5, state="closed"))

    issue = client.update_issue(5, state="closed", labels=[])

    assert issue.is_closed
    args, kwargs = mock_request.call_args
    assert args == ("PATCH", "https://api.github.com/repos/acme/widgets/issues/5")
    assert kwargs["json"] == {"state": "closed", "labels": []}


# ---------------------------------------------------------------------------
# Board (GraphQL)
# ---------------------------------------------------------------------------


def _item(number, item_id, owner="acme", repo="widgets", values=()):
    return {
        "id": item_id,
        "content": {
            "number": number,
            "repository": {"name": repo, "owner": {"login": owner}},
        },
        "fieldValues": {"nodes": list(values)},
    }


@patch(SESSION_REQUEST)
def test_board_disabled_makes_no_calls(mock_request, client):
    assert client.list_board_statuses() == []
    assert client.list_board_dates() == []
    assert client.status_option_ids() == {}
    mock_request.assert_not_called()


@patch(SESSION_REQUEST)
def test_list_board_statuses_filters_repository(mock_request):
    client = GitHubClient(GitHubSettings(token="tok"), _board_config())
    status_value = {"name": "In Progress", "field": {"id": "F_STATUS"}}
    mock_request.return_value = _response(
        {
            "data": {
                "node": {
                    "items": {
                        "pageInfo": {"hasNextPage": False, "endCursor": None},
                        "nodes": [
                            _item(1, "ITEM_1", values=[status_value]),
                            _item(2, "ITEM_2", repo="other", values=[status_value]),
                            _item(3, "ITEM_3", values=[{}]),
                        ],
                    }
                }
            }
        }
    )

    statuses = client.list_board_statuses()

    assert [(s.issue_number, s.item_id, s.status_name) for s in statuses] == [
        (1, "ITEM_1", "In Progress")
    ]


@patch(SESSION_REQUEST)
def test_list_board_dates(mock_request):
    client = GitHubClient(GitHubSettings(token="tok"), _board_config())
    mock_request.return_value = _response(
        {
            "data": {
                "node": {
                    "items": {
                        "pageInfo": {"hasNextPage": False},
                        "nodes": [
                            _item(
                                1,
                                "ITEM_1",
                                values=[{"date": "2026-03-01", "field": {"id": "F_DUE"}}],
                            )
                        ],
                    }
                }
            }
        }
    )

    dates = client.list_board_dates()

    assert dates[0].due == "2026-03-01"
    assert dates[0].start is None


@patch(SESSION_REQUEST)
def test_graphql_errors_raise(mock_request):
    client = GitHubClient(GitHubSettings(token="tok"), _board_config())
    mock_request.return_value = _response({"errors": [{"message": "bad project"}]})

    with pytest.raises(RemoteError, match="bad project"):
        client.status_option_ids()


@patch(SESSION_REQUEST)
def test_status_option_ids(mock_request):
    client = GitHubClient(GitHubSettings(token="tok"), _board_config())
    mock_request.return_value = _response(
        {
            "data": {
                "node": {
                    "fields": {
                        "nodes": [
                            {},
                            {
                                "id": "F_STATUS",
                                "name": "Status",
                                "options": [
                                    {"id": "O_1", "name": "Todo"},
                                    {"id": "O_2", "name": "Done"},
                                ],
                            },
                        ]
                    }
                }
            }
        }
    )

    assert client.status_option_ids() == {"Todo": "O_1", "Done": "O_2"}


@patch(SESSION_REQUEST)
def test_add_to_board_requires_item_id(mock_request):
    client = GitHubClient(GitHubSettings(token="tok"), _board_config())
    mock_request.return_value = _response({"data": {"addProjectV2ItemById": {}}})

    with pytest.raises(RemoteError):
        client.add_to_board("I_1")


@patch(SESSION_REQUEST)
def test_set_board_status_variables(mock_request):
    client = GitHubClient(GitHubSettings(token="tok"), _board_config())
    mock_request.return_value = _response({"data": {}})

    client.set_board_status("ITEM_1", "O_2")

    payload = mock_request.call_args[1]["json"]
    assert payload["variables"] == {
        "projectId": "P_1",
        "itemId": "ITEM_1",
        "fieldId": "F_STATUS",
        "optionId": "O_2",
    }


@pytest.mark.live
def test_live_list_issues():
    """Smoke test against a real repository (needs GITHUB_TOKEN)."""
    slug = os.environ.get("KANBAN_SYNC_LIVE_REPO", "octocat/Hello-World")
    owner, _, repo = slug.partition("/")
    client = GitHubClient(
        GitHubSettings(token=os.environ.get("GITHUB_TOKEN")),
        _config(owner=owner, repo=repo),
    )
    assert isinstance(client.list_issues(), list)
