"""GitHub implementation of ``IssueTracker``.

Issues are read and written through the REST API; the optional Projects v2
board (status and date fields) goes through GraphQL.  Every HTTP failure and
every GraphQL ``errors`` payload is raised as ``RemoteError``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import requests

from ..config import GitHubSettings
from ..config_schema import SyncConfig
from ..errors import RemoteError
from .models import BoardItemDates, BoardItemStatus, RemoteIssue

logger = logging.getLogger(__name__)

PER_PAGE = 100
CONNECT_TIMEOUT = 10

_ITEMS_QUERY = """
query($projectId: ID!, $cursor: String) {
  node(id: $projectId) {
    ... on ProjectV2 {
      items(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          content {
            ... on Issue {
              number
              repository { name owner { login } }
            }
          }
          fieldValues(first: 50) {
            nodes {
              ... on ProjectV2ItemFieldSingleSelectValue {
                name
                field { ... on ProjectV2SingleSelectField { id } }
              }
              ... on ProjectV2ItemFieldDateValue {
                date
                field { ... on ProjectV2Field { id } }
              }
            }
          }
        }
      }
    }
  }
}
"""

_FIELDS_QUERY = """
query($projectId: ID!) {
  node(id: $projectId) {
    ... on ProjectV2 {
      fields(first: 50) {
        nodes {
          ... on ProjectV2SingleSelectField { id name options { id name } }
        }
      }
    }
  }
}
"""

_ADD_ITEM_MUTATION = """
mutation($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
    item { id }
  }
}
"""

_SET_STATUS_MUTATION = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String!) {
  updateProjectV2ItemFieldValue(input: {
    projectId: $projectId, itemId: $itemId, fieldId: $fieldId,
    value: {singleSelectOptionId: $optionId}
  }) {
    projectV2Item { id }
  }
}
"""

_SET_DATE_MUTATION = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $date: Date!) {
  updateProjectV2ItemFieldValue(input: {
    projectId: $projectId, itemId: $itemId, fieldId: $fieldId,
    value: {date: $date}
  }) {
    projectV2Item { id }
  }
}
"""


class GitHubClient:
    """Issue tracker backed by one GitHub repository (and optional board).

    Args:
        settings: Token, API root and timeout.
        config: Sync config supplying owner, repo and board field ids.
    """

    def __init__(self, settings: GitHubSettings, config: SyncConfig) -> None:
        self.settings = settings
        self.config = config
        self.repo_url = (
            f"{settings.api_url}/repos/{config.owner}/{config.repo}"
        )
        self.graphql_url = self._get_graphql_url()
        self.session = self._create_session()
        self._milestones: dict[str, int] | None = None

    def _get_graphql_url(self) -> str:
        # GitHub Enterprise serves REST under /api/v3 and GraphQL at /api/graphql
        api_url = self.settings.api_url
        if api_url.endswith("/v3"):
            return api_url[: -len("v3")] + "graphql"
        return f"{api_url}/graphql"

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )
        if self.settings.token:
            session.headers["Authorization"] = f"Bearer {self.settings.token}"
        return session

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=(CONNECT_TIMEOUT, self.settings.timeout),
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise RemoteError(
                f"GitHub request failed: {method} {url}: {exc}"
            ) from exc
        except requests.RequestException as exc:
            raise RemoteError(
                f"Cannot reach GitHub: {method} {url}: {exc}"
            ) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                f"GitHub returned a non-JSON response: {method} {url}"
            ) from exc

    def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        payload = self._request(
            "POST", self.graphql_url, json={"query": query, "variables": variables}
        )
        errors = payload.get("errors")
        if errors:
            messages = "; ".join(
                str(err.get("message", err)) for err in errors
            )
            raise RemoteError(f"GitHub GraphQL error: {messages}")
        return payload.get("data") or {}

    # -- Issues -----------------------------------------------------------

    def list_issues(self) -> list[RemoteIssue]:
        """Return every issue (open and closed); pull requests are skipped."""
        issues: list[RemoteIssue] = []
        page = 1
        while True:
            batch = self._request(
                "GET",
                f"{self.repo_url}/issues",
                params={"state": "all", "per_page": PER_PAGE, "page": page},
            )
            for data in batch:
                if "pull_request" in data:
                    continue
                issues.append(RemoteIssue.from_api(data))
            if len(batch) < PER_PAGE:
                break
            page += 1
        logger.debug("Fetched %d issues", len(issues))
        return issues

    def _milestone_number(self, title: str) -> int | None:
        if self._milestones is None:
            milestones: dict[str, int] = {}
            page = 1
            while True:
                batch = self._request(
                    "GET",
                    f"{self.repo_url}/milestones",
                    params={"state": "all", "per_page": PER_PAGE, "page": page},
                )
                milestones.update((m["title"], m["number"]) for m in batch)
                if len(batch) < PER_PAGE:
                    break
                page += 1
            self._milestones = milestones
        return self._milestones.get(title)

    def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str],
        milestone: str | None = None,
    ) -> RemoteIssue:
        payload: dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = labels
        if milestone:
            number = self._milestone_number(milestone)
            if number is None:
                logger.warning(
                    "Milestone '%s' not found in %s/%s; creating issue without it",
                    milestone,
                    self.config.owner,
                    self.config.repo,
                )
            else:
                payload["milestone"] = number
        data = self._request("POST", f"{self.repo_url}/issues", json=payload)
        return RemoteIssue.from_api(data)

    def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        state: str | None = None,
        labels: list[str] | None = None,
    ) -> RemoteIssue:
        fields = {"title": title, "body": body, "state": state, "labels": labels}
        payload = {key: value for key, value in fields.items() if value is not None}
        data = self._request(
            "PATCH", f"{self.repo_url}/issues/{number}", json=payload
        )
        return RemoteIssue.from_api(data)

    # -- Projects v2 board ------------------------------------------------

    def _iter_board_items(self) -> Iterator[tuple[int, str, list[dict[str, Any]]]]:
        """Yield ``(issue_number, item_id, field_values)`` for this repo's issues."""
        cursor: str | None = None
        while True:
            data = self._graphql(
                _ITEMS_QUERY,
                {"projectId": self.config.project_id, "cursor": cursor},
            )
            items = ((data.get("node") or {}).get("items")) or {}
            for node in items.get("nodes") or []:
                content = (node or {}).get("content") or {}
                repository = content.get("repository") or {}
                owner = (repository.get("owner") or {}).get("login")
                if (
                    "number" not in content
                    or owner != self.config.owner
                    or repository.get("name") != self.config.repo
                ):
                    continue
                values = (node.get("fieldValues") or {}).get("nodes") or []
                yield content["number"], node["id"], [v for v in values if v]
            page_info = items.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")

    def list_board_statuses(self) -> list[BoardItemStatus]:
        if not self.config.board_enabled:
            return []
        out: list[BoardItemStatus] = []
        for number, item_id, values in self._iter_board_items():
            for value in values:
                field_id = (value.get("field") or {}).get("id")
                if field_id == self.config.status_field_id and value.get("name"):
                    out.append(
                        BoardItemStatus(
                            issue_number=number,
                            item_id=item_id,
                            status_name=value["name"],
                        )
                    )
                    break
        return out

    def list_board_dates(self) -> list[BoardItemDates]:
        if not self.config.date_fields_enabled:
            return []
        fields = {
            self.config.start_date_field_id: "start",
            self.config.due_date_field_id: "due",
            self.config.completed_date_field_id: "completed",
        }
        out: list[BoardItemDates] = []
        for number, item_id, values in self._iter_board_items():
            dates: dict[str, str] = {}
            for value in values:
                field_id = (value.get("field") or {}).get("id")
                if field_id and field_id in fields and isinstance(value.get("date"), str):
                    dates[fields[field_id]] = value["date"]
            out.append(
                BoardItemDates(issue_number=number, item_id=item_id, **dates)
            )
        return out

    def status_option_ids(self) -> dict[str, str]:
        """Map status option name to option id for the configured field."""
        if not self.config.board_enabled:
            return {}
        data = self._graphql(_FIELDS_QUERY, {"projectId": self.config.project_id})
        fields = ((data.get("node") or {}).get("fields") or {}).get("nodes") or []
        for field in fields:
            if field and field.get("id") == self.config.status_field_id:
                return {opt["name"]: opt["id"] for opt in field.get("options") or []}
        return {}

    def add_to_board(self, node_id: str) -> str:
        """Attach an issue to the board; returns the (possibly existing) item id."""
        data = self._graphql(
            _ADD_ITEM_MUTATION,
            {"projectId": self.config.project_id, "contentId": node_id},
        )
        item = (data.get("addProjectV2ItemById") or {}).get("item") or {}
        if not item.get("id"):
            raise RemoteError(f"Could not add issue {node_id} to the project board")
        return item["id"]

    def set_board_status(self, item_id: str, option_id: str) -> None:
        self._graphql(
            _SET_STATUS_MUTATION,
            {
                "projectId": self.config.project_id,
                "itemId": item_id,
                "fieldId": self.config.status_field_id,
                "optionId": option_id,
            },
        )

    def set_board_date(self, item_id: str, field_id: str, date: str) -> None:
        self._graphql(
            _SET_DATE_MUTATION,
            {
                "projectId": self.config.project_id,
                "itemId": item_id,
                "fieldId": field_id,
                "date": date,
            },
        )
