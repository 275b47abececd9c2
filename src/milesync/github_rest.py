from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from .errors import APIError, InvalidInputError, NotFoundError
from .models import Milestone
from .provider import MilestoneProvider
from .schedule import RFC3339_FORMAT

DEFAULT_API_URL = "https://api.github.com"
GITHUB_WEB_HOSTS = frozenset({"github.com", "www.github.com"})
HTTP_NOT_FOUND = 404


class GitHubMilestoneProvider(MilestoneProvider):
    """GitHub REST dialect.

    Milestones live under ``/repos/{owner}/{repo}``; they are created with a
    JSON body and reopened with ``PATCH {"state": "open"}`` addressed by the
    milestone ``number`` rather than its global id.
    """

    name = "github"
    date_format = RFC3339_FORMAT
    active_state = "open"

    @classmethod
    def api_root(cls, base_url: str) -> str:
        host = urlsplit(base_url).netloc.lower()
        if host in GITHUB_WEB_HOSTS:
            return DEFAULT_API_URL
        return base_url.rstrip("/")

    @classmethod
    def auth_headers(cls, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
        }

    def resolve_project_id(self, project: str, namespace: str) -> str:
        try:
            response = self._request("GET", f"repos/{namespace}/{project}")
        except APIError as exc:
            if exc.status == HTTP_NOT_FOUND:
                raise NotFoundError("project not found") from exc
            raise
        try:
            data = response.json()
        except ValueError as exc:
            raise APIError(
                f"github API returned a non-JSON repository for {namespace}/{project}",
                status=response.status_code,
                response_text=response.text,
            ) from exc
        if not isinstance(data, dict):
            raise APIError(f"github API returned an unexpected repository payload for {namespace}/{project}")
        if "message" in data and "full_name" not in data:
            raise APIError(f"github API returned error: {data.get('message')}")
        full_name = data.get("full_name")
        return full_name if isinstance(full_name, str) and full_name else f"{namespace}/{project}"

    def _milestones_path(self, project_id: str) -> str:
        return f"repos/{project_id}/milestones"

    def _to_milestone(self, record: dict[str, Any]) -> Milestone:
        number = record.get("number")
        return Milestone(
            title=str(record.get("title") or ""),
            due_date=str(record.get("due_on") or ""),
            remote_id=str(record["id"]) if record.get("id") is not None else None,
            state=record.get("state"),
            sequence_number=number if isinstance(number, int) else None,
        )

    def _create_one(self, project_id: str, milestone: Milestone) -> None:
        self._request(
            "POST",
            self._milestones_path(project_id),
            json_body={"title": milestone.title, "due_on": milestone.due_date},
        )

    def _reactivate_one(self, project_id: str, milestone: Milestone) -> None:
        if milestone.sequence_number is None:
            raise InvalidInputError(f"milestone {milestone.title!r} has no milestone number")
        self._request(
            "PATCH",
            f"{self._milestones_path(project_id)}/{milestone.sequence_number}",
            json_body={"state": "open"},
        )


__all__ = ["GitHubMilestoneProvider", "DEFAULT_API_URL"]
