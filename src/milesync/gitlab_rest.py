from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .errors import APIError, InvalidInputError, NotFoundError
from .models import Milestone
from .provider import PER_PAGE, MilestoneProvider
from .schedule import DATE_FORMAT

API_SUFFIX = "/api/v4"


class GitLabMilestoneProvider(MilestoneProvider):
    """GitLab v4 REST dialect.

    Milestones are addressed by numeric project id, created with a
    form-encoded POST and reopened with ``PUT ?state_event=activate``.
    """

    name = "gitlab"
    date_format = DATE_FORMAT
    active_state = "active"

    @classmethod
    def api_root(cls, base_url: str) -> str:
        root = base_url.rstrip("/")
        if root.endswith(API_SUFFIX):
            return root
        return root + API_SUFFIX

    @classmethod
    def auth_headers(cls, token: str) -> dict[str, str]:
        return {"PRIVATE-TOKEN": token}

    def resolve_project_id(self, project: str, namespace: str) -> str:
        records = self._paginate("projects", params={"search": project, "per_page": PER_PAGE})
        for record in records:
            name = record.get("name")
            # GitLab error envelopes decode as a pseudo project named "message"
            if name == "message":
                raise APIError(f"gitlab API returned an error while searching for {project!r}")
            ns = record.get("namespace") or {}
            if name == project and isinstance(ns, dict) and ns.get("path") == namespace:
                return str(record.get("id"))
        raise NotFoundError("project not found")

    def _milestones_path(self, project_id: str) -> str:
        return f"projects/{quote(str(project_id), safe='')}/milestones"

    def _to_milestone(self, record: dict[str, Any]) -> Milestone:
        iid = record.get("iid")
        return Milestone(
            title=str(record.get("title") or ""),
            due_date=str(record.get("due_date") or ""),
            remote_id=str(record["id"]) if record.get("id") is not None else None,
            state=record.get("state"),
            sequence_number=iid if isinstance(iid, int) else None,
        )

    def _create_one(self, project_id: str, milestone: Milestone) -> None:
        self._request(
            "POST",
            self._milestones_path(project_id),
            data={"title": milestone.title, "due_date": milestone.due_date},
        )

    def _reactivate_one(self, project_id: str, milestone: Milestone) -> None:
        if not milestone.remote_id:
            raise InvalidInputError(f"milestone {milestone.title!r} has no remote id")
        self._request(
            "PUT",
            f"{self._milestones_path(project_id)}/{milestone.remote_id}",
            params={"state_event": "activate"},
        )


__all__ = ["GitLabMilestoneProvider", "API_SUFFIX"]
