"""Provider capability interface shared by the GitLab and GitHub adapters.

A :class:`MilestoneProvider` is selected once per run (see
:mod:`milesync.probe`) and hides every dialect difference: endpoint shapes,
auth headers, field names and state vocabulary.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar
from urllib.parse import urlsplit

import requests

from .errors import APIError, InvalidInputError, NetworkError
from .logging import StructuredLogger, get_logger
from .models import ACTIVE, CLOSED, LOGICAL_STATES, Milestone, index_by_title
from .pagination import DEFAULT_TIMEOUT, decode_pages, paginate

USER_AGENT = "milesync-rest/0.1.0"
HTTP_ERROR_STATUS = 400
PER_PAGE = 100


def normalize_base_url(url: str) -> str:
    """Default a missing scheme to https and drop trailing slashes."""
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidInputError("base URL must not be empty")
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parts = urlsplit(candidate)
    if not parts.netloc:
        raise InvalidInputError(f"base URL {url!r} has no host")
    return candidate.rstrip("/")


@dataclass
class MilestoneProvider(ABC):
    """Generic milestone operations against one remote provider."""

    name: ClassVar[str]
    date_format: ClassVar[str]
    active_state: ClassVar[str]
    closed_state: ClassVar[str] = "closed"

    base_url: str
    token: str
    session: requests.Session | None = None
    timeout: float = DEFAULT_TIMEOUT
    logger: StructuredLogger | None = None
    api_url: str = field(init=False)
    _session: requests.Session = field(init=False, repr=False)
    _log: StructuredLogger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.api_url = self.api_root(normalize_base_url(self.base_url))
        self._session = self.session or requests.Session()
        self._log = self.logger or get_logger()

    # ---- dialect hooks -------------------------------------------------
    @classmethod
    @abstractmethod
    def api_root(cls, base_url: str) -> str:
        """Map a user supplied base URL to the REST API root."""

    @classmethod
    @abstractmethod
    def auth_headers(cls, token: str) -> dict[str, str]:
        """Headers authenticating ``token`` against this provider."""

    @abstractmethod
    def resolve_project_id(self, project: str, namespace: str) -> str:
        """Return the identifier milestone endpoints are addressed by."""

    @abstractmethod
    def _milestones_path(self, project_id: str) -> str: ...

    @abstractmethod
    def _to_milestone(self, record: dict[str, Any]) -> Milestone: ...

    @abstractmethod
    def _create_one(self, project_id: str, milestone: Milestone) -> None: ...

    @abstractmethod
    def _reactivate_one(self, project_id: str, milestone: Milestone) -> None: ...

    # ---- REST helpers -------------------------------------------------
    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.api_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        headers.update(self.auth_headers(self.token))
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> requests.Response:
        url = self._url(path)
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                data=data,
                json=json_body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"{self.name} API {method} {url} failed: {exc}") from exc
        if response.status_code >= HTTP_ERROR_STATUS:
            raise APIError(
                f"{self.name} API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        return response

    def _paginate(self, path: str, *, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        pages = paginate(
            self._session,
            self._url(path),
            headers=self._headers(),
            params=params,
            timeout=self.timeout,
        )
        self._log.debug(f"{self.name}: fetched {len(pages)} page(s) from {path}")
        return decode_pages(pages)

    # ---- generic operations -------------------------------------------
    def state_for(self, state: str) -> str:
        if state not in LOGICAL_STATES:
            raise InvalidInputError(
                f"invalid milestone state {state!r} (expected one of: {', '.join(LOGICAL_STATES)})"
            )
        return self.active_state if state == ACTIVE else self.closed_state

    def list_milestones(self, project_id: str, state: str) -> list[Milestone]:
        vocab = self.state_for(state)
        records = self._paginate(
            self._milestones_path(project_id),
            params={"state": vocab, "per_page": PER_PAGE},
        )
        out: list[Milestone] = []
        for record in records:
            record_state = record.get("state")
            if record_state is not None and record_state != vocab:
                continue
            out.append(self._to_milestone(record).with_state(vocab))
        return out

    def fetch_milestone_map(self, project_id: str, state: str) -> dict[str, Milestone]:
        return index_by_title(self.list_milestones(project_id, state))

    def create_milestones(
        self,
        project_id: str,
        milestones: Mapping[str, Milestone],
        *,
        progress: list[Milestone] | None = None,
    ) -> list[Milestone]:
        """POST every milestone, stopping at the first failure.

        Already created milestones stay created; there is no rollback. Pass
        ``progress`` to see which milestones were created before an error.
        """
        created: list[Milestone] = progress if progress is not None else []
        for title in sorted(milestones):
            milestone = milestones[title]
            self._create_one(project_id, milestone)
            self._log.log_milestone_action(
                "create", milestone.title, milestone.due_date, provider=self.name
            )
            created.append(milestone)
        return created

    def reactivate(
        self,
        milestones: Mapping[str, Milestone],
        project_id: str,
        *,
        progress: dict[str, Milestone] | None = None,
    ) -> dict[str, Milestone]:
        """Reopen closed milestones; returns copies tagged with the active state.

        The first failing request aborts the remaining ones; ``progress``
        keeps the milestones reopened before it.
        """
        reopened: dict[str, Milestone] = progress if progress is not None else {}
        for title in sorted(milestones):
            milestone = milestones[title]
            self._reactivate_one(project_id, milestone)
            self._log.log_milestone_action(
                "reactivate", milestone.title, milestone.due_date, provider=self.name
            )
            reopened[title] = milestone.with_state(self.active_state)
        return reopened

    def close(self) -> None:
        if self.session is None:
            self._session.close()


def build_provider(
    name: str,
    base_url: str,
    token: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    logger: StructuredLogger | None = None,
) -> MilestoneProvider:
    from .github_rest import GitHubMilestoneProvider  # noqa: PLC0415
    from .gitlab_rest import GitLabMilestoneProvider  # noqa: PLC0415

    registry: dict[str, type[MilestoneProvider]] = {
        GitLabMilestoneProvider.name: GitLabMilestoneProvider,
        GitHubMilestoneProvider.name: GitHubMilestoneProvider,
    }
    cls = registry.get((name or "").lower())
    if cls is None:
        raise InvalidInputError(f"unknown provider {name!r} (expected gitlab or github)")
    return cls(base_url=base_url, token=token, session=session, timeout=timeout, logger=logger)


__all__ = [
    "MilestoneProvider",
    "build_provider",
    "normalize_base_url",
    "ACTIVE",
    "CLOSED",
    "USER_AGENT",
]
