"""Detect which provider dialect a base URL speaks.

Each candidate gets one authenticated GET against an endpoint only that
provider serves; the first answering HTTP 200 wins. Candidates are tried in
a fixed order (GitLab, then GitHub) so runs are reproducible.
"""

from __future__ import annotations

import requests

from .errors import ProviderDetectionError
from .github_rest import GitHubMilestoneProvider
from .gitlab_rest import GitLabMilestoneProvider
from .logging import StructuredLogger, get_logger
from .pagination import DEFAULT_TIMEOUT
from .provider import USER_AGENT, MilestoneProvider, normalize_base_url

HTTP_OK = 200


def _probe_urls(base_url: str, namespace: str, project: str) -> list[tuple[type[MilestoneProvider], str]]:
    gitlab_api = GitLabMilestoneProvider.api_root(base_url)
    github_api = GitHubMilestoneProvider.api_root(base_url)
    return [
        (GitLabMilestoneProvider, f"{gitlab_api}/version"),
        (GitHubMilestoneProvider, f"{github_api}/repos/{namespace}/{project}"),
    ]


def detect_provider(
    base_url: str,
    token: str,
    namespace: str,
    project: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    logger: StructuredLogger | None = None,
) -> str:
    """Return ``"gitlab"`` or ``"github"`` for ``base_url``.

    Raises :class:`ProviderDetectionError` when no candidate answers 200.
    """
    log = logger or get_logger()
    url = normalize_base_url(base_url)
    http = session or requests.Session()
    try:
        for cls, probe_url in _probe_urls(url, namespace, project):
            headers = {"User-Agent": USER_AGENT, **cls.auth_headers(token)}
            try:
                response = http.request("GET", probe_url, headers=headers, timeout=timeout)
            except requests.RequestException as exc:
                log.debug(f"probe {cls.name}: {probe_url} unreachable ({exc})", provider=cls.name)
                continue
            log.debug(
                f"probe {cls.name}: {probe_url} -> {response.status_code}",
                provider=cls.name,
                status=response.status_code,
            )
            if response.status_code == HTTP_OK:
                log.log_operation("provider_detected", provider=cls.name, base_url=url)
                return cls.name
    finally:
        if session is None:
            http.close()
    raise ProviderDetectionError("could not access GitLab or GitHub APIs")


__all__ = ["detect_provider", "normalize_base_url"]
