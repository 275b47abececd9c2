"""Error taxonomy & redaction helpers.

Every failure raised by milesync derives from :class:`MilesyncError` so the
CLI can separate expected operational failures from programming errors.

Hierarchy:
- NetworkError      -> transport failure talking to the provider
  - ReadError       -> response body could not be read
- DecodeError       -> response body is not the JSON we expect
- NotFoundError     -> project / resource absent
- APIError          -> provider returned an error envelope or HTTP error status
- InvalidInputError -> bad cadence, state, provider name, URL ...
- ProviderDetectionError -> neither GitLab nor GitHub answered the probe

``classify_error`` maps exceptions to an :class:`ErrorInfo` used for
logging and the run summary; ``redact`` strips access tokens from text
before it is logged.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


class MilesyncError(RuntimeError):
    """Base class for all milesync failures."""


class NetworkError(MilesyncError):
    pass


class ReadError(NetworkError):
    pass


class DecodeError(MilesyncError):
    pass


class NotFoundError(MilesyncError):
    pass


class APIError(MilesyncError):
    """Raised when the provider answers with an error envelope or status."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


class InvalidInputError(MilesyncError):
    pass


class ProviderDetectionError(MilesyncError):
    pass


# Token patterns for GitHub and GitLab credentials
_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"gh[ousr]_[A-Za-z0-9]{20,40}"),  # GitHub app/oauth tokens
    re.compile(r"glpat-[A-Za-z0-9_\-]{20,}"),  # GitLab personal access tokens
    re.compile(r"(?i)(private-token[=:]\s*)[^\s&]+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"

_FATAL_TYPES: tuple[type[BaseException], ...] = (
    NotFoundError,
    ProviderDetectionError,
    InvalidInputError,
)


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    fatal: bool = False
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "category": self.category,
            "message": self.message,
            "type": self.original_type,
            "transient": self.transient,
            "fatal": self.fatal,
        }
        if self.details:
            out["details"] = self.details
        return out


def redact(text: str) -> str:
    """Redact access tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Classify an exception for logging and the run summary.

    Known milesync errors map to a category of the same name; anything else
    falls back to keyword sniffing of the message.
    """
    msg = redact(str(exc) if exc else "")
    name = exc.__class__.__name__
    fatal = isinstance(exc, _FATAL_TYPES)

    if isinstance(exc, ReadError):
        return ErrorInfo("network.read", msg, name, transient=True)
    if isinstance(exc, NetworkError):
        return ErrorInfo("network", msg, name, transient=True)
    if isinstance(exc, DecodeError):
        return ErrorInfo("decode", msg, name)
    if isinstance(exc, NotFoundError):
        return ErrorInfo("not_found", msg, name, fatal=fatal)
    if isinstance(exc, APIError):
        details = {"status": exc.status} if exc.status is not None else None
        transient = exc.status is not None and exc.status >= 500
        return ErrorInfo("api", msg, name, transient=transient, details=details)
    if isinstance(exc, InvalidInputError):
        return ErrorInfo("invalid_input", msg, name, fatal=fatal)
    if isinstance(exc, ProviderDetectionError):
        return ErrorInfo("provider_detection", msg, name, fatal=fatal)

    low = msg.lower()
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("api.rate_limit", msg, name, transient=True)
    if any(k in low for k in ("timeout", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", msg, name, transient=True)
    return ErrorInfo("generic", msg, name)


__all__ = [
    "MilesyncError",
    "NetworkError",
    "ReadError",
    "DecodeError",
    "NotFoundError",
    "APIError",
    "InvalidInputError",
    "ProviderDetectionError",
    "ErrorInfo",
    "classify_error",
    "redact",
]
