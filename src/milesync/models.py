from __future__ import annotations

from dataclasses import dataclass, replace

ACTIVE = "active"
CLOSED = "closed"
LOGICAL_STATES = (ACTIVE, CLOSED)


@dataclass
class Milestone:
    """Canonical, provider-agnostic milestone record.

    Locally generated milestones only carry ``title`` and ``due_date``; the
    remaining fields are filled in for records fetched from a provider.
    ``state`` keeps the provider's own vocabulary (``active``/``open``/
    ``closed``).
    """

    title: str
    due_date: str
    remote_id: str | None = None
    state: str | None = None
    sequence_number: int | None = None

    def with_state(self, state: str) -> Milestone:
        return replace(self, state=state)


def index_by_title(milestones: list[Milestone]) -> dict[str, Milestone]:
    # last write wins for duplicate titles
    return {m.title: m for m in milestones}


__all__ = ["Milestone", "index_by_title", "ACTIVE", "CLOSED", "LOGICAL_STATES"]
