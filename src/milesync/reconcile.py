"""Reconcile the desired milestone calendar against the remote state.

Three milestone sets take part, each keyed by title:

* ``desired``        - generated by :mod:`milesync.schedule`
* ``remote_active``  - open/active milestones fetched from the provider
* ``remote_closed``  - closed milestones fetched from the provider

Titles are the only identity; a remote milestone with a matching title
satisfies a desired one even when the due dates differ.

Report structure (stable for JSON tooling):

```
{
    "summary": {"desired_count": int, "active_count": int, "closed_count": int,
                "create_count": int, "reactivate_count": int},
    "create": {title: Milestone},
    "reactivate": {title: Milestone},   # remote records, ids preserved
    "in_sync": bool
}
```
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .models import Milestone


def compute_creation_set(
    desired: Mapping[str, Milestone], remote_active: Mapping[str, Milestone]
) -> dict[str, Milestone]:
    """Desired milestones whose title is not already active remotely."""
    existing = {title for title in desired if title in remote_active}
    return {title: m for title, m in desired.items() if title not in existing}


def compute_reactivation_set(
    desired: Mapping[str, Milestone], remote_closed: Mapping[str, Milestone]
) -> dict[str, Milestone]:
    """Closed remote milestones whose title is scheduled again.

    Values come from ``remote_closed`` so ids survive for the reopen call.
    """
    return {title: remote_closed[title] for title in desired if title in remote_closed}


def reconcile(
    desired: Mapping[str, Milestone],
    remote_active: Mapping[str, Milestone] | None = None,
    remote_closed: Mapping[str, Milestone] | None = None,
) -> dict[str, Any]:
    """Build the reconciliation report (see module docstring).

    A title that is both missing from the active set and present in the
    closed set is reactivated instead of created.
    """
    active = dict(remote_active or {})
    closed = dict(remote_closed or {})
    reactivate = compute_reactivation_set(desired, closed)
    create = compute_creation_set(compute_creation_set(desired, active), reactivate)
    return {
        "summary": {
            "desired_count": len(desired),
            "active_count": len(active),
            "closed_count": len(closed),
            "create_count": len(create),
            "reactivate_count": len(reactivate),
        },
        "create": create,
        "reactivate": reactivate,
        "in_sync": not create and not reactivate,
    }


def format_creation_listing(creation: Mapping[str, Milestone]) -> list[str]:
    if not creation:
        return ["No milestone creation needed"]
    lines = ["New milestones:"]
    for title in sorted(creation):
        lines.append(f"Title: {title} - Due Date: {creation[title].due_date}")
    return lines


def format_report(report: dict[str, Any]) -> list[str]:  # return list of human lines
    summary = report.get("summary", {})
    lines: list[str] = []
    if report.get("in_sync"):
        lines.append(
            f"[reconcile] Milestones in sync (desired={summary.get('desired_count', 0)}, "
            f"active={summary.get('active_count', 0)}, closed={summary.get('closed_count', 0)})"
        )
        return lines
    lines.append(
        f"[reconcile] create={summary.get('create_count', 0)} "
        f"reactivate={summary.get('reactivate_count', 0)} "
        f"(desired={summary.get('desired_count', 0)}, active={summary.get('active_count', 0)}, "
        f"closed={summary.get('closed_count', 0)})"
    )
    lines.extend(f"  {line}" for line in format_creation_listing(report.get("create", {})))
    reactivate: Mapping[str, Milestone] = report.get("reactivate", {})
    for title in sorted(reactivate):
        m = reactivate[title]
        ident = f"#{m.sequence_number}" if m.sequence_number is not None else f"id={m.remote_id}"
        lines.append(f"  reactivate: {title} ({ident})")
    return lines


__all__ = [
    "compute_creation_set",
    "compute_reactivation_set",
    "reconcile",
    "format_creation_listing",
    "format_report",
]
