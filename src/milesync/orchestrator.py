"""High-level sync workflow.

Wires the calendar generator, the provider adapter and the reconciler for
one run and returns a JSON-friendly summary. Setup failures (unknown
project, invalid cadence) propagate to the caller; failures while fetching,
creating or reactivating milestones are logged, recorded in the summary and
do not stop the remaining steps.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypedDict

from .config import SyncConfig
from .errors import MilesyncError, classify_error
from .logging import StructuredLogger
from .models import ACTIVE, CLOSED, Milestone
from .provider import MilestoneProvider
from .reconcile import format_creation_listing, format_report, reconcile
from .schedule import generate_milestones
from .schemas import validate_summary


class StepError(TypedDict):
    step: str
    category: str
    message: str
    type: str


class SyncSummary(TypedDict, total=False):
    generated_at: str
    provider: str
    project_id: str
    interval: str
    advance: int
    dry_run: bool
    desired: list[str]
    planned_create: list[dict[str, Any]]
    planned_reactivate: list[dict[str, Any]]
    created: list[str]
    reactivated: list[str]
    errors: list[StepError]


def _record_error(
    errors: list[StepError], step: str, exc: BaseException, logger: StructuredLogger
) -> None:
    info = classify_error(exc)
    logger.log_error(f"{step} failed", error=info.message, step=step, category=info.category)
    errors.append(
        {
            "step": step,
            "category": info.category,
            "message": info.message,
            "type": info.original_type,
        }
    )


def _as_dicts(milestones: dict[str, Milestone]) -> list[dict[str, Any]]:
    return [asdict(milestones[title]) for title in sorted(milestones)]


def sync_milestones(
    cfg: SyncConfig,
    provider: MilestoneProvider,
    logger: StructuredLogger,
    *,
    dry_run: bool = False,
    now: datetime | None = None,
) -> SyncSummary:
    """Create missing milestones and reopen closed ones for one project."""
    errors: list[StepError] = []
    with logger.timed_operation("sync", provider=provider.name, dry_run=dry_run):
        project_id = provider.resolve_project_id(cfg.project or "", cfg.namespace or "")
        logger.log_operation("project_resolved", provider=provider.name, project_id=project_id)
        desired = generate_milestones(cfg.advance, cfg.interval, provider.date_format, now=now)
        logger.debug(f"generated {len(desired)} {cfg.interval} milestone(s)")

        active: dict[str, Milestone] | None
        try:
            active = provider.fetch_milestone_map(project_id, ACTIVE)
        except MilesyncError as exc:
            _record_error(errors, "fetch_active", exc, logger)
            active = None
        closed: dict[str, Milestone] | None
        try:
            closed = provider.fetch_milestone_map(project_id, CLOSED)
        except MilesyncError as exc:
            _record_error(errors, "fetch_closed", exc, logger)
            closed = None

        report = reconcile(desired, active or {}, closed or {})
        # a title missing from an unknown set may already exist remotely
        can_create = active is not None and closed is not None
        if not can_create:
            report["create"] = {}
        for line in format_report(report):
            logger.debug(line)

        creation: dict[str, Milestone] = report["create"]
        reactivation: dict[str, Milestone] = report["reactivate"]
        created: list[str] = []
        reactivated: list[str] = []

        if can_create:
            for line in format_creation_listing(creation):
                logger.info(line)
        if dry_run:
            for m in creation.values():
                logger.log_milestone_action("create", m.title, m.due_date, dry_run=True)
            for m in reactivation.values():
                logger.log_milestone_action("reactivate", m.title, m.due_date, dry_run=True)
        else:
            if creation:
                done: list[Milestone] = []
                try:
                    provider.create_milestones(project_id, creation, progress=done)
                except MilesyncError as exc:
                    _record_error(errors, "create", exc, logger)
                created = [m.title for m in done]
            if reactivation:
                reopened: dict[str, Milestone] = {}
                try:
                    provider.reactivate(reactivation, project_id, progress=reopened)
                except MilesyncError as exc:
                    _record_error(errors, "reactivate", exc, logger)
                reactivated = sorted(reopened)

    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "provider": provider.name,
        "project_id": project_id,
        "interval": cfg.interval,
        "advance": cfg.advance,
        "dry_run": dry_run,
        "desired": sorted(desired),
        "planned_create": _as_dicts(creation),
        "planned_reactivate": _as_dicts(reactivation),
        "created": created,
        "reactivated": reactivated,
        "errors": errors,
    }


def write_summary(summary: SyncSummary, path: str | Path) -> Path:
    validate_summary(dict(summary))
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(summary, indent=2) + "\n", encoding="utf-8")
    return target


__all__ = ["sync_milestones", "write_summary", "SyncSummary", "StepError"]
