"""milesync CLI.

Subcommands:
  sync      -> create missing milestones and reopen closed ones
  schedule  -> print the generated milestone calendar (no network access)
  probe     -> report whether a base URL speaks the GitLab or GitHub API
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from typing import Any

import requests

from .config import ConfigError, SyncConfig
from .errors import MilesyncError, classify_error
from .logging import StructuredLogger, configure_logging
from .orchestrator import sync_milestones, write_summary
from .probe import detect_provider
from .provider import build_provider
from .runtime import execute_command, prepare_config
from .schedule import CADENCES, DATE_FORMAT, RFC3339_FORMAT, generate_milestones

CONFIG_HELP = "YAML configuration file (default: milesync.config.yaml when present)"
PROVIDER_FORMATS = {"gitlab": DATE_FORMAT, "github": RFC3339_FORMAT}

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_remote_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help=CONFIG_HELP)
    p.add_argument("--token", help="GitLab private token or GitHub access token")
    p.add_argument(
        "--url", "--base-url", dest="base_url", help="Provider host or URL (https assumed)"
    )
    p.add_argument("--namespace", help="Project namespace / repository owner")
    p.add_argument("--project", help="Project / repository name")
    p.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default 30)")


def _add_schedule_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--interval",
        "--time-interval",
        dest="interval",
        help=f"Milestone cadence: {', '.join(CADENCES)} (default daily)",
    )
    p.add_argument("--advance", type=int, help="Number of milestones to plan ahead (default 30)")


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands."""
    p = _FormatterArgumentParser(
        prog="milesync", description="Keep periodic GitLab/GitHub milestones in place"
    )
    p.add_argument("--log-level", help="Logging level (default INFO)")
    p.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    p.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("sync", help="Create missing and reopen closed milestones")
    _add_remote_args(ps)
    _add_schedule_args(ps)
    ps.add_argument("--dry-run", action="store_true", help="Plan only; send no mutations")
    ps.add_argument("--summary-json", help="Write the run summary to this JSON file")

    sch = sub.add_parser("schedule", help="Print the generated milestone calendar")
    sch.add_argument("--config", help=CONFIG_HELP)
    _add_schedule_args(sch)
    sch.add_argument(
        "--provider",
        choices=sorted(PROVIDER_FORMATS),
        default="gitlab",
        help="Render due dates for this provider (default gitlab)",
    )
    sch.add_argument("--json", action="store_true")

    pr = sub.add_parser("probe", help="Detect the provider behind a base URL")
    _add_remote_args(pr)
    return p


def _fatal(logger: StructuredLogger, message: str, exc: BaseException) -> int:
    info = classify_error(exc)
    logger.log_error(message, error=info.message, category=info.category)
    return 1


def _require_remote(cfg: SyncConfig, logger: StructuredLogger) -> bool:
    missing = cfg.missing_remote_fields()
    if missing:
        logger.log_error("missing required settings", error=", ".join(missing))
        return False
    return True


def _cmd_sync(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    if not _require_remote(cfg, logger):
        return 1
    session = requests.Session()
    try:
        provider_name = detect_provider(
            cfg.base_url or "",
            cfg.token or "",
            cfg.namespace or "",
            cfg.project or "",
            session=session,
            timeout=cfg.request_timeout,
            logger=logger,
        )
        provider = build_provider(
            provider_name,
            cfg.base_url or "",
            cfg.token or "",
            session=session,
            timeout=cfg.request_timeout,
            logger=logger,
        )
        summary = sync_milestones(cfg, provider, logger, dry_run=getattr(args, "dry_run", False))
    except MilesyncError as exc:
        return _fatal(logger, "sync aborted", exc)
    finally:
        session.close()

    summary_path = getattr(args, "summary_json", None)
    if summary_path:
        try:
            target = write_summary(summary, summary_path)
        except MilesyncError as exc:
            return _fatal(logger, "summary rejected", exc)
        logger.log_operation("summary_written", path=str(target))
    logger.info(
        f"[sync] created={len(summary['created'])} reactivated={len(summary['reactivated'])} "
        f"errors={len(summary['errors'])}" + (" [DRY]" if summary["dry_run"] else "")
    )
    return 0


def _cmd_schedule(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    try:
        milestones = generate_milestones(
            cfg.advance, cfg.interval, PROVIDER_FORMATS[getattr(args, "provider", "gitlab")]
        )
    except MilesyncError as exc:
        return _fatal(logger, "schedule failed", exc)
    if getattr(args, "json", False):
        payload = [asdict(milestones[title]) for title in sorted(milestones)]
        print(json.dumps(payload, indent=2))
    else:
        for title in sorted(milestones):
            print(f"{title}\t{milestones[title].due_date}")
    return 0


def _cmd_probe(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    if not _require_remote(cfg, logger):
        return 1
    try:
        name = detect_provider(
            cfg.base_url or "",
            cfg.token or "",
            cfg.namespace or "",
            cfg.project or "",
            timeout=cfg.request_timeout,
            logger=logger,
        )
    except MilesyncError as exc:
        return _fatal(logger, "probe failed", exc)
    print(name)
    return 0


_HANDLERS = {
    "sync": _cmd_sync,
    "schedule": _cmd_schedule,
    "probe": _cmd_probe,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = prepare_config(args, resolve_env_token=args.cmd != "schedule")
    except ConfigError as exc:
        print(f"[milesync] {exc}", file=sys.stderr)
        return 1
    level = "WARNING" if args.quiet else cfg.logging_level
    # stdout carries command output; logs go to stderr
    logger = configure_logging(
        json_logging=cfg.logging_json_enabled, level=level, stream=sys.stderr
    )
    handler = _HANDLERS.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    return execute_command(lambda: handler(cfg, args, logger), args.cmd, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
