"""JSON Schema for the sync summary written by ``--summary-json``.

The schema pins the top-level keys and the milestone record shape; error
entries stay open so new classification fields can be added.
"""

from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator

from .errors import MilesyncError

SCHEMA_KEY = "$schema"
SCHEMA_URL = "http://json-schema.org/draft-07/schema#"
SUMMARY_SCHEMA_VERSION = 1

_MILESTONE: dict[str, Any] = {
    "type": "object",
    "required": ["title", "due_date"],
    "properties": {
        "title": {"type": "string"},
        "due_date": {"type": "string"},
        "remote_id": {"type": ["string", "null"]},
        "state": {"type": ["string", "null"]},
        "sequence_number": {"type": ["integer", "null"]},
    },
}


class SchemaValidationError(MilesyncError):
    pass


def summary_schema() -> dict[str, Any]:
    return {
        SCHEMA_KEY: SCHEMA_URL,
        "$comment": f"milesync summary schema v{SUMMARY_SCHEMA_VERSION}",
        "title": "MilestoneSyncSummary",
        "type": "object",
        "required": [
            "generated_at",
            "provider",
            "project_id",
            "interval",
            "advance",
            "dry_run",
            "desired",
            "created",
            "reactivated",
            "errors",
        ],
        "properties": {
            "generated_at": {"type": "string"},
            "provider": {"type": "string"},
            "project_id": {"type": "string"},
            "interval": {"enum": ["daily", "weekly", "monthly"]},
            "advance": {"type": "integer", "minimum": 0},
            "dry_run": {"type": "boolean"},
            "desired": {"type": "array", "items": {"type": "string"}},
            "planned_create": {"type": "array", "items": _MILESTONE},
            "planned_reactivate": {"type": "array", "items": _MILESTONE},
            "created": {"type": "array", "items": {"type": "string"}},
            "reactivated": {"type": "array", "items": {"type": "string"}},
            "errors": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["step", "category", "message"],
                },
            },
        },
    }


def validate_summary(summary: dict[str, Any]) -> None:
    """Raise :class:`SchemaValidationError` listing every schema violation."""
    validator = Draft7Validator(summary_schema())
    problems = sorted(validator.iter_errors(summary), key=lambda e: list(e.path))
    if problems:
        details = "; ".join(
            f"{'/'.join(str(p) for p in err.path) or '<root>'}: {err.message}" for err in problems
        )
        raise SchemaValidationError(f"summary does not match schema: {details}")


__all__ = ["summary_schema", "validate_summary", "SchemaValidationError", "SUMMARY_SCHEMA_VERSION"]
