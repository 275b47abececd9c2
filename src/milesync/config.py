from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import MilesyncError
from .pagination import DEFAULT_TIMEOUT
from .schedule import CADENCES, DAILY

CONFIG_DEFAULT = "milesync.config.yaml"
DEFAULT_ADVANCE = 30


class ConfigError(MilesyncError):
    pass


@dataclass
class SyncConfig:
    base_url: str | None
    namespace: str | None
    project: str | None
    token: str | None
    interval: str
    advance: int
    request_timeout: float
    # Logging configuration
    logging_json_enabled: bool
    logging_level: str
    source_file: Path | None = None

    def missing_remote_fields(self) -> list[str]:
        return [
            name
            for name in ("base_url", "namespace", "project", "token")
            if not getattr(self, name)
        ]


def _resolve_env_var(value: Any) -> Any:
    """Resolve ``$NAME`` values from the environment (fallback to the literal)."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)
    return value


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {}) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Configuration section '{key}' must be a mapping")
    return cast(dict[str, Any], value)


def validate_config(cfg: SyncConfig) -> SyncConfig:
    if cfg.interval not in CADENCES:
        raise ConfigError(
            f"Invalid interval '{cfg.interval}' (expected one of: {', '.join(CADENCES)})"
        )
    if cfg.advance < 0:
        raise ConfigError(f"advance must be >= 0, got {cfg.advance}")
    if cfg.request_timeout <= 0:
        raise ConfigError(f"http timeout must be > 0, got {cfg.request_timeout}")
    return cfg


def default_config() -> SyncConfig:
    return SyncConfig(
        base_url=None,
        namespace=None,
        project=None,
        token=None,
        interval=DAILY,
        advance=DEFAULT_ADVANCE,
        request_timeout=DEFAULT_TIMEOUT,
        logging_json_enabled=False,
        logging_level='INFO',
    )


def load_config(path: str | Path) -> SyncConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        loaded = yaml.safe_load(p.read_text(encoding='utf-8')) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f'Configuration root in {p} must be a mapping')
    raw = cast(dict[str, Any], loaded)
    remote = _section(raw, 'remote')
    schedule = _section(raw, 'schedule')
    http = _section(raw, 'http')
    logging_config = _section(raw, 'logging')

    try:
        advance = int(schedule.get('advance', DEFAULT_ADVANCE))
        timeout = float(http.get('timeout', DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'Invalid numeric value in {p}: {exc}') from exc

    cfg = SyncConfig(
        base_url=_resolve_env_var(remote.get('base_url')),
        namespace=_resolve_env_var(remote.get('namespace')),
        project=_resolve_env_var(remote.get('project')),
        token=_resolve_env_var(remote.get('token')),
        interval=str(schedule.get('interval', DAILY)).strip().lower(),
        advance=advance,
        request_timeout=timeout,
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
        source_file=p,
    )
    return validate_config(cfg)


__all__ = [
    "SyncConfig",
    "ConfigError",
    "load_config",
    "default_config",
    "validate_config",
    "CONFIG_DEFAULT",
]
