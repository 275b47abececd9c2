"""Runtime helpers for milesync CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any, Protocol

from .config import CONFIG_DEFAULT, SyncConfig, default_config, load_config, validate_config
from .env_auth import EnvAuthConfig, create_env_auth_manager
from .logging import StructuredLogger

# argparse destination -> SyncConfig field
_OVERRIDES = {
    "base_url": "base_url",
    "namespace": "namespace",
    "project": "project",
    "token": "token",
    "interval": "interval",
    "advance": "advance",
    "timeout": "request_timeout",
    "log_level": "logging_level",
}


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any,
    *,
    loader: Callable[[str | Path], SyncConfig] = load_config,
    resolve_env_token: bool = True,
) -> SyncConfig:
    """Merge defaults < config file < CLI flags for the given argparse namespace.

    An explicit ``--config`` must exist; the default file is optional.
    """
    config_path = getattr(args, "config", None)
    if config_path:
        cfg = loader(config_path)
    elif Path(CONFIG_DEFAULT).exists():
        cfg = loader(CONFIG_DEFAULT)
    else:
        cfg = default_config()

    updates: dict[str, Any] = {}
    for attr, field_name in _OVERRIDES.items():
        value = getattr(args, attr, None)
        if value is not None:
            updates[field_name] = value
    if getattr(args, "json_logs", False):
        updates["logging_json_enabled"] = True
    if "interval" in updates:
        updates["interval"] = str(updates["interval"]).strip().lower()
    cfg = replace(cfg, **updates)

    if not cfg.token and resolve_env_token:
        cfg.token = create_env_auth_manager(EnvAuthConfig()).get_token()
    return validate_config(cfg)


def execute_command(
    handler: _HandlerCallable, command: str, logger: StructuredLogger
) -> int:
    """Run a command handler, logging its exit code and duration."""
    start = time.monotonic()
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    except Exception as exc:
        logger.log_error(f"command {command} crashed", error=str(exc))
        raise
    duration_ms = max(0.0, time.monotonic() - start) * 1000
    logger.log_performance(f"command_{command}", duration_ms, exit_code=exit_code)
    return exit_code


__all__ = ["prepare_config", "execute_command"]
