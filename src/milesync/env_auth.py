"""Environment-based token resolution.

The access token may come from the CLI, the config file, or - when neither
provides one - from environment variables, optionally loaded from a ``.env``
file first.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .logging import StructuredLogger, get_logger

DEFAULT_TOKEN_VARS = ("MILESYNC_TOKEN", "GITLAB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    token_vars: tuple[str, ...] = field(default=DEFAULT_TOKEN_VARS)


class EnvironmentAuthManager:
    """Looks up the provider token in the environment and ``.env`` files."""

    def __init__(self, config: EnvAuthConfig, logger: StructuredLogger | None = None):
        self.config = config
        self.logger = logger or get_logger()
        self._dotenv_loaded = False

        if config.load_dotenv:
            self._load_dotenv()

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def _load_dotenv(self) -> None:
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else ['.env', '.env.local']
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # existing environment variables win over the file
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                break

    def get_token(self) -> str | None:
        for var in self.config.token_vars:
            token = os.getenv(var)
            if token and token.strip():
                self.logger.debug(f"Found access token in {var}")
                return token.strip()
        return None


def create_env_auth_manager(
    config: EnvAuthConfig | None = None, logger: StructuredLogger | None = None
) -> EnvironmentAuthManager:
    """Factory function to create environment authentication manager."""
    return EnvironmentAuthManager(config or EnvAuthConfig(), logger=logger)


__all__ = [
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "create_env_auth_manager",
    "DEFAULT_TOKEN_VARS",
]
