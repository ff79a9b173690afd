"""Environment-based authentication for the GitHub CLI transport.

``gh`` reads ``GH_TOKEN`` while many CI systems only export ``GITHUB_TOKEN``
(and vice versa). ``bridged_environment`` mirrors whichever one is set into the
other for the child process. ``EnvironmentAuthManager`` optionally loads a
``.env`` file first so tokens kept there are visible to the bridge.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_VARS = ("GITHUB_TOKEN", "GH_TOKEN")
_DOTENV_CANDIDATES = (".env", ".env.local")


def bridged_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a copy of ``base`` (default ``os.environ``) with tokens mirrored.

    When exactly one of ``GITHUB_TOKEN`` / ``GH_TOKEN`` is set, its value is
    copied into the other. When both or neither are set the mapping is
    returned unchanged.
    """
    env = dict(os.environ if base is None else base)
    present = [name for name in TOKEN_VARS if env.get(name)]
    if len(present) == 1:
        source = present[0]
        target = TOKEN_VARS[1] if source == TOKEN_VARS[0] else TOKEN_VARS[0]
        env[target] = env[source]
    return env


@dataclass
class EnvAuthConfig:
    load_dotenv: bool = True
    dotenv_path: str | None = None


class EnvironmentAuthManager:
    """Loads ``.env`` files and reports which token variable is in effect."""

    def __init__(self, config: EnvAuthConfig):
        self.config = config
        self.logger = get_logger()
        self._dotenv_loaded = False
        if config.load_dotenv:
            self._load_dotenv()

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def _load_dotenv(self) -> None:
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else list(_DOTENV_CANDIDATES)
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # existing process variables win over the file
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    def get_github_token(self) -> str | None:
        for name in TOKEN_VARS:
            token = os.getenv(name)
            if token:
                self.logger.debug(f"Found GitHub token in {name}")
                return token
        return None

    def token_source(self) -> str | None:
        for name in TOKEN_VARS:
            if os.getenv(name):
                return name
        return None


def create_env_auth_manager(config: EnvAuthConfig | None = None) -> EnvironmentAuthManager:
    return EnvironmentAuthManager(config or EnvAuthConfig())


__all__ = [
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "TOKEN_VARS",
    "bridged_environment",
    "create_env_auth_manager",
]
