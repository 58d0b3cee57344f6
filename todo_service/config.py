"""Process-wide configuration for the todo service.

Settings are read once at startup from the environment (a ``.env`` file is
honoured through :mod:`dotenv`) and then passed explicitly to the pieces
that need them. ``SECRET_KEY`` and ``DATABASE_URL`` are required; a missing
value fails fast so the process never starts half configured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

ENV_SECRET_KEY = "SECRET_KEY"
ENV_DATABASE_URL = "DATABASE_URL"
ENV_ROOT_PATH = "ROOT_PATH"
ENV_DB_ECHO = "DB_ECHO"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_MUTATION_ATTEMPTS = "TODO_MUTATION_ATTEMPTS"
ENV_PORT = "PORT"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    database_url: str
    root_path: str = ""
    db_echo: bool = False
    log_level: str = "INFO"
    mutation_attempts: int = 3
    port: int = 8080


def _require(env: Mapping[str, str], key: str) -> str:
    value = env.get(key)
    if not value:
        raise RuntimeError(f"{key} environment variable is not set!")
    return value


def _as_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{key} must be an integer") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    When reading the real environment a ``.env`` file is loaded first.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    attempts = _as_int(env, ENV_MUTATION_ATTEMPTS, 3)
    if attempts < 1:
        raise RuntimeError(f"{ENV_MUTATION_ATTEMPTS} must be at least 1")

    return Settings(
        secret_key=_require(env, ENV_SECRET_KEY),
        database_url=_require(env, ENV_DATABASE_URL),
        root_path=env.get(ENV_ROOT_PATH, ""),
        db_echo=env.get(ENV_DB_ECHO, "").strip().lower() in _TRUTHY,
        log_level=env.get(ENV_LOG_LEVEL, "INFO").upper(),
        mutation_attempts=attempts,
        port=_as_int(env, ENV_PORT, 8080),
    )
