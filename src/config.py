"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and builds the
immutable `Settings` value the server constructs once at startup and hands
to the GitLab client (token, API base URL, timeouts and paging limits).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from core.errors import ConfigurationError

DEFAULT_API_URL = "https://gitlab.com/api/v4"
TOKEN_ENV = "GITLAB_PERSONAL_ACCESS_TOKEN"


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    token: str
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    http_verify: bool = True
    # GitLab caps per_page at 100
    page_size: int = 20
    # 0 disables the pagination bound
    max_pages: int = 1000


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the environment; raise ConfigurationError without a token."""
    env = os.environ if environ is None else environ

    token = (env.get(TOKEN_ENV) or "").strip()
    if not token:
        raise ConfigurationError(f"{TOKEN_ENV} environment variable is not set")

    api_url = (env.get("GITLAB_API_URL") or "").strip().rstrip("/") or DEFAULT_API_URL

    return Settings(
        token=token,
        api_url=api_url,
        timeout=_env_float(env, "GITLAB_TIMEOUT", 30.0),
        http_verify=_env_bool(env, "HTTP_VERIFY", True),
        page_size=min(100, max(1, _env_int(env, "GITLAB_PAGE_SIZE", 20))),
        max_pages=max(0, _env_int(env, "GITLAB_MAX_PAGES", 1000)),
    )
