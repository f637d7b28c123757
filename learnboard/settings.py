from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DOMAIN = "learn.01founders.co"
DEFAULT_AUTH_PATH = "/api/auth/signin"
DEFAULT_GRAPHQL_PATH = "/api/graphql-engine/v1/graphql"
DEFAULT_PROJECT_PREFIX = "/london/div-01/"
DEFAULT_TIMEOUT = 30.0
DEFAULT_TOKEN_PATH = Path.home() / ".learnboard" / "session.json"

ENV_OVERRIDES = {
    "LEARNBOARD_DOMAIN": "domain",
    "LEARNBOARD_TIMEOUT": "timeout",
    "LEARNBOARD_PROJECT_PREFIX": "project_prefix",
    "LEARNBOARD_TOKEN_PATH": "token_path",
    "LEARNBOARD_LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class Settings:
    domain: str = DEFAULT_DOMAIN
    auth_path: str = DEFAULT_AUTH_PATH
    graphql_path: str = DEFAULT_GRAPHQL_PATH
    timeout: float = DEFAULT_TIMEOUT
    project_prefix: str = DEFAULT_PROJECT_PREFIX
    token_path: Path = field(default_factory=lambda: DEFAULT_TOKEN_PATH)
    log_level: str = "INFO"

    @property
    def auth_endpoint(self) -> str:
        return f"https://{self.domain}{self.auth_path}"

    @property
    def graphql_endpoint(self) -> str:
        return f"https://{self.domain}{self.graphql_path}"


def _as_timeout(value: object) -> float:
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except Exception:
        return DEFAULT_TIMEOUT
    return max(1.0, min(300.0, timeout))


def _as_path(value: object) -> str:
    s = str(value or "").strip()
    if s and not s.startswith("/"):
        s = "/" + s
    return s


def load_settings(raw: Optional[Mapping[str, object]] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from defaults, then ``raw``, then ``LEARNBOARD_*`` environment variables."""
    merged = dict(raw or {})
    env = os.environ if env is None else env
    for env_key, name in ENV_OVERRIDES.items():
        val = env.get(env_key)
        if val:
            merged[name] = val

    settings = Settings()
    domain = str(merged.get("domain") or settings.domain).strip()
    # Accept a full URL in place of a bare host.
    domain = domain.removeprefix("https://").removeprefix("http://").rstrip("/")

    return replace(
        settings,
        domain=domain,
        auth_path=_as_path(merged.get("auth_path")) or settings.auth_path,
        graphql_path=_as_path(merged.get("graphql_path")) or settings.graphql_path,
        timeout=_as_timeout(merged.get("timeout", settings.timeout)),
        project_prefix=str(merged.get("project_prefix") or settings.project_prefix),
        token_path=Path(str(merged["token_path"])).expanduser() if merged.get("token_path") else settings.token_path,
        log_level=str(merged.get("log_level") or settings.log_level).upper(),
    )
