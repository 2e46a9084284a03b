"""Configuration via environment variables with cloud-native secret support.

Command-line values take precedence over the environment; a local .env
file is loaded first so plain env vars work during development.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from scripts.access_audit.secrets import resolve_github_token


class ConfigError(ValueError):
    """Required configuration is missing or invalid."""


@dataclass(frozen=True)
class GitHubConfig:
    token: str
    org: str
    api_base_url: str = "https://api.github.com"
    max_retries: int = 5
    request_timeout: float = 30.0


@dataclass(frozen=True)
class ReportConfig:
    output_path: str = "output.md"
    workers: int = 1


@dataclass(frozen=True)
class SchedulerConfig:
    report_interval_min: int = 1440
    misfire_grace_time: int = 300


@dataclass(frozen=True)
class AuditConfig:
    github: GitHubConfig
    report: ReportConfig = field(default_factory=ReportConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def load_config(
    org: Optional[str] = None,
    token: Optional[str] = None,
    output: Optional[str] = None,
) -> AuditConfig:
    """Build the configuration from arguments, falling back to the environment."""
    load_dotenv()

    org = org or os.environ.get("GITHUB_ORG", "")
    if not org:
        raise ConfigError("an organisation is required (--org or GITHUB_ORG)")

    resolved_token = resolve_github_token(token)
    if not resolved_token:
        raise ConfigError(
            "no token provided. Use --token, GITHUB_TOKEN env var, "
            "or configure git credential helper"
        )

    workers = _int_env("REPORT_WORKERS", 1)
    if workers < 1:
        raise ConfigError("REPORT_WORKERS must be at least 1")

    github = GitHubConfig(
        token=resolved_token,
        org=org,
        api_base_url=os.environ.get("GITHUB_API_BASE_URL", "https://api.github.com"),
        max_retries=_int_env("GITHUB_MAX_RETRIES", 5),
        request_timeout=float(_int_env("GITHUB_REQUEST_TIMEOUT", 30)),
    )
    report = ReportConfig(
        output_path=output or os.environ.get("REPORT_OUTPUT", "output.md"),
        workers=workers,
    )
    scheduler = SchedulerConfig(
        report_interval_min=_int_env("REPORT_INTERVAL_MIN", 1440),
        misfire_grace_time=_int_env("SCHEDULER_MISFIRE_GRACE_TIME", 300),
    )
    return AuditConfig(
        github=github,
        report=report,
        scheduler=scheduler,
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
