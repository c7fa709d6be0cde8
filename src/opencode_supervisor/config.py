"""Runtime configuration for the OpenCode supervisor."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_API_URL = "http://127.0.0.1:4096"
DEFAULT_USERNAME = "opencode"
DEFAULT_SANDBOX_DIR = "/root/clawd/sandbox"
DEFAULT_CREDENTIALS_DIR = "/root/clawd/credentials"


@dataclass(slots=True)
class ApiSettings:
    """Connection settings for the OpenCode HTTP server."""

    api_url: str = DEFAULT_API_URL
    username: str = DEFAULT_USERNAME
    password: str = ""
    timeout_seconds: float = 180.0


@dataclass(slots=True)
class SupervisorSettings:
    """Iteration budget and retry policy for task execution."""

    max_iterations: int = 50
    continue_on_error: bool = True
    retry_backoff_seconds: float = 2.0
    max_no_progress: int = 3
    output_preview_chars: int = 500


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    sandbox_dir: Path = Path(DEFAULT_SANDBOX_DIR)
    credentials_dir: Path = Path(DEFAULT_CREDENTIALS_DIR)
    api: ApiSettings = field(default_factory=ApiSettings)
    supervisor: SupervisorSettings = field(default_factory=SupervisorSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for a local OpenCode server."""

        return cls(
            sandbox_dir=Path(os.getenv("OPENCODE_SUPERVISOR_SANDBOX_DIR", DEFAULT_SANDBOX_DIR)),
            credentials_dir=Path(
                os.getenv("OPENCODE_SUPERVISOR_CREDENTIALS_DIR", DEFAULT_CREDENTIALS_DIR),
            ),
            api=ApiSettings(
                api_url=os.getenv("OPENCODE_SUPERVISOR_API_URL", DEFAULT_API_URL).rstrip("/"),
                username=os.getenv("OPENCODE_SUPERVISOR_USERNAME", DEFAULT_USERNAME),
                password=os.getenv("OPENCODE_SUPERVISOR_PASSWORD", ""),
                timeout_seconds=_env_float("OPENCODE_SUPERVISOR_TIMEOUT_SECONDS", 180.0),
            ),
            supervisor=SupervisorSettings(
                max_iterations=_env_int("OPENCODE_SUPERVISOR_MAX_ITERATIONS", 50),
                continue_on_error=_env_bool(
                    "OPENCODE_SUPERVISOR_CONTINUE_ON_ERROR",
                    default=True,
                ),
                retry_backoff_seconds=_env_float(
                    "OPENCODE_SUPERVISOR_RETRY_BACKOFF_SECONDS",
                    2.0,
                ),
                max_no_progress=_env_int("OPENCODE_SUPERVISOR_MAX_NO_PROGRESS", 3),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if the API URL or limits are unusable."""

        parsed = urlparse(self.api.api_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "Invalid OpenCode API URL: "
                f"{self.api.api_url!r}. Expected an absolute URL with http:// or https:// scheme.",
            )
        if self.api.timeout_seconds <= 0:
            raise ValueError("OPENCODE_SUPERVISOR_TIMEOUT_SECONDS must be > 0.")
        if self.supervisor.max_iterations <= 0:
            raise ValueError("OPENCODE_SUPERVISOR_MAX_ITERATIONS must be > 0.")
        if self.supervisor.retry_backoff_seconds < 0:
            raise ValueError("OPENCODE_SUPERVISOR_RETRY_BACKOFF_SECONDS must be >= 0.")
        if self.supervisor.max_no_progress <= 0:
            raise ValueError("OPENCODE_SUPERVISOR_MAX_NO_PROGRESS must be > 0.")

    def project_path(self, project_name: str | None) -> Path:
        """Resolve the working directory for a task inside the sandbox."""

        if not project_name or not project_name.strip():
            return self.sandbox_dir
        name = project_name.strip()
        if Path(name).is_absolute() or ".." in Path(name).parts:
            raise ValueError(f"Project name must be a sandbox subdirectory: {name!r}")
        return self.sandbox_dir / name


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
