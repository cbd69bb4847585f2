"""Central configuration for local Qodana runs, sourced from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PACKAGE_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT = PACKAGE_ROOT.parent

_env_path = PROJECT_ROOT / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


# Environment variable names -------------------------------------------------
QODANA_TOKEN_ENV = "QODANA_TOKEN"
QODANA_LICENSE_ONLY_TOKEN_ENV = "QODANA_LICENSE_ONLY_TOKEN"
QODANA_LICENSE_ENV = "QODANA_LICENSE"
LICENSE_ENDPOINT_ENV = "LICENSE_ENDPOINT"
LICENSE_REQUEST_COOLDOWN_ENV = "QODANA_LICENSE_REQUEST_COOLDOWN"
LICENSE_REQUEST_TIMEOUT_ENV = "QODANA_LICENSE_REQUEST_TIMEOUT"
UPLOADER_WAIT_SECONDS_ENV = "QODANA_UPLOADER_WAIT_SECONDS"
IDE_VM_OPTIONS_ENV = "IDEA_VM_OPTIONS"


# Licensing defaults ---------------------------------------------------------
DEFAULT_LICENSE_ENDPOINT = "https://linters.qodana.cloud"
LICENSE_URI = "/v1/linters/license-key"
LICENSE_KEY_FIELD = "licenseKey"
DEFAULT_LICENSE_REQUEST_COOLDOWN = 60
DEFAULT_LICENSE_REQUEST_TIMEOUT = 180


# Completion watcher defaults ------------------------------------------------
STATISTICS_UPLOADER_PROCESS = "statistics-uploader"
DEFAULT_UPLOADER_MAX_WAIT_SECONDS = 600
DEFAULT_UPLOADER_POLL_INTERVAL_SECONDS = 1.0


# Engine exit codes ----------------------------------------------------------
QODANA_SUCCESS_EXIT_CODE = 0
QODANA_FAIL_THRESHOLD_EXIT_CODE = 255


def _env(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if env is None else env


def env_text(name: str, *, default: str = "", env: Mapping[str, str] | None = None) -> str:
    """Return a stripped environment value, or ``default`` when unset or blank."""

    value = _env(env).get(name, "")
    text = value.strip() if isinstance(value, str) else ""
    return text or default


def env_int(name: str, *, default: int, env: Mapping[str, str] | None = None) -> int:
    """Parse a non-negative integer from the environment, falling back on bad input."""

    text = env_text(name, env=env)
    if not text:
        return default
    try:
        value = int(text)
    except ValueError:
        return default
    if value < 0:
        return default
    return value


@dataclass(frozen=True)
class LicenseSettings:
    """Where and how license data is requested."""

    endpoint: str = DEFAULT_LICENSE_ENDPOINT
    uri: str = LICENSE_URI
    key_field: str = LICENSE_KEY_FIELD
    output_variable: str = QODANA_LICENSE_ENV

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "LicenseSettings":
        return cls(
            endpoint=env_text(
                LICENSE_ENDPOINT_ENV, default=DEFAULT_LICENSE_ENDPOINT, env=env
            )
        )


@dataclass(frozen=True)
class CompletionWatchSettings:
    """Bounds for the post-run wait on the statistics uploader."""

    process_name: str = STATISTICS_UPLOADER_PROCESS
    max_wait_seconds: int = DEFAULT_UPLOADER_MAX_WAIT_SECONDS
    poll_interval_seconds: float = DEFAULT_UPLOADER_POLL_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.max_wait_seconds < 0:
            raise ValueError("max_wait_seconds must not be negative")

    @property
    def max_polls(self) -> int:
        return int(self.max_wait_seconds // self.poll_interval_seconds)

    @classmethod
    def from_env(
        cls, env: Mapping[str, str] | None = None
    ) -> "CompletionWatchSettings":
        return cls(
            max_wait_seconds=env_int(
                UPLOADER_WAIT_SECONDS_ENV,
                default=DEFAULT_UPLOADER_MAX_WAIT_SECONDS,
                env=env,
            )
        )
