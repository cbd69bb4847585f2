"""Value objects shared across the licensing and run orchestration layers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from qodana_runner.core import config


@dataclass(frozen=True)
class LicenseToken:
    """Credentials available to a single analysis run.

    ``token`` authorizes both licensing and report submission;
    ``license_only_token`` only unlocks the product license. The value is
    built once per run and handed to whoever needs a capability check.
    """

    token: str = ""
    license_only_token: str = ""

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "LicenseToken":
        return cls(
            token=config.env_text(config.QODANA_TOKEN_ENV, env=env),
            license_only_token=config.env_text(
                config.QODANA_LICENSE_ONLY_TOKEN_ENV, env=env
            ),
        )

    @property
    def license_only(self) -> bool:
        return bool(self.license_only_token) and not self.token

    @property
    def license_request_token(self) -> str:
        """Credential used to fetch license data; the analysis token wins."""

        return self.token or self.license_only_token

    def is_allowed_to_send_fus(self) -> bool:
        return not self.license_only

    def is_allowed_to_send_reports(self) -> bool:
        return bool(self.token)


@dataclass(frozen=True)
class LicenseSetupResult:
    """Outcome of the license setup step; ``key`` is empty when none was obtained."""

    key: str = ""
    skipped: bool = False
    error_code: str | None = None
    error_message: str | None = None

    @property
    def licensed(self) -> bool:
        return bool(self.key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "licensed": self.licensed,
            "skipped": self.skipped,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class CompletionOutcome(str, Enum):
    FINISHED = "finished"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class CompletionWatchResult:
    outcome: CompletionOutcome
    polls: int
    waited_seconds: float

    @property
    def finished(self) -> bool:
        return self.outcome is CompletionOutcome.FINISHED


@dataclass(frozen=True)
class ProductInfo:
    """Installed IDE product backing the analysis engine."""

    base_script_name: str
    ide_dir: Path
    ide_script: Path
    code: str = "QD"
    version: str = ""
    build: str = ""
    eap: bool = False

    @property
    def ide_bin(self) -> Path:
        return self.ide_script.parent


class FixesStrategy(str, Enum):
    NONE = "none"
    APPLY = "apply"
    CLEANUP = "cleanup"


@dataclass(frozen=True)
class RunOptions:
    """User-facing configuration for one local analysis run."""

    project_dir: Path
    results_dir: Path
    cache_dir: Path
    ide_dir: Path | None = None
    linter: str = ""
    save_report: bool = False
    source_directory: str = ""
    disable_sanity: bool = False
    profile_name: str = ""
    profile_path: str = ""
    run_promo: str = ""
    script: str = "default"
    stub_profile: str = ""
    baseline: str = ""
    baseline_include_absent: bool = False
    fail_threshold: str = ""
    git_reset: bool = False
    commit: str = ""
    fixes_strategy: FixesStrategy = FixesStrategy.NONE
    analysis_id: str = ""
    properties: tuple[str, ...] = field(default_factory=tuple)

    @property
    def log_dir(self) -> Path:
        return self.results_dir / "log"

    @property
    def conf_dir(self) -> Path:
        return self.cache_dir / "idea"

    @property
    def stub_profile_path(self) -> Path:
        return self.conf_dir / "profiles" / "qodana.yaml"

    @property
    def vm_options_path(self) -> Path:
        return self.conf_dir / "qodana.vmoptions"
