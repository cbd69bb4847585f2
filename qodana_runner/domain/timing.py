"""Timing policy for license requests.

The cooldown bounds a single HTTP attempt and doubles as the pause between
attempts; the timeout is the overall budget that determines how many attempts
fit. Both come from the environment and fall back to defaults on bad input.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from qodana_runner.core import config


def resolve_timeout_seconds(env: Mapping[str, str] | None = None) -> int:
    """Per-attempt timeout in seconds (the configured cooldown)."""

    return config.env_int(
        config.LICENSE_REQUEST_COOLDOWN_ENV,
        default=config.DEFAULT_LICENSE_REQUEST_COOLDOWN,
        env=env,
    )


def resolve_total_timeout_seconds(env: Mapping[str, str] | None = None) -> int:
    return config.env_int(
        config.LICENSE_REQUEST_TIMEOUT_ENV,
        default=config.DEFAULT_LICENSE_REQUEST_TIMEOUT,
        env=env,
    )


def attempts_for(timeout_seconds: int, cooldown_seconds: int) -> int:
    if cooldown_seconds <= 0:
        return 1
    return max(timeout_seconds // cooldown_seconds, 1)


def resolve_attempts(env: Mapping[str, str] | None = None) -> int:
    """Number of license request attempts; never less than one."""

    return attempts_for(
        resolve_total_timeout_seconds(env), resolve_timeout_seconds(env)
    )


@dataclass(frozen=True)
class LicenseTimingPolicy:
    cooldown_seconds: int = config.DEFAULT_LICENSE_REQUEST_COOLDOWN
    timeout_seconds: int = config.DEFAULT_LICENSE_REQUEST_TIMEOUT

    @property
    def attempts(self) -> int:
        return attempts_for(self.timeout_seconds, self.cooldown_seconds)

    @property
    def per_attempt_timeout(self) -> float:
        # A zero cooldown would make every request time out immediately.
        if self.cooldown_seconds <= 0:
            return float(config.DEFAULT_LICENSE_REQUEST_COOLDOWN)
        return float(self.cooldown_seconds)

    @classmethod
    def from_env(
        cls, env: Mapping[str, str] | None = None
    ) -> "LicenseTimingPolicy":
        return cls(
            cooldown_seconds=resolve_timeout_seconds(env),
            timeout_seconds=resolve_total_timeout_seconds(env),
        )
