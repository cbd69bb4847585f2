from __future__ import annotations

import pytest

from qodana_runner.core import config
from qodana_runner.domain.timing import (
    LicenseTimingPolicy,
    resolve_attempts,
    resolve_timeout_seconds,
)


def _env(cooldown: str | None = None, timeout: str | None = None) -> dict[str, str]:
    env: dict[str, str] = {}
    if cooldown is not None:
        env[config.LICENSE_REQUEST_COOLDOWN_ENV] = cooldown
    if timeout is not None:
        env[config.LICENSE_REQUEST_TIMEOUT_ENV] = timeout
    return env


def test_defaults_when_unset() -> None:
    assert resolve_timeout_seconds({}) == config.DEFAULT_LICENSE_REQUEST_COOLDOWN
    assert resolve_attempts({}) == (
        config.DEFAULT_LICENSE_REQUEST_TIMEOUT
        // config.DEFAULT_LICENSE_REQUEST_COOLDOWN
    )


@pytest.mark.parametrize("raw", ["", "abc", "1.5", "-3", "  "])
def test_malformed_values_fall_back_to_defaults(raw: str) -> None:
    env = _env(cooldown=raw, timeout=raw)
    assert resolve_timeout_seconds(env) == config.DEFAULT_LICENSE_REQUEST_COOLDOWN
    assert LicenseTimingPolicy.from_env(env) == LicenseTimingPolicy()


def test_attempts_is_timeout_divided_by_cooldown() -> None:
    assert resolve_attempts(_env(cooldown="2", timeout="6")) == 3
    assert resolve_attempts(_env(cooldown="4", timeout="10")) == 2


@pytest.mark.parametrize(
    ("cooldown", "timeout"),
    [("10", "5"), ("61", "60"), ("5", "0"), ("0", "0"), ("0", "100")],
)
def test_attempts_never_below_one(cooldown: str, timeout: str) -> None:
    assert resolve_attempts(_env(cooldown=cooldown, timeout=timeout)) == 1


def test_policy_bounds_total_retry_time() -> None:
    policy = LicenseTimingPolicy(cooldown_seconds=3, timeout_seconds=10)
    assert policy.attempts == 3
    assert policy.attempts * policy.cooldown_seconds <= policy.timeout_seconds


def test_zero_cooldown_keeps_a_usable_request_timeout() -> None:
    policy = LicenseTimingPolicy(cooldown_seconds=0, timeout_seconds=10)
    assert policy.per_attempt_timeout > 0


def test_reads_process_environment_by_default(monkeypatch) -> None:
    monkeypatch.setenv(config.LICENSE_REQUEST_COOLDOWN_ENV, "7")
    monkeypatch.setenv(config.LICENSE_REQUEST_TIMEOUT_ENV, "21")
    assert resolve_timeout_seconds() == 7
    assert resolve_attempts() == 3
