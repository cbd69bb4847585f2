from __future__ import annotations

import logging

import pytest

from qodana_runner.application.completion import CompletionWatcher, post_analysis
from qodana_runner.core import config
from qodana_runner.core.config import CompletionWatchSettings
from qodana_runner.domain.models import CompletionOutcome


class ScriptedProbe:
    """Report the process as running for a fixed number of polls."""

    def __init__(self, running_polls: int) -> None:
        self.running_polls = running_polls
        self.calls: list[str] = []

    def is_running(self, name: str) -> bool:
        self.calls.append(name)
        return len(self.calls) <= self.running_polls


def test_returns_immediately_when_uploader_is_absent() -> None:
    pauses: list[float] = []
    probe = ScriptedProbe(running_polls=0)

    result = CompletionWatcher(
        settings=CompletionWatchSettings(), probe=probe, sleep=pauses.append
    ).wait()

    assert result.outcome is CompletionOutcome.FINISHED
    assert result.polls == 1
    assert result.waited_seconds == 0
    assert pauses == []
    assert probe.calls == [config.STATISTICS_UPLOADER_PROCESS]


def test_waits_until_uploader_exits() -> None:
    pauses: list[float] = []
    probe = ScriptedProbe(running_polls=3)

    result = post_analysis(probe=probe, sleep=pauses.append)

    assert result.finished
    assert result.polls == 4
    assert pauses == [1.0, 1.0, 1.0]
    assert result.waited_seconds == pytest.approx(3.0)


def test_gives_up_after_the_wait_budget(caplog) -> None:
    pauses: list[float] = []
    probe = ScriptedProbe(running_polls=10_000)

    with caplog.at_level(logging.WARNING):
        result = CompletionWatcher(
            settings=CompletionWatchSettings(), probe=probe, sleep=pauses.append
        ).wait()

    assert result.outcome is CompletionOutcome.TIMED_OUT
    assert not result.finished
    assert len(probe.calls) == config.DEFAULT_UPLOADER_MAX_WAIT_SECONDS
    assert len(pauses) == config.DEFAULT_UPLOADER_MAX_WAIT_SECONDS
    assert result.waited_seconds == pytest.approx(600.0)
    assert "still running" in caplog.text


@pytest.mark.parametrize(
    ("running_polls", "outcome"),
    [(0, CompletionOutcome.FINISHED), (1, CompletionOutcome.TIMED_OUT)],
)
def test_zero_wait_budget_checks_once_without_sleeping(
    running_polls: int, outcome: CompletionOutcome
) -> None:
    pauses: list[float] = []
    probe = ScriptedProbe(running_polls=running_polls)

    result = CompletionWatcher(
        settings=CompletionWatchSettings(max_wait_seconds=0),
        probe=probe,
        sleep=pauses.append,
    ).wait()

    assert result.outcome is outcome
    assert result.polls == 1
    assert probe.calls == [config.STATISTICS_UPLOADER_PROCESS]
    assert pauses == []


def test_wait_budget_from_environment(monkeypatch) -> None:
    monkeypatch.setenv(config.UPLOADER_WAIT_SECONDS_ENV, "5")
    pauses: list[float] = []

    result = post_analysis(probe=ScriptedProbe(running_polls=100), sleep=pauses.append)

    assert result.polls == 5
    assert len(pauses) == 5


def test_malformed_wait_budget_uses_default() -> None:
    settings = CompletionWatchSettings.from_env({config.UPLOADER_WAIT_SECONDS_ENV: "soon"})
    assert settings.max_wait_seconds == config.DEFAULT_UPLOADER_MAX_WAIT_SECONDS
    assert settings.max_polls == 600


@pytest.mark.parametrize(
    "kwargs",
    [{"poll_interval_seconds": 0}, {"max_wait_seconds": -1}],
)
def test_settings_reject_invalid_bounds(kwargs) -> None:
    with pytest.raises(ValueError):
        CompletionWatchSettings(**kwargs)
