"""Post-run wait for the engine's asynchronous statistics uploader."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from qodana_runner.core.config import CompletionWatchSettings
from qodana_runner.domain.models import CompletionOutcome, CompletionWatchResult
from qodana_runner.integrations.process_table import ProcessProbe, PsutilProcessProbe

logger = logging.getLogger(__name__)


@dataclass
class CompletionWatcher:
    """Poll for a background process until it exits or the wait budget runs out.

    This is a best-effort wait; both outcomes let the run continue.
    """

    settings: CompletionWatchSettings = field(
        default_factory=CompletionWatchSettings.from_env
    )
    probe: ProcessProbe = field(default_factory=PsutilProcessProbe)
    sleep: Callable[[float], None] = time.sleep

    def wait(self) -> CompletionWatchResult:
        name = self.settings.process_name
        interval = self.settings.poll_interval_seconds
        max_polls = self.settings.max_polls
        waited = 0.0
        # A zero budget still looks at the process table once.
        total_polls = max(max_polls, 1)
        for poll in range(1, total_polls + 1):
            if not self.probe.is_running(name):
                return CompletionWatchResult(
                    outcome=CompletionOutcome.FINISHED,
                    polls=poll,
                    waited_seconds=waited,
                )
            if max_polls == 0:
                break
            if poll == 1:
                logger.info("Waiting for %s to finish", name)
            self.sleep(interval)
            waited += interval
        logger.warning(
            "%s still running after %ds, continuing without it",
            name,
            self.settings.max_wait_seconds,
        )
        return CompletionWatchResult(
            outcome=CompletionOutcome.TIMED_OUT,
            polls=total_polls,
            waited_seconds=waited,
        )


def post_analysis(
    *,
    settings: CompletionWatchSettings | None = None,
    probe: ProcessProbe | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CompletionWatchResult:
    """Wait for the statistics uploader spawned by the engine to exit."""

    watcher = CompletionWatcher(
        settings=settings or CompletionWatchSettings.from_env(),
        probe=probe or PsutilProcessProbe(),
        sleep=sleep,
    )
    return watcher.wait()
