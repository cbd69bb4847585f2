"""Process-table lookups used to wait for background engine helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import psutil
import structlog
from structlog.typing import FilteringBoundLogger

logger = logging.getLogger(__name__)


class ProcessProbe(Protocol):
    """Answer whether a process with a given name is currently running."""

    def is_running(self, name: str) -> bool:  # pragma: no cover - interface
        """Return ``True`` while a matching process is alive."""


_LAUNCHER_SUFFIXES = frozenset({"", ".sh", ".bat", ".cmd", ".exe"})
_SHELLS = frozenset({"sh", "bash", "dash", "zsh", "cmd", "powershell", "pwsh"})


def _is_launcher(name: str, value: object) -> bool:
    path = Path(str(value))
    return path.stem == name and path.suffix.lower() in _LAUNCHER_SUFFIXES


def _matches(name: str, info: dict) -> bool:
    if _is_launcher(name, info.get("name") or ""):
        return True
    exe = info.get("exe")
    if exe and _is_launcher(name, exe):
        return True
    cmdline = info.get("cmdline") or []
    if not cmdline:
        return False
    if _is_launcher(name, cmdline[0]):
        return True
    # Launcher scripts run by a shell show up as argv[1].
    shell = Path(str(cmdline[0])).stem.lower()
    return shell in _SHELLS and len(cmdline) > 1 and _is_launcher(name, cmdline[1])


@dataclass
class PsutilProcessProbe:
    """Scan the process table with psutil.

    Any failure to enumerate processes is reported as "not running" so the
    caller never blocks on a table it cannot read.
    """

    diagnostics: FilteringBoundLogger = field(
        default_factory=lambda: structlog.get_logger(__name__)
    )

    def is_running(self, name: str) -> bool:
        try:
            for process in psutil.process_iter(["name", "exe", "cmdline"]):
                if _matches(name, process.info):
                    return True
        except (psutil.Error, OSError) as exc:
            self.diagnostics.warning(
                "process_table.query_failed", process=name, reason=str(exc)
            )
            return False
        return False
