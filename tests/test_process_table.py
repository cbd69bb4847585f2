from __future__ import annotations

from types import SimpleNamespace

import psutil
import pytest
from structlog.testing import capture_logs

from qodana_runner.integrations import process_table
from qodana_runner.integrations.process_table import PsutilProcessProbe


def _process(name: str, cmdline: list[str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(info={"name": name, "cmdline": cmdline or []})


def _patch_table(monkeypatch, processes) -> None:
    monkeypatch.setattr(
        process_table.psutil, "process_iter", lambda attrs=None: iter(processes)
    )


def test_finds_process_by_name(monkeypatch) -> None:
    _patch_table(monkeypatch, [_process("java"), _process("statistics-uploader")])
    assert PsutilProcessProbe().is_running("statistics-uploader")


def test_finds_process_by_executable_stem(monkeypatch) -> None:
    _patch_table(monkeypatch, [_process("statistics-uploader.exe")])
    assert PsutilProcessProbe().is_running("statistics-uploader")


def test_finds_process_started_through_wrapper(monkeypatch) -> None:
    _patch_table(
        monkeypatch,
        [_process("sh", ["/bin/sh", "/opt/idea/bin/statistics-uploader.sh"])],
    )
    assert PsutilProcessProbe().is_running("statistics-uploader")


def test_missing_process_is_not_running(monkeypatch) -> None:
    _patch_table(monkeypatch, [_process("java", ["java", "-jar", "idea.jar"])])
    assert not PsutilProcessProbe().is_running("statistics-uploader")


def test_unreadable_table_counts_as_not_running(monkeypatch) -> None:
    def _deny(attrs=None):
        raise psutil.AccessDenied()

    monkeypatch.setattr(process_table.psutil, "process_iter", _deny)

    with capture_logs() as events:
        running = PsutilProcessProbe().is_running("statistics-uploader")

    assert running is False
    assert [event["event"] for event in events] == ["process_table.query_failed"]
    assert events[0]["process"] == "statistics-uploader"


def test_finds_process_by_executable_path(monkeypatch) -> None:
    _patch_table(
        monkeypatch,
        [
            SimpleNamespace(
                info={
                    "name": "java",
                    "exe": "/opt/idea/bin/statistics-uploader",
                    "cmdline": [],
                }
            )
        ],
    )
    assert PsutilProcessProbe().is_running("statistics-uploader")


@pytest.mark.parametrize(
    "cmdline",
    [
        pytest.param(["tail", "-f", "statistics-uploader.log"], id="log viewer"),
        pytest.param(["tail", "statistics-uploader.log"], id="log viewer no flags"),
        pytest.param(["pgrep", "statistics-uploader"], id="process search"),
        pytest.param(["vim", "statistics-uploader.sh"], id="editor"),
        pytest.param(["sh", "statistics-uploader.log"], id="shell reading a log"),
    ],
)
def test_processes_that_only_mention_the_uploader_do_not_match(
    monkeypatch, cmdline: list[str]
) -> None:
    _patch_table(monkeypatch, [_process(cmdline[0], cmdline)])
    assert not PsutilProcessProbe().is_running("statistics-uploader")


def test_windows_launcher_run_by_cmd(monkeypatch) -> None:
    _patch_table(
        monkeypatch,
        [_process("cmd.exe", ["cmd.exe", "C:/idea/bin/statistics-uploader.bat"])],
    )
    assert PsutilProcessProbe().is_running("statistics-uploader")
