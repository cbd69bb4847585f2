"""Local run orchestration: license, launch, wait, finalize."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import MutableMapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from qodana_runner.application.completion import CompletionWatcher
from qodana_runner.application.ide_args import build_engine_command
from qodana_runner.application.licensing import setup_license
from qodana_runner.core import config
from qodana_runner.domain.models import (
    CompletionWatchResult,
    LicenseSetupResult,
    LicenseToken,
    ProductInfo,
    RunOptions,
)
from qodana_runner.integrations.ide_cache import prepare_directories, sync_ide_cache
from qodana_runner.integrations.ide_product import is_docker

logger = logging.getLogger(__name__)

CommandRunner = Callable[..., subprocess.CompletedProcess]


class ReportPublisher(Protocol):
    """Upload analysis results; only called when the token allows it."""

    def __call__(
        self, options: RunOptions, token: str
    ) -> None:  # pragma: no cover - interface
        ...


@dataclass(frozen=True)
class RunResult:
    exit_code: int
    license: LicenseSetupResult
    completion: CompletionWatchResult
    report_published: bool = False

    @property
    def completed(self) -> bool:
        return self.exit_code in (
            config.QODANA_SUCCESS_EXIT_CODE,
            config.QODANA_FAIL_THRESHOLD_EXIT_CODE,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "exit_code": self.exit_code,
            "completed": self.completed,
            "license": self.license.to_dict(),
            "uploader": {
                "outcome": self.completion.outcome.value,
                "waited_seconds": self.completion.waited_seconds,
            },
            "report_published": self.report_published,
        }


def vm_options(options: RunOptions, license_token: LicenseToken) -> list[str]:
    """JVM properties handed to the engine through its vmoptions file."""

    fus_enabled = "true" if license_token.is_allowed_to_send_fus() else "false"
    return [
        f"-Didea.headless.enable.statistics={fus_enabled}",
        f"-Didea.config.path={options.conf_dir}",
        f"-Didea.system.path={options.cache_dir / 'idea' / 'system'}",
        f"-Didea.log.path={options.log_dir}",
    ]


@dataclass
class LocalRun:
    """Drive one local analysis run with injectable collaborators."""

    options: RunOptions
    product: ProductInfo
    license_token: LicenseToken
    env: MutableMapping[str, str] = field(default_factory=lambda: dict(os.environ))
    run_command: CommandRunner = subprocess.run
    watcher: CompletionWatcher = field(default_factory=CompletionWatcher)
    publish_report: ReportPublisher | None = None
    license_kwargs: dict[str, Any] = field(default_factory=dict)

    def prepare(self) -> LicenseSetupResult:
        license_result = setup_license(
            self.license_token.license_request_token,
            env=self.env,
            product=self.product,
            **self.license_kwargs,
        )
        prepare_directories(
            self.options.cache_dir,
            self.options.log_dir,
            self.options.conf_dir,
        )
        self._write_vm_options()
        if is_docker():
            sync_ide_cache(
                self.options.cache_dir, self.options.project_dir, overwrite=False
            )
        return license_result

    def _write_vm_options(self) -> None:
        path = self.options.vm_options_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            "\n".join(vm_options(self.options, self.license_token)) + "\n",
            encoding="utf-8",
        )
        self.env[config.IDE_VM_OPTIONS_ENV] = str(path)

    def launch(self) -> int:
        command = build_engine_command(str(self.product.ide_script), self.options)
        logger.info("Launching %s", " ".join(command))
        completed = self.run_command(command, env=dict(self.env), check=False)
        return int(completed.returncode)

    def finalize(self) -> CompletionWatchResult:
        sync_ide_cache(self.options.project_dir, self.options.cache_dir, overwrite=True)
        return self.watcher.wait()

    def _maybe_publish(self) -> bool:
        if not self.license_token.is_allowed_to_send_reports():
            logger.debug("Token does not allow report upload")
            return False
        if self.publish_report is None:
            logger.info("No report publisher configured, results kept locally")
            return False
        self.publish_report(self.options, self.license_token.token)
        return True

    def run(self) -> RunResult:
        license_result = self.prepare()
        published = False
        try:
            exit_code = self.launch()
            if exit_code in (
                config.QODANA_SUCCESS_EXIT_CODE,
                config.QODANA_FAIL_THRESHOLD_EXIT_CODE,
            ):
                published = self._maybe_publish()
            else:
                logger.error("Inspection engine exited with code %d", exit_code)
        finally:
            completion = self.finalize()
        return RunResult(
            exit_code=exit_code,
            license=license_result,
            completion=completion,
            report_published=published,
        )


def install_plugins(
    product: ProductInfo,
    plugin_ids: Sequence[str],
    *,
    run_command: CommandRunner = subprocess.run,
) -> int:
    """Install plugins through the IDE launcher; stops at the first failure."""

    for plugin_id in plugin_ids:
        logger.info("Installing plugin %s", plugin_id)
        completed = run_command(
            [str(product.ide_script), "installPlugins", plugin_id], check=False
        )
        if completed.returncode != 0:
            return int(completed.returncode)
    return 0
