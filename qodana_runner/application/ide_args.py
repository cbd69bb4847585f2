"""Translate run options into inspection engine flags."""

from __future__ import annotations

from qodana_runner.domain.models import FixesStrategy, RunOptions


def build_ide_args(options: RunOptions) -> list[str]:
    """Return the flags derived from ``options`` in the order the engine expects."""

    arguments: list[str] = []
    if options.linter and options.save_report:
        arguments.append("--save-report")
    if options.source_directory:
        arguments.extend(["--source-directory", options.source_directory])
    if options.disable_sanity:
        arguments.append("--disable-sanity")
    if options.profile_name:
        arguments.extend(["--profile-name", options.profile_name])
    if options.profile_path:
        arguments.extend(["--profile-path", options.profile_path])
    if options.run_promo:
        arguments.extend(["--run-promo", options.run_promo])
    if options.script != "default":
        arguments.extend(["--script", options.script])
    if options.stub_profile:
        arguments.extend(["--stub-profile", options.stub_profile])
    if options.baseline:
        arguments.extend(["--baseline", options.baseline])
    if options.baseline_include_absent:
        arguments.append("--baseline-include-absent")
    if options.fail_threshold:
        arguments.extend(["--fail-threshold", options.fail_threshold])
    if options.git_reset and options.commit and options.script == "default":
        arguments.extend(["--script", "local-changes"])
    if options.fixes_strategy is FixesStrategy.APPLY:
        arguments.extend(["--fixes-strategy", "apply"])
    elif options.fixes_strategy is FixesStrategy.CLEANUP:
        arguments.extend(["--fixes-strategy", "cleanup"])
    if options.analysis_id:
        arguments.extend(["--analysis-id", options.analysis_id])
    for prop in options.properties:
        arguments.append(f"--property={prop}")
    return arguments


def build_engine_command(ide_script: str, options: RunOptions) -> list[str]:
    """Full ``inspect qodana`` command line for a local run."""

    command = [
        ide_script,
        "inspect",
        "qodana",
        "--stub-profile",
        str(options.stub_profile_path),
        str(options.project_dir),
        str(options.results_dir),
    ]
    command.extend(build_ide_args(options))
    return command
