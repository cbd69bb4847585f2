"""Command-line entry point for local Qodana runs."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from qodana_runner.application.completion import CompletionWatcher
from qodana_runner.application.licensing import setup_license, setup_license_token
from qodana_runner.application.runner import LocalRun, install_plugins
from qodana_runner.core.config import CompletionWatchSettings
from qodana_runner.domain.models import FixesStrategy, RunOptions
from qodana_runner.integrations.ide_product import detect_product

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Verbosity of diagnostic output.",
)
def cli(log_level: str) -> None:
    """Prepare, license, launch and monitor local Qodana inspections."""

    _configure_logging(log_level.upper())


@cli.command()
@click.argument(
    "project_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "--ide-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    envvar="QODANA_DIST",
    required=True,
    help="IDE installation providing the inspection engine.",
)
@click.option(
    "--results-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Where the engine writes results (default: PROJECT_DIR/.qodana/results).",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Cache directory reused between runs (default: PROJECT_DIR/.qodana/cache).",
)
@click.option("--linter", default="", help="Linter name used for the run.")
@click.option("--save-report", is_flag=True, help="Generate an HTML report.")
@click.option("--source-directory", default="", help="Limit analysis to a subdirectory.")
@click.option("--disable-sanity", is_flag=True, help="Skip sanity inspections.")
@click.option("--profile-name", default="", help="Inspection profile name.")
@click.option("--profile-path", default="", help="Inspection profile file.")
@click.option("--run-promo", default="", help="Run promo inspections (true/false).")
@click.option("--script", default="default", show_default=True, help="Engine run script.")
@click.option("--stub-profile", default="", help="Stub profile passed to the engine.")
@click.option("--baseline", default="", help="SARIF baseline to compare against.")
@click.option("--baseline-include-absent", is_flag=True)
@click.option("--fail-threshold", default="", help="Problem count that fails the run.")
@click.option("--git-reset", is_flag=True, help="Analyse only changes since --commit.")
@click.option("--commit", default="", help="Base commit for local-changes analysis.")
@click.option(
    "--fixes-strategy",
    type=click.Choice([strategy.value for strategy in FixesStrategy]),
    default=FixesStrategy.NONE.value,
    show_default=True,
)
@click.option("--analysis-id", default="", help="Identifier reported with results.")
@click.option(
    "--property",
    "properties",
    multiple=True,
    help="Engine property as key=value; repeat for several.",
)
@click.option(
    "--plugin",
    "plugins",
    multiple=True,
    help="Plugin id to install before the run; repeat for several.",
)
@click.option(
    "--format", "output_format", type=click.Choice(["text", "json"]), default="text"
)
def scan(
    project_dir: Path,
    ide_dir: Path,
    results_dir: Path | None,
    cache_dir: Path | None,
    linter: str,
    save_report: bool,
    source_directory: str,
    disable_sanity: bool,
    profile_name: str,
    profile_path: str,
    run_promo: str,
    script: str,
    stub_profile: str,
    baseline: str,
    baseline_include_absent: bool,
    fail_threshold: str,
    git_reset: bool,
    commit: str,
    fixes_strategy: str,
    analysis_id: str,
    properties: tuple[str, ...],
    plugins: tuple[str, ...],
    output_format: str,
) -> None:
    """Run the inspection engine against PROJECT_DIR."""

    product = detect_product(ide_dir)
    if product is None:
        raise click.ClickException(f"No supported IDE found in {ide_dir}")

    project_dir = project_dir.resolve()
    work_dir = project_dir / ".qodana"
    options = RunOptions(
        project_dir=project_dir,
        results_dir=results_dir or work_dir / "results",
        cache_dir=cache_dir or work_dir / "cache",
        ide_dir=ide_dir,
        linter=linter,
        save_report=save_report,
        source_directory=source_directory,
        disable_sanity=disable_sanity,
        profile_name=profile_name,
        profile_path=profile_path,
        run_promo=run_promo,
        script=script,
        stub_profile=stub_profile,
        baseline=baseline,
        baseline_include_absent=baseline_include_absent,
        fail_threshold=fail_threshold,
        git_reset=git_reset,
        commit=commit,
        fixes_strategy=FixesStrategy(fixes_strategy),
        analysis_id=analysis_id,
        properties=properties,
    )

    if plugins:
        plugin_exit = install_plugins(product, plugins)
        if plugin_exit != 0:
            raise click.ClickException(
                f"Plugin installation failed with exit code {plugin_exit}"
            )

    run = LocalRun(
        options=options,
        product=product,
        license_token=setup_license_token(),
    )
    result = run.run()

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    else:
        console = Console()
        status = "[green]completed[/green]" if result.completed else "[red]failed[/red]"
        console.print(f"Inspection {status} with exit code {result.exit_code}")
        console.print(f"Results: {options.results_dir}")
        if not result.license.licensed:
            console.print("[yellow]Ran without a license key.[/yellow]")
    raise SystemExit(result.exit_code)


@cli.command(name="license")
@click.option(
    "--format", "output_format", type=click.Choice(["text", "json"]), default="text"
)
def license_command(output_format: str) -> None:
    """Request a license key with the tokens from the environment."""

    token = setup_license_token()
    env = dict(os.environ)
    result = setup_license(token.license_request_token, env=env)
    payload = {
        **result.to_dict(),
        "allowed_to_send_fus": token.is_allowed_to_send_fus(),
        "allowed_to_send_reports": token.is_allowed_to_send_reports(),
    }
    if output_format == "json":
        click.echo(json.dumps(payload, indent=2, sort_keys=True))
    else:
        table = Table(title="Qodana license")
        table.add_column("Check", style="cyan", no_wrap=True)
        table.add_column("Result", style="magenta")
        table.add_row("License key", "obtained" if result.licensed else "missing")
        if result.error_code:
            table.add_row("Error", f"{result.error_code}: {result.error_message or ''}")
        table.add_row("Usage statistics", str(payload["allowed_to_send_fus"]))
        table.add_row("Report upload", str(payload["allowed_to_send_reports"]))
        Console().print(table)
    if result.error_code:
        raise SystemExit(1)


@cli.command(name="wait-uploader")
@click.option(
    "--max-wait",
    type=click.IntRange(min=0),
    default=None,
    help="Seconds to wait at most (default from QODANA_UPLOADER_WAIT_SECONDS or 600).",
)
def wait_uploader(max_wait: int | None) -> None:
    """Wait for the engine's statistics uploader to exit."""

    settings = CompletionWatchSettings.from_env()
    if max_wait is not None:
        settings = CompletionWatchSettings(
            process_name=settings.process_name,
            max_wait_seconds=max_wait,
            poll_interval_seconds=settings.poll_interval_seconds,
        )
    result = CompletionWatcher(settings=settings).wait()
    click.echo(
        f"{settings.process_name}: {result.outcome.value} "
        f"after {result.waited_seconds:.0f}s"
    )


@cli.command(name="product")
@click.argument(
    "ide_dir", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
def product_command(ide_dir: Path) -> None:
    """Show the IDE product detected in IDE_DIR."""

    info = detect_product(ide_dir)
    if info is None:
        raise click.ClickException(f"No supported IDE found in {ide_dir}")
    table = Table(title="Detected IDE")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Launcher", info.base_script_name)
    table.add_row("Product code", info.code)
    table.add_row("Version", info.version or "unknown")
    table.add_row("Build", info.build or "unknown")
    table.add_row("EAP", "yes" if info.eap else "no")
    Console().print(table)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    cli()
