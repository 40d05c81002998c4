"""CLI entry point for the dashboard oracle."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dashcheck.models.config import OracleConfig
from dashcheck.models.scenario import InteractionKind, Scenario, ScenarioManifest
from dashcheck.models.verdict import RunResult
from dashcheck.orchestrator import Orchestrator

console = Console()

DEFAULT_CONFIG = "dashcheck-config.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(path: str) -> OracleConfig:
    """Load the config file, falling back to defaults when the default path is absent."""
    if path == DEFAULT_CONFIG and not Path(path).exists():
        return OracleConfig()
    return OracleConfig.load(path)


def print_summary(result: RunResult) -> None:
    table = Table(title=f"Run {result.run_id}")
    table.add_column("Scenario", style="bold")
    table.add_column("Backend")
    table.add_column("Status")
    table.add_column("Failures")
    for verdict in result.verdicts:
        status = "[green]PASS[/green]" if verdict.status == "pass" else "[red]FAIL[/red]"
        table.add_row(verdict.id, verdict.backend, status, "\n".join(verdict.failures))
    console.print(table)
    console.print(
        f"[bold]{result.total}[/bold] scenario(s): "
        f"[green]{result.passed} passed[/green], [red]{result.failed} failed[/red] "
        f"in {result.duration_seconds}s"
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Black-box verification oracle for rendered dashboards"""
    setup_logging(verbose)


@cli.command()
@click.option("--manifest", "-m", required=True, help="Scenario manifest JSON")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--mode", default="smoke", show_default=True, help="Scenario mode to run")
@click.option("--base-url", default="", help="Base URL joined with scenario url_path")
@click.option("--source-type", multiple=True, help="Only run scenarios of this source type")
@click.option("--output-dir", "-o", default=None, help="Override the report output directory")
def run(manifest: str, config: str, mode: str, base_url: str,
        source_type: tuple[str, ...], output_dir: str | None) -> None:
    """Run every scenario of a manifest in the given mode."""
    try:
        cfg = load_config(config)
        scenarios = ScenarioManifest.load(manifest).resolve(
            mode=mode, base_url=base_url,
            include_source_types=list(source_type) or None,
        )
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if not scenarios:
        console.print(f"[yellow]No scenarios selected for mode '{mode}'[/yellow]")
        return

    result = Orchestrator(cfg, output_dir).run(scenarios, mode=mode)
    print_summary(result)
    if result.failed:
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--backend", "-b", multiple=True, help="Expected chart backend (repeatable)")
@click.option("--interaction", "-i", multiple=True,
              type=click.Choice([k.value for k in InteractionKind]),
              help="Interaction to perform, in order (repeatable)")
@click.option("--require-selector", multiple=True, help="CSS selector that must exist")
@click.option("--require-text", multiple=True, help="Text that must appear on the page")
@click.option("--min-charts", type=int, default=None, help="Minimum non-empty charts")
@click.option("--expect-filter-effect", is_flag=True, help="Filter must change chart state")
@click.option("--output-dir", "-o", default=None, help="Override the report output directory")
def check(url: str, config: str, backend: tuple[str, ...], interaction: tuple[str, ...],
          require_selector: tuple[str, ...], require_text: tuple[str, ...],
          min_charts: int | None, expect_filter_effect: bool, output_dir: str | None) -> None:
    """Check a single dashboard URL with an ad-hoc scenario."""
    try:
        cfg = load_config(config)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    scenario = Scenario(
        id="adhoc",
        url=url,
        expect_chart_backend=list(backend),
        interaction_plan=list(interaction),
        required_selectors=list(require_selector),
        required_texts=list(require_text),
        min_non_empty_charts_expected=min_charts,
        expect_filter_effect=expect_filter_effect,
    )
    result = Orchestrator(cfg, output_dir).run([scenario], mode="adhoc")
    print_summary(result)
    if result.failed:
        sys.exit(1)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    OracleConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]dashcheck run --manifest scenarios.json[/blue]")


if __name__ == "__main__":
    cli()
