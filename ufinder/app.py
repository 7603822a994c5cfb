"""Typer CLI entrypoint for ufinder."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import ConfigRepository, GlobalConfig, template_path
from .exceptions import ConfigurationError
from .logging_conf import configure_logging
from .orchestrator import Orchestrator, RunReport

app = typer.Typer(
    help="Collect URLs from several discovery tools and track what is new.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(repository=ConfigRepository(), verbose=verbose)


def build_orchestrator(config: GlobalConfig, folder: Path) -> Orchestrator:
    return Orchestrator(config, folder)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _load_config(state: AppState, config_path: Optional[Path]) -> GlobalConfig:
    try:
        return state.repository.load_global_config(config_path)
    except ConfigurationError as exc:
        console.print(f"Error: {exc}", style="red", markup=False)
        raise typer.Exit(code=2) from exc


def _split_sources(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _render_report(report: RunReport) -> Table:
    table = Table(title="Discovery results", box=box.SIMPLE_HEAVY)
    table.add_column("Source", style="bold green")
    table.add_column("URLs", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Status")
    for item in report.sources:
        status = Text("ok") if item.ok else Text(f"failed: {item.error}", style="red")
        table.add_row(item.source.upper(), str(item.total), str(item.new), status)
    return table


def _render_sources_table(config: GlobalConfig) -> Table:
    table = Table(title="Configured sources", box=box.SIMPLE_HEAVY)
    table.add_column("Name", style="bold")
    table.add_column("Mode")
    table.add_column("API key env")
    table.add_column("Timeout")
    table.add_column("Enabled")
    table.add_column("Command", overflow="fold")
    for source in config.sources:
        table.add_row(
            source.name,
            source.mode.value,
            source.api_key_env or "-",
            f"{source.timeout:g}s" if source.timeout else "-",
            "yes" if source.enabled else "no",
            source.command,
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Run the discovery tools against a target and merge their results.")
def run(
    ctx: typer.Context,
    domain: str = typer.Option(..., "--domain", "-d", help="Target domain."),
    folder: Path = typer.Option(..., "--folder", "-f", help="Output folder (required)."),
    tools: Optional[str] = typer.Option(
        None, "--tools", "-t", help="Comma-separated subset of sources, e.g. waymore,gau."
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-w",
        min=1,
        help="Maximum tools running at once (1 runs them one after another).",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML/JSON source catalogue to use instead of the built-in one."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    if verbose:
        state.verbose = True
    config = _load_config(state, config_path)
    if concurrency is not None:
        config = config.model_copy(update={"concurrency": concurrency})

    orchestrator = build_orchestrator(config, folder)
    configure_logging(verbose=state.verbose, log_dir=orchestrator.layout.logs_dir)
    try:
        report = orchestrator.discover(domain, _split_sources(tools))
    except ConfigurationError as exc:
        console.print(f"Error: {exc}", style="red", markup=False)
        raise typer.Exit(code=2) from exc

    for name in report.invalid_sources:
        console.print(f"Invalid tool: {name}", style="red")
    console.print(_render_report(report))
    totals = report.totals
    if totals is None:
        console.print(f"[TOTAL] {report.merge_error}", style="red", markup=False)
        raise typer.Exit(code=1)
    console.print(
        f"[TOTAL] Unique URLs: {totals.current_total} "
        f"(Previously: {totals.previous_total}, New: {totals.new_count})",
        style="green",
        markup=False,
    )


@app.command("sources", help="List the configured sources.")
def sources(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Source catalogue file."),
) -> None:
    state = _get_state(ctx)
    config = _load_config(state, config_path)
    console.print(_render_sources_table(config))
    if config.concurrency:
        console.print(f"Concurrency: {config.concurrency}")
    else:
        console.print("Concurrency: one slot per selected source")


@app.command("init-config", help="Write the built-in source catalogue to a file for editing.")
def init_config(
    path: Path = typer.Argument(..., help="Destination YAML file."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file.", is_flag=True),
) -> None:
    if path.exists() and not force:
        console.print(f"{path} already exists; pass --force to overwrite.", style="yellow")
        raise typer.Exit(code=1)
    path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(template_path(), path)
    console.print(f"Source catalogue written to {path}", style="green")


def entrypoint(argv: Sequence[str] | None = None) -> None:
    app(args=list(argv) if argv is not None else None)


__all__ = ["AppState", "app", "build_orchestrator", "build_state", "entrypoint"]
