from __future__ import annotations

import platform
import sys
from dataclasses import dataclass
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from result import Err

from reclaim import __version__
from reclaim.cli.logs import log_run, setup_logging
from reclaim.config.defaults import default_config
from reclaim.config.loader import load_config, sample_config_json
from reclaim.config.schema import AppConfig, CommandRule, PathRule
from reclaim.models.action import ActionResult, CleanupTarget
from reclaim.models.enums import ActionStatus, SessionMode, TargetCategory, TargetKind
from reclaim.models.errors import MacOSVersionUnsupported, MetricsUnavailable, PlatformUnsupported
from reclaim.services.executor import ActionExecutor
from reclaim.services.formatting import format_bytes
from reclaim.services.metrics import MetricsCollector
from reclaim.services.pipeline import CancelToken, run_session
from reclaim.services.planner import ActionPlanner
from reclaim.services.processes import ProcessInventory
from reclaim.services.report import build_report, render_brief, render_processes, render_report

console = Console()

MIN_MACOS_VERSION = (10, 15)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Reclaim memory and disk space on macOS, with a verified before/after report.",
)


@dataclass(slots=True)
class Services:
    collector: MetricsCollector
    planner: ActionPlanner
    executor: ActionExecutor
    inventory: ProcessInventory


def build_services(config: AppConfig) -> Services:
    return Services(
        collector=MetricsCollector(),
        planner=ActionPlanner(),
        executor=ActionExecutor(
            grace_period=config.grace_period_seconds,
            command_timeout=config.command_timeout_seconds,
        ),
        inventory=ProcessInventory(protected_names=config.protected_processes),
    )


def _parse_version(release: str) -> tuple[int, ...]:
    parts: list[int] = []
    for piece in release.split(".")[:2]:
        if not piece.isdigit():
            break
        parts.append(int(piece))
    return tuple(parts)


def _check_platform() -> None:
    if sys.platform != "darwin":
        raise PlatformUnsupported(sys.platform)
    release = platform.mac_ver()[0]
    version = _parse_version(release)
    # An unreadable version is let through.
    if version and version < MIN_MACOS_VERSION:
        raise MacOSVersionUnsupported(release, ".".join(map(str, MIN_MACOS_VERSION)))


def _prepare(sample_config: bool, verbose: bool, log_file: str | None) -> AppConfig:
    try:
        _check_platform()
    except PlatformUnsupported:
        console.print("[red]This tool is for macOS only.[/]")
        raise typer.Exit(1)
    except MacOSVersionUnsupported as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        raise typer.Exit(1)

    if sample_config:
        console.print(sample_config_json())
        raise typer.Exit(0)

    config_result = load_config()
    if isinstance(config_result, Err):
        console.print(f"[yellow]{escape(config_result.unwrap_err())} Using defaults.[/]")
        config = default_config()
    else:
        config = config_result.unwrap()

    setup_logging(verbose=verbose, log_file=log_file or config.log_file)
    return config


def _echo_result(result: ActionResult) -> None:
    label = escape(result.target.label)
    is_file = result.target.kind is TargetKind.FILE
    match result.status:
        case ActionStatus.SUCCESS:
            if is_file:
                freed = format_bytes(result.bytes_freed)
                console.print(f"[green]✓[/] {label} [yellow]({freed} freed)[/]")
            else:
                console.print(f"[green]✓[/] {label}")
        case ActionStatus.SKIPPED:
            console.print(f"[yellow]⊝[/] {label} [cyan]({escape(result.detail)})[/]")
        case ActionStatus.FAILED:
            console.print(f"[red]✗[/] {label} [red]({escape(result.detail or 'failed')})[/]")
        case ActionStatus.DRY_RUN:
            if is_file:
                size = format_bytes(result.target.size_bytes)
                console.print(f"[blue]\\[DRY][/] {label} [yellow]({size} would be freed)[/]")
            else:
                console.print(f"[blue]\\[DRY][/] Would run: {label}")


def _confirm(category: TargetCategory, targets: list[CleanupTarget]) -> bool:
    if category is TargetCategory.APPLICATIONS:
        console.print(f"[yellow]Found {len(targets)} memory-heavy applications:[/]")
        for target in targets:
            console.print(f"  • {escape(target.label)}")
    return typer.confirm(category.prompt, default=False)


def _execute(
    *,
    title: str,
    config: AppConfig,
    services: Services,
    path_rules: list[PathRule],
    command_rules: list[CommandRule],
    quit_apps: bool,
    snapshots: bool,
    yes: bool,
    dry_run: bool,
    summary: bool,
    recommend: bool = False,
) -> None:
    mode = SessionMode.DRY_RUN if dry_run else SessionMode.LIVE
    if dry_run:
        console.print("[yellow]DRY RUN MODE: nothing will be deleted, purged or quit[/]")

    def plan() -> list[CleanupTarget]:
        with console.status("[bold #8abeb7]Planning cleanup...[/]"):
            return services.planner.plan(
                path_rules=path_rules,
                command_rules=command_rules,
                inventory=services.inventory if quit_apps else None,
                threshold_bytes=config.process_threshold_bytes,
                snapshots=snapshots,
                files_first=config.files_first,
            )

    cancel = CancelToken()
    try:
        session = run_session(
            mode=mode,
            collector=services.collector,
            planner=plan,
            executor=services.executor,
            confirm=None if yes else _confirm,
            cancel=cancel,
            on_result=_echo_result,
            settle_seconds=config.settle_seconds,
        )
    except MetricsUnavailable as exc:
        console.print(f"[red]Failed to get initial memory information: {escape(str(exc))}[/]")
        raise typer.Exit(1)
    except (KeyboardInterrupt, typer.Abort):
        # Signals are only turned into exceptions before execution starts.
        console.print()
        console.print("[red]Interrupted before any action was taken.[/]")
        raise typer.Exit(130)

    report = build_report(session)
    elapsed = session.elapsed_seconds
    if summary:
        render_report(console, report, title=title, elapsed=elapsed, recommend=recommend)
    else:
        render_brief(console, report, elapsed=elapsed)
    log_run(title, report, elapsed)

    if cancel.exit_code is not None:
        raise typer.Exit(cancel.exit_code)
    if dry_run:
        console.print("Run without --dry-run to actually perform the cleanup.")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"reclaim {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version", help="Show version information.", callback=_version_callback, is_eager=True
        ),
    ] = False,
) -> None:
    """Memory optimizer and disk cleanup."""


@app.command()
def memory(
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Run without confirmation prompts.")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose output.")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-d", help="Show what would be done without doing it.")
    ] = False,
    summary: Annotated[
        bool,
        typer.Option(
            "--summary/--no-summary", "-s", help="Show the detailed before/after summary."
        ),
    ] = True,
    aggressive: Annotated[
        bool,
        typer.Option(
            "--aggressive", "-a", help="Also restart UI services like Dock and WindowServer."
        ),
    ] = False,
    quit_apps: Annotated[
        bool,
        typer.Option("--quit-apps", "-q", help="Quit non-essential memory-heavy applications."),
    ] = False,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Append a one-line record of the run.")
    ] = None,
    sample_config: Annotated[
        bool, typer.Option("--sample-config", help="Print sample config JSON.")
    ] = False,
) -> None:
    """Free RAM: purge inactive memory, flush caches, optionally quit apps."""
    config = _prepare(sample_config, verbose, log_file)
    services = build_services(config)

    if verbose or quit_apps:
        render_processes(console, services.inventory.top(10))

    commands = list(config.memory_commands)
    if aggressive:
        commands.extend(config.service_commands)

    _execute(
        title="RAM OPTIMIZATION SUMMARY",
        config=config,
        services=services,
        path_rules=config.memory_paths,
        command_rules=commands,
        quit_apps=quit_apps,
        snapshots=False,
        yes=yes,
        dry_run=dry_run,
        summary=summary,
        recommend=True,
    )


@app.command()
def disk(
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Run without confirmation prompts.")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose output.")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-d", help="Show what would be deleted without deleting.")
    ] = False,
    summary: Annotated[
        bool, typer.Option("--summary", "-s", help="Show detailed summary at the end.")
    ] = False,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Append a one-line record of the run.")
    ] = None,
    sample_config: Annotated[
        bool, typer.Option("--sample-config", help="Print sample config JSON.")
    ] = False,
) -> None:
    """Delete temp files, caches, Trash, logs and development caches."""
    config = _prepare(sample_config, verbose, log_file)

    _execute(
        title="CLEANUP SUMMARY",
        config=config,
        services=build_services(config),
        path_rules=config.disk_paths,
        command_rules=config.disk_commands,
        quit_apps=False,
        snapshots=config.delete_local_snapshots,
        yes=yes,
        dry_run=dry_run,
        summary=summary,
    )


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
