from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.table import Table

from reclaim.models.enums import ActionStatus, SessionMode, SessionStage, TargetKind
from reclaim.models.errors import SessionStateError
from reclaim.models.process import ProcessRecord
from reclaim.models.session import CleanupSession
from reclaim.models.snapshot import ResourceSnapshot
from reclaim.services.accounting import Accountant, compute_delta
from reclaim.services.formatting import format_bytes, format_duration

MB = 1024 * 1024

_STATUS_STYLE: dict[ActionStatus, str] = {
    ActionStatus.SUCCESS: "green",
    ActionStatus.SKIPPED: "yellow",
    ActionStatus.FAILED: "red",
    ActionStatus.DRY_RUN: "blue",
}


@dataclass(slots=True, frozen=True)
class ActionLine:
    status: ActionStatus
    label: str
    size: str
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.status.value} | {self.label} | {self.size}"


@dataclass(slots=True, frozen=True)
class SessionReport:
    mode: SessionMode
    baseline: ResourceSnapshot
    final: ResourceSnapshot
    lines: tuple[ActionLine, ...]
    counts: tuple[tuple[ActionStatus, int], ...]
    total_freed: int
    would_free: int
    delta: int
    delta_incomplete: bool
    cancelled: bool
    files_removed: int = 0

    @property
    def action_lines(self) -> tuple[str, ...]:
        return tuple(str(line) for line in self.lines)

    def count(self, status: ActionStatus) -> int:
        return dict(self.counts)[status]

    @property
    def delta_message(self) -> str:
        if self.delta_incomplete:
            return "Memory change unknown (final statistics unavailable)"
        if self.delta > 0:
            return f"Memory freed: {format_bytes(self.delta)}"
        if self.delta < 0:
            increase = format_bytes(-self.delta)
            return f"Memory usage increased by {increase} (some processes may have restarted)"
        return "No significant change in memory usage"


def build_report(session: CleanupSession) -> SessionReport:
    """Summarize a finished session. Depends on nothing but *session*."""
    finished = session.stage >= SessionStage.FINAL_COLLECTED
    if not finished or session.baseline is None or session.final is None:
        raise SessionStateError(f"cannot report a session in stage {session.stage.name}")

    accountant = Accountant.from_actions(session.actions)
    lines: list[ActionLine] = []
    for result in session.actions:
        if result.status is ActionStatus.DRY_RUN:
            size = result.target.size_bytes
        else:
            size = result.bytes_freed
        lines.append(
            ActionLine(result.status, result.target.label, format_bytes(size), result.detail)
        )

    return SessionReport(
        mode=session.mode,
        baseline=session.baseline,
        final=session.final,
        lines=tuple(lines),
        counts=tuple((status, accountant.counts[status]) for status in ActionStatus),
        total_freed=accountant.total_freed,
        would_free=accountant.would_free,
        delta=compute_delta(session.baseline, session.final),
        delta_incomplete=session.delta_incomplete,
        cancelled=session.cancelled,
        files_removed=sum(
            1
            for result in session.actions
            if result.status is ActionStatus.SUCCESS and result.target.kind is TargetKind.FILE
        ),
    )


def _health(snapshot: ResourceSnapshot) -> str:
    if snapshot.available_bytes < 1000 * MB:
        return "[red]Low memory available[/red]"
    if snapshot.available_bytes < 2000 * MB:
        return "[yellow]Memory getting low[/yellow]"
    return "[green]Memory levels healthy[/green]"


def snapshot_table(title: str, snapshot: ResourceSnapshot) -> Table:
    table = Table(title=title, header_style="bold magenta", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("[blue]Total Memory[/blue]", format_bytes(snapshot.total_bytes))
    used = f"{format_bytes(snapshot.used_bytes)} ({snapshot.usage_percent}%)"
    table.add_row("[red]Used Memory[/red]", used)
    table.add_row("[green]Available Memory[/green]", format_bytes(snapshot.available_bytes))
    table.add_row("  ├─ Free", format_bytes(snapshot.free_bytes))
    table.add_row("  └─ Inactive", format_bytes(snapshot.inactive_bytes))
    table.add_row("  ├─ Active", format_bytes(snapshot.active_bytes))
    table.add_row("  ├─ Wired", format_bytes(snapshot.wired_bytes))
    table.add_row("  └─ Compressed", format_bytes(snapshot.compressed_bytes))
    pressure = "unknown"
    if snapshot.pressure_percent is not None:
        pressure = f"{snapshot.pressure_percent}% free"
    table.add_row("[cyan]Memory Pressure[/cyan]", pressure)
    table.add_section()
    table.add_row(_health(snapshot), "")
    return table


def render_processes(console: Console, records: list[ProcessRecord]) -> None:
    table = Table(title="Top Memory-Consuming Processes", header_style="bold magenta")
    table.add_column("PID", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Process")
    for record in records:
        name = f"{record.name} [dim](protected)[/dim]" if record.is_protected else record.name
        table.add_row(str(record.pid), format_bytes(record.resident_bytes), name)
    console.print(table)


def recommendations(report: SessionReport) -> list[str]:
    """Follow-up tips for a memory run, led by how much memory came back."""
    tips: list[str] = []
    if not report.delta_incomplete:
        if report.delta > 200 * MB:
            tips.append("[green]Great! Significant memory was freed[/green]")
        elif report.delta > 50 * MB:
            tips.append("[cyan]Good! Some memory was freed[/cyan]")
        else:
            tips.append("[yellow]Your system was already well optimized[/yellow]")
    tips.extend(
        [
            "[cyan]Monitor Activity Monitor[/cyan] to see if optimization was effective",
            "[cyan]Restart your Mac[/cyan] for maximum memory optimization",
            "[cyan]Run regularly[/cyan] when system feels slow",
        ]
    )
    return tips


def _render_outcome(console: Console, report: SessionReport) -> None:
    console.print(report.delta_message)
    if report.cancelled:
        console.print("[yellow]Run was interrupted; remaining actions were not attempted.[/yellow]")
    elif report.count(ActionStatus.FAILED) and not report.count(ActionStatus.SUCCESS):
        console.print("[yellow]No cleanup steps completed successfully[/yellow]")
        console.print("Try running with --verbose to see detailed error information")


def render_report(
    console: Console,
    report: SessionReport,
    *,
    title: str,
    elapsed: float,
    recommend: bool = False,
) -> None:
    console.print()
    console.print(f"[bold magenta]==================== {title} ====================[/]")
    console.print(snapshot_table("BEFORE", report.baseline))
    console.print(snapshot_table("AFTER", report.final))

    if report.lines:
        table = Table(title="Actions", header_style="bold blue")
        table.add_column("Status")
        table.add_column("Action")
        table.add_column("Space", justify="right")
        table.add_column("Detail")
        for line in report.lines:
            style = _STATUS_STYLE[line.status]
            status = f"[{style}]{line.status.value}[/{style}]"
            table.add_row(status, line.label, line.size, line.detail)
        console.print(table)

    stats = Table(title="Summary Statistics", header_style="bold blue", show_header=False)
    stats.add_column("Metric")
    stats.add_column("Value", justify="right")
    counts = {status: str(n) for status, n in report.counts}
    skipped = counts[ActionStatus.SKIPPED]
    if report.mode is SessionMode.DRY_RUN:
        stats.add_row("[blue]Items that would be cleaned[/blue]", counts[ActionStatus.DRY_RUN])
        stats.add_row("[yellow]Items not found or skipped[/yellow]", skipped)
        stats.add_row(
            "[magenta]Total space that would be freed[/magenta]", format_bytes(report.would_free)
        )
    else:
        stats.add_row("[green]Successfully cleaned[/green]", counts[ActionStatus.SUCCESS])
        stats.add_row("[yellow]Items not found or skipped[/yellow]", skipped)
        stats.add_row("[red]Failed to clean[/red]", counts[ActionStatus.FAILED])
        stats.add_row("[magenta]Total space freed[/magenta]", format_bytes(report.total_freed))
        stats.add_row("[cyan]Files/directories removed[/cyan]", str(report.files_removed))
        if report.files_removed == 0:
            stats.add_row("[yellow]Result[/yellow]", "No files were removed, system already clean!")
    stats.add_row("[cyan]Time elapsed[/cyan]", format_duration(elapsed))
    console.print(stats)

    _render_outcome(console, report)
    if recommend and report.mode is SessionMode.LIVE:
        console.print()
        console.print("[magenta]Recommendations:[/magenta]")
        for tip in recommendations(report):
            console.print(f"  • {tip}")


def render_brief(console: Console, report: SessionReport, *, elapsed: float) -> None:
    if report.mode is SessionMode.DRY_RUN:
        console.print(
            f"[green]Dry run completed in {format_duration(elapsed)}[/green] - "
            f"{format_bytes(report.would_free)} would be freed"
        )
    else:
        attempted = report.count(ActionStatus.SUCCESS) + report.count(ActionStatus.FAILED)
        console.print(
            f"[green]Completed in {format_duration(elapsed)}[/green] - "
            f"{format_bytes(report.total_freed)} freed "
            f"({report.count(ActionStatus.SUCCESS)}/{attempted} operations successful)"
        )
    _render_outcome(console, report)
    console.print("[cyan]Run with --summary for detailed breakdown[/cyan]")
