from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from reclaim.services.formatting import format_bytes
from reclaim.services.report import SessionReport

RUN_LOG = "reclaim.runlog"


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """Route package logs to stderr through rich; optionally open the run log."""
    root = logging.getLogger("reclaim")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(
        RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
        )
    )

    run_log = logging.getLogger(RUN_LOG)
    run_log.propagate = False
    for handler in list(run_log.handlers):
        run_log.removeHandler(handler)
        handler.close()
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        file_handler.setFormatter(formatter)
        run_log.addHandler(file_handler)
        run_log.setLevel(logging.INFO)


def log_run(command: str, report: SessionReport, elapsed: float) -> None:
    counts = " ".join(f"{status.value.lower()}={count}" for status, count in report.counts)
    logging.getLogger(RUN_LOG).info(
        "%s mode=%s %s freed=%s would_free=%s delta=%d incomplete=%s cancelled=%s elapsed=%.1fs",
        command,
        report.mode.value,
        counts,
        format_bytes(report.total_freed),
        format_bytes(report.would_free),
        report.delta,
        report.delta_incomplete,
        report.cancelled,
        elapsed,
    )
