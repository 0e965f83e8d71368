# src/plafond/output.py
# -*- coding: utf-8 -*-

import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .datatypes import (
    Dimension,
    DimensionEvaluation,
    InspectionReport,
    LimitValue,
    ReportEntry,
    Severity,
    SystemResourceUsage,
)

log = logging.getLogger(__name__)

# --- Constants ---
MAX_CMDLINE_WIDTH: int = 60

SEVERITY_STYLES: Dict[Severity, str] = {
    Severity.OK: "green",
    Severity.WARNING: "bold yellow",
    Severity.CRITICAL: "bold red",
    Severity.UNKNOWN: "dim",
}


# --- Helper Functions ---
def _format_bytes(byte_count: Optional[int]) -> str:
    """Formats bytes into human-readable format (KiB, MiB, GiB)."""
    if byte_count is None:
        return "[dim]n/a[/dim]"
    if byte_count < 1024:
        return f"{byte_count} B"
    elif byte_count < 1024**2:
        return f"{byte_count / 1024:.1f} KiB"
    elif byte_count < 1024**3:
        return f"{byte_count / (1024**2):.1f} MiB"
    else:
        return f"{byte_count / (1024**3):.1f} GiB"


def _format_limit(limit: Optional[LimitValue], as_bytes: bool = False) -> str:
    if limit is None or not limit.is_known:
        return "[dim]?[/dim]"
    if limit.is_unlimited:
        return "∞"
    if as_bytes:
        return _format_bytes(limit.value)
    return str(limit.value)


def _format_usage_cell(item: Optional[DimensionEvaluation], as_bytes: bool = False) -> Text:
    """'usage / limit' coloured by the dimension's severity."""
    if item is None:
        return Text.from_markup("[dim]n/a[/dim]")
    if item.usage is None:
        usage_str = "[dim]n/a[/dim]"
    elif as_bytes:
        usage_str = _format_bytes(item.usage)
    else:
        usage_str = str(item.usage)
    cell = Text.from_markup(f"{usage_str} / {_format_limit(item.limit, as_bytes)}")
    cell.stylize(SEVERITY_STYLES[item.severity])
    return cell


def _dimension(entry: ReportEntry, dimension: Dimension) -> Optional[DimensionEvaluation]:
    for item in entry.evaluation.dimensions:
        if item.dimension is dimension:
            return item
    return None


def _truncate(text: str, width: int = MAX_CMDLINE_WIDTH) -> str:
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def _is_problem(entry: ReportEntry) -> bool:
    return entry.failed or entry.evaluation.worst in (Severity.WARNING, Severity.CRITICAL)


# --- Section Formatting ---
def format_system_usage(usage: Optional[SystemResourceUsage], console: Console) -> None:
    """Formats and prints the system-wide summary panel."""
    if usage is None:
        return
    lines: List[str] = []
    if usage.mem_percent is not None and usage.mem_total_bytes is not None:
        lines.append(
            f"  Memory:    [bold magenta]{usage.mem_percent:.1f}%[/bold magenta] used ([cyan]{_format_bytes(usage.mem_available_bytes)}[/cyan] available / [dim]{_format_bytes(usage.mem_total_bytes)} total[/dim])"
        )
    if usage.swap_total_bytes:
        lines.append(
            f"  Swap:      [bold yellow]{usage.swap_percent:.1f}%[/bold yellow] used ([dim]{_format_bytes(usage.swap_total_bytes)} total[/dim])"
        )
    if usage.load_avg:
        load_str = " ".join(f"{value:.2f}" for value in usage.load_avg)
        lines.append(f"  Load avg:  [bold cyan]{load_str}[/bold cyan]")
    if usage.process_count is not None:
        lines.append(f"  Processes: {usage.process_count}")
    if usage.error:
        lines.append(f"[red]Error: {usage.error}[/red]")
    if not lines:
        lines.append("[yellow]System-wide usage data unavailable.[/yellow]")
    console.print(Panel("\n".join(lines), title="System", border_style="blue", expand=False))


def _build_process_table(entries: List[ReportEntry]) -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("PID", style="cyan", justify="right", no_wrap=True)
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Open FDs", justify="right")
    table.add_column("Virt Mem", justify="right")
    table.add_column("RSS", style="blue", justify="right")
    table.add_column("Threads", justify="right")
    table.add_column("Status", no_wrap=True)
    table.add_column("Command", style="dim")
    for entry in entries:
        if entry.failed:
            failure = entry.failure
            table.add_row(
                str(entry.pid),
                "[dim]?[/dim]",
                "[dim]n/a[/dim]",
                "[dim]n/a[/dim]",
                "[dim]n/a[/dim]",
                "[dim]n/a[/dim]",
                "[bold red]FAILED[/bold red]",
                Text(failure.message if failure else "unknown failure", style="red"),
            )
            continue
        record = entry.record
        worst = entry.evaluation.worst
        table.add_row(
            str(entry.pid),
            Text(record.name),
            _format_usage_cell(_dimension(entry, Dimension.FDS)),
            _format_usage_cell(_dimension(entry, Dimension.MEMORY), as_bytes=True),
            _format_bytes(record.vm_rss),
            _format_usage_cell(_dimension(entry, Dimension.THREADS)),
            Text(worst.value.upper(), style=SEVERITY_STYLES[worst]),
            Text(_truncate(record.cmdline or f"[{record.name}]")),
        )
    return table


# --- Full Report Formatting ---
def format_rich_report(
    report: Optional[InspectionReport], console: Console, only_problems: bool = False
) -> None:
    """Formats and prints the inspection report using Rich."""
    log.debug("format_rich_report called.")
    if report is None:
        console.print(
            Panel(
                "[bold red]Error: No inspection report generated.[/bold red]",
                title="Error",
                border_style="red",
            )
        )
        return

    console.print(
        Panel(
            f"[bold cyan]Plafond Limits Report[/bold cyan]\nTarget: {report.mode} {report.target}\nHostname: {report.hostname or 'N/A'}\nTimestamp: {report.timestamp or 'N/A'}",
            title="Overview",
            border_style="green",
            expand=False,
        )
    )
    format_system_usage(report.system_usage, console)

    entries = [e for e in report.entries if _is_problem(e)] if only_problems else report.entries
    counts = report.counts_by_severity()
    summary = (
        f"[green]{counts['ok']} ok[/green], [bold yellow]{counts['warning']} warning[/bold yellow], "
        f"[bold red]{counts['critical']} critical[/bold red], [dim]{counts['unknown']} unknown[/dim], "
        f"[red]{counts['failed']} failed[/red]"
    )
    border_style = "red" if counts["critical"] else "yellow" if counts["warning"] else "green"
    output_elements: List[Any] = [summary]
    if entries:
        output_elements.append(_build_process_table(entries))
    elif report.entries:
        output_elements.append("[dim]No processes near their limits.[/dim]")
    else:
        output_elements.append("[dim]No processes matched the target.[/dim]")
    console.print(
        Panel(
            Group(*output_elements),
            title=f"Processes ({len(report.entries)})",
            border_style=border_style,
        )
    )
    if report.errors:
        error_text = "\n".join(f"- [red]{err}[/red]" for err in report.errors)
        console.print(
            Panel(error_text, title="Inspection Errors", border_style="red", expand=False)
        )
    log.debug("format_rich_report finished.")


def report_to_dict(report: InspectionReport) -> Dict[str, Any]:
    """Plain-dict form of the report with per-entry worst severity and a summary."""
    report_dict = asdict(report)
    for entry_dict, entry in zip(report_dict["entries"], report.entries):
        entry_dict["worst"] = None if entry.failed else entry.evaluation.worst.value
    report_dict["summary"] = report.counts_by_severity()
    return report_dict


def format_json_report(report: Optional[InspectionReport]) -> str:
    """Formats the inspection report as a JSON string."""
    if report is None:
        return json.dumps({"error": "No inspection report generated."}, indent=2)
    try:
        return json.dumps(report_to_dict(report), indent=2, default=str)
    except Exception as e:
        log.error(f"Failed to serialize report to JSON: {e}")
        return json.dumps(
            {"error": "Failed to serialize report", "details": str(e)}, indent=2
        )
