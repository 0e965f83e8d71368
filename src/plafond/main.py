# src/plafond/main.py
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax

# --- Local Imports ---
from .config import get_max_workers, get_thresholds, load_config
from .datatypes import InspectionReport
from .exceptions import PlafondError
from .inspector import inspect_single_pid, inspect_tree, inspect_user
from .output import format_json_report, format_rich_report

LOG_LEVEL = logging.INFO

CONSOLE = Console()
CONSOLE_ERR = Console(stderr=True)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=CONSOLE_ERR, rich_tracebacks=True, show_path=False)],
)
log = logging.getLogger(__name__)

OUTPUT_FORMATS = ("rich", "json")

app = typer.Typer(
    help="Plafond: audit processes against their resource limits (open files, address space, processes)."
)

# Reused option declarations
OutputOption = typer.Option(
    None, "--output", "-o", help="Output format ('rich' or 'json'). Defaults to the config value."
)
ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to a custom TOML configuration file.",
    exists=False,
    file_okay=True,
    dir_okay=False,
    readable=True,
)
ProcRootOption = typer.Option(
    None, "--proc-root", help="Directory where procfs is mounted (default: /proc)."
)
WorkersOption = typer.Option(
    None, "--workers", "-w", min=1, help="Maximum parallel process reads."
)
SystemOption = typer.Option(
    None, "--system/--no-system", help="Show the system-wide memory/load summary."
)
ProblemsOption = typer.Option(
    None,
    "--only-problems/--all",
    help="Only list processes at warning/critical level or that could not be read.",
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def check_privileges() -> bool:
    is_root = os.geteuid() == 0
    if not is_root:
        log.debug(
            "Running without root privileges. Processes of other users may be "
            "reported as unreadable."
        )
    return is_root


def _resolve_settings(
    config_file: Optional[Path],
    output: Optional[str],
    proc_root: Optional[Path],
    workers: Optional[int],
    system: Optional[bool],
    only_problems: Optional[bool],
) -> Dict[str, Any]:
    """Merges command line overrides over the loaded configuration."""
    app_config = load_config(config_path_override=config_file)
    inspection = app_config.get("inspection", {})
    output_section = app_config.get("output", {})
    settings = {
        "output": output or output_section.get("format", "rich"),
        "proc_root": proc_root or Path(inspection.get("proc_root", "/proc")),
        "max_workers": workers or get_max_workers(app_config),
        "include_system": inspection.get("include_system", True) if system is None else system,
        "only_problems": output_section.get("only_problems", False)
        if only_problems is None
        else only_problems,
        "thresholds": get_thresholds(app_config),
    }
    if settings["output"] not in OUTPUT_FORMATS:
        CONSOLE_ERR.print(
            f"[bold red]Error:[/bold red] Unsupported output format: {settings['output']}"
        )
        raise typer.Exit(code=1)
    return settings


def _execute(run: Callable[[], InspectionReport], settings: Dict[str, Any]) -> None:
    """Runs one inspection and renders it; batch-fatal errors exit with code 1."""
    check_privileges()
    try:
        report = run()
    except PlafondError as e:
        log.error(str(e))
        CONSOLE_ERR.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        log.exception(f"An unexpected error occurred: {e}")
        raise typer.Exit(code=1)

    if settings["output"] == "json":
        typer.echo(format_json_report(report))
    else:
        format_rich_report(report, CONSOLE, only_problems=settings["only_problems"])


@app.command()
def user(
    user_name: str = typer.Argument(..., metavar="USER", help="Username or numeric UID."),
    output: Optional[str] = OutputOption,
    config_file: Optional[Path] = ConfigOption,
    proc_root: Optional[Path] = ProcRootOption,
    workers: Optional[int] = WorkersOption,
    system: Optional[bool] = SystemOption,
    only_problems: Optional[bool] = ProblemsOption,
):
    """Inspect every process owned by USER."""
    settings = _resolve_settings(config_file, output, proc_root, workers, system, only_problems)
    _execute(
        lambda: inspect_user(
            user_name,
            proc_root=settings["proc_root"],
            thresholds=settings["thresholds"],
            max_workers=settings["max_workers"],
            include_system=settings["include_system"],
        ),
        settings,
    )


@app.command()
def pid(
    target_pid: int = typer.Argument(..., metavar="PID", min=1, help="Process ID to inspect."),
    output: Optional[str] = OutputOption,
    config_file: Optional[Path] = ConfigOption,
    proc_root: Optional[Path] = ProcRootOption,
    system: Optional[bool] = SystemOption,
):
    """Inspect a single process."""
    settings = _resolve_settings(config_file, output, proc_root, None, system, False)
    _execute(
        lambda: inspect_single_pid(
            target_pid,
            proc_root=settings["proc_root"],
            thresholds=settings["thresholds"],
            include_system=settings["include_system"],
        ),
        settings,
    )


@app.command()
def tree(
    root_pid: int = typer.Argument(..., metavar="PID", min=1, help="Root of the process tree."),
    output: Optional[str] = OutputOption,
    config_file: Optional[Path] = ConfigOption,
    proc_root: Optional[Path] = ProcRootOption,
    workers: Optional[int] = WorkersOption,
    system: Optional[bool] = SystemOption,
    only_problems: Optional[bool] = ProblemsOption,
):
    """Inspect PID and all of its descendants."""
    settings = _resolve_settings(config_file, output, proc_root, workers, system, only_problems)
    _execute(
        lambda: inspect_tree(
            root_pid,
            proc_root=settings["proc_root"],
            thresholds=settings["thresholds"],
            max_workers=settings["max_workers"],
            include_system=settings["include_system"],
        ),
        settings,
    )


config_app = typer.Typer(help="Manage plafond configuration.")
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(config_file: Optional[Path] = ConfigOption):
    """Display the currently loaded configuration (merged from defaults and files)."""
    try:
        loaded_conf = load_config(config_path_override=config_file)
        conf_json = json.dumps(loaded_conf, indent=2, default=str)
    except Exception as e:
        log.exception("Failed to load configuration.")
        CONSOLE_ERR.print(f"[bold red]Error:[/bold red] Failed to load configuration: {e}")
        raise typer.Exit(code=1)
    syntax = Syntax(conf_json, "json", theme="default", line_numbers=True)
    CONSOLE.print(Panel(syntax, title="Loaded Configuration", border_style="blue"))


if __name__ == "__main__":
    app()
