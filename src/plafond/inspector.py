# src/plafond/inspector.py
# -*- coding: utf-8 -*-

import datetime
import logging
import platform
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional

from .datatypes import EvaluationResult, GatherFailure, InspectionReport, ReportEntry
from .exceptions import GatherError
from .modules.evaluator import Thresholds, evaluate_record
from .modules.gatherer import gather_process
from .modules.procfs import PROC_ROOT
from .modules.system import get_system_wide_usage
from .modules.tree import build_process_tree
from .utils import collect_pids_for_uid, resolve_uid

log = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def _inspect_one(pid: int, proc_root: Path, thresholds: Thresholds) -> ReportEntry:
    """Gathers and evaluates one pid; a failed gather becomes a failure entry."""
    try:
        record = gather_process(pid, proc_root)
    except GatherError as e:
        log.debug(f"Gather failed for PID {pid}: {e}")
        return ReportEntry(
            pid=pid,
            evaluation=EvaluationResult.all_unknown(pid),
            failure=GatherFailure(kind=type(e).__name__, message=str(e)),
        )
    except Exception as e:
        log.error(f"Unexpected error gathering PID {pid}: {e}", exc_info=True)
        return ReportEntry(
            pid=pid,
            evaluation=EvaluationResult.all_unknown(pid),
            failure=GatherFailure(kind=type(e).__name__, message=f"Unexpected error: {e}"),
        )
    return ReportEntry(pid=pid, record=record, evaluation=evaluate_record(record, thresholds))


def _new_report(mode: str, target: str) -> InspectionReport:
    return InspectionReport(
        mode=mode,
        target=target,
        hostname=platform.node() or None,
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )


def _attach_system_usage(report: InspectionReport) -> None:
    try:
        report.system_usage = get_system_wide_usage()
        if report.system_usage.error:
            report.errors.append(f"System usage: {report.system_usage.error}")
    except Exception as e:
        log.exception("Error collecting system-wide usage.")
        report.errors.append(f"System usage failed: {e}")


def gather_entries(
    pids: Iterable[int],
    proc_root: Path = PROC_ROOT,
    thresholds: Thresholds = Thresholds(),
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> List[ReportEntry]:
    """
    Inspects every pid independently and returns one entry per distinct pid,
    ordered by ascending pid regardless of completion order.
    """
    unique_pids = sorted(set(pids))
    if not unique_pids:
        return []
    workers = max(1, min(max_workers, len(unique_pids)))
    if workers == 1:
        entries = [_inspect_one(pid, proc_root, thresholds) for pid in unique_pids]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="Gather") as executor:
            entries = list(
                executor.map(lambda pid: _inspect_one(pid, proc_root, thresholds), unique_pids)
            )
    entries.sort(key=lambda entry: entry.pid)
    failed = sum(1 for entry in entries if entry.failed)
    log.info(f"Inspected {len(entries)} process(es), {failed} could not be read.")
    return entries


def inspect_pids(
    pids: Iterable[int],
    proc_root: Path = PROC_ROOT,
    thresholds: Thresholds = Thresholds(),
    max_workers: int = DEFAULT_MAX_WORKERS,
    include_system: bool = False,
    mode: str = "list",
    target: Optional[str] = None,
) -> InspectionReport:
    """Inspects an explicit pid list. Per-pid failures never abort the batch."""
    pid_list = list(pids)
    report = _new_report(mode, target if target is not None else ", ".join(map(str, pid_list)))
    report.entries = gather_entries(pid_list, proc_root, thresholds, max_workers)
    if include_system:
        _attach_system_usage(report)
    return report


def inspect_single_pid(
    pid: int,
    proc_root: Path = PROC_ROOT,
    thresholds: Thresholds = Thresholds(),
    include_system: bool = False,
) -> InspectionReport:
    log.info(f"Starting inspection of PID {pid}")
    return inspect_pids(
        [pid],
        proc_root=proc_root,
        thresholds=thresholds,
        max_workers=1,
        include_system=include_system,
        mode="pid",
        target=str(pid),
    )


def inspect_tree(
    root_pid: int,
    proc_root: Path = PROC_ROOT,
    thresholds: Thresholds = Thresholds(),
    max_workers: int = DEFAULT_MAX_WORKERS,
    include_system: bool = False,
) -> InspectionReport:
    """
    Inspects root_pid and all of its descendants.

    TargetNotFound from the tree builder is batch-fatal and propagates.
    """
    log.info(f"Starting process tree inspection rooted at PID {root_pid}")
    tree = build_process_tree(root_pid, proc_root)
    return inspect_pids(
        tree.descendants(),
        proc_root=proc_root,
        thresholds=thresholds,
        max_workers=max_workers,
        include_system=include_system,
        mode="tree",
        target=str(root_pid),
    )


def inspect_user(
    user: str,
    proc_root: Path = PROC_ROOT,
    thresholds: Thresholds = Thresholds(),
    max_workers: int = DEFAULT_MAX_WORKERS,
    include_system: bool = False,
) -> InspectionReport:
    """
    Inspects every process owned by a user name or UID.

    IdentityResolutionFailed propagates unchanged. A user with no processes
    yields an empty report.
    """
    uid = resolve_uid(user)
    log.info(f"Starting inspection of processes owned by '{user}' (UID {uid})")
    pids = collect_pids_for_uid(uid, proc_root)
    return inspect_pids(
        pids,
        proc_root=proc_root,
        thresholds=thresholds,
        max_workers=max_workers,
        include_system=include_system,
        mode="user",
        target=user,
    )
