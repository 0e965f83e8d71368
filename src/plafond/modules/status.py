# src/plafond/modules/status.py
# -*- coding: utf-8 -*-

import logging
from pathlib import Path
from typing import Dict, Optional

from ..datatypes import StatusInfo
from ..exceptions import StatusUnreadable
from .procfs import PROC_ROOT, describe_os_error, pid_path, read_proc_file

log = logging.getLogger(__name__)

# status key -> StatusInfo attribute, for values reported in kB
MEMORY_KEYS: Dict[str, str] = {
    "VmRSS": "vm_rss",
    "VmSize": "vm_size",
    "VmLck": "vm_locked",
}
KIB = 1024


def _parse_status_kv(content: str) -> Dict[str, str]:
    """Splits 'Key:\\tvalue' lines into a dict of raw value strings."""
    data: Dict[str, str] = {}
    for line in content.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        data[key.strip()] = value.strip()
    return data


def _parse_kib(raw: Optional[str], key: str) -> Optional[int]:
    if raw is None:
        return None
    parts = raw.split()
    try:
        value = int(parts[0])
    except (IndexError, ValueError):
        log.warning(f"Could not parse {key} value from status: {raw!r}")
        return None
    if len(parts) > 1 and parts[1] != "kB":
        log.warning(f"Unexpected unit {parts[1]!r} for {key}, assuming kB.")
    return value * KIB


def _parse_int(raw: Optional[str], key: str) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw.split()[0])
    except (IndexError, ValueError):
        log.warning(f"Could not parse {key} value from status: {raw!r}")
        return None


def parse_status_content(content: Optional[str]) -> StatusInfo:
    """
    Extracts memory, thread and parentage counters from status content.

    Memory values are converted from kB to bytes. A missing or malformed key
    leaves its field as None; zero is never used to mean "not reported".
    """
    info = StatusInfo()
    if not content:
        return info
    data = _parse_status_kv(content)
    for key, attr in MEMORY_KEYS.items():
        setattr(info, attr, _parse_kib(data.get(key), key))
    info.thread_count = _parse_int(data.get("Threads"), "Threads")
    info.ppid = _parse_int(data.get("PPid"), "PPid")
    info.uid = _parse_int(data.get("Uid"), "Uid")
    state = data.get("State")
    info.state = state[0] if state else None
    return info


def read_status(pid: int, proc_root: Path = PROC_ROOT) -> StatusInfo:
    """Reads /proc/<pid>/status; raises StatusUnreadable if it cannot be opened."""
    path = pid_path(pid, proc_root) / "status"
    try:
        content = read_proc_file(path)
    except OSError as e:
        raise StatusUnreadable(pid, describe_os_error(e)) from e
    return parse_status_content(content)
