# src/plafond/modules/procfs.py
# -*- coding: utf-8 -*-

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from ..exceptions import IdentityUnreadable

log = logging.getLogger(__name__)

# --- Constants ---
PROC_ROOT = Path("/proc")


# --- Helper Functions ---
def is_decimal(token: str) -> bool:
    """ASCII digits only; str.isdigit() also accepts superscripts that int() rejects."""
    return token.isascii() and token.isdigit()


def pid_path(pid: int, proc_root: Path = PROC_ROOT) -> Path:
    return proc_root / str(pid)


def read_proc_file(path: Path) -> str:
    """
    Reads a procfs pseudo-file as text.

    Raises OSError untouched; callers decide whether a failed read is fatal
    for the record or just degrades one field.
    """
    content_bytes = path.read_bytes()
    return content_bytes.decode("utf-8", errors="replace")


def describe_os_error(e: OSError) -> str:
    """Short human-readable reason for a failed procfs read."""
    if isinstance(e, (FileNotFoundError, ProcessLookupError)):
        return "process exited"
    if isinstance(e, PermissionError):
        return "permission denied"
    return e.strerror or str(e)


def list_pids(proc_root: Path = PROC_ROOT) -> List[int]:
    """Returns every numeric entry of the proc root, sorted ascending."""
    try:
        names = os.listdir(proc_root)
    except OSError as e:
        log.error(f"Cannot enumerate processes under {proc_root}: {e}")
        return []
    return sorted(int(name) for name in names if is_decimal(name))


# --- Identity ---
def read_identity(pid: int, proc_root: Path = PROC_ROOT) -> Tuple[str, str]:
    """
    Reads (name, cmdline) for a process.

    The short name comes from comm and is mandatory. The command line is the
    NUL-separated argv joined with spaces; it is empty for kernel threads and
    zombies, and an unreadable cmdline alone does not fail the identity.
    """
    base = pid_path(pid, proc_root)
    try:
        name = read_proc_file(base / "comm").strip()
    except OSError as e:
        raise IdentityUnreadable(pid, describe_os_error(e)) from e

    cmdline = ""
    try:
        raw = read_proc_file(base / "cmdline")
        cmdline = " ".join(arg for arg in raw.split("\0") if arg)
    except OSError as e:
        log.debug(f"cmdline of PID {pid} not readable ({describe_os_error(e)}), using empty string.")
    return name, cmdline


# --- File Descriptors ---
def count_open_fds(pid: int, proc_root: Path = PROC_ROOT) -> Tuple[int, bool]:
    """
    Counts entries of /proc/<pid>/fd.

    Returns (count, readable). An inaccessible directory yields (0, False) and
    is never raised, since fd counts of other users' processes are routinely
    hidden.
    """
    fd_dir = pid_path(pid, proc_root) / "fd"
    try:
        return len(os.listdir(fd_dir)), True
    except OSError as e:
        log.debug(f"Cannot list {fd_dir}: {describe_os_error(e)}")
        return 0, False


# --- Parent / Owner ---
def parse_stat_ppid(content: Optional[str]) -> Optional[int]:
    """
    Extracts the parent pid (field 4) from /proc/<pid>/stat content.

    comm (field 2) is wrapped in parentheses and may itself contain spaces or
    parentheses, so the remaining fields are taken after the last ')'.
    """
    if not content:
        return None
    close_paren = content.rfind(")")
    if close_paren == -1:
        return None
    fields = content[close_paren + 1 :].split()
    # fields[0] is the state, fields[1] the ppid
    if len(fields) < 2:
        return None
    try:
        return int(fields[1])
    except ValueError:
        return None


def read_parent_pid(pid: int, proc_root: Path = PROC_ROOT) -> Optional[int]:
    try:
        content = read_proc_file(pid_path(pid, proc_root) / "stat")
    except OSError as e:
        log.debug(f"stat of PID {pid} not readable: {describe_os_error(e)}")
        return None
    ppid = parse_stat_ppid(content)
    if ppid is None:
        log.warning(f"Could not parse parent PID from stat of PID {pid}: {content[:80]!r}")
    return ppid


def read_owner_uid(pid: int, proc_root: Path = PROC_ROOT) -> Optional[int]:
    """Owner of the /proc/<pid> directory (the process's effective UID)."""
    try:
        return pid_path(pid, proc_root).stat().st_uid
    except OSError:
        return None
