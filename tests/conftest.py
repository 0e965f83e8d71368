# tests/conftest.py
# -*- coding: utf-8 -*-

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

# (name, soft, hard, unit) rows as printed by the kernel
DEFAULT_LIMIT_ROWS: List[Tuple[str, str, str, str]] = [
    ("Max cpu time", "unlimited", "unlimited", "seconds"),
    ("Max file size", "unlimited", "unlimited", "bytes"),
    ("Max data size", "unlimited", "unlimited", "bytes"),
    ("Max stack size", "8388608", "unlimited", "bytes"),
    ("Max core file size", "0", "unlimited", "bytes"),
    ("Max resident set", "unlimited", "unlimited", "bytes"),
    ("Max processes", "63448", "63448", "processes"),
    ("Max open files", "1024", "4096", "files"),
    ("Max locked memory", "8388608", "8388608", "bytes"),
    ("Max address space", "unlimited", "unlimited", "bytes"),
    ("Max file locks", "unlimited", "unlimited", "locks"),
    ("Max pending signals", "63448", "63448", "signals"),
    ("Max msgqueue size", "819200", "819200", "bytes"),
    ("Max nice priority", "0", "0", ""),
    ("Max realtime priority", "0", "0", ""),
    ("Max realtime timeout", "unlimited", "unlimited", "us"),
]


def render_limits(overrides: Optional[Dict[str, Tuple[str, str]]] = None) -> str:
    """Renders a /proc/<pid>/limits table, replacing (soft, hard) for the given rows."""
    overrides = overrides or {}
    lines = [f"{'Limit':<26}{'Soft Limit':<21}{'Hard Limit':<21}{'Units':<10}"]
    for name, soft, hard, unit in DEFAULT_LIMIT_ROWS:
        soft, hard = overrides.get(name, (soft, hard))
        lines.append(f"{name:<26}{soft:<21}{hard:<21}{unit:<10}")
    return "\n".join(lines) + "\n"


def render_status(
    name: str,
    pid: int,
    ppid: int,
    uid: int = 1000,
    vm_size_kb: Optional[int] = 9000,
    vm_rss_kb: Optional[int] = 2048,
    vm_lck_kb: Optional[int] = 0,
    threads: Optional[int] = 1,
) -> str:
    lines = [
        f"Name:\t{name}",
        "Umask:\t0022",
        "State:\tS (sleeping)",
        f"Tgid:\t{pid}",
        f"Pid:\t{pid}",
        f"PPid:\t{ppid}",
        "TracerPid:\t0",
        f"Uid:\t{uid}\t{uid}\t{uid}\t{uid}",
        f"Gid:\t{uid}\t{uid}\t{uid}\t{uid}",
        "FDSize:\t256",
    ]
    if vm_size_kb is not None:
        lines.append(f"VmSize:\t{vm_size_kb:>8} kB")
    if vm_lck_kb is not None:
        lines.append(f"VmLck:\t{vm_lck_kb:>8} kB")
    if vm_rss_kb is not None:
        lines.append(f"VmRSS:\t{vm_rss_kb:>8} kB")
    if threads is not None:
        lines.append(f"Threads:\t{threads}")
    return "\n".join(lines) + "\n"


class FakeProc:
    """Builds a procfs-shaped directory tree under a temporary root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def add(
        self,
        pid: int,
        name: str = "bash",
        ppid: int = 1,
        cmdline: Sequence[str] = ("/bin/bash",),
        fds: Optional[int] = 3,
        limits: Optional[str] = None,
        status: Optional[str] = None,
        limit_overrides: Optional[Dict[str, Tuple[str, str]]] = None,
        write_limits: bool = True,
        write_status: bool = True,
        write_stat: bool = True,
        **status_kwargs,
    ) -> Path:
        base = self.root / str(pid)
        base.mkdir()
        (base / "comm").write_text(name + "\n")
        (base / "cmdline").write_bytes(
            b"".join(arg.encode() + b"\0" for arg in cmdline)
        )
        if write_stat:
            (base / "stat").write_text(
                f"{pid} ({name}) S {ppid} {pid} {pid} 0 -1 4194560 100 0 0 0 0 0 0 0 20 0 1 0\n"
            )
        if write_limits:
            (base / "limits").write_text(
                limits if limits is not None else render_limits(limit_overrides)
            )
        if write_status:
            (base / "status").write_text(
                status if status is not None else render_status(name, pid, ppid, **status_kwargs)
            )
        if fds is not None:
            fd_dir = base / "fd"
            fd_dir.mkdir()
            for fd in range(fds):
                (fd_dir / str(fd)).touch()
        return base


@pytest.fixture
def fake_proc(tmp_path) -> FakeProc:
    """An empty fake /proc; populate it with fake_proc.add(pid, ...)."""
    root = tmp_path / "proc"
    root.mkdir()
    # Non-pid entries that every real /proc has
    (root / "self").mkdir()
    (root / "meminfo").write_text("MemTotal:       16000000 kB\n")
    return FakeProc(root)
