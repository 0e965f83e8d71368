# src/plafond/modules/gatherer.py
# -*- coding: utf-8 -*-

import logging
from pathlib import Path

from ..datatypes import ProcessRecord
from .limits import read_limits
from .procfs import PROC_ROOT, count_open_fds, read_identity
from .status import read_status

log = logging.getLogger(__name__)


def gather_process(pid: int, proc_root: Path = PROC_ROOT) -> ProcessRecord:
    """
    Builds the ProcessRecord for one pid.

    Identity, limits and status are mandatory: their GatherError subclasses
    propagate so the caller can record which extraction failed. The open fd
    count never fails the gather.
    """
    name, cmdline = read_identity(pid, proc_root)
    limits = read_limits(pid, proc_root)
    status = read_status(pid, proc_root)
    open_fds, fds_readable = count_open_fds(pid, proc_root)

    record = ProcessRecord(
        pid=pid,
        name=name,
        cmdline=cmdline,
        open_fds=open_fds,
        fds_readable=fds_readable,
        fd_soft_limit=limits.open_files.soft,
        fd_hard_limit=limits.open_files.hard,
        vm_rss=status.vm_rss,
        vm_size=status.vm_size,
        vm_locked=status.vm_locked,
        mem_soft_limit=limits.address_space.soft,
        mem_hard_limit=limits.address_space.hard,
        thread_count=status.thread_count,
        threads_soft_limit=limits.processes.soft,
        threads_hard_limit=limits.processes.hard,
        rlimits=limits.rlimits,
        ppid=status.ppid,
        state=status.state,
        uid=status.uid,
    )
    log.debug(
        f"Gathered PID {pid} ({name}): fds={open_fds}{'' if fds_readable else ' (unreadable)'}, "
        f"vsz={record.vm_size}, threads={record.thread_count}"
    )
    return record
