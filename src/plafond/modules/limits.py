# src/plafond/modules/limits.py
# -*- coding: utf-8 -*-

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from ..datatypes import LimitPair, LimitValue, LimitsInfo
from ..exceptions import LimitsUnreadable
from .procfs import PROC_ROOT, describe_os_error, is_decimal, pid_path, read_proc_file

log = logging.getLogger(__name__)

# Exact, case-sensitive row names from fs/proc/base.c
OPEN_FILES_LIMIT = "Max open files"
ADDRESS_SPACE_LIMIT = "Max address space"
PROCESSES_LIMIT = "Max processes"

UNLIMITED_TOKEN = "unlimited"
HEADER_PREFIX = "Limit"


def parse_limit_token(token: str) -> LimitValue:
    """Maps one soft/hard column to a LimitValue."""
    if token == UNLIMITED_TOKEN:
        return LimitValue.unlimited()
    if is_decimal(token):
        return LimitValue.concrete(int(token))
    log.warning(f"Malformed limit value {token!r}, treating it as unknown.")
    return LimitValue.unknown()


def _is_limit_token(token: str) -> bool:
    return token == UNLIMITED_TOKEN or is_decimal(token)


def _parse_limits_line(line: str) -> Optional[Tuple[str, str, str, Optional[str]]]:
    """
    Splits one row into (name, soft, hard, unit).

    The name is everything before the trailing value columns. Most rows end
    with a unit column, a few (nice/realtime priority) do not.
    """
    parts = line.split()
    if len(parts) >= 3 and _is_limit_token(parts[-1]) and not _is_limit_token(parts[-3]):
        name_parts, soft, hard, unit = parts[:-2], parts[-2], parts[-1], None
    elif len(parts) >= 4:
        name_parts, soft, hard, unit = parts[:-3], parts[-3], parts[-2], parts[-1]
    else:
        return None
    return " ".join(name_parts), soft, hard, unit


def parse_limits_content(content: Optional[str]) -> Dict[str, LimitPair]:
    """Parses the full /proc/<pid>/limits table into name -> LimitPair."""
    rlimits: Dict[str, LimitPair] = {}
    if not content:
        return rlimits
    for line_num, line in enumerate(content.splitlines()):
        if not line.strip():
            continue
        if line_num == 0 and line.startswith(HEADER_PREFIX):
            continue
        parsed = _parse_limits_line(line)
        if parsed is None:
            log.warning(
                f"Skipping line with unexpected format in limits (line {line_num+1}): {line!r}"
            )
            continue
        name, soft, hard, unit = parsed
        rlimits[name] = LimitPair(
            soft=parse_limit_token(soft), hard=parse_limit_token(hard), unit=unit
        )
    return rlimits


def build_limits_info(rlimits: Dict[str, LimitPair]) -> LimitsInfo:
    return LimitsInfo(
        rlimits=rlimits,
        open_files=rlimits.get(OPEN_FILES_LIMIT, LimitPair.unknown()),
        address_space=rlimits.get(ADDRESS_SPACE_LIMIT, LimitPair.unknown()),
        processes=rlimits.get(PROCESSES_LIMIT, LimitPair.unknown()),
    )


def read_limits(pid: int, proc_root: Path = PROC_ROOT) -> LimitsInfo:
    """
    Reads and parses /proc/<pid>/limits.

    Raises LimitsUnreadable when the file cannot be opened at all. Malformed
    rows only degrade the affected entries.
    """
    path = pid_path(pid, proc_root) / "limits"
    try:
        content = read_proc_file(path)
    except OSError as e:
        raise LimitsUnreadable(pid, describe_os_error(e)) from e
    info = build_limits_info(parse_limits_content(content))
    log.debug(
        f"Limits for PID {pid}: files={info.open_files.soft}/{info.open_files.hard}, "
        f"as={info.address_space.soft}/{info.address_space.hard}, "
        f"nproc={info.processes.soft}/{info.processes.hard}"
    )
    return info
