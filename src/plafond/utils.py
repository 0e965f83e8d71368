# src/plafond/utils.py
import logging
import pwd
from pathlib import Path
from typing import List

import psutil

from .exceptions import IdentityResolutionFailed
from .modules.procfs import PROC_ROOT, is_decimal, list_pids, read_owner_uid

log = logging.getLogger(__name__)


def resolve_uid(user: str) -> int:
    """
    Resolves a username or numeric UID string to a UID.

    Numeric strings are taken as-is, like the shell tools do, even when no
    passwd entry exists for them.
    """
    user = user.strip()
    if not user:
        raise IdentityResolutionFailed(user, "empty user")
    if is_decimal(user):
        return int(user)
    try:
        uid = pwd.getpwnam(user).pw_uid
    except KeyError:
        raise IdentityResolutionFailed(user, "user not found") from None
    log.debug(f"Resolved user '{user}' to UID {uid}")
    return uid


def collect_pids_for_uid(uid: int, proc_root: Path = PROC_ROOT) -> List[int]:
    """
    Lists pids owned by uid, ascending.

    Uses psutil against the live /proc; a custom proc root (tests, a mounted
    procfs of a container) is scanned directly by directory owner.
    """
    pids: List[int] = []
    if proc_root == PROC_ROOT:
        for proc in psutil.process_iter(attrs=["pid", "uids"]):
            # Inaccessible attributes come back as None rather than raising
            uids = proc.info.get("uids")
            if uids is not None and uids.effective == uid:
                pids.append(proc.info["pid"])
    else:
        for pid in list_pids(proc_root):
            if read_owner_uid(pid, proc_root) == uid:
                pids.append(pid)
    pids.sort()
    log.info(f"Found {len(pids)} processes for UID {uid}")
    return pids
