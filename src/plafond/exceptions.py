"""Exceptions raised while inspecting processes."""

from typing import Optional


class PlafondError(Exception):
    """Base exception for all plafond errors."""


class GatherError(PlafondError):
    """A mandatory part of one process's state could not be read."""

    what = "process state"

    def __init__(self, pid: int, reason: Optional[str] = None) -> None:
        message = f"Cannot read {self.what} of PID {pid}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.pid = pid
        self.reason = reason


class IdentityUnreadable(GatherError):
    """Raised when comm cannot be read (process gone or access denied)."""

    what = "identity"


class LimitsUnreadable(GatherError):
    """Raised when /proc/<pid>/limits cannot be opened."""

    what = "limits"


class StatusUnreadable(GatherError):
    """Raised when /proc/<pid>/status cannot be opened."""

    what = "status"


class TargetNotFound(PlafondError):
    """Raised when the root of a tree inspection is not in the process table."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"Target PID {pid} not found in the process table")
        self.pid = pid


class IdentityResolutionFailed(PlafondError):
    """Raised when a user name or UID cannot be resolved."""

    def __init__(self, user: str, reason: Optional[str] = None) -> None:
        message = f"Failed user lookup for '{user}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.user = user
        self.reason = reason
