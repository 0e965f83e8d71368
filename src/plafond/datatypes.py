from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

# Largest rlim_t value; the kernel prints it as "unlimited".
RLIM_INFINITY = 2**64 - 1


# --- Limit Data Structures ---


class LimitKind(str, Enum):
    CONCRETE = "concrete"
    UNLIMITED = "unlimited"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class LimitValue:
    """One side (soft or hard) of a resource limit."""

    kind: LimitKind
    value: Optional[int] = None

    @classmethod
    def concrete(cls, value: int) -> "LimitValue":
        return cls(LimitKind.CONCRETE, value)

    @classmethod
    def unlimited(cls) -> "LimitValue":
        return cls(LimitKind.UNLIMITED)

    @classmethod
    def unknown(cls) -> "LimitValue":
        return cls(LimitKind.UNKNOWN)

    @property
    def is_unlimited(self) -> bool:
        return self.kind is LimitKind.UNLIMITED

    @property
    def is_known(self) -> bool:
        return self.kind is not LimitKind.UNKNOWN

    @property
    def numeric(self) -> Optional[int]:
        """Integer form: RLIM_INFINITY for unlimited, None when unknown."""
        if self.kind is LimitKind.UNLIMITED:
            return RLIM_INFINITY
        if self.kind is LimitKind.CONCRETE:
            return self.value
        return None

    def __str__(self) -> str:
        if self.kind is LimitKind.CONCRETE:
            return str(self.value)
        return self.kind.value


@dataclass(frozen=True)
class LimitPair:
    """Soft/hard pair from one line of /proc/<pid>/limits."""

    soft: LimitValue
    hard: LimitValue
    unit: Optional[str] = None

    @classmethod
    def unknown(cls) -> "LimitPair":
        return cls(LimitValue.unknown(), LimitValue.unknown())


@dataclass
class LimitsInfo:
    """Parsed limits table with the three limits the evaluator compares against."""

    rlimits: Dict[str, LimitPair] = field(default_factory=dict)
    open_files: LimitPair = field(default_factory=LimitPair.unknown)
    address_space: LimitPair = field(default_factory=LimitPair.unknown)
    processes: LimitPair = field(default_factory=LimitPair.unknown)


@dataclass
class StatusInfo:
    """Counters parsed from /proc/<pid>/status. Memory values are bytes."""

    vm_rss: Optional[int] = None
    vm_size: Optional[int] = None
    vm_locked: Optional[int] = None
    thread_count: Optional[int] = None
    ppid: Optional[int] = None
    state: Optional[str] = None
    uid: Optional[int] = None


# --- Process Data Structures ---


@dataclass
class ProcessRecord:
    """Everything extracted for one process."""

    pid: int
    name: str
    cmdline: str = ""
    open_fds: int = 0
    fds_readable: bool = True
    fd_soft_limit: LimitValue = field(default_factory=LimitValue.unknown)
    fd_hard_limit: LimitValue = field(default_factory=LimitValue.unknown)
    vm_rss: Optional[int] = None
    vm_size: Optional[int] = None
    vm_locked: Optional[int] = None
    mem_soft_limit: LimitValue = field(default_factory=LimitValue.unknown)
    mem_hard_limit: LimitValue = field(default_factory=LimitValue.unknown)
    thread_count: Optional[int] = None
    threads_soft_limit: LimitValue = field(default_factory=LimitValue.unknown)
    threads_hard_limit: LimitValue = field(default_factory=LimitValue.unknown)
    rlimits: Dict[str, LimitPair] = field(default_factory=dict)
    ppid: Optional[int] = None
    state: Optional[str] = None
    uid: Optional[int] = None


@dataclass(frozen=True)
class ProcessTree:
    """Read-only snapshot of one subtree of the process table."""

    root_pid: int
    parents: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))
    children: Mapping[int, Tuple[int, ...]] = field(default_factory=lambda: MappingProxyType({}))
    members: Tuple[int, ...] = ()

    def descendants(self) -> List[int]:
        """Root first, then every pid reached from it."""
        return list(self.members)


# --- Evaluation Data Structures ---


class Severity(str, Enum):
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


# Ordering used to pick the worst dimension of a process.
SEVERITY_RANK: Dict[Severity, int] = {
    Severity.OK: 0,
    Severity.UNKNOWN: 1,
    Severity.WARNING: 2,
    Severity.CRITICAL: 3,
}


class Dimension(str, Enum):
    FDS = "fds"
    MEMORY = "memory"
    THREADS = "threads"


@dataclass
class DimensionEvaluation:
    dimension: Dimension
    severity: Severity
    usage: Optional[int] = None
    limit: Optional[LimitValue] = None
    ratio: Optional[float] = None


@dataclass
class EvaluationResult:
    """Per-dimension severities for one process."""

    pid: int
    dimensions: List[DimensionEvaluation] = field(default_factory=list)

    @classmethod
    def all_unknown(cls, pid: int) -> "EvaluationResult":
        return cls(
            pid=pid,
            dimensions=[
                DimensionEvaluation(dimension=dim, severity=Severity.UNKNOWN)
                for dim in Dimension
            ],
        )

    def severity_of(self, dimension: Dimension) -> Severity:
        for item in self.dimensions:
            if item.dimension is dimension:
                return item.severity
        return Severity.UNKNOWN

    @property
    def worst(self) -> Severity:
        if not self.dimensions:
            return Severity.UNKNOWN
        return max(
            (item.severity for item in self.dimensions), key=SEVERITY_RANK.__getitem__
        )


# --- Report Data Structures ---


@dataclass
class GatherFailure:
    """Why a requested pid could not be inspected."""

    kind: str
    message: str


@dataclass
class ReportEntry:
    pid: int
    evaluation: EvaluationResult
    record: Optional[ProcessRecord] = None
    failure: Optional[GatherFailure] = None

    @property
    def failed(self) -> bool:
        return self.record is None


@dataclass
class SystemResourceUsage:
    """Stores system-wide resource usage metrics."""

    mem_total_bytes: Optional[int] = None
    mem_available_bytes: Optional[int] = None
    mem_percent: Optional[float] = None
    swap_total_bytes: Optional[int] = None
    swap_used_bytes: Optional[int] = None
    swap_percent: Optional[float] = None
    load_avg: Optional[List[float]] = None
    process_count: Optional[int] = None
    error: Optional[str] = None


@dataclass
class InspectionReport:
    """Top-level structure handed to the renderers."""

    mode: str
    target: str
    hostname: Optional[str] = None
    timestamp: Optional[str] = None
    entries: List[ReportEntry] = field(default_factory=list)
    system_usage: Optional[SystemResourceUsage] = None
    errors: List[str] = field(default_factory=list)

    def counts_by_severity(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in Severity}
        counts["failed"] = 0
        for entry in self.entries:
            if entry.failed:
                counts["failed"] += 1
            else:
                counts[entry.evaluation.worst.value] += 1
        return counts
