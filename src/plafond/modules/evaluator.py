# src/plafond/modules/evaluator.py
# -*- coding: utf-8 -*-

import logging
from dataclasses import dataclass
from typing import Optional

from ..datatypes import (
    Dimension,
    DimensionEvaluation,
    EvaluationResult,
    LimitValue,
    ProcessRecord,
    Severity,
)

log = logging.getLogger(__name__)

DEFAULT_WARNING_RATIO = 0.7
DEFAULT_CRITICAL_RATIO = 0.9


@dataclass(frozen=True)
class Thresholds:
    """usage / hard-limit ratios at which a dimension escalates."""

    warning: float = DEFAULT_WARNING_RATIO
    critical: float = DEFAULT_CRITICAL_RATIO


def classify_ratio(ratio: float, thresholds: Thresholds = Thresholds()) -> Severity:
    if ratio >= thresholds.critical:
        return Severity.CRITICAL
    if ratio >= thresholds.warning:
        return Severity.WARNING
    return Severity.OK


def evaluate_dimension(
    dimension: Dimension,
    usage: Optional[int],
    hard_limit: LimitValue,
    thresholds: Thresholds = Thresholds(),
) -> DimensionEvaluation:
    """
    Classifies one dimension against its hard limit.

    Unknown usage or an unknown hard limit is UNKNOWN, never OK. Unlimited
    compares against RLIM_INFINITY. A hard limit of 0 leaves no headroom at
    all and is CRITICAL.
    """
    limit = hard_limit.numeric
    if usage is None or limit is None:
        return DimensionEvaluation(
            dimension=dimension, severity=Severity.UNKNOWN, usage=usage, limit=hard_limit
        )
    if limit == 0:
        return DimensionEvaluation(
            dimension=dimension, severity=Severity.CRITICAL, usage=usage, limit=hard_limit
        )
    ratio = usage / limit
    return DimensionEvaluation(
        dimension=dimension,
        severity=classify_ratio(ratio, thresholds),
        usage=usage,
        limit=hard_limit,
        ratio=ratio,
    )


def evaluate_record(
    record: ProcessRecord, thresholds: Thresholds = Thresholds()
) -> EvaluationResult:
    """Evaluates fds, memory (virtual size vs address space) and threads."""
    fd_usage = record.open_fds if record.fds_readable else None
    result = EvaluationResult(
        pid=record.pid,
        dimensions=[
            evaluate_dimension(Dimension.FDS, fd_usage, record.fd_hard_limit, thresholds),
            evaluate_dimension(
                Dimension.MEMORY, record.vm_size, record.mem_hard_limit, thresholds
            ),
            evaluate_dimension(
                Dimension.THREADS, record.thread_count, record.threads_hard_limit, thresholds
            ),
        ],
    )
    if result.worst in (Severity.WARNING, Severity.CRITICAL):
        log.debug(f"PID {record.pid} ({record.name}) is {result.worst.value}.")
    return result
