# src/plafond/modules/system.py
# -*- coding: utf-8 -*-

import logging

import psutil

from ..datatypes import SystemResourceUsage

log = logging.getLogger(__name__)


def get_system_wide_usage() -> SystemResourceUsage:
    """Gathers system-wide memory, swap and load metrics using psutil."""
    log.debug("Getting system-wide resource usage via psutil...")
    usage = SystemResourceUsage()
    try:
        mem = psutil.virtual_memory()
        usage.mem_total_bytes = mem.total
        usage.mem_available_bytes = mem.available
        usage.mem_percent = mem.percent
        swap = psutil.swap_memory()
        usage.swap_total_bytes = swap.total
        usage.swap_used_bytes = swap.used
        usage.swap_percent = swap.percent
        try:
            usage.load_avg = list(psutil.getloadavg())
        except (OSError, AttributeError) as load_e:
            log.warning(f"psutil.getloadavg failed: {load_e}")
            usage.error = f"Load Average Error: {load_e}"
        usage.process_count = len(psutil.pids())
    except Exception as e:
        log.exception(f"Error getting system-wide usage via psutil: {e}")
        err_str = f"psutil error: {e}"
        usage.error = f"{usage.error}; {err_str}" if usage.error else err_str
    log.debug(f"System usage fetched: Mem={usage.mem_percent}%, Load={usage.load_avg}")
    return usage
