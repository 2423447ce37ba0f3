"""Process-level readings shared by the metrics snapshot and the health report."""

import os
import platform
import time
from typing import Any

import psutil

_BYTES_PER_MB = 1024 * 1024


def process_uptime_seconds() -> float:
    """Seconds since this process started."""
    return max(0.0, time.time() - psutil.Process(os.getpid()).create_time())


def memory_usage_mb() -> dict[str, int]:
    """Resident and virtual memory of this process in whole megabytes."""
    info = psutil.Process(os.getpid()).memory_info()
    return {
        "rss": round(info.rss / _BYTES_PER_MB),
        "vms": round(info.vms / _BYTES_PER_MB),
    }


def runtime_info() -> dict[str, Any]:
    return {
        "platform": platform.system().lower(),
        "arch": platform.machine(),
        "pythonVersion": platform.python_version(),
        "pid": os.getpid(),
    }


def format_uptime(seconds: float) -> str:
    """Render an uptime like ``1d 2h 3m 4s``, dropping leading zero units."""
    total = int(seconds)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)

    if days > 0:
        return f"{days}d {hours}h {minutes}m {secs}s"
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
