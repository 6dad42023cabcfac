from __future__ import annotations

"""
Host CPU descriptor sent with a new benchmark.

The service only stores this object for display next to the result, so every
field is best-effort: values that cannot be read on the current platform are
reported as 0/False/None rather than failing the benchmark.
"""

import os
import platform
from typing import Any, Dict, List, Optional

_CPUINFO = "/proc/cpuinfo"


def _read_cpuinfo(path: str = _CPUINFO) -> Dict[str, str]:
    """First processor block of /proc/cpuinfo as a dict (Linux only)."""
    info: Dict[str, str] = {}
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            for line in fh:
                if not line.strip():
                    if info:
                        break
                    continue
                key, _, value = line.partition(":")
                info.setdefault(key.strip(), value.strip())
    except OSError:
        return {}
    return info


def _brand(cpuinfo: Dict[str, str]) -> str:
    for key in ("model name", "Hardware", "Processor", "cpu model"):
        if cpuinfo.get(key):
            return cpuinfo[key]
    return platform.processor() or platform.machine() or "unknown"


def _flags(cpuinfo: Dict[str, str]) -> List[str]:
    raw = cpuinfo.get("flags") or cpuinfo.get("Features") or ""
    return raw.split()


def _physical_cores(cpuinfo: Dict[str, str]) -> Optional[int]:
    try:
        return int(cpuinfo["cpu cores"])
    except (KeyError, ValueError):
        return None


def cpu_to_json(cpuinfo: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Build the "cpu" member of the create payload.

    `cpuinfo` can be passed explicitly (tests, non-Linux callers); by default
    it is read from /proc/cpuinfo.
    """
    info = _read_cpuinfo() if cpuinfo is None else cpuinfo
    flags = _flags(info)
    machine = platform.machine().lower()
    threads = os.cpu_count() or 1
    arch = "x86_64" if machine in ("x86_64", "amd64") else machine or "unknown"

    return {
        "brand": _brand(info),
        "arch": arch,
        "x64": arch in ("x86_64", "aarch64", "arm64"),
        "aes": "aes" in flags,
        "avx2": "avx2" in flags,
        "cores": _physical_cores(info) or threads,
        "threads": threads,
        "l2": 0,
        "l3": 0,
        "backend": "python",
    }


__all__ = ["cpu_to_json"]
