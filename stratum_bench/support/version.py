from __future__ import annotations

import os

# Reported to the benchmark service as "version" in the create payload.
__version__ = "0.1.0"

APP_NAME = "stratum-bench"


def get_version() -> str:
    """Version sent to the service; STRATUM_BENCH_VERSION overrides __version__."""
    return os.getenv("STRATUM_BENCH_VERSION") or __version__


def user_agent() -> str:
    return f"{APP_NAME}/{__version__}"


__all__ = ["__version__", "APP_NAME", "get_version", "user_agent"]
