from __future__ import annotations

"""
Process-wide benchmark registry.

Backends do not hold a reference to the client that handed them the job; they
report start/finish through the listener registered here. The registry also
owns the reference-hash oracle so every client in the process judges results
against the same table.
"""

import threading
from typing import TYPE_CHECKING, Any, Optional

from .reference import DictReferenceOracle, ReferenceOracle

if TYPE_CHECKING:  # pragma: no cover - types only
    from ..interfaces import BenchStateListener

_lock = threading.Lock()
_listener: Optional["BenchStateListener"] = None
_oracle: ReferenceOracle = DictReferenceOracle()


def set_listener(listener: Optional["BenchStateListener"]) -> None:
    global _listener
    with _lock:
        _listener = listener


def listener() -> Optional["BenchStateListener"]:
    return _listener


def destroy() -> None:
    """Drop the registered listener (called when the client is closed)."""
    set_listener(None)


def set_oracle(oracle: ReferenceOracle) -> None:
    global _oracle
    with _lock:
        _oracle = oracle


def oracle() -> ReferenceOracle:
    return _oracle


def reference_hash(algorithm: str, size: int, threads: int) -> int:
    return _oracle.lookup(algorithm, size, threads)


def start(ts: int, threads: int, backend: Any) -> None:
    """Forward a backend's start notification to the registered listener."""
    target = _listener
    if target is not None:
        target.on_bench_start(ts, threads, backend)


def done(result: int, ts: int) -> None:
    """Forward a backend's final hash sum to the registered listener."""
    target = _listener
    if target is not None:
        target.on_bench_done(result, ts)


__all__ = [
    "set_listener",
    "listener",
    "destroy",
    "set_oracle",
    "oracle",
    "reference_hash",
    "start",
    "done",
]
