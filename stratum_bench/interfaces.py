from __future__ import annotations

"""
Interfaces the benchmark client consumes.

ClientListener
    The miner core. `on_login_success` then `on_job_received` is what makes it
    start the backend threads; the benchmark client is the only thing calling
    them in benchmark mode.

BenchBackend
    Whatever ran the hashing. The client keeps a non-owning reference from
    `on_bench_start` and only ever calls `to_json()` on it, once, when the
    result is uploaded.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

if TYPE_CHECKING:  # pragma: no cover - types only
    from .job import BenchJob


class ClientListener(Protocol):
    def on_login_success(self, client: Any) -> None: ...

    def on_job_received(
        self, client: Any, job: "BenchJob", params: Optional[Dict[str, Any]]
    ) -> None: ...


class BenchBackend(Protocol):
    def to_json(self) -> Any:
        """Device/backend statistics, JSON-serializable."""
        ...


class BenchStateListener(Protocol):
    """Receiver of backend start/finish notifications (see support.bench_state)."""

    def on_bench_start(self, ts: int, threads: int, backend: BenchBackend) -> None: ...

    def on_bench_done(self, result: int, ts: int) -> None: ...


__all__ = ["ClientListener", "BenchBackend", "BenchStateListener"]
