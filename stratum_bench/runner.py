from __future__ import annotations

import asyncio
import contextlib
import importlib
import logging
import signal
import threading
from typing import Any, Callable, Dict, Optional

from .bench_client import BenchClient, Verdict
from .config import BenchConfig
from .http_fetch import Fetcher
from .interfaces import BenchBackend
from .job import BenchJob
from .support import bench_state
from .support.errors import BackendUnavailable
from .support.reference import DictReferenceOracle

log = logging.getLogger("stratum_bench.runner")

BackendFactory = Callable[..., Any]


def load_backend(spec: str) -> BackendFactory:
    """
    Resolve "package.module:factory" to a callable.

    The factory is called with the job and a reporter and must return an
    object with `start()`; it reports progress through `reporter.started()`
    and `reporter.finished()`, from any thread.
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise BackendUnavailable(backend=spec, message=f"expected module:factory, got {spec!r}")
    try:
        mod = importlib.import_module(module_name)
    except ImportError as exc:
        raise BackendUnavailable(backend=spec, message=f"cannot import {module_name}: {exc}") from exc
    factory = getattr(mod, attr, None)
    if not callable(factory):
        raise BackendUnavailable(backend=spec, message=f"{spec} is not callable")
    return factory


class LoopReporter:
    """
    Hands backend notifications to the bench registry on the event loop
    thread, whichever thread the backend calls from.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def _call(self, fn: Callable[..., None], *args: Any) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            fn(*args)
        else:
            self._loop.call_soon_threadsafe(fn, *args)

    def started(self, ts: int, threads: int, backend: BenchBackend) -> None:
        self._call(bench_state.start, ts, threads, backend)

    def finished(self, result: int, ts: int) -> None:
        self._call(bench_state.done, result, ts)


class BenchRunner:
    """
    Plays the miner core for a standalone benchmark: receives the synthetic
    job from BenchClient and starts the configured backend on it.
    """

    def __init__(
        self,
        config: BenchConfig,
        backend_factory: BackendFactory,
        *,
        online: bool = True,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self._factory = backend_factory
        self._worker: Optional[Any] = None
        self._reporter: Optional[LoopReporter] = None
        self.jobs_received = 0
        self.client = BenchClient(config, self, online=online, fetcher=fetcher)

    # ------------------- ClientListener -------------------

    def on_login_success(self, client: BenchClient) -> None:
        log.info("benchmark mode=%s", client.mode.value)

    def on_job_received(
        self, client: BenchClient, job: BenchJob, params: Optional[Dict[str, Any]]
    ) -> None:
        self.jobs_received += 1
        log.info(
            "Loaded job jobId=%s algo=%s size=%d seed=%s",
            job.job_id,
            job.algorithm,
            job.bench_size,
            job.seed_hash[:16],
        )
        if self._reporter is None:
            self._reporter = LoopReporter(asyncio.get_running_loop())
        self._worker = self._factory(job, self._reporter)
        self._worker.start()

    # ------------------- lifecycle -------------------

    async def run(self, stop: Optional[asyncio.Event] = None) -> int:
        stop = stop or asyncio.Event()
        self._reporter = LoopReporter(asyncio.get_running_loop())
        self.client.connect()

        exit_task = asyncio.create_task(self.client.wait_exit())
        stop_task = asyncio.create_task(stop.wait())
        tasks = [exit_task, stop_task]
        try:
            await asyncio.wait({exit_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
            if not stop_task.done():
                # Let a pending result upload land; a stop signal still cuts it short.
                drain_task = asyncio.create_task(self.client.drain())
                tasks.append(drain_task)
                await asyncio.wait({drain_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
                if drain_task.done() and not drain_task.cancelled() and drain_task.exception():
                    log.error("benchmark upload failed: %s", drain_task.exception())
        finally:
            for task in tasks:
                task.cancel()
            await self.close()

        if self.client.last_error is not None or self.client.verdict is Verdict.MISMATCH:
            return 1
        return 0 if self.client.exit_ready else 130

    async def close(self) -> None:
        stopper = getattr(self._worker, "stop", None)
        if callable(stopper):
            with contextlib.suppress(Exception):
                stopper()
        await self.client.aclose()


# Convenience runner ---------------------------------------------------------


async def run_bench(args: Any) -> int:
    config = BenchConfig.from_args(args)
    if getattr(args, "reference_file", None):
        bench_state.set_oracle(DictReferenceOracle.from_file(args.reference_file))

    runner = BenchRunner(
        config,
        load_backend(args.backend),
        online=not getattr(args, "offline", False),
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _set_stop(*_: Any) -> None:
        loop.call_soon_threadsafe(stop.set)

    for signame in ("SIGINT", "SIGTERM"):
        if hasattr(signal, signame):
            sig = getattr(signal, signame)
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Windows Proactor loops do not implement add_signal_handler; fall back to sync handler.
                if threading.current_thread() is threading.main_thread():
                    with contextlib.suppress(ValueError, RuntimeError):
                        signal.signal(sig, _set_stop)
    return await runner.run(stop)
