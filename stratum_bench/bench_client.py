from __future__ import annotations

import asyncio
import logging
import sys
from enum import Enum
from typing import Any, Dict, Optional

from . import bench_protocol as proto
from .bench_protocol import JSON, BenchRequest, HttpMethod
from .config import BenchConfig
from .http_fetch import Fetcher, FetchRequest, HttpData, HttpListener
from .interfaces import BenchBackend, ClientListener
from .job import STATIC_JOB_ID, BenchJob, is_seed_hash, zero_seed
from .support import bench_state
from .support.errors import BenchError, BenchRequestFailed, BenchTokenMissing
from .support.hardware import cpu_to_json
from .support.version import get_version

log = logging.getLogger("stratum_bench.bench")

GREEN_BOLD = "\033[1;32m"
RED_BOLD = "\033[1;31m"
WHITE_BOLD = "\033[1;37m"
CYAN_BOLD = "\033[1;36m"
MAGENTA_BOLD = "\033[1;35m"
CLEAR = "\033[0m"


class BenchMode(str, Enum):
    STATIC_BENCH = "static_bench"
    STATIC_VERIFY = "static_verify"
    ONLINE_BENCH = "online_bench"
    ONLINE_VERIFY = "online_verify"


class Verdict(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    UNKNOWN = "unknown"


def select_mode(config: BenchConfig, *, online: bool = True) -> BenchMode:
    """
    Mode is decided by configuration alone:
    submit > verify id > (fixed hash and valid seed) > plain static run.
    With `online` off only the two static modes are reachable.
    """
    if online and config.is_submit():
        return BenchMode.ONLINE_BENCH
    if online and config.id:
        return BenchMode.ONLINE_VERIFY
    if config.hash and is_seed_hash(config.seed):
        return BenchMode.STATIC_VERIFY
    return BenchMode.STATIC_BENCH


def build_job(config: BenchConfig, mode: BenchMode) -> BenchJob:
    job = BenchJob(algorithm=config.algorithm, height=1, bench_size=config.size)
    if mode is BenchMode.ONLINE_BENCH:
        return job
    if mode is BenchMode.ONLINE_VERIFY:
        job.job_id = config.id
        return job

    job.job_id = STATIC_JOB_ID
    if mode is BenchMode.STATIC_VERIFY and job.set_seed_hash(config.seed):
        return job
    job.seed_hash = zero_seed()
    return job


def classify(result: int, reference: int) -> Verdict:
    if not reference:
        return Verdict.UNKNOWN
    return Verdict.MATCH if result == reference else Verdict.MISMATCH


class BenchClient:
    """
    Stands in for a pool connection while the miner runs a benchmark.

    The client hands the backend a synthetic job, either immediately (static
    modes) or after a round trip to the benchmark service (online modes), and
    reports the backend's hash sum when it finishes. All callbacks are
    expected on one event loop thread.

    Usage:
        client = BenchClient(BenchConfig(size=1_000_000), listener)
        client.connect()
        ...  # backend calls on_bench_start / on_bench_done
        await client.wait_exit()
    """

    def __init__(
        self,
        config: BenchConfig,
        listener: ClientListener,
        *,
        online: bool = True,
        fetcher: Optional[Fetcher] = None,
        use_color: Optional[bool] = None,
    ) -> None:
        self.config = config
        self.listener = listener
        self.online = online
        self.use_color = sys.stdout.isatty() if use_color is None else use_color

        self.mode = select_mode(config, online=online)
        self.job = build_job(config, self.mode)
        self.hash = config.hash
        self.token = config.token if self.mode is BenchMode.ONLINE_VERIFY else ""

        # Run metadata, filled in by backend callbacks
        self.start_time = 0
        self.done_time = 0
        self.threads = 0
        self.result: Optional[int] = None
        self.backend: Optional[BenchBackend] = None
        self.verdict: Optional[Verdict] = None

        self.pool: Optional[Dict[str, Any]] = None
        self.last_error: Optional[BenchError] = None
        self.last_request: Optional[BenchRequest] = None

        self._fetcher = fetcher
        self._http_listener: Optional[HttpListener] = None
        self._exit = asyncio.Event()

        bench_state.set_listener(self)

    # ------------------- lifecycle -------------------

    def connect(self) -> None:
        if self.mode is BenchMode.ONLINE_BENCH:
            self._create_bench()
        elif self.mode is BenchMode.ONLINE_VERIFY:
            self._get_bench()
        else:
            self.start()

    def set_pool(self, pool: Dict[str, Any]) -> None:
        self.pool = pool

    def start(self) -> None:
        self.listener.on_login_success(self)
        self.listener.on_job_received(self, self.job, None)

    def close(self) -> None:
        if bench_state.listener() is self:
            bench_state.destroy()

    async def drain(self) -> None:
        """Wait for outstanding service requests and their replies."""
        if self._fetcher is not None:
            await self._fetcher.join()

    async def aclose(self) -> None:
        if self._fetcher is not None:
            await self._fetcher.aclose()
        self.close()

    @property
    def exit_ready(self) -> bool:
        return self._exit.is_set()

    async def wait_exit(self) -> None:
        await self._exit.wait()

    # ------------------- backend callbacks -------------------

    def on_bench_start(self, ts: int, threads: int, backend: BenchBackend) -> None:
        self.start_time = ts
        self.threads = threads
        self.backend = backend

        if self.mode is BenchMode.ONLINE_BENCH:
            self._update(proto.start_payload(threads, ts), BenchRequest.START)

    def on_bench_done(self, result: int, ts: int) -> None:
        self.done_time = ts
        self.result = result

        if self.token:
            backend_json = self.backend.to_json() if self.backend is not None else None
            self._update(proto.done_payload(ts, result, backend_json), BenchRequest.DONE)

        ref = self.reference_hash()
        self.verdict = classify(result, ref)
        color = {
            Verdict.MATCH: GREEN_BOLD,
            Verdict.MISMATCH: RED_BOLD,
            Verdict.UNKNOWN: WHITE_BOLD,
        }[self.verdict]

        log.info(
            "%s %s hash sum = %s",
            self._paint("benchmark finished in", WHITE_BOLD),
            self._paint("%.3f seconds" % ((ts - self.start_time) / 1000.0), CYAN_BOLD),
            self._paint(proto.format_hash(result), color),
        )
        if self.verdict is Verdict.MISMATCH:
            log.debug("expected hash sum %s", proto.format_hash(ref))

        if self.mode is not BenchMode.ONLINE_BENCH:
            self._print_exit()

    def reference_hash(self) -> int:
        # The service is authoritative for a new submission.
        if self.mode is BenchMode.ONLINE_BENCH:
            return 0
        if self.hash:
            return self.hash
        return bench_state.reference_hash(str(self.job.algorithm), self.job.bench_size, self.threads)

    # ------------------- HTTP -------------------

    def on_http_data(self, data: HttpData) -> None:
        if data.is_transport_error():
            self._set_error(BenchRequestFailed(message=str(data.error)))
            return

        try:
            doc = data.json()
        except ValueError as exc:
            self._set_error(BenchRequestFailed(message=str(exc), status=data.status))
            return

        if data.status != 200:
            self._set_error(BenchRequestFailed(message=data.status_name(), status=data.status))
            return

        if self.done_time:
            log.info(
                "%s %s",
                self._paint("benchmark submitted", WHITE_BOLD),
                self._paint(self.config.share_link(self.job.job_id), CYAN_BOLD),
            )
            self._print_exit()
            return

        if self.start_time:
            return

        if self.mode is BenchMode.ONLINE_BENCH:
            self.start_bench(doc)
        else:
            self.start_verify(doc)

    def start_bench(self, doc: JSON) -> None:
        reply = proto.read_create(doc)
        if not reply.id or not reply.token:
            missing = [k for k, v in (("id", reply.id), ("token", reply.token)) if not v]
            self._set_error(BenchRequestFailed(message="missing " + ", ".join(missing), status=200))
            return

        self.job.job_id = reply.id
        self.job.set_seed_hash(reply.seed)
        self.token = reply.token
        log.debug("benchmark job %s created", reply.id)
        self.start()

    def start_verify(self, doc: JSON) -> None:
        reply = proto.read_fetch(doc)
        if reply.hash:
            self.hash = reply.hash
        self.job.set_algorithm(reply.algo)
        self.job.set_seed_hash(reply.seed)
        self.job.bench_size = reply.size
        log.debug(
            "verifying benchmark %s algo=%s size=%d", self.job.job_id, self.job.algorithm, reply.size
        )
        self.start()

    # ------------------- internals -------------------

    @property
    def fetcher(self) -> Fetcher:
        if self._fetcher is None:
            self._fetcher = Fetcher()
        return self._fetcher

    def _listener(self) -> HttpListener:
        if self._http_listener is None:
            self._http_listener = HttpListener(self, tag="bench")
        return self._http_listener

    def _request(
        self,
        method: HttpMethod,
        path: str,
        body: Optional[JSON] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchRequest:
        return FetchRequest(
            method=method,
            host=self.config.api_host,
            port=self.config.api_port,
            path=path,
            body=body,
            tls=self.config.api_tls,
            quiet=True,
            headers=headers or {},
        )

    def _create_bench(self) -> None:
        body = proto.create_payload(self.config.size, self.config.algorithm, get_version(), cpu_to_json())
        self._send(self._request(HttpMethod.POST, proto.create_path(), body), BenchRequest.CREATE)

    def _get_bench(self) -> None:
        self._send(self._request(HttpMethod.GET, proto.job_path(self.job.job_id)), BenchRequest.FETCH)

    def _update(self, body: JSON, kind: BenchRequest) -> None:
        if not self.token:
            raise BenchTokenMissing(context={"job": self.job.job_id, "request": kind.value})
        req = self._request(
            HttpMethod.PATCH, proto.job_path(self.job.job_id), body, proto.bearer(self.token)
        )
        self._send(req, kind)

    def _send(self, req: FetchRequest, kind: BenchRequest) -> None:
        self.last_request = kind
        self.fetcher.fetch(req, self._listener())

    def _set_error(self, err: BenchRequestFailed) -> None:
        self.last_error = err
        log.error("%s \"%s\"", self._paint("benchmark failed", RED_BOLD), err.message)

    def _print_exit(self) -> None:
        log.info(
            "%s %s %s",
            self._paint("press", WHITE_BOLD),
            self._paint("Ctrl+C", MAGENTA_BOLD),
            self._paint("to exit", WHITE_BOLD),
        )
        self._exit.set()

    def _paint(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{CLEAR}"


__all__ = ["BenchMode", "Verdict", "BenchClient", "select_mode", "build_job", "classify"]
