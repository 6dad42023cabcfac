import asyncio
import threading

import httpx
import pytest

from stratum_bench.bench_client import BenchMode
from stratum_bench.cli import parse_args
from stratum_bench.config import BenchConfig
from stratum_bench.http_fetch import Fetcher
from stratum_bench.runner import BenchRunner, load_backend
from stratum_bench.support.errors import BackendUnavailable

SEED = "ab" * 32


class InlineWorker:
    """Reports start and finish synchronously from start()."""

    def __init__(self, job, reporter, result):
        self.job = job
        self.reporter = reporter
        self.result = result
        self.stopped = False

    def to_json(self):
        return {"type": "inline"}

    def start(self):
        self.reporter.started(1000, 2, self)
        self.reporter.finished(self.result, 1250)

    def stop(self):
        self.stopped = True


class ThreadWorker(InlineWorker):
    def start(self):
        self.thread = threading.Thread(target=InlineWorker.start, args=(self,))
        self.thread.start()


def test_load_backend():
    assert load_backend("json:dumps") is __import__("json").dumps
    for spec in ("json", "json:nope", "no_such_module_xyz:factory", ":x"):
        with pytest.raises(BackendUnavailable):
            load_backend(spec)


def test_runner_static_bench_inline():
    workers = []

    def factory(job, reporter):
        workers.append(InlineWorker(job, reporter, 0xABC))
        return workers[-1]

    async def scenario():
        runner = BenchRunner(BenchConfig(), factory)
        rc = await runner.run()
        return runner, rc

    runner, rc = asyncio.run(scenario())
    assert rc == 0
    assert runner.jobs_received == 1
    assert runner.client.mode is BenchMode.STATIC_BENCH
    assert runner.client.result == 0xABC
    assert workers[0].stopped
    assert workers[0].job.bench_size == 1_000_000


def test_runner_reports_mismatch_from_thread():
    def factory(job, reporter):
        return ThreadWorker(job, reporter, 2)

    async def scenario():
        runner = BenchRunner(BenchConfig(hash=1, seed=SEED), factory)
        return await asyncio.wait_for(runner.run(), timeout=5)

    assert asyncio.run(scenario()) == 1


def test_runner_stop_event_before_result():
    class IdleWorker(InlineWorker):
        def start(self):
            pass

    async def scenario():
        runner = BenchRunner(BenchConfig(), lambda job, rep: IdleWorker(job, rep, 0))
        stop = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, stop.set)
        return await runner.run(stop)

    assert asyncio.run(scenario()) == 130


def test_cli_arguments():
    args = parse_args(["--backend", "pkg:make", "--bench", "2M", "--submit", "--no-tls"])
    cfg = BenchConfig.from_args(args)
    assert args.backend == "pkg:make"
    assert cfg.size == 2_000_000
    assert cfg.submit is True
    assert cfg.api_tls is False


def _slow_fetcher(service, delay=0.02):
    async def handler(request):
        await asyncio.sleep(delay)
        return service(request)

    return Fetcher(transport=httpx.MockTransport(handler))


def _online_config(**kwargs):
    return BenchConfig(api_host="bench.test", api_port=443, api_tls=True, **kwargs)


def _inline_factory(result):
    return lambda job, reporter: InlineWorker(job, reporter, result)


def test_runner_online_verify_uploads_result_before_exit(service):
    service.reply("GET", 200, {"hash": "00000000DEADBEEF", "algo": "rx/0", "seed": SEED, "size": 250000})

    async def scenario():
        runner = BenchRunner(
            _online_config(id="xyz", token="tok"),
            _inline_factory(0xDEADBEEF),
            fetcher=_slow_fetcher(service),
        )
        rc = await asyncio.wait_for(runner.run(), timeout=5)
        return runner, rc

    runner, rc = asyncio.run(scenario())
    assert rc == 0
    assert runner.client.mode is BenchMode.ONLINE_VERIFY
    assert [r.method for r in service.requests] == ["GET", "PATCH"]
    assert service.bodies("PATCH")[0]["hash"] == "00000000DEADBEEF"
    assert service.requests[1].headers["authorization"] == "Bearer tok"


def test_runner_online_bench_uploads_done_before_exit(service):
    service.reply("POST", 200, {"id": "abc", "seed": SEED, "token": "t"})

    async def scenario():
        runner = BenchRunner(
            _online_config(submit=True), _inline_factory(0xABC), fetcher=_slow_fetcher(service)
        )
        rc = await asyncio.wait_for(runner.run(), timeout=5)
        return runner, rc

    runner, rc = asyncio.run(scenario())
    assert rc == 0
    assert runner.jobs_received == 1
    assert [r.method for r in service.requests] == ["POST", "PATCH", "PATCH"]
    patches = service.bodies("PATCH")
    start = next(b for b in patches if "threads" in b)
    done = next(b for b in patches if "hash" in b)
    assert start == {"threads": 2, "steady_start_ts": 1000}
    assert done["hash"] == "0000000000000ABC"
    assert done["steady_done_ts"] == 1250


def test_runner_online_bench_without_token_never_starts_backend(service):
    service.reply("POST", 200, {"id": "abc", "seed": SEED})
    started = []

    def factory(job, reporter):
        started.append(job)
        return InlineWorker(job, reporter, 1)

    async def scenario():
        runner = BenchRunner(_online_config(submit=True), factory, fetcher=_slow_fetcher(service))
        stop = asyncio.Event()
        asyncio.get_running_loop().call_later(0.2, stop.set)
        rc = await runner.run(stop)
        return runner, rc

    runner, rc = asyncio.run(scenario())
    assert rc == 1
    assert started == []
    assert runner.client.last_error.message == "missing token"
    assert [r.method for r in service.requests] == ["POST"]
