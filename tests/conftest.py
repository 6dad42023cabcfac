import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from stratum_bench.http_fetch import Fetcher
from stratum_bench.support import bench_state
from stratum_bench.support.reference import DictReferenceOracle


class RecordingListener:
    """Miner-core stand-in that records the notifications it receives."""

    def __init__(self) -> None:
        self.events: List[str] = []
        self.jobs: List[Dict[str, Any]] = []

    def on_login_success(self, client) -> None:
        self.events.append("login")

    def on_job_received(self, client, job, params) -> None:
        self.events.append("job")
        self.jobs.append(
            {
                "id": job.job_id,
                "seed": job.seed_hash,
                "algo": str(job.algorithm),
                "size": job.bench_size,
                "params": params,
            }
        )


class FakeBackend:
    def to_json(self) -> Dict[str, Any]:
        return {"type": "cpu", "threads": 4, "hashrate": [100.0]}


class ServiceStub:
    """
    Records requests sent through httpx.MockTransport and answers from a
    per-method queue of (status, body) pairs.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.replies: Dict[str, List[Any]] = {}
        self.fail_with: Optional[Exception] = None

    def reply(self, method: str, status: int, body: Any) -> None:
        self.replies.setdefault(method, []).append((status, body))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        queue = self.replies.get(request.method) or [(200, {})]
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def bodies(self, method: str) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == method]


@pytest.fixture(autouse=True)
def clean_bench_state():
    bench_state.destroy()
    bench_state.set_oracle(DictReferenceOracle())
    yield
    bench_state.destroy()
    bench_state.set_oracle(DictReferenceOracle())


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def service() -> ServiceStub:
    return ServiceStub()


@pytest.fixture
def make_fetcher(service) -> Callable[[], Fetcher]:
    def _make() -> Fetcher:
        return Fetcher(transport=httpx.MockTransport(service))

    return _make
