from __future__ import annotations

"""
Benchmark service protocol (JSON over HTTP)
===========================================

Purpose
-------
Schema (dataclasses, enums) and pure payload builders for the benchmark
sharing service. Nothing here performs I/O: `bench_client` builds a payload
with these helpers and hands it to `http_fetch` for sending, so tests can
assert on payload shape without a transport.

Endpoints
---------
  POST  /1/benchmark        create a job, server assigns id/seed/token
  GET   /1/benchmark/{id}   fetch a recorded job for verification
  PATCH /1/benchmark/{id}   progress/result update (Bearer token required)

Bodies
------
create request:
  { "size": int, "algo": str, "version": str, "cpu": {...} }
create response:
  { "id": str, "seed": Hex(64), "token": str }

fetch response:
  { "hash": Hex(16), "algo": str, "seed": Hex(64), "size": int }

start update:
  { "threads": int, "steady_start_ts": int }
done update:
  { "steady_done_ts": int, "hash": Hex(16, upper-case), "backend": {...} }

All timestamps are steady-clock milliseconds as reported by the backend.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .algorithm import Algorithm
from .config import K_ALGO, K_HASH, K_ID, K_SEED, K_SIZE, K_TOKEN, parse_hash
from .support.errors import BenchConfigError

log = logging.getLogger("stratum_bench.protocol")

JSON = Dict[str, Any]

API_PREFIX = "/1/benchmark"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"


class BenchRequest(str, Enum):
    CREATE = "create"
    FETCH = "fetch"
    START = "start"
    DONE = "done"


# ---------------------- Dataclasses (schema) ----------------------


@dataclass(frozen=True)
class CreateReply:
    id: str
    seed: Optional[str]
    token: str


@dataclass(frozen=True)
class FetchReply:
    hash: int
    algo: Optional[str]
    seed: Optional[str]
    size: int


# ---------------------- Paths ----------------------


def create_path() -> str:
    return API_PREFIX


def job_path(job_id: str) -> str:
    return f"{API_PREFIX}/{job_id}"


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def format_hash(value: int) -> str:
    """Hash sums travel and print as 16 upper-case hex digits."""
    return f"{value & 0xFFFFFFFFFFFFFFFF:016X}"


# ---------------------- Builders ----------------------


def create_payload(
    size: int, algorithm: Union[str, Algorithm], version: str, cpu: JSON
) -> JSON:
    return {
        K_SIZE: int(size),
        K_ALGO: str(algorithm),
        "version": version,
        "cpu": cpu,
    }


def start_payload(threads: int, start_ts: int) -> JSON:
    return {"threads": int(threads), "steady_start_ts": int(start_ts)}


def done_payload(done_ts: int, result: int, backend: Any) -> JSON:
    return {
        "steady_done_ts": int(done_ts),
        K_HASH: format_hash(result),
        "backend": backend,
    }


# ---------------------- Readers ----------------------


def _get_str(obj: JSON, key: str) -> Optional[str]:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def _get_uint(obj: JSON, key: str) -> int:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def read_create(obj: JSON) -> CreateReply:
    return CreateReply(
        id=_get_str(obj, K_ID) or "",
        seed=_get_str(obj, K_SEED),
        token=_get_str(obj, K_TOKEN) or "",
    )


def read_fetch(obj: JSON) -> FetchReply:
    raw_hash = _get_str(obj, K_HASH)
    try:
        value = parse_hash(raw_hash) if raw_hash else 0
    except BenchConfigError:
        log.warning("ignoring malformed benchmark hash %r", raw_hash)
        value = 0
    return FetchReply(
        hash=value,
        algo=_get_str(obj, K_ALGO),
        seed=_get_str(obj, K_SEED),
        size=_get_uint(obj, K_SIZE),
    )


# ---------------------- Wire helpers ----------------------


def dumps(obj: JSON) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


def loads(data: Union[bytes, str]) -> JSON:
    """
    Decode a response body. Raises ValueError for anything that is not a JSON
    object, including an empty body.
    """
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8", errors="strict")
    obj = json.loads(data)
    if not isinstance(obj, dict):
        raise ValueError("top-level must be object")
    return obj


__all__ = [
    "JSON",
    "API_PREFIX",
    "HttpMethod",
    "BenchRequest",
    "CreateReply",
    "FetchReply",
    "create_path",
    "job_path",
    "bearer",
    "format_hash",
    "create_payload",
    "start_payload",
    "done_payload",
    "read_create",
    "read_fetch",
    "dumps",
    "loads",
]
