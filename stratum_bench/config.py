from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from .algorithm import Algorithm
from .support.errors import BenchConfigError

# JSON keys of the "benchmark" config object and of service payloads.
K_SIZE = "size"
K_ALGO = "algo"
K_SUBMIT = "submit"
K_VERIFY = "verify"
K_SEED = "seed"
K_HASH = "hash"
K_TOKEN = "token"
K_ID = "id"

DEFAULT_API_HOST = "api.xmrig.com"
DEFAULT_API_PORT = 443
DEFAULT_SHARE_URL = "https://xmrig.com/benchmark/{id}"

_NAMED_SIZES = {"250k": 250_000, "500k": 500_000}
MIN_MILLIONS = 1
MAX_MILLIONS = 10


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


def parse_size(value: Union[str, int, None]) -> int:
    """
    Bench size in hashes. Accepts 250K, 500K and 1M..10M (case-insensitive),
    or the equivalent integer.
    """
    if value is None:
        raise BenchConfigError(message="benchmark size is required")
    if isinstance(value, bool):
        raise BenchConfigError(message=f"invalid benchmark size: {value!r}")
    if isinstance(value, int):
        if value in _NAMED_SIZES.values():
            return value
        millions, rem = divmod(value, 1_000_000)
        if rem == 0 and MIN_MILLIONS <= millions <= MAX_MILLIONS:
            return value
        raise BenchConfigError(
            message=f"invalid benchmark size: {value}", context={"size": value}
        )

    text = str(value).strip().lower()
    if text in _NAMED_SIZES:
        return _NAMED_SIZES[text]
    if text.endswith("m") and text[:-1].isdigit():
        millions = int(text[:-1])
        if MIN_MILLIONS <= millions <= MAX_MILLIONS:
            return millions * 1_000_000
    if text.isdigit():
        return parse_size(int(text))
    raise BenchConfigError(
        message=f"invalid benchmark size: {value!r}", context={"size": str(value)}
    )


def parse_hash(value: Union[str, int, None]) -> int:
    """Fixed reference hash; hex string (optional 0x) or int. 0 means none."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise BenchConfigError(message=f"invalid benchmark hash: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    try:
        return int(text, 16)
    except ValueError as exc:
        raise BenchConfigError(
            message=f"invalid benchmark hash: {value!r}", context={"hash": str(value)}
        ) from exc


@dataclass
class BenchConfig:
    """
    The "benchmark" section of the miner configuration.

    Attributes:
        size: Bench size in hashes.
        algorithm: Algorithm to benchmark (RandomX family).
        submit: Create a job on the benchmark service and upload the result.
        id: Service job id to verify ("verify" in the JSON form).
        seed: Optional seed hash for a static verify run.
        hash: Optional fixed reference hash (0 = none).
        token: Bearer token for an existing service job.
    """

    size: int = 1_000_000
    algorithm: Algorithm = field(default_factory=lambda: Algorithm(Algorithm.RX_0))
    submit: bool = False
    id: str = ""
    seed: Optional[str] = None
    hash: int = 0
    token: str = ""

    api_host: str = field(
        default_factory=lambda: os.environ.get("STRATUM_BENCH_API_HOST", DEFAULT_API_HOST)
    )
    api_port: int = field(
        default_factory=lambda: int(os.environ.get("STRATUM_BENCH_API_PORT", DEFAULT_API_PORT))
    )
    api_tls: bool = field(default_factory=lambda: _env_bool("STRATUM_BENCH_API_TLS", True))
    share_url: str = DEFAULT_SHARE_URL

    def __post_init__(self) -> None:
        self.algorithm = Algorithm.for_benchmark(self.algorithm)
        self.id = self.id or ""
        self.token = self.token or ""

    def is_submit(self) -> bool:
        return self.submit

    def share_link(self, job_id: str) -> str:
        return self.share_url.format(id=job_id)

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "BenchConfig":
        if not isinstance(obj, Mapping):
            raise BenchConfigError(message="benchmark config must be an object")
        kwargs: Dict[str, Any] = {
            "size": parse_size(obj.get(K_SIZE, 1_000_000)),
            "algorithm": Algorithm.for_benchmark(obj.get(K_ALGO)),
            "submit": bool(obj.get(K_SUBMIT, False)),
            "id": str(obj.get(K_VERIFY) or ""),
            "seed": obj.get(K_SEED) or None,
            "hash": parse_hash(obj.get(K_HASH)),
            "token": str(obj.get(K_TOKEN) or ""),
        }
        for key in ("api_host", "api_port", "api_tls", "share_url"):
            if key in obj:
                kwargs[key] = obj[key]
        return cls(**kwargs)

    @classmethod
    def from_args(cls, args: Any) -> "BenchConfig":
        kwargs: Dict[str, Any] = {
            "size": parse_size(getattr(args, "bench", None) or 1_000_000),
            "algorithm": Algorithm.for_benchmark(getattr(args, "algo", None)),
            "submit": bool(getattr(args, "submit", False)),
            "id": getattr(args, "verify", None) or "",
            "seed": getattr(args, "seed", None),
            "hash": parse_hash(getattr(args, "hash", None)),
            "token": getattr(args, "token", None) or "",
        }
        if getattr(args, "api_host", None):
            kwargs["api_host"] = args.api_host
        if getattr(args, "api_port", None) is not None:
            kwargs["api_port"] = int(args.api_port)
        if getattr(args, "no_tls", False):
            kwargs["api_tls"] = False
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {K_SIZE: self.size, K_ALGO: self.algorithm.to_json()}
        if self.submit:
            out[K_SUBMIT] = True
        if self.id:
            out[K_VERIFY] = self.id
        if self.seed:
            out[K_SEED] = self.seed
        if self.hash:
            out[K_HASH] = f"{self.hash:016X}"
        if self.token:
            out[K_TOKEN] = self.token
        return out


__all__ = ["BenchConfig", "parse_size", "parse_hash"]
