from __future__ import annotations

from dataclasses import dataclass, field

from .algorithm import Algorithm

BLOB_SIZE = 112
MAX_SEED_SIZE = 32
MAX_DIFF = 0xFFFFFFFFFFFFFFFF
STATIC_JOB_ID = "00000000"

_HEX = frozenset("0123456789abcdefABCDEF")


def zero_blob() -> str:
    return "0" * (BLOB_SIZE * 2)


def zero_seed() -> str:
    return zero_blob()[: MAX_SEED_SIZE * 2]


def is_seed_hash(value: object) -> bool:
    return (
        isinstance(value, str)
        and len(value) == MAX_SEED_SIZE * 2
        and all(c in _HEX for c in value)
    )


@dataclass
class BenchJob:
    """
    Synthetic job handed to the backend in place of a pool job.

    Attributes:
        blob: Placeholder block template, BLOB_SIZE zero bytes as hex.
        algorithm: Algorithm the backend should hash with.
        diff: Share difficulty; MAX_DIFF so no result is ever rejected.
        height: Block height (fixed at 1 for benchmarks).
        bench_size: Number of hashes the backend computes before reporting.
        job_id: "00000000" for static runs, the service id for online runs.
        seed_hash: Lower-case hex seed (MAX_SEED_SIZE bytes).
    """

    blob: str = field(default_factory=zero_blob)
    algorithm: Algorithm = field(default_factory=lambda: Algorithm(Algorithm.RX_0))
    diff: int = MAX_DIFF
    height: int = 1
    bench_size: int = 0
    job_id: str = ""
    seed_hash: str = field(default_factory=zero_seed)

    def set_algorithm(self, value: object) -> None:
        self.algorithm = Algorithm.normalize(value if isinstance(value, str) else None)

    def set_seed_hash(self, value: object) -> bool:
        """
        Replace the seed if `value` is a MAX_SEED_SIZE-byte hex string.
        Returns False and keeps the current seed otherwise.
        """
        if not is_seed_hash(value):
            return False
        self.seed_hash = str(value).lower()
        return True
