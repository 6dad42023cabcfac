"""
Benchmark job client.

This package stands in for a pool connection while a miner benchmarks itself:
it hands the backend a synthetic job, optionally brokered through the
benchmark sharing service, and judges the resulting hash sum.
"""

from .bench_client import BenchClient, BenchMode
from .config import BenchConfig

__all__ = ["BenchClient", "BenchMode", "BenchConfig"]
