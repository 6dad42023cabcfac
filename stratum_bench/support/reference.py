from __future__ import annotations

"""
stratum_bench.support.reference
===============================

Known-good benchmark results, keyed by (algorithm, bench size, threads).

A finished run is judged by comparing its hash sum against the value in this
table. The table is data, not code: it ships empty and is loaded from a JSON
file supplied by the operator, in the form

    {
      "rx/0":   {"1000000": "0x6fe9...", "1000000/1": "0x..."},
      "rx/wow": {"1000000": "..."}
    }

A key "<size>/1" holds the single-threaded value for that size; plain "<size>"
holds the multi-threaded value. Sums differ between the two because the
single-threaded run hashes the whole range in one dataset pass.

Public API
----------
- ReferenceOracle(Protocol)       : lookup(algorithm, size, threads) -> int
- DictReferenceOracle             : in-memory table, 0 for unknown entries
- DictReferenceOracle.from_file() : load a JSON table
"""

import json
import pathlib
from typing import Dict, Mapping, Optional, Protocol, Tuple, Union

from .errors import BenchConfigError

Key = Tuple[str, int, bool]


class ReferenceOracle(Protocol):
    def lookup(self, algorithm: str, size: int, threads: int) -> int:
        """Return the expected hash sum, or 0 if it is not known."""
        ...


def _parse_hash(value: Union[str, int]) -> int:
    if isinstance(value, int):
        return value
    text = value.strip()
    return int(text[2:] if text.lower().startswith("0x") else text, 16)


class DictReferenceOracle:
    """Reference table held in memory."""

    def __init__(self, entries: Optional[Mapping[Key, int]] = None) -> None:
        self._entries: Dict[Key, int] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, algorithm: str, size: int, value: int, *, single_thread: bool = False) -> None:
        self._entries[(str(algorithm), int(size), single_thread)] = int(value)

    def lookup(self, algorithm: str, size: int, threads: int) -> int:
        single = threads == 1
        value = self._entries.get((str(algorithm), int(size), single))
        if value is None and single:
            # Tables that only carry one column apply to every thread count.
            value = self._entries.get((str(algorithm), int(size), False))
        return value or 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping[str, Union[str, int]]]) -> "DictReferenceOracle":
        oracle = cls()
        for algorithm, sizes in data.items():
            if not isinstance(sizes, Mapping):
                raise BenchConfigError(
                    message=f"reference table entry for {algorithm!r} must be an object",
                    context={"algorithm": algorithm},
                )
            for key, value in sizes.items():
                size_text, _, suffix = str(key).partition("/")
                try:
                    oracle.add(
                        algorithm,
                        int(size_text),
                        _parse_hash(value),
                        single_thread=suffix == "1",
                    )
                except (TypeError, ValueError) as exc:
                    raise BenchConfigError(
                        message=f"bad reference entry {algorithm}[{key}]: {exc}",
                        context={"algorithm": algorithm, "key": str(key)},
                    ) from exc
        return oracle

    @classmethod
    def from_file(cls, path: Union[str, pathlib.Path]) -> "DictReferenceOracle":
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise BenchConfigError(
                message=f"cannot read reference table {path}: {exc}",
                context={"path": str(path)},
            ) from exc
        if not isinstance(data, dict):
            raise BenchConfigError(
                message="reference table must be a JSON object",
                context={"path": str(path)},
            )
        return cls.from_mapping(data)


__all__ = ["ReferenceOracle", "DictReferenceOracle"]
