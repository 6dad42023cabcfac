from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional


class BenchErrorCode(IntEnum):
    """Stable, machine-consumable error codes for benchmark flows."""

    BENCH_ERROR = 2000
    CONFIG_INVALID = 2001
    REQUEST_FAILED = 2002
    TOKEN_MISSING = 2003
    BACKEND_UNAVAILABLE = 2004


@dataclass
class BenchError(Exception):
    """
    Base class for benchmark-facing errors.

    Attributes
    ----------
    message : str
        Human-friendly explanation (safe to log).
    code : BenchErrorCode
        Programmatic code stable across releases.
    retryable : bool
        Whether re-running the same benchmark without changing inputs has a
        reasonable chance to succeed. Nothing in this package retries on its own.
    context : dict
        Small, JSON-serializable context (non-sensitive) for diagnostics.
    action : Optional[str]
        One-word hint for the operator (e.g., "fix_config", "rerun").
    """

    message: str
    code: BenchErrorCode = BenchErrorCode.BENCH_ERROR
    retryable: bool = False
    context: Dict[str, Any] = field(default_factory=dict)
    action: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        base = f"[{self.code}] {self.message}"
        if self.action:
            base += f" (action={self.action})"
        if self.context:
            base += f" ctx={self.context}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["code"] = int(self.code)
        return d


@dataclass
class BenchConfigError(BenchError):
    """The benchmark section of the configuration cannot be used as given."""

    message: str = "invalid benchmark configuration"
    code: BenchErrorCode = BenchErrorCode.CONFIG_INVALID
    action: str = "fix_config"


@dataclass
class BenchRequestFailed(BenchError):
    """
    A request to the benchmark service failed: transport error, a body that is
    not JSON, or a non-200 status. The message is what gets shown to the user
    (the status reason phrase for HTTP failures).
    """

    message: str = "benchmark request failed"
    code: BenchErrorCode = BenchErrorCode.REQUEST_FAILED
    status: int = 0
    retryable: bool = True
    action: str = "rerun"

    def __post_init__(self) -> None:
        if self.status:
            self.context.setdefault("status", self.status)


@dataclass
class BenchTokenMissing(BenchError):
    """An authenticated update was requested before a bearer token was issued."""

    message: str = "no bearer token for benchmark update"
    code: BenchErrorCode = BenchErrorCode.TOKEN_MISSING


@dataclass
class BackendUnavailable(BenchError):
    """
    The backend factory named on the command line could not be imported or
    did not produce a usable backend.
    """

    backend: str = ""
    message: str = "benchmark backend unavailable"
    code: BenchErrorCode = BenchErrorCode.BACKEND_UNAVAILABLE
    action: str = "check_backend"

    def __post_init__(self) -> None:
        self.context.setdefault("backend", self.backend)


__all__ = [
    "BenchErrorCode",
    "BenchError",
    "BenchConfigError",
    "BenchRequestFailed",
    "BenchTokenMissing",
    "BackendUnavailable",
]
