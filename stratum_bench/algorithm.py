from __future__ import annotations

from typing import Union


class Algorithm(str):
    """
    Benchmarkable algorithm identifiers.

    Only the RandomX family has reference results and a benchmark mode, so
    `normalize` maps every known spelling onto one of these and
    `for_benchmark` falls back to RX_0 for anything else.
    """

    RX_0 = "rx/0"
    RX_WOW = "rx/wow"
    RX_ARQ = "rx/arq"
    RX_SFX = "rx/sfx"
    RX_KEVA = "rx/keva"
    RX_GRAFT = "rx/graft"

    INVALID = ""

    _ALIASES = {
        "rx/0": RX_0,
        "rx": RX_0,
        "randomx": RX_0,
        "rx/test": RX_0,
        "rx/wow": RX_WOW,
        "randomwow": RX_WOW,
        "rx/arq": RX_ARQ,
        "randomarq": RX_ARQ,
        "rx/sfx": RX_SFX,
        "randomsfx": RX_SFX,
        "rx/keva": RX_KEVA,
        "randomkeva": RX_KEVA,
        "rx/graft": RX_GRAFT,
    }

    @classmethod
    def normalize(cls, x: Union[str, "Algorithm", None]) -> "Algorithm":
        """Canonical name for `x`, or INVALID if it is not a known algorithm."""
        if x is None:
            return cls(cls.INVALID)
        s = str(x).strip().lower()
        return cls(cls._ALIASES.get(s, cls.INVALID))

    @classmethod
    def for_benchmark(cls, x: Union[str, "Algorithm", None]) -> "Algorithm":
        algo = cls.normalize(x)
        if not algo.is_valid():
            return cls(cls.RX_0)
        return algo

    def is_valid(self) -> bool:
        return bool(str(self))

    def to_json(self) -> str:
        return str(self)


__all__ = ["Algorithm"]
