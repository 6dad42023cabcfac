from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .runner import run_bench
from .support.errors import BenchError


class FriendlyFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",  # cyan
        logging.INFO: "\033[32m",  # green
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",  # red
        logging.CRITICAL: "\033[41m",  # red background
    }
    RESET = "\033[0m"

    def __init__(self, *, use_color: bool) -> None:
        fmt = "[%(asctime)s] %(level_display)s %(shortname)s | %(message)s"
        super().__init__(fmt=fmt, datefmt="%H:%M:%S")
        self.use_color = use_color and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.rsplit(".", 1)[-1]
        level_name = record.levelname
        if self.use_color:
            color = self.LEVEL_COLORS.get(record.levelno)
            if color:
                level_name = f"{color}{level_name}{self.RESET}"
        record.level_display = level_name.ljust(8)
        return super().format(record)


def setup_logging(level: int) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(FriendlyFormatter(use_color=sys.stdout.isatty()))
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(level)
    root.addHandler(handler)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a fixed-size hashing benchmark and optionally share it",
    )
    parser.add_argument(
        "--backend",
        required=True,
        help="Backend factory as module:callable",
    )
    parser.add_argument(
        "--bench",
        default="1M",
        help="Bench size: 250K, 500K or 1M..10M",
    )
    parser.add_argument("--algo", default="rx/0", help="RandomX variant to benchmark")
    parser.add_argument(
        "--submit",
        action="store_true",
        help="Create the benchmark on the sharing service and upload the result",
    )
    parser.add_argument(
        "--verify",
        default=None,
        metavar="ID",
        help="Re-run a shared benchmark and compare against its recorded hash",
    )
    parser.add_argument("--token", default=None, help="Bearer token for --verify uploads")
    parser.add_argument("--seed", default=None, help="Seed hash (64 hex chars)")
    parser.add_argument("--hash", default=None, help="Expected hash sum (hex)")
    parser.add_argument(
        "--reference-file",
        default=None,
        help="JSON table of known hash sums per algorithm and size",
    )
    parser.add_argument("--api-host", default=None, help="Benchmark service host")
    parser.add_argument("--api-port", type=int, default=None, help="Benchmark service port")
    parser.add_argument(
        "--no-tls",
        action="store_true",
        help="Talk plain HTTP to the benchmark service",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Disable the sharing service; --submit and --verify are ignored",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv or sys.argv[1:])
    setup_logging(getattr(logging, args.log_level))

    try:
        rc = asyncio.run(run_bench(args))
    except BenchError as exc:
        logging.getLogger("stratum_bench.cli").error("%s", exc)
        rc = 2
    except KeyboardInterrupt:
        rc = 130
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
