from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .ledger_protocol import LedgerProtocolError, LedgerRpcError
from .miner import run_miner
from .mining.errors import ConfigError, MinerError, OracleError
from .mining.version import get_version

log = logging.getLogger("ins_miner.cli")

EXIT_FAILURE = 1
EXIT_CONFIG = 2


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
        self.use_color = use_color

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
    handler.setFormatter(FriendlyFormatter(use_color=sys.stderr.isatty()))
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(level)
    root.addHandler(handler)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mine a max_fee whose invoke hash fits the inscription prefix, then submit it",
    )
    parser.add_argument(
        "--worker-count",
        type=int,
        default=None,
        help="Search threads (default: INS_WORKER_COUNT or 3)",
    )
    parser.add_argument("--env-file", default=".env", help="Optional .env file to load")
    parser.add_argument("--node-url", default=None, help="Starknet JSON-RPC endpoint")
    parser.add_argument("--contract", default=None, help="Inscription contract address (0x hex)")
    parser.add_argument("--bitwork-id", type=int, default=None, help="Prefix slot passed to get_prefix")
    parser.add_argument("--inscription", default=None, help="Inscription text (ASCII)")
    parser.add_argument("--start-fee", type=int, default=None, help="Base max_fee for worker 0")
    parser.add_argument("--stride", type=int, default=None, help="Fee distance between workers")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Search for a fee but do not submit the transaction",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(getattr(logging, args.log_level))

    try:
        result = asyncio.run(run_miner(args))
    except KeyboardInterrupt:
        raise SystemExit(130)
    except (ConfigError, OracleError) as exc:
        log.error("configuration error after %.2fs: %s", getattr(exc, "elapsed", 0.0), exc)
        raise SystemExit(EXIT_CONFIG)
    except (MinerError, LedgerProtocolError, LedgerRpcError) as exc:
        log.error("mining failed after %.2fs: %s", getattr(exc, "elapsed", 0.0), exc)
        raise SystemExit(EXIT_FAILURE)

    if result.handle is not None:
        log.info("transaction_hash=%s fee=%d", result.handle.transaction_hash.to_hex(), int(result.fee))
    else:
        log.info("fee=%d nonce=%d (not submitted)", int(result.fee), int(result.nonce))


if __name__ == "__main__":
    main()
