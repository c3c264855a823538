from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional


class MiningErrorCode(IntEnum):
    """Stable, machine-consumable error codes for the search/submit pipeline."""

    MINER_ERROR = 1000
    CONFIG_ERROR = 1001
    ORACLE_ERROR = 1002
    WORKER_ERROR = 1003
    NO_WINNER = 1004
    SUBMISSION_ERROR = 1005


@dataclass
class MinerError(Exception):
    """
    Base class for miner-facing errors.

    Attributes
    ----------
    message : str
        Human-friendly explanation (safe to log).
    code : MiningErrorCode
        Programmatic code stable across releases.
    retryable : bool
        Whether running again with the *same* inputs has a reasonable chance
        to succeed.
    context : dict
        Small, JSON-serializable context (non-sensitive) for diagnostics.
    action : Optional[str]
        One-word hint for the operator (e.g., "fix_config", "inspect").
    """

    message: str
    code: MiningErrorCode = MiningErrorCode.MINER_ERROR
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
class ConfigError(MinerError):
    """
    Missing or malformed credentials, addresses or tuning values.
    Raised before any search begins; never retried.
    """

    message: str = "invalid configuration"
    code: MiningErrorCode = MiningErrorCode.CONFIG_ERROR
    action: str = "fix_config"


@dataclass
class OracleError(MinerError):
    """
    The contract prefix could not be read, came back empty, or cannot be
    turned into an acceptance window. Treated like a configuration error: a
    zero-zero window would make the search spin forever.
    """

    message: str = "prefix oracle returned no usable value"
    code: MiningErrorCode = MiningErrorCode.ORACLE_ERROR
    action: str = "fix_config"


@dataclass
class WorkerError(MinerError):
    """Internal fault inside a single search worker."""

    worker_id: int = -1
    message: str = "search worker failed"
    code: MiningErrorCode = MiningErrorCode.WORKER_ERROR

    def __post_init__(self) -> None:
        self.context.setdefault("worker_id", self.worker_id)


@dataclass
class NoWinner(MinerError):
    """Every worker reached a terminal state without finding a fee."""

    message: str = "search ended without a winning fee"
    code: MiningErrorCode = MiningErrorCode.NO_WINNER
    action: str = "inspect"


@dataclass
class SubmissionError(MinerError):
    """
    Signing, transport or validation failure while sending the mined
    transaction. Terminal for the run: the mined fee is not reused because the
    nonce or the prefix may have moved on by the time the failure is seen.
    """

    cause: Optional[BaseException] = None
    message: str = "transaction submission failed"
    code: MiningErrorCode = MiningErrorCode.SUBMISSION_ERROR
    action: str = "inspect"

    def __post_init__(self) -> None:
        if self.cause is not None:
            self.context.setdefault("cause", f"{type(self.cause).__name__}: {self.cause}")
            self.__cause__ = self.cause

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "message": self.message,
            "code": int(self.code),
            "retryable": self.retryable,
            "context": dict(self.context),
            "action": self.action,
        }
        return d


# Helper: map arbitrary exceptions into MinerError (edge-safe)
def normalize_exc(exc: BaseException) -> MinerError:
    if isinstance(exc, MinerError):
        return exc
    # Fallback generic wrapper
    return MinerError(
        message=str(exc),
        code=MiningErrorCode.MINER_ERROR,
        retryable=False,
        context={"type": type(exc).__name__},
    )


__all__ = [
    "MiningErrorCode",
    "MinerError",
    "ConfigError",
    "OracleError",
    "WorkerError",
    "NoWinner",
    "SubmissionError",
    "normalize_exc",
]
