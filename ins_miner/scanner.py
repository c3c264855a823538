from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .job import MiningJob
from .mining.errors import WorkerError, normalize_exc
from .mining.felt import FIELD_PRIME, FieldElement
from .mining.hash_search import FieldHasher, TransactionHashScanner

log = logging.getLogger("ins_miner.scanner")


class WorkerState(str, Enum):
    RUNNING = "running"
    FOUND = "found"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self is not WorkerState.RUNNING


@dataclass(frozen=True)
class WinningResult:
    fee: FieldElement
    digest: FieldElement
    worker_id: int
    attempts: int


@dataclass(frozen=True)
class WorkerOutcome:
    """Terminal report of one worker; exactly one per worker."""

    worker_id: int
    state: WorkerState
    attempts: int
    result: Optional[WinningResult] = None
    error: Optional[WorkerError] = None
    reason: Optional[str] = None


class CancellationSignal:
    """
    Broadcast-once stop flag shared by all workers of one search.

    `cancel()` may be called any number of times from any thread. `claim()`
    sets the flag and returns True for exactly one caller, which is how the
    single winner is chosen when two workers hit the window together.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()

    def is_set(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def claim(self) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


OutcomeCallback = Callable[[WorkerOutcome], None]


class SearchWorker(threading.Thread):
    """
    CPU-bound search thread: increments its private fee candidate, hashes the
    transaction and tests the digest against the acceptance window until it
    wins, is cancelled, runs out of budget or fails.
    """

    def __init__(
        self,
        worker_id: int,
        job: MiningJob,
        start_fee: FieldElement,
        signal: CancellationSignal,
        on_outcome: OutcomeCallback,
        *,
        hasher: Optional[FieldHasher] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        super().__init__(name=f"ins-search-{worker_id}", daemon=True)
        self.worker_id = worker_id
        self._job = job
        self._start_fee = start_fee
        self._signal = signal
        self._on_outcome = on_outcome
        self._hasher = hasher
        self._max_attempts = max_attempts

        self._fee = int(start_fee)
        self._attempts = 0
        self.state = WorkerState.RUNNING
        self.outcome: Optional[WorkerOutcome] = None

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def current_fee(self) -> int:
        return self._fee

    def _search(self) -> WorkerOutcome:
        scanner = TransactionHashScanner(self._job.preimage, self._hasher)
        lo = int(self._job.window.min)
        hi = int(self._job.window.max)

        # stack-local bindings for speed
        digest_of = scanner.digest
        stopped = self._signal.is_set
        budget = self._max_attempts
        fee = self._fee

        while True:
            if stopped():
                return self._finish(WorkerState.CANCELLED, reason="signal")
            fee = (fee + 1) % FIELD_PRIME
            self._fee = fee
            digest = digest_of(fee)
            if lo <= digest <= hi:
                if not self._signal.claim():
                    return self._finish(WorkerState.CANCELLED, reason="late_hit")
                result = WinningResult(
                    fee=FieldElement(fee),
                    digest=FieldElement(digest),
                    worker_id=self.worker_id,
                    attempts=self._attempts,
                )
                log.info(
                    "worker %d found fee=%d digest=%#x attempts=%d",
                    self.worker_id,
                    fee,
                    digest,
                    self._attempts,
                )
                return self._finish(WorkerState.FOUND, result=result)
            self._attempts += 1
            if budget is not None and self._attempts >= budget:
                return self._finish(WorkerState.CANCELLED, reason="budget_exhausted")

    def _finish(
        self,
        state: WorkerState,
        *,
        result: Optional[WinningResult] = None,
        error: Optional[WorkerError] = None,
        reason: Optional[str] = None,
    ) -> WorkerOutcome:
        self.state = state
        return WorkerOutcome(
            worker_id=self.worker_id,
            state=state,
            attempts=self._attempts,
            result=result,
            error=error,
            reason=reason,
        )

    def run(self) -> None:
        log.debug("worker %d start fee=%d", self.worker_id, self._fee)
        try:
            outcome = self._search()
        except Exception as exc:
            err = normalize_exc(exc)
            log.error("worker %d failed: %s", self.worker_id, err, exc_info=True)
            # siblings must not spin forever on our account
            self._signal.cancel()
            outcome = self._finish(
                WorkerState.ERROR,
                error=WorkerError(
                    worker_id=self.worker_id,
                    message=err.message,
                    context={"type": type(exc).__name__},
                ),
            )
        self.outcome = outcome
        log.debug(
            "worker %d %s attempts=%d", self.worker_id, outcome.state.value, outcome.attempts
        )
        self._on_outcome(outcome)
