from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .job import DEFAULT_FEE_STRIDE, MiningJob
from .mining.errors import ConfigError, NoWinner, OracleError
from .mining.felt import FieldElement
from .mining.hash_search import FieldHasher
from .scanner import (
    CancellationSignal,
    SearchWorker,
    WinningResult,
    WorkerOutcome,
    WorkerState,
)

log = logging.getLogger("ins_miner.coordinator")


@dataclass
class SearchReport:
    """What the last search did; filled in as outcomes arrive."""

    worker_count: int
    winner: Optional[WinningResult] = None
    outcomes: Dict[int, WorkerOutcome] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def total_attempts(self) -> int:
        return sum(o.attempts for o in self.outcomes.values())

    @property
    def all_terminal(self) -> bool:
        return len(self.outcomes) == self.worker_count and all(
            o.state.terminal for o in self.outcomes.values()
        )

    def count(self, state: WorkerState) -> int:
        return sum(1 for o in self.outcomes.values() if o.state is state)


class Coordinator:
    """
    Fans the fee search out over `worker_count` threads and hands back the
    first winning fee.

    Workers push their terminal outcome into a bounded asyncio.Queue through
    `loop.call_soon_threadsafe`; the first FOUND outcome wins, the shared
    signal is cancelled and every thread is joined before `search` returns.
    """

    def __init__(
        self,
        worker_count: int = 3,
        *,
        stride: int = DEFAULT_FEE_STRIDE,
        hasher: Optional[FieldHasher] = None,
        max_attempts: Optional[int] = None,
        report_interval: float = 10.0,
    ) -> None:
        if worker_count < 1:
            raise ConfigError(message="worker count must be at least 1", context={"worker_count": worker_count})
        self.worker_count = worker_count
        self.stride = stride
        self.hasher = hasher or FieldHasher()
        self.max_attempts = max_attempts
        self.report_interval = report_interval
        self.last_report: Optional[SearchReport] = None

    def _spawn(
        self,
        job: MiningJob,
        signal: CancellationSignal,
        outcomes: "asyncio.Queue[WorkerOutcome]",
        loop: asyncio.AbstractEventLoop,
    ) -> List[SearchWorker]:
        def _push(outcome: WorkerOutcome) -> None:
            loop.call_soon_threadsafe(outcomes.put_nowait, outcome)

        workers: List[SearchWorker] = []
        for i in range(self.worker_count):
            start_fee = job.worker_start_fee(i, self.stride)
            log.info("worker %d start fee=%d", i, int(start_fee))
            workers.append(
                SearchWorker(
                    i,
                    job,
                    start_fee,
                    signal,
                    _push,
                    hasher=self.hasher,
                    max_attempts=self.max_attempts,
                )
            )
        for w in workers:
            w.start()
        return workers

    def _log_progress(self, workers: List[SearchWorker], t0: float) -> None:
        attempts = sum(w.attempts for w in workers)
        elapsed = time.perf_counter() - t0
        rate = attempts / elapsed if elapsed > 0 else 0.0
        log.info("searching attempts=%d rate=%.1f h/s elapsed=%.1fs", attempts, rate, elapsed)

    async def _collect(
        self,
        workers: List[SearchWorker],
        outcomes: "asyncio.Queue[WorkerOutcome]",
        signal: CancellationSignal,
        report: SearchReport,
        t0: float,
    ) -> None:
        while len(report.outcomes) < self.worker_count:
            try:
                outcome = await asyncio.wait_for(outcomes.get(), timeout=self.report_interval)
            except asyncio.TimeoutError:
                self._log_progress(workers, t0)
                continue
            report.outcomes[outcome.worker_id] = outcome
            if outcome.state is WorkerState.FOUND and report.winner is None:
                report.winner = outcome.result
                signal.cancel()
                return
            if outcome.state is WorkerState.ERROR:
                log.warning("worker %d error: %s", outcome.worker_id, outcome.error)

    async def search(self, job: MiningJob) -> FieldElement:
        """Return the winning fee for `job` or raise NoWinner."""
        if job.window.is_degenerate:
            raise OracleError(
                message="zero acceptance window; refusing to search",
                context={"min": job.window.min.to_hex(), "max": job.window.max.to_hex()},
            )

        loop = asyncio.get_running_loop()
        outcomes: "asyncio.Queue[WorkerOutcome]" = asyncio.Queue(maxsize=self.worker_count)
        signal = CancellationSignal()
        report = SearchReport(worker_count=self.worker_count)
        self.last_report = report
        t0 = time.perf_counter()

        workers = self._spawn(job, signal, outcomes, loop)
        try:
            await self._collect(workers, outcomes, signal, report, t0)
        finally:
            signal.cancel()
            await asyncio.gather(*(loop.run_in_executor(None, w.join) for w in workers))
            while not outcomes.empty():
                outcome = outcomes.get_nowait()
                report.outcomes.setdefault(outcome.worker_id, outcome)
            report.elapsed = time.perf_counter() - t0

        log.info(
            "search finished found=%d cancelled=%d errors=%d attempts=%d elapsed=%.2fs",
            report.count(WorkerState.FOUND),
            report.count(WorkerState.CANCELLED),
            report.count(WorkerState.ERROR),
            report.total_attempts,
            report.elapsed,
        )
        if report.winner is None:
            raise NoWinner(
                context={
                    "cancelled": report.count(WorkerState.CANCELLED),
                    "errors": report.count(WorkerState.ERROR),
                    "attempts": report.total_attempts,
                }
            )
        return report.winner.fee


__all__ = ["Coordinator", "SearchReport"]
