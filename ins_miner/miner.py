from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

from .config import MinerConfig, resolve_config
from .coordinator import Coordinator
from .job import MiningJob
from .ledger_client import StarknetRpcClient
from .ledger_protocol import LedgerReader, LedgerWriter, TransactionHandle
from .mining.calls import build_ins_call, compute_call_hash
from .mining.felt import FieldElement
from .mining.hash_search import FieldHasher
from .mining.prefix_window import RangeOracle
from .submitter import Signer, StarkKeySigner, Submitter

log = logging.getLogger("ins_miner.core")


@dataclass(frozen=True)
class RunResult:
    fee: FieldElement
    nonce: FieldElement
    handle: Optional[TransactionHandle]
    elapsed: float


class InscriptionMiner:
    """
    High-level run: read the prefix window and nonce, race the workers for a
    fee, then submit the winning transaction once.
    """

    def __init__(
        self,
        config: MinerConfig,
        reader: LedgerReader,
        writer: LedgerWriter,
        *,
        signer: Optional[Signer] = None,
        hasher: Optional[FieldHasher] = None,
        max_attempts: Optional[int] = None,
        report_interval: float = 10.0,
    ) -> None:
        self.config = config
        self._reader = reader
        self._writer = writer
        self._signer = signer or StarkKeySigner(config.private_key)
        self._hasher = hasher or FieldHasher()
        self.coordinator = Coordinator(
            config.worker_count,
            stride=config.fee_stride,
            hasher=self._hasher,
            max_attempts=max_attempts,
            report_interval=report_interval,
        )
        self.started_at: Optional[float] = None

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return time.perf_counter() - self.started_at

    async def prepare(self) -> MiningJob:
        cfg = self.config
        window = await RangeOracle(self._reader, cfg.contract_address, cfg.bitwork_id).fetch_window()
        chain_id = await self._reader.get_chain_id()
        nonce = await self._reader.get_nonce(cfg.account_address)
        call = build_ins_call(cfg.contract_address, cfg.bitwork_id, cfg.inscription)
        call_hash = compute_call_hash([call], self._hasher)
        log.info(
            "job chain_id=%s nonce=%d call_hash=%s",
            chain_id.to_hex(),
            int(nonce),
            call_hash.to_hex(),
        )
        return MiningJob(
            call_hash=call_hash,
            window=window,
            sender_address=cfg.account_address,
            chain_id=chain_id,
            nonce=nonce,
            start_fee=FieldElement.from_int(cfg.start_fee),
        )

    async def run(self, *, submit: bool = True) -> RunResult:
        cfg = self.config
        job = await self.prepare()

        self.started_at = time.perf_counter()
        fee = await self.coordinator.search(job)
        log.info("winning fee=%d after %.2fs", int(fee), self.elapsed)

        handle: Optional[TransactionHandle] = None
        if submit:
            submitter = Submitter(
                self._writer,
                sender_address=cfg.account_address,
                chain_id=job.chain_id,
                signer=self._signer,
                hasher=self._hasher,
            )
            call = build_ins_call(cfg.contract_address, cfg.bitwork_id, cfg.inscription)
            handle = await submitter.submit([call], fee, job.nonce)
        else:
            log.info("dry run; not submitting")
        return RunResult(fee=fee, nonce=job.nonce, handle=handle, elapsed=self.elapsed)


# Convenience runner ---------------------------------------------------------


async def run_miner(args: Any) -> RunResult:
    config = resolve_config(
        env_file=getattr(args, "env_file", ".env"),
        node_url=getattr(args, "node_url", None),
        contract_address=getattr(args, "contract", None),
        bitwork_id=getattr(args, "bitwork_id", None),
        inscription=getattr(args, "inscription", None),
        start_fee=getattr(args, "start_fee", None),
        fee_stride=getattr(args, "stride", None),
        worker_count=getattr(args, "worker_count", None),
    )
    log.info("config %s", config.summary())

    async with StarknetRpcClient(config.node_url) as client:
        miner = InscriptionMiner(config, client, client)
        try:
            return await miner.run(submit=not getattr(args, "dry_run", False))
        except Exception as exc:
            # read back by the CLI failure line
            exc.elapsed = miner.elapsed
            raise
        finally:
            log.info("elapsed %.2fs", miner.elapsed)
