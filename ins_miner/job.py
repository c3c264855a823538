from __future__ import annotations

from dataclasses import dataclass

from .mining.felt import FieldElement
from .mining.hash_search import InvokePreimage
from .mining.prefix_window import AcceptanceWindow

# Base max_fee for worker 0 (wei).
DEFAULT_START_FEE = 6_000_000_000_000

# Distance between worker starting fees.
DEFAULT_FEE_STRIDE = 16**4


@dataclass(frozen=True)
class MiningJob:
    """
    Immutable snapshot of one search, shared read-only by every worker.

    Attributes:
        call_hash: Hash of the account __execute__ calldata.
        window: Acceptance window derived from the contract prefix.
        sender_address: Account submitting the transaction.
        chain_id: Chain id folded into the transaction hash.
        nonce: Account nonce fetched before the search.
        start_fee: Base fee; worker i starts at start_fee + stride * i.
    """

    call_hash: FieldElement
    window: AcceptanceWindow
    sender_address: FieldElement
    chain_id: FieldElement
    nonce: FieldElement
    start_fee: FieldElement = FieldElement(DEFAULT_START_FEE)

    @property
    def preimage(self) -> InvokePreimage:
        return InvokePreimage(
            sender_address=self.sender_address,
            call_hash=self.call_hash,
            chain_id=self.chain_id,
            nonce=self.nonce,
        )

    def worker_start_fee(self, worker_index: int, stride: int = DEFAULT_FEE_STRIDE) -> FieldElement:
        return self.start_fee + stride * worker_index
