import hashlib
from typing import List, Optional, Sequence

import pytest

from ins_miner.job import MiningJob
from ins_miner.ledger_protocol import InvokeTransaction, TransactionHandle
from ins_miner.mining.felt import FIELD_PRIME, FieldElement
from ins_miner.mining.hash_search import FieldHasher
from ins_miner.mining.prefix_window import AcceptanceWindow

SENDER = FieldElement.from_hex("0x3b8c1a0e5f2d7c9a4b6e8d0f1a2c3e5b7d9f1a3c5e7b9d1f3a5c7e9b1d3f5a7")
CALL_HASH = FieldElement.from_hex("0x5a2e1c3f4b6d8e0a2c4e6f8a0b2d4f6a8c0e2a4c6e8a0c2e4a6c8e0a2c4e6f8")
TESTNET = FieldElement.from_short_string("SN_GOERLI")


def blake_pair_hash(a: int, b: int) -> int:
    """Cheap, order-sensitive stand-in for the Pedersen pair hash."""
    data = a.to_bytes(32, "big") + b.to_bytes(32, "big")
    return int.from_bytes(hashlib.blake2b(data, digest_size=32).digest(), "big") % FIELD_PRIME


def linear_pair_hash(a: int, b: int) -> int:
    """Digest moves by a fixed step per fee; lets tests place hits exactly."""
    return (a * 31 + b) % FIELD_PRIME


def make_job(window: AcceptanceWindow, *, nonce: int = 0, start_fee: int = 1_000) -> MiningJob:
    return MiningJob(
        call_hash=CALL_HASH,
        window=window,
        sender_address=SENDER,
        chain_id=TESTNET,
        nonce=FieldElement(nonce),
        start_fee=FieldElement(start_fee),
    )


@pytest.fixture
def fast_hasher() -> FieldHasher:
    return FieldHasher(blake_pair_hash)


@pytest.fixture
def linear_hasher() -> FieldHasher:
    return FieldHasher(linear_pair_hash)


class FakeLedger:
    """In-memory LedgerReader + LedgerWriter."""

    def __init__(
        self,
        *,
        prefix: Optional[Sequence[FieldElement]] = (FieldElement(0),),
        nonce: int = 0,
        chain_id: FieldElement = TESTNET,
        send_error: Optional[BaseException] = None,
        tx_hash: Optional[FieldElement] = None,
    ) -> None:
        self.prefix = list(prefix) if prefix is not None else []
        self.nonce = FieldElement(nonce)
        self.chain_id = chain_id
        self.send_error = send_error
        self.tx_hash = tx_hash
        self.calls: List[tuple] = []
        self.sent: List[InvokeTransaction] = []

    async def call(self, contract_address, entry_point_selector, args):
        self.calls.append((contract_address, entry_point_selector, list(args)))
        return list(self.prefix)

    async def get_nonce(self, account):
        return self.nonce

    async def get_chain_id(self):
        return self.chain_id

    async def send(self, tx: InvokeTransaction) -> TransactionHandle:
        self.sent.append(tx)
        if self.send_error is not None:
            raise self.send_error
        return TransactionHandle(transaction_hash=self.tx_hash or FieldElement(0xABC))


class FakeSigner:
    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.error = error
        self.signed: List[FieldElement] = []

    def sign(self, message_hash):
        if self.error is not None:
            raise self.error
        self.signed.append(message_hash)
        return [FieldElement(1), FieldElement(2)]
