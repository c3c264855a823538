from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from starknet_py.hash.utils import message_signature, private_to_stark_key

from .ledger_protocol import InvokeTransaction, LedgerWriter, TransactionHandle
from .mining.calls import Call, compute_call_hash, encode_execute_calldata
from .mining.errors import SubmissionError
from .mining.felt import FieldElement
from .mining.hash_search import FieldHasher, InvokePreimage, transaction_hash

log = logging.getLogger("ins_miner.submitter")


class Signer(Protocol):
    def sign(self, message_hash: FieldElement) -> List[FieldElement]: ...


class StarkKeySigner:
    """ECDSA signer over the Stark curve for a single private key."""

    def __init__(self, private_key: FieldElement) -> None:
        self._private_key = int(private_key)

    @property
    def public_key(self) -> FieldElement:
        return FieldElement(private_to_stark_key(self._private_key))

    def sign(self, message_hash: FieldElement) -> List[FieldElement]:
        r, s = message_signature(int(message_hash), self._private_key)
        return [FieldElement(r), FieldElement(s)]


class Submitter:
    """
    Builds, signs and sends the mined invoke transaction exactly once.

    No retry on failure: by the time a send fails, the nonce or the
    acceptance window may have moved, so the mined fee is discarded.
    """

    def __init__(
        self,
        writer: LedgerWriter,
        *,
        sender_address: FieldElement,
        chain_id: FieldElement,
        signer: Signer,
        hasher: Optional[FieldHasher] = None,
    ) -> None:
        self._writer = writer
        self._sender = sender_address
        self._chain_id = chain_id
        self._signer = signer
        self._hasher = hasher or FieldHasher()

    def build(
        self, calls: Sequence[Call], fee: FieldElement, nonce: FieldElement
    ) -> Tuple[InvokeTransaction, FieldElement]:
        """Return the signed envelope and its canonical transaction hash."""
        preimage = InvokePreimage(
            sender_address=self._sender,
            call_hash=compute_call_hash(calls, self._hasher),
            chain_id=self._chain_id,
            nonce=nonce,
        )
        tx_hash = transaction_hash(preimage, fee, self._hasher)
        signature = self._signer.sign(tx_hash)
        tx = InvokeTransaction(
            sender_address=self._sender,
            calldata=tuple(encode_execute_calldata(calls)),
            max_fee=fee,
            nonce=nonce,
            signature=tuple(signature),
        )
        return tx, tx_hash

    async def submit(self, calls: Sequence[Call], fee: FieldElement, nonce: FieldElement) -> TransactionHandle:
        try:
            tx, expected = self.build(calls, fee, nonce)
        except Exception as exc:
            raise SubmissionError(message=f"failed to sign transaction: {exc}", cause=exc) from exc

        log.info("sending hash=%s fee=%d nonce=%d", expected.to_hex(), int(fee), int(nonce))
        try:
            handle = await self._writer.send(tx)
        except Exception as exc:
            log.error("submission failed fee=%d: %s", int(fee), exc)
            raise SubmissionError(message=f"failed to send transaction: {exc}", cause=exc) from exc

        if handle.transaction_hash != expected:
            log.warning(
                "node returned hash=%s, expected %s",
                handle.transaction_hash.to_hex(),
                expected.to_hex(),
            )
        log.info("mined inscription transaction_hash=%s", handle.transaction_hash.to_hex())
        return handle


__all__ = ["Signer", "StarkKeySigner", "Submitter"]
