from __future__ import annotations

"""
Transaction-hash search primitives.

Design goals
------------
- Bit-for-bit agreement with the hash the inscription contract recomputes
  for an invoke-v1 transaction. Any deviation silently produces fees that the
  contract rejects.
- Prehashed prefix: the five leading hash inputs never change during a search,
  so they are folded once and each trial only pays for the trailing folds.
- No allocation of FieldElement objects in the hot path; raw ints only.

Hash layout
-----------
    compute_hash_on_elements([a0, ..., a{n-1}])
        = h(h(...h(h(0, a0), a1)..., a{n-1}), n)

with `h` the Starknet Pedersen pair hash. The invoke-v1 transaction hash is

    compute_hash_on_elements([
        PREFIX_INVOKE,        # "invoke" as a Cairo short string
        TRANSACTION_VERSION,  # 1
        sender_address,
        0,                    # entry point selector (unused by invoke v1)
        call_hash,            # compute_hash_on_elements(__execute__ calldata)
        max_fee,              # the searched value
        chain_id,
        nonce,
    ])

Usage sketch
------------
    hasher = FieldHasher()
    scanner = TransactionHashScanner(InvokePreimage(sender, call_hash, chain_id, nonce), hasher)
    if window.contains(scanner.digest(fee)):
        ...
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from starknet_py.hash.utils import pedersen_hash

from .felt import FieldElement, IntLike

PairHash = Callable[[int, int], int]

PREFIX_INVOKE = FieldElement.from_short_string("invoke")
TRANSACTION_VERSION = FieldElement(1)
ENTRY_POINT_SELECTOR = FieldElement(0)

# Number of elements in the invoke-v1 preimage.
INVOKE_PREIMAGE_LEN = 8


class FieldHasher:
    """
    Order-dependent combining hash over field elements.

    The pair hash defaults to Starknet's Pedersen hash; tests may pass a cheap
    deterministic stand-in to exercise coordination logic quickly.
    """

    def __init__(self, pair_hash: Optional[PairHash] = None) -> None:
        self.pair_hash: PairHash = pair_hash or pedersen_hash

    def absorb(self, state: int, elements: Iterable[IntLike]) -> int:
        h = self.pair_hash
        for e in elements:
            state = h(state, int(e))
        return state

    def finalize(self, state: int, count: int) -> FieldElement:
        return FieldElement(self.pair_hash(state, count))

    def hash(self, elements: Iterable[IntLike]) -> FieldElement:
        items = list(elements)
        return self.finalize(self.absorb(0, items), len(items))


@dataclass(frozen=True)
class InvokePreimage:
    """Every transaction-hash input except the fee, fixed for one search."""

    sender_address: FieldElement
    call_hash: FieldElement
    chain_id: FieldElement
    nonce: FieldElement

    def elements(self, fee: IntLike) -> List[FieldElement]:
        return [
            PREFIX_INVOKE,
            TRANSACTION_VERSION,
            self.sender_address,
            ENTRY_POINT_SELECTOR,
            self.call_hash,
            FieldElement.coerce(fee),
            self.chain_id,
            self.nonce,
        ]


def transaction_hash(
    preimage: InvokePreimage, fee: IntLike, hasher: Optional[FieldHasher] = None
) -> FieldElement:
    """Canonical invoke-v1 transaction hash for `fee`."""
    return (hasher or FieldHasher()).hash(preimage.elements(fee))


class TransactionHashScanner:
    """
    Computes `transaction_hash(preimage, fee)` for many fees.

    The leading `[PREFIX_INVOKE, version, sender, 0, call_hash]` fold is
    computed once in the constructor.
    """

    def __init__(self, preimage: InvokePreimage, hasher: Optional[FieldHasher] = None) -> None:
        self.preimage = preimage
        self.hasher = hasher or FieldHasher()
        self._head = self.hasher.absorb(
            0,
            [
                PREFIX_INVOKE,
                TRANSACTION_VERSION,
                preimage.sender_address,
                ENTRY_POINT_SELECTOR,
                preimage.call_hash,
            ],
        )
        self._chain_id = int(preimage.chain_id)
        self._nonce = int(preimage.nonce)

    def digest(self, fee: int) -> int:
        """Raw-int digest for a raw-int fee (hot path)."""
        h = self.hasher.pair_hash
        acc = h(self._head, fee)
        acc = h(acc, self._chain_id)
        acc = h(acc, self._nonce)
        return h(acc, INVOKE_PREIMAGE_LEN)


__all__ = [
    "PairHash",
    "PREFIX_INVOKE",
    "TRANSACTION_VERSION",
    "ENTRY_POINT_SELECTOR",
    "INVOKE_PREIMAGE_LEN",
    "FieldHasher",
    "InvokePreimage",
    "transaction_hash",
    "TransactionHashScanner",
]
