from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from starknet_py.cairo.felt import encode_shortstring
from starknet_py.hash.selector import get_selector_from_name

from .felt import SHORT_STRING_MAX_LEN, FieldElement, IntLike
from .hash_search import FieldHasher

# Entry point of the inscription contract and its prefix getter.
INS_ENTRY_POINT = "ins"
GET_PREFIX_ENTRY_POINT = "get_prefix"

DEFAULT_INSCRIPTION = '{ "p": "brc-20","op": "deploy","tick": "ordi","max": "21000000","lim": "1000"}'


@dataclass(frozen=True)
class Call:
    """A single contract call as it appears inside an account's __execute__."""

    to: FieldElement
    selector: FieldElement
    calldata: Tuple[FieldElement, ...] = ()

    @classmethod
    def from_name(
        cls, to: IntLike, entry_point: str, calldata: Iterable[IntLike] = ()
    ) -> "Call":
        return cls(
            to=FieldElement.coerce(to),
            selector=selector_from_name(entry_point),
            calldata=tuple(FieldElement.coerce(x) for x in calldata),
        )


def selector_from_name(name: str) -> FieldElement:
    return FieldElement(get_selector_from_name(name))


def encode_execute_calldata(calls: Sequence[Call]) -> List[FieldElement]:
    """
    Flatten calls into account __execute__ calldata:

        [len(calls), to_0, selector_0, len(data_0), *data_0, to_1, ...]
    """
    out: List[FieldElement] = [FieldElement(len(calls))]
    for call in calls:
        out.append(call.to)
        out.append(call.selector)
        out.append(FieldElement(len(call.calldata)))
        out.extend(call.calldata)
    return out


def compute_call_hash(calls: Sequence[Call], hasher: Optional[FieldHasher] = None) -> FieldElement:
    return (hasher or FieldHasher()).hash(encode_execute_calldata(calls))


def encode_short_strings(text: str) -> List[FieldElement]:
    """Split ASCII text into consecutive Cairo short strings (31 bytes each)."""
    if not text.isascii():
        raise ValueError("inscription text must be ASCII")
    return [
        FieldElement(encode_shortstring(text[i : i + SHORT_STRING_MAX_LEN]))
        for i in range(0, len(text), SHORT_STRING_MAX_LEN)
    ]


def build_ins_call(contract: IntLike, bitwork_id: int, inscription: str) -> Call:
    """
    Call `ins(bitwork_id, data: Array<felt252>)` on the inscription contract.
    Serialized arguments are `[bitwork_id, len(data), *data]`.
    """
    chunks = encode_short_strings(inscription)
    return Call.from_name(contract, INS_ENTRY_POINT, [bitwork_id, len(chunks), *chunks])


__all__ = [
    "INS_ENTRY_POINT",
    "GET_PREFIX_ENTRY_POINT",
    "DEFAULT_INSCRIPTION",
    "Call",
    "selector_from_name",
    "encode_execute_calldata",
    "compute_call_hash",
    "encode_short_strings",
    "build_ins_call",
]
