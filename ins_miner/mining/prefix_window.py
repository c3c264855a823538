from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from .calls import GET_PREFIX_ENTRY_POINT, selector_from_name
from .errors import OracleError
from .felt import ZERO, FieldElement, IntLike

if TYPE_CHECKING:  # pragma: no cover - types only
    from ..ledger_protocol import LedgerReader

log = logging.getLogger("ins_miner.oracle")

# Hex digits compared by the inscription contract.
DIGEST_HEX_WIDTH = 62

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


@dataclass(frozen=True)
class AcceptanceWindow:
    """Inclusive digest range; a digest d is accepted iff min <= d <= max."""

    max: FieldElement
    min: FieldElement

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"window min {self.min} above max {self.max}")

    def contains(self, digest: IntLike) -> bool:
        return int(self.min) <= int(digest) <= int(self.max)

    @property
    def is_degenerate(self) -> bool:
        return self.max == ZERO and self.min == ZERO

    @property
    def span(self) -> int:
        return int(self.max) - int(self.min) + 1


def derive_window(prefix_hex: str, width: int = DIGEST_HEX_WIDTH) -> AcceptanceWindow:
    """
    Pad the prefix to `width` hex digits: with "f" for the upper bound and "0"
    for the lower bound.

        derive_window("aa") -> [0xaa00…00, 0xaaff…ff]  (62 digits each)
    """
    s = prefix_hex.strip()
    if s[:2] in ("0x", "0X"):
        s = s[2:]
    if not s or not _HEX_RE.match(s):
        raise OracleError(message=f"prefix is not a hex string: {prefix_hex!r}")
    if len(s) > width:
        raise OracleError(
            message="prefix wider than the digest",
            context={"prefix_digits": len(s), "width": width},
        )
    try:
        window = AcceptanceWindow(
            max=FieldElement.from_hex(s.ljust(width, "f")),
            min=FieldElement.from_hex(s.ljust(width, "0")),
        )
    except ValueError as exc:
        raise OracleError(message=f"prefix outside the field: {exc}") from exc
    return window


class RangeOracle:
    """Reads the contract-held prefix and turns it into an AcceptanceWindow."""

    def __init__(self, reader: "LedgerReader", contract_address: FieldElement, bitwork_id: int = 1) -> None:
        self._reader = reader
        self._contract = contract_address
        self._bitwork_id = bitwork_id

    async def fetch_prefix(self) -> FieldElement:
        try:
            result: Sequence[FieldElement] = await self._reader.call(
                self._contract,
                selector_from_name(GET_PREFIX_ENTRY_POINT),
                [FieldElement(self._bitwork_id)],
            )
        except Exception as exc:
            raise OracleError(
                message=f"prefix read failed: {exc}",
                context={"contract": self._contract.to_hex(), "bitwork_id": self._bitwork_id},
            ) from exc
        if not result:
            raise OracleError(
                message="prefix oracle returned an empty result",
                context={"contract": self._contract.to_hex(), "bitwork_id": self._bitwork_id},
            )
        return FieldElement.coerce(result[0])

    async def fetch_window(self) -> AcceptanceWindow:
        prefix = await self.fetch_prefix()
        prefix_hex = prefix.to_hex_digits()
        window = derive_window(prefix_hex)
        log.info(
            "prefix=%s window min=%s max=%s",
            prefix_hex,
            window.min.to_hex(),
            window.max.to_hex(),
        )
        return window


__all__ = [
    "DIGEST_HEX_WIDTH",
    "AcceptanceWindow",
    "derive_window",
    "RangeOracle",
]
