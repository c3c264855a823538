from __future__ import annotations

"""
Starknet field elements.

Every value that flows into the transaction hash (addresses, selectors,
calldata, fees, nonces, chain ids, digests) is an element of the Stark prime
field. `FieldElement` keeps construction explicit:

    FieldElement.from_int(v)      # 0 <= v < P, else ValueError
    FieldElement.from_hex("0x..") # same range check
    FieldElement.from_dec("123")
    FieldElement.from_short_string("invoke")
    FieldElement.reduce(v)        # any int, taken modulo P

Arithmetic (`+`, `-`) wraps modulo P. Ordering compares the canonical
integer representatives, which is what the acceptance window relies on.
"""

from dataclasses import dataclass
from typing import Union

from starknet_py.cairo.felt import encode_shortstring

# Stark prime: 2^251 + 17 * 2^192 + 1
FIELD_PRIME = 2**251 + 17 * 2**192 + 1

# Cairo short strings are packed into a single felt.
SHORT_STRING_MAX_LEN = 31

IntLike = Union[int, "FieldElement"]


@dataclass(frozen=True, order=True)
class FieldElement:
    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"field element value must be int, got {type(self.value).__name__}")
        if not 0 <= self.value < FIELD_PRIME:
            raise ValueError(f"value out of field range: {self.value:#x}")

    # ---- constructors ----

    @classmethod
    def from_int(cls, value: int) -> "FieldElement":
        return cls(int(value))

    @classmethod
    def reduce(cls, value: int) -> "FieldElement":
        return cls(int(value) % FIELD_PRIME)

    @classmethod
    def from_hex(cls, text: str) -> "FieldElement":
        s = text.strip()
        if s[:2] in ("0x", "0X"):
            s = s[2:]
        if not s:
            raise ValueError("empty hex string")
        return cls(int(s, 16))

    @classmethod
    def from_dec(cls, text: str) -> "FieldElement":
        s = text.strip()
        if not s.isdigit():
            raise ValueError(f"not a decimal string: {text!r}")
        return cls(int(s, 10))

    @classmethod
    def from_short_string(cls, text: str) -> "FieldElement":
        return cls(encode_shortstring(text))

    @classmethod
    def coerce(cls, value: IntLike) -> "FieldElement":
        if isinstance(value, FieldElement):
            return value
        return cls.from_int(value)

    # ---- arithmetic ----

    def __add__(self, other: IntLike) -> "FieldElement":
        return FieldElement((self.value + int(other)) % FIELD_PRIME)

    __radd__ = __add__

    def __sub__(self, other: IntLike) -> "FieldElement":
        return FieldElement((self.value - int(other)) % FIELD_PRIME)

    # ---- conversions ----

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def to_hex(self) -> str:
        return hex(self.value)

    def to_hex_digits(self) -> str:
        return format(self.value, "x")

    def __repr__(self) -> str:
        return f"FieldElement({self.to_hex()})"


ZERO = FieldElement(0)
ONE = FieldElement(1)


__all__ = [
    "FIELD_PRIME",
    "SHORT_STRING_MAX_LEN",
    "FieldElement",
    "ZERO",
    "ONE",
]
