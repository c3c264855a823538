from __future__ import annotations

"""
Starknet JSON-RPC surface used by the miner
===========================================

Purpose
-------
Defines the *schema* (dataclasses, enums, error codes), the collaborator
protocols and light helpers for the four node methods the miner needs. The
transport lives in `ledger_client.py`; everything here is pure and testable.

JSON-RPC 2.0 Envelope
---------------------
Requests:
  {"jsonrpc": "2.0", "id": 1, "method": "starknet_call", "params": {...}}
Responses:
  {"jsonrpc": "2.0", "id": 1, "result": [...]}
Errors:
  {"jsonrpc": "2.0", "id": 1, "error": {"code": 52, "message": "Invalid transaction nonce"}}

Methods
-------
  - starknet_call                 : read `get_prefix(bitwork_id)` once
  - starknet_getNonce             : account nonce, read once
  - starknet_chainId              : chain id folded into the transaction hash
  - starknet_addInvokeTransaction : send the mined transaction, exactly once

Field elements travel as minimal 0x-prefixed hex strings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from .mining.felt import FieldElement

JSON = Dict[str, Any]
Hex = str

LATEST = "latest"


# ---------------------- Error Codes ----------------------


class RpcErrorCodes(int, Enum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    FAILED_TO_RECEIVE_TXN = 1
    CONTRACT_NOT_FOUND = 20
    BLOCK_NOT_FOUND = 24
    CONTRACT_ERROR = 40
    TRANSACTION_EXECUTION_ERROR = 41
    INVALID_TRANSACTION_NONCE = 52
    INSUFFICIENT_MAX_FEE = 53
    INSUFFICIENT_ACCOUNT_BALANCE = 54
    VALIDATION_FAILURE = 55
    DUPLICATE_TX = 59
    UNSUPPORTED_TX_VERSION = 61
    UNEXPECTED_ERROR = 63


class LedgerRpcError(Exception):
    """A JSON-RPC error object returned by the node."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"rpc error {code}: {message}")
        self.code = int(code)
        self.message = message
        self.data = data

    @property
    def known_code(self) -> Optional[RpcErrorCodes]:
        try:
            return RpcErrorCodes(self.code)
        except ValueError:
            return None


class LedgerProtocolError(Exception):
    """The node answered with something that is not a usable JSON-RPC response."""


# ---------------------- Methods ----------------------


class Method(str, Enum):
    CALL = "starknet_call"
    GET_NONCE = "starknet_getNonce"
    CHAIN_ID = "starknet_chainId"
    ADD_INVOKE_TRANSACTION = "starknet_addInvokeTransaction"


# ---------------------- Dataclasses (schema) ----------------------


@dataclass(frozen=True)
class InvokeTransaction:
    """Invoke v1 envelope, signed over its canonical transaction hash."""

    sender_address: FieldElement
    calldata: Tuple[FieldElement, ...]
    max_fee: FieldElement
    nonce: FieldElement
    signature: Tuple[FieldElement, ...] = ()
    version: int = 1

    def to_rpc(self) -> JSON:
        return {
            "type": "INVOKE",
            "sender_address": self.sender_address.to_hex(),
            "calldata": felts_to_hex(self.calldata),
            "max_fee": self.max_fee.to_hex(),
            "version": hex(self.version),
            "signature": felts_to_hex(self.signature),
            "nonce": self.nonce.to_hex(),
        }


@dataclass(frozen=True)
class TransactionHandle:
    transaction_hash: FieldElement
    raw: JSON = field(default_factory=dict, compare=False)


# ---------------------- Collaborators ----------------------


class LedgerReader(Protocol):
    """Read side of the node: one prefix call, one nonce, one chain id."""

    async def call(
        self,
        contract_address: FieldElement,
        entry_point_selector: FieldElement,
        args: Sequence[FieldElement],
    ) -> List[FieldElement]: ...

    async def get_nonce(self, account: FieldElement) -> FieldElement: ...

    async def get_chain_id(self) -> FieldElement: ...


class LedgerWriter(Protocol):
    """Write side of the node: used exactly once per run."""

    async def send(self, tx: InvokeTransaction) -> TransactionHandle: ...


# ---------------------- JSON-RPC helpers ----------------------


def felts_to_hex(values: Sequence[FieldElement]) -> List[Hex]:
    return [FieldElement.coerce(v).to_hex() for v in values]


def felts_from_hex(values: Sequence[Hex]) -> List[FieldElement]:
    return [FieldElement.from_hex(v) for v in values]


def make_request(
    method: Union[str, Method],
    params: Optional[JSON] = None,
    id: Union[int, str, None] = None,
) -> JSON:
    if isinstance(method, Method):
        method = method.value
    if not isinstance(method, str) or not method:
        raise ValueError("method must be non-empty string")
    env: JSON = {"jsonrpc": "2.0", "method": method}
    if id is not None:
        env["id"] = id
    env["params"] = params if params is not None else {}
    return env


def parse_response(obj: Any, *, expected_id: Union[int, str, None] = None) -> Any:
    """Return `result` from a response envelope or raise the node's error."""
    if not isinstance(obj, dict) or obj.get("jsonrpc") != "2.0":
        raise LedgerProtocolError(f"not a JSON-RPC 2.0 response: {obj!r}")
    if expected_id is not None and obj.get("id") != expected_id:
        raise LedgerProtocolError(f"response id {obj.get('id')!r} != request id {expected_id!r}")
    err = obj.get("error")
    if err is not None:
        if not isinstance(err, dict):
            raise LedgerProtocolError(f"malformed error object: {err!r}")
        try:
            code = int(err.get("code", 0))
        except (TypeError, ValueError):
            raise LedgerProtocolError(f"malformed error code: {err!r}") from None
        raise LedgerRpcError(code, str(err.get("message", "")), err.get("data"))
    if "result" not in obj:
        raise LedgerProtocolError("response has neither result nor error")
    return obj["result"]


def call_params(
    contract_address: FieldElement,
    entry_point_selector: FieldElement,
    args: Sequence[FieldElement],
    block_id: Any = LATEST,
) -> JSON:
    return {
        "request": {
            "contract_address": contract_address.to_hex(),
            "entry_point_selector": entry_point_selector.to_hex(),
            "calldata": felts_to_hex(args),
        },
        "block_id": block_id,
    }


def nonce_params(account: FieldElement, block_id: Any = LATEST) -> JSON:
    return {"block_id": block_id, "contract_address": account.to_hex()}


def invoke_params(tx: InvokeTransaction) -> JSON:
    return {"invoke_transaction": tx.to_rpc()}


__all__ = [
    "JSON",
    "LATEST",
    "RpcErrorCodes",
    "LedgerRpcError",
    "LedgerProtocolError",
    "Method",
    "InvokeTransaction",
    "TransactionHandle",
    "LedgerReader",
    "LedgerWriter",
    "felts_to_hex",
    "felts_from_hex",
    "make_request",
    "parse_response",
    "call_params",
    "nonce_params",
    "invoke_params",
]
