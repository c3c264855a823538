from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence

import aiohttp

from .ledger_protocol import (
    JSON,
    InvokeTransaction,
    LedgerProtocolError,
    Method,
    TransactionHandle,
    call_params,
    felts_from_hex,
    invoke_params,
    make_request,
    nonce_params,
    parse_response,
)
from .mining.felt import FieldElement

log = logging.getLogger("ins_miner.ledger")


class StarknetRpcClient:
    """
    Minimal asyncio Starknet JSON-RPC client (HTTP transport).

    Implements both LedgerReader and LedgerWriter.

    Usage:
        async with StarknetRpcClient("https://starknet-testnet.example/rpc") as client:
            nonce = await client.get_nonce(account)
    """

    def __init__(
        self,
        node_url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
    ) -> None:
        self.node_url = node_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._id = 0
        self._closed = False

    # ------------- transport -------------

    async def __aenter__(self) -> "StarknetRpcClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError("client closed")
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_session and self._session is not None:
            await self._session.close()
        log.debug("[ledger] closed")

    # ------------- JSON-RPC helpers -------------

    def _next_id(self) -> int:
        self._id += 1
        return self._id

    async def _call(self, method: Method, params: JSON) -> Any:
        req_id = self._next_id()
        req = make_request(method, params, id=req_id)
        session = self._get_session()
        log.debug("[ledger] -> %s id=%s", method.value, req_id)
        try:
            async with session.post(self.node_url, json=req) as resp:
                resp.raise_for_status()
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise LedgerProtocolError(f"{method.value} transport failure: {exc}") from exc
        except ValueError as exc:
            raise LedgerProtocolError(f"{method.value} returned a non-JSON body: {exc}") from exc
        return parse_response(body, expected_id=req_id)

    @staticmethod
    def _felts(method: Method, values: Sequence[Any]) -> List[FieldElement]:
        try:
            return felts_from_hex([str(v) for v in values])
        except (TypeError, ValueError) as exc:
            raise LedgerProtocolError(f"{method.value} returned a malformed felt: {exc}") from exc

    # ------------- LedgerReader -------------

    async def call(
        self,
        contract_address: FieldElement,
        entry_point_selector: FieldElement,
        args: Sequence[FieldElement],
    ) -> List[FieldElement]:
        result = await self._call(
            Method.CALL, call_params(contract_address, entry_point_selector, args)
        )
        if not isinstance(result, list):
            raise LedgerProtocolError(f"starknet_call returned {type(result).__name__}, expected list")
        return self._felts(Method.CALL, result)

    async def get_nonce(self, account: FieldElement) -> FieldElement:
        result = await self._call(Method.GET_NONCE, nonce_params(account))
        return self._felts(Method.GET_NONCE, [result])[0]

    async def get_chain_id(self) -> FieldElement:
        result = await self._call(Method.CHAIN_ID, {})
        return self._felts(Method.CHAIN_ID, [result])[0]

    # ------------- LedgerWriter -------------

    async def send(self, tx: InvokeTransaction) -> TransactionHandle:
        result = await self._call(Method.ADD_INVOKE_TRANSACTION, invoke_params(tx))
        if not isinstance(result, dict) or "transaction_hash" not in result:
            raise LedgerProtocolError(f"unexpected addInvokeTransaction result: {result!r}")
        handle = TransactionHandle(
            transaction_hash=self._felts(Method.ADD_INVOKE_TRANSACTION, [result["transaction_hash"]])[0],
            raw=result,
        )
        log.info("[ledger] accepted transaction_hash=%s", handle.transaction_hash.to_hex())
        return handle


__all__ = ["StarknetRpcClient"]
