from __future__ import annotations
import asyncio
import logging
from typing import Any, Optional, Sequence

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from web3 import Web3

logger = logging.getLogger(__name__)


class ChainReadError(Exception):
    """Any failed read against the chain. Callers treat all subclasses alike."""


class TransportFailure(ChainReadError):
    """Endpoint unreachable, timed out, or answered with a non-2xx status."""


class CallReverted(ChainReadError):
    """The node executed the call but returned a JSON-RPC error."""


class DecodeFailure(ChainReadError):
    """The response did not have the expected shape or ABI layout."""


def function_selector(signature: str) -> bytes:
    """First four bytes of keccak256 over the canonical signature."""
    return bytes(Web3.keccak(text=signature)[:4])


def argument_types(signature: str) -> list[str]:
    """Flat argument types of a signature like ``getTradesHistory(address,uint256,uint256)``."""
    inner = signature[signature.index("(") + 1:signature.rindex(")")]
    return [t.strip() for t in inner.split(",") if t.strip()]


class ChainReader:
    """Read-only JSON-RPC client for ``eth_call`` against one endpoint.

    Holds no state besides a concurrency guard; every call is independent.
    Failures surface as ``ChainReadError`` subclasses and are never retried
    here.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        max_concurrency: int = 8,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._transport = transport
        self._semaphore = asyncio.Semaphore(max_concurrency)

    # ── low-level helpers ──────────────────────────────────────────

    async def _rpc(self, method: str, params: list) -> Any:
        """JSON-RPC 2.0 call; returns the ``result`` member."""
        async with self._semaphore:
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    resp = await client.post(
                        self.rpc_url,
                        json={
                            "jsonrpc": "2.0",
                            "id": 1,
                            "method": method,
                            "params": params,
                        },
                    )
                    resp.raise_for_status()
            except httpx.HTTPError as e:
                raise TransportFailure(f"{method} failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeFailure(f"{method} returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise DecodeFailure(f"{method} returned unexpected payload: {data!r}")
        if data.get("error"):
            raise CallReverted(f"{method} error: {data['error']}")
        if "result" not in data:
            raise DecodeFailure(f"{method} response has no result")
        return data["result"]

    # ── view calls ─────────────────────────────────────────────────

    async def call_view(
        self,
        contract: str,
        signature: str,
        args: Sequence[Any] = (),
        returns: Sequence[str] = (),
    ) -> tuple:
        """Call a view function and ABI-decode its return data.

        ``returns`` lists the output types, e.g. ``["uint256"]`` or
        ``["(address,uint256,bool)[]"]``. An empty ``returns`` skips decoding.
        """
        types = argument_types(signature)
        try:
            values = [
                Web3.to_checksum_address(v) if t == "address" else v
                for t, v in zip(types, args)
            ]
            calldata = function_selector(signature) + encode(types, values)
        except (EncodingError, TypeError, ValueError) as e:
            raise DecodeFailure(f"cannot encode {signature} args {list(args)!r}: {e}") from e

        result = await self._rpc(
            "eth_call",
            [{"to": Web3.to_checksum_address(contract), "data": "0x" + calldata.hex()}, "latest"],
        )
        if not isinstance(result, str) or not result.startswith("0x"):
            raise DecodeFailure(f"{signature} returned non-hex result: {result!r}")
        if not returns:
            return ()

        raw = bytes.fromhex(result[2:])
        if not raw:
            raise DecodeFailure(f"{signature} returned no data from {contract}")
        try:
            return tuple(decode(list(returns), raw))
        except (DecodingError, ValueError) as e:
            raise DecodeFailure(f"cannot decode {signature} result: {e}") from e

    async def get_token_balance(self, token: str, holder: str) -> int:
        """Raw ERC-20 ``balanceOf`` in the token's smallest unit."""
        (balance,) = await self.call_view(token, "balanceOf(address)", [holder], ["uint256"])
        return int(balance)

    async def chain_id(self) -> int:
        result = await self._rpc("eth_chainId", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise DecodeFailure(f"eth_chainId returned {result!r}") from e
