"""
Chain client adapter used by the block translators.

Defines the async port the translators depend on and a web3-backed
implementation that reads local heights, settlement-layer heights and
head headers over JSON-RPC.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from hexbytes import HexBytes
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.providers import WebSocketProvider

from .errors import ChainClientError
from .models import ChainHead

# Get logger for this module
logger = logging.getLogger(__name__)

# Block field carrying the settlement-layer height on Arbitrum-style rollups
L1_BLOCK_NUMBER_FIELD = "l1BlockNumber"


class ChainClient(Protocol):
    """Port defining the chain calls the translators rely on."""

    async def get_local_height(self) -> int:
        """Return the current local chain head height."""

    async def get_settlement_height(self, local_height: int) -> int:
        """Return the settlement-layer height reported by a local block."""

    async def get_head(self, number: int | None = None) -> ChainHead:
        """Return the header at ``number``, or the latest one when None."""


def parse_quantity(value: Any) -> int:
    """
    Parse a JSON-RPC quantity into an integer.

    Providers return block fields either already formatted (int) or raw
    (0x-prefixed hex string), depending on whether web3 knows the field.

    :param value: The quantity to parse
    :return: Integer value of the quantity
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, byteorder="big")
    if isinstance(value, str):
        text = value.strip()
        if text.startswith(("0x", "0X")):
            return int(text, 16) if len(text) > 2 else 0
        return int(text)
    raise ValueError(f"Not a quantity: {value!r}")


def _to_hex_hash(value: Any) -> str | None:
    if value is None:
        return None
    hex_str = HexBytes(value).hex()
    if not hex_str.startswith("0x"):
        hex_str = "0x" + hex_str
    return hex_str


class Web3ChainClient:
    """
    Chain client backed by AsyncWeb3.

    ``http(s)://`` endpoints use an HTTP provider; ``ws(s)://`` endpoints use
    a persistent WebSocket provider that connects on first use. Every
    provider failure, including a request exceeding ``request_timeout``, is
    raised as ChainClientError. Cancellation of the calling task is never
    wrapped.
    """

    def __init__(self, rpc_url: str, request_timeout: float = 30, w3: AsyncWeb3 | None = None) -> None:
        """
        Initialize the Web3ChainClient.

        Args:
            rpc_url: HTTP(S) or WS(S) RPC endpoint URL
            request_timeout: Seconds allowed for a single RPC call
            w3: Preconfigured AsyncWeb3 instance (created from rpc_url if omitted)
        """
        if not rpc_url and w3 is None:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.request_timeout = request_timeout
        self.persistent = rpc_url.startswith(("ws://", "wss://"))
        if w3 is None:
            provider = (
                WebSocketProvider(rpc_url, request_timeout=request_timeout)
                if self.persistent
                else AsyncHTTPProvider(rpc_url)
            )
            w3 = AsyncWeb3(provider)
        self.w3 = w3

    async def _request(self, call: Callable[[], Awaitable[Any]]) -> Any:
        if self.persistent and not await self.w3.provider.is_connected():
            logger.info(f"Connecting to WebSocket: {self.rpc_url}")
            await self.w3.provider.connect()
        return await call()

    async def _call(
        self,
        method: str,
        call: Callable[[], Awaitable[Any]],
        height: int | None = None,
    ) -> Any:
        try:
            return await asyncio.wait_for(self._request(call), timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            raise ChainClientError(
                method, f"timed out after {self.request_timeout}s", height
            ) from e
        except Exception as e:
            raise ChainClientError(method, f"{type(e).__name__}: {e}", height) from e

    async def get_local_height(self) -> int:
        number = await self._call("get_local_height", lambda: self.w3.eth.block_number)
        return parse_quantity(number)

    async def get_settlement_height(self, local_height: int) -> int:
        block = await self._call(
            "get_settlement_height", lambda: self.w3.eth.get_block(local_height), local_height
        )
        if block is None:
            raise ChainClientError(
                "get_settlement_height", "block not found", local_height
            )

        raw = block.get(L1_BLOCK_NUMBER_FIELD)
        if raw is None:
            # Chains without a settlement layer report their own height
            raw = block.get("number", local_height)

        try:
            return parse_quantity(raw)
        except ValueError as e:
            raise ChainClientError(
                "get_settlement_height", f"malformed {L1_BLOCK_NUMBER_FIELD}: {raw!r}", local_height
            ) from e

    async def get_head(self, number: int | None = None) -> ChainHead:
        block_id: int | str = "latest" if number is None else number
        block = await self._call("get_head", lambda: self.w3.eth.get_block(block_id), number)
        if block is None:
            raise ChainClientError("get_head", "block not found", number)

        return ChainHead(
            number=parse_quantity(block.get("number")),
            hash=_to_hex_hash(block.get("hash")),
            parent_hash=_to_hex_hash(block.get("parentHash")),
        )

    async def close(self) -> None:
        """Release the provider's HTTP session or WebSocket connection."""
        provider = self.w3.provider
        if hasattr(provider, "disconnect"):
            try:
                await provider.disconnect()
            except Exception as e:
                logger.warning(f"Error during provider cleanup: {e}")
