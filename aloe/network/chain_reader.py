"""
Chain Reader - read-only access to authoritative auction state.

Talks to the ledger explorer API:

    GET {api}/{network}/block/height/latest
    GET {api}/{network}/program/{program}/mapping/{mapping}/{key}

Callers need to tell "the auction does not exist" apart from "the read
failed", because eligibility checks fail open on the second but not the
first. Absent or malformed values come back as ``None``; transport and
HTTP errors raise ChainReadError.
"""

import asyncio
from typing import Any, Optional

import aiohttp

from aloe.core.config import ClientConfig
from aloe.core.encoding import format_field
from aloe.core.errors import ChainDecodeError, ChainReadError
from aloe.network.decoder import (
    AuctionStruct,
    decode_auction_struct,
    decode_height,
    decode_u32,
    decode_u64,
)
from aloe.utils.logger import get_logger

logger = get_logger("chain")


class ChainReader:
    """
    Async accessor for ledger state.

    Can be used with a caller-owned ``aiohttp.ClientSession`` or as an
    async context manager that owns its session. Without either, each
    request opens a short-lived session.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config or ClientConfig()
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> "ChainReader":
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._owns_session = False

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(self, session: aiohttp.ClientSession, url: str) -> Any:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
        ) as response:
            if response.status == 404:
                return None
            if response.status != 200:
                raise ChainReadError(
                    f"API returned {response.status} for {url}", status=response.status
                )
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise ChainDecodeError(f"Response from {url} is not JSON: {e}")

    async def _fetch_json(self, path: str) -> Any:
        """
        GET a network-scoped path and return the decoded JSON body.

        Returns None on 404. Raises ChainReadError on any other failure
        and ChainDecodeError when the body is not JSON.
        """
        url = f"{self.config.network_url}/{path.lstrip('/')}"
        try:
            if self._session is not None:
                return await self._request(self._session, url)
            async with aiohttp.ClientSession() as session:
                return await self._request(session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ChainReadError(f"Request to {url} failed: {e}")

    async def mapping_value(self, mapping: str, key: str) -> Optional[str]:
        """
        Raw plaintext value of a program mapping entry, or None when the
        key is not set.

        Raises:
            ChainReadError: transient failure
            ChainDecodeError: the body is not a JSON string
        """
        path = f"program/{self.config.program_id}/mapping/{mapping}/{key}"
        payload = await self._fetch_json(path)
        if payload is None:
            return None
        if not isinstance(payload, str):
            raise ChainDecodeError(
                f"Expected string for {mapping}[{key}], got {type(payload).__name__}"
            )
        return payload

    # =========================================================================
    # Queries
    # =========================================================================

    async def current_block_height(self) -> int:
        """
        Latest block height.

        Raises:
            ChainReadError: request failed or the body was not a height
        """
        try:
            payload = await self._fetch_json("block/height/latest")
            if payload is None:
                raise ChainReadError("Block height endpoint returned no data")
            height = decode_height(payload)
        except ChainDecodeError as e:
            raise ChainReadError(f"Could not read block height: {e}")
        logger.debug(f"Current block height: {height}")
        return height

    async def auction_struct(self, auction_id: str) -> Optional[AuctionStruct]:
        """
        On-chain auction struct, or None if it does not exist or cannot
        be decoded.

        Raises:
            ChainReadError: transient failure
        """
        key = format_field(auction_id, "auction_id")
        try:
            raw = await self.mapping_value(self.config.auctions_mapping, key)
            if raw is None:
                return None
            return decode_auction_struct(raw)
        except ChainDecodeError as e:
            logger.warning(f"Auction {auction_id} struct could not be decoded: {e}")
            return None

    async def _counter(self, mapping: str, auction_id: str, decode) -> Optional[int]:
        key = format_field(auction_id, "auction_id")
        try:
            raw = await self.mapping_value(mapping, key)
            if raw is None:
                return 0
            return decode(raw)
        except ChainDecodeError as e:
            logger.warning(f"{mapping}[{key}] malformed, treating as absent: {e}")
            return None

    async def highest_bid(self, auction_id: str) -> Optional[int]:
        """
        Highest revealed bid. 0 when no bid has been revealed, None when
        the stored value is malformed.
        """
        return await self._counter(self.config.highest_bid_mapping, auction_id, decode_u64)

    async def bid_count(self, auction_id: str) -> Optional[int]:
        """Number of committed bids. 0 when none, None when malformed."""
        return await self._counter(self.config.bid_count_mapping, auction_id, decode_u32)
