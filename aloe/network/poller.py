"""
Polling - periodic chain reads owned by a single view.

A Poller owns one asyncio task. Stopping it cancels the task, and a
result that arrives after ``stop()`` is dropped instead of being
delivered to a view that no longer exists. Failed ticks are logged and
skipped; the next tick is the retry.
"""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, Tuple, TypeVar

from aloe.core.config import BLOCK_TIME_SECONDS
from aloe.utils.logger import get_logger

logger = get_logger("poller")

T = TypeVar("T")


class Poller(Generic[T]):
    """
    Runs ``fetch`` immediately and then every ``interval`` seconds,
    passing each result to ``on_result``.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        on_result: Callable[[T], None],
        interval: float = BLOCK_TIME_SECONDS,
        name: str = "poller",
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.fetch = fetch
        self.on_result = on_result
        self.on_error = on_error
        self.interval = interval
        self.name = name
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling. Restarting supersedes any earlier loop."""
        if self.running:
            return
        self._generation += 1
        self._task = asyncio.create_task(self._loop(self._generation))
        logger.debug(f"{self.name} started (every {self.interval}s)")

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        # Invalidate first so an in-flight fetch cannot deliver
        self._generation += 1
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.debug(f"{self.name} stopped")

    async def __aenter__(self) -> "Poller[T]":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def tick(self) -> Optional[T]:
        """Run one fetch now. Returns the result, or None if it failed or went stale."""
        return await self._tick(self._generation)

    async def _tick(self, generation: int) -> Optional[T]:
        try:
            result = await self.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if generation == self._generation:
                logger.warning(f"{self.name} tick failed: {e}")
                if self.on_error is not None:
                    self.on_error(e)
            return None

        if generation != self._generation:
            logger.debug(f"{self.name} discarded stale result")
            return None

        self.ticks += 1
        self.on_result(result)
        return result

    async def _loop(self, generation: int) -> None:
        while generation == self._generation:
            await self._tick(generation)
            await asyncio.sleep(self.interval)


class BlockHeightWatcher:
    """
    Tracks the latest block height for a view.

    Exposes the last known height, whether the first read is still
    pending, and the last error message.
    """

    def __init__(self, reader, interval: float = BLOCK_TIME_SECONDS):
        self.current_block: Optional[int] = None
        self.error: Optional[str] = None
        self.is_loading = True
        self._listeners = []
        self._poller: Poller[int] = Poller(
            reader.current_block_height,
            self._on_height,
            interval=interval,
            name="block-height",
            on_error=self._on_error,
        )

    def subscribe(self, callback: Callable[[int], None]) -> None:
        self._listeners.append(callback)

    def _on_height(self, height: int) -> None:
        self.current_block = height
        self.error = None
        self.is_loading = False
        for callback in list(self._listeners):
            callback(height)

    def _on_error(self, error: Exception) -> None:
        self.error = str(error)
        self.is_loading = False

    @property
    def running(self) -> bool:
        return self._poller.running

    def start(self) -> None:
        self._poller.start()

    async def stop(self) -> None:
        await self._poller.stop()

    async def refresh(self) -> Optional[int]:
        return await self._poller.tick()

    async def __aenter__(self) -> "BlockHeightWatcher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


class AuctionWatcher:
    """
    Keeps one auction's on-chain struct fresh while a view shows it.

    Reads ``reader.auction_struct`` every ``interval`` seconds. An absent
    struct keeps the last one read. When a cache is given and holds the
    auction, each fresh struct is also applied to the cached record.
    """

    def __init__(self, reader, auction_id: str, interval: float = BLOCK_TIME_SECONDS, cache=None):
        self.auction_id = str(auction_id)
        self.cache = cache
        self.struct = None
        self.error: Optional[str] = None
        self._listeners = []
        self._poller = Poller(
            lambda: reader.auction_struct(self.auction_id),
            self._on_struct,
            interval=interval,
            name=f"auction-{self.auction_id}",
            on_error=self._on_error,
        )

    def subscribe(self, callback: Callable) -> None:
        self._listeners.append(callback)

    def _on_struct(self, struct) -> None:
        if struct is None:
            return
        self.struct = struct
        self.error = None
        if self.cache is not None and self.auction_id in self.cache:
            self.cache.apply_chain_state(self.auction_id, struct)
        for callback in list(self._listeners):
            callback(struct)

    def _on_error(self, error: Exception) -> None:
        self.error = str(error)

    def deadlines(self) -> Tuple[Optional[int], Optional[int]]:
        """(commit_deadline, reveal_deadline), on-chain values first, then cached ones."""
        if self.struct is not None:
            return self.struct.commit_deadline, self.struct.reveal_deadline
        record = self.cache.get(self.auction_id) if self.cache is not None else None
        if record is not None:
            return record.commit_deadline, record.reveal_deadline
        return None, None

    @property
    def running(self) -> bool:
        return self._poller.running

    def start(self) -> None:
        self._poller.start()

    async def stop(self) -> None:
        await self._poller.stop()

    async def refresh(self):
        await self._poller.tick()
        return self.struct

    async def __aenter__(self) -> "AuctionWatcher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
