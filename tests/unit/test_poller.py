"""
Tests for periodic polling and the block height and auction watchers.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from aloe.core.auction import AuctionRecord
from aloe.core.errors import ChainReadError
from aloe.network import AuctionWatcher, BlockHeightWatcher, Poller


class TestPoller:

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            Poller(AsyncMock(), lambda r: None, interval=0)

    @pytest.mark.asyncio
    async def test_ticks_until_stopped(self):
        results = []
        fetch = AsyncMock(side_effect=range(1000))
        poller = Poller(fetch, results.append, interval=0.01)

        poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()

        assert not poller.running
        assert results[0] == 0
        assert len(results) >= 2
        count = len(results)
        await asyncio.sleep(0.03)
        assert len(results) == count

    @pytest.mark.asyncio
    async def test_context_manager(self):
        results = []
        async with Poller(AsyncMock(return_value=5), results.append, interval=0.01) as poller:
            await asyncio.sleep(0.02)
            assert poller.running
        assert not poller.running
        assert results and all(r == 5 for r in results)

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_the_loop(self):
        results, errors = [], []
        fetch = AsyncMock(side_effect=[ChainReadError("down")] + list(range(7, 1000)))
        poller = Poller(fetch, results.append, interval=0.01, on_error=errors.append)

        poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()

        assert len(errors) == 1
        assert results[:2] == [7, 8]

    @pytest.mark.asyncio
    async def test_result_after_stop_is_discarded(self):
        results = []
        gate = asyncio.Event()

        async def slow_fetch():
            await gate.wait()
            return 1

        poller = Poller(slow_fetch, results.append, interval=10)
        pending = asyncio.ensure_future(poller.tick())
        await asyncio.sleep(0)
        await poller.stop()
        gate.set()

        assert await pending is None
        assert results == []

    @pytest.mark.asyncio
    async def test_manual_tick(self):
        results = []
        poller = Poller(AsyncMock(return_value=3), results.append)
        assert await poller.tick() == 3
        assert results == [3]
        assert poller.ticks == 1


class TestBlockHeightWatcher:

    @pytest.mark.asyncio
    async def test_tracks_height(self, reader):
        reader.current_block_height.return_value = 321
        seen = []
        watcher = BlockHeightWatcher(reader, interval=0.01)
        watcher.subscribe(seen.append)

        assert watcher.is_loading
        assert await watcher.refresh() == 321
        assert watcher.current_block == 321
        assert not watcher.is_loading
        assert watcher.error is None
        assert seen == [321]

    @pytest.mark.asyncio
    async def test_records_error_and_keeps_last_height(self, reader):
        watcher = BlockHeightWatcher(reader, interval=0.01)
        reader.current_block_height.return_value = 10
        await watcher.refresh()

        reader.current_block_height.side_effect = ChainReadError("503")
        assert await watcher.refresh() is None
        assert watcher.current_block == 10
        assert "503" in watcher.error

    @pytest.mark.asyncio
    async def test_start_stop(self, reader):
        async with BlockHeightWatcher(reader, interval=0.01) as watcher:
            await asyncio.sleep(0.02)
            assert watcher.running
        assert not watcher.running
        assert watcher.current_block == 150


class TestAuctionWatcher:

    @pytest.mark.asyncio
    async def test_refresh_updates_cached_record(self, reader, make_struct, auction_cache, addresses):
        auction_cache.add(AuctionRecord(id="1", item_id="7", auctioneer=addresses["alice"], min_bid=1000))
        reader.auction_struct.return_value = make_struct(commit_deadline=110, reveal_deadline=220)
        seen = []
        watcher = AuctionWatcher(reader, "1", interval=0.01, cache=auction_cache)
        watcher.subscribe(seen.append)

        struct = await watcher.refresh()
        assert struct.reveal_deadline == 220
        assert watcher.deadlines() == (110, 220)
        assert auction_cache.get("1").commit_deadline == 110
        assert seen == [struct]
        reader.auction_struct.assert_awaited_with("1")

    @pytest.mark.asyncio
    async def test_keeps_last_struct_when_absent_or_failing(self, reader, make_struct):
        watcher = AuctionWatcher(reader, "1", interval=0.01)
        reader.auction_struct.return_value = make_struct()
        first = await watcher.refresh()

        reader.auction_struct.return_value = None
        assert await watcher.refresh() is first

        reader.auction_struct.side_effect = ChainReadError("503")
        assert await watcher.refresh() is first
        assert "503" in watcher.error

    @pytest.mark.asyncio
    async def test_deadlines_fall_back_to_cache(self, reader, auction_cache, addresses):
        auction_cache.add(AuctionRecord(
            id="1", item_id="7", auctioneer=addresses["alice"], min_bid=1000,
            commit_deadline=50, reveal_deadline=80,
        ))
        watcher = AuctionWatcher(reader, "1", cache=auction_cache)
        assert watcher.deadlines() == (50, 80)
        assert AuctionWatcher(reader, "2").deadlines() == (None, None)

    @pytest.mark.asyncio
    async def test_start_stop(self, reader, make_struct):
        reader.auction_struct.return_value = make_struct()
        async with AuctionWatcher(reader, "1", interval=0.01) as watcher:
            await asyncio.sleep(0.02)
            assert watcher.running
        assert not watcher.running
        assert watcher.struct is not None
