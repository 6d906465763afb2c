"""
Shared fixtures: addresses, on-chain struct factories, an in-memory
store and a chain reader double.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from aloe.core.auction import AuctionCache
from aloe.core.config import ClientConfig
from aloe.core.storage import SQLiteAdapter, SecretStore
from aloe.network import AuctionStruct


ALICE = "aleo1" + "a" * 58
BOB = "aleo1" + "d" * 58
CAROL = "aleo1" + "x" * 58


def struct_text(
    status=1,
    commit_deadline=100,
    reveal_deadline=200,
    auctioneer=ALICE,
    winner="aleo1qqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqq3ljyzc",
    min_bid=1000,
    winning_bid=0,
    item_id=7,
):
    """Mapping value exactly as the explorer API returns it."""
    return (
        "{\n"
        f"  auctioneer: {auctioneer},\n"
        f"  item_id: {item_id}field,\n"
        f"  min_bid: {min_bid}u64,\n"
        f"  commit_deadline: {commit_deadline}u32,\n"
        f"  reveal_deadline: {reveal_deadline}u32,\n"
        f"  status: {status}u8,\n"
        f"  winner: {winner},\n"
        f"  winning_bid: {winning_bid}u64\n"
        "}"
    )


@pytest.fixture
def addresses():
    return {"alice": ALICE, "bob": BOB, "carol": CAROL}


@pytest.fixture
def make_struct():
    def factory(**overrides):
        fields = dict(
            auctioneer=ALICE,
            item_id=7,
            min_bid=1000,
            commit_deadline=100,
            reveal_deadline=200,
            status=1,
            winner=None,
            winning_bid=0,
        )
        fields.update(overrides)
        return AuctionStruct(**fields)
    return factory


@pytest.fixture
def make_struct_text():
    return struct_text


@pytest.fixture
def config(tmp_path):
    return ClientConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs")


@pytest.fixture
def adapter():
    adapter = SQLiteAdapter(SQLiteAdapter.MEMORY)
    yield adapter
    adapter.close()


@pytest.fixture
def secret_store(adapter):
    return SecretStore(adapter)


@pytest.fixture
def auction_cache(adapter):
    return AuctionCache(adapter)


@pytest.fixture
def reader(config):
    """Chain reader double. Height 150 is inside the default reveal window."""
    reader = MagicMock()
    reader.config = config
    reader.current_block_height = AsyncMock(return_value=150)
    reader.auction_struct = AsyncMock(return_value=None)
    reader.highest_bid = AsyncMock(return_value=0)
    reader.bid_count = AsyncMock(return_value=0)
    return reader
