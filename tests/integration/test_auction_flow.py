"""
End-to-end auction lifecycle against an in-memory ledger double.

The double applies submitted payloads the way the auction program
would, so the client's pre-flight checks, secret handling and cache
updates are exercised together.
"""

import pytest

from aloe.core.auction import AuctionCache, AuctionStatus, Phase
from aloe.core.client import AuctionClient
from aloe.core.config import ClientConfig
from aloe.core.encoding import parse_literal
from aloe.core.errors import IneligibleError, SecretNotFoundError
from aloe.core.storage import SQLiteAdapter, SecretStore
from aloe.network import AuctionStruct


ALICE = "aleo1" + "a" * 58
BOB = "aleo1" + "d" * 58
CAROL = "aleo1" + "x" * 58


class FakeLedger:
    """Minimal stand-in for the auction program and the explorer API."""

    def __init__(self, config):
        self.config = config
        self.height = 1000
        self.auctions = {}
        self.highest = {}
        self.leader = {}
        self.bids = {}
        self.submitted = []

    # Chain reader interface

    async def current_block_height(self):
        return self.height

    async def auction_struct(self, auction_id):
        return self.auctions.get(str(auction_id))

    async def highest_bid(self, auction_id):
        return self.highest.get(str(auction_id), 0)

    async def bid_count(self, auction_id):
        return self.bids.get(str(auction_id), 0)

    # Program

    def executor_for(self, caller):
        async def execute(payload):
            self.submitted.append((caller, payload.function_name))
            self._apply(caller, payload.function_name, payload.inputs)
            return {"transactionId": f"at1{len(self.submitted)}"}
        return execute

    @staticmethod
    def _num(literal):
        return parse_literal(literal)[0]

    def _apply(self, caller, function, inputs):
        auction_id = str(self._num(inputs[0]))
        if function == "create_auction":
            commit, reveal = self._num(inputs[3]), self._num(inputs[4])
            self.auctions[auction_id] = AuctionStruct(
                auctioneer=caller,
                item_id=self._num(inputs[1]),
                min_bid=self._num(inputs[2]),
                commit_deadline=self.height + commit,
                reveal_deadline=self.height + commit + reveal,
                status=AuctionStatus.ACTIVE,
            )
        elif function == "place_bid":
            self.bids[auction_id] = self.bids.get(auction_id, 0) + 1
        elif function == "reveal_bid":
            amount = self._num(inputs[1])
            if amount > self.highest.get(auction_id, 0):
                self.highest[auction_id] = amount
                self.leader[auction_id] = caller
        elif function == "settle_auction":
            current = self.auctions[auction_id]
            self.auctions[auction_id] = current.model_copy(update=dict(
                status=AuctionStatus.ENDED,
                winner=self.leader.get(auction_id),
                winning_bid=self._num(inputs[2]),
            ))


@pytest.fixture
def ledger():
    return FakeLedger(ClientConfig())


def _client(ledger, caller, tmp_path, name):
    adapter = SQLiteAdapter(tmp_path / f"{name}.db")
    return AuctionClient(
        ledger,
        SecretStore(adapter),
        AuctionCache(adapter),
        ledger.executor_for(caller),
        caller_address=caller,
        config=ledger.config,
    )


@pytest.mark.asyncio
async def test_full_lifecycle(ledger, tmp_path):
    seller = _client(ledger, ALICE, tmp_path, "alice")
    bob = _client(ledger, BOB, tmp_path, "bob")
    carol = _client(ledger, CAROL, tmp_path, "carol")

    # Commit phase
    record, _ = await seller.create_auction(7, 1000, commit_duration=10, reveal_duration=10, auction_id="42")
    assert record.auctioneer == ALICE
    assert await seller.current_phase("42") == Phase.COMMIT

    await bob.import_auction("42")
    await carol.import_auction("42")
    await bob.place_bid("42", 5000)
    await carol.place_bid("42", 3000, deposit=4000)
    assert ledger.bids["42"] == 2

    with pytest.raises(IneligibleError):
        await bob.reveal_bid("42")

    # Reveal phase
    ledger.height = 1011
    assert await bob.current_phase("42") == Phase.REVEAL
    await bob.reveal_bid("42")
    await carol.reveal_bid("42")
    assert bob.secrets.get("42").revealed
    assert ledger.highest["42"] == 5000

    with pytest.raises(IneligibleError):
        await seller.settle_auction("42")

    # Past reveal deadline
    ledger.height = 1021
    assert await seller.current_phase("42") == Phase.ENDED
    await seller.settle_auction("42")
    assert seller.cache.get("42").status == AuctionStatus.ENDED
    assert seller.cache.get("42").winning_bid == 5000

    # Refunds
    with pytest.raises(IneligibleError) as exc_info:
        await bob.claim_refund("42")
    assert exc_info.value.result.code == "is_winner"

    await carol.claim_refund("42")
    assert carol.secrets.get("42") is None

    # Seller never bid
    with pytest.raises(SecretNotFoundError):
        await seller.claim_refund("42")

    await bob.refresh()
    assert bob.cache.get("42").winner == BOB

    assert [f for _, f in ledger.submitted] == [
        "create_auction",
        "place_bid",
        "place_bid",
        "reveal_bid",
        "reveal_bid",
        "settle_auction",
        "claim_refund",
    ]


@pytest.mark.asyncio
async def test_secret_survives_client_restart(ledger, tmp_path):
    seller = _client(ledger, ALICE, tmp_path, "alice")
    await seller.create_auction(7, 1000, commit_duration=5, reveal_duration=5, auction_id="9")

    first = _client(ledger, BOB, tmp_path, "bob")
    await first.place_bid("9", 2000)
    first.secrets.adapter.close()

    ledger.height = 1006
    restarted = _client(ledger, BOB, tmp_path, "bob")
    result = await restarted.reveal_bid("9")
    assert result.payload.inputs[1] == "2000u64"
