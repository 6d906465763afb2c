"""
Local auction cache.

Holds the auctions this client knows about: the ones it created and the
ones imported by id. Entries are a convenience view for listing and for
pre-filling operation parameters. They are never used to decide the
phase; the eligibility checks read the chain for that.

The cache is an explicit object passed to whoever needs it. When given
a SQLiteAdapter it persists every mutation.
"""

import asyncio
import json
import time
from dataclasses import asdict, dataclass, field, fields
from typing import TYPE_CHECKING, Dict, List, Optional

from aloe.core.auction.phase import AuctionStatus
from aloe.core.config import AUCTION_KEY_PREFIX, PROGRAM_ID
from aloe.core.errors import ChainDecodeError, ChainReadError
from aloe.core.storage.sqlite_adapter import SQLiteAdapter
from aloe.utils.logger import get_logger

if TYPE_CHECKING:
    from aloe.network.chain_reader import ChainReader
    from aloe.network.decoder import AuctionStruct

logger = get_logger("cache")

BUCKET = "auctions"


@dataclass
class AuctionRecord:
    """Locally cached auction metadata."""
    id: str
    item_id: str
    auctioneer: Optional[str]
    min_bid: int
    status: AuctionStatus = AuctionStatus.ACTIVE
    bid_count: int = 0
    commit_duration: Optional[int] = None
    reveal_duration: Optional[int] = None
    commit_deadline: Optional[int] = None
    reveal_deadline: Optional[int] = None
    winner: Optional[str] = None
    winning_bid: Optional[int] = None
    program_version: str = PROGRAM_ID
    imported: bool = False
    item_name: Optional[str] = None
    created_at: int = field(default_factory=lambda: int(time.time() * 1000))

    def __post_init__(self):
        self.id = str(self.id)
        self.item_id = str(self.item_id)
        self.status = AuctionStatus(self.status)
        if self.item_name is None:
            self.item_name = f"Auction #{self.id[-6:]}"

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["status"] = int(self.status)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "AuctionRecord":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_chain(
        cls,
        auction_id: str,
        struct: "AuctionStruct",
        bid_count: int = 0,
        program_version: str = PROGRAM_ID,
    ) -> "AuctionRecord":
        return cls(
            id=str(auction_id),
            item_id=str(struct.item_id),
            auctioneer=struct.auctioneer,
            min_bid=struct.min_bid,
            status=struct.status,
            bid_count=bid_count,
            commit_deadline=struct.commit_deadline,
            reveal_deadline=struct.reveal_deadline,
            winner=struct.winner,
            winning_bid=struct.winning_bid,
            program_version=program_version,
            imported=True,
        )


class AuctionCache:
    """
    Reconciled view of locally known auctions.

    Mutations: add, update, remove. Reads return the stored record
    objects; use ``update`` rather than mutating them directly so that
    changes are persisted.
    """

    def __init__(self, adapter: Optional[SQLiteAdapter] = None):
        self.adapter = adapter
        self._records: Dict[str, AuctionRecord] = {}
        if adapter is not None:
            self._load()

    def _load(self):
        for key in self.adapter.keys(BUCKET):
            raw = self.adapter.get(key)
            if raw is None:
                continue
            record = AuctionRecord.from_dict(json.loads(raw))
            self._records[record.id] = record
        logger.debug(f"Loaded {len(self._records)} cached auctions")

    def _persist(self, record: AuctionRecord):
        if self.adapter is not None:
            self.adapter.put(
                f"{AUCTION_KEY_PREFIX}{record.id}", json.dumps(record.to_dict()), bucket=BUCKET
            )

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, record: AuctionRecord) -> AuctionRecord:
        if record.id in self._records:
            raise ValueError(f"Auction {record.id} is already cached")
        self._records[record.id] = record
        self._persist(record)
        logger.info(f"Cached auction {record.id}{' (imported)' if record.imported else ''}")
        return record

    def update(self, auction_id: str, **changes) -> AuctionRecord:
        record = self._records.get(str(auction_id))
        if record is None:
            raise KeyError(f"Auction {auction_id} is not cached")
        for name, value in changes.items():
            if not hasattr(record, name) or name == "id":
                raise AttributeError(f"Cannot update field {name!r}")
            setattr(record, name, value)
        record.status = AuctionStatus(record.status)
        self._persist(record)
        return record

    def remove(self, auction_id: str) -> bool:
        record = self._records.pop(str(auction_id), None)
        if record is None:
            return False
        if self.adapter is not None:
            self.adapter.remove(f"{AUCTION_KEY_PREFIX}{record.id}")
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, auction_id: str) -> Optional[AuctionRecord]:
        return self._records.get(str(auction_id))

    def __contains__(self, auction_id) -> bool:
        return str(auction_id) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def list(self) -> List[AuctionRecord]:
        """All records, newest first."""
        return sorted(self._records.values(), key=lambda r: r.created_at, reverse=True)

    def by_status(self, status: AuctionStatus) -> List[AuctionRecord]:
        return [r for r in self.list() if r.status == status]

    def by_auctioneer(self, address: str) -> List[AuctionRecord]:
        return [r for r in self.list() if r.auctioneer == address]

    def active(self) -> List[AuctionRecord]:
        return [r for r in self.list() if r.status.is_active]

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def apply_chain_state(
        self,
        auction_id: str,
        struct: "AuctionStruct",
        bid_count: Optional[int] = None,
    ) -> AuctionRecord:
        """Overwrite chain-owned fields of a cached record."""
        changes = dict(
            auctioneer=struct.auctioneer,
            min_bid=struct.min_bid,
            status=struct.status,
            commit_deadline=struct.commit_deadline,
            reveal_deadline=struct.reveal_deadline,
            winner=struct.winner,
            winning_bid=struct.winning_bid,
        )
        if bid_count is not None:
            changes["bid_count"] = bid_count
        return self.update(auction_id, **changes)

    async def reconcile(self, reader: "ChainReader") -> int:
        """
        Refresh every cached auction from the chain.

        Read failures and missing auctions are logged and skipped; the
        next refresh retries them. Returns the number of records updated.
        """
        updated = 0
        for record in self.list():
            try:
                struct, bid_count = await asyncio.gather(
                    reader.auction_struct(record.id),
                    reader.bid_count(record.id),
                )
            except (ChainReadError, ChainDecodeError) as e:
                logger.warning(f"Refresh of auction {record.id} failed: {e}")
                continue

            if record.id not in self._records:
                logger.debug(f"Auction {record.id} was removed during refresh")
                continue

            if struct is None:
                logger.debug(f"Auction {record.id} not readable on chain, keeping cached data")
                continue

            self.apply_chain_state(record.id, struct, bid_count)
            updated += 1

        logger.info(f"Reconciled {updated}/{len(self._records)} cached auctions")
        return updated
