import json
from typing import List, Optional

from aloe.core.auction.commitment import BidSecret
from aloe.core.config import BID_KEY_PREFIX
from aloe.core.storage.sqlite_adapter import SQLiteAdapter
from aloe.utils.logger import get_logger

logger = get_logger("storage.secrets")

BUCKET = "bid_secrets"


class SecretStore:
    """
    Durable local storage of bid secrets keyed by auction id.

    All operations are synchronous and idempotent; a second ``put`` for
    the same auction overwrites the first. The store does not serialize
    concurrent callers - the client's in-flight guard does that.

    Secrets exist nowhere else. If the underlying database is deleted,
    pending reveals and refunds for those auctions cannot be performed.
    """

    def __init__(self, adapter: SQLiteAdapter):
        self.adapter = adapter

    @staticmethod
    def _key(auction_id: str) -> str:
        return f"{BID_KEY_PREFIX}{auction_id}"

    def put(self, auction_id: str, secret: BidSecret) -> None:
        """Store (or overwrite) the secret for an auction."""
        auction_id = str(auction_id)
        if secret.auction_id != auction_id:
            raise ValueError(
                f"Secret belongs to auction {secret.auction_id}, not {auction_id}"
            )
        self.adapter.put(self._key(auction_id), json.dumps(secret.to_dict()), bucket=BUCKET)
        logger.debug(
            f"Stored bid secret for auction {auction_id} "
            f"(salt {str(secret.salt)[:6]}...)"
        )

    def get(self, auction_id: str) -> Optional[BidSecret]:
        raw = self.adapter.get(self._key(str(auction_id)))
        if raw is None:
            return None
        return BidSecret.from_dict(json.loads(raw))

    def has(self, auction_id: str) -> bool:
        return self.adapter.get(self._key(str(auction_id))) is not None

    def delete(self, auction_id: str) -> None:
        """Remove the secret. Deleting a missing key is a no-op."""
        if self.adapter.remove(self._key(str(auction_id))):
            logger.info(f"Removed bid secret for auction {auction_id}")

    def mark_revealed(self, auction_id: str) -> Optional[BidSecret]:
        """Flag the stored secret as revealed. Returns None if absent."""
        secret = self.get(auction_id)
        if secret is None:
            logger.warning(f"mark_revealed: no secret stored for auction {auction_id}")
            return None
        if not secret.revealed:
            secret.revealed = True
            self.put(auction_id, secret)
        return secret

    def list_auction_ids(self) -> List[str]:
        prefix_len = len(BID_KEY_PREFIX)
        return [key[prefix_len:] for key in self.adapter.keys(BUCKET)]
