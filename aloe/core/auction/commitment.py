"""
Bid commitments - salts and locally held bid secrets.

A sealed bid is committed on chain as a hash of
``(auction_id, bid_amount, salt, deposit)``; the ledger recomputes that
hash from the raw fields at reveal and refund time. The client therefore
has to keep the exact bid amount, salt and deposit it committed to.
Those values only exist on the client that placed the bid: losing them
makes reveal and refund impossible for that auction.
"""

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict

from Crypto.Random import get_random_bytes

from aloe.core.encoding import FIELD_MODULUS, format_field
from aloe.core.errors import ValidationError

# 128 bits of blinding. Always below the field modulus.
SALT_BYTES = 16


def generate_salt() -> int:
    """
    Generate a random salt for sealing a bid.

    Draws 128 bits from the operating system CSPRNG. The result is a
    non-negative integer below the field modulus; encode it with
    ``format_field`` before sending it to the ledger.
    """
    return int.from_bytes(get_random_bytes(SALT_BYTES), "big")


@dataclass
class BidSecret:
    """
    The secret half of a sealed bid.

    Created when a bid is submitted, flagged revealed after a successful
    reveal, and deleted once the refund has been claimed.
    """
    auction_id: str
    bid_amount: int
    salt: int
    deposit: int
    revealed: bool = False
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def __post_init__(self):
        self.auction_id = str(self.auction_id)
        for name in ("bid_amount", "salt", "deposit"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{name} must be int, got {type(value).__name__}")
        if self.deposit < self.bid_amount:
            raise ValidationError(
                f"deposit ({self.deposit}) must be >= bid_amount ({self.bid_amount})"
            )
        if not 0 <= self.salt < FIELD_MODULUS:
            raise ValidationError("salt is not a valid field element")

    @property
    def salt_literal(self) -> str:
        return format_field(self.salt, "salt")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Salts exceed JSON-safe integer range in most consumers
        data["salt"] = str(self.salt)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BidSecret":
        salt = data["salt"]
        if isinstance(salt, str) and salt.endswith("field"):
            salt = salt[: -len("field")]
        return cls(
            auction_id=str(data["auction_id"]),
            bid_amount=int(data["bid_amount"]),
            salt=int(salt),
            deposit=int(data.get("deposit", data["bid_amount"])),
            revealed=bool(data.get("revealed", False)),
            timestamp=int(data.get("timestamp", 0)),
        )


__all__ = ["BidSecret", "generate_salt", "SALT_BYTES"]
