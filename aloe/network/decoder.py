"""
Strict decoding of mapping values returned by the ledger API.

Mapping values come back as JSON strings holding the ledger's plaintext
syntax, for example::

    "{\\n  auctioneer: aleo1...,\\n  item_id: 7field,\\n  min_bid: 1000u64,
      commit_deadline: 100u32,\\n  reveal_deadline: 200u32,\\n  status: 1u8,
      winner: aleo1...,\\n  winning_bid: 0u64\\n}"

Everything here raises ChainDecodeError on a shape it does not expect.
Falling back to "absent" or "Unknown" is the Chain Reader's decision,
not the decoder's.
"""

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from aloe.core.auction.phase import AuctionStatus
from aloe.core.encoding import is_address, parse_literal
from aloe.core.errors import ChainDecodeError

# Placeholder address the program stores before a winner exists
ZERO_ADDRESS = "aleo1qqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqq3ljyzc"

_ENTRY_RE = re.compile(r"^([a-z_][a-z0-9_]*)\s*:\s*([^\s{}:,]+)$")


def parse_struct(text: str) -> Dict[str, str]:
    """
    Parse a flat plaintext struct into a dict of raw literal strings.

    Raises:
        ChainDecodeError: not a flat ``{ key: value, ... }`` struct
    """
    if not isinstance(text, str):
        raise ChainDecodeError(f"Expected struct string, got {type(text).__name__}")

    body = text.strip()
    if not (body.startswith("{") and body.endswith("}")):
        raise ChainDecodeError("Struct must be enclosed in braces")
    body = body[1:-1].strip()
    if not body:
        raise ChainDecodeError("Struct has no members")
    if "{" in body or "}" in body:
        raise ChainDecodeError("Nested structs are not supported")

    entries: Dict[str, str] = {}
    for raw in body.split(","):
        entry = raw.strip()
        if not entry:
            raise ChainDecodeError("Empty struct member")
        match = _ENTRY_RE.match(entry)
        if not match:
            raise ChainDecodeError(f"Malformed struct member: {entry!r}")
        key, value = match.groups()
        if key in entries:
            raise ChainDecodeError(f"Duplicate struct member: {key}")
        entries[key] = value
    return entries


def _literal(value: Any, suffix: str) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not a literal")
    if isinstance(value, int):
        return value
    try:
        number, _ = parse_literal(value, suffix)
    except ChainDecodeError as e:
        raise ValueError(str(e))
    return number


class AuctionStruct(BaseModel):
    """Decoded value of the ``auctions`` mapping."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    auctioneer: str
    item_id: int
    min_bid: int
    commit_deadline: int
    reveal_deadline: int
    status: AuctionStatus
    winner: Optional[str] = None
    winning_bid: Optional[int] = None

    @field_validator("auctioneer", mode="before")
    @classmethod
    def _auctioneer(cls, value):
        if not is_address(value):
            raise ValueError(f"invalid address {value!r}")
        return value

    @field_validator("winner", mode="before")
    @classmethod
    def _winner(cls, value):
        if value is None or value == ZERO_ADDRESS:
            return None
        if not is_address(value):
            raise ValueError(f"invalid address {value!r}")
        return value

    @field_validator("item_id", mode="before")
    @classmethod
    def _field(cls, value):
        return _literal(value, "field")

    @field_validator("min_bid", "winning_bid", mode="before")
    @classmethod
    def _u64(cls, value):
        if value is None:
            return None
        return _literal(value, "u64")

    @field_validator("commit_deadline", "reveal_deadline", mode="before")
    @classmethod
    def _u32(cls, value):
        return _literal(value, "u32")

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value):
        code = _literal(value, "u8")
        try:
            return AuctionStatus.from_code(code)
        except ChainDecodeError as e:
            raise ValueError(str(e))


def decode_auction_struct(text: str) -> AuctionStruct:
    """
    Decode an ``auctions`` mapping value.

    Raises:
        ChainDecodeError: malformed struct, wrong literal types or
            missing members
    """
    entries = parse_struct(text)
    try:
        return AuctionStruct(**entries)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise ChainDecodeError(f"Unexpected auction struct ({where}): {first['msg']}")


def decode_u64(text: str) -> int:
    value, _ = parse_literal(text, "u64")
    return value


def decode_u32(text: str) -> int:
    value, _ = parse_literal(text, "u32")
    return value


def decode_height(payload: Any) -> int:
    """Decode the latest-height endpoint body (a bare JSON integer)."""
    if isinstance(payload, bool) or not isinstance(payload, int) or payload < 0:
        raise ChainDecodeError(f"Unexpected block height payload: {payload!r}")
    return payload


__all__ = [
    "AuctionStruct",
    "ZERO_ADDRESS",
    "parse_struct",
    "decode_auction_struct",
    "decode_u64",
    "decode_u32",
    "decode_height",
]
