"""Display helpers for amounts, durations and addresses."""

import secrets
import time
from decimal import Decimal, InvalidOperation, ROUND_DOWN

from aloe.core.config import BLOCKS_PER_MINUTE

MICROCREDITS_PER_CREDIT = 1_000_000


def format_credits(microcredits) -> str:
    """1500000 -> '1.5 credits'"""
    credits = Decimal(int(microcredits)) / MICROCREDITS_PER_CREDIT
    text = f"{credits:,.6f}".rstrip("0").rstrip(".")
    return f"{text} credits"


def parse_credits_to_micro(credits: str) -> int:
    """'1.5' -> 1500000. Digits beyond six decimals are dropped."""
    try:
        value = Decimal(str(credits).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid credits amount: {credits!r}")
    if value < 0:
        raise ValueError("Credits amount must not be negative")
    micro = (value * MICROCREDITS_PER_CREDIT).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(micro)


def format_block_duration(blocks: int) -> str:
    """Approximate wall time for a block count, e.g. '~1 hour'."""
    minutes = round(blocks / BLOCKS_PER_MINUTE)
    if minutes < 60:
        return f"~{minutes} min"

    hours = round(minutes / 60)
    if hours < 24:
        return f"~{hours} hour{'s' if hours != 1 else ''}"

    days = round(hours / 24)
    return f"~{days} day{'s' if days != 1 else ''}"


def truncate_address(address: str, chars: int = 6) -> str:
    if not address or len(address) <= chars * 2 + 3:
        return address
    return f"{address[:chars + 5]}...{address[-chars:]}"


def generate_auction_id() -> str:
    """Millisecond timestamp followed by six random digits."""
    timestamp = int(time.time() * 1000)
    return str(timestamp * 1_000_000 + secrets.randbelow(1_000_000))
