"""
Input Validation - checks applied before building ledger operations.

Each validator returns ``(is_valid, error_message)`` so callers can
collect errors for display; builders turn a failed check into a
ValidationError.
"""

from typing import Any, Optional, Tuple

from aloe.core.encoding import FIELD_MODULUS, U32_MAX, U64_MAX, is_address

# =============================================================================
# Constants
# =============================================================================

MIN_AMOUNT = 0
MAX_AMOUNT = U64_MAX
MIN_BLOCK = 0
MAX_BLOCK = U32_MAX
MAX_AUCTION_ID_DIGITS = 77


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a u64 microcredit amount."""
    return validate_integer(amount, name, MIN_AMOUNT, MAX_AMOUNT)


def validate_duration(blocks: Any, name: str = "duration") -> Tuple[bool, str]:
    """Validate a u32 block count. Phases must last at least one block."""
    return validate_integer(blocks, name, 1, MAX_BLOCK)


def validate_field_element(value: Any, name: str = "field_element") -> Tuple[bool, str]:
    """Validate a field element (< FIELD_MODULUS)."""
    return validate_integer(value, name, 0, FIELD_MODULUS - 1)


def validate_auction_id(value: Any, name: str = "auction_id") -> Tuple[bool, str]:
    """
    Validate an auction or item identifier.

    Identifiers are field values, so they are accepted either as ints or
    as strings of decimal digits.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return False, f"{name} is required"
        if not text.isdigit():
            return False, f"{name} must be numeric, got {value!r}"
        if len(text) > MAX_AUCTION_ID_DIGITS:
            return False, f"{name} is too long"
        value = int(text)
    return validate_field_element(value, name)


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a ledger account address."""
    if not isinstance(address, str):
        return False, f"{name} must be str, got {type(address).__name__}"
    if not is_address(address):
        return False, f"{name} is not a valid aleo1 address"
    return True, ""


def validate_bid(
    bid_amount: Any,
    deposit: Any,
    min_bid: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate a sealed bid before it is committed.

    The deposit locked with the commitment must cover the bid, and the
    bid must meet the auction minimum when one is known.
    """
    valid, err = validate_amount(bid_amount, "bid_amount")
    if not valid:
        return False, err

    valid, err = validate_amount(deposit, "deposit")
    if not valid:
        return False, err

    if bid_amount <= 0:
        return False, "bid_amount must be positive"

    if deposit < bid_amount:
        return False, f"deposit ({deposit}) must be >= bid_amount ({bid_amount})"

    if min_bid is not None and bid_amount < min_bid:
        return False, f"bid_amount ({bid_amount}) is below the minimum bid ({min_bid})"

    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_integer",
    "validate_amount",
    "validate_duration",
    "validate_field_element",
    "validate_auction_id",
    "validate_address",
    "validate_bid",
    "MAX_AMOUNT",
    "MAX_BLOCK",
]
