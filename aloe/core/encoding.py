"""
Ledger literal encoding.

Every value passed to the auction program is a typed literal: an
unsigned decimal integer followed by its type suffix (``7field``,
``500000u64``, ``360u32``). Addresses are passed bare. The ledger
rejects any input whose suffix or ordering differs from what the
program declares, so all formatting goes through this module.
"""

import re
from typing import Tuple, Union

from aloe.core.errors import ChainDecodeError, ValidationError

# Scalar field modulus of the ledger's native field type
FIELD_MODULUS = 8444461749428370424248824938781546531375899335154063827935233455917409239041

U8_MAX = 2**8 - 1
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1

SUFFIX_FIELD = "field"
SUFFIX_U8 = "u8"
SUFFIX_U32 = "u32"
SUFFIX_U64 = "u64"

_BOUNDS = {
    SUFFIX_FIELD: FIELD_MODULUS - 1,
    SUFFIX_U8: U8_MAX,
    SUFFIX_U32: U32_MAX,
    SUFFIX_U64: U64_MAX,
}

_LITERAL_RE = re.compile(r"^(\d+)(field|u8|u16|u32|u64|u128)(?:\.(?:public|private))?$")
_ADDRESS_RE = re.compile(r"^aleo1[qpzry9x8gf2tvdw0s3jn54khce6mua7l]{58}$")

IntLike = Union[int, str]


def _to_int(value: IntLike, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        # Accept values already carrying the expected suffix
        match = _LITERAL_RE.match(text)
        if match:
            text = match.group(1)
        if text.isdigit():
            return int(text)
    raise ValidationError(f"{name} must be a non-negative integer, got {value!r}")


def _format(value: IntLike, suffix: str, name: str) -> str:
    number = _to_int(value, name)
    if number < 0:
        raise ValidationError(f"{name} must be >= 0, got {number}")
    if number > _BOUNDS[suffix]:
        raise ValidationError(f"{name} does not fit in {suffix}: {number}")
    return f"{number}{suffix}"


def field_value(value: IntLike, name: str = "field") -> int:
    """
    Normalize a field element given as an int, a digit string or a
    ``"...field"`` literal to a plain int below the modulus.
    """
    number = _to_int(value, name)
    if number > _BOUNDS[SUFFIX_FIELD]:
        raise ValidationError(f"{name} does not fit in field: {number}")
    return number


def format_field(value: IntLike, name: str = "field") -> str:
    """Encode a field element, e.g. ``7`` -> ``"7field"``."""
    return _format(value, SUFFIX_FIELD, name)


def format_u64(value: IntLike, name: str = "amount") -> str:
    """Encode a 64-bit unsigned amount, e.g. ``500000`` -> ``"500000u64"``."""
    return _format(value, SUFFIX_U64, name)


def format_u32(value: IntLike, name: str = "blocks") -> str:
    """Encode a 32-bit unsigned duration or height."""
    return _format(value, SUFFIX_U32, name)


def format_address(address: str) -> str:
    """Addresses are passed unprefixed and unsuffixed."""
    if not isinstance(address, str) or not _ADDRESS_RE.match(address.strip()):
        raise ValidationError(f"Invalid address: {address!r}")
    return address.strip()


def parse_literal(text: str, expected_suffix: str = None) -> Tuple[int, str]:
    """
    Decode a typed integer literal.

    Args:
        text: Literal such as ``"100u32"`` or ``"12field.private"``
        expected_suffix: When given, the literal must carry this suffix

    Returns:
        (value, suffix)

    Raises:
        ChainDecodeError: text is not a well-formed literal
    """
    if not isinstance(text, str):
        raise ChainDecodeError(f"Expected literal string, got {type(text).__name__}")
    match = _LITERAL_RE.match(text.strip())
    if not match:
        raise ChainDecodeError(f"Malformed literal: {text!r}")
    value, suffix = int(match.group(1)), match.group(2)
    if expected_suffix is not None and suffix != expected_suffix:
        raise ChainDecodeError(f"Expected {expected_suffix} literal, got {text!r}")
    return value, suffix


def is_address(text: str) -> bool:
    return isinstance(text, str) and bool(_ADDRESS_RE.match(text.strip()))


__all__ = [
    "FIELD_MODULUS",
    "U8_MAX",
    "U32_MAX",
    "U64_MAX",
    "field_value",
    "format_field",
    "format_u64",
    "format_u32",
    "format_address",
    "parse_literal",
    "is_address",
]
