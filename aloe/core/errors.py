"""
Exception hierarchy for the Aloe client engine.

Local failures (missing secret, bad parameters) and policy rejections are
raised before anything is submitted. Chain and wallet failures keep the
remote message so callers can surface it verbatim.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from aloe.core.auction.eligibility import EligibilityResult


class AloeError(Exception):
    """Base class for all client engine errors."""


class ConfigError(AloeError):
    """Invalid configuration value."""


class ValidationError(AloeError, ValueError):
    """A builder or client parameter is out of range or malformed."""


class SecretNotFoundError(AloeError):
    """The local bid secret required for this operation does not exist."""

    def __init__(self, auction_id: str):
        self.auction_id = auction_id
        super().__init__(
            f"Bid data for auction {auction_id} not found locally. "
            "Reveal and refund must be done from the same client that placed the bid."
        )


class IneligibleError(AloeError):
    """A pre-flight eligibility check blocked the operation."""

    def __init__(self, operation: str, result: "EligibilityResult"):
        self.operation = operation
        self.result = result
        super().__init__(f"Cannot {operation}: {result.reason}")


class ChainReadError(AloeError):
    """Transient failure reading authoritative chain state."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class ChainDecodeError(AloeError):
    """Chain data did not match the expected literal or struct shape."""


class AuctionNotFoundError(AloeError):
    """No auction with this id exists on chain (or it is not confirmed yet)."""

    def __init__(self, auction_id: str):
        self.auction_id = auction_id
        super().__init__(
            f"Auction {auction_id} not found on chain. It may not be confirmed yet."
        )


class OperationInProgressError(AloeError):
    """Another operation on the same auction is still in flight."""

    def __init__(self, key: str, running: str):
        self.key = key
        self.running = running
        super().__init__(f"Operation '{running}' already in progress for {key}")


class ExecutionError(AloeError):
    """The wallet execution collaborator rejected or failed the submission."""

    def __init__(self, function_name: str, remote_message: str):
        self.function_name = function_name
        self.remote_message = remote_message
        super().__init__(remote_message)


__all__ = [
    "AloeError",
    "ConfigError",
    "ValidationError",
    "SecretNotFoundError",
    "IneligibleError",
    "ChainReadError",
    "ChainDecodeError",
    "AuctionNotFoundError",
    "OperationInProgressError",
    "ExecutionError",
]
