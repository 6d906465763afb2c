"""
Phase derivation for on-chain auctions.

The auction program records a coarse status: one "active" code covers
both the commit and the reveal window. The actual phase has to be
computed from the status plus the current block height and the two
deadlines stored with the auction:

    block <= commit_deadline                    -> Commit
    commit_deadline < block <= reveal_deadline  -> Reveal
    block > reveal_deadline                     -> Ended (not yet settled)

Deadlines are inclusive. An auction past its reveal deadline is ended
for the user even while the chain still reports it active, until
someone submits the settlement. The phase is recomputed on every call
because block height keeps moving.
"""

from enum import Enum, IntEnum
from typing import Optional, Tuple, Union

from aloe.core.config import BLOCK_TIME_SECONDS
from aloe.core.errors import ChainDecodeError


class AuctionStatus(IntEnum):
    """Status codes stored by the auction program."""
    CREATED = 0
    ACTIVE = 1      # commit and reveal windows
    REVEAL = 2      # reserved by the program, never written on chain
    ENDED = 3       # settled
    CANCELLED = 4

    @classmethod
    def from_code(cls, code: int) -> "AuctionStatus":
        try:
            return cls(code)
        except ValueError:
            raise ChainDecodeError(f"Unknown auction status code: {code}")

    @property
    def is_active(self) -> bool:
        return self in (AuctionStatus.ACTIVE, AuctionStatus.REVEAL)


class Phase(str, Enum):
    """Lifecycle phase as seen by the user."""
    CREATED = "Created"
    COMMIT = "Commit"
    REVEAL = "Reveal"
    ENDED = "Ended"
    CANCELLED = "Cancelled"
    UNKNOWN = "Unknown"


PHASE_LABELS = {
    Phase.CREATED: "Created",
    Phase.COMMIT: "Accepting Bids",
    Phase.REVEAL: "Reveal Phase",
    Phase.ENDED: "Ended",
    Phase.CANCELLED: "Cancelled",
    Phase.UNKNOWN: "Unknown",
}

StatusLike = Union[AuctionStatus, int, None]


def _coerce_status(status: StatusLike) -> Optional[AuctionStatus]:
    if status is None or isinstance(status, AuctionStatus):
        return status
    try:
        return AuctionStatus(status)
    except ValueError:
        return None


def derive_phase(
    status: StatusLike,
    current_block: Optional[int],
    commit_deadline: Optional[int],
    reveal_deadline: Optional[int],
) -> Phase:
    """
    Compute the auction's real phase.

    Total and deterministic: unknown status codes and missing heights or
    deadlines give ``Phase.UNKNOWN``, which callers treat as "cannot act
    yet" rather than an error.
    """
    status = _coerce_status(status)

    if status is None:
        return Phase.UNKNOWN
    if status == AuctionStatus.ENDED:
        return Phase.ENDED
    if status == AuctionStatus.CANCELLED:
        return Phase.CANCELLED
    if status == AuctionStatus.CREATED:
        return Phase.CREATED

    # Active: disambiguate with block height
    if current_block is None or commit_deadline is None:
        return Phase.UNKNOWN

    if current_block <= commit_deadline:
        return Phase.COMMIT

    if reveal_deadline is None:
        return Phase.UNKNOWN

    if current_block <= reveal_deadline:
        return Phase.REVEAL

    return Phase.ENDED


def is_settlement_pending(
    status: StatusLike,
    current_block: Optional[int],
    reveal_deadline: Optional[int],
) -> bool:
    """True when the auction is over by height but not settled on chain."""
    status = _coerce_status(status)
    return (
        status is not None
        and status.is_active
        and current_block is not None
        and reveal_deadline is not None
        and current_block > reveal_deadline
    )


def blocks_remaining(
    phase: Phase,
    current_block: Optional[int],
    commit_deadline: Optional[int],
    reveal_deadline: Optional[int],
) -> Optional[int]:
    """Blocks left in the current window, counting the deadline block itself."""
    if current_block is None:
        return None
    if phase == Phase.COMMIT and commit_deadline is not None:
        return commit_deadline - current_block + 1
    if phase == Phase.REVEAL and reveal_deadline is not None:
        return reveal_deadline - current_block + 1
    return None


def format_seconds(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def describe_countdown(
    status: StatusLike,
    current_block: Optional[int],
    commit_deadline: Optional[int],
    reveal_deadline: Optional[int],
    block_time: int = BLOCK_TIME_SECONDS,
) -> Optional[Tuple[str, str]]:
    """
    Timer text for an active auction.

    Returns (label, time_left) such as ("Bidding ends in", "59m 50s"),
    or None when the auction is not in an open window.
    """
    status = _coerce_status(status)
    if status is None or not status.is_active:
        return None

    phase = derive_phase(status, current_block, commit_deadline, reveal_deadline)
    if phase == Phase.ENDED:
        return ("Reveal ends in", "Ended")
    if phase not in (Phase.COMMIT, Phase.REVEAL):
        return ("Bidding ends in", "--:--")

    label = "Bidding ends in" if phase == Phase.COMMIT else "Reveal ends in"
    remaining = blocks_remaining(phase, current_block, commit_deadline, reveal_deadline)
    return (label, format_seconds(remaining * block_time))


__all__ = [
    "AuctionStatus",
    "Phase",
    "PHASE_LABELS",
    "derive_phase",
    "is_settlement_pending",
    "blocks_remaining",
    "describe_countdown",
]
