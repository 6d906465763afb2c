"""
Pre-flight eligibility checks for reveal, settlement and refund.

Each check reads authoritative state fresh from the chain (never the
local cache) and answers whether submitting the operation now would be
accepted. The checks exist to save fees on submissions the program is
certain to reject. They are not the authority on correctness: the
program is. When the chain cannot be read, the checks pass (fail open)
and leave the verdict to the ledger.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from aloe.core.auction.phase import AuctionStatus, Phase, derive_phase
from aloe.core.config import BLOCK_TIME_SECONDS
from aloe.core.errors import ChainDecodeError, ChainReadError
from aloe.utils.format import format_block_duration
from aloe.utils.logger import get_logger

if TYPE_CHECKING:
    from aloe.network.chain_reader import ChainReader
    from aloe.network.decoder import AuctionStruct

logger = get_logger("eligibility")

# Reason codes, stable for callers that branch on them
NOT_FOUND = "not_found"
NOT_ACTIVE = "not_active"
TOO_EARLY = "too_early"
TOO_LATE = "too_late"
NOT_SETTLED = "not_settled"
IS_WINNER = "is_winner"
CANCELLED = "cancelled"
NOT_REVEALED = "not_revealed"


@dataclass
class EligibilityResult:
    """Verdict of a pre-flight check. Never persisted."""
    ok: bool
    reason: Optional[str] = None
    code: Optional[str] = None
    block_height: Optional[int] = None
    commit_deadline: Optional[int] = None
    reveal_deadline: Optional[int] = None
    phase: Optional[Phase] = None
    # True when ok only because the chain could not be read
    unchecked: bool = False

    def __bool__(self) -> bool:
        return self.ok


def _blocks(n: int) -> str:
    return f"{n} block{'s' if n != 1 else ''} ({format_block_duration(n)})"


def _status_reason(status: AuctionStatus) -> Tuple[str, str]:
    if status == AuctionStatus.ENDED:
        return NOT_ACTIVE, "Auction has already been settled"
    if status == AuctionStatus.CANCELLED:
        return CANCELLED, "Auction was cancelled"
    return NOT_ACTIVE, "Auction has not started yet"


class EligibilityChecker:
    """
    Fresh-read validators for the three operations whose acceptance
    depends on timing or outcome.
    """

    def __init__(self, reader: "ChainReader", block_time: int = BLOCK_TIME_SECONDS):
        self.reader = reader
        self.block_time = block_time

    def _fail_open(self, operation: str, auction_id: str, error: Exception) -> EligibilityResult:
        logger.warning(
            f"{operation} check for auction {auction_id} could not read chain state, "
            f"allowing submission: {error}"
        )
        return EligibilityResult(ok=True, unchecked=True)

    async def _read_state(
        self, auction_id: str
    ) -> Tuple[int, Optional["AuctionStruct"]]:
        height, struct = await asyncio.gather(
            self.reader.current_block_height(),
            self.reader.auction_struct(auction_id),
        )
        return height, struct

    @staticmethod
    def _not_found(auction_id: str, height: Optional[int] = None) -> EligibilityResult:
        return EligibilityResult(
            ok=False,
            code=NOT_FOUND,
            reason=f"Auction {auction_id} not found on chain. It may not be confirmed yet.",
            block_height=height,
        )

    # =========================================================================
    # Reveal
    # =========================================================================

    async def check_reveal(self, auction_id: str) -> EligibilityResult:
        """
        Reveal is accepted only inside the reveal window:
        ``commit_deadline < block <= reveal_deadline``.
        """
        try:
            height, struct = await self._read_state(auction_id)
        except (ChainReadError, ChainDecodeError) as e:
            return self._fail_open("reveal", auction_id, e)

        if struct is None:
            return self._not_found(auction_id, height)

        context = dict(
            block_height=height,
            commit_deadline=struct.commit_deadline,
            reveal_deadline=struct.reveal_deadline,
        )

        if not struct.status.is_active:
            code, reason = _status_reason(struct.status)
            if struct.status == AuctionStatus.CREATED:
                suffix = "bids cannot be revealed yet"
            else:
                suffix = "bids can no longer be revealed"
            return EligibilityResult(
                ok=False, code=code, reason=f"{reason}, {suffix}",
                phase=derive_phase(struct.status, height, struct.commit_deadline, struct.reveal_deadline),
                **context,
            )

        phase = derive_phase(struct.status, height, struct.commit_deadline, struct.reveal_deadline)

        if phase == Phase.COMMIT:
            wait = struct.commit_deadline - height + 1
            return EligibilityResult(
                ok=False, code=TOO_EARLY, phase=phase,
                reason=(
                    f"Reveal phase has not started. Commit phase ends at block "
                    f"{struct.commit_deadline}, reveal opens in {_blocks(wait)}"
                ),
                **context,
            )

        if phase == Phase.ENDED:
            late = height - struct.reveal_deadline
            return EligibilityResult(
                ok=False, code=TOO_LATE, phase=phase,
                reason=(
                    f"Reveal phase ended at block {struct.reveal_deadline}, "
                    f"{_blocks(late)} ago"
                ),
                **context,
            )

        left = struct.reveal_deadline - height + 1
        logger.debug(f"Auction {auction_id} in reveal phase, {left} blocks left")
        return EligibilityResult(
            ok=True, phase=phase,
            reason=f"Reveal window open for {_blocks(left)}",
            **context,
        )

    # =========================================================================
    # Settle
    # =========================================================================

    async def check_settle(self, auction_id: str) -> EligibilityResult:
        """
        Settlement is accepted once the auction is active and the block
        height is strictly past the reveal deadline.
        """
        try:
            height, struct = await self._read_state(auction_id)
        except (ChainReadError, ChainDecodeError) as e:
            return self._fail_open("settle", auction_id, e)

        if struct is None:
            return self._not_found(auction_id, height)

        context = dict(
            block_height=height,
            commit_deadline=struct.commit_deadline,
            reveal_deadline=struct.reveal_deadline,
            phase=derive_phase(struct.status, height, struct.commit_deadline, struct.reveal_deadline),
        )

        if not struct.status.is_active:
            code, reason = _status_reason(struct.status)
            return EligibilityResult(ok=False, code=code, reason=reason, **context)

        # Program requires block > reveal_deadline, not >=
        if height <= struct.reveal_deadline:
            wait = struct.reveal_deadline - height + 1
            return EligibilityResult(
                ok=False, code=TOO_EARLY,
                reason=(
                    f"Reveal phase is still open until block {struct.reveal_deadline}. "
                    f"Settlement possible in {_blocks(wait)}"
                ),
                **context,
            )

        return EligibilityResult(ok=True, **context)

    # =========================================================================
    # Refund
    # =========================================================================

    async def check_refund(self, auction_id: str, caller_address: str) -> EligibilityResult:
        """
        Refunds are accepted after settlement for every revealed bidder
        except the winner.
        """
        try:
            struct = await self.reader.auction_struct(auction_id)
        except (ChainReadError, ChainDecodeError) as e:
            return self._fail_open("refund", auction_id, e)

        if struct is None:
            return self._not_found(auction_id)

        context = dict(
            commit_deadline=struct.commit_deadline,
            reveal_deadline=struct.reveal_deadline,
        )

        if struct.status == AuctionStatus.CANCELLED:
            return EligibilityResult(
                ok=False, code=CANCELLED, reason="Auction was cancelled", **context
            )

        if struct.status != AuctionStatus.ENDED:
            return EligibilityResult(
                ok=False, code=NOT_SETTLED,
                reason=(
                    "Auction has not been settled yet. Refunds open after "
                    "settlement; settle the auction first"
                ),
                **context,
            )

        if struct.winner is not None and struct.winner == caller_address:
            return EligibilityResult(
                ok=False, code=IS_WINNER,
                reason="Winners cannot claim refunds: your deposit pays for the item",
                **context,
            )

        return EligibilityResult(ok=True, **context)


__all__ = [
    "EligibilityResult",
    "EligibilityChecker",
    "NOT_FOUND",
    "NOT_ACTIVE",
    "TOO_EARLY",
    "TOO_LATE",
    "NOT_SETTLED",
    "IS_WINNER",
    "CANCELLED",
    "NOT_REVEALED",
]
