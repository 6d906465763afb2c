"""
Aloe Auction Module.

This module provides the client side of the sealed-bid auction:
- Bid commitments (salt generation, stored secrets)
- Phase derivation from on-chain status and deadlines
- Pre-flight eligibility checks
- Program call builders
- Local auction cache
"""

from aloe.core.auction.commitment import BidSecret, generate_salt, SALT_BYTES

from aloe.core.auction.phase import (
    AuctionStatus,
    Phase,
    PHASE_LABELS,
    derive_phase,
    is_settlement_pending,
    blocks_remaining,
    describe_countdown,
)

from aloe.core.auction.eligibility import EligibilityChecker, EligibilityResult

from aloe.core.auction.operations import (
    OperationPayload,
    build_create_auction,
    build_place_bid,
    build_reveal_bid,
    build_settle_auction,
    build_cancel_auction,
    build_claim_refund,
    build_shield_credits,
    secret_from_bid,
    select_credits_record,
)

from aloe.core.auction.cache import AuctionCache, AuctionRecord

__all__ = [
    # Commitment
    "BidSecret",
    "generate_salt",
    "SALT_BYTES",
    # Phase
    "AuctionStatus",
    "Phase",
    "PHASE_LABELS",
    "derive_phase",
    "is_settlement_pending",
    "blocks_remaining",
    "describe_countdown",
    # Eligibility
    "EligibilityChecker",
    "EligibilityResult",
    # Operations
    "OperationPayload",
    "build_create_auction",
    "build_place_bid",
    "build_reveal_bid",
    "build_settle_auction",
    "build_cancel_auction",
    "build_claim_refund",
    "build_shield_credits",
    "secret_from_bid",
    "select_credits_record",
    # Cache
    "AuctionCache",
    "AuctionRecord",
]
