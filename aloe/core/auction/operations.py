"""
Operation builders for the auction program.

Pure functions that turn typed parameters into the exact payload the
wallet submits: program id, function name, ordered input literals and
fee. Nothing here touches the network or local storage.

Bid, reveal and refund share one input layout
``[auction_id, bid_amount, salt, deposit]``. The program recomputes the
bid commitment from these raw fields at reveal and refund time, so they
must be encoded exactly as they were at commit time.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from aloe.core.auction.commitment import BidSecret, generate_salt
from aloe.core.config import ClientConfig
from aloe.core.encoding import field_value, format_address, format_field, format_u32, format_u64
from aloe.core.errors import ValidationError
from aloe.utils.logger import get_logger
from aloe.utils.validation import (
    validate_amount,
    validate_auction_id,
    validate_bid,
    validate_duration,
)

logger = get_logger("operations")

_DEFAULT_CONFIG = ClientConfig()

_MICROCREDITS_RE = re.compile(r"microcredits:\s*(\d+)u64")


def _config(config: Optional[ClientConfig]) -> ClientConfig:
    return config if config is not None else _DEFAULT_CONFIG


def _check(result) -> None:
    valid, err = result
    if not valid:
        raise ValidationError(err)


@dataclass
class OperationPayload:
    """A ready-to-submit program call."""
    program_id: str
    function_name: str
    inputs: List[str]
    fee: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_transaction(self) -> Dict[str, Any]:
        """Shape expected by the wallet execution call."""
        return {
            "program": self.program_id,
            "function": self.function_name,
            "inputs": list(self.inputs),
            "fee": self.fee,
            "privateFee": False,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "programId": self.program_id,
            "functionName": self.function_name,
            "inputs": list(self.inputs),
            "fee": self.fee,
            "metadata": {k: str(v) for k, v in self.metadata.items()},
        }


def _payload(config: ClientConfig, function_name: str, inputs: List[str],
             program_id: Optional[str] = None, **metadata) -> OperationPayload:
    payload = OperationPayload(
        program_id=program_id or config.program_id,
        function_name=function_name,
        inputs=inputs,
        fee=config.fee_for(function_name),
        metadata=metadata,
    )
    logger.debug(f"Built {payload.program_id}/{function_name} with {len(inputs)} inputs")
    return payload


def _bid_inputs(auction_id, bid_amount: int, salt: int, deposit: int) -> List[str]:
    return [
        format_field(auction_id, "auction_id"),
        format_u64(bid_amount, "bid_amount"),
        format_field(salt, "salt"),
        format_u64(deposit, "deposit"),
    ]


# =============================================================================
# Builders
# =============================================================================


def build_create_auction(
    auction_id: Union[str, int],
    item_id: Union[str, int],
    min_bid: int,
    commit_duration: Optional[int] = None,
    reveal_duration: Optional[int] = None,
    config: Optional[ClientConfig] = None,
) -> OperationPayload:
    """Open a new auction. Durations are in blocks."""
    config = _config(config)
    commit_duration = commit_duration if commit_duration is not None else config.default_commit_duration
    reveal_duration = reveal_duration if reveal_duration is not None else config.default_reveal_duration

    _check(validate_auction_id(auction_id))
    _check(validate_auction_id(item_id, "item_id"))
    _check(validate_amount(min_bid, "min_bid"))
    _check(validate_duration(commit_duration, "commit_duration"))
    _check(validate_duration(reveal_duration, "reveal_duration"))

    inputs = [
        format_field(auction_id, "auction_id"),
        format_field(item_id, "item_id"),
        format_u64(min_bid, "min_bid"),
        format_u32(commit_duration, "commit_duration"),
        format_u32(reveal_duration, "reveal_duration"),
    ]
    return _payload(
        config, "create_auction", inputs,
        auction_id=str(auction_id),
        commit_duration=commit_duration,
        reveal_duration=reveal_duration,
    )


def build_place_bid(
    auction_id: Union[str, int],
    bid_amount: int,
    salt: Optional[Union[int, str]] = None,
    deposit: Optional[int] = None,
    credits_record: Optional[str] = None,
    min_bid: Optional[int] = None,
    config: Optional[ClientConfig] = None,
) -> OperationPayload:
    """
    Commit a sealed bid.

    A fresh salt is generated when none is given, and the deposit
    defaults to the bid amount. Both are returned in ``metadata`` so the
    caller can store the secret once the submission is accepted.
    """
    config = _config(config)
    deposit = bid_amount if deposit is None else deposit
    # Metadata must carry the int the secret store expects, whatever form was passed in
    salt = generate_salt() if salt is None else field_value(salt, "salt")

    _check(validate_auction_id(auction_id))
    _check(validate_bid(bid_amount, deposit, min_bid))

    inputs = _bid_inputs(auction_id, bid_amount, salt, deposit)
    if credits_record is not None:
        # Private credits record pays the deposit without revealing the sender
        inputs.append(credits_record)

    return _payload(
        config, "place_bid", inputs,
        auction_id=str(auction_id),
        bid_amount=bid_amount,
        salt=salt,
        deposit=deposit,
    )


def build_reveal_bid(
    auction_id: Union[str, int],
    bid_amount: int,
    salt: int,
    deposit: Optional[int] = None,
    config: Optional[ClientConfig] = None,
) -> OperationPayload:
    """Reveal a sealed bid from its raw committed fields."""
    config = _config(config)
    deposit = bid_amount if deposit is None else deposit
    salt = field_value(salt, "salt")

    _check(validate_auction_id(auction_id))
    _check(validate_bid(bid_amount, deposit))

    return _payload(
        config, "reveal_bid", _bid_inputs(auction_id, bid_amount, salt, deposit),
        auction_id=str(auction_id),
    )


def build_settle_auction(
    auction_id: Union[str, int],
    auctioneer: str,
    winning_amount: int,
    config: Optional[ClientConfig] = None,
) -> OperationPayload:
    """Settle after the reveal deadline, paying the winning bid to the auctioneer."""
    config = _config(config)
    _check(validate_auction_id(auction_id))
    _check(validate_amount(winning_amount, "winning_amount"))

    inputs = [
        format_field(auction_id, "auction_id"),
        format_address(auctioneer),
        format_u64(winning_amount, "winning_amount"),
    ]
    return _payload(config, "settle_auction", inputs, auction_id=str(auction_id))


def build_cancel_auction(
    auction_id: Union[str, int],
    config: Optional[ClientConfig] = None,
) -> OperationPayload:
    config = _config(config)
    _check(validate_auction_id(auction_id))
    return _payload(
        config, "cancel_auction", [format_field(auction_id, "auction_id")],
        auction_id=str(auction_id),
    )


def build_claim_refund(
    auction_id: Union[str, int],
    bid_amount: int,
    salt: int,
    deposit: Optional[int] = None,
    config: Optional[ClientConfig] = None,
) -> OperationPayload:
    """Reclaim the deposit of a losing revealed bid."""
    config = _config(config)
    deposit = bid_amount if deposit is None else deposit
    salt = field_value(salt, "salt")

    _check(validate_auction_id(auction_id))
    _check(validate_bid(bid_amount, deposit))

    return _payload(
        config, "claim_refund", _bid_inputs(auction_id, bid_amount, salt, deposit),
        auction_id=str(auction_id),
    )


def build_shield_credits(
    recipient_address: str,
    amount: int,
    config: Optional[ClientConfig] = None,
) -> OperationPayload:
    """Convert public credits into a private record usable for bidding."""
    config = _config(config)
    _check(validate_amount(amount, "amount"))
    if amount == 0:
        raise ValidationError("amount must be positive")

    inputs = [format_address(recipient_address), format_u64(amount, "amount")]
    return _payload(
        config, "transfer_public_to_private", inputs,
        program_id=config.credits_program_id,
    )


# =============================================================================
# Helpers
# =============================================================================


def secret_from_bid(payload: OperationPayload) -> BidSecret:
    """The secret to persist once a place_bid payload has been accepted."""
    if payload.function_name != "place_bid":
        raise ValueError(f"Not a place_bid payload: {payload.function_name}")
    meta = payload.metadata
    return BidSecret(
        auction_id=meta["auction_id"],
        bid_amount=meta["bid_amount"],
        salt=meta["salt"],
        deposit=meta["deposit"],
    )


def _record_text(record: Any) -> Optional[str]:
    if isinstance(record, str):
        return record
    if isinstance(record, dict):
        return record.get("plaintext") or record.get("data")
    return None


def select_credits_record(records: Iterable[Any], required_amount: int) -> Optional[str]:
    """
    Pick the first private credits record holding at least
    ``required_amount`` microcredits. Records are plaintext strings or
    dicts with a ``plaintext``/``data`` entry.
    """
    for record in records or []:
        text = _record_text(record)
        if not text:
            continue
        match = _MICROCREDITS_RE.search(text)
        if match and int(match.group(1)) >= required_amount:
            return text
    return None


__all__ = [
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
]
