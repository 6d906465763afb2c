"""
Auction Client - drives the auction operations end to end.

For every operation the client builds the payload, runs the pre-flight
check where one applies (reveal, settle, refund), hands the payload to
the wallet executor and, only once the executor has accepted it,
updates the secret store and the auction cache.

Only one operation per auction may be in flight at a time. A second
call for the same auction while the first is awaiting the chain or the
wallet raises OperationInProgressError.
"""

import asyncio
import inspect
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple, Union

from aloe.core.auction.cache import AuctionCache, AuctionRecord
from aloe.core.auction.eligibility import NOT_REVEALED, EligibilityChecker, EligibilityResult
from aloe.core.auction.operations import (
    OperationPayload,
    build_cancel_auction,
    build_claim_refund,
    build_create_auction,
    build_place_bid,
    build_reveal_bid,
    build_settle_auction,
    build_shield_credits,
    secret_from_bid,
    select_credits_record,
)
from aloe.core.auction.phase import AuctionStatus, Phase, derive_phase
from aloe.core.auction.commitment import BidSecret
from aloe.core.config import ClientConfig
from aloe.core.errors import (
    AuctionNotFoundError,
    ChainReadError,
    ExecutionError,
    IneligibleError,
    OperationInProgressError,
    SecretNotFoundError,
    ValidationError,
)
from aloe.core.storage.secret_store import SecretStore
from aloe.network.chain_reader import ChainReader
from aloe.utils.format import generate_auction_id
from aloe.utils.logger import get_logger
from aloe.utils.validation import validate_auction_id

logger = get_logger("client")

Executor = Callable[[OperationPayload], Union[Awaitable[Any], Any]]


@dataclass
class SubmissionResult:
    """An operation accepted by the wallet for delivery."""
    transaction_id: str
    payload: OperationPayload


def _transaction_id(response: Any) -> Optional[str]:
    if isinstance(response, str):
        return response or None
    if isinstance(response, dict):
        return response.get("transactionId") or response.get("transaction_id")
    return getattr(response, "transaction_id", None)


class AuctionClient:
    """
    Client-side engine for one wallet address.

    Args:
        reader: Chain Reader for authoritative state
        secrets: Local bid secret store
        cache: Local auction cache
        executor: Wallet execution function; receives an OperationPayload
            and returns (or resolves to) something carrying a transaction id
        caller_address: Address of the connected wallet
        config: Client configuration
    """

    def __init__(
        self,
        reader: ChainReader,
        secrets: SecretStore,
        cache: AuctionCache,
        executor: Executor,
        caller_address: Optional[str] = None,
        config: Optional[ClientConfig] = None,
    ):
        self.config = config or reader.config
        self.reader = reader
        self.secrets = secrets
        self.cache = cache
        self.executor = executor
        self.caller_address = caller_address
        self.checker = EligibilityChecker(reader, block_time=self.config.block_time_seconds)
        self._in_flight = {}

    # =========================================================================
    # Plumbing
    # =========================================================================

    @contextmanager
    def _guard(self, key: str, operation: str):
        running = self._in_flight.get(key)
        if running is not None:
            raise OperationInProgressError(key, running)
        self._in_flight[key] = operation
        try:
            yield
        finally:
            del self._in_flight[key]

    def is_busy(self, auction_id: str) -> bool:
        return str(auction_id) in self._in_flight

    def _require_caller(self) -> str:
        if not self.caller_address:
            raise ValidationError("No wallet address connected")
        return self.caller_address

    async def _submit(self, payload: OperationPayload) -> SubmissionResult:
        logger.info(f"Submitting {payload.program_id}/{payload.function_name}")
        try:
            response = self.executor(payload)
            if inspect.isawaitable(response):
                response = await response
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{payload.function_name} rejected: {e}")
            raise ExecutionError(payload.function_name, str(e)) from e

        tx_id = _transaction_id(response)
        if not tx_id:
            raise ExecutionError(payload.function_name, "Wallet returned no transaction id")

        logger.info(f"{payload.function_name} accepted: {tx_id}")
        return SubmissionResult(transaction_id=tx_id, payload=payload)

    def _require_secret(self, auction_id: str) -> BidSecret:
        secret = self.secrets.get(auction_id)
        if secret is None:
            raise SecretNotFoundError(auction_id)
        return secret

    @staticmethod
    def _ensure(operation: str, result: EligibilityResult) -> None:
        if not result.ok:
            logger.info(f"{operation} blocked: {result.reason}")
            raise IneligibleError(operation, result)

    # =========================================================================
    # Operations
    # =========================================================================

    async def create_auction(
        self,
        item_id: Union[str, int],
        min_bid: int,
        commit_duration: Optional[int] = None,
        reveal_duration: Optional[int] = None,
        auction_id: Optional[str] = None,
        item_name: Optional[str] = None,
    ) -> Tuple[AuctionRecord, SubmissionResult]:
        auctioneer = self._require_caller()
        auction_id = str(auction_id) if auction_id is not None else generate_auction_id()

        payload = build_create_auction(
            auction_id=auction_id,
            item_id=item_id,
            min_bid=min_bid,
            commit_duration=commit_duration,
            reveal_duration=reveal_duration,
            config=self.config,
        )
        with self._guard(auction_id, "create"):
            result = await self._submit(payload)

        record = AuctionRecord(
            id=auction_id,
            item_id=str(item_id),
            auctioneer=auctioneer,
            min_bid=min_bid,
            status=AuctionStatus.ACTIVE,
            commit_duration=payload.metadata["commit_duration"],
            reveal_duration=payload.metadata["reveal_duration"],
            program_version=self.config.program_id,
            item_name=item_name,
        )
        if auction_id in self.cache:
            self.cache.remove(auction_id)
        self.cache.add(record)
        return record, result

    async def place_bid(
        self,
        auction_id: str,
        bid_amount: int,
        deposit: Optional[int] = None,
        credits_record: Optional[str] = None,
        credits_records: Optional[Iterable[Any]] = None,
        salt: Optional[Union[int, str]] = None,
    ) -> SubmissionResult:
        """
        Commit a sealed bid. The secret is stored only after the wallet
        accepts the transaction.
        """
        auction_id = str(auction_id)
        cached = self.cache.get(auction_id)
        min_bid = cached.min_bid if cached is not None else None

        if credits_record is None and credits_records is not None:
            needed = deposit if deposit is not None else bid_amount
            credits_record = select_credits_record(credits_records, needed)
            if credits_record is None:
                raise ValidationError(
                    f"No private credits record holds {needed} microcredits. "
                    "Shield public credits first."
                )

        payload = build_place_bid(
            auction_id=auction_id,
            bid_amount=bid_amount,
            salt=salt,
            deposit=deposit,
            credits_record=credits_record,
            min_bid=min_bid,
            config=self.config,
        )
        # Malformed secrets fail here, before anything is submitted
        secret = secret_from_bid(payload)

        with self._guard(auction_id, "place_bid"):
            if self.secrets.has(auction_id):
                logger.warning(
                    f"Overwriting the stored bid secret for auction {auction_id}"
                )
            result = await self._submit(payload)
            self.secrets.put(auction_id, secret)
            if cached is not None:
                self.cache.update(auction_id, bid_count=cached.bid_count + 1)
        return result

    async def reveal_bid(self, auction_id: str) -> SubmissionResult:
        auction_id = str(auction_id)
        with self._guard(auction_id, "reveal_bid"):
            secret = self._require_secret(auction_id)
            self._ensure("reveal bid", await self.checker.check_reveal(auction_id))

            payload = build_reveal_bid(
                auction_id=auction_id,
                bid_amount=secret.bid_amount,
                salt=secret.salt,
                deposit=secret.deposit,
                config=self.config,
            )
            result = await self._submit(payload)
            self.secrets.mark_revealed(auction_id)
        return result

    async def settle_auction(self, auction_id: str) -> SubmissionResult:
        """
        Settle an auction past its reveal deadline.

        The winning amount and auctioneer come from the chain. If they
        cannot be read the settlement is aborted rather than submitted
        with guessed values.
        """
        auction_id = str(auction_id)
        with self._guard(auction_id, "settle_auction"):
            self._ensure("settle auction", await self.checker.check_settle(auction_id))

            struct, highest = await asyncio.gather(
                self.reader.auction_struct(auction_id),
                self.reader.highest_bid(auction_id),
            )
            if struct is None:
                raise AuctionNotFoundError(auction_id)
            if highest is None:
                raise ChainReadError(
                    f"Highest bid for auction {auction_id} could not be read; not settling"
                )

            payload = build_settle_auction(
                auction_id=auction_id,
                auctioneer=struct.auctioneer,
                winning_amount=highest,
                config=self.config,
            )
            result = await self._submit(payload)
            if auction_id in self.cache:
                self.cache.update(auction_id, status=AuctionStatus.ENDED, winning_bid=highest)
        return result

    async def cancel_auction(self, auction_id: str) -> SubmissionResult:
        auction_id = str(auction_id)
        payload = build_cancel_auction(auction_id, config=self.config)
        with self._guard(auction_id, "cancel_auction"):
            result = await self._submit(payload)
            if auction_id in self.cache:
                self.cache.update(auction_id, status=AuctionStatus.CANCELLED)
        return result

    async def claim_refund(self, auction_id: str) -> SubmissionResult:
        auction_id = str(auction_id)
        caller = self._require_caller()
        with self._guard(auction_id, "claim_refund"):
            secret = self._require_secret(auction_id)
            if not secret.revealed:
                # Only revealed bids hold a refundable deposit
                self._ensure("claim refund", EligibilityResult(
                    ok=False,
                    code=NOT_REVEALED,
                    reason=f"Bid for auction {auction_id} was never revealed. Reveal it first.",
                ))
            self._ensure("claim refund", await self.checker.check_refund(auction_id, caller))

            payload = build_claim_refund(
                auction_id=auction_id,
                bid_amount=secret.bid_amount,
                salt=secret.salt,
                deposit=secret.deposit,
                config=self.config,
            )
            result = await self._submit(payload)
            self.secrets.delete(auction_id)
        return result

    async def shield_credits(
        self, amount: int, recipient_address: Optional[str] = None
    ) -> SubmissionResult:
        recipient = recipient_address or self._require_caller()
        payload = build_shield_credits(recipient, amount, config=self.config)
        with self._guard(f"shield:{recipient}", "shield_credits"):
            return await self._submit(payload)

    # =========================================================================
    # Cache maintenance
    # =========================================================================

    async def import_auction(self, auction_id: str) -> AuctionRecord:
        """Add an auction created elsewhere to the local cache by its id."""
        auction_id = str(auction_id).strip()
        valid, err = validate_auction_id(auction_id)
        if not valid:
            raise ValidationError(err)

        existing = self.cache.get(auction_id)
        if existing is not None:
            logger.info(f"Auction {auction_id} already cached")
            return existing

        with self._guard(auction_id, "import"):
            struct, bid_count = await asyncio.gather(
                self.reader.auction_struct(auction_id),
                self.reader.bid_count(auction_id),
            )
            if struct is None:
                raise AuctionNotFoundError(auction_id)

            record = AuctionRecord.from_chain(
                auction_id, struct, bid_count or 0, program_version=self.config.program_id
            )
            return self.cache.add(record)

    async def refresh(self) -> int:
        return await self.cache.reconcile(self.reader)

    async def current_phase(self, auction_id: str) -> Phase:
        """Fresh phase from chain state; Unknown when it cannot be read."""
        try:
            height, struct = await asyncio.gather(
                self.reader.current_block_height(),
                self.reader.auction_struct(str(auction_id)),
            )
        except ChainReadError as e:
            logger.warning(f"Phase of auction {auction_id} unavailable: {e}")
            return Phase.UNKNOWN
        if struct is None:
            return Phase.UNKNOWN
        return derive_phase(struct.status, height, struct.commit_deadline, struct.reveal_deadline)
