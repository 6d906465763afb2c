"""
Aloe CLI - Command Line Interface for the sealed-bid auction client

Main entry point for all CLI commands. The CLI reads chain state,
manages the local secret store and auction cache, and prints the exact
payloads a wallet would submit. It never submits anything itself.
"""

import asyncio
import json
import click
from pathlib import Path

from aloe.core.errors import AloeError
from aloe.utils.logger import setup_logging, get_logger

logger = get_logger("cli")


def run_async(coro):
    """Run a coroutine to completion, turning client errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except AloeError as e:
        raise click.ClickException(str(e))


def open_stores(ctx):
    """Open the SQLite-backed secret store and auction cache once per invocation."""
    from aloe.core.auction import AuctionCache
    from aloe.core.storage import SQLiteAdapter, SecretStore

    if "secrets" not in ctx.obj:
        config = ctx.obj["config"]
        config.ensure_dirs()
        adapter = SQLiteAdapter(config.db_path)
        ctx.obj["adapter"] = adapter
        ctx.obj["secrets"] = SecretStore(adapter)
        ctx.obj["cache"] = AuctionCache(adapter)
        ctx.call_on_close(adapter.close)
    return ctx.obj["secrets"], ctx.obj["cache"]


def echo_payload(payload):
    click.echo(json.dumps(payload.to_dict(), indent=2))


def echo_result(result):
    if result.ok:
        mark = "⚠️ " if result.unchecked else "✓"
        note = "chain state unavailable, the ledger will decide" if result.unchecked else (result.reason or "eligible")
        click.echo(f"{mark} Allowed: {note}")
    else:
        click.echo(f"❌ Blocked ({result.code}): {result.reason}")
    if result.block_height is not None:
        click.echo(f"  Block: {result.block_height}")
    if result.commit_deadline is not None:
        click.echo(f"  Commit deadline: {result.commit_deadline}")
        click.echo(f"  Reveal deadline: {result.reveal_deadline}")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (overrides ALOE_DATA_DIR)")
@click.option("--env-file", default=None, help="Path to a .env file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, env_file):
    """Aloe - sealed-bid auctions on Aleo"""
    import logging
    from aloe.core.config import load_config

    ctx.ensure_object(dict)
    try:
        config = load_config(env_file=env_file, data_dir=data_dir)
    except AloeError as e:
        raise click.ClickException(str(e))
    ctx.obj["config"] = config

    # --debug also keeps a full trace under the configured log directory
    if debug:
        setup_logging(level=logging.DEBUG, log_dir=config.log_dir, log_to_file=True)
    else:
        setup_logging(level=logging.WARNING)


# =============================================================================
# Chain Commands
# =============================================================================


@cli.command("salt")
def salt():
    """Generate a fresh bid salt"""
    from aloe.core.auction import generate_salt
    from aloe.core.encoding import format_field

    click.echo(format_field(generate_salt(), "salt"))


@cli.command("height")
@click.pass_context
def height(ctx):
    """Show the latest block height"""
    from aloe.network import ChainReader

    async def fetch():
        async with ChainReader(ctx.obj["config"]) as reader:
            return await reader.current_block_height()

    click.echo(run_async(fetch()))


@cli.group()
def auction():
    """On-chain auction inspection"""
    pass


@auction.command("show")
@click.argument("auction_id")
@click.pass_context
def auction_show(ctx, auction_id):
    """Show the on-chain state of an auction"""
    from aloe.core.auction import PHASE_LABELS, derive_phase, describe_countdown
    from aloe.network import ChainReader
    from aloe.utils.format import format_credits, truncate_address

    config = ctx.obj["config"]

    async def fetch():
        async with ChainReader(config) as reader:
            return await asyncio.gather(
                reader.current_block_height(),
                reader.auction_struct(auction_id),
                reader.bid_count(auction_id),
                reader.highest_bid(auction_id),
            )

    block, struct, bids, highest = run_async(fetch())
    if struct is None:
        raise click.ClickException(f"Auction {auction_id} not found on chain")

    phase = derive_phase(struct.status, block, struct.commit_deadline, struct.reveal_deadline)
    click.echo(f"Auction {auction_id}")
    click.echo("-" * 40)
    click.echo(f"  Auctioneer: {truncate_address(struct.auctioneer)}")
    click.echo(f"  Item: {struct.item_id}")
    click.echo(f"  Minimum bid: {format_credits(struct.min_bid)}")
    click.echo(f"  Phase: {PHASE_LABELS[phase]} (status {struct.status.name})")
    click.echo(f"  Block: {block}  commit <= {struct.commit_deadline}  reveal <= {struct.reveal_deadline}")
    click.echo(f"  Bids: {bids if bids is not None else '?'}")
    if highest:
        click.echo(f"  Highest revealed bid: {format_credits(highest)}")
    if struct.winner:
        click.echo(f"  Winner: {truncate_address(struct.winner)}")

    countdown = describe_countdown(
        struct.status, block, struct.commit_deadline, struct.reveal_deadline,
        block_time=config.block_time_seconds,
    )
    if countdown:
        label, left = countdown
        click.echo(f"  {label}: {left}")


@auction.command("phase")
@click.argument("auction_id")
@click.pass_context
def auction_phase(ctx, auction_id):
    """Print the current phase of an auction"""
    from aloe.core.auction import derive_phase
    from aloe.core.errors import ChainReadError
    from aloe.network import ChainReader

    async def fetch():
        async with ChainReader(ctx.obj["config"]) as reader:
            try:
                block, struct = await asyncio.gather(
                    reader.current_block_height(),
                    reader.auction_struct(auction_id),
                )
            except ChainReadError as e:
                logger.warning(f"Chain unavailable: {e}")
                return None, None
            return block, struct

    block, struct = run_async(fetch())
    if struct is None:
        click.echo("Unknown")
        return
    click.echo(derive_phase(struct.status, block, struct.commit_deadline, struct.reveal_deadline).value)


# =============================================================================
# Eligibility Commands
# =============================================================================


@cli.group()
def check():
    """Pre-flight eligibility checks"""
    pass


def _run_check(ctx, method: str, *args):
    from aloe.core.auction import EligibilityChecker
    from aloe.network import ChainReader

    config = ctx.obj["config"]

    async def run():
        async with ChainReader(config) as reader:
            checker = EligibilityChecker(reader, block_time=config.block_time_seconds)
            return await getattr(checker, method)(*args)

    result = run_async(run())
    echo_result(result)
    if not result.ok:
        ctx.exit(1)


@check.command("reveal")
@click.argument("auction_id")
@click.pass_context
def check_reveal(ctx, auction_id):
    """Can a bid be revealed now?"""
    _run_check(ctx, "check_reveal", auction_id)


@check.command("settle")
@click.argument("auction_id")
@click.pass_context
def check_settle(ctx, auction_id):
    """Can the auction be settled now?"""
    _run_check(ctx, "check_settle", auction_id)


@check.command("refund")
@click.argument("auction_id")
@click.argument("address")
@click.pass_context
def check_refund(ctx, auction_id, address):
    """Can ADDRESS claim a refund now?"""
    _run_check(ctx, "check_refund", auction_id, address)


# =============================================================================
# Build Commands
# =============================================================================


@cli.group()
def build():
    """Print the payload for a program call (nothing is submitted)"""
    pass


def _build(builder, **kwargs):
    try:
        return builder(**kwargs)
    except AloeError as e:
        raise click.ClickException(str(e))


@build.command("create")
@click.option("--id", "auction_id", default=None, help="Auction id (generated if omitted)")
@click.option("--item", "item_id", required=True, help="Item id (numeric)")
@click.option("--min-bid", required=True, type=int, help="Minimum bid in microcredits")
@click.option("--commit", "commit_duration", default=None, type=int, help="Commit phase length in blocks")
@click.option("--reveal", "reveal_duration", default=None, type=int, help="Reveal phase length in blocks")
@click.pass_context
def build_create(ctx, auction_id, item_id, min_bid, commit_duration, reveal_duration):
    """create_auction payload"""
    from aloe.core.auction import build_create_auction
    from aloe.utils.format import generate_auction_id

    echo_payload(_build(
        build_create_auction,
        auction_id=auction_id or generate_auction_id(),
        item_id=item_id,
        min_bid=min_bid,
        commit_duration=commit_duration,
        reveal_duration=reveal_duration,
        config=ctx.obj["config"],
    ))


@build.command("bid")
@click.argument("auction_id")
@click.option("--amount", required=True, type=int, help="Bid in microcredits")
@click.option("--deposit", default=None, type=int, help="Deposit in microcredits (defaults to the bid)")
@click.option("--salt", "salt_value", default=None, type=int, help="Salt (generated if omitted)")
@click.option("--record", "credits_record", default=None, help="Private credits record plaintext")
@click.pass_context
def build_bid(ctx, auction_id, amount, deposit, salt_value, credits_record):
    """place_bid payload (the secret is not stored)"""
    from aloe.core.auction import build_place_bid

    payload = _build(
        build_place_bid,
        auction_id=auction_id,
        bid_amount=amount,
        salt=salt_value,
        deposit=deposit,
        credits_record=credits_record,
        config=ctx.obj["config"],
    )
    echo_payload(payload)
    click.echo("⚠️  Keep the salt: it is required to reveal this bid.", err=True)


def _secret_or_options(ctx, auction_id, amount, salt_value, deposit):
    if amount is not None and salt_value is not None:
        return amount, salt_value, deposit
    secrets, _ = open_stores(ctx)
    secret = secrets.get(auction_id)
    if secret is None:
        raise click.ClickException(
            f"No stored bid for auction {auction_id}; pass --amount and --salt"
        )
    return secret.bid_amount, secret.salt, secret.deposit


@build.command("reveal")
@click.argument("auction_id")
@click.option("--amount", default=None, type=int, help="Committed bid (read from the secret store if omitted)")
@click.option("--salt", "salt_value", default=None, type=int, help="Committed salt")
@click.option("--deposit", default=None, type=int, help="Committed deposit")
@click.pass_context
def build_reveal(ctx, auction_id, amount, salt_value, deposit):
    """reveal_bid payload"""
    from aloe.core.auction import build_reveal_bid

    amount, salt_value, deposit = _secret_or_options(ctx, auction_id, amount, salt_value, deposit)
    echo_payload(_build(
        build_reveal_bid,
        auction_id=auction_id,
        bid_amount=amount,
        salt=salt_value,
        deposit=deposit,
        config=ctx.obj["config"],
    ))


@build.command("settle")
@click.argument("auction_id")
@click.option("--auctioneer", default=None, help="Auctioneer address (read from chain if omitted)")
@click.option("--winning", default=None, type=int, help="Winning bid (read from chain if omitted)")
@click.pass_context
def build_settle(ctx, auction_id, auctioneer, winning):
    """settle_auction payload"""
    from aloe.core.auction import build_settle_auction
    from aloe.network import ChainReader

    config = ctx.obj["config"]

    if auctioneer is None or winning is None:
        async def fetch():
            async with ChainReader(config) as reader:
                return await asyncio.gather(
                    reader.auction_struct(auction_id),
                    reader.highest_bid(auction_id),
                )

        struct, highest = run_async(fetch())
        if struct is None:
            raise click.ClickException(f"Auction {auction_id} not found on chain")
        if highest is None:
            raise click.ClickException("Highest bid could not be read; pass --winning")
        auctioneer = auctioneer or struct.auctioneer
        winning = highest if winning is None else winning

    echo_payload(_build(
        build_settle_auction,
        auction_id=auction_id,
        auctioneer=auctioneer,
        winning_amount=winning,
        config=config,
    ))


@build.command("cancel")
@click.argument("auction_id")
@click.pass_context
def build_cancel(ctx, auction_id):
    """cancel_auction payload"""
    from aloe.core.auction import build_cancel_auction

    echo_payload(_build(build_cancel_auction, auction_id=auction_id, config=ctx.obj["config"]))


@build.command("refund")
@click.argument("auction_id")
@click.option("--amount", default=None, type=int, help="Committed bid (read from the secret store if omitted)")
@click.option("--salt", "salt_value", default=None, type=int, help="Committed salt")
@click.option("--deposit", default=None, type=int, help="Committed deposit")
@click.pass_context
def build_refund(ctx, auction_id, amount, salt_value, deposit):
    """claim_refund payload"""
    from aloe.core.auction import build_claim_refund

    amount, salt_value, deposit = _secret_or_options(ctx, auction_id, amount, salt_value, deposit)
    echo_payload(_build(
        build_claim_refund,
        auction_id=auction_id,
        bid_amount=amount,
        salt=salt_value,
        deposit=deposit,
        config=ctx.obj["config"],
    ))


@build.command("shield")
@click.argument("recipient")
@click.option("--amount", required=True, type=int, help="Microcredits to make private")
@click.pass_context
def build_shield(ctx, recipient, amount):
    """credits.aleo/transfer_public_to_private payload"""
    from aloe.core.auction import build_shield_credits

    echo_payload(_build(
        build_shield_credits,
        recipient_address=recipient,
        amount=amount,
        config=ctx.obj["config"],
    ))


# =============================================================================
# Secret Store Commands
# =============================================================================


@cli.group("secrets")
def secrets_group():
    """Locally stored bid secrets"""
    pass


@secrets_group.command("list")
@click.pass_context
def secrets_list(ctx):
    """List auctions with a stored bid"""
    from aloe.utils.format import format_credits

    secrets, _ = open_stores(ctx)
    ids = secrets.list_auction_ids()
    if not ids:
        click.echo("No stored bids.")
        return
    for auction_id in ids:
        secret = secrets.get(auction_id)
        state = "revealed" if secret.revealed else "sealed"
        click.echo(f"  {auction_id}: {format_credits(secret.bid_amount)} ({state})")


@secrets_group.command("show")
@click.argument("auction_id")
@click.pass_context
def secrets_show(ctx, auction_id):
    """Show the stored bid for an auction"""
    secrets, _ = open_stores(ctx)
    secret = secrets.get(auction_id)
    if secret is None:
        raise click.ClickException(f"No stored bid for auction {auction_id}")
    click.echo(json.dumps(secret.to_dict(), indent=2))


@secrets_group.command("forget")
@click.argument("auction_id")
@click.confirmation_option(prompt="Without the secret the bid can never be revealed or refunded. Continue?")
@click.pass_context
def secrets_forget(ctx, auction_id):
    """Delete the stored bid for an auction"""
    secrets, _ = open_stores(ctx)
    secrets.delete(auction_id)
    click.echo(f"✓ Forgot bid for auction {auction_id}")


# =============================================================================
# Cache Commands
# =============================================================================


@cli.group()
def cache():
    """Local auction cache"""
    pass


@cache.command("list")
@click.pass_context
def cache_list(ctx):
    """List cached auctions, newest first"""
    from aloe.utils.format import format_credits

    _, auctions = open_stores(ctx)
    records = auctions.list()
    if not records:
        click.echo("No cached auctions.")
        return
    for record in records:
        origin = " (imported)" if record.imported else ""
        click.echo(
            f"  {record.id}: {record.item_name} - {record.status.name}, "
            f"min {format_credits(record.min_bid)}, {record.bid_count} bids{origin}"
        )


@cache.command("import")
@click.argument("auction_id")
@click.pass_context
def cache_import(ctx, auction_id):
    """Import an auction created elsewhere by its id"""
    from aloe.core.client import AuctionClient
    from aloe.network import ChainReader

    secrets, auctions = open_stores(ctx)

    async def run():
        async with ChainReader(ctx.obj["config"]) as reader:
            client = AuctionClient(reader, secrets, auctions, executor=_no_executor)
            return await client.import_auction(auction_id)

    record = run_async(run())
    click.echo(f"✓ Imported auction {record.id} ({record.status.name}, {record.bid_count} bids)")


@cache.command("refresh")
@click.pass_context
def cache_refresh(ctx):
    """Reconcile cached auctions with the chain"""
    from aloe.network import ChainReader

    _, auctions = open_stores(ctx)

    async def run():
        async with ChainReader(ctx.obj["config"]) as reader:
            return await auctions.reconcile(reader)

    updated = run_async(run())
    click.echo(f"✓ Refreshed {updated}/{len(auctions)} auctions")


def _no_executor(payload):
    raise click.ClickException("The CLI does not submit transactions")


if __name__ == "__main__":
    cli()
