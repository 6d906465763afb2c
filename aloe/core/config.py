"""
Client configuration parameters for Aloe.

Defines the ledger program identifiers, API endpoints, block timing,
auction defaults and the fee schedule used by the operation builders.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from aloe.core.errors import ConfigError


# Program identifiers
PROGRAM_ID = "aloe_auction_v2.aleo"
CREDITS_PROGRAM_ID = "credits.aleo"

# Network
NETWORK = "testnet"
ALEO_API_URL = "https://api.explorer.provable.com/v1"

# Block timing (approximate)
BLOCK_TIME_SECONDS = 10
BLOCKS_PER_MINUTE = 6
BLOCKS_PER_HOUR = 360

# Auction defaults (in blocks)
DEFAULT_COMMIT_DURATION = 360  # ~1 hour
DEFAULT_REVEAL_DURATION = 180  # ~30 minutes

# Minimum bid amount (in microcredits)
MIN_BID_AMOUNT = 1000

# Fee schedule in microcredits. Operations that move value through
# credits.aleo cost more than the ones that only touch auction state.
DEFAULT_FEES: Dict[str, int] = {
    "create_auction": 100_000,
    "cancel_auction": 100_000,
    "transfer_public_to_private": 100_000,
    "place_bid": 500_000,
    "reveal_bid": 500_000,
    "settle_auction": 500_000,
    "claim_refund": 500_000,
}

# Storage key prefixes
BID_KEY_PREFIX = "aloe_bid_"
AUCTION_KEY_PREFIX = "aloe_auction_"


@dataclass
class ClientConfig:
    """Client-side configuration parameters"""

    # Ledger program
    program_id: str = PROGRAM_ID
    credits_program_id: str = CREDITS_PROGRAM_ID

    # Remote API
    api_url: str = ALEO_API_URL
    network: str = NETWORK
    request_timeout: float = 15.0

    # Mappings read from the auction program
    auctions_mapping: str = "auctions"
    highest_bid_mapping: str = "highest_bids"
    bid_count_mapping: str = "bid_counts"

    # Timing
    block_time_seconds: int = BLOCK_TIME_SECONDS
    poll_interval: float = float(BLOCK_TIME_SECONDS)

    # Auction defaults
    default_commit_duration: int = DEFAULT_COMMIT_DURATION
    default_reveal_duration: int = DEFAULT_REVEAL_DURATION
    min_bid_amount: int = MIN_BID_AMOUNT

    fees: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_FEES))

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")
    db_name: str = "aloe.db"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()
        self.log_dir = Path(self.log_dir).expanduser()

    def ensure_dirs(self):
        """Create the data directory"""
        self.data_dir.mkdir(exist_ok=True, parents=True)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def network_url(self) -> str:
        """Base URL for network-scoped endpoints."""
        return f"{self.api_url.rstrip('/')}/{self.network}"

    def fee_for(self, function_name: str) -> int:
        return self.fees[function_name]


def _env_number(name: str, cast, default):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def load_config(
    env_file: Optional[str] = None,
    data_dir: Optional[str] = None,
) -> ClientConfig:
    """
    Load configuration from the environment (and an optional .env file).

    Args:
        env_file: Optional path to a .env file
        data_dir: Overrides ALOE_DATA_DIR when given

    Returns:
        ClientConfig instance
    """
    if env_file:
        if not Path(env_file).exists():
            raise ConfigError(f"Env file not found: {env_file}")
        load_dotenv(env_file)
    else:
        load_dotenv()

    poll_interval = _env_number("ALOE_POLL_INTERVAL", float, float(BLOCK_TIME_SECONDS))
    if poll_interval <= 0:
        raise ConfigError("ALOE_POLL_INTERVAL must be positive")

    return ClientConfig(
        program_id=os.getenv("ALOE_PROGRAM_ID", PROGRAM_ID),
        api_url=os.getenv("ALOE_API_URL", ALEO_API_URL),
        network=os.getenv("ALOE_NETWORK", NETWORK),
        request_timeout=_env_number("ALOE_REQUEST_TIMEOUT", float, 15.0),
        poll_interval=poll_interval,
        data_dir=Path(data_dir or os.getenv("ALOE_DATA_DIR", "data")),
        log_dir=Path(os.getenv("ALOE_LOG_DIR", "logs")),
    )
