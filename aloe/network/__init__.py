"""
Aloe Network Module - read access to the Aleo ledger.

Provides mapping and block height reads over the explorer REST API,
the strict decoder for on-chain values and periodic polling.
"""

from aloe.network.decoder import (
    AuctionStruct,
    ZERO_ADDRESS,
    parse_struct,
    decode_auction_struct,
    decode_u64,
    decode_u32,
    decode_height,
)
from aloe.network.chain_reader import ChainReader
from aloe.network.poller import Poller, BlockHeightWatcher, AuctionWatcher

__all__ = [
    # Decoder
    "AuctionStruct",
    "ZERO_ADDRESS",
    "parse_struct",
    "decode_auction_struct",
    "decode_u64",
    "decode_u32",
    "decode_height",
    # Reader
    "ChainReader",
    # Polling
    "Poller",
    "BlockHeightWatcher",
    "AuctionWatcher",
]
