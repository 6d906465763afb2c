"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Bid secrets (salt, amount, deposit per auction)
- The local auction cache
"""

from aloe.core.storage.sqlite_adapter import SQLiteAdapter
from aloe.core.storage.secret_store import SecretStore

__all__ = ["SQLiteAdapter", "SecretStore"]
