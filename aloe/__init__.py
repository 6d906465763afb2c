"""
Aloe - sealed-bid auction client for the Aleo ledger.

A client-side engine for a commit-reveal auction program:
- Bid commitments and the local secret store
- Authoritative chain reads and phase derivation
- Pre-flight eligibility checks
- Exact program call payloads for the wallet
"""

__version__ = "0.1.0"
