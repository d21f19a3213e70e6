"""
Backend SolView — read-only aggregation backend for a Solana wallet explorer.

Fetches transactions from RPC providers, normalizes them into one canonical
record, reconstructs balance deltas and classifies the activity (swap, stake,
deposit, transfer, ...) by protocol. Never signs or submits transactions.
"""

__version__ = "0.1.0"
