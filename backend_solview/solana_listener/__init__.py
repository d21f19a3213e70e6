"""
Solana transaction ingestion package.

Normalizes raw provider payloads into the canonical TransactionRecord
consumed by the analysis engine.
"""

from backend_solview.solana_listener.models import (
    AccountKey,
    Instruction,
    InstructionGroup,
    TokenBalanceEntry,
    TransactionMessage,
    TransactionMeta,
    TransactionRecord,
)
from backend_solview.solana_listener.normalizer import normalize_transaction

__all__ = [
    "AccountKey",
    "Instruction",
    "InstructionGroup",
    "TokenBalanceEntry",
    "TransactionMessage",
    "TransactionMeta",
    "TransactionRecord",
    "normalize_transaction",
]
