"""
Involved-program extraction.

Aggregators invoke AMMs through cross-program invocations, so programs called
only from inner instructions must be collected too or protocol attribution
would miss them.
"""

from __future__ import annotations

from backend_solview.solana_listener.models import TransactionRecord


def identify_involved_programs(tx: TransactionRecord) -> frozenset[str]:
    """Distinct program ids of top-level and inner instructions. Never raises on empty lists."""
    programs: set[str] = set()
    for ix in tx.message.instructions:
        if ix.program_id:
            programs.add(ix.program_id)
    for group in tx.meta.inner_instructions:
        for ix in group.instructions:
            if ix.program_id:
                programs.add(ix.program_id)
    return frozenset(programs)


def top_level_programs(tx: TransactionRecord) -> frozenset[str]:
    return frozenset(ix.program_id for ix in tx.message.instructions if ix.program_id)


def find_user_address(tx: TransactionRecord) -> str | None:
    """First signer among the account keys (fee payer), or None."""
    for key in tx.message.account_keys:
        if key.signer and key.pubkey:
            return key.pubkey
    return None
