"""
Canonical transaction record.

Every provider payload (jsonParsed or json encoding, legacy or versioned) is
normalized into these frozen dataclasses once, at the system boundary. The
analysis engine only ever reads this shape and never mutates it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AccountKey:
    pubkey: str
    signer: bool = False
    writable: bool = False


@dataclass(frozen=True)
class Instruction:
    """One instruction; program_id is None when the payload could not resolve it."""

    program_id: str | None
    accounts: tuple[str, ...] = ()
    data: str | None = None


@dataclass(frozen=True)
class InstructionGroup:
    """Inner instructions invoked by the top-level instruction at `index`."""

    index: int
    instructions: tuple[Instruction, ...] = ()


@dataclass(frozen=True)
class TokenBalanceEntry:
    account_index: int
    mint: str
    ui_amount: float
    owner: str | None = None
    decimals: int | None = None


@dataclass(frozen=True)
class TransactionMeta:
    err: Any = None
    fee: int = 0
    """Fee in lamports."""
    log_messages: tuple[str, ...] = ()
    pre_balances: tuple[int, ...] = ()
    post_balances: tuple[int, ...] = ()
    pre_token_balances: tuple[TokenBalanceEntry, ...] = ()
    post_token_balances: tuple[TokenBalanceEntry, ...] = ()
    inner_instructions: tuple[InstructionGroup, ...] = ()


@dataclass(frozen=True)
class TransactionMessage:
    account_keys: tuple[AccountKey, ...] = ()
    instructions: tuple[Instruction, ...] = ()


@dataclass(frozen=True)
class TransactionRecord:
    """
    Canonical Solana transaction as seen by the classification core.

    Built by normalize_transaction(); immutable.
    """

    signature: str | None
    block_time: int | None
    """Unix timestamp (seconds); None if unavailable."""
    meta: TransactionMeta
    message: TransactionMessage = field(default_factory=TransactionMessage)
    slot: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.meta.err is None
