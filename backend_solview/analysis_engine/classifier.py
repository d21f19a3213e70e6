"""
Transaction type and protocol classification.

Both functions are pure and total: they always return a value and fall back
to "unknown" / "Unknown Protocol" for anything they do not recognize. Order of
checks matters in both; it is pinned by tests.
"""

from __future__ import annotations

import re
from typing import AbstractSet, Iterable

from backend_solview.analysis_engine import registry as reg
from backend_solview.analysis_engine.models import (
    TYPE_ACCOUNT_CREATION,
    TYPE_ADD_LIQUIDITY,
    TYPE_BORROW,
    TYPE_DEPOSIT,
    TYPE_REMOVE_LIQUIDITY,
    TYPE_REPAY,
    TYPE_STAKE,
    TYPE_SWAP,
    TYPE_TRANSFER,
    TYPE_UNKNOWN,
    TYPE_UNSTAKE,
    TYPE_WITHDRAW,
    UNKNOWN_PROTOCOL,
)
from backend_solview.analysis_engine.registry import ProgramRegistry

PROTOCOL_JUPITER = "Jupiter"
PROTOCOL_RAYDIUM = "Raydium"
PROTOCOL_ORCA = "Orca"
PROTOCOL_SOLEND = "Solend"
PROTOCOL_MARINADE = "Marinade Finance"
PROTOCOL_LIDO = "Lido"
PROTOCOL_SPL_TOKEN = "SPL Token"
PROTOCOL_SYSTEM = "System Program"

# Aggregators first: a Jupiter route through Raydium is attributed to Jupiter
PROTOCOL_PRIORITY: tuple[tuple[str, tuple[str, ...]], ...] = (
    (PROTOCOL_JUPITER, (reg.JUPITER_V6, reg.JUPITER_V4)),
    (PROTOCOL_RAYDIUM, (reg.RAYDIUM_AMM, reg.RAYDIUM_CLMM)),
    (PROTOCOL_ORCA, (reg.ORCA_WHIRLPOOL, reg.ORCA_SWAP)),
    (PROTOCOL_SOLEND, (reg.SOLEND,)),
    (PROTOCOL_MARINADE, (reg.MARINADE,)),
    (PROTOCOL_LIDO, (reg.LIDO,)),
)

LIQUID_STAKING_KEYS = (reg.MARINADE, reg.LIDO)

_SWAP = re.compile(r"Instruction: Swap")
_DEPOSIT = re.compile(r"Instruction: (Deposit|Supply)")
_WITHDRAW = re.compile(r"Instruction: Withdraw")
_ADD_LIQUIDITY = re.compile(r"Instruction: (AddLiquidity|DepositAllTokenTypes)")
_REMOVE_LIQUIDITY = re.compile(r"Instruction: (RemoveLiquidity|WithdrawAllTokenTypes)")
_STAKE = re.compile(r"Instruction: Stake")
_UNSTAKE = re.compile(r"Instruction: (Unstake|Withdraw)")
_BORROW = re.compile(r"Instruction: Borrow")
_REPAY = re.compile(r"Instruction: Repay")
_TRANSFER = re.compile(r"Instruction: Transfer")
_CREATE_ACCOUNT = re.compile(r"Instruction: CreateAccount")


def _logs_match(logs: Iterable[str], pattern: re.Pattern[str]) -> bool:
    return any(pattern.search(line) for line in logs)


def determine_transaction_type(
    logs: Iterable[str],
    program_ids: AbstractSet[str],
    registry: ProgramRegistry,
) -> str:
    """
    Semantic type from instruction logs, first match wins.

    Logs take precedence over programs; programs only disambiguate a
    Withdraw, which is an unstake when a liquid-staking program took part.
    """
    logs = list(logs)
    liquid_staking = registry.has_any(program_ids, *LIQUID_STAKING_KEYS)

    if _logs_match(logs, _SWAP):
        return TYPE_SWAP
    if _logs_match(logs, _DEPOSIT):
        return TYPE_DEPOSIT
    if _logs_match(logs, _WITHDRAW):
        return TYPE_UNSTAKE if liquid_staking else TYPE_WITHDRAW
    if _logs_match(logs, _ADD_LIQUIDITY):
        return TYPE_ADD_LIQUIDITY
    if _logs_match(logs, _REMOVE_LIQUIDITY):
        return TYPE_REMOVE_LIQUIDITY
    if _logs_match(logs, _STAKE):
        return TYPE_STAKE
    if liquid_staking and _logs_match(logs, _UNSTAKE):
        return TYPE_UNSTAKE
    if _logs_match(logs, _BORROW):
        return TYPE_BORROW
    if _logs_match(logs, _REPAY):
        return TYPE_REPAY
    if _logs_match(logs, _TRANSFER):
        return TYPE_TRANSFER
    if _logs_match(logs, _CREATE_ACCOUNT):
        return TYPE_ACCOUNT_CREATION
    return TYPE_UNKNOWN


def identify_protocol(program_ids: AbstractSet[str], registry: ProgramRegistry) -> str:
    """Single protocol name for the program set, by fixed priority."""
    for protocol, keys in PROTOCOL_PRIORITY:
        if registry.has_any(program_ids, *keys):
            return protocol
    has_system = registry.has_any(program_ids, reg.SYSTEM)
    if registry.has_any(program_ids, reg.SPL_TOKEN) and not has_system:
        return PROTOCOL_SPL_TOKEN
    if has_system:
        return PROTOCOL_SYSTEM
    return UNKNOWN_PROTOCOL
