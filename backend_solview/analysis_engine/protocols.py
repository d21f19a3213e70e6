"""
Protocol-specific detail analyzers.

One analyzer per protocol family, selected by the protocol name from
identify_protocol(). Each builds a protocol-flavored explanation from the
reconstructed balance deltas and the logs. Missing data yields None / omitted
fields, never an exception.

Log parsing (route hops, price impact) depends on free-form on-chain log text
and is best effort only.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Any, AbstractSet, Awaitable, Callable

from backend_solview.analysis_engine import registry as reg
from backend_solview.analysis_engine.classifier import (
    PROTOCOL_JUPITER,
    PROTOCOL_LIDO,
    PROTOCOL_MARINADE,
    PROTOCOL_ORCA,
    PROTOCOL_RAYDIUM,
    PROTOCOL_SOLEND,
)
from backend_solview.analysis_engine.models import FinancialActivity
from backend_solview.analysis_engine.programs import top_level_programs
from backend_solview.analysis_engine.registry import ProgramRegistry
from backend_solview.providers.base import PriceResolver
from backend_solview.solana_listener.models import TransactionRecord
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
# Native debits smaller than this are fees/rent, not a swap input
SOL_INPUT_THRESHOLD = 0.00001

_AMM_RE = re.compile(r"AMM: ([A-Za-z0-9]+)", re.IGNORECASE)
_IN_RE = re.compile(r"in: (\d+\.?\d*)", re.IGNORECASE)
_OUT_RE = re.compile(r"out: (\d+\.?\d*)", re.IGNORECASE)
_PRICE_IMPACT_RE = re.compile(r"Price impact: (\d+\.?\d*%)", re.IGNORECASE)


@dataclass(frozen=True)
class ProtocolContext:
    tx: TransactionRecord
    activity: FinancialActivity
    logs: tuple[str, ...]
    program_ids: AbstractSet[str]
    registry: ProgramRegistry
    price_resolver: PriceResolver | None = None


# --- Jupiter (DEX aggregator) ---


def _native_entry(amount: float) -> dict[str, Any]:
    return {
        "mint": WRAPPED_SOL_MINT,
        "symbol": "SOL",
        "name": "Solana",
        "amount": amount,
        "native": True,
    }


def split_swap_legs(activity: FinancialActivity) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Inputs (balance decreased) and outputs (balance increased), SOL folded in as wrapped SOL."""
    inputs = [
        {**c.to_dict(), "amount": abs(c.change)} for c in activity.token_changes if c.change < 0
    ]
    outputs = [
        {**c.to_dict(), "amount": c.change} for c in activity.token_changes if c.change > 0
    ]
    sol_input = next((c for c in activity.sol_changes if c.change < -SOL_INPUT_THRESHOLD), None)
    sol_output = next((c for c in activity.sol_changes if c.change > 0), None)
    if sol_input is not None:
        inputs.append(_native_entry(abs(sol_input.change)))
    if sol_output is not None:
        outputs.append(_native_entry(sol_output.change))
    return inputs, outputs


def extract_route_info(logs: tuple[str, ...] | list[str]) -> list[dict[str, Any]]:
    """
    Reconstruct route hops from logs: a Route/AMM line sets the current AMM,
    later Swap / in: / out: lines are attributed to it.
    """
    route: list[dict[str, Any]] = []
    current_amm: str | None = None
    for line in logs:
        if "Program log: Route" in line or "Program log: AMM:" in line:
            m = _AMM_RE.search(line)
            if m:
                current_amm = m.group(1)
        elif current_amm and (
            "Program log: Swap" in line or "Program log: in:" in line or "Program log: out:" in line
        ):
            in_m = _IN_RE.search(line)
            out_m = _OUT_RE.search(line)
            if in_m or out_m:
                route.append({
                    "amm": current_amm,
                    "in": float(in_m.group(1)) if in_m else None,
                    "out": float(out_m.group(1)) if out_m else None,
                })
    return route


def extract_price_impact(logs: tuple[str, ...] | list[str]) -> str | None:
    for line in logs:
        m = _PRICE_IMPACT_RE.search(line)
        if m:
            return m.group(1)
    return None


async def _attach_usd_values(
    entries: list[dict[str, Any]],
    resolver: PriceResolver,
    block_time: int,
) -> None:
    async def _resolve(mint: str):
        try:
            return await resolver.resolve_price_at(mint, block_time)
        except Exception as e:
            logger.warning("swap_leg_price_failed", mint=mint, error=str(e))
            return None

    points = await asyncio.gather(*(_resolve(e["mint"]) for e in entries))
    for entry, point in zip(entries, points):
        entry["priceUsd"] = point.price if point else None
        entry["valueUsd"] = point.price * entry["amount"] if point else None


async def analyze_jupiter(ctx: ProtocolContext) -> dict[str, Any]:
    inputs, outputs = split_swap_legs(ctx.activity)

    exchange_rate = None
    if len(inputs) == 1 and len(outputs) == 1 and inputs[0]["amount"]:
        exchange_rate = {
            "base": inputs[0]["symbol"],
            "quote": outputs[0]["symbol"],
            "rate": outputs[0]["amount"] / inputs[0]["amount"],
        }

    if ctx.price_resolver is not None and ctx.tx.block_time is not None:
        await _attach_usd_values(inputs + outputs, ctx.price_resolver, ctx.tx.block_time)

    v6 = ctx.registry.address(reg.JUPITER_V6)
    return {
        "swapType": "jupiter",
        "version": "V6" if v6 in top_level_programs(ctx.tx) else "V4",
        "input": inputs[0] if len(inputs) == 1 else inputs,
        "output": outputs[0] if len(outputs) == 1 else outputs,
        "exchangeRate": exchange_rate,
        "routeInfo": extract_route_info(ctx.logs),
        "priceImpact": extract_price_impact(ctx.logs),
    }


# --- AMMs ---


def amm_sub_type(logs: tuple[str, ...] | list[str]) -> str:
    checks = (
        ("Instruction: Swap", "swap"),
        ("Instruction: AddLiquidity", "add_liquidity"),
        ("Instruction: RemoveLiquidity", "remove_liquidity"),
        ("Instruction: Stake", "stake"),
        ("Instruction: Harvest", "harvest"),
    )
    for needle, sub_type in checks:
        if any(needle in line for line in logs):
            return sub_type
    return "unknown"


def analyze_raydium(ctx: ProtocolContext) -> dict[str, Any]:
    sub_type = amm_sub_type(ctx.logs)
    details: dict[str, Any] = {
        "subType": sub_type,
        "dexType": "CLMM" if ctx.registry.has_any(ctx.program_ids, reg.RAYDIUM_CLMM) else "AMM",
    }
    if sub_type not in ("swap", "add_liquidity", "remove_liquidity"):
        activity = ctx.activity.to_dict()
        details["financialChanges"] = {
            "tokenChanges": activity["tokenChanges"],
            "solChanges": activity["solChanges"],
        }
    return details


def analyze_orca(ctx: ProtocolContext) -> dict[str, Any]:
    whirlpool = ctx.registry.has_any(ctx.program_ids, reg.ORCA_WHIRLPOOL)
    return {
        "protocol": PROTOCOL_ORCA,
        "version": "Whirlpool" if whirlpool else "V2",
        "subType": amm_sub_type(ctx.logs),
    }


# --- Lending / liquid staking: protocol tag only ---


def analyze_solend(ctx: ProtocolContext) -> dict[str, Any]:
    return {"protocol": PROTOCOL_SOLEND}


def analyze_marinade(ctx: ProtocolContext) -> dict[str, Any]:
    return {"protocol": PROTOCOL_MARINADE}


def analyze_lido(ctx: ProtocolContext) -> dict[str, Any]:
    return {"protocol": PROTOCOL_LIDO}


_SYNC_ANALYZERS: dict[str, Callable[[ProtocolContext], dict[str, Any]]] = {
    PROTOCOL_RAYDIUM: analyze_raydium,
    PROTOCOL_ORCA: analyze_orca,
    PROTOCOL_SOLEND: analyze_solend,
    PROTOCOL_MARINADE: analyze_marinade,
    PROTOCOL_LIDO: analyze_lido,
}

_ASYNC_ANALYZERS: dict[str, Callable[[ProtocolContext], Awaitable[dict[str, Any]]]] = {
    PROTOCOL_JUPITER: analyze_jupiter,
}


async def analyze_protocol_details(protocol: str, ctx: ProtocolContext) -> dict[str, Any] | None:
    """Run the analyzer registered for `protocol`; None for protocols without one."""
    if protocol in _ASYNC_ANALYZERS:
        return await _ASYNC_ANALYZERS[protocol](ctx)
    analyzer = _SYNC_ANALYZERS.get(protocol)
    if analyzer is None:
        return None
    return analyzer(ctx)
