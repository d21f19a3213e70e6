"""
Tests for protocol detail analyzers: swap legs, route / price-impact parsing,
Raydium and Orca variants.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_solview.analysis_engine import registry as reg
from backend_solview.analysis_engine.models import (
    FinancialActivity,
    NativeBalanceChange,
    TokenBalanceChange,
)
from backend_solview.analysis_engine.programs import identify_involved_programs
from backend_solview.analysis_engine.protocols import (
    WRAPPED_SOL_MINT,
    ProtocolContext,
    amm_sub_type,
    analyze_protocol_details,
    extract_price_impact,
    extract_route_info,
    split_swap_legs,
)
from backend_solview.solana_listener import normalize_transaction
from conftest import FakePriceResolver, build_raw_tx


def _token_change(mint, change, symbol="TKN"):
    return TokenBalanceChange(
        mint=mint,
        symbol=symbol,
        name=symbol,
        logo_uri=None,
        owner_index=1,
        owner="owner",
        change=change,
        pre_balance=max(0.0, -change),
        post_balance=max(0.0, change),
    )


def _ctx(registry, raw, activity, price_resolver=None):
    record = normalize_transaction(raw)
    return ProtocolContext(
        tx=record,
        activity=activity,
        logs=record.meta.log_messages,
        program_ids=identify_involved_programs(record),
        registry=registry,
        price_resolver=price_resolver,
    )


def test_split_swap_legs_folds_native_sol():
    activity = FinancialActivity(
        token_changes=(_token_change("USDC", 20.0, "USDC"),),
        sol_changes=(NativeBalanceChange(0, -0.5, 1.0, 0.5), NativeBalanceChange(1, -0.000006, 1.0, 0.999994)),
    )

    inputs, outputs = split_swap_legs(activity)

    assert len(inputs) == 1
    assert inputs[0]["mint"] == WRAPPED_SOL_MINT
    assert inputs[0]["amount"] == 0.5
    assert inputs[0]["native"] is True
    assert outputs[0]["symbol"] == "USDC"
    assert outputs[0]["amount"] == 20.0


def test_extract_route_info():
    logs = [
        "Program log: Route: AMM: Raydium1",
        "Program log: Swap in: 10.5 out: 20",
        "Program log: AMM: Orca2",
        "Program log: out: 7",
        "Program log: in: 3",
    ]

    assert extract_route_info(logs) == [
        {"amm": "Raydium1", "in": 10.5, "out": 20.0},
        {"amm": "Orca2", "in": None, "out": 7.0},
        {"amm": "Orca2", "in": 3.0, "out": None},
    ]


def test_route_lines_before_any_amm_are_ignored():
    assert extract_route_info(["Program log: Swap in: 1 out: 2"]) == []


def test_extract_price_impact():
    assert extract_price_impact(["Program log: Price impact: 0.25%"]) == "0.25%"
    assert extract_price_impact(["Program log: nothing"]) is None


def test_amm_sub_type_order():
    assert amm_sub_type(["Program log: Instruction: Harvest"]) == "harvest"
    assert amm_sub_type(["Program log: Instruction: Stake", "Program log: Instruction: Swap"]) == "swap"
    assert amm_sub_type([]) == "unknown"


def test_jupiter_details(registry):
    jup = registry.address(reg.JUPITER_V6)
    raw = build_raw_tx(programs=[jup], logs=["Program log: Instruction: Swap", "Program log: Price impact: 0.1%"])
    activity = FinancialActivity(
        token_changes=(_token_change("M1", -6.0, "MONE"), _token_change("M2", 3.0, "MTWO")),
    )
    prices = FakePriceResolver({"M1": 2.0})

    details = asyncio.run(analyze_protocol_details("Jupiter", _ctx(registry, raw, activity, prices)))

    assert details["swapType"] == "jupiter"
    assert details["version"] == "V6"
    assert details["input"]["mint"] == "M1"
    assert details["input"]["amount"] == 6.0
    assert details["input"]["priceUsd"] == 2.0
    assert details["input"]["valueUsd"] == 12.0
    assert details["output"]["priceUsd"] is None
    assert details["exchangeRate"] == {"base": "MONE", "quote": "MTWO", "rate": pytest.approx(0.5)}
    assert details["priceImpact"] == "0.1%"
    assert details["routeInfo"] == []


def test_jupiter_v4_when_v6_not_top_level(registry):
    v4 = registry.address(reg.JUPITER_V4)
    v6 = registry.address(reg.JUPITER_V6)
    raw = build_raw_tx(programs=[v4], inner_programs=[v6])

    details = asyncio.run(analyze_protocol_details("Jupiter", _ctx(registry, raw, FinancialActivity())))

    assert details["version"] == "V4"
    assert details["input"] == []
    assert details["exchangeRate"] is None


def test_raydium_clmm_swap(registry):
    raw = build_raw_tx(
        programs=[registry.address(reg.RAYDIUM_CLMM)],
        logs=["Program log: Instruction: Swap"],
    )

    details = asyncio.run(analyze_protocol_details("Raydium", _ctx(registry, raw, FinancialActivity())))

    assert details == {"subType": "swap", "dexType": "CLMM"}


def test_raydium_other_sub_type_includes_financial_changes(registry):
    raw = build_raw_tx(programs=[registry.address(reg.RAYDIUM_AMM)], logs=["Program log: Instruction: Harvest"])
    activity = FinancialActivity(token_changes=(_token_change("RAY", 1.5),))

    details = asyncio.run(analyze_protocol_details("Raydium", _ctx(registry, raw, activity)))

    assert details["subType"] == "harvest"
    assert details["dexType"] == "AMM"
    assert details["financialChanges"]["tokenChanges"][0]["mint"] == "RAY"
    assert details["financialChanges"]["solChanges"] == []


def test_orca_versions(registry):
    whirl = build_raw_tx(inner_programs=[registry.address(reg.ORCA_WHIRLPOOL)], logs=["Program log: Instruction: Swap"])
    legacy = build_raw_tx(programs=[registry.address(reg.ORCA_SWAP)])

    whirl_details = asyncio.run(analyze_protocol_details("Orca", _ctx(registry, whirl, FinancialActivity())))
    legacy_details = asyncio.run(analyze_protocol_details("Orca", _ctx(registry, legacy, FinancialActivity())))

    assert whirl_details == {"protocol": "Orca", "version": "Whirlpool", "subType": "swap"}
    assert legacy_details == {"protocol": "Orca", "version": "V2", "subType": "unknown"}


@pytest.mark.parametrize("protocol", ["Solend", "Marinade Finance", "Lido"])
def test_tag_only_analyzers(registry, protocol):
    details = asyncio.run(analyze_protocol_details(protocol, _ctx(registry, build_raw_tx(), FinancialActivity())))

    assert details == {"protocol": protocol}


@pytest.mark.parametrize("protocol", ["SPL Token", "System Program", "Unknown Protocol"])
def test_protocols_without_analyzer(registry, protocol):
    assert asyncio.run(analyze_protocol_details(protocol, _ctx(registry, build_raw_tx(), FinancialActivity()))) is None
