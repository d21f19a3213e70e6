"""
Tests for involved-program extraction and fee payer detection.
"""

from __future__ import annotations

from conftest import FEE_PAYER, build_raw_tx

from backend_solview.analysis_engine.programs import (
    find_user_address,
    identify_involved_programs,
    top_level_programs,
)
from backend_solview.solana_listener import normalize_transaction


def test_top_level_and_inner_programs_are_collected():
    record = normalize_transaction(build_raw_tx(programs=["X"], inner_programs=["Y", "X"]))

    assert identify_involved_programs(record) == frozenset({"X", "Y"})
    assert top_level_programs(record) == frozenset({"X"})


def test_no_instructions():
    record = normalize_transaction(build_raw_tx())

    assert identify_involved_programs(record) == frozenset()


def test_user_address_is_first_signer():
    record = normalize_transaction(build_raw_tx())

    assert find_user_address(record) == FEE_PAYER


def test_user_address_none_without_signer():
    raw = build_raw_tx()
    for key in raw["transaction"]["message"]["accountKeys"]:
        key["signer"] = False

    assert find_user_address(normalize_transaction(raw)) is None
