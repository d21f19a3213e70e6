"""
Pytest fixtures for SolView tests: program registry, raw transaction builder,
in-memory metadata and price collaborators.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from backend_solview.analysis_engine.registry import ProgramRegistry
from backend_solview.providers.base import (
    PricePoint,
    PriceResolver,
    TokenMetadata,
    TokenMetadataProvider,
)

FEE_PAYER = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_ACCOUNT = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
VALID_SIG = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BLOCK_TIME = 1709294400  # 2024-03-01T12:00:00Z


class FakeMetadataProvider(TokenMetadataProvider):
    """Serves metadata from a dict; mints in `failing` raise, mints in `slow` hang."""

    def __init__(self, known: dict[str, TokenMetadata] | None = None, failing=(), slow=()):
        self.known = dict(known or {})
        self.failing = set(failing)
        self.slow = set(slow)
        self.calls: list[str] = []

    async def get_token_metadata(self, mint: str) -> TokenMetadata | None:
        self.calls.append(mint)
        if mint in self.failing:
            raise RuntimeError(f"lookup failed for {mint}")
        if mint in self.slow:
            await asyncio.sleep(10)
        return self.known.get(mint)


class FakePriceResolver(PriceResolver):
    def __init__(self, prices: dict[str, float] | None = None):
        self.prices = dict(prices or {})
        self.calls: list[tuple[str, int]] = []

    async def resolve_price_at(self, mint: str, timestamp: int) -> PricePoint | None:
        self.calls.append((mint, timestamp))
        price = self.prices.get(mint)
        if price is None:
            return None
        return PricePoint(price=price, source="fake", timestamp=timestamp, time_difference_sec=0)


def token_balance(account_index: int, mint: str, ui_amount: float | None, owner: str | None = FEE_PAYER) -> dict:
    """Pre/post token balance entry as returned by getTransaction."""
    entry: dict[str, Any] = {
        "accountIndex": account_index,
        "mint": mint,
        "uiTokenAmount": {
            "uiAmount": ui_amount,
            "uiAmountString": str(ui_amount if ui_amount is not None else 0),
            "decimals": 6,
        },
    }
    if owner is not None:
        entry["owner"] = owner
    return entry


def build_raw_tx(
    *,
    programs: list[str] | None = None,
    inner_programs: list[str] | None = None,
    logs: list[str] | None = None,
    pre_balances: list[int] | None = None,
    post_balances: list[int] | None = None,
    pre_token_balances: list[dict] | None = None,
    post_token_balances: list[dict] | None = None,
    fee: int = 5000,
    block_time: int | None = BLOCK_TIME,
    err: Any = None,
) -> dict[str, Any]:
    """Minimal jsonParsed getTransaction result."""
    raw: dict[str, Any] = {
        "slot": 250_000_000,
        "blockTime": block_time,
        "transaction": {
            "signatures": [VALID_SIG],
            "message": {
                "accountKeys": [
                    {"pubkey": FEE_PAYER, "signer": True, "writable": True},
                    {"pubkey": OTHER_ACCOUNT, "signer": False, "writable": True},
                ],
                "instructions": [{"programId": p, "accounts": [], "data": ""} for p in programs or []],
            },
        },
        "meta": {
            "err": err,
            "fee": fee,
            "logMessages": list(logs or []),
            "preBalances": list(pre_balances or []),
            "postBalances": list(post_balances or []),
            "preTokenBalances": list(pre_token_balances or []),
            "postTokenBalances": list(post_token_balances or []),
            "innerInstructions": [],
        },
    }
    if inner_programs:
        raw["meta"]["innerInstructions"] = [
            {"index": 0, "instructions": [{"programId": p, "accounts": [], "data": ""} for p in inner_programs]}
        ]
    return raw


@pytest.fixture
def registry() -> ProgramRegistry:
    return ProgramRegistry.default()


@pytest.fixture
def metadata_provider() -> FakeMetadataProvider:
    return FakeMetadataProvider(
        {
            USDC_MINT: TokenMetadata(mint=USDC_MINT, symbol="USDC", name="USD Coin", logo_uri="https://logo/usdc.png"),
            "M1": TokenMetadata(mint="M1", symbol="MONE", name="Mint One"),
        }
    )


@pytest.fixture
def price_resolver() -> FakePriceResolver:
    return FakePriceResolver({USDC_MINT: 1.0, "M1": 2.5})


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    from backend_solview.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
