"""
Tests for TransactionService: RPC fallback, not-found handling, price
enrichment and batched wallet history.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from conftest import BLOCK_TIME, USDC_MINT, VALID_SIG, FakeMetadataProvider, build_raw_tx, token_balance

from backend_solview.analysis_engine import TransactionAnalyzer
from backend_solview.analysis_engine import registry as reg
from backend_solview.config.settings import Settings
from backend_solview.core.exceptions import ProviderError, TransactionNotFound
from backend_solview.providers import BirdeyeClient, HistoricalPriceResolver
from backend_solview.services import TransactionService, build_transaction_service
from backend_solview.solana_listener import normalize_transaction


def _rpc(name, get_transaction=None, signatures=None):
    client = MagicMock()
    client.name = name
    client.get_transaction = AsyncMock(side_effect=get_transaction)
    client.get_signatures_for_address = AsyncMock(side_effect=signatures)
    return client


def _swap_raw(registry):
    return build_raw_tx(
        programs=[registry.address(reg.JUPITER_V6)],
        logs=["Program log: Instruction: Swap"],
        pre_token_balances=[token_balance(1, USDC_MINT, 10.0)],
        post_token_balances=[token_balance(1, USDC_MINT, 4.0)],
    )


def test_falls_back_to_next_rpc_on_provider_error(registry, metadata_provider, price_resolver):
    raw = _swap_raw(registry)
    primary = _rpc("helius", get_transaction=ProviderError("helius", "HTTP 503", 503))
    fallback = _rpc("alchemy", get_transaction=lambda sig: raw)
    service = TransactionService(
        [primary, fallback],
        TransactionAnalyzer(registry, metadata_provider),
        metadata_provider,
        price_resolver,
    )

    data = asyncio.run(service.get_transaction_analysis(VALID_SIG))

    assert data["signature"] == VALID_SIG
    assert data["status"] == "success"
    assert data["fee"] == pytest.approx(0.000005)
    assert data["blockTime"] == BLOCK_TIME
    assert data["analysis"]["type"] == "swap"
    assert data["analysis"]["protocol"] == "Jupiter"
    assert data["priceHistory"][USDC_MINT]["symbol"] == "USDC"
    assert data["priceHistory"][USDC_MINT]["price"]["price"] == 1.0
    primary.get_transaction.assert_awaited_once_with(VALID_SIG)


def test_not_found_when_endpoints_have_no_transaction(registry):
    service = TransactionService(
        [_rpc("helius", get_transaction=lambda sig: None), _rpc("rpc", get_transaction=lambda sig: None)],
        TransactionAnalyzer(registry),
    )

    with pytest.raises(TransactionNotFound):
        asyncio.run(service.get_transaction_analysis(VALID_SIG))


def test_provider_error_when_all_endpoints_fail(registry):
    service = TransactionService(
        [_rpc("helius", get_transaction=ProviderError("helius", "HTTP 500", 500))],
        TransactionAnalyzer(registry),
    )

    with pytest.raises(ProviderError):
        asyncio.run(service.get_transaction_analysis(VALID_SIG))


def test_incomplete_payload_is_reported_as_unknown(registry):
    service = TransactionService(
        [_rpc("rpc", get_transaction=lambda sig: {"blockTime": BLOCK_TIME, "slot": 1})],
        TransactionAnalyzer(registry),
    )

    data = asyncio.run(service.get_transaction_analysis(VALID_SIG))

    assert data["analysis"]["type"] == "unknown"
    assert data["analysis"]["reason"]
    assert data["priceHistory"] == {}


def test_enrich_price_history_without_block_time(registry, price_resolver):
    service = TransactionService([_rpc("rpc")], TransactionAnalyzer(registry), None, price_resolver)
    record = normalize_transaction(
        build_raw_tx(block_time=None, post_token_balances=[token_balance(1, USDC_MINT, 1.0)])
    )

    assert asyncio.run(service.enrich_price_history(record)) == {}
    assert price_resolver.calls == []


def test_enrich_price_history_unpriced_mint(registry, price_resolver):
    service = TransactionService([_rpc("rpc")], TransactionAnalyzer(registry), None, price_resolver)
    record = normalize_transaction(build_raw_tx(post_token_balances=[token_balance(1, "M9", 1.0)]))

    history = asyncio.run(service.enrich_price_history(record))

    assert history == {"M9": {"symbol": None, "name": None, "price": None}}
    assert price_resolver.calls == [("M9", BLOCK_TIME)]


def test_enrich_price_history_degrades_on_malformed_price_payload(registry):
    def handler(request):
        return httpx.Response(200, json={"data": {"items": [{"unixTime": BLOCK_TIME, "value": "n/a"}]}})

    record = normalize_transaction(build_raw_tx(post_token_balances=[token_balance(1, "M9", 1.0)]))

    async def _enrich():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = TransactionService(
                [_rpc("rpc")],
                TransactionAnalyzer(registry),
                FakeMetadataProvider(failing={"M9"}),
                HistoricalPriceResolver(birdeye=BirdeyeClient(client)),
            )
            return await service.enrich_price_history(record)

    history = asyncio.run(_enrich())

    assert history == {"M9": {"symbol": None, "name": None, "price": None}}


def test_enrich_price_history_survives_failing_resolver(registry):
    resolver = MagicMock()
    resolver.resolve_price_at = AsyncMock(side_effect=TypeError("unexpected payload"))
    service = TransactionService([_rpc("rpc")], TransactionAnalyzer(registry), None, resolver)
    record = normalize_transaction(build_raw_tx(post_token_balances=[token_balance(1, "M9", 1.0)]))

    history = asyncio.run(service.enrich_price_history(record))

    assert history["M9"]["price"] is None
    resolver.resolve_price_at.assert_awaited_once_with("M9", BLOCK_TIME)


def test_wallet_history_batches_and_skips_failures(registry):
    raws = {f"sig{i}": build_raw_tx(logs=["Program log: Instruction: Transfer"]) for i in range(7)}

    def get_transaction(sig):
        if sig == "sig3":
            raise ProviderError("rpc", "HTTP 500", 500)
        if sig == "sig5":
            return None
        if sig == "sig6":
            raise RuntimeError("unexpected failure")
        return raws[sig]

    rpc = _rpc(
        "rpc",
        get_transaction=get_transaction,
        signatures=lambda wallet, limit, before: [{"signature": s} for s in raws],
    )
    service = TransactionService([rpc], TransactionAnalyzer(registry), history_batch_size=3)

    data = asyncio.run(service.get_wallet_history("Wallet111", limit=7))

    assert data["wallet"] == "Wallet111"
    assert data["count"] == 4
    assert [t["signature"] for t in data["transactions"]] == ["sig0", "sig1", "sig2", "sig4"]
    assert all(t["analysis"]["type"] == "transfer" for t in data["transactions"])
    assert data["nextBefore"] == "sig6"
    rpc.get_signatures_for_address.assert_awaited_once_with("Wallet111", limit=7, before=None)


def test_build_transaction_service_from_settings(tmp_path):
    registry_file = tmp_path / "programs.json"
    registry_file.write_text('{"LIDO": {"address": "NewLido111", "name": "Lido (test)"}}')
    settings = Settings(
        rpc_endpoints=(("helius", "https://mainnet.helius-rpc.com/?api-key=k"), ("rpc", "https://rpc.test")),
        program_registry_path=str(registry_file),
        history_batch_size=2,
    )

    async def _build():
        async with httpx.AsyncClient() as client:
            return build_transaction_service(settings, client)

    service = asyncio.run(_build())

    assert service.analyzer.registry.address(reg.LIDO) == "NewLido111"


def test_requires_rpc_client(registry):
    with pytest.raises(ValueError):
        TransactionService([], TransactionAnalyzer(registry))
