"""
Tests for env-driven configuration: RPC endpoint order and Settings.
"""

from __future__ import annotations

from backend_solview.config import env as env_mod
from backend_solview.config import get_settings


def _clear(monkeypatch):
    for name in ("HELIUS_API_KEY", "ALCHEMY_API_KEY", "SOLANA_RPC_URL", "HISTORY_BATCH_SIZE", "METADATA_TIMEOUT_SEC"):
        monkeypatch.setenv(name, "")


def test_rpc_endpoints_default_to_public_mainnet(monkeypatch):
    _clear(monkeypatch)

    assert env_mod.get_rpc_endpoints() == [("rpc", env_mod.MAINNET_RPC_URL)]


def test_rpc_endpoint_order(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("HELIUS_API_KEY", "hk")
    monkeypatch.setenv("ALCHEMY_API_KEY", "ak")
    monkeypatch.setenv("SOLANA_RPC_URL", "https://rpc.test")

    names = [name for name, _ in env_mod.get_rpc_endpoints()]

    assert names == ["helius", "alchemy", "rpc"]


def test_mask_url():
    assert env_mod.mask_url("https://mainnet.helius-rpc.com/?api-key=secret") == "https://mainnet.helius-rpc.com/?api-key=***"
    assert env_mod.mask_url("https://solana-mainnet.g.alchemy.com/v2/secret") == "https://solana-mainnet.g.alchemy.com/v2/***"


def test_settings_from_env(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("HISTORY_BATCH_SIZE", "0")
    monkeypatch.setenv("METADATA_TIMEOUT_SEC", "not-a-number")

    settings = get_settings()

    assert settings.history_batch_size == 1
    assert settings.metadata_timeout_sec == 5.0
    assert settings is get_settings()
