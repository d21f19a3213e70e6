"""
Environment variable loading for SolView.

- HELIUS_API_KEY: Helius key (primary RPC, mainnet)
- ALCHEMY_API_KEY: Alchemy key (fallback RPC, mainnet)
- SOLANA_RPC_URL: explicit RPC endpoint; used when no provider key is set
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_solview/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
ALCHEMY_MAINNET_URL_TEMPLATE = "https://solana-mainnet.g.alchemy.com/v2/{key}"


def load_solview_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    load_solview_env()
    return (os.getenv(name) or default).strip()


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_rpc_endpoints() -> list[tuple[str, str]]:
    """
    Return ordered (provider_name, url) pairs for transaction fetching.
    Order: Helius (HELIUS_API_KEY) > Alchemy (ALCHEMY_API_KEY) > SOLANA_RPC_URL > public mainnet.
    """
    endpoints: list[tuple[str, str]] = []
    helius_key = env_str("HELIUS_API_KEY")
    if helius_key:
        endpoints.append(("helius", HELIUS_MAINNET_URL_TEMPLATE.format(key=helius_key)))
    alchemy_key = env_str("ALCHEMY_API_KEY")
    if alchemy_key:
        endpoints.append(("alchemy", ALCHEMY_MAINNET_URL_TEMPLATE.format(key=alchemy_key)))
    explicit = env_str("SOLANA_RPC_URL")
    if explicit:
        endpoints.append(("rpc", explicit))
    if not endpoints:
        endpoints.append(("rpc", MAINNET_RPC_URL))
    return endpoints


def mask_url(url: str) -> str:
    """Mask API key in an RPC URL for logging."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    if "/v2/" in url:
        return url.split("/v2/")[0] + "/v2/***"
    return url
