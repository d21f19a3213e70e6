"""
Jupiter client: verified token list and current USD prices.

The token list is the first metadata source; the price endpoint is the
last-resort price source (current price only, not historical).
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_solview.providers.base import TokenMetadata
from backend_solview.providers.http import parse_price, request_json

JUPITER_TOKENS_URL = "https://tokens.jup.ag/tokens"
JUPITER_PRICE_URL = "https://api.jup.ag/price/v2"


def token_from_list_entry(entry: dict[str, Any]) -> TokenMetadata | None:
    address = entry.get("address")
    if not address:
        return None
    extensions = entry.get("extensions") or {}
    return TokenMetadata(
        mint=address,
        symbol=entry.get("symbol") or "UNKNOWN",
        name=entry.get("name") or "Unknown Token",
        logo_uri=entry.get("logoURI"),
        decimals=entry.get("decimals"),
        coingecko_id=extensions.get("coingeckoId") if isinstance(extensions, dict) else None,
        source="jupiter",
    )


class JupiterClient:
    name = "jupiter"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = "",
        tokens_url: str = JUPITER_TOKENS_URL,
        price_url: str = JUPITER_PRICE_URL,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._tokens_url = tokens_url
        self._price_url = price_url

    def _headers(self) -> dict[str, str] | None:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None

    async def get_supported_tokens(self) -> list[TokenMetadata]:
        payload = await request_json(
            self._client, self.name, "GET", self._tokens_url,
            params={"tags": "verified"}, headers=self._headers(),
        )
        entries = payload if isinstance(payload, list) else []
        tokens = (token_from_list_entry(e) for e in entries if isinstance(e, dict))
        return [t for t in tokens if t is not None]

    async def get_price(self, mint: str) -> float | None:
        """Current USD price of a mint, or None when Jupiter has no quote."""
        payload = await request_json(
            self._client, self.name, "GET", self._price_url,
            params={"ids": mint}, headers=self._headers(),
        )
        data = (payload.get("data") or {}) if isinstance(payload, dict) else {}
        entry = data.get(mint) if isinstance(data, dict) else None
        if not isinstance(entry, dict) or entry.get("price") is None:
            return None
        return parse_price(self.name, entry["price"])
