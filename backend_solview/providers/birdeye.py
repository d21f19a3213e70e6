"""
Birdeye client: token metadata and historical prices.

Birdeye is the first-ranked historical price source; its history endpoint is
queried with a +/-1h window at 15m resolution and the closest point is used.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_solview.providers.base import PricePoint, TokenMetadata
from backend_solview.providers.http import parse_price, request_json

BIRDEYE_BASE_URL = "https://public-api.birdeye.so"
HISTORY_WINDOW_SEC = 3600
HISTORY_RESOLUTION = "15m"
# Closest point must be within 2h of the requested time
MAX_POINT_DISTANCE_SEC = 7200


def _history_items(payload: Any) -> list[dict[str, Any]]:
    data = payload.get("data") if isinstance(payload, dict) else None
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        return []
    return [p for p in data if isinstance(p, dict) and p.get("unixTime") is not None]


def closest_point(items: list[dict[str, Any]], timestamp: int) -> tuple[dict[str, Any], int] | None:
    """(point, distance_sec) of the item whose unixTime is closest to timestamp."""
    best: tuple[dict[str, Any], int] | None = None
    for item in items:
        try:
            distance = abs(int(item["unixTime"]) - timestamp)
        except (TypeError, ValueError):
            continue
        if best is None or distance < best[1]:
            best = (item, distance)
    return best


class BirdeyeClient:
    name = "birdeye"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = "",
        base_url: str = BIRDEYE_BASE_URL,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"x-chain": "solana", "accept": "application/json"}
        if self._api_key:
            headers["X-API-KEY"] = self._api_key
        return headers

    async def get_token_metadata(self, mint: str) -> TokenMetadata | None:
        payload = await request_json(
            self._client,
            self.name,
            "GET",
            f"{self._base_url}/defi/v3/token/meta-data/single",
            params={"address": mint},
            headers=self._headers(),
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not (data.get("symbol") or data.get("name")):
            return None
        extensions = data.get("extensions") or {}
        return TokenMetadata(
            mint=mint,
            symbol=data.get("symbol") or "UNKNOWN",
            name=data.get("name") or "Unknown Token",
            logo_uri=data.get("logo_uri") or data.get("logoURI"),
            decimals=data.get("decimals"),
            coingecko_id=extensions.get("coingecko_id") if isinstance(extensions, dict) else None,
            source=self.name,
        )

    async def get_price_history(
        self,
        mint: str,
        time_from: int,
        time_to: int,
        resolution: str = HISTORY_RESOLUTION,
    ) -> list[dict[str, Any]]:
        """Raw price points ({unixTime, value}) between two unix timestamps (seconds)."""
        payload = await request_json(
            self._client,
            self.name,
            "GET",
            f"{self._base_url}/defi/history_price",
            params={
                "address": mint,
                "address_type": "token",
                "type": resolution,
                "time_from": time_from,
                "time_to": time_to,
            },
            headers=self._headers(),
        )
        return _history_items(payload)

    async def get_historical_price(self, mint: str, timestamp: int) -> PricePoint | None:
        items = await self.get_price_history(
            mint, timestamp - HISTORY_WINDOW_SEC, timestamp + HISTORY_WINDOW_SEC
        )
        found = closest_point(items, timestamp)
        if found is None:
            return None
        point, distance = found
        if distance > MAX_POINT_DISTANCE_SEC or point.get("value") is None:
            return None
        return PricePoint(
            price=parse_price(self.name, point["value"]),
            source=self.name,
            timestamp=int(point["unixTime"]),
            time_difference_sec=distance,
        )
