"""
CoinGecko and CryptoCompare historical price clients.

Secondary price sources: CoinGecko by coin id (daily resolution), CryptoCompare
by ticker symbol (hourly close nearest to the timestamp).
"""

from __future__ import annotations

from datetime import datetime, timezone

import httpx

from backend_solview.core.exceptions import ProviderError
from backend_solview.providers.base import PricePoint
from backend_solview.providers.http import parse_price, request_json

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
CRYPTOCOMPARE_BASE_URL = "https://min-api.cryptocompare.com/data"


class CoinGeckoClient:
    name = "coingecko"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = "",
        base_url: str = COINGECKO_BASE_URL,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def get_price_at_timestamp(self, coingecko_id: str, timestamp: int) -> PricePoint | None:
        # /history expects dd-mm-yyyy and returns that day's snapshot
        day = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%d-%m-%Y")
        headers = {"x-cg-demo-api-key": self._api_key} if self._api_key else None
        payload = await request_json(
            self._client,
            self.name,
            "GET",
            f"{self._base_url}/coins/{coingecko_id}/history",
            params={"date": day, "localization": "false"},
            headers=headers,
        )
        market = payload.get("market_data") if isinstance(payload, dict) else None
        prices = market.get("current_price") if isinstance(market, dict) else None
        usd = prices.get("usd") if isinstance(prices, dict) else None
        if usd is None:
            return None
        return PricePoint(price=parse_price(self.name, usd), source=self.name, timestamp=timestamp)


class CryptoCompareClient:
    name = "cryptocompare"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = "",
        base_url: str = CRYPTOCOMPARE_BASE_URL,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def get_price_at_timestamp(self, symbol: str, timestamp: int) -> PricePoint | None:
        params: dict[str, str | int] = {"fsym": symbol.upper(), "tsym": "USD", "limit": 1, "toTs": timestamp}
        if self._api_key:
            params["api_key"] = self._api_key
        payload = await request_json(
            self._client, self.name, "GET", f"{self._base_url}/v2/histohour", params=params
        )
        if not isinstance(payload, dict) or payload.get("Response") == "Error":
            return None
        data = payload.get("Data")
        rows = data.get("Data") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            return None
        rows = [r for r in rows if isinstance(r, dict) and r.get("close")]
        if not rows:
            return None
        try:
            row = min(rows, key=lambda r: abs(int(r.get("time") or 0) - timestamp))
            point_ts = int(row.get("time") or timestamp)
        except (TypeError, ValueError) as e:
            raise ProviderError(self.name, f"malformed histohour row: {e}") from e
        return PricePoint(
            price=parse_price(self.name, row["close"]),
            source=self.name,
            timestamp=point_ts,
            time_difference_sec=abs(point_ts - timestamp),
        )
