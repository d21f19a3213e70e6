"""
Historical USD price resolution.

Sources are tried in order until one answers:
  1. Birdeye price history (closest point within 2h)
  2. CoinGecko daily history (needs the token's coingecko id)
  3. CryptoCompare hourly history (well-known symbols only)
  4. Jupiter current price (flagged is_current)

A failing source is logged and skipped; None means no source had a price.
"""

from __future__ import annotations

from typing import Awaitable, TypeVar

from backend_solview.providers.base import PricePoint, PriceResolver, TokenMetadataProvider
from backend_solview.providers.birdeye import BirdeyeClient
from backend_solview.providers.jupiter import JupiterClient
from backend_solview.providers.market_data import CoinGeckoClient, CryptoCompareClient
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"

# Symbols CryptoCompare lists with reliable history
CRYPTOCOMPARE_SYMBOLS = frozenset(
    {"SOL", "USDC", "USDT", "BTC", "WBTC", "ETH", "BONK", "JUP", "RAY", "ORCA", "MSOL", "JTO", "PYTH", "WIF"}
)

# Known coingecko ids for mints that often lack one in token lists
KNOWN_COINGECKO_IDS = {
    WRAPPED_SOL_MINT: "solana",
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "usd-coin",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "tether",
}


class HistoricalPriceResolver(PriceResolver):
    def __init__(
        self,
        metadata: TokenMetadataProvider | None = None,
        birdeye: BirdeyeClient | None = None,
        coingecko: CoinGeckoClient | None = None,
        cryptocompare: CryptoCompareClient | None = None,
        jupiter: JupiterClient | None = None,
    ) -> None:
        self._metadata = metadata
        self._birdeye = birdeye
        self._coingecko = coingecko
        self._cryptocompare = cryptocompare
        self._jupiter = jupiter

    async def _identity(self, mint: str) -> tuple[str | None, str | None]:
        """(symbol, coingecko_id) used by the symbol/id keyed sources."""
        symbol = "SOL" if mint == WRAPPED_SOL_MINT else None
        coingecko_id = KNOWN_COINGECKO_IDS.get(mint)
        if self._metadata is None:
            return symbol, coingecko_id
        meta = await self._try("metadata", mint, self._metadata.get_token_metadata(mint))
        if meta is not None:
            symbol = symbol or meta.symbol
            coingecko_id = coingecko_id or meta.coingecko_id
        return symbol, coingecko_id

    async def resolve_price_at(self, mint: str, timestamp: int) -> PricePoint | None:
        if self._birdeye is not None:
            point = await self._try("birdeye", mint, self._birdeye.get_historical_price(mint, timestamp))
            if point is not None:
                return point

        symbol, coingecko_id = await self._identity(mint)

        if self._coingecko is not None and coingecko_id:
            point = await self._try(
                "coingecko", mint, self._coingecko.get_price_at_timestamp(coingecko_id, timestamp)
            )
            if point is not None:
                return point

        if self._cryptocompare is not None and symbol and symbol.upper() in CRYPTOCOMPARE_SYMBOLS:
            point = await self._try(
                "cryptocompare", mint, self._cryptocompare.get_price_at_timestamp(symbol, timestamp)
            )
            if point is not None:
                return point

        if self._jupiter is not None:
            price = await self._try("jupiter", mint, self._jupiter.get_price(mint))
            if price is not None:
                return PricePoint(price=price, source="jupiter", is_current=True)

        logger.debug("price_not_found", mint=mint, timestamp=timestamp)
        return None

    async def _try(self, source: str, mint: str, lookup: Awaitable[T]) -> T | None:
        # Malformed provider payloads surface as ValueError/TypeError, not ProviderError
        try:
            return await lookup
        except Exception as e:
            logger.warning("price_source_failed", source=source, mint=mint, error=str(e))
            return None
