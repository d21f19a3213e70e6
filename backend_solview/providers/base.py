"""
Enrichment collaborator interfaces.

The analysis engine depends only on these two abstractions; concrete provider
services (token lists, Birdeye, CoinGecko, ...) implement them and tests
substitute in-memory doubles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TokenMetadata:
    mint: str
    symbol: str
    name: str
    logo_uri: str | None = None
    decimals: int | None = None
    coingecko_id: str | None = None
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "name": self.name,
            "logoURI": self.logo_uri,
            "decimals": self.decimals,
            "coingeckoId": self.coingecko_id,
            "source": self.source,
        }


@dataclass(frozen=True)
class PricePoint:
    """A USD price for a mint at (or near) a point in time."""

    price: float
    source: str
    timestamp: int | None = None
    """Unix seconds of the data point actually used."""
    time_difference_sec: int | None = None
    is_current: bool = False
    """True when only a current price was available (not historical)."""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "price": self.price,
            "source": self.source,
            "timestamp": self.timestamp,
            "timeDifferenceSec": self.time_difference_sec,
        }
        if self.is_current:
            out["warning"] = "current price, not historical"
        return out


class TokenMetadataProvider(ABC):
    @abstractmethod
    async def get_token_metadata(self, mint: str) -> TokenMetadata | None:
        """Metadata for a mint; None when unknown. May raise on provider failure."""


class PriceResolver(ABC):
    @abstractmethod
    async def resolve_price_at(self, mint: str, timestamp: int) -> PricePoint | None:
        """USD price of `mint` at unix `timestamp`; None when no source has data."""
