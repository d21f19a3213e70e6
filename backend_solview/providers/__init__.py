"""
Data providers: Solana RPC, token metadata and USD price sources.
"""

from backend_solview.providers.base import (
    PricePoint,
    PriceResolver,
    TokenMetadata,
    TokenMetadataProvider,
)
from backend_solview.providers.birdeye import BirdeyeClient
from backend_solview.providers.jupiter import JupiterClient
from backend_solview.providers.market_data import CoinGeckoClient, CryptoCompareClient
from backend_solview.providers.metadata import TokenMetadataService
from backend_solview.providers.pricing import HistoricalPriceResolver
from backend_solview.providers.solana_rpc import SolanaRpcClient

__all__ = [
    "BirdeyeClient",
    "CoinGeckoClient",
    "CryptoCompareClient",
    "HistoricalPriceResolver",
    "JupiterClient",
    "PricePoint",
    "PriceResolver",
    "SolanaRpcClient",
    "TokenMetadata",
    "TokenMetadataProvider",
    "TokenMetadataService",
]
