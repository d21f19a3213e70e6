"""
Transaction service: fetch -> normalize -> analyze -> price enrichment.

Used by the API layer. RPC endpoints are tried in configured order (Helius,
Alchemy, plain RPC); the first endpoint that answers wins. Wallet history is
analyzed in small concurrent batches to stay within provider rate limits.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import httpx

from backend_solview.analysis_engine.analyzer import TransactionAnalyzer
from backend_solview.analysis_engine.balances import LAMPORTS_PER_SOL, extract_token_mints
from backend_solview.analysis_engine.registry import ProgramRegistry
from backend_solview.config.env import mask_url
from backend_solview.config.settings import Settings
from backend_solview.core.exceptions import ProviderError, TransactionNotFound
from backend_solview.providers.base import PriceResolver, TokenMetadataProvider
from backend_solview.providers.birdeye import BirdeyeClient
from backend_solview.providers.jupiter import JupiterClient
from backend_solview.providers.market_data import CoinGeckoClient, CryptoCompareClient
from backend_solview.providers.metadata import TokenMetadataService
from backend_solview.providers.pricing import HistoricalPriceResolver
from backend_solview.providers.solana_rpc import SolanaRpcClient
from backend_solview.solana_listener.models import TransactionRecord
from backend_solview.solana_listener.normalizer import normalize_transaction
from backend_solview.solview_logging import bind_signature, get_logger

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 20
DEFAULT_HISTORY_BATCH_SIZE = 5

T = TypeVar("T")


class TransactionService:
    def __init__(
        self,
        rpc_clients: Sequence[SolanaRpcClient],
        analyzer: TransactionAnalyzer,
        metadata_provider: TokenMetadataProvider | None = None,
        price_resolver: PriceResolver | None = None,
        *,
        history_batch_size: int = DEFAULT_HISTORY_BATCH_SIZE,
    ) -> None:
        if not rpc_clients:
            raise ValueError("at least one RPC client is required")
        self._rpc_clients = list(rpc_clients)
        self._analyzer = analyzer
        self._metadata = metadata_provider
        self._prices = price_resolver
        self._batch_size = max(1, history_batch_size)

    @property
    def analyzer(self) -> TransactionAnalyzer:
        return self._analyzer

    async def _first_success(
        self,
        operation: str,
        call: Callable[[SolanaRpcClient], Awaitable[T]],
    ) -> tuple[T | None, bool]:
        """
        Run `call` against each RPC client in order.

        Returns (result, answered): the first non-None result, or (None, True)
        when some endpoint answered but had nothing. Raises the last
        ProviderError when every endpoint failed.
        """
        last_error: ProviderError | None = None
        answered = False
        for client in self._rpc_clients:
            try:
                result = await call(client)
            except ProviderError as e:
                logger.warning("rpc_endpoint_failed", operation=operation, provider=client.name, error=e.message)
                last_error = e
                continue
            answered = True
            if result is not None:
                return result, True
        if not answered and last_error is not None:
            raise last_error
        return None, answered

    async def fetch_transaction(self, signature: str) -> dict[str, Any]:
        """Raw getTransaction payload; raises TransactionNotFound or ProviderError."""
        raw, _ = await self._first_success(
            "getTransaction", lambda client: client.get_transaction(signature)
        )
        if raw is None:
            raise TransactionNotFound(signature)
        return raw

    async def enrich_price_history(self, record: TransactionRecord) -> dict[str, Any]:
        """
        USD price of every mint in the transaction at its block time.

        Returns {mint: {symbol, name, price}} where price is a PricePoint dict
        or None; {} when the record has no block time or no price resolver.
        """
        if record.block_time is None or self._prices is None:
            return {}
        mints = sorted(extract_token_mints(record))
        if not mints:
            return {}
        entries = await asyncio.gather(*(self._price_entry(m, record.block_time) for m in mints))
        return dict(zip(mints, entries))

    async def _price_entry(self, mint: str, timestamp: int) -> dict[str, Any]:
        symbol = name = None
        if self._metadata is not None:
            try:
                meta = await self._metadata.get_token_metadata(mint)
            except Exception as e:
                logger.warning("price_history_metadata_failed", mint=mint, error=str(e))
                meta = None
            if meta is not None:
                symbol, name = meta.symbol, meta.name
        point = None
        if self._prices is not None:
            try:
                point = await self._prices.resolve_price_at(mint, timestamp)
            except Exception as e:
                logger.warning("price_history_price_failed", mint=mint, error=str(e))
        return {
            "symbol": symbol,
            "name": name,
            "price": point.to_dict() if point is not None else None,
        }

    async def get_transaction_analysis(self, signature: str) -> dict[str, Any]:
        log = bind_signature(signature)
        raw = await self.fetch_transaction(signature)
        record = normalize_transaction(raw, signature=signature)
        if record is None:
            # Incomplete payload: the analyzer reports it as unknown with a reason
            analysis = await self._analyzer.analyze(raw)
            log.warning("transaction_payload_incomplete")
            return {
                "signature": signature,
                "blockTime": raw.get("blockTime"),
                "status": "unknown",
                "fee": None,
                "analysis": analysis.to_dict(),
                "priceHistory": {},
            }

        analysis, price_history = await asyncio.gather(
            self._analyzer.analyze(record),
            self.enrich_price_history(record),
        )
        log.info(
            "transaction_analysis_served",
            type=analysis.type,
            protocol=analysis.protocol,
            priced_mints=len(price_history),
        )
        return {
            "signature": signature,
            "blockTime": record.block_time,
            "status": "success" if record.succeeded else "failed",
            "fee": record.meta.fee / LAMPORTS_PER_SOL,
            "analysis": analysis.to_dict(),
            "priceHistory": price_history,
        }

    async def get_signatures(self, wallet: str, limit: int, before: str | None = None) -> list[dict[str, Any]]:
        infos, _ = await self._first_success(
            "getSignaturesForAddress",
            lambda client: client.get_signatures_for_address(wallet, limit=limit, before=before),
        )
        return infos or []

    async def _analysis_or_none(self, signature: str) -> dict[str, Any] | None:
        try:
            return await self.get_transaction_analysis(signature)
        except (TransactionNotFound, ProviderError) as e:
            logger.warning("history_transaction_skipped", signature=signature, error=str(e))
            return None
        except Exception:
            logger.exception("history_transaction_failed", signature=signature)
            return None

    async def get_wallet_history(
        self,
        wallet: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        before: str | None = None,
    ) -> dict[str, Any]:
        """Analyzed transactions of a wallet, newest first; failing entries are skipped."""
        infos = await self.get_signatures(wallet, limit, before)
        signatures = [info["signature"] for info in infos]

        transactions: list[dict[str, Any]] = []
        for start in range(0, len(signatures), self._batch_size):
            batch = signatures[start : start + self._batch_size]
            results = await asyncio.gather(*(self._analysis_or_none(s) for s in batch))
            transactions.extend(r for r in results if r is not None)

        logger.info(
            "wallet_history_served",
            wallet=wallet[:16] + "...",
            requested=len(signatures),
            analyzed=len(transactions),
        )
        return {
            "wallet": wallet,
            "transactions": transactions,
            "count": len(transactions),
            "nextBefore": signatures[-1] if signatures else None,
        }


def load_registry(settings: Settings) -> ProgramRegistry:
    if settings.program_registry_path:
        return ProgramRegistry.from_json_file(settings.program_registry_path)
    return ProgramRegistry.default()


def build_transaction_service(settings: Settings, client: httpx.AsyncClient) -> TransactionService:
    """Wire providers, enrichment services and the analyzer from settings."""
    rpc_clients = [SolanaRpcClient(name, url, client) for name, url in settings.rpc_endpoints]
    birdeye = BirdeyeClient(client, settings.birdeye_api_key)
    jupiter = JupiterClient(client, settings.jupiter_api_key)
    metadata = TokenMetadataService(jupiter, birdeye, cache_ttl_sec=settings.metadata_cache_ttl_sec)
    prices = HistoricalPriceResolver(
        metadata=metadata,
        birdeye=birdeye,
        coingecko=CoinGeckoClient(client, settings.coingecko_api_key),
        cryptocompare=CryptoCompareClient(client, settings.cryptocompare_api_key),
        jupiter=jupiter,
    )
    analyzer = TransactionAnalyzer(
        load_registry(settings),
        metadata,
        prices,
        metadata_timeout_sec=settings.metadata_timeout_sec,
    )
    logger.info(
        "transaction_service_built",
        rpc_endpoints=[f"{name}:{mask_url(url)}" for name, url in settings.rpc_endpoints],
    )
    return TransactionService(
        rpc_clients,
        analyzer,
        metadata,
        prices,
        history_batch_size=settings.history_batch_size,
    )
