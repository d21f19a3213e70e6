"""
Token metadata service.

Resolution order: in-memory TTL cache -> Jupiter verified token list (loaded
once per process) -> Birdeye token metadata. Only hits are cached; a mint that
no source knows is looked up again next time.
"""

from __future__ import annotations

import asyncio
import time

from backend_solview.providers.base import TokenMetadata, TokenMetadataProvider
from backend_solview.providers.birdeye import BirdeyeClient
from backend_solview.providers.jupiter import JupiterClient
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_TTL_SEC = 24 * 60 * 60


class TokenMetadataService(TokenMetadataProvider):
    def __init__(
        self,
        jupiter: JupiterClient | None = None,
        birdeye: BirdeyeClient | None = None,
        *,
        cache_ttl_sec: float = DEFAULT_CACHE_TTL_SEC,
    ) -> None:
        self._jupiter = jupiter
        self._birdeye = birdeye
        self._ttl = cache_ttl_sec
        self._cache: dict[str, tuple[float, TokenMetadata]] = {}
        self._token_list: dict[str, TokenMetadata] = {}
        self._token_list_loaded = False
        self._token_list_lock = asyncio.Lock()

    def _cached(self, mint: str) -> TokenMetadata | None:
        entry = self._cache.get(mint)
        if entry is None:
            return None
        stored_at, meta = entry
        if time.monotonic() - stored_at > self._ttl:
            del self._cache[mint]
            return None
        return meta

    def _store(self, meta: TokenMetadata) -> TokenMetadata:
        self._cache[meta.mint] = (time.monotonic(), meta)
        return meta

    async def _ensure_token_list(self) -> None:
        if self._token_list_loaded or self._jupiter is None:
            return
        async with self._token_list_lock:
            if self._token_list_loaded:
                return
            try:
                tokens = await self._jupiter.get_supported_tokens()
            except Exception as e:
                # Not retried for this process; Birdeye still covers lookups
                logger.warning("token_list_load_failed", provider="jupiter", error=str(e))
                tokens = []
            self._token_list = {t.mint: t for t in tokens}
            self._token_list_loaded = True
            logger.info("token_list_loaded", count=len(self._token_list))

    async def get_token_metadata(self, mint: str) -> TokenMetadata | None:
        cached = self._cached(mint)
        if cached is not None:
            return cached

        await self._ensure_token_list()
        listed = self._token_list.get(mint)
        if listed is not None:
            return self._store(listed)

        if self._birdeye is not None:
            try:
                meta = await self._birdeye.get_token_metadata(mint)
            except Exception as e:
                logger.warning("token_metadata_lookup_failed", mint=mint, provider="birdeye", error=str(e))
                meta = None
            if meta is not None:
                return self._store(meta)

        logger.debug("token_metadata_not_found", mint=mint)
        return None

