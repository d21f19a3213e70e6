"""
Solana RPC client (Helius, Alchemy or any JSON-RPC endpoint).

Fetches raw getTransaction / getSignaturesForAddress results; normalization
into TransactionRecord happens in the service layer.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_solview.providers.http import rpc_call
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

MAX_SIGNATURES_PER_REQUEST = 1000


class SolanaRpcClient:
    def __init__(self, name: str, rpc_url: str, client: httpx.AsyncClient) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self.name = name
        self._rpc_url = rpc_url
        self._client = client

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        """Raw jsonParsed transaction, or None when the node does not know the signature."""
        result = await rpc_call(
            self._client,
            self.name,
            self._rpc_url,
            "getTransaction",
            [signature, {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}],
        )
        return result if isinstance(result, dict) else None

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int = 100,
        before: str | None = None,
    ) -> list[dict[str, Any]]:
        """Newest-first signature infos for an address."""
        opts: dict[str, Any] = {
            "limit": max(1, min(limit, MAX_SIGNATURES_PER_REQUEST)),
            "commitment": "confirmed",
        }
        if before:
            opts["before"] = before
        result = await rpc_call(
            self._client, self.name, self._rpc_url, "getSignaturesForAddress", [address, opts]
        )
        items = result if isinstance(result, list) else []
        return [item for item in items if isinstance(item, dict) and "signature" in item]
