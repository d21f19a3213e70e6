"""
Shared HTTP plumbing for provider clients.

One retry policy for every provider: up to `max_retries` attempts with
exponential backoff, retrying only transport errors, 429 and 5xx. Anything
else (4xx, RPC error payloads) fails immediately with ProviderError.
"""

from __future__ import annotations

import asyncio
import itertools
import math
from typing import Any

import httpx

from backend_solview.core.exceptions import ProviderError
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SEC = 0.3

_rpc_ids = itertools.count(1)


async def request_json(
    client: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_sec: float = DEFAULT_BASE_DELAY_SEC,
) -> Any:
    """Perform a request and decode JSON; raise ProviderError after the last failed attempt."""
    delay = base_delay_sec
    attempts = max(1, max_retries)
    for attempt in range(attempts):
        try:
            resp = await client.request(method, url, params=params, json=json_body, headers=headers)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            error = ProviderError(provider, f"HTTP {e.response.status_code}", e.response.status_code)
        except httpx.HTTPError as e:
            error = ProviderError(provider, f"transport error: {e}")
        except ValueError as e:
            raise ProviderError(provider, f"invalid JSON response: {e}") from e

        if not error.retryable or attempt + 1 >= attempts:
            logger.error("provider_request_failed", provider=provider, attempts=attempt + 1, error=error.message)
            raise error
        logger.warning(
            "provider_request_retry",
            provider=provider,
            attempt=attempt + 1,
            max_retries=attempts,
            error=error.message,
        )
        await asyncio.sleep(delay)
        delay *= 2

    raise ProviderError(provider, "no request attempted")


async def rpc_call(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    method: str,
    params: list[Any],
) -> Any:
    """Solana JSON-RPC call; raise ProviderError on an error payload."""
    body = {"jsonrpc": "2.0", "id": next(_rpc_ids), "method": method, "params": params}
    data = await request_json(client, provider, "POST", url, json_body=body)
    if not isinstance(data, dict):
        raise ProviderError(provider, "malformed JSON-RPC response")
    if "error" in data:
        err = data["error"] or {}
        raise ProviderError(
            provider,
            f"RPC error: {err.get('message', err)} (code={err.get('code')})",
        )
    return data.get("result")


def parse_price(provider: str, value: Any) -> float:
    """Decode a provider price field; a non-numeric value is a ProviderError."""
    try:
        price = float(value)
    except (TypeError, ValueError) as e:
        raise ProviderError(provider, f"malformed price value: {value!r}") from e
    if not math.isfinite(price) or price < 0:
        raise ProviderError(provider, f"malformed price value: {value!r}")
    return price
