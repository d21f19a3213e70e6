"""
Balance-delta reconstruction.

Diffs pre/post balance snapshots into signed changes: SOL per account and
token per (account, mint). Absolute thresholds filter dust, rounding noise and
pure fee debits. Token metadata is fetched concurrently, once per distinct
changed mint, and joined before returning; a failed or slow lookup degrades
that mint to placeholder metadata instead of failing the transaction.
"""

from __future__ import annotations

import asyncio

from backend_solview.analysis_engine.models import (
    FinancialActivity,
    NativeBalanceChange,
    TokenBalanceChange,
)
from backend_solview.providers.base import TokenMetadata, TokenMetadataProvider
from backend_solview.solana_listener.models import TokenBalanceEntry, TransactionRecord
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
TOKEN_CHANGE_THRESHOLD = 0.000001
SOL_CHANGE_THRESHOLD = 0.000005

UNKNOWN_SYMBOL = "UNKNOWN"
UNKNOWN_NAME = "Unknown Token"
UNKNOWN_OWNER = "unknown"

DEFAULT_METADATA_TIMEOUT_SEC = 5.0


def extract_token_mints(tx: TransactionRecord) -> set[str]:
    """Every mint appearing in pre or post token balances."""
    mints = {b.mint for b in tx.meta.pre_token_balances}
    mints.update(b.mint for b in tx.meta.post_token_balances)
    return mints


async def _fetch_metadata(
    provider: TokenMetadataProvider | None,
    mint: str,
    timeout: float,
) -> TokenMetadata | None:
    if provider is None:
        return None
    try:
        return await asyncio.wait_for(provider.get_token_metadata(mint), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("token_metadata_timeout", mint=mint, timeout_sec=timeout)
    except Exception as e:
        logger.warning("token_metadata_failed", mint=mint, error=str(e))
    return None


async def fetch_metadata_for_mints(
    provider: TokenMetadataProvider | None,
    mints: list[str],
    timeout: float = DEFAULT_METADATA_TIMEOUT_SEC,
) -> dict[str, TokenMetadata | None]:
    """Concurrent lookups; result maps every requested mint (None when unavailable)."""
    unique = list(dict.fromkeys(mints))
    results = await asyncio.gather(*(_fetch_metadata(provider, m, timeout) for m in unique))
    return dict(zip(unique, results))


def _native_changes(tx: TransactionRecord) -> list[NativeBalanceChange]:
    pre = tx.meta.pre_balances
    post = tx.meta.post_balances
    changes: list[NativeBalanceChange] = []
    for i in range(min(len(pre), len(post))):
        pre_sol = pre[i] / LAMPORTS_PER_SOL
        post_sol = post[i] / LAMPORTS_PER_SOL
        # Diff in lamports first so a 5000-lamport fee lands exactly on the threshold
        diff = (post[i] - pre[i]) / LAMPORTS_PER_SOL
        if abs(diff) > SOL_CHANGE_THRESHOLD:
            changes.append(
                NativeBalanceChange(
                    account_index=i,
                    change=diff,
                    pre_balance=pre_sol,
                    post_balance=post_sol,
                )
            )
    return changes


def _raw_token_deltas(
    tx: TransactionRecord,
) -> list[tuple[TokenBalanceEntry, float, float, float]]:
    """(entry, change, pre, post) for every material token delta, post order then vanished."""
    remaining: dict[tuple[int, str], TokenBalanceEntry] = {
        (b.account_index, b.mint): b for b in tx.meta.pre_token_balances
    }
    deltas: list[tuple[TokenBalanceEntry, float, float, float]] = []
    for post in tx.meta.post_token_balances:
        key = (post.account_index, post.mint)
        pre_entry = remaining.pop(key, None)
        pre_amount = pre_entry.ui_amount if pre_entry is not None else 0.0
        diff = post.ui_amount - pre_amount
        if abs(diff) > TOKEN_CHANGE_THRESHOLD:
            deltas.append((post, diff, pre_amount, post.ui_amount))

    # Accounts closed by the transaction drop out of postTokenBalances entirely
    for pre_entry in remaining.values():
        if pre_entry.ui_amount > TOKEN_CHANGE_THRESHOLD:
            deltas.append((pre_entry, -pre_entry.ui_amount, pre_entry.ui_amount, 0.0))
    return deltas


async def reconstruct_financial_activity(
    tx: TransactionRecord,
    metadata_provider: TokenMetadataProvider | None,
    *,
    timeout: float = DEFAULT_METADATA_TIMEOUT_SEC,
) -> FinancialActivity:
    """
    Net token and SOL deltas of the transaction plus its fee (SOL).

    Never fails because of metadata: each mint whose lookup raises, times out
    or returns None gets UNKNOWN / Unknown Token / no logo.
    """
    deltas = _raw_token_deltas(tx)
    metadata = await fetch_metadata_for_mints(
        metadata_provider, [entry.mint for entry, *_ in deltas], timeout
    )

    token_changes = []
    for entry, change, pre_amount, post_amount in deltas:
        meta = metadata.get(entry.mint)
        token_changes.append(
            TokenBalanceChange(
                mint=entry.mint,
                symbol=(meta.symbol if meta and meta.symbol else UNKNOWN_SYMBOL),
                name=(meta.name if meta and meta.name else UNKNOWN_NAME),
                logo_uri=meta.logo_uri if meta else None,
                owner_index=entry.account_index,
                owner=entry.owner or UNKNOWN_OWNER,
                change=change,
                pre_balance=pre_amount,
                post_balance=post_amount,
            )
        )

    return FinancialActivity(
        token_changes=tuple(token_changes),
        sol_changes=tuple(_native_changes(tx)),
        fee=tx.meta.fee / LAMPORTS_PER_SOL if tx.meta.fee else 0,
    )
