"""
Transaction normalizer — raw Solana RPC payloads to TransactionRecord.

Providers return getTransaction results in two shapes: `jsonParsed`
(accountKeys as {pubkey, signer, writable}, instructions carrying programId)
and `json` (accountKeys as strings, instructions carrying programIdIndex).
This module absorbs both so downstream code sees exactly one shape.
"""

from __future__ import annotations

from typing import Any, Mapping

from backend_solview.solana_listener.models import (
    AccountKey,
    Instruction,
    InstructionGroup,
    TokenBalanceEntry,
    TransactionMessage,
    TransactionMeta,
    TransactionRecord,
)


def _account_keys(message: Mapping[str, Any], meta: Mapping[str, Any]) -> tuple[AccountKey, ...]:
    """
    Resolve accountKeys (handles json vs jsonParsed).
    For versioned transactions in `json` encoding, appends meta.loadedAddresses
    (writable + readonly); jsonParsed accountKeys already list them.
    """
    raw_keys = message.get("accountKeys") or []
    header = message.get("header") or {}
    num_signers = int(header.get("numRequiredSignatures") or 0)
    keys: list[AccountKey] = []
    for i, key in enumerate(raw_keys):
        if isinstance(key, str):
            keys.append(AccountKey(pubkey=key, signer=i < num_signers))
        elif isinstance(key, Mapping):
            keys.append(
                AccountKey(
                    pubkey=str(key.get("pubkey") or ""),
                    signer=bool(key.get("signer")),
                    writable=bool(key.get("writable")),
                )
            )
    loaded = meta.get("loadedAddresses")
    if not isinstance(loaded, Mapping) or any(isinstance(k, Mapping) for k in raw_keys):
        return tuple(keys)
    for role in ("writable", "readonly"):
        for addr in loaded.get(role) or []:
            keys.append(AccountKey(pubkey=str(addr), writable=role == "writable"))
    return tuple(keys)


def _instruction(raw: Any, keys: tuple[AccountKey, ...]) -> Instruction | None:
    if not isinstance(raw, Mapping):
        return None
    program_id = raw.get("programId")
    if program_id is None:
        idx = raw.get("programIdIndex")
        if isinstance(idx, int) and 0 <= idx < len(keys):
            program_id = keys[idx].pubkey
    accounts: list[str] = []
    for acc in raw.get("accounts") or []:
        if isinstance(acc, str):
            accounts.append(acc)
        elif isinstance(acc, int) and 0 <= acc < len(keys):
            accounts.append(keys[acc].pubkey)
    data = raw.get("data")
    return Instruction(
        program_id=str(program_id) if program_id is not None else None,
        accounts=tuple(accounts),
        data=data if isinstance(data, str) else None,
    )


def _instructions(raw_list: Any, keys: tuple[AccountKey, ...]) -> tuple[Instruction, ...]:
    out = []
    for raw in raw_list or []:
        ix = _instruction(raw, keys)
        if ix is not None:
            out.append(ix)
    return tuple(out)


def _ui_amount(ui_token_amount: Mapping[str, Any] | None) -> float:
    """uiAmount, else uiAmountString, else 0 (RPC sends uiAmount=null for zero balances)."""
    if not ui_token_amount:
        return 0.0
    value = ui_token_amount.get("uiAmount")
    if value is None:
        value = ui_token_amount.get("uiAmountString")
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _token_balances(raw_list: Any) -> tuple[TokenBalanceEntry, ...]:
    out = []
    for raw in raw_list or []:
        if not isinstance(raw, Mapping) or not raw.get("mint"):
            continue
        ui = raw.get("uiTokenAmount") or {}
        decimals = ui.get("decimals")
        out.append(
            TokenBalanceEntry(
                account_index=int(raw.get("accountIndex") or 0),
                mint=str(raw["mint"]),
                ui_amount=_ui_amount(ui),
                owner=raw.get("owner"),
                decimals=int(decimals) if decimals is not None else None,
            )
        )
    return tuple(out)


def _int_list(raw_list: Any) -> tuple[int, ...]:
    return tuple(int(v or 0) for v in raw_list or [])


def _block_time(raw: Any) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def normalize_transaction(
    raw: Mapping[str, Any] | None,
    signature: str | None = None,
) -> TransactionRecord | None:
    """
    Normalize a getTransaction-style result into a TransactionRecord.

    Returns None when transaction or meta is missing; every other absent
    field, transaction.message included, becomes an empty/neutral value.
    """
    if not isinstance(raw, Mapping):
        return None
    tx_obj = raw.get("transaction")
    meta = raw.get("meta")
    if not isinstance(tx_obj, Mapping) or not isinstance(meta, Mapping):
        return None
    message = tx_obj.get("message")
    if not isinstance(message, Mapping):
        message = {}

    keys = _account_keys(message, meta)
    inner_groups = []
    for group in meta.get("innerInstructions") or []:
        if not isinstance(group, Mapping):
            continue
        inner_groups.append(
            InstructionGroup(
                index=int(group.get("index") or 0),
                instructions=_instructions(group.get("instructions"), keys),
            )
        )

    if signature is None:
        signature = raw.get("signature")
    if signature is None:
        sigs = tx_obj.get("signatures") or []
        signature = sigs[0] if sigs else None

    slot = raw.get("slot")
    return TransactionRecord(
        signature=signature,
        block_time=_block_time(raw.get("blockTime")),
        slot=int(slot) if slot is not None else None,
        meta=TransactionMeta(
            err=meta.get("err"),
            fee=int(meta.get("fee") or 0),
            log_messages=tuple(str(m) for m in meta.get("logMessages") or []),
            pre_balances=_int_list(meta.get("preBalances")),
            post_balances=_int_list(meta.get("postBalances")),
            pre_token_balances=_token_balances(meta.get("preTokenBalances")),
            post_token_balances=_token_balances(meta.get("postTokenBalances")),
            inner_instructions=tuple(inner_groups),
        ),
        message=TransactionMessage(
            account_keys=keys,
            instructions=_instructions(message.get("instructions"), keys),
        ),
    )
