"""
Derived structures produced by the analysis engine.

Each analyze() call builds its own instances; nothing here is cached or shared
across transactions. to_dict() renders the camelCase wire shape served by the API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from backend_solview.analysis_engine.registry import ProgramInfo

TYPE_SWAP = "swap"
TYPE_DEPOSIT = "deposit"
TYPE_WITHDRAW = "withdraw"
TYPE_ADD_LIQUIDITY = "add_liquidity"
TYPE_REMOVE_LIQUIDITY = "remove_liquidity"
TYPE_STAKE = "stake"
TYPE_UNSTAKE = "unstake"
TYPE_BORROW = "borrow"
TYPE_REPAY = "repay"
TYPE_TRANSFER = "transfer"
TYPE_ACCOUNT_CREATION = "account_creation"
TYPE_UNKNOWN = "unknown"
TYPE_ERROR = "error"

UNKNOWN_PROTOCOL = "Unknown Protocol"


@dataclass(frozen=True)
class NativeBalanceChange:
    """SOL balance change of one account (whole SOL units)."""

    account_index: int
    change: float
    pre_balance: float
    post_balance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountIndex": self.account_index,
            "change": self.change,
            "preBalance": self.pre_balance,
            "postBalance": self.post_balance,
        }


@dataclass(frozen=True)
class TokenBalanceChange:
    """Token balance change of one token account (ui units), with mint metadata."""

    mint: str
    symbol: str
    name: str
    logo_uri: str | None
    owner_index: int
    owner: str
    change: float
    pre_balance: float
    post_balance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "name": self.name,
            "logoURI": self.logo_uri,
            "ownerIndex": self.owner_index,
            "owner": self.owner,
            "change": self.change,
            "preBalance": self.pre_balance,
            "postBalance": self.post_balance,
        }


@dataclass(frozen=True)
class FinancialActivity:
    token_changes: tuple[TokenBalanceChange, ...] = ()
    sol_changes: tuple[NativeBalanceChange, ...] = ()
    fee: float = 0.0
    """Fee in SOL."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenChanges": [c.to_dict() for c in self.token_changes],
            "solChanges": [c.to_dict() for c in self.sol_changes],
            "fee": self.fee,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Outcome of one analyze() call.

    Three variants share this type: a full classification, an incomplete-data
    result (type="unknown" with reason) and a caught failure (type="error").
    """

    type: str
    protocol: str | None = None
    financial_activity: FinancialActivity | None = None
    program_ids: tuple[ProgramInfo, ...] = ()
    protocol_details: dict[str, Any] | None = None
    user_address: str | None = None
    timestamp: str | None = None
    reason: str | None = None
    error: str | None = None
    error_details: str | None = None
    signature: str | None = field(default=None, compare=False)

    @classmethod
    def incomplete(cls, reason: str) -> "AnalysisResult":
        return cls(type=TYPE_UNKNOWN, reason=reason)

    @classmethod
    def failed(cls, error: str, details: str) -> "AnalysisResult":
        return cls(type=TYPE_ERROR, error=error, error_details=details)

    @property
    def is_error(self) -> bool:
        return self.type == TYPE_ERROR

    def to_dict(self) -> dict[str, Any]:
        if self.type == TYPE_ERROR:
            return {"type": self.type, "error": self.error, "errorDetails": self.error_details}
        if self.reason is not None:
            return {"type": self.type, "reason": self.reason}
        out: dict[str, Any] = {
            "protocol": self.protocol,
            "type": self.type,
            "financialActivity": (
                self.financial_activity.to_dict() if self.financial_activity else None
            ),
            "programIds": [p.to_dict() for p in self.program_ids],
            "userAddress": self.user_address,
            "timestamp": self.timestamp,
        }
        if self.protocol_details is not None:
            out["protocolDetails"] = self.protocol_details
        return out
