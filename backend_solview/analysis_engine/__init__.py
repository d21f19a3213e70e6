"""
Analysis engine — transaction classification and financial-activity reconstruction.

Given a canonical TransactionRecord: which known programs took part, what
net balance deltas it caused, which semantic type and protocol it belongs to,
and protocol-specific details (swap legs, route, pool variant).
"""

from backend_solview.analysis_engine.analyzer import TransactionAnalyzer
from backend_solview.analysis_engine.balances import (
    extract_token_mints,
    reconstruct_financial_activity,
)
from backend_solview.analysis_engine.classifier import (
    determine_transaction_type,
    identify_protocol,
)
from backend_solview.analysis_engine.models import (
    AnalysisResult,
    FinancialActivity,
    NativeBalanceChange,
    TokenBalanceChange,
)
from backend_solview.analysis_engine.programs import find_user_address, identify_involved_programs
from backend_solview.analysis_engine.registry import ProgramInfo, ProgramRegistry

__all__ = [
    "AnalysisResult",
    "FinancialActivity",
    "NativeBalanceChange",
    "ProgramInfo",
    "ProgramRegistry",
    "TokenBalanceChange",
    "TransactionAnalyzer",
    "determine_transaction_type",
    "extract_token_mints",
    "find_user_address",
    "identify_involved_programs",
    "identify_protocol",
    "reconstruct_financial_activity",
]
