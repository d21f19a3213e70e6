"""
Classification orchestrator.

Composes program extraction -> balance reconstruction -> type and protocol
classification -> protocol details into one AnalysisResult. This is the only
error boundary of the engine: analyze() never raises, every failure becomes a
structured result.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from backend_solview.analysis_engine.balances import (
    DEFAULT_METADATA_TIMEOUT_SEC,
    reconstruct_financial_activity,
)
from backend_solview.analysis_engine.classifier import (
    determine_transaction_type,
    identify_protocol,
)
from backend_solview.analysis_engine.models import AnalysisResult
from backend_solview.analysis_engine.programs import find_user_address, identify_involved_programs
from backend_solview.analysis_engine.protocols import ProtocolContext, analyze_protocol_details
from backend_solview.analysis_engine.registry import ProgramRegistry
from backend_solview.providers.base import PriceResolver, TokenMetadataProvider
from backend_solview.solana_listener.models import TransactionRecord
from backend_solview.solana_listener.normalizer import normalize_transaction
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

INCOMPLETE_REASON = "incomplete transaction data"
ANALYSIS_FAILED = "Unable to analyze transaction"


def format_block_time(block_time: int | None) -> str | None:
    """ISO-8601 UTC with milliseconds, e.g. 2024-03-01T12:00:00.000Z."""
    if block_time is None:
        return None
    dt = datetime.fromtimestamp(block_time, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TransactionAnalyzer:
    """
    Stateless transaction classifier.

    Holds only immutable configuration (registry) and collaborator references;
    concurrent analyze() calls for different transactions are independent.
    """

    def __init__(
        self,
        registry: ProgramRegistry,
        metadata_provider: TokenMetadataProvider | None = None,
        price_resolver: PriceResolver | None = None,
        *,
        metadata_timeout_sec: float = DEFAULT_METADATA_TIMEOUT_SEC,
    ) -> None:
        self._registry = registry
        self._metadata = metadata_provider
        self._prices = price_resolver
        self._metadata_timeout = metadata_timeout_sec

    @property
    def registry(self) -> ProgramRegistry:
        return self._registry

    async def analyze(
        self,
        transaction: TransactionRecord | Mapping[str, Any] | None,
    ) -> AnalysisResult:
        """
        Classify one transaction.

        Accepts a canonical TransactionRecord or a raw getTransaction payload
        (normalized here). Missing transaction/meta -> type "unknown" with a
        reason; any unexpected exception -> type "error".
        """
        try:
            if isinstance(transaction, TransactionRecord):
                record: TransactionRecord | None = transaction
            else:
                record = normalize_transaction(transaction)
            if record is None:
                return AnalysisResult.incomplete(INCOMPLETE_REASON)
            return await self._analyze_record(record)
        except Exception as e:
            logger.exception("transaction_analysis_failed", error=str(e))
            return AnalysisResult.failed(ANALYSIS_FAILED, str(e))

    async def _analyze_record(self, record: TransactionRecord) -> AnalysisResult:
        logs = record.meta.log_messages
        program_ids = identify_involved_programs(record)
        activity = await reconstruct_financial_activity(
            record, self._metadata, timeout=self._metadata_timeout
        )
        tx_type = determine_transaction_type(logs, program_ids, self._registry)
        protocol = identify_protocol(program_ids, self._registry)
        details = await analyze_protocol_details(
            protocol,
            ProtocolContext(
                tx=record,
                activity=activity,
                logs=logs,
                program_ids=program_ids,
                registry=self._registry,
                price_resolver=self._prices,
            ),
        )

        logger.debug(
            "transaction_analyzed",
            signature=record.signature,
            protocol=protocol,
            type=tx_type,
            token_changes=len(activity.token_changes),
            sol_changes=len(activity.sol_changes),
        )
        return AnalysisResult(
            type=tx_type,
            protocol=protocol,
            financial_activity=activity,
            program_ids=tuple(self._registry.describe(program_ids)),
            protocol_details=details,
            user_address=find_user_address(record),
            timestamp=format_block_time(record.block_time),
            signature=record.signature,
        )
