"""
Core utilities — shared exceptions and cross-cutting concerns.

Used across the normalizer, analysis engine, provider clients and API server.
"""

from backend_solview.core.exceptions import (
    ConfigurationError,
    ProviderError,
    SolViewError,
    TransactionNotFound,
)

__all__ = [
    "ConfigurationError",
    "ProviderError",
    "SolViewError",
    "TransactionNotFound",
]
