"""
Application-level exceptions.

Provider clients raise ProviderError; the transaction service raises
TransactionNotFound; the API layer maps both to HTTP responses. The
classification core never raises these past TransactionAnalyzer.analyze().
"""

from __future__ import annotations


class SolViewError(Exception):
    """Base class for all Backend SolView errors."""


class ConfigurationError(SolViewError):
    """Invalid or missing configuration (e.g. unreadable program registry file)."""


class ProviderError(SolViewError):
    """A third-party data provider failed (transport error, bad status, RPC error payload)."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """True for transport failures, rate limits and server errors."""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class TransactionNotFound(SolViewError):
    """No provider returned a transaction for the signature."""

    def __init__(self, signature: str) -> None:
        super().__init__(f"transaction not found: {signature}")
        self.signature = signature
