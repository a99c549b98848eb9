"""Exception types raised across the indexer."""

from __future__ import annotations


class IndexerError(Exception):
    """Base exception for royalty_indexer errors."""

    pass


class ConfigError(IndexerError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


class ChainSourceError(IndexerError):
    """Raised when a JSON-RPC request fails."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.code = code


class DecodeError(IndexerError):
    """Raised when a raw log cannot be decoded into a PaymentEvent."""

    pass


class StrategyConfigError(IndexerError):
    """Raised when strategy parameters are rejected at configuration time."""

    pass


class PaymentRejected(IndexerError):
    """Raised by the router when a payment cannot be accepted."""

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason
