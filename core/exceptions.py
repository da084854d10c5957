"""Custom exceptions for the portfolio diagnostics engine."""

from __future__ import annotations


class PortfolioEngineError(Exception):
    """Base exception for portfolio diagnostics errors."""

    pass


class ValidationError(PortfolioEngineError):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ConfigurationError(PortfolioEngineError):
    """Raised when a scoring configuration is missing values or malformed."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Invalid configuration at {field}: {message}")


class DataFetchError(PortfolioEngineError):
    """Raised when fetching market data fails."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(f"Failed to fetch data from {source}: {message}")


class SimulationError(PortfolioEngineError):
    """Raised when simulation encounters numerical or logical issues."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
