"""Exceptions raised by congestion analysis.

Every error is scoped to the single computation that raised it; the caller
decides whether to skip a cell, substitute a default, or surface the failure.
"""


class CongestionError(Exception):
    """Base exception for all congestion analysis errors."""


class InputValidationError(CongestionError):
    """Raised when readings violate the input contract.

    Covers negative tier counts, timestamps out of order within a cell,
    and raw rows that cannot be parsed into readings.
    """

    def __init__(self, message: str, cell: tuple[int, int] | None = None):
        super().__init__(message)
        self.cell = cell


class InsufficientDataError(CongestionError):
    """Raised when a threshold is requested over an empty population."""


class ConfigurationError(CongestionError):
    """Raised when configuration is invalid."""
