"""Utility modules."""

from .exceptions import (
    LedgerError,
    SubjectNotFoundError,
    StoreError,
    TransactionValidationError,
    TransactionParseError,
    InvalidDateRangeError,
    ConfigurationError,
)
from .logging_config import setup_logging, parse_level

__all__ = [
    "LedgerError",
    "SubjectNotFoundError",
    "StoreError",
    "TransactionValidationError",
    "TransactionParseError",
    "InvalidDateRangeError",
    "ConfigurationError",
    "setup_logging",
    "parse_level",
]
