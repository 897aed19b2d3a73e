"""Custom exceptions for the student ledger engine."""


class LedgerError(Exception):
    """Base exception for ledger engine errors."""

    pass


class SubjectNotFoundError(LedgerError):
    """Unknown student (subject) id."""

    def __init__(self, subject_id: int):
        super().__init__(f"Student not found: {subject_id}")
        self.subject_id = subject_id


class StoreError(LedgerError):
    """Failure reading from or writing to the underlying store."""

    pass


class TransactionValidationError(LedgerError):
    """A stored record could not be decoded into a valid transaction or invoice."""

    pass


class TransactionParseError(LedgerError):
    """Error parsing a transaction or invoice CSV export."""

    def __init__(self, message: str, row_errors: list[str] | None = None):
        super().__init__(message)
        self.row_errors = row_errors or []


class InvalidDateRangeError(LedgerError):
    """End date precedes start date and inverted ranges are rejected."""

    pass


class ConfigurationError(LedgerError):
    """Error in configuration."""

    pass
