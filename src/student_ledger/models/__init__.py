"""Data models for the ledger engine."""

from .transaction import (
    Transaction,
    TransactionType,
    Invoice,
    InvoiceStatus,
    OpeningBalanceSnapshot,
)
from .ledger import (
    LedgerEntry,
    Discrepancy,
    ReconciliationResult,
    ReconciliationStatus,
    VerificationResult,
    VerificationStatus,
    LedgerAuditReport,
    AuditStatus,
    BALANCE_MISMATCH,
    closing_balance,
)

__all__ = [
    "Transaction",
    "TransactionType",
    "Invoice",
    "InvoiceStatus",
    "OpeningBalanceSnapshot",
    "LedgerEntry",
    "Discrepancy",
    "ReconciliationResult",
    "ReconciliationStatus",
    "VerificationResult",
    "VerificationStatus",
    "LedgerAuditReport",
    "AuditStatus",
    "BALANCE_MISMATCH",
    "closing_balance",
]
