"""Derived ledger views and the results of reconciliation and verification."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional


class ReconciliationStatus(Enum):
    BALANCED = "BALANCED"
    OUT_OF_BALANCE = "OUT_OF_BALANCE"


class VerificationStatus(Enum):
    VERIFIED = "VERIFIED"
    DISCREPANCY = "DISCREPANCY"


class AuditStatus(Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"


BALANCE_MISMATCH = "BALANCE_MISMATCH"


@dataclass(frozen=True)
class LedgerEntry:
    """
    One row of a student ledger statement.

    Built fresh on every ledger request and never mutated afterwards.
    ``type`` is the transaction type name, or ``OPENING_BALANCE`` for the
    synthetic first row.
    """

    date: date
    type: str
    description: str
    debit: int
    credit: int
    running_balance: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "type": self.type,
            "description": self.description,
            "debit": self.debit,
            "credit": self.credit,
            "running_balance": self.running_balance,
        }


def closing_balance(entries: list[LedgerEntry]) -> int:
    """Running balance of the last entry, or 0 for an empty ledger."""
    return entries[-1].running_balance if entries else 0


@dataclass(frozen=True)
class Discrepancy:
    """A reportable difference found while reconciling a period."""

    type: str
    ledger_balance: int
    invoice_balance: int
    difference: int


@dataclass
class ReconciliationResult:
    """Outcome of comparing the ledger closing balance with invoiced totals."""

    reconciled: bool
    ledger_balance: int
    invoice_balance: int
    difference: int
    status: ReconciliationStatus
    discrepancies: list[Discrepancy] = field(default_factory=list)


@dataclass
class VerificationResult:
    """Outcome of checking a calculated opening balance against its snapshot."""

    verified: bool
    opening_balance: int
    status: VerificationStatus

    # Snapshot value compared against
    recorded_balance: Optional[int] = None

    # True only on the call that wrote the snapshot
    baseline_established: bool = False


@dataclass
class LedgerAuditReport:
    """Period-end audit bundle for one student."""

    subject_id: int
    period_start: date
    period_end: date
    entries: list[LedgerEntry]
    reconciliation: ReconciliationResult
    verification: VerificationResult

    @property
    def audit_status(self) -> AuditStatus:
        if self.reconciliation.reconciled and self.verification.verified:
            return AuditStatus.PASSED
        return AuditStatus.FAILED
