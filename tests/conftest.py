"""
Shared fixtures for the ledger engine tests.

The sample history for student 1 posts fee billings as CREDIT and
settlements as DEBIT, so that before 2026-01-01 it leaves 40000 on the
account (100000 + 50000 billed, 60000 + 50000 settled).
"""

from datetime import date, datetime, time
from itertools import count
from typing import Optional

import pytest

from student_ledger.ledger import StudentLedgerService
from student_ledger.models import Invoice, InvoiceStatus, Transaction, TransactionType
from student_ledger.repositories import (
    InMemoryAuditLog,
    InMemoryInvoiceRepository,
    InMemorySnapshotRepository,
    InMemorySubjectRepository,
    InMemoryTransactionRepository,
)

STUDENT = 1
OTHER_STUDENT = 2
PERIOD_START = date(2026, 1, 1)
PERIOD_END = date(2026, 1, 31)


@pytest.fixture
def make_txn():
    """Factory for transactions with sequential ids."""
    ids = count(1)

    def _make(
        txn_type: TransactionType,
        amount: int,
        on: date,
        subject_id: int = STUDENT,
        created_at: Optional[datetime] = None,
        voided: bool = False,
        description: str = "",
        reference: Optional[str] = None,
    ) -> Transaction:
        return Transaction(
            id=next(ids),
            subject_id=subject_id,
            type=txn_type,
            amount=amount,
            date=on,
            created_at=created_at or datetime.combine(on, time(10, 0)),
            voided=voided,
            description=description,
            reference=reference,
        )

    return _make


@pytest.fixture
def sample_transactions(make_txn) -> list[Transaction]:
    return [
        make_txn(TransactionType.CREDIT, 100000, date(2025, 11, 15), description="Invoice INV-2025-001"),
        make_txn(TransactionType.DEBIT, 60000, date(2025, 11, 20), description="Payment for INV-2025-001"),
        make_txn(TransactionType.CREDIT, 50000, date(2025, 12, 1), description="Invoice INV-2025-002"),
        make_txn(TransactionType.DEBIT, 50000, date(2025, 12, 5), description="Payment for INV-2025-002"),
        make_txn(TransactionType.CREDIT, 75000, date(2026, 1, 5), description="Invoice INV-2026-001"),
        make_txn(TransactionType.DEBIT, 50000, date(2026, 1, 10), description="Payment for INV-2026-001"),
        make_txn(TransactionType.CREDIT, 30000, date(2026, 1, 15), description="Invoice INV-2026-002"),
        make_txn(TransactionType.DEBIT, 20000, date(2026, 1, 20), description="Payment for INV-2026-002"),
        make_txn(TransactionType.ADJUSTMENT, 5000, date(2026, 1, 25), description="Credit adjustment"),
    ]


@pytest.fixture
def sample_invoices() -> list[Invoice]:
    return [
        Invoice(1, STUDENT, 100000, date(2025, 11, 15), InvoiceStatus.PARTIAL),
        Invoice(2, STUDENT, 50000, date(2025, 12, 1), InvoiceStatus.PAID),
        Invoice(3, STUDENT, 75000, date(2026, 1, 5), InvoiceStatus.OUTSTANDING),
        Invoice(4, STUDENT, 30000, date(2026, 1, 15), InvoiceStatus.PARTIAL),
    ]


@pytest.fixture
def transaction_repo(sample_transactions) -> InMemoryTransactionRepository:
    return InMemoryTransactionRepository(sample_transactions)


@pytest.fixture
def invoice_repo(sample_invoices) -> InMemoryInvoiceRepository:
    return InMemoryInvoiceRepository(sample_invoices)


@pytest.fixture
def snapshot_repo() -> InMemorySnapshotRepository:
    return InMemorySnapshotRepository()


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def service(transaction_repo, invoice_repo, snapshot_repo, audit_log) -> StudentLedgerService:
    return StudentLedgerService(
        transactions=transaction_repo,
        invoices=invoice_repo,
        snapshots=snapshot_repo,
        audit_log=audit_log,
        subjects=InMemorySubjectRepository([STUDENT, OTHER_STUDENT]),
    )
