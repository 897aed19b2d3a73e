"""Tests for Reconciler."""

from datetime import date

import pytest

from student_ledger.ledger import LedgerGenerator, Reconciler
from student_ledger.models import (
    BALANCE_MISMATCH,
    Invoice,
    ReconciliationStatus,
    TransactionType,
)
from student_ledger.repositories import (
    InMemoryInvoiceRepository,
    InMemoryTransactionRepository,
)

STUDENT = 1
PERIOD_START = date(2026, 1, 1)
PERIOD_END = date(2026, 1, 31)


def _reconciler(transactions, invoices, tolerance=1) -> Reconciler:
    return Reconciler(
        LedgerGenerator(InMemoryTransactionRepository(transactions)),
        InMemoryInvoiceRepository(invoices),
        tolerance=tolerance,
    )


class TestReconciler:
    def test_empty_period_is_balanced(self):
        result = _reconciler([], []).reconcile(STUDENT, PERIOD_START, PERIOD_END)

        assert result.ledger_balance == 0
        assert result.invoice_balance == 0
        assert result.difference == 0
        assert result.reconciled is True
        assert result.status is ReconciliationStatus.BALANCED
        assert result.discrepancies == []

    def test_matching_totals_balance(self, make_txn):
        transactions = [make_txn(TransactionType.CREDIT, 75000, date(2026, 1, 5))]
        invoices = [Invoice(1, STUDENT, 75000, date(2026, 1, 5))]

        result = _reconciler(transactions, invoices).reconcile(STUDENT, PERIOD_START, PERIOD_END)

        assert result.status is ReconciliationStatus.BALANCED

    def test_mismatch_reports_single_discrepancy(self, transaction_repo, invoice_repo):
        reconciler = Reconciler(LedgerGenerator(transaction_repo), invoice_repo)

        result = reconciler.reconcile(STUDENT, PERIOD_START, PERIOD_END)

        assert result.ledger_balance == 75000
        assert result.invoice_balance == 105000
        assert result.difference == 30000
        assert result.reconciled is False
        assert result.status is ReconciliationStatus.OUT_OF_BALANCE
        assert len(result.discrepancies) == 1
        discrepancy = result.discrepancies[0]
        assert discrepancy.type == BALANCE_MISMATCH
        assert (discrepancy.ledger_balance, discrepancy.invoice_balance) == (75000, 105000)
        assert discrepancy.difference == 30000

    def test_invoices_outside_period_ignored(self, make_txn):
        invoices = [
            Invoice(1, STUDENT, 5000, date(2025, 12, 31)),
            Invoice(2, STUDENT, 5000, date(2026, 2, 1)),
            Invoice(3, 2, 5000, date(2026, 1, 10)),
        ]
        result = _reconciler([], invoices).reconcile(STUDENT, PERIOD_START, PERIOD_END)

        assert result.invoice_balance == 0
        assert result.status is ReconciliationStatus.BALANCED

    @pytest.mark.parametrize(
        "tolerance, difference, balanced",
        [(1, 0, True), (1, 1, False), (100, 99, True), (100, 100, False)],
    )
    def test_tolerance_is_strict(self, make_txn, tolerance, difference, balanced):
        transactions = [make_txn(TransactionType.CREDIT, 10000 + difference, date(2026, 1, 5))]
        invoices = [Invoice(1, STUDENT, 10000, date(2026, 1, 5))]

        result = _reconciler(transactions, invoices, tolerance).reconcile(
            STUDENT, PERIOD_START, PERIOD_END
        )

        assert result.reconciled is balanced
        assert len(result.discrepancies) == (0 if balanced else 1)

    def test_ledger_uses_opening_balance(self, make_txn):
        transactions = [make_txn(TransactionType.CREDIT, 40000, date(2025, 12, 1))]
        invoices = [Invoice(1, STUDENT, 40000, date(2026, 1, 5))]

        result = _reconciler(transactions, invoices).reconcile(STUDENT, PERIOD_START, PERIOD_END)

        assert result.ledger_balance == 40000
        assert result.status is ReconciliationStatus.BALANCED
