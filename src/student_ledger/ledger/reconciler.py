"""Reconciliation of ledger closing balances against invoiced totals."""

from datetime import date
import logging

from ..config import DEFAULT_TOLERANCE
from ..models.ledger import (
    BALANCE_MISMATCH,
    Discrepancy,
    ReconciliationResult,
    ReconciliationStatus,
    closing_balance,
)
from ..repositories.base import InvoiceRepository
from .generator import LedgerGenerator

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Compares a student's ledger closing balance with the sum of invoices
    dated in the same period.

    A mismatch is reported in the result, never raised.
    """

    def __init__(
        self,
        ledger: LedgerGenerator,
        invoices: InvoiceRepository,
        tolerance: int = DEFAULT_TOLERANCE,
    ):
        """
        Initialize the reconciler.

        Args:
            ledger: Ledger generator for the closing balance
            invoices: Source of invoices
            tolerance: Differences strictly below this many minor units balance
        """
        self.ledger = ledger
        self.invoices = invoices
        self.tolerance = tolerance

    def reconcile(
        self, subject_id: int, period_start: date, period_end: date
    ) -> ReconciliationResult:
        """
        Reconcile one student's ledger for a period.

        Args:
            subject_id: Student id
            period_start: First day of the period (inclusive)
            period_end: Last day of the period (inclusive)

        Returns:
            Reconciliation result with status and any discrepancies
        """
        entries = self.ledger.generate(subject_id, period_start, period_end)
        ledger_balance = closing_balance(entries)

        invoices = self.invoices.get_by_period(subject_id, period_start, period_end)
        invoice_balance = sum(
            inv.amount for inv in invoices if period_start <= inv.invoice_date <= period_end
        )

        difference = abs(ledger_balance - invoice_balance)
        is_balanced = difference < self.tolerance

        discrepancies: list[Discrepancy] = []
        if not is_balanced:
            discrepancies.append(
                Discrepancy(
                    type=BALANCE_MISMATCH,
                    ledger_balance=ledger_balance,
                    invoice_balance=invoice_balance,
                    difference=difference,
                )
            )
            logger.info(
                f"Student {subject_id} out of balance for {period_start} to {period_end}: "
                f"ledger {ledger_balance}, invoices {invoice_balance}"
            )

        return ReconciliationResult(
            reconciled=is_balanced,
            ledger_balance=ledger_balance,
            invoice_balance=invoice_balance,
            difference=difference,
            status=(
                ReconciliationStatus.BALANCED
                if is_balanced
                else ReconciliationStatus.OUT_OF_BALANCE
            ),
            discrepancies=discrepancies,
        )
