"""
Ledger statement generation.
Replays a period's transactions in chronological order on top of the
opening balance.
"""

from datetime import date
from typing import Optional
import logging

from ..models.ledger import LedgerEntry
from ..models.transaction import Transaction, TransactionType
from ..repositories.base import TransactionRepository
from ..utils.exceptions import InvalidDateRangeError
from .opening_balance import OpeningBalanceCalculator

logger = logging.getLogger(__name__)

OPENING_BALANCE_DESCRIPTION = "Opening Balance"


class LedgerGenerator:
    """Builds balance-annotated ledger entries for a student and date range."""

    def __init__(
        self,
        transactions: TransactionRepository,
        opening_balance: Optional[OpeningBalanceCalculator] = None,
        reject_inverted_ranges: bool = False,
    ):
        """
        Initialize the generator.

        Args:
            transactions: Source of stored transactions
            opening_balance: Calculator sharing the same repository; built
                from ``transactions`` when omitted
            reject_inverted_ranges: Raise InvalidDateRangeError when
                ``end_date < start_date`` instead of returning no transactions
        """
        self.transactions = transactions
        self.opening_balance = opening_balance or OpeningBalanceCalculator(transactions)
        self.reject_inverted_ranges = reject_inverted_ranges

    def generate(self, subject_id: int, start_date: date, end_date: date) -> list[LedgerEntry]:
        """
        Generate the ledger for a period.

        Args:
            subject_id: Student id
            start_date: First day of the period (inclusive)
            end_date: Last day of the period (inclusive)

        Returns:
            Ledger entries in replay order, starting with a synthetic
            opening balance entry when the opening balance is positive
        """
        if end_date < start_date:
            if self.reject_inverted_ranges:
                raise InvalidDateRangeError(
                    f"End date {end_date} is before start date {start_date}"
                )
            logger.warning(
                f"Ledger requested for student {subject_id} with end date {end_date} "
                f"before start date {start_date}; no transactions will match"
            )

        opening = self.opening_balance.calculate(subject_id, start_date)

        entries: list[LedgerEntry] = []
        if opening > 0:
            entries.append(
                LedgerEntry(
                    date=start_date,
                    type=TransactionType.OPENING_BALANCE.value,
                    description=OPENING_BALANCE_DESCRIPTION,
                    debit=opening,
                    credit=0,
                    running_balance=opening,
                )
            )

        period = [
            t
            for t in self.transactions.get_by_period(subject_id, start_date, end_date)
            if not t.voided and start_date <= t.date <= end_date
        ]

        balance = opening
        for txn in sorted(period, key=lambda t: t.sort_key):
            debit, credit = _columns(txn)
            balance += credit - debit
            entries.append(
                LedgerEntry(
                    date=txn.date,
                    type=txn.type.value,
                    description=_describe(txn),
                    debit=debit,
                    credit=credit,
                    running_balance=max(0, balance),
                )
            )

        logger.debug(
            f"Generated {len(entries)} ledger entries for student {subject_id} "
            f"({start_date} to {end_date}), opening {opening}, closing {max(0, balance)}"
        )
        return entries


def _columns(txn: Transaction) -> tuple[int, int]:
    """Split a transaction into (debit, credit) columns."""
    if txn.type.increases_balance:
        return 0, txn.amount
    if txn.type.decreases_balance:
        return txn.amount, 0
    return 0, 0


def _describe(txn: Transaction) -> str:
    if txn.description:
        return txn.description
    return f"{txn.type.value} - {txn.reference or txn.id}"
