"""Opening balance as of a cutoff date."""

from datetime import date
import logging

from ..repositories.base import TransactionRepository

logger = logging.getLogger(__name__)


class OpeningBalanceCalculator:
    """
    Folds a student's history before a cutoff into a single balance.

    Credits and payments add, debits, charges and reversals subtract, other
    types are neutral. The result is floored at zero.
    """

    def __init__(self, transactions: TransactionRepository):
        self.transactions = transactions

    def calculate(self, subject_id: int, cutoff_date: date) -> int:
        """
        Calculate the opening balance for a student.

        Args:
            subject_id: Student id
            cutoff_date: Transactions dated strictly before this date count

        Returns:
            Non-negative balance in minor currency units
        """
        history = self.transactions.get_history(subject_id)

        balance = 0
        counted = 0
        for txn in sorted(history, key=lambda t: t.sort_key):
            if txn.voided or txn.date >= cutoff_date:
                continue
            balance += txn.signed_amount
            counted += 1

        logger.debug(
            f"Opening balance for student {subject_id} before {cutoff_date}: "
            f"{balance} from {counted} transactions"
        )
        # Never negative
        return max(0, balance)
