"""
Repository interfaces consumed by the ledger engine.

Components receive these through their constructors; nothing in the engine
reaches for a global connection.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

from ..models.transaction import Invoice, OpeningBalanceSnapshot, Transaction


class TransactionRepository(ABC):
    """Read access to a student's stored transactions."""

    @abstractmethod
    def get_history(self, subject_id: int) -> list[Transaction]:
        """
        Return all non-voided transactions for a student, in any order.

        Args:
            subject_id: Student id

        Returns:
            Non-voided transactions
        """
        pass

    @abstractmethod
    def get_by_period(self, subject_id: int, start: date, end: date) -> list[Transaction]:
        """Return non-voided transactions with ``start <= date <= end``, in any order."""
        pass


class InvoiceRepository(ABC):
    """Read access to invoices billed to a student."""

    @abstractmethod
    def get_by_period(self, subject_id: int, start: date, end: date) -> list[Invoice]:
        """Return invoices with ``start <= invoice_date <= end``."""
        pass


class SnapshotRepository(ABC):
    """Storage for once-written opening balance snapshots."""

    @abstractmethod
    def get(self, subject_id: int, period_start: date) -> Optional[OpeningBalanceSnapshot]:
        pass

    @abstractmethod
    def insert_if_absent(
        self, subject_id: int, period_start: date, balance: int
    ) -> tuple[OpeningBalanceSnapshot, bool]:
        """
        Atomically record a snapshot unless one already exists for the key.

        Args:
            subject_id: Student id
            period_start: First day of the period
            balance: Opening balance to record

        Returns:
            Tuple of (stored snapshot, whether this call created it). When a
            snapshot already existed it is returned unchanged.
        """
        pass


class SubjectRepository(ABC):
    """Lookup of known students."""

    @abstractmethod
    def exists(self, subject_id: int) -> bool:
        pass


class AuditLog(ABC):
    """Sink for audit trail records."""

    @abstractmethod
    def log_audit(
        self,
        actor_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> None:
        pass
