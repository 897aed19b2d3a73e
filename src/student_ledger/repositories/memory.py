"""In-memory repositories."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional
import logging
import threading

from ..models.transaction import Invoice, OpeningBalanceSnapshot, Transaction
from .base import (
    AuditLog,
    InvoiceRepository,
    SnapshotRepository,
    SubjectRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)


class InMemoryTransactionRepository(TransactionRepository):
    """Holds transactions in a list; voided rows are kept but never returned."""

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self._transactions: list[Transaction] = list(transactions or [])

    def add(self, *transactions: Transaction) -> None:
        self._transactions.extend(transactions)

    def get_history(self, subject_id: int) -> list[Transaction]:
        return [
            t for t in self._transactions if t.subject_id == subject_id and not t.voided
        ]

    def get_by_period(self, subject_id: int, start: date, end: date) -> list[Transaction]:
        return [t for t in self.get_history(subject_id) if start <= t.date <= end]

    def subject_ids(self) -> set[int]:
        return {t.subject_id for t in self._transactions}


class InMemoryInvoiceRepository(InvoiceRepository):
    def __init__(self, invoices: Optional[Iterable[Invoice]] = None):
        self._invoices: list[Invoice] = list(invoices or [])

    def add(self, *invoices: Invoice) -> None:
        self._invoices.extend(invoices)

    def get_by_period(self, subject_id: int, start: date, end: date) -> list[Invoice]:
        return [
            inv
            for inv in self._invoices
            if inv.subject_id == subject_id and start <= inv.invoice_date <= end
        ]

    def subject_ids(self) -> set[int]:
        return {inv.subject_id for inv in self._invoices}


class InMemorySnapshotRepository(SnapshotRepository):
    """Snapshot store keyed by (subject_id, period_start), guarded by a lock."""

    def __init__(self) -> None:
        self._snapshots: dict[tuple[int, date], OpeningBalanceSnapshot] = {}
        self._lock = threading.Lock()

    def get(self, subject_id: int, period_start: date) -> Optional[OpeningBalanceSnapshot]:
        with self._lock:
            return self._snapshots.get((subject_id, period_start))

    def insert_if_absent(
        self, subject_id: int, period_start: date, balance: int
    ) -> tuple[OpeningBalanceSnapshot, bool]:
        key = (subject_id, period_start)
        with self._lock:
            existing = self._snapshots.get(key)
            if existing is not None:
                return existing, False
            snapshot = OpeningBalanceSnapshot(
                subject_id=subject_id,
                period_start=period_start,
                opening_balance=balance,
                recorded_at=datetime.now(),
            )
            self._snapshots[key] = snapshot
            return snapshot, True

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)


class InMemorySubjectRepository(SubjectRepository):
    def __init__(self, subject_ids: Optional[Iterable[int]] = None):
        self._subject_ids = set(subject_ids or [])

    def add(self, subject_id: int) -> None:
        self._subject_ids.add(subject_id)

    def exists(self, subject_id: int) -> bool:
        return subject_id in self._subject_ids


@dataclass
class AuditRecord:
    actor_id: int
    action: str
    entity_type: str
    entity_id: Optional[int]
    before: Optional[dict[str, Any]]
    after: Optional[dict[str, Any]]
    logged_at: datetime = field(default_factory=datetime.now)


class InMemoryAuditLog(AuditLog):
    """Keeps audit records in a list."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def log_audit(
        self,
        actor_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> None:
        self.records.append(
            AuditRecord(actor_id, action, entity_type, entity_id, before, after)
        )


class LoggingAuditLog(AuditLog):
    """Writes audit records to the ``student_ledger.audit`` logger."""

    def __init__(self, logger_name: str = "student_ledger.audit"):
        self._logger = logging.getLogger(logger_name)

    def log_audit(
        self,
        actor_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> None:
        self._logger.info(
            f"{action} {entity_type}#{entity_id} by actor {actor_id}: "
            f"before={before} after={after}"
        )
