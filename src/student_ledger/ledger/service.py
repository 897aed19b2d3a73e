"""
Student ledger service.
Thin facade composing the calculator, generator, reconciler and verifier
over a single set of injected repositories.
"""

from datetime import date
from typing import Optional
import logging

from ..config import LedgerConfig
from ..models.ledger import (
    LedgerAuditReport,
    LedgerEntry,
    ReconciliationResult,
    VerificationResult,
    closing_balance,
)
from ..models.transaction import OpeningBalanceSnapshot
from ..repositories.base import (
    AuditLog,
    InvoiceRepository,
    SnapshotRepository,
    SubjectRepository,
    TransactionRepository,
)
from ..utils.exceptions import SubjectNotFoundError
from .generator import LedgerGenerator
from .opening_balance import OpeningBalanceCalculator
from .reconciler import Reconciler
from .verifier import BalanceVerifier

logger = logging.getLogger(__name__)

GENERATE_LEDGER_ACTION = "GENERATE_LEDGER"
LEDGER_ENTITY_TYPE = "ledger_transaction"


class StudentLedgerService:
    """Public entry point for ledger, reconciliation and verification requests."""

    def __init__(
        self,
        transactions: TransactionRepository,
        invoices: InvoiceRepository,
        snapshots: SnapshotRepository,
        audit_log: Optional[AuditLog] = None,
        subjects: Optional[SubjectRepository] = None,
        config: Optional[LedgerConfig] = None,
    ):
        """
        Initialize the service.

        Args:
            transactions: Source of stored transactions
            invoices: Source of invoices
            snapshots: Opening balance snapshot store
            audit_log: Optional sink for ledger generation audit records
            subjects: Optional student lookup; when given, unknown ids raise
                SubjectNotFoundError
            config: Tolerances and ledger settings (defaults when omitted)
        """
        self.config = config or LedgerConfig()
        self.audit_log = audit_log
        self.subjects = subjects

        self.balance_calculator = OpeningBalanceCalculator(transactions)
        self.ledger_generator = LedgerGenerator(
            transactions,
            self.balance_calculator,
            reject_inverted_ranges=self.config.ledger.reject_inverted_ranges,
        )
        self.reconciler = Reconciler(
            self.ledger_generator,
            invoices,
            tolerance=self.config.reconciliation.tolerance,
        )
        self.verifier = BalanceVerifier(
            self.balance_calculator,
            snapshots,
            tolerance=self.config.verification.tolerance,
        )
        self.snapshots = snapshots

    def calculate_opening_balance(self, subject_id: int, cutoff_date: date) -> int:
        self._require_subject(subject_id)
        return self.balance_calculator.calculate(subject_id, cutoff_date)

    def generate_ledger(
        self, subject_id: int, start_date: date, end_date: date, actor_id: int = 0
    ) -> list[LedgerEntry]:
        """
        Generate the student ledger for a period and record an audit entry.

        A failing audit sink is logged and does not fail the request.
        """
        self._require_subject(subject_id)
        entries = self.ledger_generator.generate(subject_id, start_date, end_date)
        self._audit_generation(actor_id, subject_id, start_date, end_date, len(entries))
        return entries

    def reconcile(
        self, subject_id: int, period_start: date, period_end: date
    ) -> ReconciliationResult:
        self._require_subject(subject_id)
        return self.reconciler.reconcile(subject_id, period_start, period_end)

    def verify_opening_balance(self, subject_id: int, period_start: date) -> VerificationResult:
        self._require_subject(subject_id)
        return self.verifier.verify(subject_id, period_start)

    def current_balance(self, subject_id: int, as_of: Optional[date] = None) -> int:
        """Closing balance of the full history up to ``as_of`` (today by default)."""
        self._require_subject(subject_id)
        end = as_of or date.today()
        entries = self.ledger_generator.generate(
            subject_id, self.config.ledger.history_start, end
        )
        return closing_balance(entries)

    def record_opening_balance(
        self, subject_id: int, period_start: date, opening_balance: int
    ) -> OpeningBalanceSnapshot:
        """
        Record an opening balance baseline, e.g. one imported from a previous system.

        An already recorded snapshot is returned unchanged.
        """
        self._require_subject(subject_id)
        snapshot, created = self.snapshots.insert_if_absent(
            subject_id, period_start, opening_balance
        )
        if not created and snapshot.opening_balance != opening_balance:
            logger.warning(
                f"Opening balance for student {subject_id} at {period_start} already "
                f"recorded as {snapshot.opening_balance}; kept it instead of {opening_balance}"
            )
        return snapshot

    def audit_report(
        self, subject_id: int, period_start: date, period_end: date, actor_id: int = 0
    ) -> LedgerAuditReport:
        """Period-end bundle of ledger, reconciliation and verification."""
        entries = self.generate_ledger(subject_id, period_start, period_end, actor_id)
        reconciliation = self.reconcile(subject_id, period_start, period_end)
        verification = self.verify_opening_balance(subject_id, period_start)

        report = LedgerAuditReport(
            subject_id=subject_id,
            period_start=period_start,
            period_end=period_end,
            entries=entries,
            reconciliation=reconciliation,
            verification=verification,
        )
        logger.info(
            f"Audit report for student {subject_id} ({period_start} to {period_end}): "
            f"{report.audit_status.value}"
        )
        return report

    def _require_subject(self, subject_id: int) -> None:
        if self.subjects is not None and not self.subjects.exists(subject_id):
            raise SubjectNotFoundError(subject_id)

    def _audit_generation(
        self,
        actor_id: int,
        subject_id: int,
        start_date: date,
        end_date: date,
        entry_count: int,
    ) -> None:
        if self.audit_log is None:
            return
        try:
            self.audit_log.log_audit(
                actor_id,
                GENERATE_LEDGER_ACTION,
                LEDGER_ENTITY_TYPE,
                subject_id,
                None,
                {
                    "period_start": start_date.isoformat(),
                    "period_end": end_date.isoformat(),
                    "entry_count": entry_count,
                },
            )
        except Exception:
            logger.exception(f"Failed to write ledger audit record for student {subject_id}")
