"""Opening balance verification against once-written snapshots."""

from datetime import date
import logging

from ..config import DEFAULT_TOLERANCE
from ..models.ledger import VerificationResult, VerificationStatus
from ..models.transaction import OpeningBalanceSnapshot
from ..repositories.base import SnapshotRepository
from .opening_balance import OpeningBalanceCalculator

logger = logging.getLogger(__name__)


class BalanceVerifier:
    """
    Establishes or checks the opening balance snapshot for a period.

    The first verification of a (student, period start) pair records the
    calculated balance as the audit baseline. Later verifications compare
    against that baseline and never overwrite it.
    """

    def __init__(
        self,
        opening_balance: OpeningBalanceCalculator,
        snapshots: SnapshotRepository,
        tolerance: int = DEFAULT_TOLERANCE,
    ):
        self.opening_balance = opening_balance
        self.snapshots = snapshots
        self.tolerance = tolerance

    def verify(self, subject_id: int, period_start: date) -> VerificationResult:
        """
        Verify the opening balance of a period.

        Args:
            subject_id: Student id
            period_start: First day of the period

        Returns:
            VERIFIED when the snapshot was just established or still matches,
            DISCREPANCY otherwise
        """
        calculated = self.opening_balance.calculate(subject_id, period_start)

        snapshot = self.snapshots.get(subject_id, period_start)
        if snapshot is None:
            snapshot, created = self.snapshots.insert_if_absent(
                subject_id, period_start, calculated
            )
            if created:
                logger.info(
                    f"Recorded opening balance baseline for student {subject_id} "
                    f"at {period_start}: {calculated}"
                )
                return VerificationResult(
                    verified=True,
                    opening_balance=calculated,
                    status=VerificationStatus.VERIFIED,
                    recorded_balance=snapshot.opening_balance,
                    baseline_established=True,
                )
            # Lost the race to a concurrent first verification
            logger.debug(
                f"Baseline for student {subject_id} at {period_start} recorded concurrently"
            )

        return self._compare(subject_id, calculated, snapshot)

    def _compare(
        self, subject_id: int, calculated: int, snapshot: OpeningBalanceSnapshot
    ) -> VerificationResult:
        recorded = snapshot.opening_balance
        is_verified = abs(calculated - recorded) < self.tolerance

        if not is_verified:
            logger.warning(
                f"Opening balance discrepancy for student {subject_id} at "
                f"{snapshot.period_start}: calculated {calculated}, recorded {recorded}"
            )

        return VerificationResult(
            verified=is_verified,
            opening_balance=calculated,
            status=VerificationStatus.VERIFIED if is_verified else VerificationStatus.DISCREPANCY,
            recorded_balance=recorded,
        )
