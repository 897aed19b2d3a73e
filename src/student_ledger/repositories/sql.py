"""
SQLAlchemy-backed repositories.

Rows are decoded into typed records on the way out, so a corrupt ``type``
or ``amount`` column surfaces as TransactionValidationError instead of a
silently defaulted zero. Driver and connection failures surface as
StoreError with the original exception chained.
"""

from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterable, Iterator, Optional
import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models.transaction import Invoice, OpeningBalanceSnapshot, Transaction
from ..utils.exceptions import StoreError
from .base import (
    AuditLog,
    InvoiceRepository,
    SnapshotRepository,
    SubjectRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


class Base(DeclarativeBase):
    pass


class StudentRow(Base):
    __tablename__ = "student"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)


class TransactionRow(Base):
    __tablename__ = "ledger_transaction"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(Integer, index=True)
    transaction_type: Mapped[str] = mapped_column(String(32))
    amount: Mapped[int] = mapped_column(Integer)
    transaction_date: Mapped[date] = mapped_column(Date, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime)
    is_voided: Mapped[bool] = mapped_column(Boolean, default=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    transaction_ref: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.student_id,
            "type": self.transaction_type,
            "amount": self.amount,
            "date": self.transaction_date,
            "created_at": self.created_at,
            "voided": self.is_voided,
            "description": self.description,
            "reference": self.transaction_ref,
        }


class InvoiceRow(Base):
    __tablename__ = "fee_invoice"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(Integer, index=True)
    amount: Mapped[int] = mapped_column(Integer)
    invoice_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="OUTSTANDING")

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.student_id,
            "amount": self.amount,
            "invoice_date": self.invoice_date,
            "status": self.status,
        }


class SnapshotRow(Base):
    __tablename__ = "student_opening_balance"
    __table_args__ = (
        UniqueConstraint("student_id", "period_start", name="uq_opening_balance_period"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer)
    period_start: Mapped[date] = mapped_column(Date)
    opening_balance: Mapped[int] = mapped_column(Integer)
    recorded_at: Mapped[datetime] = mapped_column(DateTime)

    def to_snapshot(self) -> OpeningBalanceSnapshot:
        return OpeningBalanceSnapshot(
            subject_id=self.student_id,
            period_start=self.period_start,
            opening_balance=self.opening_balance,
            recorded_at=self.recorded_at,
        )


class AuditLogRow(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer)
    action_type: Mapped[str] = mapped_column(String(50))
    table_name: Mapped[str] = mapped_column(String(50))
    record_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    old_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


class SqlDatabase:
    """Engine and session factory shared by the SQL repositories."""

    def __init__(self, url: str, echo: bool = False, engine: Optional[Engine] = None):
        self.url = url
        if engine is None:
            if url in IN_MEMORY_SQLITE_URLS:
                # One shared connection, otherwise every session sees an empty database
                engine = create_engine(
                    url,
                    echo=echo,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                engine = create_engine(url, echo=echo)
        self.engine = engine
        self.session_factory: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False
        )

    def create_tables(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create tables at {self.url}: {e}") from e
        logger.info(f"Ensured ledger tables exist at {self.url}")

    @contextmanager
    def session_scope(self, session: Optional[Session] = None) -> Iterator[Session]:
        """
        Transactional scope around a series of writes.

        When ``session`` is given the writes join that caller-owned
        transaction instead; otherwise a new one is committed on normal exit
        and rolled back on exception.
        """
        if session is not None:
            yield session
            return
        with self.session_factory.begin() as owned:
            yield owned

    def dispose(self) -> None:
        self.engine.dispose()


class SqlTransactionRepository(TransactionRepository):
    def __init__(self, database: SqlDatabase):
        self._database = database
        self._sessions = database.session_factory

    def get_history(self, subject_id: int) -> list[Transaction]:
        stmt = select(TransactionRow).where(
            TransactionRow.student_id == subject_id,
            TransactionRow.is_voided == False,  # noqa: E712
        )
        return self._fetch(stmt)

    def get_by_period(self, subject_id: int, start: date, end: date) -> list[Transaction]:
        stmt = select(TransactionRow).where(
            TransactionRow.student_id == subject_id,
            TransactionRow.is_voided == False,  # noqa: E712
            TransactionRow.transaction_date >= start,
            TransactionRow.transaction_date <= end,
        )
        return self._fetch(stmt)

    def add_many(
        self, transactions: Iterable[Transaction], session: Optional[Session] = None
    ) -> int:
        rows = [
            TransactionRow(
                id=t.id,
                student_id=t.subject_id,
                transaction_type=t.type.value,
                amount=t.amount,
                transaction_date=t.date,
                created_at=t.created_at,
                is_voided=t.voided,
                description=t.description or None,
                transaction_ref=t.reference,
            )
            for t in transactions
        ]
        try:
            with self._database.session_scope(session) as scope:
                scope.add_all(rows)
                scope.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to store transactions: {e}") from e
        return len(rows)

    def _fetch(self, stmt) -> list[Transaction]:
        try:
            with self._sessions() as session:
                records = [row.to_record() for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read transactions: {e}") from e
        return [Transaction.from_record(r) for r in records]


class SqlInvoiceRepository(InvoiceRepository):
    def __init__(self, database: SqlDatabase):
        self._database = database
        self._sessions = database.session_factory

    def get_by_period(self, subject_id: int, start: date, end: date) -> list[Invoice]:
        stmt = select(InvoiceRow).where(
            InvoiceRow.student_id == subject_id,
            InvoiceRow.invoice_date >= start,
            InvoiceRow.invoice_date <= end,
        )
        try:
            with self._sessions() as session:
                records = [row.to_record() for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read invoices: {e}") from e
        return [Invoice.from_record(r) for r in records]

    def add_many(self, invoices: Iterable[Invoice], session: Optional[Session] = None) -> int:
        rows = [
            InvoiceRow(
                id=inv.id,
                student_id=inv.subject_id,
                amount=inv.amount,
                invoice_date=inv.invoice_date,
                status=inv.status.value,
            )
            for inv in invoices
        ]
        try:
            with self._database.session_scope(session) as scope:
                scope.add_all(rows)
                scope.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to store invoices: {e}") from e
        return len(rows)


class SqlSnapshotRepository(SnapshotRepository):
    """
    Snapshot store relying on the (student_id, period_start) unique constraint.

    insert_if_absent tries the insert first; losing a race to a concurrent
    writer shows up as IntegrityError, after which the winning row is read
    back and returned.
    """

    def __init__(self, database: SqlDatabase):
        self._sessions = database.session_factory

    def get(self, subject_id: int, period_start: date) -> Optional[OpeningBalanceSnapshot]:
        stmt = select(SnapshotRow).where(
            SnapshotRow.student_id == subject_id,
            SnapshotRow.period_start == period_start,
        )
        try:
            with self._sessions() as session:
                row = session.scalars(stmt).first()
                return row.to_snapshot() if row is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read opening balance snapshot: {e}") from e

    def insert_if_absent(
        self, subject_id: int, period_start: date, balance: int
    ) -> tuple[OpeningBalanceSnapshot, bool]:
        try:
            with self._sessions.begin() as session:
                row = SnapshotRow(
                    student_id=subject_id,
                    period_start=period_start,
                    opening_balance=balance,
                    recorded_at=datetime.now(),
                )
                session.add(row)
                session.flush()
                snapshot = row.to_snapshot()
            return snapshot, True
        except IntegrityError:
            logger.debug(
                f"Snapshot for student {subject_id} at {period_start} already recorded, "
                f"reading existing row"
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to record opening balance snapshot: {e}") from e

        existing = self.get(subject_id, period_start)
        if existing is None:
            raise StoreError(
                f"Snapshot insert for student {subject_id} at {period_start} conflicted "
                f"but no existing row was found"
            )
        return existing, False


class SqlSubjectRepository(SubjectRepository):
    def __init__(self, database: SqlDatabase):
        self._database = database
        self._sessions = database.session_factory

    def exists(self, subject_id: int) -> bool:
        try:
            with self._sessions() as session:
                return session.get(StudentRow, subject_id) is not None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up student {subject_id}: {e}") from e

    def ensure(self, subject_ids: Iterable[int], session: Optional[Session] = None) -> int:
        """Register any student ids not yet known. Returns how many were added."""
        wanted = set(subject_ids)
        if not wanted:
            return 0
        try:
            with self._database.session_scope(session) as scope:
                known = set(
                    scope.scalars(select(StudentRow.id).where(StudentRow.id.in_(wanted)))
                )
                missing = wanted - known
                scope.add_all(StudentRow(id=sid) for sid in sorted(missing))
                scope.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to register students: {e}") from e
        return len(missing)


class SqlAuditLog(AuditLog):
    def __init__(self, database: SqlDatabase):
        self._sessions = database.session_factory

    def log_audit(
        self,
        actor_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(
                    AuditLogRow(
                        user_id=actor_id,
                        action_type=action,
                        table_name=entity_type,
                        record_id=entity_id,
                        old_values=before,
                        new_values=after,
                        created_at=datetime.now(),
                    )
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to write audit record: {e}") from e
