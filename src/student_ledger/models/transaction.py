"""Data models for stored student transactions, invoices and balance snapshots."""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Mapping, Optional
import math

from ..utils.exceptions import TransactionValidationError


class TransactionType(Enum):
    """Kind of ledger transaction recorded against a student."""

    CREDIT = "CREDIT"
    PAYMENT = "PAYMENT"
    DEBIT = "DEBIT"
    CHARGE = "CHARGE"
    REVERSAL = "REVERSAL"
    ADJUSTMENT = "ADJUSTMENT"
    OPENING_BALANCE = "OPENING_BALANCE"

    @property
    def increases_balance(self) -> bool:
        """Credits and payments add to the balance."""
        return self in (TransactionType.CREDIT, TransactionType.PAYMENT)

    @property
    def decreases_balance(self) -> bool:
        """Debits, charges and reversals subtract from the balance."""
        return self in (
            TransactionType.DEBIT,
            TransactionType.CHARGE,
            TransactionType.REVERSAL,
        )

    def signed(self, amount: int) -> int:
        """Apply the sign rule to an amount. Other types are balance-neutral."""
        if self.increases_balance:
            return amount
        if self.decreases_balance:
            return -amount
        return 0


class InvoiceStatus(Enum):
    """Billing status of a fee invoice."""

    OUTSTANDING = "OUTSTANDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Transaction:
    """
    A single stored financial transaction for a student.

    Amounts are non-negative integers in minor currency units; the type
    carries the direction.
    """

    id: int
    subject_id: int
    type: TransactionType
    amount: int
    date: date
    created_at: datetime
    voided: bool = False
    description: str = ""
    reference: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, TransactionType):
            raise TransactionValidationError(
                f"Transaction {self.id}: type must be a TransactionType, got {self.type!r}"
            )
        _check_amount(self.amount, f"Transaction {self.id}")

    @property
    def sort_key(self) -> tuple[date, datetime, int]:
        """Replay order: date, then creation time, then id."""
        return (self.date, self.created_at, self.id)

    @property
    def signed_amount(self) -> int:
        return self.type.signed(self.amount)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Transaction":
        """
        Decode a raw stored row into a Transaction.

        Args:
            record: Mapping with keys id, subject_id, type, amount, date and
                optionally created_at, voided, description, reference

        Returns:
            Validated transaction

        Raises:
            TransactionValidationError: If type or amount is missing or invalid
        """
        txn_id = _decode_int(record.get("id"), "id", "Transaction")
        label = f"Transaction {txn_id}"

        raw_type = record.get("type")
        if _is_missing(raw_type):
            raise TransactionValidationError(f"{label}: missing type")
        try:
            txn_type = TransactionType(str(raw_type).strip().upper())
        except ValueError:
            raise TransactionValidationError(f"{label}: unknown type {raw_type!r}") from None

        txn_date = _decode_date(record.get("date"), "date", label)
        raw_created = record.get("created_at")
        if _is_missing(raw_created):
            created_at = datetime.combine(txn_date, time.min)
        else:
            created_at = _decode_datetime(raw_created, "created_at", label)

        description = record.get("description")
        reference = record.get("reference")

        return cls(
            id=txn_id,
            subject_id=_decode_int(record.get("subject_id"), "subject_id", label),
            type=txn_type,
            amount=_decode_amount(record.get("amount"), label),
            date=txn_date,
            created_at=created_at,
            voided=_decode_bool(record.get("voided", False)),
            description="" if _is_missing(description) else str(description),
            reference=None if _is_missing(reference) else str(reference),
        )


@dataclass(frozen=True)
class Invoice:
    """An independently maintained record of an amount billed to a student."""

    id: int
    subject_id: int
    amount: int
    invoice_date: date
    status: InvoiceStatus = InvoiceStatus.OUTSTANDING

    def __post_init__(self) -> None:
        _check_amount(self.amount, f"Invoice {self.id}")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Invoice":
        """Decode a raw stored row into an Invoice."""
        invoice_id = _decode_int(record.get("id"), "id", "Invoice")
        label = f"Invoice {invoice_id}"

        raw_status = record.get("status")
        if _is_missing(raw_status):
            status = InvoiceStatus.OUTSTANDING
        else:
            try:
                status = InvoiceStatus(str(raw_status).strip().upper())
            except ValueError:
                raise TransactionValidationError(
                    f"{label}: unknown status {raw_status!r}"
                ) from None

        return cls(
            id=invoice_id,
            subject_id=_decode_int(record.get("subject_id"), "subject_id", label),
            amount=_decode_amount(record.get("amount"), label),
            invoice_date=_decode_date(record.get("invoice_date"), "invoice_date", label),
            status=status,
        )


@dataclass(frozen=True)
class OpeningBalanceSnapshot:
    """Once-written opening balance for a student at a period start."""

    subject_id: int
    period_start: date
    opening_balance: int
    recorded_at: datetime


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _check_amount(amount: Any, label: str) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TransactionValidationError(f"{label}: amount must be an integer, got {amount!r}")
    if amount < 0:
        raise TransactionValidationError(f"{label}: amount must be non-negative, got {amount}")


def _decode_amount(value: Any, label: str) -> int:
    if _is_missing(value):
        raise TransactionValidationError(f"{label}: missing amount")
    if isinstance(value, bool):
        raise TransactionValidationError(f"{label}: invalid amount {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise TransactionValidationError(f"{label}: fractional amount {value!r}")
        amount = int(value)
    else:
        text = str(value).replace(",", "").strip()
        try:
            amount = int(text)
        except ValueError:
            raise TransactionValidationError(f"{label}: invalid amount {value!r}") from None
    _check_amount(amount, label)
    return amount


def _decode_int(value: Any, field_name: str, label: str) -> int:
    if _is_missing(value) or isinstance(value, bool):
        raise TransactionValidationError(f"{label}: missing or invalid {field_name}")
    try:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(value)
            return int(value)
        return int(str(value).strip())
    except ValueError:
        raise TransactionValidationError(
            f"{label}: invalid {field_name} {value!r}"
        ) from None


def _decode_date(value: Any, field_name: str, label: str) -> date:
    if _is_missing(value):
        raise TransactionValidationError(f"{label}: missing {field_name}")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise TransactionValidationError(
            f"{label}: invalid {field_name} {value!r}"
        ) from None


def _decode_datetime(value: Any, field_name: str, label: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise TransactionValidationError(
                f"{label}: invalid {field_name} {value!r}"
            ) from None
    # Stored as naive UTC so aware and naive values sort together
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _decode_bool(value: Any) -> bool:
    if _is_missing(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)
