"""Repository interfaces and their in-memory and SQL implementations."""

from .base import (
    TransactionRepository,
    InvoiceRepository,
    SnapshotRepository,
    SubjectRepository,
    AuditLog,
)
from .memory import (
    InMemoryTransactionRepository,
    InMemoryInvoiceRepository,
    InMemorySnapshotRepository,
    InMemorySubjectRepository,
    InMemoryAuditLog,
    LoggingAuditLog,
)

__all__ = [
    "TransactionRepository",
    "InvoiceRepository",
    "SnapshotRepository",
    "SubjectRepository",
    "AuditLog",
    "InMemoryTransactionRepository",
    "InMemoryInvoiceRepository",
    "InMemorySnapshotRepository",
    "InMemorySubjectRepository",
    "InMemoryAuditLog",
    "LoggingAuditLog",
]
