"""Ledger computation components and the service facade."""

from .opening_balance import OpeningBalanceCalculator
from .generator import LedgerGenerator
from .reconciler import Reconciler
from .verifier import BalanceVerifier
from .service import StudentLedgerService

__all__ = [
    "OpeningBalanceCalculator",
    "LedgerGenerator",
    "Reconciler",
    "BalanceVerifier",
    "StudentLedgerService",
]
