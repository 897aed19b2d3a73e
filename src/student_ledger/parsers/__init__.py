"""Parsers for transaction and invoice CSV exports."""

from .csv_parser import TransactionCsvParser, InvoiceCsvParser

__all__ = ["TransactionCsvParser", "InvoiceCsvParser"]
