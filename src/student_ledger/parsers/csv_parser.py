"""
CSV parsers for transaction and invoice exports.
Reads exports with pandas and decodes each row into a validated record.
"""

from pathlib import Path
from typing import Any, Callable, Generic, TypeVar
import logging

import pandas as pd

from ..config import CsvInputConfig, LedgerConfig
from ..models.transaction import Invoice, Transaction
from ..utils.exceptions import TransactionParseError, TransactionValidationError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class _CsvParser(Generic[RecordT]):
    """
    Shared CSV reading and row decoding.

    Every row must decode; a file with any invalid row is rejected as a
    whole so that a partial import never reaches the balance computations.
    """

    kind = "record"
    required_fields: tuple[str, ...] = ()

    def __init__(self, csv_config: CsvInputConfig, decode: Callable[[dict[str, Any]], RecordT]):
        self.csv_config = csv_config
        self.column_mappings = csv_config.column_mappings
        self._decode = decode

    def parse_file(self, file_path: Path) -> list[RecordT]:
        """
        Parse a CSV export.

        Args:
            file_path: Path to the CSV file

        Returns:
            Decoded records in file order

        Raises:
            TransactionParseError: If the file cannot be read, a required
                column is missing, or any row fails validation
        """
        logger.info(f"Parsing {self.kind} CSV file: {file_path}")

        try:
            df = pd.read_csv(
                file_path,
                encoding=self.csv_config.encoding,
                delimiter=self.csv_config.delimiter,
            )
        except Exception as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise TransactionParseError(f"Failed to read CSV file: {e}") from e

        records = self.parse_dataframe(df)
        logger.info(f"Extracted {len(records)} {self.kind}s from {file_path.name}")
        return records

    def parse_dataframe(self, df: pd.DataFrame) -> list[RecordT]:
        """Decode every row of an already loaded DataFrame."""
        self._check_columns(df)

        records: list[RecordT] = []
        errors: list[str] = []
        for idx, row in df.iterrows():
            try:
                records.append(self._decode(self._map_row(row)))
            except TransactionValidationError as e:
                # Header is line 1, so data row idx sits on line idx + 2
                errors.append(f"line {int(idx) + 2}: {e}")

        if errors:
            for message in errors:
                logger.warning(message)
            raise TransactionParseError(
                f"{len(errors)} invalid {self.kind} row(s); nothing imported",
                row_errors=errors,
            )
        return records

    def _check_columns(self, df: pd.DataFrame) -> None:
        missing = [
            self._column(field)
            for field in self.required_fields
            if self._column(field) not in df.columns
        ]
        if missing:
            raise TransactionParseError(
                f"Missing required {self.kind} column(s): {', '.join(missing)}"
            )

    def _column(self, field: str) -> str:
        return self.column_mappings.get(field, field)

    def _map_row(self, row: pd.Series) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for field, column in self.column_mappings.items():
            value = row.get(column)
            record[field] = None if value is None or pd.isna(value) else value
        return record


class TransactionCsvParser(_CsvParser[Transaction]):
    """Parser for ledger transaction exports."""

    kind = "transaction"
    required_fields = ("id", "subject_id", "type", "amount", "date")

    def __init__(self, config: LedgerConfig):
        super().__init__(config.input.transactions, Transaction.from_record)


class InvoiceCsvParser(_CsvParser[Invoice]):
    """Parser for fee invoice exports."""

    kind = "invoice"
    required_fields = ("id", "subject_id", "amount", "invoice_date")

    def __init__(self, config: LedgerConfig):
        super().__init__(config.input.invoices, Invoice.from_record)
