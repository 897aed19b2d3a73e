"""Tests for the command-line interface."""

import logging

import pytest
from click.testing import CliRunner

from student_ledger.cli import main
from student_ledger.utils.logging_config import LOGGER_NAME

TRANSACTIONS_CSV = """id,student_id,transaction_type,amount,transaction_date,created_at,is_voided,description,transaction_ref
1,1,CREDIT,100000,2025-11-15,2025-11-15 10:00:00,false,Invoice INV-2025-001,
2,1,DEBIT,60000,2025-11-20,2025-11-20 10:00:00,false,Payment,
3,1,CREDIT,50000,2025-12-01,2025-12-01 10:00:00,false,Invoice INV-2025-002,
4,1,DEBIT,50000,2025-12-05,2025-12-05 10:00:00,false,Payment,
5,1,CREDIT,75000,2026-01-05,2026-01-05 10:00:00,false,Invoice INV-2026-001,
6,1,DEBIT,50000,2026-01-10,2026-01-10 10:00:00,false,Payment,
7,1,CREDIT,30000,2026-01-15,2026-01-15 10:00:00,false,Invoice INV-2026-002,
8,1,DEBIT,20000,2026-01-20,2026-01-20 10:00:00,false,Payment,
"""

INVOICES_CSV = """id,student_id,amount,invoice_date,status
1,1,100000,2025-11-15,PAID
2,1,50000,2025-12-01,PAID
3,1,75000,2026-01-05,PARTIAL
4,1,30000,2026-01-15,OUTSTANDING
"""


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logging.getLogger(LOGGER_NAME).handlers = []


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def loaded_db(runner, tmp_path, db_url) -> str:
    transactions = tmp_path / "transactions.csv"
    transactions.write_text(TRANSACTIONS_CSV)
    invoices = tmp_path / "invoices.csv"
    invoices.write_text(INVOICES_CSV)

    result = runner.invoke(main, ["--db", db_url, "import-transactions", str(transactions)])
    assert result.exit_code == 0, result.output
    result = runner.invoke(main, ["--db", db_url, "import-invoices", str(invoices)])
    assert result.exit_code == 0, result.output
    return db_url


class TestSetupCommands:
    def test_init_config(self, runner, tmp_path):
        output = tmp_path / "config.yaml"

        result = runner.invoke(main, ["init-config", "-o", str(output)])

        assert result.exit_code == 0
        assert output.exists()
        assert "Configuration file generated" in result.output

    def test_init_db(self, runner, db_url):
        result = runner.invoke(main, ["--db", db_url, "init-db"])

        assert result.exit_code == 0
        assert "Database ready" in result.output

    def test_import_counts(self, runner, tmp_path, db_url):
        path = tmp_path / "transactions.csv"
        path.write_text(TRANSACTIONS_CSV)

        result = runner.invoke(main, ["--db", db_url, "import-transactions", str(path)])

        assert result.exit_code == 0
        assert "Imported 8 transactions" in result.output

    def test_bad_csv_exits_with_row_errors(self, runner, tmp_path, db_url):
        path = tmp_path / "transactions.csv"
        path.write_text(TRANSACTIONS_CSV + "9,1,INCOME,100,2026-01-21,,false,,\n")

        result = runner.invoke(main, ["--db", db_url, "import-transactions", str(path)])

        assert result.exit_code == 1
        assert "nothing imported" in result.output
        assert "line 10" in result.output

    def test_failed_import_registers_no_students(self, runner, tmp_path, loaded_db):
        path = tmp_path / "duplicate.csv"
        path.write_text(
            "id,student_id,transaction_type,amount,transaction_date\n"
            "1,99,CREDIT,500,2025-06-01\n"
        )

        imported = runner.invoke(main, ["--db", loaded_db, "import-transactions", str(path)])
        result = runner.invoke(
            main, ["--db", loaded_db, "reconcile", "99", "2025-01-01", "2025-12-31"]
        )

        assert imported.exit_code == 1
        assert result.exit_code == 1
        assert "Student not found: 99" in result.output

    def test_invalid_config_exits(self, runner, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("reconciliation:\n  tolerance: -5\n")

        result = runner.invoke(main, ["-c", str(config), "init-db"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestLedgerCommands:
    def test_opening_balance(self, runner, loaded_db):
        result = runner.invoke(main, ["--db", loaded_db, "opening-balance", "1", "2026-01-01"])

        assert result.exit_code == 0
        assert "400.00" in result.output

    def test_ledger(self, runner, loaded_db):
        result = runner.invoke(main, ["--db", loaded_db, "ledger", "1", "2026-01-01", "2026-01-31"])

        assert result.exit_code == 0
        assert "OPENING_BALANCE" in result.output
        assert "750.00" in result.output
        assert "Total entries: 5" in result.output

    def test_reconcile(self, runner, loaded_db):
        result = runner.invoke(
            main, ["--db", loaded_db, "reconcile", "1", "2026-01-01", "2026-01-31"]
        )

        assert result.exit_code == 0
        assert "OUT_OF_BALANCE" in result.output
        assert "300.00" in result.output

    def test_verify_twice(self, runner, loaded_db):
        first = runner.invoke(main, ["--db", loaded_db, "verify", "1", "2026-01-01"])
        second = runner.invoke(main, ["--db", loaded_db, "verify", "1", "2026-01-01"])

        assert first.exit_code == 0 and second.exit_code == 0
        assert "VERIFIED" in second.output

    def test_audit(self, runner, loaded_db):
        result = runner.invoke(main, ["--db", loaded_db, "audit", "1", "2026-01-01", "2026-01-31"])

        assert result.exit_code == 0
        assert "Audit status: FAILED" in result.output

    def test_unknown_student_exits(self, runner, loaded_db):
        result = runner.invoke(main, ["--db", loaded_db, "ledger", "99", "2026-01-01", "2026-01-31"])

        assert result.exit_code == 1
        assert "Student not found: 99" in result.output

    def test_bad_date_is_usage_error(self, runner, loaded_db):
        result = runner.invoke(main, ["--db", loaded_db, "verify", "1", "01/01/2026"])

        assert result.exit_code == 2
