"""Configuration loader and validation for ledger engine settings."""

from datetime import date
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Differences strictly below this many minor currency units count as equal
DEFAULT_TOLERANCE = 1

DEFAULT_HISTORY_START = date(1900, 1, 1)


class CsvInputConfig(BaseModel):
    """How to read one CSV export."""

    encoding: str = "utf-8"
    delimiter: str = ","
    column_mappings: dict[str, str] = Field(default_factory=dict)


class InputConfig(BaseModel):
    """Configuration for CSV imports."""

    transactions: CsvInputConfig = Field(
        default_factory=lambda: CsvInputConfig(
            column_mappings={
                "id": "id",
                "subject_id": "student_id",
                "type": "transaction_type",
                "amount": "amount",
                "date": "transaction_date",
                "created_at": "created_at",
                "voided": "is_voided",
                "description": "description",
                "reference": "transaction_ref",
            }
        )
    )
    invoices: CsvInputConfig = Field(
        default_factory=lambda: CsvInputConfig(
            column_mappings={
                "id": "id",
                "subject_id": "student_id",
                "amount": "amount",
                "invoice_date": "invoice_date",
                "status": "status",
            }
        )
    )


class ReconciliationConfig(BaseModel):
    tolerance: int = Field(default=DEFAULT_TOLERANCE, ge=1)


class VerificationConfig(BaseModel):
    tolerance: int = Field(default=DEFAULT_TOLERANCE, ge=1)


class LedgerSettings(BaseModel):
    """Ledger generation behaviour."""

    reject_inverted_ranges: bool = False
    history_start: date = DEFAULT_HISTORY_START


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///student_ledger.db"
    echo: bool = False


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class LedgerConfig(BaseModel):
    """Main configuration model for the ledger engine."""

    input: InputConfig = Field(default_factory=InputConfig)
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return LedgerConfig().model_dump(mode="json", exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> LedgerConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        LedgerConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return LedgerConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Write a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Student ledger engine configuration
# Tolerances are in minor currency units (e.g. cents)

"""
    yaml_content += yaml.dump(get_default_config(), default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
