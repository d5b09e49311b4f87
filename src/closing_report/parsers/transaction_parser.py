"""Parser for transaction exports in JSON format."""

import json
from pathlib import Path

from closing_report.errors import TransactionParseError
from closing_report.models.transaction import TransactionRecord
from closing_report.utils.logging_config import get_logger

logger = get_logger(__name__)

# Maximum transaction file size to prevent memory exhaustion (20 MB)
MAX_TRANSACTION_FILE_SIZE = 20 * 1024 * 1024


def parse_transactions(data: object, file_path: Path | None = None) -> list[TransactionRecord]:
    """Build transaction records from decoded JSON.

    Args:
        data: A list of transaction mappings, or a mapping with a
            "transactions" list.
        file_path: Source file, used in error messages.

    Returns:
        List of TransactionRecord objects in input order.

    Raises:
        TransactionParseError: If the structure or any record is invalid.
    """
    if isinstance(data, dict):
        data = data.get("transactions")
    if not isinstance(data, list):
        raise TransactionParseError(
            "Expected a list of transactions or an object with a 'transactions' list",
            file_path,
        )

    records: list[TransactionRecord] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise TransactionParseError(f"Transaction #{index + 1} is not an object", file_path)
        try:
            records.append(TransactionRecord.from_dict(item))
        except KeyError as e:
            raise TransactionParseError(
                f"Transaction #{index + 1} is missing field {e}", file_path
            ) from e
        except ValueError as e:
            raise TransactionParseError(f"Transaction #{index + 1} is invalid: {e}", file_path) from e

    return records


def load_transactions(file_path: Path) -> list[TransactionRecord]:
    """Load transactions from a JSON file.

    Args:
        file_path: Path to the JSON export.

    Returns:
        List of TransactionRecord objects.

    Raises:
        TransactionParseError: If the file cannot be read or parsed.
    """
    if not file_path.exists():
        raise TransactionParseError(f"File not found: {file_path}", file_path)

    file_size = file_path.stat().st_size
    if file_size > MAX_TRANSACTION_FILE_SIZE:
        raise TransactionParseError(
            f"File too large ({file_size / 1024 / 1024:.1f} MB). "
            f"Maximum allowed is {MAX_TRANSACTION_FILE_SIZE / 1024 / 1024:.0f} MB",
            file_path,
        )

    logger.info(f"Parsing transactions: {file_path.name}")
    try:
        with open(file_path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise TransactionParseError(f"Failed to read transactions: {e}", file_path) from e

    records = parse_transactions(data, file_path)
    logger.info(f"Parsed {len(records)} transactions from {file_path.name}")
    return records
