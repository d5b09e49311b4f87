"""Sanitization utilities for text written into template cells."""

import re
from typing import Optional


# Characters that trigger formula execution in spreadsheet applications
# when they appear at the start of a cell value.
# openpyxl itself stores any string starting with "=" as a formula.
_FORMULA_CHARS = ("=", "+", "-", "@", "\t", "\r", "\n", "|")

# Characters that are not allowed in a suggested download file name
_FILE_NAME_UNSAFE = re.compile(r"[\\/\n\r\t]")


def sanitize_cell_text(value: Optional[str]) -> Optional[str]:
    """Sanitize a string value for safe spreadsheet output.

    Prevents formula injection by prefixing values that start with
    formula-triggering characters (=, +, -, @, tab, etc.) with a
    single quote, the OWASP-recommended mitigation.

    Args:
        value: String value to sanitize, or None.

    Returns:
        Sanitized string, or None if input was None.
    """
    if value is None:
        return None

    if not value:
        return value

    if value.startswith(_FORMULA_CHARS):
        return "'" + value

    return value


def sanitize_file_name(value: Optional[str], default: str) -> str:
    """Turn a caller-supplied file name into a safe attachment name.

    Args:
        value: Requested file name, possibly empty.
        default: Name used when nothing usable was requested.

    Returns:
        File name with path separators and control whitespace replaced.
    """
    name = (value or "").strip()
    if not name:
        name = default
    return _FILE_NAME_UNSAFE.sub("_", name)
