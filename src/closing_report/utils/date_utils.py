"""Date parsing and formatting utilities."""

import re
from datetime import date, datetime

# Report cells carry day-first dates, e.g. 05.03.2025
DEFAULT_REPORT_DATE_FORMAT = "%d.%m.%Y"

# Day-first formats accepted from receipt metadata
DATE_PATTERNS = [
    (r"^(\d{4})-(\d{1,2})-(\d{1,2})$", "%Y-%m-%d"),
    (r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$", "%d.%m.%Y"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{4})$", "%d/%m/%Y"),
    (r"^(\d{1,2})-(\d{1,2})-(\d{4})$", "%d-%m-%Y"),
]

COMPILED_PATTERNS = [(re.compile(pattern), fmt) for pattern, fmt in DATE_PATTERNS]


def _naive_local(value: datetime) -> datetime:
    # Aware and naive timestamps must stay comparable when sorting
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_timestamp(raw: object) -> datetime:
    """Parse a transaction timestamp.

    Handles:
    - datetime / date objects
    - epoch milliseconds (int, float or digit string)
    - ISO 8601 strings (2025-03-05T14:30:00, trailing Z allowed)

    Args:
        raw: The raw timestamp.

    Returns:
        Parsed naive datetime in local time.

    Raises:
        ValueError: If the timestamp cannot be parsed.
    """
    if isinstance(raw, datetime):
        return _naive_local(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"Cannot parse timestamp: {raw!r}")
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw / 1000)

    text = str(raw).strip()
    if not text:
        raise ValueError("Empty timestamp string")
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000)

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _naive_local(datetime.fromisoformat(text))
    except ValueError:
        pass

    return datetime.combine(parse_date(text), datetime.min.time())


def parse_date(raw_date: str) -> date:
    """Parse a receipt date string into a date object.

    Args:
        raw_date: The raw date string (ISO or day-first).

    Returns:
        Parsed date object.

    Raises:
        ValueError: If the date cannot be parsed.
    """
    if not raw_date:
        raise ValueError("Empty date string")

    date_str = raw_date.strip()
    # ISO timestamps from receipt metadata carry a time part
    if "T" in date_str:
        date_str = date_str.split("T", 1)[0]

    for pattern, fmt in COMPILED_PATTERNS:
        if pattern.match(date_str):
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue

    raise ValueError(f"Cannot parse date: '{raw_date}'")


def safe_parse_date(raw_date: str | None, default: date | None = None) -> date | None:
    """Safely parse a date string, returning default on failure.

    Args:
        raw_date: The raw date string to parse.
        default: Default value if parsing fails.

    Returns:
        Parsed date or default.
    """
    if not raw_date:
        return default

    try:
        return parse_date(raw_date)
    except ValueError:
        return default


def format_report_date(d: date, fmt: str = DEFAULT_REPORT_DATE_FORMAT) -> str:
    """Format a date the way report cells display it.

    Args:
        d: Date (or datetime) to format.
        fmt: strftime format string.

    Returns:
        Formatted date string.
    """
    return d.strftime(fmt)
