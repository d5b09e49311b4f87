"""Header row discovery for category sheets."""

from dataclasses import dataclass

from closing_report.models.workbook import TemplateSheet
from closing_report.utils.logging_config import get_logger
from closing_report.utils.text import fold_lower

logger = get_logger(__name__)

DATE_TOKENS = ("day", "date", "gun", "tarih")
DOC_TOKENS = ("receipt", "doc", "fis", "sira")
AMOUNT_TOKENS = ("total", "amount", "toplam", "tutar")

DEFAULT_SCAN_LIMIT = 140
DEFAULT_FALLBACK_ROW = 6


@dataclass(frozen=True)
class HeaderLocation:
    """Result of a header scan.

    Attributes:
        row: Header row index (1-based).
        degraded: True when no header matched and the fallback row is used.
    """

    row: int
    degraded: bool = False


def _contains_any(text: str, tokens: tuple[str, ...]) -> bool:
    return any(token in text for token in tokens)


def is_header_row(cells: list[str]) -> bool:
    """Whether a row's texts look like a detail-table header."""
    text = " ".join(fold_lower(c) for c in cells if c)
    if not text:
        return False
    return _contains_any(text, DATE_TOKENS) and (
        _contains_any(text, DOC_TOKENS) or _contains_any(text, AMOUNT_TOKENS)
    )


def locate_header_row(
    sheet: TemplateSheet,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    fallback_row: int = DEFAULT_FALLBACK_ROW,
) -> HeaderLocation:
    """Find the header row of a sheet's detail table.

    Args:
        sheet: Sheet to scan.
        scan_limit: Last row scanned.
        fallback_row: Row returned when no header matches.

    Returns:
        HeaderLocation of the first matching row, or the fallback row
        flagged as degraded.
    """
    last = min(sheet.row_count, scan_limit)
    for row in range(1, last + 1):
        if is_header_row(sheet.row_text(row)):
            logger.debug(f"Header row of {sheet.name}: {row}")
            return HeaderLocation(row=row)

    logger.warning(f"No header row found on {sheet.name}, using row {fallback_row}")
    return HeaderLocation(row=fallback_row, degraded=True)
