"""Semantic column binding for category sheets."""

import re
from dataclasses import dataclass
from typing import Optional

from closing_report.models.workbook import TemplateSheet
from closing_report.utils.logging_config import get_logger
from closing_report.utils.text import fold_upper

logger = get_logger(__name__)

DATE_TOKENS = ("DAY", "DATE", "GUN", "TARIH")
DOC_TOKENS = ("RECEIPT", "DOC", "FIS", "SIRA", "INVOICE", "FATURA")
NUMBER_WORDS = {"NO", "NUMBER", "NR", "NUM", "#"}
TOTAL_WORDS = ("TOTAL", "TOPLAM")
AMOUNT_WORDS = ("AMOUNT", "TUTAR")
DESCRIPTION_TOKENS = ("DESCRIPTION", "NOTE", "ACIKLAMA", "EXPLANATION")

# Net or tax words; they demote AMOUNT headers but never a TOTAL header
SIDE_AMOUNT_WORDS = {"NET", "VAT", "KDV", "TAX", "VERGI", "MATRAH", "EXCL", "HARIC", "SUBTOTAL"}

DEFAULT_DATE_COLUMN = 1
DEFAULT_AMOUNT_COLUMN = 3
DEFAULT_DESCRIPTION_COLUMN = 4

_WORD_SPLIT = re.compile(r"[^A-Z0-9#]+")


@dataclass(frozen=True)
class ColumnMap:
    """Column indices (1-based) for the fields written to a detail row.

    Attributes:
        date: Column for the date text.
        receipt_no: Column for the receipt number, or None if the sheet has none.
        amount: Column for the amount.
        description: Column for the description.
    """

    date: int
    amount: int
    description: int
    receipt_no: Optional[int] = None


def _words(header: str) -> list[str]:
    return [w for w in _WORD_SPLIT.split(header.replace("#", " # ")) if w]


def _is_receipt_no(header: str, words: list[str]) -> bool:
    return any(tok in header for tok in DOC_TOKENS) and any(w in NUMBER_WORDS for w in words)


def _is_side_amount(words: list[str]) -> bool:
    return any(w in SIDE_AMOUNT_WORDS for w in words)


def _pick_amount(headers: dict[int, str]) -> Optional[int]:
    """Choose the amount column by precedence.

    Exact TOTAL, then any header containing TOTAL (tax qualifiers allowed),
    then exact AMOUNT, then a header containing AMOUNT. Net or tax words only
    demote AMOUNT candidates; a lone net or tax amount column is never chosen.
    """
    exact_total = has_total = None
    exact_amount = has_amount = None

    for column, header in headers.items():
        if exact_total is None and header in TOTAL_WORDS:
            exact_total = column
        if has_total is None and any(w in header for w in TOTAL_WORDS):
            has_total = column
        if _is_side_amount(_words(header)):
            continue
        if exact_amount is None and header in AMOUNT_WORDS:
            exact_amount = column
        if has_amount is None and any(w in header for w in AMOUNT_WORDS):
            has_amount = column

    for candidate in (exact_total, has_total, exact_amount, has_amount):
        if candidate is not None:
            return candidate
    return None


def map_columns(sheet: TemplateSheet, header_row: int) -> ColumnMap:
    """Bind date / receipt number / amount / description to columns.

    Args:
        sheet: Category sheet.
        header_row: Row holding the column labels.

    Returns:
        ColumnMap; missing columns fall back to fixed defaults, a missing
        receipt-number column stays None.
    """
    headers: dict[int, str] = {}
    for column, text in enumerate(sheet.row_text(header_row), start=1):
        folded = fold_upper(text)
        if folded:
            headers[column] = folded

    date_col = None
    receipt_col = None
    desc_col = None

    for column, header in headers.items():
        words = _words(header)

        if receipt_col is None and _is_receipt_no(header, words):
            receipt_col = column
            continue

        if date_col is None and any(tok in header for tok in DATE_TOKENS):
            date_col = column

        if desc_col is None and any(tok in header for tok in DESCRIPTION_TOKENS):
            desc_col = column

    amount_col = _pick_amount(headers)

    column_map = ColumnMap(
        date=date_col if date_col is not None else DEFAULT_DATE_COLUMN,
        amount=amount_col if amount_col is not None else DEFAULT_AMOUNT_COLUMN,
        description=desc_col if desc_col is not None else DEFAULT_DESCRIPTION_COLUMN,
        receipt_no=receipt_col,
    )
    if date_col is None or amount_col is None or desc_col is None:
        logger.warning(f"Using fallback columns on {sheet.name}: {column_map}")
    else:
        logger.debug(f"Columns of {sheet.name}: {column_map}")
    return column_map
