"""Detail-row filling for category sheets."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from closing_report.models.transaction import TransactionRecord
from closing_report.models.workbook import CellValue, TemplateSheet
from closing_report.processing.column_mapper import ColumnMap
from closing_report.utils.date_utils import DEFAULT_REPORT_DATE_FORMAT, format_report_date
from closing_report.utils.logging_config import get_logger
from closing_report.utils.sanitize import sanitize_cell_text
from closing_report.utils.text import shorten_description

logger = get_logger(__name__)


@dataclass(frozen=True)
class DetailRow:
    """Values written to one detail row of a category sheet."""

    date_text: str
    amount: Decimal
    description: str
    receipt_no: Optional[str] = None

    @classmethod
    def from_transaction(
        cls,
        txn: TransactionRecord,
        date_format: str = DEFAULT_REPORT_DATE_FORMAT,
        shorten: bool = True,
    ) -> "DetailRow":
        description = shorten_description(txn.description) if shorten else txn.description
        return cls(
            date_text=format_report_date(txn.report_date, date_format),
            amount=txn.amount,
            description=description,
            receipt_no=txn.receipt_number,
        )


def build_detail_rows(
    transactions: Iterable[TransactionRecord],
    date_format: str = DEFAULT_REPORT_DATE_FORMAT,
    shorten: bool = True,
) -> list[DetailRow]:
    """Detail rows for transactions, oldest first (stable for equal times)."""
    ordered = sorted(transactions, key=lambda t: t.occurred_at)
    return [DetailRow.from_transaction(t, date_format, shorten) for t in ordered]


class RowWriter:
    """Writes detail rows into a sheet without disturbing unmapped columns.

    Rows inside the sheet's used range are reused as the template author
    styled them. Rows beyond it get the style, geometry and (translated)
    formulas of the template row: the row after the start row, or the
    sheet's last row when that is earlier.
    """

    def write(
        self,
        sheet: TemplateSheet,
        start_row: int,
        rows: Sequence[DetailRow],
        column_map: ColumnMap,
    ) -> int:
        """Write rows starting at ``start_row``.

        Args:
            sheet: Target sheet.
            start_row: First detail row (header row + 1).
            rows: Rows to write, in order.
            column_map: Columns receiving the values.

        Returns:
            Number of rows appended beyond the sheet's original end.
        """
        if not rows:
            return 0

        row_count = sheet.row_count
        template_row = max(1, min(row_count, start_row + 1))
        appended = 0

        for offset, detail in enumerate(rows):
            row = start_row + offset
            if row > row_count:
                sheet.clone_row(template_row, row)
                appended += 1
            sheet.write_row(row, self._row_values(detail, column_map))

        logger.debug(
            f"Wrote {len(rows)} rows to {sheet.name} from row {start_row} "
            f"({appended} appended, template row {template_row})"
        )
        return appended

    @staticmethod
    def _row_values(detail: DetailRow, column_map: ColumnMap) -> dict[int, CellValue]:
        values: dict[int, CellValue] = {
            column_map.date: detail.date_text,
            column_map.amount: detail.amount,
            column_map.description: sanitize_cell_text(detail.description),
        }
        if column_map.receipt_no is not None:
            values[column_map.receipt_no] = sanitize_cell_text(detail.receipt_no)
        return values
