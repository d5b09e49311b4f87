"""Template loading and layout validation using openpyxl."""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Union
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from closing_report.config import TableLayout, TemplateLayout
from closing_report.errors import TemplateUnreadableError
from closing_report.models.transaction import Category
from closing_report.models.workbook import ReportWorkbook
from closing_report.utils.logging_config import get_logger
from closing_report.utils.text import category_key, fold_upper

logger = get_logger(__name__)

# Maximum template size to prevent memory exhaustion (50 MB)
MAX_TEMPLATE_FILE_SIZE = 50 * 1024 * 1024

TemplateSource = Union[str, Path, bytes, BinaryIO]


@dataclass(frozen=True)
class TemplateIssue:
    """A mismatch between a template and the layout contract.

    Attributes:
        sheet: Sheet the issue concerns.
        message: Human-readable description.
    """

    sheet: str
    message: str

    def __str__(self) -> str:
        return f"{self.sheet}: {self.message}"


def load_template(source: TemplateSource) -> ReportWorkbook:
    """Load a report template into a fresh in-memory workbook.

    The template itself is only read; every invocation gets its own copy.

    Args:
        source: Path to the .xlsx template, its bytes, or a binary stream.

    Returns:
        The loaded ReportWorkbook, flagged for full recalculation on open.

    Raises:
        TemplateUnreadableError: If the template is missing, too large or not
            a valid .xlsx workbook.
    """
    path: Path | None = None
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise TemplateUnreadableError(f"Template not found: {path}", path)
        file_size = path.stat().st_size
        if file_size > MAX_TEMPLATE_FILE_SIZE:
            raise TemplateUnreadableError(
                f"Template too large ({file_size / 1024 / 1024:.1f} MB). "
                f"Maximum allowed is {MAX_TEMPLATE_FILE_SIZE / 1024 / 1024:.0f} MB",
                path,
            )
        stream: BinaryIO = BytesIO(path.read_bytes())
    elif isinstance(source, (bytes, bytearray)):
        stream = BytesIO(bytes(source))
    else:
        stream = source

    label = path.name if path else "<stream>"
    logger.info(f"Loading template: {label}")

    try:
        book = load_workbook(stream)
    except (BadZipFile, InvalidFileException, KeyError, ValueError, OSError) as e:
        raise TemplateUnreadableError(f"Failed to read template {label}: {e}", path) from e

    workbook = ReportWorkbook(book)
    workbook.mark_full_recalculation()
    logger.debug(f"Template sheets: {', '.join(workbook.sheet_names)}")
    return workbook


def find_total_row(workbook: ReportWorkbook, table: TableLayout, start_row: int) -> int | None:
    """Return the row carrying a total marker in the table's marker column.

    Args:
        workbook: Loaded template.
        table: Layout of the table.
        start_row: First row scanned.

    Returns:
        Row number, or None when the sheet or marker is absent.
    """
    sheet = workbook.sheet(table.sheet)
    if sheet is None:
        return None
    markers = {fold_upper(m) for m in table.total_markers}
    return sheet.find_in_column(
        table.marker_column,
        lambda text: fold_upper(text) in markers,
        start_row=start_row,
        end_row=table.marker_scan_limit,
    )


def validate_template(workbook: ReportWorkbook, layout: TemplateLayout) -> list[TemplateIssue]:
    """Check a template against the layout contract without modifying it.

    Args:
        workbook: Loaded template.
        layout: Expected layout.

    Returns:
        Issues found; an empty list means the template matches.
    """
    issues: list[TemplateIssue] = []

    if not workbook.has_sheet(layout.summary_sheet):
        issues.append(TemplateIssue(layout.summary_sheet, "summary sheet is missing"))

    for table in (layout.received_advances, layout.given_advances):
        if not workbook.has_sheet(table.sheet):
            issues.append(TemplateIssue(table.sheet, "advance table sheet is missing"))
            continue
        if table.total_row is None and find_total_row(workbook, table, 1) is None:
            issues.append(
                TemplateIssue(
                    table.sheet,
                    f"no total marker ({'/'.join(table.total_markers)}) in column "
                    f"{table.marker_column}; row {table.fallback_total_row} will be used",
                )
            )

    known = {category_key(name) for name in workbook.sheet_names}
    # Advances are written to the aggregate tables, never to a category sheet
    targets = set(layout.aliases.values()) - {Category.ADVANCE.value}
    for sheet_name in sorted(targets):
        if category_key(sheet_name) not in known:
            issues.append(TemplateIssue(sheet_name, "category sheet is missing"))

    for issue in issues:
        logger.warning(f"Template check: {issue}")
    return issues
