"""Shared fixtures: an in-memory copy of the stock report template."""

from collections.abc import Callable
from io import BytesIO

import pytest
from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side

from closing_report.models.workbook import ReportWorkbook

THIN = Side(style="thin")
DETAIL_BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
DETAIL_FILL = PatternFill(fill_type="solid", start_color="FFFFF2CC", end_color="FFFFF2CC")
MONEY_FORMAT = "#,##0.00"


def _style_row(ws, row: int, columns: range, height: float | None = None) -> None:
    for column in columns:
        cell = ws.cell(row=row, column=column)
        cell.border = DETAIL_BORDER
        cell.fill = DETAIL_FILL
        cell.font = Font(name="Calibri", size=10, italic=column == 1)
        if column in (2, 3):
            cell.number_format = MONEY_FORMAT
    if height is not None:
        ws.row_dimensions[row].height = height


def _add_category_sheet(wb: Workbook, name: str) -> None:
    ws = wb.create_sheet(name)
    ws["A1"] = name
    for column, label in enumerate(
        ["DATE", "RECEIPT NO", "TOTAL", "DESCRIPTION", "NET", "VAT"], start=1
    ):
        ws.cell(row=6, column=column, value=label)
    for row in range(7, 11):
        _style_row(ws, row, range(1, 7), height=16)
        ws.cell(row=row, column=5, value=f"=C{row}/1.2")
        ws.cell(row=row, column=6, value=f"=C{row}-E{row}")


def build_template(category_sheets: tuple[str, ...] = ("MEALS", "TAXI", "TRANSPORT")) -> Workbook:
    """Build a small workbook that follows the stock template layout.

    SUMMARY: anchors B3/B4/B6/B7, received table A28:B32 with total B33,
    given total mirror B36, remaining B38, spent A41/B41.
    ADVANCES_GIVEN: header row 6, detail rows 7-11, TOTAL row 12, mirror E2,
    a dependent formula and a merged note below the table.
    Category sheets: header row 6 with a net/VAT formula pair per detail row.
    """
    wb = Workbook()
    summary = wb.active
    summary.title = "SUMMARY"
    summary["A3"] = "PROJECT"
    summary["A4"] = "DATE"
    summary["A6"] = "FIRST NAME"
    summary["A7"] = "LAST NAME"
    summary["A21"] = "EXPENSES"
    summary["B21"] = "=SUM(MEALS!C7:C40)"
    summary["A27"] = "ADVANCES RECEIVED"
    for row in range(28, 33):
        _style_row(summary, row, range(1, 3), height=18)
    summary["A33"] = "TOTAL"
    summary["B33"] = "=SUM(B28:B32)"
    summary["A36"] = "ADVANCES GIVEN"
    summary["B36"] = "=ADVANCES_GIVEN!B12"
    summary["A38"] = "REMAINING"
    summary["B38"] = "=(B33-B36)"
    summary["A41"] = "=SUM(B21,B36)"
    summary["B41"] = "=(B33-A41)"

    given = wb.create_sheet("ADVANCES_GIVEN")
    given["A1"] = "ADVANCES GIVEN"
    given["D2"] = "GIVEN"
    given["E2"] = "=SUM(B7:B11)"
    given["A6"] = "DATE"
    given["B6"] = "AMOUNT"
    given["C6"] = "RECIPIENT"
    for row in range(7, 12):
        _style_row(given, row, range(1, 4), height=15)
    given.row_dimensions[11].height = 21
    given["A12"] = "TOTAL"
    given["B12"] = "=SUM(B7:B11)"
    given["A14"] = "DOUBLE"
    given["B14"] = "=B12*2"
    given["A15"] = "Signed by the production accountant"
    given.merge_cells("A15:C15")

    for name in category_sheets:
        _add_category_sheet(wb, name)
    return wb


def workbook_bytes(wb: Workbook) -> bytes:
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def template_factory() -> Callable[..., Workbook]:
    """Factory building template workbooks (optionally with other category sheets)."""
    return build_template


@pytest.fixture
def template_bytes() -> bytes:
    """The stock template serialized to .xlsx bytes."""
    return workbook_bytes(build_template())


@pytest.fixture
def template_path(tmp_path, template_bytes: bytes):
    """The stock template written to a temporary file."""
    path = tmp_path / "template.xlsx"
    path.write_bytes(template_bytes)
    return path


@pytest.fixture
def report_workbook() -> ReportWorkbook:
    """The stock template wrapped in the workbook model, never serialized."""
    return ReportWorkbook(build_template())
