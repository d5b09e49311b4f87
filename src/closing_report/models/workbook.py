"""In-memory model of a report template workbook.

Wraps an openpyxl workbook so that every mutation the report pipeline makes
goes through a small set of typed operations: literal values, formulas,
styles, row clones and structural row insertion. Sheets are addressed by
exact (case-sensitive) name and are never created by the pipeline.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from copy import copy
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Alignment, Border, Font, Protection
from openpyxl.styles.fills import Fill
from openpyxl.utils import get_column_letter
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet

from closing_report.utils.formula_refs import (
    shift_formula_rows,
    shift_reference,
    translate_formula,
)
from closing_report.utils.logging_config import get_logger
from closing_report.utils.text import cell_text

logger = get_logger(__name__)


@dataclass(frozen=True)
class Formula:
    """A formula body, kept distinct from literal cell values.

    Attributes:
        body: Formula text without the leading "=", e.g. "SUM(B28:B32)".
    """

    body: str

    @classmethod
    def parse(cls, text: str) -> "Formula":
        """Create from formula text with or without the leading "="."""
        return cls(text[1:] if text.startswith("=") else text)

    @property
    def text(self) -> str:
        """Formula text as stored in the cell (with the leading "=")."""
        return f"={self.body}"

    def __str__(self) -> str:
        return self.text


CellValue = Union[str, int, float, Decimal, date, datetime, Formula, None]


@dataclass(frozen=True)
class CellStyle:
    """Value type for the visual formatting of one cell."""

    font: Font
    fill: Fill
    border: Border
    alignment: Alignment
    number_format: str
    protection: Protection

    @classmethod
    def from_cell(cls, cell: object) -> "CellStyle":
        """Capture the style of an openpyxl cell."""
        return cls(
            font=copy(cell.font),  # type: ignore[attr-defined]
            fill=copy(cell.fill),  # type: ignore[attr-defined]
            border=copy(cell.border),  # type: ignore[attr-defined]
            alignment=copy(cell.alignment),  # type: ignore[attr-defined]
            number_format=cell.number_format,  # type: ignore[attr-defined]
            protection=copy(cell.protection),  # type: ignore[attr-defined]
        )

    def apply_to(self, cell: object) -> None:
        """Write this style onto an openpyxl cell."""
        cell.font = copy(self.font)  # type: ignore[attr-defined]
        cell.fill = copy(self.fill)  # type: ignore[attr-defined]
        cell.border = copy(self.border)  # type: ignore[attr-defined]
        cell.alignment = copy(self.alignment)  # type: ignore[attr-defined]
        cell.number_format = self.number_format  # type: ignore[attr-defined]
        cell.protection = copy(self.protection)  # type: ignore[attr-defined]


@dataclass(frozen=True)
class Cell:
    """Snapshot of one cell: literal value or formula, plus style."""

    row: int
    column: int
    value: CellValue
    style: CellStyle
    formula: Optional[Formula] = None

    @property
    def is_formula(self) -> bool:
        return self.formula is not None


@dataclass(frozen=True)
class RowGeometry:
    """Row-level metadata copied together with row styles."""

    height: Optional[float] = None
    hidden: bool = False
    outline_level: int = 0


class TemplateSheet:
    """One worksheet of a template, addressed by 1-indexed (row, column)."""

    def __init__(self, worksheet: Worksheet, workbook: "ReportWorkbook"):
        self._ws = worksheet
        self._workbook = workbook

    @property
    def name(self) -> str:
        return self._ws.title

    @property
    def worksheet(self) -> Worksheet:
        """Underlying openpyxl worksheet (read access for callers and tests)."""
        return self._ws

    @property
    def row_count(self) -> int:
        return self._ws.max_row

    @property
    def column_count(self) -> int:
        return self._ws.max_column

    # Reading

    def value_at(self, row: int, column: int) -> CellValue:
        """Return the literal value or Formula stored at (row, column)."""
        # _cells holds only stored cells; ws.cell() would create empty ones
        raw = self._ws._cells.get((row, column))
        if raw is None:
            return None
        if raw.data_type == "f":
            if isinstance(raw.value, ArrayFormula):
                return Formula.parse(raw.value.text or "")
            return Formula.parse(str(raw.value))
        return raw.value

    def text_at(self, row: int, column: int) -> str:
        """Return the cell content as text ("" when empty)."""
        return cell_text(self.value_at(row, column))

    def row_text(self, row: int) -> list[str]:
        """Return the text of every cell in a row, left to right."""
        return [self.text_at(row, col) for col in range(1, self.column_count + 1)]

    def formula_at(self, row: int, column: int) -> Optional[Formula]:
        value = self.value_at(row, column)
        return value if isinstance(value, Formula) else None

    def style_at(self, row: int, column: int) -> CellStyle:
        return CellStyle.from_cell(self._ws.cell(row=row, column=column))

    def cell(self, row: int, column: int) -> Cell:
        """Return a typed snapshot of (row, column)."""
        value = self.value_at(row, column)
        formula = value if isinstance(value, Formula) else None
        return Cell(
            row=row,
            column=column,
            value=None if formula else value,
            style=self.style_at(row, column),
            formula=formula,
        )

    def row_geometry(self, row: int) -> RowGeometry:
        dim = self._ws.row_dimensions[row]
        return RowGeometry(
            height=dim.height,
            hidden=bool(dim.hidden),
            outline_level=dim.outline_level or 0,
        )

    # Writing

    def set_value(self, row: int, column: int, value: CellValue) -> None:
        """Write a literal value; Formula instances are routed to set_formula."""
        if isinstance(value, Formula):
            self.set_formula(row, column, value)
            return

        target = self._ws.cell(row=row, column=column)
        if isinstance(target, MergedCell):
            logger.debug(f"Skipping write to merged cell {self.name}!{target.coordinate}")
            return

        target.value = value
        if isinstance(value, str) and value.startswith("="):
            # A literal, never a formula
            target.data_type = "s"

    def set_formula(self, row: int, column: int, formula: Union[Formula, str]) -> None:
        """Write a formula into (row, column)."""
        if isinstance(formula, str):
            formula = Formula.parse(formula)
        self._ws.cell(row=row, column=column).value = formula.text

    def write_row(self, row: int, values: Mapping[int, CellValue]) -> None:
        """Commit one row's staged writes, keyed by column index.

        Only the given columns are touched; all other cells of the row keep
        their values, formulas and styles.
        """
        for column in sorted(values):
            self.set_value(row, column, values[column])

    def apply_style(self, row: int, column: int, style: CellStyle) -> None:
        style.apply_to(self._ws.cell(row=row, column=column))

    def set_row_geometry(self, row: int, geometry: RowGeometry) -> None:
        dim = self._ws.row_dimensions[row]
        dim.height = geometry.height
        dim.hidden = geometry.hidden
        dim.outline_level = geometry.outline_level

    def clone_row(
        self,
        source_row: int,
        target_row: int,
        columns: Optional[Iterable[int]] = None,
        include_formulas: bool = True,
    ) -> None:
        """Copy a row's styling onto another row.

        Copies row geometry and, for each column, the cell style. Formula cells
        are copied as formulas whose relative references are translated to the
        target row; literal values are not copied.

        Args:
            source_row: Row to copy from.
            target_row: Row to copy onto.
            columns: Columns to copy (default: every used column).
            include_formulas: Whether formula cells are copied as well.
        """
        if columns is None:
            columns = range(1, self.column_count + 1)

        self.set_row_geometry(target_row, self.row_geometry(source_row))
        for column in columns:
            source = self._ws.cell(row=source_row, column=column)
            self.apply_style(target_row, column, CellStyle.from_cell(source))

            if not include_formulas or source.data_type != "f" or not isinstance(source.value, str):
                continue
            destination = f"{get_column_letter(column)}{target_row}"
            self.set_formula(
                target_row,
                column,
                translate_formula(source.value, source.coordinate, destination),
            )

    def insert_rows(self, index: int, amount: int = 1) -> None:
        """Insert blank rows before ``index``; see ReportWorkbook.insert_rows."""
        self._workbook.insert_rows(self.name, index, amount)

    def find_in_column(
        self,
        column: int,
        predicate: Callable[[str], bool],
        start_row: int = 1,
        end_row: Optional[int] = None,
    ) -> Optional[int]:
        """Return the first row in [start_row, end_row] whose text matches."""
        last = min(end_row or self.row_count, self.row_count)
        for row in range(start_row, last + 1):
            if predicate(self.text_at(row, column)):
                return row
        return None

    def __repr__(self) -> str:
        return f"TemplateSheet(name={self.name!r}, rows={self.row_count})"


class ReportWorkbook:
    """A template workbook: an ordered, named collection of sheets."""

    def __init__(self, book: Workbook):
        self._book = book
        self._sheets: dict[str, TemplateSheet] = {}

    @property
    def book(self) -> Workbook:
        return self._book

    @property
    def sheet_names(self) -> list[str]:
        return list(self._book.sheetnames)

    def has_sheet(self, name: str) -> bool:
        return name in self._book.sheetnames

    def sheet(self, name: str) -> Optional[TemplateSheet]:
        """Return the sheet with exactly this name, or None if absent."""
        if not self.has_sheet(name):
            return None
        if name not in self._sheets:
            self._sheets[name] = TemplateSheet(self._book[name], self)
        return self._sheets[name]

    def __iter__(self) -> Iterator[TemplateSheet]:
        for name in self.sheet_names:
            sheet = self.sheet(name)
            if sheet is not None:
                yield sheet

    def mark_full_recalculation(self) -> None:
        """Ask spreadsheet applications to recalculate every formula on open."""
        self._book.calculation.fullCalcOnLoad = True

    def insert_rows(self, sheet_name: str, index: int, amount: int = 1) -> None:
        """Insert ``amount`` blank rows before row ``index`` of a sheet.

        Besides moving the cells, re-points every formula in the workbook
        that refers to rows at or below ``index`` on that sheet (including
        cross-sheet references), and shifts merged ranges, row dimensions
        and defined names accordingly.

        Args:
            sheet_name: Sheet receiving the rows.
            index: Row before which the blank rows appear.
            amount: Number of rows to insert.
        """
        if amount <= 0:
            return
        ws = self._book[sheet_name]
        logger.debug(f"Inserting {amount} row(s) into {sheet_name} at row {index}")

        ws.insert_rows(index, amount)

        for other in self._book.worksheets:
            self._shift_sheet_formulas(other, sheet_name, index, amount)
        self._shift_merged_ranges(ws, index, amount)
        self._shift_row_dimensions(ws, index, amount)
        self._shift_defined_names(sheet_name, index, amount)

    @staticmethod
    def _shift_sheet_formulas(ws: Worksheet, target: str, index: int, amount: int) -> None:
        for row in ws.iter_rows():
            for cell in row:
                if cell.data_type != "f":
                    continue
                if isinstance(cell.value, ArrayFormula):
                    array = cell.value
                    if array.text:
                        array.text = shift_formula_rows(
                            array.text, target_sheet=target, host_sheet=ws.title,
                            from_row=index, amount=amount,
                        )
                    if ws.title == target and array.ref:
                        array.ref = shift_reference(array.ref, index, amount)
                    continue
                if isinstance(cell.value, str):
                    shifted = shift_formula_rows(
                        cell.value, target_sheet=target, host_sheet=ws.title,
                        from_row=index, amount=amount,
                    )
                    if shifted != cell.value:
                        cell.value = shifted

    @staticmethod
    def _shift_merged_ranges(ws: Worksheet, index: int, amount: int) -> None:
        affected = [m for m in ws.merged_cells.ranges if m.max_row >= index]
        for merged in affected:
            ws.merged_cells.remove(merged)
            if merged.min_row >= index:
                merged.shift(row_shift=amount)
            else:
                merged.expand(down=amount)
            ws.merged_cells.add(merged)

    @staticmethod
    def _shift_row_dimensions(ws: Worksheet, index: int, amount: int) -> None:
        dims = ws.row_dimensions
        for row in sorted((r for r in list(dims.keys()) if r >= index), reverse=True):
            dim = dims.pop(row)
            dim.index = row + amount
            dims[row + amount] = dim

    def _shift_defined_names(self, target: str, index: int, amount: int) -> None:
        scopes = [(None, self._book.defined_names)]
        scopes += [(ws.title, ws.defined_names) for ws in self._book.worksheets]
        for host, names in scopes:
            for defined in names.values():
                text = defined.attr_text
                if not text or text.startswith("#"):
                    continue
                shifted = shift_formula_rows(
                    f"={text}", target_sheet=target, host_sheet=host or "",
                    from_row=index, amount=amount,
                )
                defined.attr_text = shifted[1:]


def column_letter(column: int) -> str:
    """Column index to letter, e.g. 2 -> "B"."""
    return get_column_letter(column)
