"""Aggregate tables that grow past their template capacity.

Two tables exist in the template: advances received (bounded, overflow is
folded into an "Other" row) and advances given (unbounded, rows are inserted
before the total row). Growing a table is a structural row insertion through
the workbook model, which re-points every reference below the insertion
point; the table's own total formula and its configured dependents are then
rewritten in one step.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from openpyxl.utils.cell import coordinate_from_string, column_index_from_string

from closing_report.config import DependentFormula, TableLayout
from closing_report.models.transaction import TransactionRecord, TransactionSubtype
from closing_report.models.workbook import (
    CellValue,
    Formula,
    ReportWorkbook,
    TemplateSheet,
    column_letter,
)
from closing_report.parsers.template_loader import find_total_row
from closing_report.processing.header_locator import (
    DEFAULT_FALLBACK_ROW,
    DEFAULT_SCAN_LIMIT,
    locate_header_row,
)
from closing_report.utils.date_utils import DEFAULT_REPORT_DATE_FORMAT, format_report_date
from closing_report.utils.decimal_utils import is_writable_amount
from closing_report.utils.logging_config import get_logger
from closing_report.utils.sanitize import sanitize_cell_text
from closing_report.utils.text import fold_upper, normalize_spaces, shorten_description

logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class TableEntry:
    """One row of an aggregate table."""

    label: str
    amount: Decimal
    date_text: Optional[str] = None


@dataclass(frozen=True)
class TableRegion:
    """Resolved position of an aggregate table in the loaded template.

    Attributes:
        sheet_name: Sheet holding the table.
        start_row: First detail row.
        capacity: Detail rows the template provides.
        total_row: Row holding the total formula.
        label_column: Column of the entry label.
        amount_column: Column of the entry amount.
        date_column: Column of the entry date, if any.
        style_columns: Columns styled on inserted rows.
        bounded: Whether overflow is folded instead of inserted.
    """

    sheet_name: str
    start_row: int
    capacity: int
    total_row: int
    label_column: int
    amount_column: int
    date_column: Optional[int] = None
    style_columns: tuple[int, ...] = (1, 2)
    bounded: bool = False

    @property
    def end_row(self) -> int:
        """Last detail row of the unexpanded table."""
        return self.start_row + self.capacity - 1


@dataclass(frozen=True)
class ExpansionResult:
    """Table geometry after expansion.

    Attributes:
        extra: Rows inserted before the total row.
        start_row: First detail row.
        end_row: Last detail row after insertion.
        total_row: Total row after insertion.
    """

    extra: int
    start_row: int
    end_row: int
    total_row: int

    @property
    def row_count(self) -> int:
        return max(0, self.end_row - self.start_row + 1)


@dataclass
class TableOutcome:
    """What processing one table did, with any fallbacks that were used."""

    region: Optional[TableRegion] = None
    result: Optional[ExpansionResult] = None
    entries: list[TableEntry] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


def aggregate_by_counterparty(
    records: Iterable[TransactionRecord], other_label: str = "Other"
) -> list[TableEntry]:
    """Sum amounts per counterparty, largest first.

    Names are grouped case- and diacritic-insensitively and labelled with the
    first spelling seen; blank names are grouped under ``other_label``. Zero
    sums are dropped. Ties keep first-seen order.

    Args:
        records: Advance transactions.
        other_label: Label for records without a counterparty.

    Returns:
        Entries sorted by descending amount.
    """
    labels: dict[str, str] = {}
    totals: dict[str, Decimal] = {}

    for txn in records:
        name = normalize_spaces(txn.counterparty) or other_label
        key = fold_upper(name)
        labels.setdefault(key, name)
        totals[key] = totals.get(key, Decimal("0")) + txn.amount

    entries = [
        TableEntry(label=labels[key], amount=amount)
        for key, amount in totals.items()
        if amount != 0
    ]
    return sorted(entries, key=lambda e: e.amount, reverse=True)


def fold_to_capacity(
    entries: Sequence[TableEntry], capacity: int, other_label: str = "Other"
) -> list[TableEntry]:
    """Keep the top ``capacity - 1`` entries and fold the rest into one row.

    Args:
        entries: Entries sorted by descending amount.
        capacity: Rows available.
        other_label: Label of the folded row.

    Returns:
        At most ``capacity`` entries.
    """
    if len(entries) <= capacity:
        return list(entries)
    if capacity <= 0:
        return []

    kept = list(entries[: capacity - 1])
    remainder = sum((e.amount for e in entries[capacity - 1:]), Decimal("0"))
    kept.append(TableEntry(label=other_label, amount=remainder))
    return kept


def given_advance_entries(
    records: Iterable[TransactionRecord],
    other_label: str = "Other",
    date_format: str = DEFAULT_REPORT_DATE_FORMAT,
) -> list[TableEntry]:
    """One entry per given advance, oldest first.

    The label is the recipient, falling back to the shortened description.
    """
    ordered = sorted(records, key=lambda t: t.occurred_at)
    return [
        TableEntry(
            label=(
                normalize_spaces(t.counterparty)
                or shorten_description(t.description)
                or other_label
            ),
            amount=t.amount,
            date_text=format_report_date(t.report_date, date_format),
        )
        for t in ordered
    ]


def render_dependent(
    dependent: DependentFormula, region: TableRegion, result: ExpansionResult
) -> tuple[str, Formula]:
    """Render a dependent formula for the expanded table.

    Args:
        dependent: Configured dependent formula (template coordinates).
        region: Table region before expansion.
        result: Table geometry after expansion.

    Returns:
        Tuple of (cell address after expansion, formula).
    """

    def shift(row: int) -> int:
        return row + result.extra if row >= region.total_row else row

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name == "start":
            return str(result.start_row)
        if name == "end":
            return str(result.end_row)
        if name == "total":
            return str(result.total_row)
        if name.isdigit():
            return str(shift(int(name)))
        raise ValueError(f"Unknown placeholder {{{name}}} in {dependent.formula!r}")

    column, row = coordinate_from_string(dependent.cell)
    address = f"{column}{shift(row)}"
    return address, Formula.parse(_PLACEHOLDER.sub(substitute, dependent.formula))


class TableExpander:
    """Fills the aggregate tables of a loaded template."""

    def __init__(
        self,
        workbook: ReportWorkbook,
        header_scan_limit: int = DEFAULT_SCAN_LIMIT,
        fallback_header_row: int = DEFAULT_FALLBACK_ROW,
    ):
        """Initialize expander.

        Args:
            workbook: Template being filled.
            header_scan_limit: Last row scanned for a table header.
            fallback_header_row: Header row assumed when none is found.
        """
        self.workbook = workbook
        self.header_scan_limit = header_scan_limit
        self.fallback_header_row = fallback_header_row

    def resolve_region(
        self, sheet: TemplateSheet, table: TableLayout, notes: list[str]
    ) -> TableRegion:
        """Locate a table on its sheet.

        Missing positions are discovered: the start row from the sheet's
        header row, the total row from the total marker.

        Args:
            sheet: Sheet holding the table.
            table: Configured layout of the table.
            notes: Receives a note for every fallback used.

        Returns:
            The resolved region.
        """
        start_row = table.start_row
        if start_row is None:
            header = locate_header_row(sheet, self.header_scan_limit, self.fallback_header_row)
            if header.degraded:
                notes.append(f"No header row found on {table.sheet}; row {header.row} assumed")
            start_row = header.row + 1

        total_row = table.total_row
        if total_row is None and table.capacity is not None:
            total_row = start_row + table.capacity
        if total_row is None:
            total_row = find_total_row(self.workbook, table, start_row)
        if total_row is None:
            total_row = table.fallback_total_row
            logger.warning(
                f"No total marker on {table.sheet}, using row {total_row}"
            )
            notes.append(f"No total row found on {table.sheet}; row {total_row} assumed")

        capacity = table.capacity if table.capacity is not None else total_row - start_row
        region = TableRegion(
            sheet_name=table.sheet,
            start_row=start_row,
            capacity=max(0, capacity),
            total_row=total_row,
            label_column=table.label_column,
            amount_column=table.amount_column,
            date_column=table.date_column,
            style_columns=tuple(table.style_columns),
            bounded=table.bounded,
        )
        logger.debug(f"Resolved table {region}")
        return region

    def expand(
        self, sheet: TemplateSheet, region: TableRegion, entry_count: int
    ) -> ExpansionResult:
        """Insert rows before the total row when entries exceed capacity.

        Inserted rows take the style and height of the last pre-insertion
        detail row across the table's style columns.

        Args:
            sheet: Sheet holding the table.
            region: Table region before expansion.
            entry_count: Number of entries to write.

        Returns:
            Geometry of the (possibly) expanded table.
        """
        extra = 0 if region.bounded else max(0, entry_count - region.capacity)

        if extra > 0:
            logger.info(
                f"Expanding {region.sheet_name} table by {extra} row(s) at row {region.total_row}"
            )
            sheet.insert_rows(region.total_row, extra)

            source_row = max(region.end_row, region.start_row - 1)
            for row in range(region.total_row, region.total_row + extra):
                sheet.clone_row(source_row, row, columns=region.style_columns)

        return ExpansionResult(
            extra=extra,
            start_row=region.start_row,
            end_row=region.end_row + extra,
            total_row=region.total_row + extra,
        )

    def rewrite_dependent_formulas(
        self,
        sheet: TemplateSheet,
        region: TableRegion,
        result: ExpansionResult,
        dependents: Sequence[DependentFormula] = (),
    ) -> None:
        """Rewrite the total formula and every formula that depends on it.

        Args:
            sheet: Sheet holding the table.
            region: Table region before expansion.
            result: Table geometry after expansion.
            dependents: Configured dependent formulas.
        """
        letter = column_letter(region.amount_column)
        if result.row_count:
            total = Formula(f"SUM({letter}{result.start_row}:{letter}{result.end_row})")
        else:
            total = Formula("0")
        sheet.set_formula(result.total_row, region.amount_column, total)
        logger.debug(f"{region.sheet_name}!{letter}{result.total_row} {total}")

        for dependent in dependents:
            address, formula = render_dependent(dependent, region, result)
            column, row = coordinate_from_string(address)
            sheet.set_formula(row, column_index_from_string(column), formula)
            logger.debug(f"{region.sheet_name}!{address} {formula}")

    def fill(
        self,
        sheet: TemplateSheet,
        region: TableRegion,
        result: ExpansionResult,
        entries: Sequence[TableEntry],
    ) -> None:
        """Write entries into the detail rows and blank the unused ones."""
        for offset in range(result.row_count):
            row = result.start_row + offset
            entry = entries[offset] if offset < len(entries) else None

            values: dict[int, CellValue] = {
                region.label_column: sanitize_cell_text(entry.label) if entry else None,
                region.amount_column: entry.amount if entry else None,
            }
            if region.date_column is not None:
                values[region.date_column] = entry.date_text if entry else None
            sheet.write_row(row, values)

    def process(
        self,
        table: TableLayout,
        entries: Sequence[TableEntry],
        other_label: str = "Other",
    ) -> TableOutcome:
        """Resolve, fold or expand, rewrite formulas and fill one table.

        Args:
            table: Configured layout of the table.
            entries: Entries to write, in display order.
            other_label: Label of the folded row of bounded tables.

        Returns:
            TableOutcome describing what was written.
        """
        outcome = TableOutcome()
        sheet = self.workbook.sheet(table.sheet)
        if sheet is None:
            logger.warning(f"Advance table sheet {table.sheet!r} is missing")
            outcome.notes.append(
                f"Sheet {table.sheet} is missing; its advance table was not written"
            )
            return outcome

        region = self.resolve_region(sheet, table, outcome.notes)

        if region.bounded:
            entries = fold_to_capacity(entries, region.capacity, other_label)

        result = self.expand(sheet, region, len(entries))
        self.rewrite_dependent_formulas(sheet, region, result, table.dependents)
        self.fill(sheet, region, result, entries)

        outcome.region = region
        outcome.result = result
        outcome.entries = list(entries)
        logger.info(
            f"Wrote {len(entries)} entries to {region.sheet_name} "
            f"(rows {result.start_row}-{result.end_row}, total row {result.total_row})"
        )
        return outcome


def received_advance_records(
    transactions: Iterable[TransactionRecord],
) -> list[TransactionRecord]:
    """Writable advances received."""
    return [
        t for t in transactions
        if t.subtype == TransactionSubtype.ADVANCE_IN and is_writable_amount(t.amount)
    ]


def given_advance_records(
    transactions: Iterable[TransactionRecord],
) -> list[TransactionRecord]:
    """Writable advances given."""
    return [
        t for t in transactions
        if t.subtype == TransactionSubtype.ADVANCE_OUT and is_writable_amount(t.amount)
    ]
