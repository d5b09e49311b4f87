"""Report pipeline components."""

from closing_report.processing.column_mapper import ColumnMap, map_columns
from closing_report.processing.header_locator import HeaderLocation, locate_header_row
from closing_report.processing.row_writer import DetailRow, RowWriter
from closing_report.processing.sheet_router import SheetRouter
from closing_report.processing.table_expander import (
    ExpansionResult,
    TableEntry,
    TableExpander,
    TableRegion,
)

__all__ = [
    "ColumnMap",
    "map_columns",
    "HeaderLocation",
    "locate_header_row",
    "DetailRow",
    "RowWriter",
    "SheetRouter",
    "ExpansionResult",
    "TableEntry",
    "TableExpander",
    "TableRegion",
]
