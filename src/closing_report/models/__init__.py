"""Data models for transactions, report results and the template workbook."""

from closing_report.models.report import (
    ProjectMeta,
    ReportResult,
    RouteResult,
    SheetRoute,
    SkippedTransaction,
    UnmappedCategory,
)
from closing_report.models.transaction import (
    Category,
    TransactionKind,
    TransactionRecord,
    TransactionSubtype,
)
from closing_report.models.workbook import (
    Cell,
    CellStyle,
    Formula,
    ReportWorkbook,
    RowGeometry,
    TemplateSheet,
)

__all__ = [
    "Category",
    "TransactionKind",
    "TransactionRecord",
    "TransactionSubtype",
    "ProjectMeta",
    "ReportResult",
    "RouteResult",
    "SheetRoute",
    "SkippedTransaction",
    "UnmappedCategory",
    "Cell",
    "CellStyle",
    "Formula",
    "ReportWorkbook",
    "RowGeometry",
    "TemplateSheet",
]
