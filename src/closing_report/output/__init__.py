"""Output generation for .xlsx reports."""

from closing_report.output.serializer import serialize_workbook

__all__ = ["serialize_workbook"]
