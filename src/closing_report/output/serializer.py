"""Workbook serialization to .xlsx bytes."""

from datetime import datetime
from io import BytesIO
from typing import Optional
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from openpyxl.writer.excel import ExcelWriter

from closing_report.models.workbook import ReportWorkbook
from closing_report.utils.logging_config import get_logger

logger = get_logger(__name__)

# Earliest timestamp a zip entry can carry
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def _normalize_archive(content: bytes) -> bytes:
    """Rewrite a zip archive with fixed entry timestamps, keeping entry order."""
    output = BytesIO()
    with ZipFile(BytesIO(content)) as source, ZipFile(output, "w", ZIP_DEFLATED) as target:
        for info in source.infolist():
            entry = ZipInfo(info.filename, date_time=ZIP_EPOCH)
            entry.compress_type = ZIP_DEFLATED
            entry.external_attr = info.external_attr
            target.writestr(entry, source.read(info.filename))
    return output.getvalue()


def serialize_workbook(workbook: ReportWorkbook, modified: Optional[datetime] = None) -> bytes:
    """Serialize a workbook to .xlsx bytes.

    The same workbook content and ``modified`` value always produce the same
    bytes: the document's modified timestamp is pinned and zip entry
    timestamps are fixed.

    Args:
        workbook: Workbook to serialize.
        modified: Timestamp recorded as the document's last modification;
            None keeps the template's own value.

    Returns:
        The .xlsx file content.
    """
    book = workbook.book
    if modified is not None:
        book.properties.modified = modified.replace(tzinfo=None, microsecond=0)

    buffer = BytesIO()
    archive = ZipFile(buffer, "w", ZIP_DEFLATED, allowZip64=True)
    writer = ExcelWriter(book, archive)
    writer.save()

    content = _normalize_archive(buffer.getvalue())
    logger.debug(f"Serialized workbook: {len(content)} bytes, {len(workbook.sheet_names)} sheets")
    return content
