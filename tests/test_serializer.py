"""Tests for workbook serialization."""

from datetime import datetime
from io import BytesIO
from zipfile import ZipFile

from openpyxl import load_workbook

from closing_report.models.workbook import ReportWorkbook
from closing_report.output.serializer import ZIP_EPOCH, serialize_workbook
from closing_report.parsers.template_loader import load_template


class TestSerializeWorkbook:
    """Tests for serialize_workbook."""

    def test_round_trip(self, report_workbook: ReportWorkbook) -> None:
        report_workbook.sheet("MEALS").set_value(7, 3, 42)

        wb = load_workbook(BytesIO(serialize_workbook(report_workbook)))

        assert wb.sheetnames == report_workbook.sheet_names
        assert wb["MEALS"]["C7"].value == 42
        assert wb["MEALS"]["E7"].value == "=C7/1.2"

    def test_entry_timestamps_fixed(self, report_workbook: ReportWorkbook) -> None:
        content = serialize_workbook(report_workbook)
        with ZipFile(BytesIO(content)) as archive:
            assert {info.date_time for info in archive.infolist()} == {ZIP_EPOCH}

    def test_modified_pinned(self, template_bytes: bytes) -> None:
        modified = datetime(2025, 4, 2, 18, 30, 15, 123456)
        content = serialize_workbook(load_template(template_bytes), modified=modified)
        wb = load_workbook(BytesIO(content))
        assert wb.properties.modified == datetime(2025, 4, 2, 18, 30, 15)

    def test_identical_input_identical_bytes(self, template_bytes: bytes) -> None:
        modified = datetime(2025, 4, 2, 18, 30)
        first = serialize_workbook(load_template(template_bytes), modified=modified)
        second = serialize_workbook(load_template(template_bytes), modified=modified)
        assert first == second
