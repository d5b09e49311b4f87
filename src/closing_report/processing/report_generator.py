"""Closing report generation: fills a template with a project's transactions."""

from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from openpyxl.utils.cell import column_index_from_string, coordinate_from_string

from closing_report.config import Config, TemplateLayout
from closing_report.models.report import ProjectMeta, ReportResult, SkippedTransaction
from closing_report.models.transaction import TransactionRecord
from closing_report.models.workbook import CellValue, ReportWorkbook
from closing_report.output.serializer import serialize_workbook
from closing_report.parsers.template_loader import TemplateSource, load_template
from closing_report.processing.column_mapper import map_columns
from closing_report.processing.header_locator import locate_header_row
from closing_report.processing.row_writer import RowWriter, build_detail_rows
from closing_report.processing.sheet_router import SheetRouter
from closing_report.processing.table_expander import (
    TableExpander,
    aggregate_by_counterparty,
    given_advance_entries,
    given_advance_records,
    received_advance_records,
)
from closing_report.utils.date_utils import format_report_date
from closing_report.utils.decimal_utils import is_writable_amount
from closing_report.utils.logging_config import LogContext, get_logger
from closing_report.utils.sanitize import sanitize_cell_text, sanitize_file_name

logger = get_logger(__name__)


def split_writable(
    transactions: Sequence[TransactionRecord],
) -> tuple[list[TransactionRecord], list[SkippedTransaction]]:
    """Separate transactions with a writable amount from malformed ones."""
    writable: list[TransactionRecord] = []
    skipped: list[SkippedTransaction] = []
    for txn in transactions:
        if is_writable_amount(txn.amount):
            writable.append(txn)
        else:
            logger.warning(f"Skipping transaction with malformed amount: {txn!r}")
            skipped.append(SkippedTransaction(transaction=txn, reason="malformed amount"))
    return writable, skipped


def fill_anchors(
    workbook: ReportWorkbook,
    layout: TemplateLayout,
    project: ProjectMeta,
    generated_on: str,
) -> bool:
    """Write project and reporter details into the summary anchor cells.

    The generation date is always written; the project name and reporter
    names only when they are not blank.

    Returns:
        False when the summary sheet is missing.
    """
    sheet = workbook.sheet(layout.summary_sheet)
    if sheet is None:
        logger.warning(f"Summary sheet {layout.summary_sheet!r} is missing")
        return False

    anchors = layout.anchors
    values: list[tuple[str, CellValue]] = [(anchors.generated_on, generated_on)]
    if project.project_name and project.project_name.strip():
        values.append((anchors.project_name, project.project_name.strip()))
    if project.reporter_first_name and project.reporter_first_name.strip():
        values.append((anchors.reporter_first_name, project.reporter_first_name.strip()))
    if project.reporter_last_name and project.reporter_last_name.strip():
        values.append((anchors.reporter_last_name, project.reporter_last_name.strip()))

    for address, value in values:
        column, row = coordinate_from_string(address)
        if isinstance(value, str):
            value = sanitize_cell_text(value)
        sheet.set_value(row, column_index_from_string(column), value)
    return True


def write_category_sheets(
    workbook: ReportWorkbook,
    transactions: Sequence[TransactionRecord],
    config: Config,
    result: ReportResult,
) -> None:
    """Route generic expenses to their sheets and write the detail rows."""
    layout = config.layout
    table_sheets = {
        layout.summary_sheet,
        layout.received_advances.sheet,
        layout.given_advances.sheet,
    }
    category_sheets = [name for name in workbook.sheet_names if name not in table_sheets]

    router = SheetRouter(layout.aliases, category_sheets)
    groups, unmapped = router.group_by_sheet(transactions)
    result.unmapped.extend(unmapped)

    writer = RowWriter()
    for sheet_name, records in groups.items():
        sheet = workbook.sheet(sheet_name)
        if sheet is None:
            logger.warning(
                f"Sheet {sheet_name!r} is missing; {len(records)} transaction(s) not written"
            )
            result.missing_sheets.append(sheet_name)
            continue

        header = locate_header_row(sheet, layout.header_scan_limit, layout.fallback_header_row)
        if header.degraded:
            result.degraded.append(f"No header row found on {sheet_name}; row {header.row} assumed")

        column_map = map_columns(sheet, header.row)
        rows = build_detail_rows(
            records,
            date_format=config.export.date_format,
            shorten=config.export.shorten_descriptions,
        )
        writer.write(sheet, header.row + 1, rows, column_map)


def generate_report(
    template: TemplateSource,
    transactions: Sequence[TransactionRecord],
    project: ProjectMeta,
    config: Optional[Config] = None,
    generated_at: Optional[datetime] = None,
) -> ReportResult:
    """Generate a closing report from a template.

    Only an unreadable template aborts generation. Every other problem
    (unmapped category, missing sheet, header or total row not found,
    malformed amount) is recorded on the result and a best-effort report is
    still produced.

    Args:
        template: Template path, bytes or binary stream; never modified.
        transactions: Project transactions.
        project: Project and reporter details.
        config: Layout and export settings (defaults when None).
        generated_at: Generation time written to the report (now when None).

    Returns:
        ReportResult with the .xlsx bytes and everything that was left out.

    Raises:
        TemplateUnreadableError: If the template cannot be loaded.
    """
    config = config or Config()
    generated_at = generated_at or datetime.now()
    layout = config.layout
    export = config.export

    with LogContext(
        logger,
        "report generation",
        project=project.project_name,
        reporter=project.reporter_display_name,
        transactions=len(transactions),
    ):
        workbook = load_template(template)
        writable, skipped = split_writable(transactions)

        result = ReportResult(
            content=b"",
            file_name=sanitize_file_name(project.file_name, export.default_file_name),
            skipped=skipped,
        )

        if not fill_anchors(
            workbook, layout, project, format_report_date(generated_at.date(), export.date_format)
        ):
            result.degraded.append(f"Sheet {layout.summary_sheet} is missing; anchors not written")

        expander = TableExpander(workbook, layout.header_scan_limit, layout.fallback_header_row)

        received = aggregate_by_counterparty(received_advance_records(writable), export.other_label)
        outcome = expander.process(layout.received_advances, received, export.other_label)
        result.degraded.extend(outcome.notes)

        write_category_sheets(workbook, writable, config, result)

        given = given_advance_records(writable)
        if given:
            entries = given_advance_entries(given, export.other_label, export.date_format)
            outcome = expander.process(layout.given_advances, entries, export.other_label)
            result.degraded.extend(outcome.notes)
        else:
            logger.debug("No advances given; table left as in template")

        result.content = serialize_workbook(workbook, modified=generated_at)

    logger.info(
        f"Generated {result.file_name} ({len(result.content)} bytes): "
        f"{len(writable)} transactions, {len(result.unmapped)} unmapped categories, "
        f"{len(result.missing_sheets)} missing sheets, {len(skipped)} skipped"
    )
    return result
