"""Tests for aggregate table folding, expansion and formula rewriting."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from closing_report.config import (
    DependentFormula,
    default_given_table,
    default_received_table,
)
from closing_report.models.transaction import (
    TransactionKind,
    TransactionRecord,
    TransactionSubtype,
)
from closing_report.models.workbook import Formula, ReportWorkbook
from closing_report.processing.table_expander import (
    ExpansionResult,
    TableEntry,
    TableExpander,
    TableRegion,
    aggregate_by_counterparty,
    fold_to_capacity,
    given_advance_entries,
    render_dependent,
)

BASE_TIME = datetime(2025, 3, 1, 9, 0)


def create_advance(
    counterparty: str,
    amount: str,
    subtype: TransactionSubtype = TransactionSubtype.ADVANCE_IN,
    minutes: int = 0,
    description: str = "",
) -> TransactionRecord:
    """Helper to create an advance transaction."""
    return TransactionRecord(
        kind=TransactionKind.INCOME if subtype == TransactionSubtype.ADVANCE_IN else TransactionKind.EXPENSE,
        subtype=subtype,
        category="ADVANCE",
        counterparty=counterparty,
        description=description,
        amount=Decimal(amount),
        occurred_at=BASE_TIME + timedelta(minutes=minutes),
    )


def create_entries(count: int) -> list[TableEntry]:
    return [
        TableEntry(label=f"Crew {i}", amount=Decimal(100 + i), date_text="01.03.2025")
        for i in range(1, count + 1)
    ]


class TestAggregateByCounterparty:
    """Tests for aggregate_by_counterparty."""

    def test_sums_and_sorts_descending(self) -> None:
        records = [
            create_advance("Producer", "300"),
            create_advance("Studio", "500"),
            create_advance("producer", "100"),
        ]
        entries = aggregate_by_counterparty(records)
        assert entries == [
            TableEntry(label="Studio", amount=Decimal("500")),
            TableEntry(label="Producer", amount=Decimal("400")),
        ]

    def test_blank_counterparty_grouped_as_other(self) -> None:
        entries = aggregate_by_counterparty([create_advance(" ", "20"), create_advance("", "5")])
        assert entries == [TableEntry(label="Other", amount=Decimal("25"))]

    def test_zero_sums_dropped(self) -> None:
        entries = aggregate_by_counterparty([create_advance("A", "0"), create_advance("B", "1")])
        assert [e.label for e in entries] == ["B"]

    def test_ties_keep_first_seen_order(self) -> None:
        records = [create_advance("A", "10"), create_advance("B", "10"), create_advance("C", "10")]
        assert [e.label for e in aggregate_by_counterparty(records)] == ["A", "B", "C"]


class TestFoldToCapacity:
    """Tests for fold_to_capacity."""

    def test_within_capacity_unchanged(self) -> None:
        entries = create_entries(5)
        assert fold_to_capacity(entries, 5) == entries

    def test_overflow_folded_into_other(self) -> None:
        entries = [TableEntry(f"P{i}", Decimal(a)) for i, a in enumerate([500, 400, 300, 200, 100, 50])]
        folded = fold_to_capacity(entries, 5, "Diğer")
        assert len(folded) == 5
        assert folded[:4] == entries[:4]
        assert folded[4] == TableEntry(label="Diğer", amount=Decimal("150"))


class TestRenderDependent:
    """Tests for render_dependent."""

    def test_rows_at_or_below_insertion_shift(self) -> None:
        region = TableRegion("SUMMARY", 28, 5, 33, 1, 2)
        result = ExpansionResult(extra=2, start_row=28, end_row=34, total_row=35)

        address, formula = render_dependent(DependentFormula("B38", "(B{33}-B{36})"), region, result)
        assert address == "B40"
        assert formula == Formula("(B35-B38)")

        address, formula = render_dependent(DependentFormula("A41", "SUM(B21,B{36})"), region, result)
        assert address == "A43"
        assert formula == Formula("SUM(B21,B38)")

    def test_range_placeholders(self) -> None:
        region = TableRegion("ADVANCES_GIVEN", 7, 5, 12, 3, 2)
        result = ExpansionResult(extra=3, start_row=7, end_row=14, total_row=15)
        address, formula = render_dependent(
            DependentFormula("E2", "SUM(B{start}:B{end})+B{total}*0"), region, result
        )
        assert address == "E2"
        assert formula == Formula("SUM(B7:B14)+B15*0")


class TestGivenTable:
    """Tests for the unbounded advances-given table."""

    @pytest.mark.parametrize("count", [0, 3, 5, 6, 9])
    def test_capacity_invariant(self, report_workbook: ReportWorkbook, count: int) -> None:
        """Detail rows equal max(capacity, entries) and the total sums exactly them."""
        expander = TableExpander(report_workbook)
        outcome = expander.process(default_given_table(), create_entries(count))

        rows = max(5, count)
        assert outcome.result.row_count == rows
        assert outcome.result.end_row == 7 + rows - 1

        sheet = report_workbook.sheet("ADVANCES_GIVEN")
        total_row = 7 + rows
        assert sheet.value_at(total_row, 1) == "TOTAL"
        assert sheet.formula_at(total_row, 2) == Formula(f"SUM(B7:B{7 + rows - 1})")
        assert sheet.formula_at(2, 5) == Formula(f"SUM(B7:B{7 + rows - 1})")

    def test_entries_written_with_dates(self, report_workbook: ReportWorkbook) -> None:
        TableExpander(report_workbook).process(default_given_table(), create_entries(2))
        sheet = report_workbook.sheet("ADVANCES_GIVEN")
        assert sheet.value_at(7, 1) == "01.03.2025"
        assert sheet.value_at(7, 2) == Decimal("101")
        assert sheet.value_at(7, 3) == "Crew 1"
        assert sheet.value_at(9, 2) is None

    def test_inserted_rows_copy_last_detail_row_style(
        self, report_workbook: ReportWorkbook
    ) -> None:
        sheet = report_workbook.sheet("ADVANCES_GIVEN")
        template_styles = [sheet.style_at(11, c) for c in range(1, 4)]

        TableExpander(report_workbook).process(default_given_table(), create_entries(8))

        for row in (12, 13, 14):
            assert [sheet.style_at(row, c) for c in range(1, 4)] == template_styles
            assert sheet.row_geometry(row).height == 21

    def test_references_below_table_follow(self, report_workbook: ReportWorkbook) -> None:
        TableExpander(report_workbook).process(default_given_table(), create_entries(8))

        given = report_workbook.sheet("ADVANCES_GIVEN")
        assert given.formula_at(17, 2) == Formula("B15*2")
        summary = report_workbook.sheet("SUMMARY")
        assert summary.formula_at(36, 2) == Formula("ADVANCES_GIVEN!B15")

    def test_missing_marker_uses_fallback_row(self, report_workbook: ReportWorkbook) -> None:
        sheet = report_workbook.sheet("ADVANCES_GIVEN")
        sheet.set_value(12, 1, "SUM")
        table = default_given_table()
        table.fallback_total_row = 12

        outcome = TableExpander(report_workbook).process(table, create_entries(1))

        assert outcome.region.total_row == 12
        assert any("No total row" in note for note in outcome.notes)

    def test_steps_share_the_resolved_sheet(self, report_workbook: ReportWorkbook) -> None:
        expander = TableExpander(report_workbook)
        sheet = report_workbook.sheet("ADVANCES_GIVEN")
        notes: list[str] = []

        region = expander.resolve_region(sheet, default_given_table(), notes)
        result = expander.expand(sheet, region, 6)
        expander.rewrite_dependent_formulas(sheet, region, result)
        expander.fill(sheet, region, result, create_entries(6))

        assert notes == []
        assert result == ExpansionResult(extra=1, start_row=7, end_row=12, total_row=13)
        assert sheet.formula_at(13, 2) == Formula("SUM(B7:B12)")
        assert sheet.value_at(12, 3) == "Crew 6"

    def test_missing_sheet_reported(self) -> None:
        from openpyxl import Workbook

        workbook = ReportWorkbook(Workbook())
        before = workbook.sheet_names

        outcome = TableExpander(workbook).process(default_given_table(), create_entries(1))

        assert outcome.region is None
        assert outcome.result is None
        assert outcome.notes == [
            "Sheet ADVANCES_GIVEN is missing; its advance table was not written"
        ]
        assert workbook.sheet_names == before

    def test_given_entries_oldest_first_with_label_fallback(self) -> None:
        records = [
            create_advance("", "40", TransactionSubtype.ADVANCE_OUT, minutes=5,
                           description="OPET PETROL A.Ş. | fuel"),
            create_advance("Mert", "60", TransactionSubtype.ADVANCE_OUT, minutes=1),
        ]
        entries = given_advance_entries(records)
        assert [e.label for e in entries] == ["Mert", "OPET PETROL"]
        assert entries[0].date_text == "01.03.2025"


class TestReceivedTable:
    """Tests for the bounded advances-received table."""

    def test_top_four_plus_other(self, report_workbook: ReportWorkbook) -> None:
        """Seven advances from six payers fold into four rows plus Other."""
        records = [
            create_advance("Studio", "300"),
            create_advance("Studio", "200"),
            create_advance("Producer", "400"),
            create_advance("Bank", "300"),
            create_advance("Sponsor", "200"),
            create_advance("Friend", "100"),
            create_advance("Family", "50"),
        ]
        entries = aggregate_by_counterparty(records)
        outcome = TableExpander(report_workbook).process(default_received_table(), entries)

        sheet = report_workbook.sheet("SUMMARY")
        assert [sheet.value_at(r, 1) for r in range(28, 33)] == [
            "Studio", "Producer", "Bank", "Sponsor", "Other"
        ]
        assert [sheet.value_at(r, 2) for r in range(28, 33)] == [
            Decimal("500"), Decimal("400"), Decimal("300"), Decimal("200"), Decimal("150")
        ]
        assert outcome.result.extra == 0
        assert sheet.formula_at(33, 2) == Formula("SUM(B28:B32)")
        assert sheet.value_at(34, 1) is None

    def test_dependents_rewritten(self, report_workbook: ReportWorkbook) -> None:
        sheet = report_workbook.sheet("SUMMARY")
        sheet.set_formula(38, 2, "B33")

        TableExpander(report_workbook).process(default_received_table(), [])

        assert sheet.formula_at(38, 2) == Formula("(B33-B36)")
        assert sheet.formula_at(41, 1) == Formula("SUM(B21,B36)")
        assert sheet.formula_at(41, 2) == Formula("(B33-A41)")

    def test_unbounded_received_table_expands(self, report_workbook: ReportWorkbook) -> None:
        table = default_received_table()
        table.bounded = False

        outcome = TableExpander(report_workbook).process(table, create_entries(7))

        sheet = report_workbook.sheet("SUMMARY")
        assert outcome.result.extra == 2
        assert sheet.value_at(35, 1) == "TOTAL"
        assert sheet.formula_at(35, 2) == Formula("SUM(B28:B34)")
        assert sheet.formula_at(40, 2) == Formula("(B35-B38)")
        assert sheet.formula_at(43, 1) == Formula("SUM(B21,B38)")
        assert sheet.formula_at(43, 2) == Formula("(B35-A43)")
        assert sheet.value_at(34, 1) == "Crew 7"
