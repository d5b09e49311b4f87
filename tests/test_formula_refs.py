"""Tests for formula row-reference rewriting."""

import pytest

from closing_report.utils.formula_refs import (
    shift_formula_rows,
    shift_reference,
    split_sheet_prefix,
    translate_formula,
)


def shift(formula: str, host: str = "SUMMARY", target: str = "SUMMARY",
          from_row: int = 33, amount: int = 2) -> str:
    """Helper shifting a formula for an insertion into ``target``."""
    return shift_formula_rows(
        formula, target_sheet=target, host_sheet=host, from_row=from_row, amount=amount
    )


class TestSplitSheetPrefix:
    """Tests for split_sheet_prefix."""

    def test_unprefixed(self) -> None:
        assert split_sheet_prefix("B12") == (None, "", "B12")

    def test_plain_sheet(self) -> None:
        assert split_sheet_prefix("ADVANCES_GIVEN!B12") == (
            "ADVANCES_GIVEN", "ADVANCES_GIVEN!", "B12"
        )

    def test_quoted_sheet_with_escaped_quote(self) -> None:
        sheet, prefix, address = split_sheet_prefix("'Crew''s Sheet'!A1:B2")
        assert sheet == "Crew's Sheet"
        assert prefix == "'Crew''s Sheet'!"
        assert address == "A1:B2"


class TestShiftReference:
    """Tests for shift_reference on bare addresses."""

    @pytest.mark.parametrize(
        "address,expected",
        [
            ("B33", "B35"),
            ("B32", "B32"),
            ("$B$40", "$B$42"),
            ("B28:B32", "B28:B32"),
            ("B28:B40", "B28:B42"),
            ("B35:C40", "B37:C42"),
            ("33:34", "35:36"),
            ("A:A", "A:A"),
        ],
    )
    def test_rows_at_or_below_insertion_move(self, address: str, expected: str) -> None:
        assert shift_reference(address, 33, 2) == expected

    def test_defined_name_unchanged(self) -> None:
        assert shift_reference("GivenTotal", 1, 5) == "GivenTotal"


class TestShiftFormulaRows:
    """Tests for shift_formula_rows."""

    def test_same_sheet_reference(self) -> None:
        assert shift("=(B33-B36)") == "=(B35-B38)"

    def test_reference_above_insertion_unchanged(self) -> None:
        assert shift("=SUM(B28:B32)") == "=SUM(B28:B32)"

    def test_range_straddling_insertion_grows(self) -> None:
        assert shift("=SUM(B28:B40)") == "=SUM(B28:B42)"

    def test_other_sheet_reference_ignored(self) -> None:
        """Unprefixed references on another sheet point at that sheet."""
        assert shift("=B40", host="MEALS") == "=B40"

    def test_cross_sheet_reference_shifted(self) -> None:
        formula = "=ADVANCES_GIVEN!B12"
        result = shift(formula, host="SUMMARY", target="ADVANCES_GIVEN", from_row=12, amount=3)
        assert result == "=ADVANCES_GIVEN!B15"

    def test_quoted_sheet_reference_shifted(self) -> None:
        result = shift("='Given Advances'!A10+1", target="Given Advances", from_row=10, amount=1)
        assert result == "='Given Advances'!A11+1"

    def test_absolute_markers_kept(self) -> None:
        assert shift("=$B$33*2") == "=$B$35*2"

    def test_functions_and_whitespace_kept(self) -> None:
        assert shift("=IF(B33 > 0, ROUND(B34, 2), 0)") == "=IF(B35 > 0, ROUND(B36, 2), 0)"

    def test_literal_text_untouched(self) -> None:
        assert shift('="B40"&B40') == '="B40"&B42'

    def test_zero_amount_is_noop(self) -> None:
        assert shift("=B40", amount=0) == "=B40"

    def test_non_formula_untouched(self) -> None:
        assert shift("B40") == "B40"


class TestTranslateFormula:
    """Tests for translate_formula."""

    def test_relative_row_follows_copy(self) -> None:
        assert translate_formula("=C8/1.2", "E8", "E11") == "=C11/1.2"

    def test_absolute_row_stays(self) -> None:
        assert translate_formula("=C8*$B$2", "E8", "E9") == "=C9*$B$2"
