"""Row-reference rewriting for formulas affected by structural row edits.

openpyxl's ``Worksheet.insert_rows`` moves cells but leaves every formula
string untouched. These helpers re-point references the way a spreadsheet
application does when rows are inserted: any reference at or below the
insertion row moves down, ranges that straddle it grow.
"""

import re

from openpyxl.formula.tokenizer import Token, Tokenizer, TokenizerError
from openpyxl.formula.translate import Translator

from closing_report.utils.logging_config import get_logger

logger = get_logger(__name__)

# One side of a reference: optional column, optional row, each optionally absolute
_REF_PART = re.compile(r"^(\$?)([A-Za-z]{1,3})?(\$?)(\d+)?$")


def split_sheet_prefix(reference: str) -> tuple[str | None, str, str]:
    """Split "'My Sheet'!A1:B2" into (sheet name, raw prefix, address).

    Args:
        reference: Range operand as it appears in a formula.

    Returns:
        Tuple of (unquoted sheet name or None, prefix including "!", address).
    """
    if "!" not in reference:
        return None, "", reference

    prefix, _, address = reference.rpartition("!")
    sheet = prefix
    if sheet.startswith("'") and sheet.endswith("'") and len(sheet) >= 2:
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, prefix + "!", address


def _shift_part(part: str, from_row: int, amount: int) -> str | None:
    match = _REF_PART.match(part)
    if not match or (match.group(2) is None and match.group(4) is None):
        return None

    col_abs, col, row_abs, row = match.groups()
    if row is None:
        # Whole-column reference, unaffected by row insertion
        return part

    row_number = int(row)
    if row_number >= from_row:
        row_number += amount
    return f"{col_abs}{col or ''}{row_abs}{row_number}"


def shift_reference(address: str, from_row: int, amount: int) -> str:
    """Shift the row numbers of a bare address such as "B28:B32".

    Addresses that are not cell or row references (defined names,
    whole-column ranges) are returned unchanged.

    Args:
        address: Reference without sheet prefix.
        from_row: First row that moves.
        amount: Number of rows inserted.

    Returns:
        The shifted address.
    """
    parts = address.split(":")
    if len(parts) > 2:
        return address

    shifted = [_shift_part(p, from_row, amount) for p in parts]
    if any(p is None for p in shifted):
        return address
    return ":".join(shifted)  # type: ignore[arg-type]


def shift_formula_rows(
    formula: str,
    *,
    target_sheet: str,
    host_sheet: str,
    from_row: int,
    amount: int,
) -> str:
    """Re-point a formula after rows were inserted into ``target_sheet``.

    Args:
        formula: Formula text including the leading "=".
        target_sheet: Sheet that received the inserted rows.
        host_sheet: Sheet holding the formula (resolves unprefixed references).
        from_row: Insertion row; references at or below it move.
        amount: Number of inserted rows.

    Returns:
        The rewritten formula, or the input unchanged if nothing moved or the
        formula cannot be tokenized.
    """
    if amount == 0 or not formula.startswith("="):
        return formula

    try:
        tokenizer = Tokenizer(formula)
    except TokenizerError as e:
        logger.warning(f"Leaving untokenizable formula as is on {host_sheet}: {formula!r} ({e})")
        return formula

    changed = False
    for token in tokenizer.items:
        if token.type != Token.OPERAND or token.subtype != Token.RANGE:
            continue

        sheet, prefix, address = split_sheet_prefix(token.value)
        if (sheet if sheet is not None else host_sheet) != target_sheet:
            continue

        shifted = shift_reference(address, from_row, amount)
        if shifted != address:
            token.value = prefix + shifted
            changed = True

    if not changed:
        return formula
    return tokenizer.render()


def translate_formula(formula: str, origin: str, destination: str) -> str:
    """Translate relative references of a formula copied between cells.

    Args:
        formula: Formula text including the leading "=".
        origin: Address the formula was authored in, e.g. "E7".
        destination: Address the copy lands in, e.g. "E31".

    Returns:
        The translated formula.
    """
    return Translator(formula, origin=origin).translate_formula(destination)
