"""Category to template-sheet routing."""

from collections.abc import Iterable, Mapping

from closing_report.models.report import RouteResult, SheetRoute, UnmappedCategory
from closing_report.models.transaction import (
    Category,
    TransactionKind,
    TransactionRecord,
    TransactionSubtype,
)
from closing_report.utils.logging_config import get_logger
from closing_report.utils.text import category_key, normalize_category

logger = get_logger(__name__)


class SheetRouter:
    """Resolves transaction categories to template sheet names.

    A category routes to a sheet when its key matches a canonical category,
    a known alias, or the key of a sheet that exists in the template.
    Everything else is returned as UnmappedCategory.
    """

    def __init__(self, aliases: Mapping[str, str], sheet_names: Iterable[str] = ()):
        """Initialize router.

        Args:
            aliases: Category spelling -> canonical sheet name.
            sheet_names: Sheet names present in the template.
        """
        self._table: dict[str, str] = {}
        for category in Category:
            self._table[category_key(category.value)] = category.value
        for alias, sheet in aliases.items():
            self._table[category_key(alias)] = sheet

        # The template's own spelling of a sheet wins over the canonical one
        for name in sheet_names:
            key = category_key(name)
            previous = self._table.get(key)
            if previous is not None and previous != name:
                self._retarget(previous, name)
            self._table[key] = name

    def _retarget(self, previous: str, sheet_name: str) -> None:
        for key, target in self._table.items():
            if target == previous:
                self._table[key] = sheet_name

    def route(self, category: str) -> RouteResult:
        """Resolve one category.

        Args:
            category: Category label as recorded on the transaction.

        Returns:
            SheetRoute with the sheet name, or UnmappedCategory.
        """
        key = category_key(category)
        sheet = self._table.get(key)
        if sheet is None:
            return UnmappedCategory(category=category, normalized=normalize_category(category))
        return SheetRoute(category=category, sheet_name=sheet)

    def group_by_sheet(
        self, transactions: Iterable[TransactionRecord]
    ) -> tuple[dict[str, list[TransactionRecord]], list[UnmappedCategory]]:
        """Group generic expenses by target sheet.

        Advance transactions are left out; they belong to the advance tables.

        Args:
            transactions: Transactions to route.

        Returns:
            Tuple of (sheet name -> transactions in input order, distinct
            unmapped categories in first-seen order).
        """
        groups: dict[str, list[TransactionRecord]] = {}
        unmapped: dict[str, UnmappedCategory] = {}

        for txn in transactions:
            if txn.kind != TransactionKind.EXPENSE or txn.subtype != TransactionSubtype.GENERIC:
                continue

            result = self.route(txn.category)
            if isinstance(result, UnmappedCategory):
                if result.normalized not in unmapped:
                    logger.warning(f"No sheet for category {txn.category!r}")
                    unmapped[result.normalized] = result
                continue

            groups.setdefault(result.sheet_name, []).append(txn)

        logger.debug(
            f"Routed {sum(len(g) for g in groups.values())} transactions to {len(groups)} sheets"
        )
        return groups, list(unmapped.values())
