"""Transaction records consumed by the report generator."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from closing_report.utils.date_utils import parse_timestamp, safe_parse_date
from closing_report.utils.decimal_utils import to_decimal


class TransactionKind(Enum):
    """Direction of money movement."""

    INCOME = "income"
    EXPENSE = "expense"


class TransactionSubtype(Enum):
    """Whether a transaction is an ordinary entry or a cash advance."""

    GENERIC = "generic"
    ADVANCE_IN = "advance_in"  # Advance received from a payer
    ADVANCE_OUT = "advance_out"  # Advance handed to a crew member


class Category(Enum):
    """Canonical expense categories; each has a sheet of the same name."""

    MEALS = "MEALS"
    TRANSPORT = "TRANSPORT"
    TAXI = "TAXI"
    COMMUNICATION = "COMMUNICATION"
    OFFICE_STATIONERY = "OFFICE-STATIONERY"
    ACCOMMODATION = "ACCOMMODATION"
    VENUE = "VENUE"
    ART = "ART"
    COSTUME = "COSTUME"
    OTHER = "OTHER"
    NO_RECEIPT = "NO-RECEIPT"
    ADVANCE = "ADVANCE"


@dataclass(frozen=True)
class TransactionRecord:
    """One categorized transaction, as produced by the bookkeeping layer.

    Records are never mutated by the report pipeline.

    Attributes:
        kind: Income or expense.
        subtype: Generic entry or one of the advance subtypes.
        category: Category label, upper-cased by the producer (diacritics kept).
        counterparty: Free-text name of the payer / payee / crew member.
        description: Free-text description, "|"-separated fragments allowed.
        amount: Non-negative amount.
        occurred_at: When the transaction was recorded.
        receipt_number: Receipt / document number, if known.
        receipt_date: Date printed on the receipt, if known.
        id: Identifier assigned by the producer (informational).
    """

    kind: TransactionKind
    subtype: TransactionSubtype
    category: str
    counterparty: str
    description: str
    amount: Decimal
    occurred_at: datetime
    receipt_number: Optional[str] = None
    receipt_date: Optional[date] = None
    id: str = ""

    @property
    def is_advance(self) -> bool:
        return self.subtype in (TransactionSubtype.ADVANCE_IN, TransactionSubtype.ADVANCE_OUT)

    @property
    def report_date(self) -> date:
        """Date shown in the report: the receipt's own date when known."""
        if self.receipt_date is not None:
            return self.receipt_date
        return self.occurred_at.date()

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "TransactionRecord":
        """Create a record from a JSON-style mapping.

        Accepts both snake_case keys and the bookkeeping app's export keys
        (``ts``, ``who``, ``receipt.receiptNo``, ``receipt.dateISO``).

        Args:
            data: Mapping with the transaction fields.

        Returns:
            A new TransactionRecord.

        Raises:
            ValueError: If kind, subtype, amount or timestamp are invalid.
            KeyError: If a required field is missing.
        """
        receipt = data.get("receipt") or {}
        if not isinstance(receipt, Mapping):
            receipt = {}

        raw_ts = data.get("occurred_at", data.get("ts"))
        if raw_ts is None:
            raise KeyError("occurred_at")

        receipt_number = data.get("receipt_number", receipt.get("receiptNo"))
        raw_receipt_date = data.get("receipt_date", receipt.get("dateISO"))

        return cls(
            kind=TransactionKind(str(data["kind"])),
            subtype=TransactionSubtype(str(data.get("subtype", "generic"))),
            category=str(data.get("category", "")).strip(),
            counterparty=str(data.get("counterparty", data.get("who", "")) or "").strip(),
            description=str(data.get("description", "") or "").strip(),
            amount=to_decimal(data.get("amount")),
            occurred_at=parse_timestamp(raw_ts),
            receipt_number=str(receipt_number).strip() if receipt_number else None,
            receipt_date=safe_parse_date(str(raw_receipt_date)) if raw_receipt_date else None,
            id=str(data.get("id", "")),
        )

    def __repr__(self) -> str:
        return (
            f"TransactionRecord(kind={self.kind.value}, subtype={self.subtype.value}, "
            f"category={self.category!r}, amount={self.amount}, "
            f"occurred_at={self.occurred_at.isoformat()})"
        )
