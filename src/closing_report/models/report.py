"""Report input metadata and generation results."""

from dataclasses import dataclass, field
from typing import Optional, Union

from closing_report.models.transaction import TransactionRecord
from closing_report.utils.text import normalize_spaces


@dataclass(frozen=True)
class ProjectMeta:
    """Project and reporter details written into the summary anchors.

    Attributes:
        project_name: Name of the production / project.
        reporter_first_name: Reporter's first name(s), if known.
        reporter_last_name: Reporter's last name, if known.
        file_name: Requested download name for the generated workbook.
    """

    project_name: str
    reporter_first_name: Optional[str] = None
    reporter_last_name: Optional[str] = None
    file_name: Optional[str] = None

    @classmethod
    def from_display_name(
        cls,
        project_name: str,
        display_name: Optional[str],
        file_name: Optional[str] = None,
    ) -> "ProjectMeta":
        """Split "Ayşe Nur Demir" into first names "Ayşe Nur" and last name "Demir"."""
        parts = normalize_spaces(display_name or "").split(" ")
        parts = [p for p in parts if p]
        if not parts:
            return cls(project_name=project_name, file_name=file_name)
        if len(parts) == 1:
            return cls(project_name=project_name, reporter_first_name=parts[0], file_name=file_name)
        return cls(
            project_name=project_name,
            reporter_first_name=" ".join(parts[:-1]),
            reporter_last_name=parts[-1],
            file_name=file_name,
        )

    @property
    def reporter_display_name(self) -> str:
        return " ".join(p for p in (self.reporter_first_name, self.reporter_last_name) if p)


@dataclass(frozen=True)
class SheetRoute:
    """A category resolved to a template sheet."""

    category: str
    sheet_name: str


@dataclass(frozen=True)
class UnmappedCategory:
    """A category that no known sheet name or alias matches."""

    category: str
    normalized: str


RouteResult = Union[SheetRoute, UnmappedCategory]


@dataclass(frozen=True)
class SkippedTransaction:
    """A transaction left out of the report, with the reason."""

    transaction: TransactionRecord
    reason: str


@dataclass
class ReportResult:
    """Output of one report generation.

    Attributes:
        content: The generated .xlsx file as bytes.
        file_name: Suggested download name.
        unmapped: Categories no sheet could be resolved for.
        missing_sheets: Sheets routed to but absent from the template.
        skipped: Transactions excluded from the report.
        degraded: Human-readable notes about fallbacks that were used.
    """

    content: bytes
    file_name: str
    unmapped: list[UnmappedCategory] = field(default_factory=list)
    missing_sheets: list[str] = field(default_factory=list)
    skipped: list[SkippedTransaction] = field(default_factory=list)
    degraded: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """True when every transaction landed in the report without fallbacks."""
        return not (self.unmapped or self.missing_sheets or self.skipped or self.degraded)
