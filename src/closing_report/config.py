"""Configuration loading and validation for the closing report generator.

The template layout contract (sheet names, anchor cells, table positions and
the formulas that depend on them) defaults to the stock template and can be
overridden from a settings.yaml file.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from closing_report.errors import ConfigError
from closing_report.models.transaction import Category
from closing_report.utils.logging_config import get_logger

logger = get_logger(__name__)


# Known spellings of each category, in folded form (upper case, no
# diacritics, "-", "/" and "_" read as spaces, "." dropped).
DEFAULT_CATEGORY_ALIASES: dict[str, str] = {
    "FOOD": Category.MEALS.value,
    "MEAL": Category.MEALS.value,
    "CATERING": Category.MEALS.value,
    "YEMEK": Category.MEALS.value,
    "TRANSPORTATION": Category.TRANSPORT.value,
    "TRAVEL": Category.TRANSPORT.value,
    "ULASIM": Category.TRANSPORT.value,
    "CAB": Category.TAXI.value,
    "TAKSI": Category.TAXI.value,
    "COMMUNICATIONS": Category.COMMUNICATION.value,
    "TELECOM": Category.COMMUNICATION.value,
    "ILETISIM": Category.COMMUNICATION.value,
    "OFFICE": Category.OFFICE_STATIONERY.value,
    "STATIONERY": Category.OFFICE_STATIONERY.value,
    "OFFICE STATIONERY": Category.OFFICE_STATIONERY.value,
    "OFFICE AND STATIONERY": Category.OFFICE_STATIONERY.value,
    "OFIS KIRTASIYE": Category.OFFICE_STATIONERY.value,
    "LODGING": Category.ACCOMMODATION.value,
    "HOTEL": Category.ACCOMMODATION.value,
    "KONAKLAMA": Category.ACCOMMODATION.value,
    "LOCATION": Category.VENUE.value,
    "MEKAN": Category.VENUE.value,
    "ART DEPARTMENT": Category.ART.value,
    "SANAT": Category.ART.value,
    "COSTUMES": Category.COSTUME.value,
    "WARDROBE": Category.COSTUME.value,
    "KOSTUM": Category.COSTUME.value,
    "MISC": Category.OTHER.value,
    "MISCELLANEOUS": Category.OTHER.value,
    "DIGER": Category.OTHER.value,
    "NO RECEIPT": Category.NO_RECEIPT.value,
    "NORECEIPT": Category.NO_RECEIPT.value,
    "WITHOUT RECEIPT": Category.NO_RECEIPT.value,
    "FISSIZ": Category.NO_RECEIPT.value,
    "ADVANCES": Category.ADVANCE.value,
    "AVANS": Category.ADVANCE.value,
}

DEFAULT_TOTAL_MARKERS = ["TOTAL", "TOPLAM"]


def _optional_int(data: dict[str, object], key: str, default: Optional[int]) -> Optional[int]:
    if key not in data:
        return default
    value = data[key]
    return None if value is None else int(value)  # type: ignore[arg-type]


@dataclass
class DependentFormula:
    """A formula whose references follow an aggregate table's total row.

    Placeholders in ``formula``: ``{start}`` first detail row, ``{end}`` last
    detail row, ``{total}`` total row, and ``{<n>}`` for template row ``n``,
    which moves down by the number of inserted rows when it sits at or below
    the insertion point. ``cell`` is the template address of the formula cell
    and moves the same way.

    Attributes:
        cell: Template address, e.g. "B38".
        formula: Formula template, e.g. "(B{33}-B{36})".
    """

    cell: str
    formula: str

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "DependentFormula":
        """Create from dictionary.

        Raises:
            ValueError: If the formula uses an unknown placeholder.
        """
        formula = str(data["formula"]).lstrip("=")
        for name in re.findall(r"\{(\w+)\}", formula):
            if name not in ("start", "end", "total") and not name.isdigit():
                raise ValueError(f"Unknown placeholder {{{name}}} in {formula!r}")
        return cls(cell=str(data["cell"]), formula=formula)


@dataclass
class TableLayout:
    """Position contract of one aggregate table.

    Attributes:
        sheet: Sheet holding the table.
        start_row: First detail row; None means "row after the located header".
        capacity: Detail rows pre-formatted by the template author; None means
            "rows between start_row and the located total row".
        total_row: Row holding the total formula; None means "scan for a marker".
        total_markers: Literal labels identifying the total row.
        marker_column: Column scanned for the total marker.
        marker_scan_limit: Last row scanned for the total marker.
        fallback_total_row: Total row used when no marker is found.
        label_column: Column receiving the entry label.
        amount_column: Column receiving the entry amount (summed by the total).
        date_column: Column receiving the entry date, if the table has one.
        style_columns: Columns styled on inserted rows.
        bounded: Fold overflow into an "Other" row instead of inserting rows.
        dependents: Formulas rewritten whenever the table is written.
    """

    sheet: str
    start_row: Optional[int] = None
    capacity: Optional[int] = None
    total_row: Optional[int] = None
    total_markers: list[str] = field(default_factory=lambda: list(DEFAULT_TOTAL_MARKERS))
    marker_column: int = 1
    marker_scan_limit: int = 200
    fallback_total_row: int = 49
    label_column: int = 1
    amount_column: int = 2
    date_column: Optional[int] = None
    style_columns: list[int] = field(default_factory=lambda: [1, 2])
    bounded: bool = False
    dependents: list[DependentFormula] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, object], defaults: "TableLayout") -> "TableLayout":
        """Create from dictionary, filling gaps from ``defaults``."""
        dependents = defaults.dependents
        if "dependents" in data:
            dependents = [
                DependentFormula.from_dict(d)  # type: ignore[arg-type]
                for d in (data["dependents"] or [])  # type: ignore[union-attr]
            ]

        return cls(
            sheet=str(data.get("sheet", defaults.sheet)),
            start_row=_optional_int(data, "start_row", defaults.start_row),
            capacity=_optional_int(data, "capacity", defaults.capacity),
            total_row=_optional_int(data, "total_row", defaults.total_row),
            total_markers=[str(m) for m in data.get("total_markers", defaults.total_markers)],  # type: ignore[union-attr]
            marker_column=int(data.get("marker_column", defaults.marker_column)),  # type: ignore[arg-type]
            marker_scan_limit=int(data.get("marker_scan_limit", defaults.marker_scan_limit)),  # type: ignore[arg-type]
            fallback_total_row=int(data.get("fallback_total_row", defaults.fallback_total_row)),  # type: ignore[arg-type]
            label_column=int(data.get("label_column", defaults.label_column)),  # type: ignore[arg-type]
            amount_column=int(data.get("amount_column", defaults.amount_column)),  # type: ignore[arg-type]
            date_column=_optional_int(data, "date_column", defaults.date_column),
            style_columns=[int(c) for c in data.get("style_columns", defaults.style_columns)],  # type: ignore[union-attr]
            bounded=bool(data.get("bounded", defaults.bounded)),
            dependents=dependents,
        )


def default_received_table() -> TableLayout:
    """Advances received: 5 rows on the summary sheet, folded when full."""
    return TableLayout(
        sheet="SUMMARY",
        start_row=28,
        capacity=5,
        total_row=33,
        label_column=1,
        amount_column=2,
        style_columns=[1, 2],
        bounded=True,
        dependents=[
            DependentFormula(cell="B38", formula="(B{33}-B{36})"),
            DependentFormula(cell="A41", formula="SUM(B21,B{36})"),
            DependentFormula(cell="B41", formula="(B{33}-A{41})"),
        ],
    )


def default_given_table() -> TableLayout:
    """Advances given: a dated ledger on its own sheet, grown as needed."""
    return TableLayout(
        sheet="ADVANCES_GIVEN",
        fallback_total_row=49,
        date_column=1,
        amount_column=2,
        label_column=3,
        style_columns=[1, 2, 3],
        bounded=False,
        dependents=[DependentFormula(cell="E2", formula="SUM(B{start}:B{end})")],
    )


@dataclass
class AnchorCells:
    """Fixed addresses on the summary sheet.

    Attributes:
        project_name: Cell receiving the project name.
        generated_on: Cell receiving the generation date.
        reporter_first_name: Cell receiving the reporter's first name.
        reporter_last_name: Cell receiving the reporter's last name.
    """

    project_name: str = "B3"
    generated_on: str = "B4"
    reporter_first_name: str = "B6"
    reporter_last_name: str = "B7"

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "AnchorCells":
        """Create from dictionary."""
        defaults = cls()
        return cls(
            project_name=str(data.get("project_name", defaults.project_name)),
            generated_on=str(data.get("generated_on", defaults.generated_on)),
            reporter_first_name=str(data.get("reporter_first_name", defaults.reporter_first_name)),
            reporter_last_name=str(data.get("reporter_last_name", defaults.reporter_last_name)),
        )


@dataclass
class TemplateLayout:
    """The fixed layout contract of the report template.

    Attributes:
        summary_sheet: Sheet holding the anchors and the received table.
        anchors: Anchor cell addresses on the summary sheet.
        header_scan_limit: Last row scanned when locating a header row.
        fallback_header_row: Header row assumed when none is found.
        category_aliases: Extra category spellings, merged over the defaults.
        received_advances: Layout of the advances-received table.
        given_advances: Layout of the advances-given table.
    """

    summary_sheet: str = "SUMMARY"
    anchors: AnchorCells = field(default_factory=AnchorCells)
    header_scan_limit: int = 140
    fallback_header_row: int = 6
    category_aliases: dict[str, str] = field(default_factory=dict)
    received_advances: TableLayout = field(default_factory=default_received_table)
    given_advances: TableLayout = field(default_factory=default_given_table)

    @property
    def aliases(self) -> dict[str, str]:
        """Default aliases overlaid with configured ones."""
        merged = dict(DEFAULT_CATEGORY_ALIASES)
        merged.update(self.category_aliases)
        return merged

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "TemplateLayout":
        """Create from dictionary."""
        received = default_received_table()
        if "received_advances" in data:
            received = TableLayout.from_dict(data["received_advances"], received)  # type: ignore[arg-type]

        given = default_given_table()
        if "given_advances" in data:
            given = TableLayout.from_dict(data["given_advances"], given)  # type: ignore[arg-type]

        summary_sheet = str(data.get("summary_sheet", "SUMMARY"))
        if "received_advances" not in data or "sheet" not in data["received_advances"]:  # type: ignore[operator]
            received.sheet = summary_sheet

        return cls(
            summary_sheet=summary_sheet,
            anchors=AnchorCells.from_dict(data.get("anchors", {}) or {}),  # type: ignore[arg-type]
            header_scan_limit=int(data.get("header_scan_limit", 140)),  # type: ignore[arg-type]
            fallback_header_row=int(data.get("fallback_header_row", 6)),  # type: ignore[arg-type]
            category_aliases={
                str(k): str(v)
                for k, v in (data.get("category_aliases", {}) or {}).items()  # type: ignore[union-attr]
            },
            received_advances=received,
            given_advances=given,
        )


@dataclass
class ExportConfig:
    """Configuration for the values written into the template.

    Attributes:
        date_format: strftime format for date cells.
        other_label: Label for folded and unnamed advance rows.
        default_file_name: Download name used when none is requested.
        shorten_descriptions: Reduce merchant titles to short labels.
    """

    date_format: str = "%d.%m.%Y"
    other_label: str = "Other"
    default_file_name: str = "ClosingReport.xlsx"
    shorten_descriptions: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ExportConfig":
        """Create from dictionary."""
        return cls(
            date_format=str(data.get("date_format", "%d.%m.%Y")),
            other_label=str(data.get("other_label", "Other")),
            default_file_name=str(data.get("default_file_name", "ClosingReport.xlsx")),
            shorten_descriptions=bool(data.get("shorten_descriptions", True)),
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file, or None for console only.
    """

    level: str = "INFO"
    file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        log_file = data.get("file")
        return cls(
            level=str(data.get("level", "INFO")),
            file=str(log_file) if log_file else None,
        )


@dataclass
class Config:
    """Main configuration container."""

    layout: TemplateLayout = field(default_factory=TemplateLayout)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        yaml.YAMLError: If file is invalid YAML.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        content = yaml.safe_load(f)

    return content if content else {}


def config_from_dict(data: dict[str, object]) -> Config:
    """Build a Config from parsed settings.

    Args:
        data: Parsed settings.yaml content.

    Returns:
        Config with defaults for every missing section.

    Raises:
        ConfigError: If a section has the wrong shape or an invalid value.
    """
    if not isinstance(data, dict):
        raise ConfigError("Settings must be a mapping")

    try:
        config = Config()
        if "template" in data:
            config.layout = TemplateLayout.from_dict(data["template"])  # type: ignore[arg-type]
        if "export" in data:
            config.export = ExportConfig.from_dict(data["export"])  # type: ignore[arg-type]
        if "logging" in data:
            config.logging = LoggingConfig.from_dict(data["logging"])  # type: ignore[arg-type]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    return config


def load_config(settings_path: Optional[Path] = None) -> Config:
    """Load configuration from settings.yaml.

    Args:
        settings_path: Path to settings.yaml. None means built-in defaults.

    Returns:
        Loaded Config object.

    Raises:
        ConfigError: If the file is not valid YAML or has invalid values.
    """
    if settings_path is None:
        return Config()

    if not settings_path.exists():
        logger.warning(f"Settings file not found: {settings_path}, using defaults")
        return Config()

    try:
        data = load_yaml_file(settings_path)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {settings_path}: {e}") from e

    config = config_from_dict(data)
    logger.info(f"Loaded settings from {settings_path}")
    return config
