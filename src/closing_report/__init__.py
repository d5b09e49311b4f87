"""Template-driven closing report generator for production expense reconciliation."""

from closing_report.processing.report_generator import generate_report

__version__ = "1.0.0"

__all__ = ["generate_report", "__version__"]
