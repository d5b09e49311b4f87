"""Loaders for report templates and transaction exports."""

from closing_report.parsers.template_loader import (
    TemplateIssue,
    load_template,
    validate_template,
)
from closing_report.parsers.transaction_parser import load_transactions, parse_transactions

__all__ = [
    "TemplateIssue",
    "load_template",
    "validate_template",
    "load_transactions",
    "parse_transactions",
]
