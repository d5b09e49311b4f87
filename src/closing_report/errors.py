"""Exceptions raised by the closing report generator."""

from pathlib import Path
from typing import Optional


class ReportError(Exception):
    """Base class for report generation errors."""

    pass


class TemplateUnreadableError(ReportError):
    """The template file could not be read or is not a valid workbook."""

    def __init__(self, message: str, source: Optional[Path] = None):
        """Initialize TemplateUnreadableError.

        Args:
            message: Error message.
            source: Template path, when the template came from a file.
        """
        self.source = source
        super().__init__(message)


class ConfigError(ReportError):
    """Exception raised for configuration errors."""

    pass


class TransactionParseError(ReportError):
    """A transaction input file could not be parsed."""

    def __init__(self, message: str, file_path: Optional[Path] = None):
        """Initialize TransactionParseError.

        Args:
            message: Error message.
            file_path: Optional path to the file that failed to parse.
        """
        self.file_path = file_path
        super().__init__(message)
