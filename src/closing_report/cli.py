"""Command-line interface for the closing report generator."""

import argparse
import sys
from pathlib import Path

from rich.console import Console

from closing_report import __version__
from closing_report.config import Config, load_config
from closing_report.errors import ConfigError, ReportError, TemplateUnreadableError
from closing_report.models.report import ProjectMeta, ReportResult
from closing_report.parsers.template_loader import load_template, validate_template
from closing_report.parsers.transaction_parser import load_transactions
from closing_report.processing.report_generator import generate_report
from closing_report.utils.logging_config import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="closing-report",
        description="Fill a closing report template with a project's transactions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --template template.xlsx --transactions tx.json --project "Short Film"
  %(prog)s -t template.xlsx -x tx.json -p "Short Film" --reporter "Ayşe Nur Demir" -o out.xlsx
  %(prog)s -t template.xlsx --validate-only
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-t", "--template",
        type=Path,
        default=None,
        help="Report template (.xlsx)",
    )

    parser.add_argument(
        "-x", "--transactions",
        type=Path,
        default=None,
        help="Transactions export (.json)",
    )

    parser.add_argument(
        "-p", "--project",
        default="",
        help="Project name written to the summary sheet",
    )

    # Reporter
    parser.add_argument(
        "--reporter",
        default=None,
        help='Reporter display name, split into first and last name ("Ayşe Nur Demir")',
    )

    parser.add_argument(
        "--first-name",
        default=None,
        help="Reporter first name (overrides --reporter)",
    )

    parser.add_argument(
        "--last-name",
        default=None,
        help="Reporter last name (overrides --reporter)",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output file path (default: ./ClosingReport.xlsx)",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: built-in template layout)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (-v, -vv)",
    )

    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Check the template against the configured layout only",
    )

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def validate_output_path(path: Path, base_dir: Path | None = None) -> Path:
    """Validate that output path is within allowed directory.

    Prevents path traversal attacks by ensuring the resolved path
    is within the base directory (defaults to current working directory).

    Args:
        path: The path to validate.
        base_dir: Base directory to constrain paths within (default: cwd).

    Returns:
        The resolved, validated path.

    Raises:
        ValueError: If the path escapes the allowed directory.
    """
    if base_dir is None:
        base_dir = Path.cwd()

    resolved_base = base_dir.resolve()
    resolved_path = (base_dir / path).resolve()

    try:
        resolved_path.relative_to(resolved_base)
    except ValueError:
        raise ValueError(
            f"Invalid path: '{path}' escapes the allowed directory. "
            f"Paths must be within '{resolved_base}'"
        ) from None

    return resolved_path


def build_project(args: argparse.Namespace) -> ProjectMeta:
    """Project details from the command line."""
    project = ProjectMeta.from_display_name(
        args.project,
        args.reporter,
        file_name=args.output.name if args.output else None,
    )
    if args.first_name is None and args.last_name is None:
        return project
    return ProjectMeta(
        project_name=project.project_name,
        reporter_first_name=args.first_name,
        reporter_last_name=args.last_name,
        file_name=project.file_name,
    )


def validate_template_file(template: Path, config: Config) -> int:
    """Check a template against the configured layout.

    Args:
        template: Template path.
        config: Loaded configuration.

    Returns:
        0 if the template matches, 1 otherwise.
    """
    console.print(f"[bold]Validating template {template}...[/bold]\n")
    try:
        workbook = load_template(template)
    except TemplateUnreadableError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(f"[green]✓[/green] Sheets: {', '.join(workbook.sheet_names)}")
    issues = validate_template(workbook, config.layout)
    if issues:
        console.print(f"\n[yellow]Issues ({len(issues)}):[/yellow]")
        for issue in issues:
            console.print(f"  - {issue}")
        return 1

    console.print("\n[green]Template matches the configured layout.[/green]")
    return 0


def display_summary(result: ReportResult, transaction_count: int) -> None:
    """Display generation summary.

    Args:
        result: Generation result.
        transaction_count: Transactions read from the input.
    """
    console.print("\n[bold]Report Summary[/bold]")
    console.print(f"  Transactions: {transaction_count}")
    console.print(f"  Skipped (malformed amount): {len(result.skipped)}")
    console.print(f"  Size: {len(result.content)} bytes")

    if result.unmapped:
        console.print(f"\n[yellow]Unmapped categories ({len(result.unmapped)}):[/yellow]")
        for item in result.unmapped:
            console.print(f"  - {item.category}")

    if result.missing_sheets:
        console.print(f"\n[yellow]Missing sheets ({len(result.missing_sheets)}):[/yellow]")
        for name in result.missing_sheets:
            console.print(f"  - {name}")

    if result.degraded:
        console.print(f"\n[yellow]Fallbacks used ({len(result.degraded)}):[/yellow]")
        for note in result.degraded[:10]:
            console.print(f"  - {note}")
        if len(result.degraded) > 10:
            console.print(f"  ... and {len(result.degraded) - 10} more")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Arguments (default: sys.argv).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = get_log_level(args.verbose)
    setup_logging(level=log_level, console_output=args.verbose > 0)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if config.logging.file:
        setup_logging(
            level=log_level if args.verbose else config.logging.level,
            log_file=config.logging.file,
            console_output=args.verbose > 0,
        )

    if args.template is None:
        console.print("[red]Error: --template is required[/red]")
        parser.print_usage()
        return 1

    if args.validate_only:
        return validate_template_file(args.template, config)

    if args.transactions is None:
        console.print("[red]Error: --transactions is required[/red]")
        parser.print_usage()
        return 1

    try:
        output_path = validate_output_path(
            args.output or Path(config.export.default_file_name)
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if output_path == args.template.resolve():
        console.print("[red]Error: output path must differ from the template[/red]")
        return 1

    console.print(f"[bold]Closing Report Generator v{__version__}[/bold]\n")
    console.print(f"Template: {args.template}")
    console.print(f"Transactions: {args.transactions}")
    console.print(f"Output file: {output_path}")

    try:
        with console.status("[bold green]Reading transactions..."):
            transactions = load_transactions(args.transactions)

        with console.status("[bold green]Generating report..."):
            result = generate_report(args.template, transactions, build_project(args), config)
    except ReportError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.content)
    console.print(f"\n[green]Output written to {output_path}[/green]")

    display_summary(result, len(transactions))
    return 0


if __name__ == "__main__":
    sys.exit(main())
