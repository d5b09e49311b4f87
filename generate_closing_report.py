#!/usr/bin/env python3
"""Closing Report Generator.

This is the main entry point script for the closing report generator.
It wraps the package CLI for convenient execution.

Usage:
    python generate_closing_report.py --template template.xlsx --transactions tx.json --project "Short Film"

For full documentation and options:
    python generate_closing_report.py --help
"""

import sys
from pathlib import Path

# Add src to path for development installs
src_path = Path(__file__).parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from closing_report.cli import main

if __name__ == "__main__":
    sys.exit(main())
