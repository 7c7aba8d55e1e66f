#!/usr/bin/env python3
"""
EquationFinder: equation discovery with Gene Expression Programming

Main entry point for the EquationFinder application.
This file serves as a thin wrapper that delegates all functionality
to the equationfinder_pkg package.

Usage:
    python equationfinder.py problem.txt                # Search for an equation
    python equationfinder.py problem.txt --mode fit     # Fit the given expression
    python equationfinder.py problem.txt --data d.csv   # Use data from a CSV file
    python equationfinder.py --help                     # Show help
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entry point for EquationFinder.

    Delegates all functionality to the equationfinder_pkg.cli module,
    which handles argument parsing, the search, and output formatting.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        from equationfinder_pkg.cli import main_entry
    except ImportError as e:
        print(f"Error: Failed to import equationfinder_pkg: {e}")
        print("Please ensure all dependencies are installed: pip install -e .")
        return 1

    return main_entry(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
