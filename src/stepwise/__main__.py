"""CLI entry point for stepwise.

Usage:
    python -m stepwise                   # interactive
    python -m stepwise -p "fix the tests"
"""

import sys


def main() -> int:
    """Main entry point for the stepwise CLI."""
    from stepwise.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
