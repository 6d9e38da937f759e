"""
Executable module for repodeps.

Running:
    python -m repodeps

is equivalent to:
    repodeps

This module simply forwards execution to the CLI entrypoint defined in
`repodeps.cli`.
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entrypoint when executing `python -m repodeps`.

    Returns:
        Exit code returned by the CLI.
    """
    # Import lazily so dependencies are only loaded during CLI use
    from repodeps.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
