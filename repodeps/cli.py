"""
Command-line interface for repodeps.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from repodeps.config import load_config
from repodeps.__version__ import __version__
from repodeps.context import RepoDepsContext
from repodeps.exceptions import ConfigError, RepoDepsError
from repodeps.utils.logger import get_logger, level_for_verbosity, setup_logging
from repodeps.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="REPODEPS_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="REPODEPS_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="repodeps",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """repodeps - find unsatisfiable dependencies in R package repositories.

    \b
    Available commands:
      repodeps check PACKAGE...    Report dependencies no package satisfies
      repodeps fetch OUT_DIR       Download repository package indexes

    \b
    Examples:
      repodeps check ggplot2 --repo PACKAGES
      repodeps check dplyr --url https://cloud.r-project.org
      repodeps -v fetch indexes/

    Use ``repodeps COMMAND --help`` for command-specific options.
    """
    _configure_logging(verbose)

    try:
        loaded_config = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    repodeps_ctx = RepoDepsContext()
    repodeps_ctx.config_path = config or loaded_config.source_path
    repodeps_ctx.color = color
    repodeps_ctx.verbose = verbose
    repodeps_ctx.config = loaded_config
    ctx.obj = repodeps_ctx

    # Respect NO_COLOR for downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console(color=None if color else False)

    logger.debug("repodeps v%s", __version__)
    logger.debug("Config path: %s", repodeps_ctx.config_path)
    if loaded_config.source_path:
        logger.debug("Loaded configuration: %s", loaded_config.to_log_dict())
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose >= 2)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from repodeps.commands.check import check  # noqa: E402
from repodeps.commands.fetch import fetch  # noqa: E402

cli.add_command(check)
cli.add_command(fetch)


def main() -> int:
    """Main entry point for the repodeps CLI.

    Returns:
        Exit code:
            0   Success
            1   Unhandled or application error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.exceptions.Abort:
        print_warning("\nOperation cancelled by user")
        return 130

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except SystemExit as exc:
        # commands exit with sys.exit() to report their status
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1

    except RepoDepsError as exc:
        print_error(str(exc))
        logger.debug(
            "RepoDepsError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
