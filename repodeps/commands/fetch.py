"""Fetch command implementation for repodeps.

Downloads the ``PACKAGES.gz`` index of each repository into a local
directory, one sub-directory per repository, so later ``check`` runs can
work offline with ``--repo``.

Typical usage::

    # Download every repository listed in repodeps.toml
    $ repodeps fetch indexes/

    # Download a specific repository, replacing an earlier copy
    $ repodeps fetch indexes/ --url https://cloud.r-project.org --force
"""

from __future__ import annotations

import sys
import click
import asyncio
from pathlib import Path
from typing import List, Sequence, Tuple

from repodeps.config import RepositoryConfig
from repodeps.exceptions import RepoDepsError
from repodeps.context import pass_context, RepoDepsContext
from repodeps.core import RepositoryFetcher, repository_name_from_url
from repodeps.utils import (
    HTTPClient,
    get_logger,
    print_error,
    print_success,
    print_warning,
)

logger = get_logger("commands.fetch")


@click.command()
@click.argument(
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--url",
    "-u",
    "urls",
    multiple=True,
    help="Base URL of a CRAN-like repository (repeatable).",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite index files that already exist.",
)
@pass_context
def fetch(
    ctx: RepoDepsContext,
    out_dir: Path,
    urls: Tuple[str, ...],
    force: bool,
) -> None:
    """Download repository package indexes into OUT_DIR.

    Without ``--url`` the repositories listed in the configuration file
    are downloaded. Each index is saved as
    ``OUT_DIR/<repository>/PACKAGES.gz``.

    Exits:
        0 if every index was saved, 1 if any download failed or an error
        occurred.
    """
    if urls:
        repositories = [
            RepositoryConfig(name=repository_name_from_url(url), url=url) for url in urls
        ]
    else:
        repositories = list(ctx.get_config().repositories)

    if not repositories:
        print_error(
            "No repository given: use --url URL or configure [[repodeps.repositories]]"
        )
        sys.exit(1)

    try:
        written = asyncio.run(_fetch_async(repositories, out_dir, force=force))
    except RepoDepsError as e:
        print_error(f"{e}")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in fetch command")
        sys.exit(1)

    for path in written:
        print_success(f"Saved {path}")

    failed = len(repositories) - len(written)
    if failed:
        print_warning(f"{failed} repository index(es) could not be downloaded")
        sys.exit(1)


async def _fetch_async(
    repositories: Sequence[RepositoryConfig],
    out_dir: Path,
    *,
    force: bool,
) -> List[Path]:
    async with HTTPClient() as http:
        return await RepositoryFetcher(http).save_all(repositories, out_dir, force=force)
