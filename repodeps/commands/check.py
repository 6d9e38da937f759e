"""Check command implementation for repodeps.

Loads one or more repository package indexes, builds a lookup index over
them, and reports, for every requested package, the dependencies that no
package in the repositories can satisfy, following dependencies
transitively.

Each requested package ends in one of three states:

- **not found**: no package of that name (and constraint) exists
- **ok**: every transitive dependency is satisfied
- **unsatisfied**: at least one dependency has no matching package

Typical usage::

    # Check against a local PACKAGES file (plain or gzip-compressed)
    $ repodeps check ggplot2 dplyr --repo PACKAGES.gz

    # Download the index of a remote repository first
    $ repodeps check "Rcpp (>= 1.0)" --url https://cloud.r-project.org

    # Machine-readable JSON output
    $ repodeps check ggplot2 --repo PACKAGES --format json > report.json

    # Check every source package below a directory against CRAN
    $ repodeps check --package-dir pkgs/ --url https://cloud.r-project.org
"""

from __future__ import annotations

import sys
import json
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from repodeps.models import NameAndVersion, Package
from repodeps.config import RepoDepsConfig, RepositoryConfig, ignored_package_names
from repodeps.exceptions import ParseError, RepoDepsError
from repodeps.context import pass_context, RepoDepsContext
from repodeps.core import (
    DependencyResolver,
    Repository,
    RepositoryFetcher,
    RepositoryParser,
    ResolutionResult,
    pinned_reference,
    read_package_dirs,
    repository_name_from_url,
)
from repodeps.utils import (
    HTTPClient,
    colorize_status,
    decompress_if_gzip,
    get_logger,
    get_raw_console,
    print_error,
    print_success,
    print_table,
    print_warning,
    safe_read_bytes,
)

logger = get_logger("commands.check")

#: Outcome of one requested package: reference, matched root, result.
CheckOutcome = Tuple[NameAndVersion, Optional[Package], Optional[ResolutionResult]]


def _parse_roots(
    ctx: click.Context,
    param: click.Parameter,
    value: Sequence[str],
) -> List[NameAndVersion]:
    """Click callback turning ``PACKAGE`` arguments into references."""
    roots: List[NameAndVersion] = []
    for raw in value:
        try:
            roots.append(NameAndVersion.parse(raw))
        except ParseError as exc:
            raise click.BadParameter(exc.message, ctx=ctx, param=param) from exc
    return roots


@click.command()
@click.argument("packages", nargs=-1, callback=_parse_roots)
@click.option(
    "--repo",
    "-r",
    "repo_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Local PACKAGES index file (repeatable, may be gzip-compressed).",
)
@click.option(
    "--url",
    "-u",
    "urls",
    multiple=True,
    help="Base URL of a CRAN-like repository (repeatable).",
)
@click.option(
    "--package-dir",
    "-p",
    "package_dirs",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory of R source packages to check (repeatable).",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "simple", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.option(
    "--allow-missing-version",
    is_flag=True,
    default=False,
    help="Accept index entries without a Version field as version 0.0.0.0.",
)
@click.option(
    "--include-base",
    is_flag=True,
    default=False,
    help="Also check dependencies on R base and recommended packages.",
)
@pass_context
def check(
    ctx: RepoDepsContext,
    packages: List[NameAndVersion],
    repo_files: Tuple[Path, ...],
    urls: Tuple[str, ...],
    package_dirs: Tuple[Path, ...],
    format: str,
    allow_missing_version: bool,
    include_base: bool,
) -> None:
    """Report dependencies of PACKAGE... that no repository package satisfies.

    PACKAGE is a package name, optionally with a version constraint such
    as ``"Rcpp (>= 1.0)"``. With ``--package-dir``, every source package
    whose DESCRIPTION file lies below the directory is checked too, and
    local packages may satisfy each other's dependencies.

    Repositories come from ``--repo`` files and ``--url`` downloads;
    without either, the repositories listed in the configuration file are
    downloaded.

    Args:
        ctx: Repodeps context with configuration and verbosity settings.
        packages: Root references to check.
        repo_files: Local index files.
        urls: Remote repository base URLs.
        package_dirs: Directories searched for source package DESCRIPTION files.
        format: Output format (``table``, ``simple``, or ``json``).
        allow_missing_version: Keep index entries that lack a version.
        include_base: Do not skip R base and recommended packages.

    Exits:
        0 if every package was found with all dependencies satisfied, 1 if
        a package is missing, has unsatisfied dependencies, or an error
        occurred.
    """
    if not packages and not package_dirs:
        raise click.UsageError("Give at least one PACKAGE or --package-dir")

    config = ctx.get_config()

    try:
        outcomes = _run_check(
            config,
            packages,
            repo_files,
            urls,
            package_dirs=package_dirs,
            allow_missing_version=allow_missing_version or config.allow_missing_version,
            include_base=include_base,
            show_progress=format != "json",
        )
    except RepoDepsError as e:
        print_error(f"{e}")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in check command")
        sys.exit(1)

    if format == "table":
        _display_table(outcomes)
    elif format == "simple":
        _display_simple(outcomes)
    else:  # json
        _display_json(outcomes)

    problems = sum(1 for _, _, result in outcomes if result is None or result.has_unsatisfied())

    if format != "json":
        if problems:
            print_warning(f"\n{problems} package(s) not found or with unsatisfied dependencies")
        else:
            print_success("\nAll dependencies satisfied!")

    sys.exit(1 if problems else 0)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _run_check(
    config: RepoDepsConfig,
    roots: Sequence[NameAndVersion],
    repo_files: Sequence[Path],
    urls: Sequence[str],
    *,
    package_dirs: Sequence[Path] = (),
    allow_missing_version: bool,
    include_base: bool,
    show_progress: bool,
) -> List[CheckOutcome]:
    """Load repositories, build the index and resolve every root.

    Source packages from ``package_dirs`` are read first, so they win over
    repository packages of the same name and version.

    Raises:
        RepoDepsError: No repository was given or none could be read.
    """
    sources = _collect_sources(config, repo_files, urls, required=not package_dirs)

    ignored = frozenset() if include_base else ignored_package_names(config)

    with Repository() as repo:
        local = read_package_dirs(
            repo,
            package_dirs,
            parser=RepositoryParser(
                dependency_fields=config.dependency_fields,
                allow_missing_version=allow_missing_version,
            ),
        )
        if package_dirs and not local:
            raise RepoDepsError("No source packages found in the given package directories")
        roots = [*roots, *(pinned_reference(package) for package in local)]

        for name, data in sources:
            parser = RepositoryParser(
                dependency_fields=config.dependency_fields,
                allow_missing_version=allow_missing_version,
                repository_name=name,
            )
            added = repo.read(data, parser=parser, source_name=name)
            if show_progress and repo.last_diagnostics:
                print_warning(
                    f"{name}: skipped {len(repo.last_diagnostics)} malformed entr"
                    f"{'y' if len(repo.last_diagnostics) == 1 else 'ies'}"
                )
            logger.info("%s: %d package(s)", name, added)

        if not len(repo):
            raise RepoDepsError("No packages could be read from the given repositories")

        with repo.create_index() as index:
            resolver = DependencyResolver(index, ignored_packages=ignored)
            outcomes: List[CheckOutcome] = []
            for root in roots:
                result = resolver.resolve(root)
                matched = (
                    result.resolved[0]
                    if result is not None and result.resolved
                    else None
                )
                outcomes.append((root, matched, result))
            return outcomes


def _collect_sources(
    config: RepoDepsConfig,
    repo_files: Sequence[Path],
    urls: Sequence[str],
    *,
    required: bool = True,
) -> List[Tuple[str, bytes]]:
    """Return ``(name, index bytes)`` for every repository to load.

    Without ``--repo`` or ``--url`` the configured repositories are used;
    if there are none, that is an error only when ``required`` is set.
    """
    sources: List[Tuple[str, bytes]] = [
        (str(path), safe_read_bytes(path)) for path in repo_files
    ]

    remotes = [RepositoryConfig(name=repository_name_from_url(url), url=url) for url in urls]
    if not repo_files and not remotes:
        remotes = list(config.repositories)
        if not remotes and required:
            raise RepoDepsError(
                "No repository given: use --repo FILE, --url URL, or configure "
                "[[repodeps.repositories]]"
            )

    if remotes:
        downloaded = asyncio.run(_download(remotes))
        for name, data in downloaded.items():
            if data:
                sources.append((name, decompress_if_gzip(data, source=name)))
            else:
                logger.warning("No index downloaded for %s", name)

    return sources


async def _download(remotes: Sequence[RepositoryConfig]) -> Dict[str, bytes]:
    async with HTTPClient() as http:
        return await RepositoryFetcher(http).fetch_all(remotes)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _status(result: Optional[ResolutionResult]) -> str:
    if result is None:
        return "not found"
    return "unsatisfied" if result.has_unsatisfied() else "ok"


def _display_table(outcomes: List[CheckOutcome]) -> None:
    """Render one row per requested package."""
    rows: List[Dict[str, Any]] = []
    for root, matched, result in outcomes:
        rows.append(
            {
                "Package": root.to_display_string(),
                "Version": str(matched.version) if matched else "-",
                "Repository": matched.repository if matched else "-",
                "Status": colorize_status(_status(result)),
                "Unsatisfied": "\n".join(
                    _describe(entry, result) for entry in result
                )
                if result is not None
                else "",
            }
        )

    print_table(
        rows,
        headers=["Package", "Version", "Repository", "Status", "Unsatisfied"],
        title="Dependency Check",
        column_styles={
            "Package": {"style": "bold", "no_wrap": True},
            "Version": {"justify": "right", "no_wrap": True},
        },
    )


def _display_simple(outcomes: List[CheckOutcome]) -> None:
    """Render outcomes as plain lines suitable for piping.

    Example::

        [OK] Rcpp 1.0.12.0
        [UNSATISFIED] ggplot2 3.4.4.0
               scales (>= 1.3.0.0)  required by ggplot2
        [NOT FOUND] notapkg
    """
    console = get_raw_console()

    for root, matched, result in outcomes:
        label = _status(result).upper()
        version = f" {matched.version}" if matched else ""
        console.print(f"[{label}] {root}{version}", markup=False, highlight=False)

        for entry in result or ():
            console.print(f"       {_describe(entry, result)}", markup=False, highlight=False)


def _display_json(outcomes: List[CheckOutcome]) -> None:
    """Render outcomes as a JSON array for machine consumption."""
    data = []
    for root, matched, result in outcomes:
        item: Dict[str, Any] = {
            "package": root.to_json(),
            "status": _status(result),
            "version": str(matched.version) if matched else None,
            "repository": matched.repository if matched else None,
            "unsatisfied": [],
        }
        if result is not None:
            item["unsatisfied"] = result.to_json()["unsatisfied"]
        data.append(item)
    print(json.dumps(data, indent=2))


def _describe(entry: NameAndVersion, result: Optional[ResolutionResult]) -> str:
    parent = result.required_by.get(entry) if result is not None else None
    text = entry.to_display_string()
    return f"{text}  required by {parent}" if parent else text
