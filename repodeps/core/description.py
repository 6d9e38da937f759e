"""Reading local R source packages into a repository.

Every R source package carries a ``DESCRIPTION`` file in the same DCF
format as a repository index, holding a single stanza. Pointing repodeps
at a directory tree of source packages turns each ``DESCRIPTION`` found
in it into a :class:`~repodeps.models.Package`, which can then be checked
against the packages published in remote repositories.

Typical usage::

    with Repository() as repo:
        read_package_dirs(repo, [Path("packages")])
        roots = [pinned_reference(package) for package in repo]
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Union

from repodeps.constants import DESCRIPTION_FILENAME, MAX_DESCRIPTION_SIZE
from repodeps.core.parser import RepositoryParser
from repodeps.core.repository import Repository
from repodeps.exceptions import FileOperationError
from repodeps.models.package import NameAndVersion, Package
from repodeps.models.version import Operator, VersionConstraint
from repodeps.utils.filesystem import safe_read_bytes
from repodeps.utils.logger import get_logger

logger = get_logger("description")

# Public API
__all__ = ["find_description_files", "read_package_dirs", "pinned_reference"]

PathLike = Union[str, Path]


def find_description_files(directory: PathLike) -> List[Path]:
    """Return every ``DESCRIPTION`` file below ``directory``, sorted by path.

    Raises:
        FileOperationError: ``directory`` does not exist or is not a
            directory.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileOperationError(
            f"Not a package directory: {root}",
            file_path=str(root),
            operation="read",
        )
    return sorted(path for path in root.rglob(DESCRIPTION_FILENAME) if path.is_file())


def read_package_dirs(
    repo: Repository,
    directories: Sequence[PathLike],
    *,
    parser: Optional[RepositoryParser] = None,
) -> List[Package]:
    """Read the ``DESCRIPTION`` of every source package under ``directories``.

    Each package is tagged with the path of its ``DESCRIPTION`` file as
    repository name, unless ``parser`` stamps a name of its own.

    Args:
        repo: Repository receiving the packages.
        directories: Directory trees to walk recursively.
        parser: Parser carrying the dependency field and version policy.

    Returns:
        The packages added, in directory then path order.

    Raises:
        FileOperationError: A directory is missing or a file is unreadable.
    """
    added: List[Package] = []

    for directory in directories:
        files = find_description_files(directory)
        if not files:
            logger.warning("No %s file found under %s", DESCRIPTION_FILENAME, directory)

        for path in files:
            data = safe_read_bytes(path, max_size=MAX_DESCRIPTION_SIZE)
            before = len(repo)
            active_parser = parser or RepositoryParser(repository_name=str(path))
            repo.read(data, parser=active_parser, source_name=str(path))

            new_packages = list(repo)[before:]
            for package in new_packages:
                if not package.repository:
                    package.repository = str(path)
            if not new_packages:
                logger.warning("No package read from %s", path)
            added.extend(new_packages)

        logger.info("Read package directory %s", directory)

    return added


def pinned_reference(package: Package) -> NameAndVersion:
    """Return a reference matching exactly ``package``'s name and version."""
    return NameAndVersion(package.name, VersionConstraint(Operator.EQ, package.version))
