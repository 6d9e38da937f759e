"""
Handle-style boundary functions for embedding repodeps.

The resolution core works on owned Python objects released by context
managers. This module offers the same operations as plain functions that
mirror a create / use / destroy lifecycle, for callers that cannot use
``with`` blocks (foreign-function bridges, long-lived host applications).

Every function here is a thin adapter: lifetimes map to ``close()`` on the
underlying object, and result sequences are copied into a caller-owned
:class:`NameVersionBuffer`.

Example::

    repo = create_repository()
    if read_into_repository(repo, data) == 0:
        ...
    index = create_index(repo)
    result = query_unsatisfied(index, repo, "ggplot2")
    if result is None:
        print("not found")
    else:
        for entry in result:
            print(format_name_and_version(entry))
        destroy_result_buffer(result)
    destroy_index(index)
    destroy_repository(repo)
"""

from __future__ import annotations

from typing import Any, Collection, Iterable, Iterator, List, Optional, Sequence, Union

from repodeps.core.index import RepositoryIndex, Selector
from repodeps.core.parser import RepositoryParser
from repodeps.core.repository import Repository
from repodeps.core.resolver import DependencyResolver
from repodeps.exceptions import RepoDepsError
from repodeps.models.package import NameAndVersion
from repodeps.utils.logger import get_logger

logger = get_logger("api")

# Public API
__all__ = [
    "NameVersionBuffer",
    "create_repository",
    "destroy_repository",
    "read_into_repository",
    "create_index",
    "destroy_index",
    "query_unsatisfied",
    "query_unsatisfied_batch",
    "create_name_version_buffer",
    "destroy_result_buffer",
    "format_name_and_version",
]


# ---------------------------------------------------------------------------
# Result buffer
# ---------------------------------------------------------------------------


class NameVersionBuffer:
    """Fixed-capacity, caller-owned sequence of :class:`NameAndVersion`.

    Args:
        capacity: Maximum number of entries.

    Raises:
        ValueError: ``capacity`` is negative.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self.capacity = capacity
        self._entries: List[NameAndVersion] = []

    @classmethod
    def from_entries(cls, entries: Sequence[NameAndVersion]) -> "NameVersionBuffer":
        """Build a buffer sized exactly to ``entries``."""
        buffer = cls(len(entries))
        for entry in entries:
            buffer.append(entry)
        return buffer

    def append(self, entry: NameAndVersion) -> None:
        """Add an entry.

        Raises:
            OverflowError: The buffer is full.
        """
        if len(self._entries) >= self.capacity:
            raise OverflowError(f"buffer is full (capacity {self.capacity})")
        self._entries.append(entry)

    def close(self) -> None:
        """Release the entries. The buffer is empty afterwards."""
        self._entries = []
        self.capacity = 0

    def __enter__(self) -> "NameVersionBuffer":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __getitem__(self, index: int) -> NameAndVersion:
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[NameAndVersion]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"NameVersionBuffer(len={len(self)}, capacity={self.capacity})"


def create_name_version_buffer(capacity: int) -> Optional[NameVersionBuffer]:
    """Allocate a buffer, returning ``None`` if that is impossible."""
    try:
        return NameVersionBuffer(capacity)
    except (ValueError, MemoryError) as exc:
        logger.error("Cannot allocate name/version buffer: %s", exc)
        return None


def destroy_result_buffer(buffer: NameVersionBuffer) -> None:
    """Release a buffer returned by a query or :func:`create_name_version_buffer`."""
    buffer.close()


# ---------------------------------------------------------------------------
# Repository and index lifecycle
# ---------------------------------------------------------------------------


def create_repository(name: str = "") -> Repository:
    """Create an empty repository."""
    return Repository(name)


def destroy_repository(repo: Repository) -> None:
    """Release a repository. Indexes built from it must not be used afterwards."""
    repo.close()


def read_into_repository(
    repo: Repository,
    buffer: Union[bytes, str],
    *,
    allow_missing_version: bool = False,
) -> int:
    """Parse ``buffer`` into ``repo``.

    Malformed stanzas are skipped; this function never raises.

    Returns:
        Number of packages added, or ``0`` on empty input or failure.
    """
    parser = RepositoryParser(
        allow_missing_version=allow_missing_version,
        repository_name=repo.name,
    )
    try:
        return repo.read(buffer, parser=parser)
    except (RepoDepsError, UnicodeError) as exc:
        logger.error("Failed to read repository: %s", exc)
        return 0


def create_index(
    repo: Repository,
    *,
    selector: Optional[Selector] = None,
) -> RepositoryIndex:
    """Build an index snapshot of ``repo``."""
    return RepositoryIndex(repo, selector=selector)


def destroy_index(index: RepositoryIndex) -> None:
    """Release an index. The repository it was built from is unaffected."""
    index.close()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def query_unsatisfied(
    index: RepositoryIndex,
    repo: Repository,
    root_name: str,
    *,
    ignored_packages: Collection[str] = (),
) -> Optional[NameVersionBuffer]:
    """Find every unsatisfiable dependency of the newest ``root_name``.

    Args:
        index: Index built from ``repo``.
        repo: Repository used to look up the root package.
        root_name: Name of the root package.
        ignored_packages: Dependency names that are never checked.

    Returns:
        ``None`` if ``root_name`` is not in ``repo`` or is empty; otherwise a
        buffer with zero or more unsatisfied entries, owned by the caller.
    """
    if not root_name:
        logger.warning("Empty root package name")
        return None

    root = repo.find_latest_package(NameAndVersion(root_name))
    if root is None:
        logger.info("Package %s not found", root_name)
        return None

    resolver = DependencyResolver(index, ignored_packages=ignored_packages)
    result = resolver.resolve_many([root.name])
    return NameVersionBuffer.from_entries(result.unsatisfied)


def query_unsatisfied_batch(
    index: RepositoryIndex,
    roots: Iterable[NameAndVersion],
    *,
    ignored_packages: Collection[str] = (),
) -> NameVersionBuffer:
    """Find every unsatisfiable dependency reachable from ``roots``.

    Roots that no indexed package satisfies are reported themselves. Each
    entry appears once even when several roots share it.
    """
    resolver = DependencyResolver(index, ignored_packages=ignored_packages)
    result = resolver.resolve_many(roots)
    return NameVersionBuffer.from_entries(result.unsatisfied)


def format_name_and_version(entry: NameAndVersion) -> str:
    """Render an entry for debug output.

    Example::

        >>> format_name_and_version(NameAndVersion.parse("C (>= 2.0)"))
        'C >= 2.0.0.0'
        >>> format_name_and_version(NameAndVersion("C"))
        'C (any)'
    """
    if entry.constraint is None:
        return f"{entry.name} (any)"
    return f"{entry.name} {entry.constraint.operator} {entry.constraint.version}"
