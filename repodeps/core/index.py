"""Name-keyed lookup index over a repository snapshot.

A :class:`RepositoryIndex` groups the packages of a
:class:`~repodeps.core.repository.Repository` by name once, so that the
resolver's repeated "which versions of X exist" and "does any version
satisfy C" questions cost a dictionary lookup plus a scan of that name's
versions.

The index is a snapshot: packages inserted into the repository after the
index was built are not visible until the index is rebuilt. It refers to
the repository's package records without owning them, so it must be
closed before (or together with) the repository.

Typical usage::

    with repo.create_index() as index:
        index.satisfies("Rcpp", VersionConstraint.parse(">= 1.0"))
        best = index.best_match("Rcpp")
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Collection,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)

from repodeps.models.package import NameAndVersion, Package
from repodeps.models.version import Version, VersionConstraint, constraint_accepts
from repodeps.utils.logger import get_logger

if TYPE_CHECKING:
    from repodeps.core.repository import Repository

logger = get_logger("index")

# Public API
__all__ = ["RepositoryIndex", "Selector", "select_highest", "select_lowest"]

Selector = Callable[[Sequence[Package]], Optional[Package]]
"""Picks one package from candidates sorted by descending version."""


# ---------------------------------------------------------------------------
# Best-match policies
# ---------------------------------------------------------------------------


def select_highest(candidates: Sequence[Package]) -> Optional[Package]:
    """Pick the highest version; the first inserted wins among equals."""
    return candidates[0] if candidates else None


def select_lowest(candidates: Sequence[Package]) -> Optional[Package]:
    """Pick the lowest version; the first inserted wins among equals."""
    if not candidates:
        return None
    lowest = candidates[-1].version
    return next(package for package in candidates if package.version == lowest)


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class RepositoryIndex:
    """Read-only mapping from package name to its available versions.

    Args:
        repository: Repository to snapshot. Must be fully populated.
        selector: Policy choosing the best match among the packages that
            satisfy a constraint. Defaults to :func:`select_highest`.
    """

    def __init__(
        self,
        repository: "Repository",
        *,
        selector: Optional[Selector] = None,
    ) -> None:
        self.selector: Selector = selector or select_highest
        self._by_name: Dict[str, Tuple[Package, ...]] = {}
        self._build(repository)

    def _build(self, repository: "Repository") -> None:
        groups: Dict[str, List[Package]] = {}
        for package in repository:
            groups.setdefault(package.name, []).append(package)

        # sort is stable, so equal versions keep insertion order
        self._by_name = {
            name: tuple(sorted(packages, key=lambda p: p.version, reverse=True))
            for name, packages in groups.items()
        }
        logger.debug(
            "Indexed %d package record(s) under %d name(s)",
            sum(len(group) for group in self._by_name.values()),
            len(self._by_name),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> "RepositoryIndex":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Drop the derived mapping. The repository is left untouched."""
        self._by_name = {}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def names(self) -> List[str]:
        """Return indexed package names in first-seen order."""
        return list(self._by_name)

    def packages(self, name: str) -> Tuple[Package, ...]:
        """Return every package named ``name``, highest version first."""
        return self._by_name.get(name, ())

    def versions(self, name: str) -> List[Version]:
        """Return the versions available for ``name``, highest first."""
        return [package.version for package in self.packages(name)]

    def candidates(
        self,
        name: str,
        constraint: Optional[VersionConstraint] = None,
    ) -> List[Package]:
        """Return the packages named ``name`` that satisfy ``constraint``."""
        return [
            package
            for package in self.packages(name)
            if constraint_accepts(constraint, package.version)
        ]

    def satisfies(
        self,
        name: str,
        constraint: Optional[VersionConstraint] = None,
    ) -> bool:
        """Return True if any version of ``name`` meets ``constraint``.

        An absent constraint is met by any version.
        """
        return any(
            constraint_accepts(constraint, package.version)
            for package in self.packages(name)
        )

    def best_match(
        self,
        name: str,
        constraint: Optional[VersionConstraint] = None,
    ) -> Optional[Package]:
        """Return the package chosen by :attr:`selector` among matches.

        With the default selector this is the highest version of ``name``
        satisfying ``constraint``.

        Returns:
            The selected package, or ``None`` if nothing matches.
        """
        return self.selector(self.candidates(name, constraint))

    def find(self, ref: NameAndVersion) -> Optional[Package]:
        """Shorthand for :meth:`best_match` with a :class:`NameAndVersion`."""
        return self.best_match(ref.name, ref.constraint)

    def unsatisfied(
        self,
        refs: Iterable[NameAndVersion],
        *,
        ignored: Collection[str] = (),
    ) -> List[NameAndVersion]:
        """Check a list of references one level deep.

        Unlike the resolver this does not follow the dependencies of the
        packages it finds.

        Args:
            refs: References to check, typically one package's dependencies.
            ignored: Names that are never reported.

        Returns:
            The references no indexed package satisfies, in input order.
        """
        return [
            ref
            for ref in refs
            if ref.name not in ignored and not self.satisfies(ref.name, ref.constraint)
        ]

    def __repr__(self) -> str:
        return f"RepositoryIndex(names={len(self)})"
