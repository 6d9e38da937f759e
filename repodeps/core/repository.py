"""In-memory package repository for repodeps.

A :class:`Repository` owns the :class:`~repodeps.models.Package` records
read from one or more index buffers. It answers simple name-keyed queries
by linear scan; build a :class:`~repodeps.core.index.RepositoryIndex` for
repeated lookups.

Typical usage::

    with Repository("CRAN") as repo:
        repo.read(Path("PACKAGES").read_bytes())
        latest = repo.find_latest_package(NameAndVersion("Rcpp"))

        with repo.create_index() as index:
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Union

from repodeps.core.parser import ParseDiagnostic, RepositoryParser
from repodeps.models.package import NameAndVersion, Package
from repodeps.utils.logger import get_logger

if TYPE_CHECKING:
    from repodeps.core.index import RepositoryIndex

logger = get_logger("repository")

# Public API
__all__ = ["Repository"]


class Repository:
    """Insertion-ordered collection of package records.

    Several records may share a name (distinct versions of one package);
    no uniqueness is enforced.

    The repository exclusively owns its packages. Indexes built from it
    are snapshots and must not be used once the repository is closed.

    Args:
        name: Repository name, stamped on packages read into it.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._packages: List[Package] = []
        self.last_diagnostics: List[ParseDiagnostic] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> "Repository":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release every owned package record."""
        logger.debug("Closing repository %r (%d packages)", self.name, len(self))
        self._packages = []
        self.last_diagnostics = []

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def insert(self, package: Package) -> None:
        """Append a package record."""
        self._packages.append(package)

    def read(
        self,
        source: Union[bytes, str],
        *,
        parser: Optional[RepositoryParser] = None,
        source_name: Optional[str] = None,
    ) -> int:
        """Parse an index buffer and append its packages.

        The buffer is parsed completely before anything is appended, so a
        strict parser that raises leaves the repository untouched. Dropped
        stanzas are kept in :attr:`last_diagnostics`.

        Args:
            source: Raw index contents; owned by the caller and not retained.
            parser: Parser to use; defaults to a lenient
                :class:`RepositoryParser`.
            source_name: File name or URL used in log messages.

        Returns:
            Number of packages added; ``0`` for empty input.

        Raises:
            ParseError: ``parser`` is strict and a stanza is malformed.
        """
        if not source:
            logger.warning("Empty repository source%s", _suffix(source_name))
            self.last_diagnostics = []
            return 0

        active_parser = parser or RepositoryParser(repository_name=self.name)
        result = active_parser.parse(source, source_name=source_name)

        for package in result.packages:
            if not package.repository:
                package.repository = self.name
        self._packages.extend(result.packages)
        self.last_diagnostics = list(result.diagnostics)

        if result.has_diagnostics():
            logger.warning(
                "Skipped %d malformed stanza(s)%s",
                result.dropped_count,
                _suffix(source_name),
            )
        logger.info(
            "Read %d package(s)%s into repository %r",
            len(result.packages),
            _suffix(source_name),
            self.name,
        )
        return len(result.packages)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self) -> Iterator[Package]:
        return iter(self._packages)

    def first(self) -> Optional[Package]:
        """Return the first package read, if any."""
        return self._packages[0] if self._packages else None

    def packages_named(self, name: str) -> List[Package]:
        """Return every record named ``name``, in insertion order."""
        return [package for package in self._packages if package.name == name]

    def find_packages(self, ref: NameAndVersion) -> List[Package]:
        """Return every record matching ``ref``'s name and constraint."""
        return [
            package
            for package in self._packages
            if package.name == ref.name and ref.accepts(package.version)
        ]

    def find_latest_package(self, ref: NameAndVersion) -> Optional[Package]:
        """Return the highest-versioned record matching ``ref``.

        Among records with equal versions the first inserted wins.
        """
        latest: Optional[Package] = None
        for package in self.find_packages(ref):
            if latest is None or package.version > latest.version:
                latest = package
        return latest

    def create_index(self, **kwargs: Any) -> "RepositoryIndex":
        """Build a :class:`~repodeps.core.index.RepositoryIndex` snapshot.

        Keyword arguments are forwarded to the index constructor.
        """
        from repodeps.core.index import RepositoryIndex

        return RepositoryIndex(self, **kwargs)

    def __repr__(self) -> str:
        return f"Repository(name={self.name!r}, packages={len(self)})"


def _suffix(source_name: Optional[str]) -> str:
    return f" from {source_name}" if source_name else ""
