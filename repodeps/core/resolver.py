"""Transitive unsatisfied-dependency resolution for repodeps.

Starting from one or more root references, :class:`DependencyResolver`
walks the dependency graph implied by a
:class:`~repodeps.core.index.RepositoryIndex` and collects every
dependency reference that no indexed package satisfies.

The walk is a breadth-first closure over package names:

1. A FIFO work queue is seeded with the roots.
2. Each reference is looked up with :meth:`RepositoryIndex.best_match`.
3. No match: the reference is reported as unsatisfied and not expanded.
4. A match whose name has not been visited yet: the name is marked
   visited and the matched package's dependencies are queued.
5. A match whose name was already visited: the reference was still
   checked on its own (step 2), but the package is not expanded again.
   This keeps cyclic graphs finite while catching a stricter constraint
   met later in the walk.

Results are de-duplicated by ``(name, constraint)`` and kept in the order
they were first discovered.

Typical usage::

    resolver = DependencyResolver(index, ignored_packages=BASE_PACKAGES)
    result = resolver.resolve("ggplot2")

    if result is None:
        print("ggplot2 is not in the repository")
    elif not result.has_unsatisfied():
        print("all dependencies satisfied")
    else:
        for entry in result:
            print(entry)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import (
    Any,
    Collection,
    Deque,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    Union,
)

from repodeps.core.index import RepositoryIndex
from repodeps.exceptions import PackageNotFoundError
from repodeps.models.package import NameAndVersion, Package
from repodeps.utils.logger import get_logger

logger = get_logger("resolver")

# Public API
__all__ = ["DependencyResolver", "ResolutionResult"]

RootRef = Union[str, NameAndVersion]


# ---------------------------------------------------------------------------
# Result model
# ---------------------------------------------------------------------------


@dataclass
class ResolutionResult:
    """Outcome of one resolution query.

    The result is independent of the index it came from and can outlive it.

    Attributes:
        roots: The references the query started from.
        unsatisfied: De-duplicated unsatisfied references, in discovery order.
        required_by: For each unsatisfied reference, the name of the package
            that first declared it (``None`` for an unmatched root).
        resolved: Packages matched and expanded during the walk, in visit
            order.
    """

    roots: Tuple[NameAndVersion, ...] = ()
    unsatisfied: List[NameAndVersion] = field(default_factory=list)
    required_by: Dict[NameAndVersion, Optional[str]] = field(default_factory=dict)
    resolved: List[Package] = field(default_factory=list)

    def has_unsatisfied(self) -> bool:
        """Return True if at least one dependency could not be satisfied."""
        return bool(self.unsatisfied)

    def add_unsatisfied(self, ref: NameAndVersion, parent: Optional[str]) -> bool:
        """Record ``ref`` unless already present. Returns True if added."""
        if ref in self.required_by:
            return False
        self.required_by[ref] = parent
        self.unsatisfied.append(ref)
        return True

    def __len__(self) -> int:
        return len(self.unsatisfied)

    def __iter__(self) -> Iterator[NameAndVersion]:
        return iter(self.unsatisfied)

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "roots": [root.to_json() for root in self.roots],
            "unsatisfied": [
                dict(ref.to_json(), required_by=self.required_by.get(ref))
                for ref in self.unsatisfied
            ],
            "resolved": [
                {"name": package.name, "version": str(package.version)}
                for package in self.resolved
            ],
        }


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class DependencyResolver:
    """Closure walker reporting unsatisfiable dependency references.

    Queries are read-only with respect to the index, so several resolvers
    may share one index.

    Args:
        index: Index to resolve against.
        ignored_packages: Dependency names never checked nor expanded,
            typically the R base and recommended packages. Roots are
            always looked up.
    """

    def __init__(
        self,
        index: RepositoryIndex,
        *,
        ignored_packages: Collection[str] = frozenset(),
    ) -> None:
        self.index = index
        self.ignored_packages: FrozenSet[str] = frozenset(ignored_packages)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, root: RootRef) -> Optional[ResolutionResult]:
        """Resolve a single root package.

        Args:
            root: Package name, or a reference with an optional constraint.

        Returns:
            ``None`` if no indexed package matches the root (package not
            found); otherwise a result with zero or more unsatisfied
            entries.
        """
        ref = _as_ref(root)
        if self.index.find(ref) is None:
            logger.info("Root package %s not found", ref)
            return None
        return self.resolve_many([ref])

    def require(self, root: RootRef) -> ResolutionResult:
        """Resolve a single root that must exist.

        Raises:
            PackageNotFoundError: No indexed package matches the root.
        """
        result = self.resolve(root)
        if result is None:
            ref = _as_ref(root)
            raise PackageNotFoundError(
                f"Package not found: {ref}",
                package_name=ref.name,
            )
        return result

    def resolve_many(self, roots: Iterable[RootRef]) -> ResolutionResult:
        """Resolve several roots in one pass.

        The visited set is shared across roots, so common subtrees are
        expanded once and a shared unsatisfied dependency is reported once.
        Roots without a match are reported as unsatisfied themselves.
        """
        refs = tuple(_as_ref(root) for root in roots)
        result = ResolutionResult(roots=refs)

        visited: Set[str] = set()
        queue: Deque[Tuple[NameAndVersion, Optional[str]]] = deque(
            (ref, None) for ref in refs
        )

        while queue:
            ref, parent = queue.popleft()

            # roots are never ignored
            if parent is not None and ref.name in self.ignored_packages:
                continue

            match = self.index.find(ref)
            if match is None:
                if result.add_unsatisfied(ref, parent):
                    logger.debug(
                        "Unsatisfied: %s (required by %s)",
                        ref,
                        parent or "<root>",
                    )
                continue

            if match.name in visited:
                continue

            visited.add(match.name)
            result.resolved.append(match)
            queue.extend((dep, match.name) for dep in match.dependencies)

        logger.debug(
            "Resolved %d root(s): %d package(s) visited, %d unsatisfied",
            len(refs),
            len(visited),
            len(result.unsatisfied),
        )
        return result


def _as_ref(root: RootRef) -> NameAndVersion:
    if isinstance(root, NameAndVersion):
        return root
    return NameAndVersion(root)
