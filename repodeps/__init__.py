"""
repodeps: unsatisfied-dependency checker for R package repositories

repodeps reads the ``PACKAGES`` index of CRAN-like repositories, builds a
lookup index over every package version they publish, and reports which
dependency constraints of a package (followed transitively) cannot be met
by any package in those repositories.

Features include:
    • Tolerant parser for DCF package indexes (plain or gzip-compressed)
    • Multiple versions per package with highest-version matching
    • Transitive, cycle-safe unsatisfied-dependency resolution
    • Concurrent index download from configured repositories
    • Table, simple and JSON reports for CI use

Library usage::

    from repodeps import DependencyResolver, Repository

    with Repository("CRAN") as repo:
        repo.read(data)
        with repo.create_index() as index:
            result = DependencyResolver(index).resolve("ggplot2")
"""

from __future__ import annotations

from repodeps.__version__ import __version__
from repodeps.core import (
    DependencyResolver,
    Repository,
    RepositoryIndex,
    RepositoryParser,
    ResolutionResult,
)
from repodeps.models import NameAndVersion, Package, Version, VersionConstraint

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "repodeps Contributors"
__license__ = "Apache-2.0"
__description__ = "Find unsatisfiable dependencies in R package repositories."

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "__version__",
    "DependencyResolver",
    "NameAndVersion",
    "Package",
    "Repository",
    "RepositoryIndex",
    "RepositoryParser",
    "ResolutionResult",
    "Version",
    "VersionConstraint",
]
