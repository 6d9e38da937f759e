"""
Core functionality exports for repodeps.

This module provides convenient access to the core subsystems of repodeps.
Importing from here keeps user-facing imports clean and stable:

    from repodeps.core import Repository, DependencyResolver

Data flows one way: raw index bytes go through :class:`RepositoryParser`
into a :class:`Repository`, a :class:`RepositoryIndex` is built once from
it, and :class:`DependencyResolver` answers queries against the index.
"""

from __future__ import annotations

from repodeps.core.parser import ParseDiagnostic, ParseResult, RepositoryParser
from repodeps.core.repository import Repository
from repodeps.core.index import RepositoryIndex, select_highest, select_lowest
from repodeps.core.resolver import DependencyResolver, ResolutionResult
from repodeps.core.description import (
    find_description_files,
    pinned_reference,
    read_package_dirs,
)
from repodeps.core.fetcher import (
    RepositoryFetcher,
    packages_index_url,
    repository_name_from_url,
)

__all__ = [
    "RepositoryParser",
    "ParseResult",
    "ParseDiagnostic",
    "Repository",
    "RepositoryIndex",
    "select_highest",
    "select_lowest",
    "DependencyResolver",
    "ResolutionResult",
    "find_description_files",
    "read_package_dirs",
    "pinned_reference",
    "RepositoryFetcher",
    "packages_index_url",
    "repository_name_from_url",
]
