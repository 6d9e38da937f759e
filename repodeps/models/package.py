"""
Package data models for repodeps.

This module defines :class:`NameAndVersion`, a dependency reference (a name
with an optional version constraint), and :class:`Package`, one stanza of
a repository index after parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from repodeps.exceptions import InvalidConstraintError
from repodeps.models.version import Version, VersionConstraint, constraint_accepts

# ASCII letter first; no whitespace, parentheses or commas
_NAME = r"[A-Za-z][^\s(),]*"
_NAME_RE = re.compile(_NAME)

# name, then an optional parenthesized constraint
_ENTRY = re.compile(rf"^({_NAME})\s*(\(.*\))?$")


def is_valid_package_name(name: str) -> bool:
    """Return True if ``name`` is usable as a package or dependency name."""
    return _NAME_RE.fullmatch(name) is not None


@dataclass(frozen=True)
class NameAndVersion:
    """A package name with an optional version constraint.

    Used both for dependency entries inside a :class:`Package` and for the
    roots of a resolution query. Names are compared exactly; no case
    folding or other normalization is applied. Instances are hashable and
    serve as the de-duplication key of resolution results.

    Args:
        name: Package name (non-empty).
        constraint: Version constraint, or ``None`` for any version.
    """

    name: str
    constraint: Optional[VersionConstraint] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidConstraintError("Package name must not be empty")

    @classmethod
    def parse(cls, entry: str) -> "NameAndVersion":
        """Parse one dependency entry such as ``"Rcpp (>= 1.0.5)"``.

        Args:
            entry: Entry text; surrounding whitespace is ignored.

        Returns:
            The parsed reference.

        Raises:
            InvalidConstraintError: The name is missing or does not start
                with a letter, or the parenthesized part is malformed.
            InvalidVersionError: The constraint's version is malformed.

        Example::

            >>> NameAndVersion.parse("x(= 1)")
            NameAndVersion(name='x', constraint=VersionConstraint(...))
        """
        text = entry.strip()
        match = _ENTRY.match(text)
        if not match:
            raise InvalidConstraintError(
                f"Invalid dependency entry: {entry!r}",
                line_content=entry,
            )

        name, constraint_text = match.groups()
        constraint = VersionConstraint.parse(constraint_text) if constraint_text else None
        return cls(name, constraint)

    def accepts(self, version: Version) -> bool:
        """Return True if ``version`` satisfies this reference's constraint."""
        return constraint_accepts(self.constraint, version)

    def to_display_string(self) -> str:
        """Return ``name`` or ``name (op a.b.c.d)``."""
        if self.constraint is None:
            return self.name
        return f"{self.name} ({self.constraint})"

    def to_json(self) -> Dict[str, Optional[str]]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "operator": str(self.constraint.operator) if self.constraint else None,
            "version": str(self.constraint.version) if self.constraint else None,
        }

    def __str__(self) -> str:
        return self.to_display_string()


@dataclass
class Package:
    """
    A single package record from a repository index.

    Attributes:
        name: Package name, exactly as written in the stanza.
        version: Fully resolved package version.
        dependencies: Ordered dependency references collected from every
            configured dependency field, in stanza order.
        repository: Name of the repository the record was read from.
    """

    name: str
    version: Version = field(default_factory=Version)
    dependencies: Tuple[NameAndVersion, ...] = ()
    repository: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidConstraintError("Package name must not be empty")
        self.dependencies = tuple(self.dependencies)

    def has_dependencies(self) -> bool:
        """Return True if the package declares at least one dependency."""
        return bool(self.dependencies)

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "version": str(self.version),
            "repository": self.repository,
            "dependencies": [dep.to_json() for dep in self.dependencies],
        }

    def __str__(self) -> str:
        return f"{self.name} {self.version}"
