"""
Version and version-constraint models for repodeps.

Package versions in CRAN-style repositories are short numeric sequences
such as ``1.0``, ``1.0-7`` or ``3.2.1.9000``; a handful of legacy packages
use svn revisions written as ``r1234``. All of them are normalized to a
fixed four-component :class:`Version` so that ordering is a plain tuple
comparison.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, NamedTuple, Optional

from repodeps.exceptions import InvalidConstraintError, InvalidVersionError

# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

_COMPONENT_COUNT = 4

_NUMERIC_VERSION = re.compile(r"^\d+(?:[.-]\d+){0,3}$")
_SVN_VERSION = re.compile(r"^r(\d+)$")


class Version(NamedTuple):
    """A fully resolved ``major.minor.patch.rev`` version.

    Ordering and equality are those of the underlying tuple, which gives
    the lexicographic (major first) total order required for constraint
    evaluation.

    Example::

        >>> Version.parse("1.0-7")
        Version(major=1, minor=0, patch=7, rev=0)
        >>> Version.parse("2.1") > Version.parse("2.0.9.9")
        True
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    rev: int = 0

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse a version string, padding missing components with zero.

        Args:
            text: Version string (``"1"``, ``"1.2-3"``, ``"r1234"``).

        Returns:
            The parsed :class:`Version`.

        Raises:
            InvalidVersionError: The string is empty, has more than four
                components or contains anything but digits and separators.
        """
        value = text.strip()

        svn = _SVN_VERSION.match(value)
        if svn:
            return cls(int(svn.group(1)))

        if not _NUMERIC_VERSION.match(value):
            raise InvalidVersionError(
                f"Invalid version: {text!r}",
                line_content=text,
            )

        parts = [int(part) for part in re.split(r"[.-]", value)]
        parts.extend([0] * (_COMPONENT_COUNT - len(parts)))
        return cls(*parts)

    def compare(self, other: "Version") -> int:
        """Return ``-1``, ``0`` or ``1`` as ``self`` is lower, equal or higher."""
        if self < other:
            return -1
        if self > other:
            return 1
        return 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}.{self.rev}"


# ---------------------------------------------------------------------------
# Operators and constraints
# ---------------------------------------------------------------------------


class Operator(Enum):
    """Relational operator of a :class:`VersionConstraint`."""

    LT = "<"
    LTE = "<="
    EQ = "=="
    GTE = ">="
    GT = ">"

    @classmethod
    def parse(cls, token: str) -> "Operator":
        """Parse a textual operator; ``=`` and ``==`` are equivalent.

        Raises:
            InvalidConstraintError: ``token`` is not a known operator.
        """
        try:
            return _OPERATOR_TOKENS[token.strip()]
        except KeyError:
            raise InvalidConstraintError(
                f"Unknown version operator: {token!r}",
                line_content=token,
            ) from None

    def evaluate(self, comparison: int) -> bool:
        """Apply the operator to a :meth:`Version.compare` result."""
        if self is Operator.LT:
            return comparison < 0
        if self is Operator.LTE:
            return comparison <= 0
        if self is Operator.EQ:
            return comparison == 0
        if self is Operator.GTE:
            return comparison >= 0
        return comparison > 0

    def __str__(self) -> str:
        return self.value


_OPERATOR_TOKENS: Dict[str, Operator] = {
    "<": Operator.LT,
    "<=": Operator.LTE,
    "=": Operator.EQ,
    "==": Operator.EQ,
    ">=": Operator.GTE,
    ">": Operator.GT,
}

# operator followed by the version, optionally wrapped in parentheses
_CONSTRAINT = re.compile(r"^\(?\s*(<=|>=|==|=|<|>)\s*([^\s()]+)\s*\)?$")


class VersionConstraint(NamedTuple):
    """An operator applied to a reference version.

    Example::

        >>> c = VersionConstraint.parse("(>= 3.2)")
        >>> c.satisfied_by(Version.parse("3.2.1"))
        True
    """

    operator: Operator
    version: Version

    @classmethod
    def parse(cls, text: str) -> "VersionConstraint":
        """Parse ``">= 1.2"`` or ``"(>= 1.2)"``.

        Raises:
            InvalidConstraintError: The operator is missing or unknown.
            InvalidVersionError: The version part is malformed.
        """
        match = _CONSTRAINT.match(text.strip())
        if not match:
            raise InvalidConstraintError(
                f"Invalid version constraint: {text!r}",
                line_content=text,
            )
        operator, version = match.groups()
        return cls(Operator.parse(operator), Version.parse(version))

    def satisfied_by(self, candidate: Version) -> bool:
        """Return True if ``candidate`` meets this constraint."""
        return self.operator.evaluate(candidate.compare(self.version))

    def __str__(self) -> str:
        return f"{self.operator} {self.version}"


def constraint_accepts(
    constraint: Optional[VersionConstraint],
    candidate: Version,
) -> bool:
    """Evaluate an optional constraint; ``None`` accepts every version."""
    return constraint is None or constraint.satisfied_by(candidate)
