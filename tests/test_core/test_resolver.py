"""Unit tests for repodeps.core.resolver module.

Test Coverage:
- Transitive closure through satisfied dependencies
- Unsatisfied constraints and missing packages
- Root-not-found signalling
- Cycle safety
- Revisit policy (independent evaluation of each constraint)
- Batch resolution with shared visited set and de-duplication
- Ignored package names
- Result serialization
"""

from __future__ import annotations

from typing import Iterable

import pytest

from repodeps.core.index import RepositoryIndex
from repodeps.core.repository import Repository
from repodeps.core.resolver import DependencyResolver, ResolutionResult
from repodeps.exceptions import PackageNotFoundError
from repodeps.models import NameAndVersion, Package, Version


def _pkg(name: str, version: str, deps: Iterable[str] = ()) -> Package:
    return Package(
        name,
        Version.parse(version),
        tuple(NameAndVersion.parse(dep) for dep in deps),
    )


def _resolver(*packages: Package, **kwargs) -> DependencyResolver:
    repo = Repository()
    for package in packages:
        repo.insert(package)
    return DependencyResolver(RepositoryIndex(repo), **kwargs)


@pytest.mark.unit
class TestResolveSingleRoot:
    """Tests for DependencyResolver.resolve."""

    def test_transitive_unsatisfied_constraint(self) -> None:
        """Test A -> B -> C (>= 2.0) with only C 1.0 available."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B"]),
            _pkg("B", "1.0", ["C (>= 2.0.0.0)"]),
            _pkg("C", "1.0"),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert result.unsatisfied == [NameAndVersion.parse("C (>= 2.0.0.0)")]
        assert result.required_by[result.unsatisfied[0]] == "B"

    def test_all_satisfied(self) -> None:
        """Test an empty result when every dependency is met."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B (>= 1.0)"]),
            _pkg("B", "1.5"),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert not result.has_unsatisfied()
        assert len(result) == 0
        assert [p.name for p in result.resolved] == ["A", "B"]

    def test_missing_dependency(self) -> None:
        """Test a dependency absent from the repository is reported."""
        resolver = _resolver(_pkg("A", "1.0", ["ghost"]))

        result = resolver.resolve("A")

        assert result is not None
        assert list(result) == [NameAndVersion("ghost")]

    def test_root_not_found_is_none(self) -> None:
        """Test an unknown root is distinct from an empty result."""
        resolver = _resolver(_pkg("A", "1.0"))

        assert resolver.resolve("nope") is None
        assert resolver.resolve("A") is not None

    def test_root_constraint_not_met_is_none(self) -> None:
        """Test a root whose constraint no version meets is not found."""
        resolver = _resolver(_pkg("A", "1.0"))

        assert resolver.resolve(NameAndVersion.parse("A (>= 2.0)")) is None

    def test_require_raises_for_unknown_root(self) -> None:
        """Test require() turns a missing root into PackageNotFoundError."""
        resolver = _resolver(_pkg("A", "1.0"))

        with pytest.raises(PackageNotFoundError) as exc_info:
            resolver.require(NameAndVersion.parse("A (> 1.0)"))

        assert exc_info.value.package_name == "A"
        assert resolver.require("A").unsatisfied == []

    def test_zero_dependencies(self) -> None:
        """Test a leaf package yields an empty result."""
        result = _resolver(_pkg("A", "1.0")).resolve("A")

        assert result is not None
        assert result.unsatisfied == []

    def test_unsatisfied_node_not_expanded(self) -> None:
        """Test dependencies of an unmatched version are not followed."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B (>= 2.0)"]),
            _pkg("B", "1.0", ["ghost"]),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert [ref.name for ref in result] == ["B"]

    def test_highest_version_expanded(self) -> None:
        """Test the best match (highest version) supplies the dependencies."""
        resolver = _resolver(
            _pkg("A", "1.0", ["old-dep"]),
            _pkg("A", "2.0", ["new-dep"]),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert [ref.name for ref in result] == ["new-dep"]

    def test_discovery_order(self) -> None:
        """Test results follow breadth-first discovery order."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B", "x1"]),
            _pkg("B", "1.0", ["x2"]),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert [ref.name for ref in result] == ["x1", "x2"]


@pytest.mark.unit
class TestCyclesAndRevisits:
    """Tests for cyclic graphs and revisited names."""

    def test_two_node_cycle_terminates(self) -> None:
        """Test A -> B -> A terminates with an empty result."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B (>= 1.0)"]),
            _pkg("B", "1.0", ["A (>= 1.0)"]),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert result.unsatisfied == []

    def test_self_dependency_terminates(self) -> None:
        """Test a package depending on itself."""
        result = _resolver(_pkg("A", "1.0", ["A"])).resolve("A")

        assert result is not None
        assert result.unsatisfied == []

    def test_revisit_with_stricter_constraint_reported(self) -> None:
        """Test a visited name is still checked under a new constraint."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B", "C"]),
            _pkg("B", "1.0"),
            _pkg("C", "1.0", ["B (>= 2.0)"]),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert result.unsatisfied == [NameAndVersion.parse("B (>= 2.0)")]
        assert result.required_by[result.unsatisfied[0]] == "C"

    def test_revisit_not_expanded_twice(self) -> None:
        """Test a name is expanded only once."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B", "C"]),
            _pkg("B", "1.0", ["D"]),
            _pkg("C", "1.0", ["B (>= 1.0)"]),
            _pkg("D", "1.0"),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert [p.name for p in result.resolved] == ["A", "B", "C", "D"]

    def test_same_entry_reported_once(self) -> None:
        """Test identical unsatisfied entries from several parents collapse."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B", "C"]),
            _pkg("B", "1.0", ["E (>= 2.0)"]),
            _pkg("C", "1.0", ["E (>= 2.0)"]),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert result.unsatisfied == [NameAndVersion.parse("E (>= 2.0)")]
        assert result.required_by[result.unsatisfied[0]] == "B"

    def test_distinct_constraints_both_reported(self) -> None:
        """Test entries differing only by constraint are kept apart."""
        resolver = _resolver(
            _pkg("A", "1.0", ["B", "C"]),
            _pkg("B", "1.0", ["E (>= 2.0)"]),
            _pkg("C", "1.0", ["E (>= 3.0)"]),
        )

        result = resolver.resolve("A")

        assert result is not None
        assert len(result) == 2


@pytest.mark.unit
class TestResolveMany:
    """Tests for batch resolution."""

    def test_shared_unsatisfied_reported_once(self) -> None:
        """Test roots A and D sharing missing E yield E once."""
        resolver = _resolver(
            _pkg("A", "1.0", ["E"]),
            _pkg("D", "1.0", ["E"]),
        )

        result = resolver.resolve_many(["A", "D"])

        assert result.unsatisfied == [NameAndVersion("E")]

    def test_unmatched_root_reported(self) -> None:
        """Test a batch root without a match is itself unsatisfied."""
        resolver = _resolver(_pkg("A", "1.0"))

        result = resolver.resolve_many([NameAndVersion("A"), NameAndVersion("Z")])

        assert result.unsatisfied == [NameAndVersion("Z")]
        assert result.required_by[NameAndVersion("Z")] is None

    def test_shared_subtree_expanded_once(self) -> None:
        """Test a common dependency is visited once across roots."""
        resolver = _resolver(
            _pkg("A", "1.0", ["S"]),
            _pkg("D", "1.0", ["S"]),
            _pkg("S", "1.0"),
        )

        result = resolver.resolve_many(["A", "D"])

        assert [p.name for p in result.resolved] == ["A", "D", "S"]
        assert result.roots == (NameAndVersion("A"), NameAndVersion("D"))

    def test_empty_roots(self) -> None:
        """Test no roots gives an empty result."""
        result = _resolver(_pkg("A", "1.0")).resolve_many([])

        assert result.unsatisfied == []
        assert result.roots == ()


@pytest.mark.unit
class TestIgnoredPackages:
    """Tests for ignored dependency names."""

    def test_ignored_dependency_skipped(self) -> None:
        """Test ignored names are neither reported nor expanded."""
        resolver = _resolver(
            _pkg("A", "1.0", ["R (>= 4.0)", "methods", "B"]),
            ignored_packages={"R", "methods"},
        )

        result = resolver.resolve("A")

        assert result is not None
        assert result.unsatisfied == [NameAndVersion("B")]

    def test_ignored_root_still_resolved(self) -> None:
        """Test ignoring applies to dependencies, not roots."""
        resolver = _resolver(
            _pkg("MASS", "7.3", ["ghost"]),
            ignored_packages={"MASS"},
        )

        result = resolver.resolve("MASS")

        assert result is not None
        assert result.unsatisfied == [NameAndVersion("ghost")]


@pytest.mark.unit
class TestResolutionResult:
    """Tests for ResolutionResult helpers."""

    def test_add_unsatisfied_deduplicates(self) -> None:
        """Test the first parent is kept for a duplicate entry."""
        result = ResolutionResult()
        ref = NameAndVersion("E")

        assert result.add_unsatisfied(ref, "B") is True
        assert result.add_unsatisfied(ref, "C") is False
        assert result.required_by[ref] == "B"
        assert len(result) == 1

    def test_to_json(self) -> None:
        """Test JSON serialization."""
        resolver = _resolver(_pkg("A", "1.0", ["C (>= 2.0)"]), _pkg("C", "1.0"))
        result = resolver.resolve("A")

        assert result is not None
        assert result.to_json() == {
            "roots": [{"name": "A", "operator": None, "version": None}],
            "unsatisfied": [
                {
                    "name": "C",
                    "operator": ">=",
                    "version": "2.0.0.0",
                    "required_by": "A",
                }
            ],
            "resolved": [{"name": "A", "version": "1.0.0.0"}],
        }
