"""
Unified data model exports for repodeps.

This module re-exports all core data models to provide a stable and
convenient public API. Users can import models directly from
``repodeps.models`` instead of individual submodules.

Example:
    >>> from repodeps.models import Package, NameAndVersion, Version
"""

from __future__ import annotations

from repodeps.models.package import NameAndVersion, Package, is_valid_package_name
from repodeps.models.version import (
    Operator,
    Version,
    VersionConstraint,
    constraint_accepts,
)

__all__ = [
    "NameAndVersion",
    "Operator",
    "Package",
    "Version",
    "VersionConstraint",
    "constraint_accepts",
    "is_valid_package_name",
]
