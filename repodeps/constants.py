"""
Centralized constants for repodeps.

This module defines immutable configuration values used across repodeps,
including repository file conventions, network settings, the R base and
recommended package sets, and logging formats. All values are intended to
be treated as read-only.
"""

from typing import Final, FrozenSet, Sequence

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "repodeps/{version}"

# ---------------------------------------------------------------------------
# Repository layout
# ---------------------------------------------------------------------------

#: Path of the source package index relative to a CRAN-like repository URL.
PACKAGES_INDEX_PATH: Final[str] = "src/contrib/PACKAGES.gz"

#: File name used when saving a downloaded package index.
PACKAGES_INDEX_FILENAME: Final[str] = "PACKAGES.gz"

#: Magic number at the start of every gzip stream (RFC 1952).
GZIP_MAGIC: Final[bytes] = b"\x1f\x8b"

#: Metadata file at the root of every R source package.
DESCRIPTION_FILENAME: Final[str] = "DESCRIPTION"

# ---------------------------------------------------------------------------
# Stanza fields
# ---------------------------------------------------------------------------

#: Field holding the package name.
PACKAGE_FIELD: Final[str] = "Package"

#: Field holding the package version.
VERSION_FIELD: Final[str] = "Version"

#: Fields whose entries are followed during dependency resolution.
DEFAULT_DEPENDENCY_FIELDS: Final[Sequence[str]] = ("Depends", "Imports", "LinkingTo")

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

DEFAULT_ALLOW_MISSING_VERSION: Final[bool] = False
DEFAULT_IGNORE_BASE_PACKAGES: Final[bool] = True
DEFAULT_IGNORE_RECOMMENDED_PACKAGES: Final[bool] = True

# ---------------------------------------------------------------------------
# R package sets
# ---------------------------------------------------------------------------

#: Packages shipped with every R installation; dependencies on these are
#: not checked by default.
BASE_PACKAGES: Final[FrozenSet[str]] = frozenset(
    {
        "base",
        "compiler",
        "datasets",
        "graphics",
        "grDevices",
        "grid",
        "methods",
        "parallel",
        "splines",
        "stats",
        "stats4",
        "tcltk",
        "tools",
        "utils",
        "R",
    }
)

#: Recommended packages. Some installations lack them, but they are
#: excluded from checking by default as well.
RECOMMENDED_PACKAGES: Final[FrozenSet[str]] = frozenset(
    {
        "boot",
        "class",
        "MASS",
        "cluster",
        "codetools",
        "foreign",
        "KernSmooth",
        "lattice",
        "Matrix",
        "mgcv",
        "nlme",
        "nnet",
        "rpart",
        "spatial",
        "survival",
    }
)

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed size (in bytes) of a package index after decompression.
MAX_FILE_SIZE: Final[int] = 256 * 1024 * 1024  # 256 MB

#: Maximum allowed size (in bytes) of a source package DESCRIPTION file.
MAX_DESCRIPTION_SIZE: Final[int] = 128 * 1024

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
