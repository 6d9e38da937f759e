"""Configuration file loader for repodeps.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``repodeps.toml`` — settings under ``[repodeps]`` table
- ``pyproject.toml`` — settings under ``[tool.repodeps]`` table

Discovery order:

1. Explicit path from ``--config`` or ``REPODEPS_CONFIG``
2. ``repodeps.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.repodeps]`` section

Configuration precedence: defaults < config file < CLI args.

Typical usage::

    config = load_config()  # Auto-discover
    config = load_config(Path("custom.toml"))  # Explicit path

Example (``repodeps.toml``)::

    [repodeps]
    allow_missing_version = false
    dependency_fields = ["Depends", "Imports", "LinkingTo"]
    ignore_recommended_packages = false

    [[repodeps.repositories]]
    name = "CRAN"
    url = "https://cloud.r-project.org"
"""

from __future__ import annotations


import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Set
from dataclasses import dataclass, field

from repodeps.exceptions import ConfigError
from repodeps.utils.logger import get_logger
from repodeps.constants import (
    BASE_PACKAGES,
    DEFAULT_ALLOW_MISSING_VERSION,
    DEFAULT_DEPENDENCY_FIELDS,
    DEFAULT_IGNORE_BASE_PACKAGES,
    DEFAULT_IGNORE_RECOMMENDED_PACKAGES,
    RECOMMENDED_PACKAGES,
)

logger = get_logger("config")


@dataclass
class RepositoryConfig:
    """A named remote repository.

    Attributes:
        name: Short name, also used as the download sub-directory.
        url: Base URL of a CRAN-like repository.
    """

    name: str
    url: str


@dataclass
class RepoDepsConfig:
    """Parsed and validated repodeps configuration.

    Contains settings from ``repodeps.toml`` or ``pyproject.toml``.
    All fields have defaults, so empty config files are valid.

    Attributes:
        allow_missing_version: Accept index stanzas without a ``Version``
            field as version ``0.0.0.0`` instead of dropping them.
        dependency_fields: Stanza fields whose entries are resolved.
        ignore_base_packages: Skip dependencies on packages shipped with R.
        ignore_recommended_packages: Skip dependencies on R's recommended
            packages.
        repositories: Remote repositories used when none are given on the
            command line.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    allow_missing_version: bool = DEFAULT_ALLOW_MISSING_VERSION
    dependency_fields: List[str] = field(
        default_factory=lambda: list(DEFAULT_DEPENDENCY_FIELDS)
    )
    ignore_base_packages: bool = DEFAULT_IGNORE_BASE_PACKAGES
    ignore_recommended_packages: bool = DEFAULT_IGNORE_RECOMMENDED_PACKAGES
    repositories: List[RepositoryConfig] = field(default_factory=list)

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging.

        Excludes ``source_path`` metadata.

        Returns:
            Dictionary of configuration option names to values.
        """
        return {
            "allow_missing_version": self.allow_missing_version,
            "dependency_fields": list(self.dependency_fields),
            "ignore_base_packages": self.ignore_base_packages,
            "ignore_recommended_packages": self.ignore_recommended_packages,
            "repositories": [repo.name for repo in self.repositories],
        }


# ---------------------------------------------------------------------------
# R package sets
# ---------------------------------------------------------------------------


def is_base_package(name: str) -> bool:
    """Return True if ``name`` ships with every R installation."""
    return name in BASE_PACKAGES


def is_recommended_package(name: str) -> bool:
    """Return True if ``name`` is one of R's recommended packages."""
    return name in RECOMMENDED_PACKAGES


def ignored_package_names(config: RepoDepsConfig) -> FrozenSet[str]:
    """Return the dependency names the resolver should skip for ``config``."""
    names: Set[str] = set()
    if config.ignore_base_packages:
        names |= BASE_PACKAGES
    if config.ignore_recommended_packages:
        names |= RECOMMENDED_PACKAGES
    return frozenset(names)


# ---------------------------------------------------------------------------
# Discovery and loading
# ---------------------------------------------------------------------------


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Search order:

    1. ``explicit_path`` (from ``--config`` or ``REPODEPS_CONFIG``)
    2. ``repodeps.toml`` in current directory
    3. ``pyproject.toml`` with ``[tool.repodeps]`` section in current directory

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    repodeps_toml = cwd / "repodeps.toml"
    if repodeps_toml.is_file():
        logger.debug("Found repodeps.toml: %s", repodeps_toml)
        return repodeps_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_repodeps_section(pyproject_toml):
        logger.debug("Found [tool.repodeps] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_repodeps_section(path: Path) -> bool:
    """Check if pyproject.toml contains a ``[tool.repodeps]`` section.

    An unreadable or invalid pyproject.toml counts as "no section".
    """
    try:
        raw = _read_toml(path)
    except ConfigError as exc:
        logger.debug("Ignoring %s: %s", path, exc)
        return False
    return "repodeps" in raw.get("tool", {})


def load_config(config_path: Optional[Path] = None) -> RepoDepsConfig:
    """Load and validate repodeps configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`RepoDepsConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return RepoDepsConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get("repodeps", {})
    else:
        section = raw.get("repodeps", {})

    if not section:
        logger.debug("Config file found but no repodeps section, using defaults")
        return RepoDepsConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_BOOLEAN_OPTIONS = (
    "allow_missing_version",
    "ignore_base_packages",
    "ignore_recommended_packages",
)

_KNOWN_OPTIONS = frozenset(_BOOLEAN_OPTIONS) | {"dependency_fields", "repositories"}


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> RepoDepsConfig:
    """Parse and validate the ``[repodeps]`` or ``[tool.repodeps]`` table.

    Rejects unknown keys and type mismatches.

    Raises:
        ConfigError: Unknown keys or incorrect types (e.g., string for boolean).
    """
    config = RepoDepsConfig()

    unknown = set(section.keys()) - _KNOWN_OPTIONS
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    for option in _BOOLEAN_OPTIONS:
        if option not in section:
            continue
        val = section[option]
        if not isinstance(val, bool):
            raise ConfigError(
                f"{option} must be a boolean, got {type(val).__name__}",
                config_path=config_path,
                option=option,
            )
        setattr(config, option, val)

    if "dependency_fields" in section:
        val = section["dependency_fields"]
        if not isinstance(val, list) or not all(
            isinstance(item, str) and item for item in val
        ):
            raise ConfigError(
                "dependency_fields must be a list of non-empty strings",
                config_path=config_path,
                option="dependency_fields",
            )
        config.dependency_fields = list(val)

    if "repositories" in section:
        config.repositories = _parse_repositories(
            section["repositories"],
            config_path=config_path,
        )

    return config


def _parse_repositories(value: Any, *, config_path: str) -> List[RepositoryConfig]:
    """Validate the ``repositories`` array of tables."""
    if not isinstance(value, list):
        raise ConfigError(
            f"repositories must be an array of tables, got {type(value).__name__}",
            config_path=config_path,
            option="repositories",
        )

    repositories: List[RepositoryConfig] = []
    seen: Set[str] = set()

    for position, entry in enumerate(value, start=1):
        if not isinstance(entry, dict):
            raise ConfigError(
                f"repositories entry {position} must be a table",
                config_path=config_path,
                option="repositories",
            )

        unknown = set(entry.keys()) - {"name", "url"}
        if unknown:
            raise ConfigError(
                f"Unknown keys in repositories entry {position}: "
                f"{', '.join(sorted(unknown))}",
                config_path=config_path,
                option="repositories",
            )

        name = entry.get("name")
        url = entry.get("url")
        if not isinstance(name, str) or not name:
            raise ConfigError(
                f"repositories entry {position} needs a non-empty 'name'",
                config_path=config_path,
                option="repositories",
            )
        if not isinstance(url, str) or not url:
            raise ConfigError(
                f"repositories entry {position} needs a non-empty 'url'",
                config_path=config_path,
                option="repositories",
            )
        if name in seen:
            raise ConfigError(
                f"Duplicate repository name: {name}",
                config_path=config_path,
                option="repositories",
            )

        seen.add(name)
        repositories.append(RepositoryConfig(name=name, url=url))

    return repositories
