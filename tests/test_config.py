from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from repodeps.config import (
    RepoDepsConfig,
    RepositoryConfig,
    discover_config_file,
    ignored_package_names,
    is_base_package,
    is_recommended_package,
    load_config,
    _parse_section,
    _pyproject_has_repodeps_section,
    _read_toml,
)
from repodeps.exceptions import ConfigError


@pytest.mark.unit
class TestRepoDepsConfig:
    """Tests for RepoDepsConfig dataclass."""

    def test_default_initialization(self) -> None:
        """Test RepoDepsConfig initializes with correct defaults."""
        config = RepoDepsConfig()

        assert config.allow_missing_version is False
        assert config.dependency_fields == ["Depends", "Imports", "LinkingTo"]
        assert config.ignore_base_packages is True
        assert config.ignore_recommended_packages is True
        assert config.repositories == []
        assert config.source_path is None

    def test_dependency_fields_not_shared(self) -> None:
        """Test each instance gets its own field list."""
        first = RepoDepsConfig()
        first.dependency_fields.append("Suggests")

        assert RepoDepsConfig().dependency_fields == ["Depends", "Imports", "LinkingTo"]

    def test_to_log_dict(self) -> None:
        """Test to_log_dict returns configuration without metadata."""
        config = RepoDepsConfig(
            repositories=[RepositoryConfig("CRAN", "https://cloud.r-project.org")],
            source_path=Path("/test/path.toml"),
        )

        result = config.to_log_dict()

        assert result == {
            "allow_missing_version": False,
            "dependency_fields": ["Depends", "Imports", "LinkingTo"],
            "ignore_base_packages": True,
            "ignore_recommended_packages": True,
            "repositories": ["CRAN"],
        }
        assert "source_path" not in result


@pytest.mark.unit
class TestPackageSets:
    """Tests for base and recommended package helpers."""

    def test_base_package(self) -> None:
        """Test packages shipped with R are recognized."""
        assert is_base_package("methods")
        assert is_base_package("R")
        assert not is_base_package("ggplot2")

    def test_recommended_package(self) -> None:
        """Test recommended packages are recognized."""
        assert is_recommended_package("MASS")
        assert not is_recommended_package("methods")

    def test_ignored_names_default(self) -> None:
        """Test both sets are ignored by default."""
        names = ignored_package_names(RepoDepsConfig())

        assert {"methods", "MASS"} <= names

    def test_ignored_names_disabled(self) -> None:
        """Test each set can be switched off."""
        config = RepoDepsConfig(ignore_recommended_packages=False)
        assert "MASS" not in ignored_package_names(config)
        assert "utils" in ignored_package_names(config)

        config = RepoDepsConfig(ignore_base_packages=False, ignore_recommended_packages=False)
        assert ignored_package_names(config) == frozenset()


@pytest.mark.unit
class TestDiscoverConfigFile:
    """Tests for discover_config_file function."""

    def test_explicit_path_priority(self, tmp_path: Path) -> None:
        """Test explicit path is used when provided and exists."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text("[repodeps]\n", encoding="utf-8")
        (tmp_path / "repodeps.toml").write_text("[repodeps]\n", encoding="utf-8")

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            result = discover_config_file(config_file)

        assert result == config_file.resolve()

    def test_explicit_path_not_found_raises_error(self, tmp_path: Path) -> None:
        """Test ConfigError raised when explicit path doesn't exist."""
        with pytest.raises(ConfigError) as exc_info:
            discover_config_file(tmp_path / "nonexistent.toml")

        assert "not found" in str(exc_info.value).lower()

    def test_discovers_repodeps_toml(self, tmp_path: Path) -> None:
        """Test discovers repodeps.toml in current directory."""
        config_file = tmp_path / "repodeps.toml"
        config_file.write_text("[repodeps]\n", encoding="utf-8")

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == config_file

    def test_discovers_pyproject_toml_with_section(self, tmp_path: Path) -> None:
        """Test discovers pyproject.toml with [tool.repodeps] section."""
        config_file = tmp_path / "pyproject.toml"
        config_file.write_text(
            "[tool.repodeps]\nallow_missing_version = true\n",
            encoding="utf-8",
        )

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == config_file

    def test_ignores_pyproject_toml_without_section(self, tmp_path: Path) -> None:
        """Test ignores pyproject.toml without [tool.repodeps] section."""
        (tmp_path / "pyproject.toml").write_text("[tool.other]\nkey = 'value'\n", encoding="utf-8")

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() is None

    def test_precedence_order(self, tmp_path: Path) -> None:
        """Test discovery precedence: repodeps.toml before pyproject.toml."""
        repodeps_toml = tmp_path / "repodeps.toml"
        repodeps_toml.write_text("[repodeps]\n", encoding="utf-8")
        (tmp_path / "pyproject.toml").write_text("[tool.repodeps]\n", encoding="utf-8")

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == repodeps_toml


@pytest.mark.unit
class TestPyprojectHasRepodepsSection:
    """Tests for _pyproject_has_repodeps_section helper."""

    def test_returns_true_when_section_exists(self, tmp_path: Path) -> None:
        """Test returns True when [tool.repodeps] section exists."""
        config_file = tmp_path / "pyproject.toml"
        config_file.write_text("[tool.repodeps]\n", encoding="utf-8")

        assert _pyproject_has_repodeps_section(config_file) is True

    def test_returns_false_on_errors(self, tmp_path: Path) -> None:
        """Test returns False gracefully on parse errors or missing files."""
        config_file = tmp_path / "pyproject.toml"
        config_file.write_text("invalid ][[", encoding="utf-8")

        assert _pyproject_has_repodeps_section(config_file) is False
        assert _pyproject_has_repodeps_section(tmp_path / "nope.toml") is False


@pytest.mark.unit
class TestReadToml:
    """Tests for _read_toml helper."""

    def test_raises_error_on_invalid_toml(self, tmp_path: Path) -> None:
        """Test raises ConfigError when TOML is invalid."""
        toml_file = tmp_path / "invalid.toml"
        toml_file.write_text("invalid ][[ toml", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            _read_toml(toml_file)

    def test_raises_error_when_file_not_found(self, tmp_path: Path) -> None:
        """Test raises ConfigError when file doesn't exist."""
        with pytest.raises(ConfigError, match="Cannot read"):
            _read_toml(tmp_path / "nonexistent.toml")


@pytest.mark.unit
class TestParseSection:
    """Tests for _parse_section configuration validator."""

    def test_parses_empty_section(self) -> None:
        """Test parsing empty section returns defaults."""
        assert _parse_section({}, config_path="test.toml") == RepoDepsConfig()

    def test_parses_all_options(self) -> None:
        """Test parsing all configuration options."""
        section = {
            "allow_missing_version": True,
            "dependency_fields": ["Depends"],
            "ignore_base_packages": False,
            "ignore_recommended_packages": False,
            "repositories": [{"name": "CRAN", "url": "https://cloud.r-project.org"}],
        }

        result = _parse_section(section, config_path="test.toml")

        assert result.allow_missing_version is True
        assert result.dependency_fields == ["Depends"]
        assert result.ignore_base_packages is False
        assert result.ignore_recommended_packages is False
        assert result.repositories == [
            RepositoryConfig(name="CRAN", url="https://cloud.r-project.org")
        ]

    def test_raises_error_on_unknown_keys(self) -> None:
        """Test raises ConfigError when unknown keys are present."""
        with pytest.raises(ConfigError) as exc_info:
            _parse_section({"unknown_key": "value"}, config_path="test.toml")

        assert "Unknown configuration keys" in str(exc_info.value)
        assert "unknown_key" in str(exc_info.value)

    def test_raises_error_on_wrong_boolean_type(self) -> None:
        """Test raises ConfigError when a boolean option has wrong type."""
        with pytest.raises(ConfigError) as exc_info:
            _parse_section({"allow_missing_version": "true"}, config_path="test.toml")

        assert "allow_missing_version must be a boolean" in str(exc_info.value)
        assert exc_info.value.option == "allow_missing_version"

    @pytest.mark.parametrize("value", ["Depends", ["Depends", ""], [1]])
    def test_raises_error_on_bad_dependency_fields(self, value) -> None:
        """Test dependency_fields must be a list of non-empty strings."""
        with pytest.raises(ConfigError, match="dependency_fields"):
            _parse_section({"dependency_fields": value}, config_path="test.toml")

    @pytest.mark.parametrize(
        "value, message",
        [
            ({"name": "CRAN"}, "array of tables"),
            (["CRAN"], "must be a table"),
            ([{"name": "CRAN"}], "non-empty 'url'"),
            ([{"url": "https://x.org"}], "non-empty 'name'"),
            ([{"name": "CRAN", "url": "https://x.org", "mirror": 1}], "Unknown keys"),
            (
                [
                    {"name": "CRAN", "url": "https://a.org"},
                    {"name": "CRAN", "url": "https://b.org"},
                ],
                "Duplicate repository name",
            ),
        ],
        ids=["not-array", "not-table", "no-url", "no-name", "unknown-key", "duplicate"],
    )
    def test_raises_error_on_bad_repositories(self, value, message: str) -> None:
        """Test repository entries are validated."""
        with pytest.raises(ConfigError, match=message):
            _parse_section({"repositories": value}, config_path="test.toml")


@pytest.mark.unit
class TestLoadConfig:
    """Tests for load_config main function."""

    def test_returns_defaults_when_no_config_found(self, tmp_path: Path) -> None:
        """Test returns defaults when no configuration file exists."""
        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            result = load_config()

        assert result == RepoDepsConfig()
        assert result.source_path is None

    def test_loads_repodeps_toml(self, tmp_path: Path) -> None:
        """Test loads configuration from repodeps.toml."""
        config_file = tmp_path / "repodeps.toml"
        config_file.write_text(
            "[repodeps]\nallow_missing_version = true\n\n"
            "[[repodeps.repositories]]\n"
            'name = "CRAN"\n'
            'url = "https://cloud.r-project.org"\n',
            encoding="utf-8",
        )

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            result = load_config()

        assert result.allow_missing_version is True
        assert [repo.name for repo in result.repositories] == ["CRAN"]
        assert result.source_path == config_file

    def test_loads_pyproject_toml(self, tmp_path: Path) -> None:
        """Test loads configuration from pyproject.toml."""
        config_file = tmp_path / "pyproject.toml"
        config_file.write_text(
            "[tool.repodeps]\nignore_recommended_packages = false\n",
            encoding="utf-8",
        )

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            result = load_config()

        assert result.ignore_recommended_packages is False
        assert result.source_path == config_file

    def test_loads_explicit_config_path(self, tmp_path: Path) -> None:
        """Test loads configuration from explicitly specified path."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text("[repodeps]\nignore_base_packages = false\n", encoding="utf-8")

        result = load_config(config_file)

        assert result.ignore_base_packages is False
        assert result.source_path == config_file.resolve()

    def test_handles_empty_repodeps_section(self, tmp_path: Path) -> None:
        """Test handles empty [repodeps] section gracefully."""
        config_file = tmp_path / "repodeps.toml"
        config_file.write_text("[repodeps]\n", encoding="utf-8")

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            result = load_config()

        assert result.allow_missing_version is False
        assert result.source_path == config_file

    def test_raises_error_on_unknown_keys(self, tmp_path: Path) -> None:
        """Test raises ConfigError when config contains unknown keys."""
        (tmp_path / "repodeps.toml").write_text(
            "[repodeps]\nunknown_option = true\n",
            encoding="utf-8",
        )

        with patch("repodeps.config.Path.cwd", return_value=tmp_path):
            with pytest.raises(ConfigError, match="Unknown configuration keys"):
                load_config()
