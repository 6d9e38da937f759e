from __future__ import annotations

from pathlib import Path

import click
import pytest

from repodeps.config import RepoDepsConfig
from repodeps.context import RepoDepsContext, pass_context


@pytest.mark.unit
class TestRepoDepsContext:
    """Tests for RepoDepsContext class."""

    def test_default_initialization(self) -> None:
        """Test RepoDepsContext initializes with correct default values."""
        ctx = RepoDepsContext()

        assert ctx.config_path is None
        assert ctx.verbose == 0
        assert ctx.color is True
        assert ctx.config is None

    def test_get_config_defaults(self) -> None:
        """Test get_config falls back to default configuration once."""
        ctx = RepoDepsContext()

        config = ctx.get_config()

        assert config == RepoDepsConfig()
        assert ctx.get_config() is config

    def test_get_config_returns_loaded(self) -> None:
        """Test get_config returns the loaded configuration."""
        ctx = RepoDepsContext()
        loaded = RepoDepsConfig(allow_missing_version=True, source_path=Path("x.toml"))
        ctx.config = loaded

        assert ctx.get_config() is loaded

    def test_slots_prevents_arbitrary_attributes(self) -> None:
        """Test __slots__ prevents setting undefined attributes."""
        ctx = RepoDepsContext()

        with pytest.raises(AttributeError):
            ctx.arbitrary_attribute = "value"  # type: ignore


@pytest.mark.unit
class TestPassContextDecorator:
    """Tests for pass_context decorator."""

    def test_pass_context_injects_existing_context(self) -> None:
        """Test pass_context decorator injects existing RepoDepsContext."""

        @click.command()
        @pass_context
        def test_command(ctx: RepoDepsContext) -> RepoDepsContext:
            return ctx

        click_ctx = click.Context(click.Command("test"))
        repodeps_ctx = RepoDepsContext()
        click_ctx.obj = repodeps_ctx

        result = click_ctx.invoke(test_command)

        assert result is repodeps_ctx

    def test_pass_context_creates_context_when_missing(self) -> None:
        """Test pass_context creates RepoDepsContext when none exists."""

        @click.command()
        @pass_context
        def test_command(ctx: RepoDepsContext) -> RepoDepsContext:
            return ctx

        click_ctx = click.Context(click.Command("test"))

        result = click_ctx.invoke(test_command)

        assert isinstance(result, RepoDepsContext)
        assert result.verbose == 0
