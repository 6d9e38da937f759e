from __future__ import annotations

from typing import Iterator

import pytest

from repodeps.utils.console import reconfigure_console
from repodeps.utils.logger import disable_logging


@pytest.fixture(autouse=True)
def _reset_output_state() -> Iterator[None]:
    """Undo logging and console configuration made by CLI tests."""
    yield
    disable_logging()
    reconfigure_console()
