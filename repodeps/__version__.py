"""
repodeps version information.

Single source of truth for the package version, read by packaging
(``[tool.setuptools.dynamic]``), the ``--version`` option and the HTTP
User-Agent.
"""

from __future__ import annotations

__version__ = "0.1.0.dev0"
