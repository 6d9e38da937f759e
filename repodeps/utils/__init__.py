"""
Utility helpers for repodeps.

This package provides reusable utilities used across repodeps, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem helpers for (possibly compressed) index files
- Async HTTP client utilities

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from repodeps.utils.filesystem import (
    decompress_if_gzip,
    is_gzip,
    safe_read_bytes,
    safe_write_bytes,
    validate_path,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from repodeps.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from repodeps.utils.console import (
    colorize_status,
    get_raw_console,
    print_error,
    print_info,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from repodeps.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_info",
    "print_error",
    "print_table",
    "print_success",
    "print_warning",
    "get_raw_console",
    "reconfigure_console",
    "colorize_status",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    "is_logging_configured",
    # Filesystem
    "is_gzip",
    "decompress_if_gzip",
    "safe_read_bytes",
    "safe_write_bytes",
    "validate_path",
    # HTTP
    "HTTPClient",
]
