"""
Filesystem utilities for repodeps.

This module provides safe helpers for reading and writing repository
index files. ``PACKAGES`` indexes are commonly published gzip-compressed;
:func:`safe_read_bytes` detects and decompresses them transparently. All
filesystem errors are normalized to ``FileOperationError``.
"""

from __future__ import annotations

import io
import os
import gzip
import zlib
import tempfile
from pathlib import Path
from typing import Optional, Union

from repodeps.utils.logger import get_logger
from repodeps.exceptions import FileOperationError
from repodeps.constants import GZIP_MAGIC, MAX_FILE_SIZE


logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Validate and resolve an existing file path."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def _atomic_write(target: Path, data: bytes) -> None:
    """Atomically write bytes to a file using a temporary file + replace."""
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Optional[Path] = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=str(target.parent),
            delete=False,
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())

        temp_path.replace(target)

    except OSError as exc:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
                logger.debug("Cleaned up temporary file: %s", temp_path)
            except OSError as cleanup_exc:
                logger.warning(
                    "Failed to clean up temporary file %s: %s",
                    temp_path,
                    cleanup_exc,
                )

        raise FileOperationError(
            f"Atomic write failed: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc


def is_gzip(data: bytes) -> bool:
    """Return True if ``data`` starts with the gzip magic number."""
    return data[: len(GZIP_MAGIC)] == GZIP_MAGIC


def decompress_if_gzip(
    data: bytes,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    source: Optional[str] = None,
) -> bytes:
    """Return ``data`` decompressed if it is a gzip stream, else unchanged.

    Args:
        data: Raw bytes, compressed or not.
        max_size: Maximum allowed decompressed size (None disables limit).
        source: File name or URL used in error messages.

    Raises:
        FileOperationError: The stream is corrupt or decompresses to more
            than ``max_size`` bytes.
    """
    if not is_gzip(data):
        return data

    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data)) as stream:
            if max_size is None:
                content = stream.read()
            else:
                content = stream.read(max_size + 1)
    except (OSError, EOFError, zlib.error) as exc:
        raise FileOperationError(
            f"Failed to decompress: {exc}",
            file_path=source,
            operation="decompress",
            original_error=exc,
        ) from exc

    if max_size is not None and len(content) > max_size:
        raise FileOperationError(
            f"Decompressed data too large (max {max_size} bytes)",
            file_path=source,
            operation="decompress",
        )

    logger.debug(
        "Decompressed %d -> %d bytes%s",
        len(data),
        len(content),
        f" from {source}" if source else "",
    )
    return content


def safe_read_bytes(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    decompress: bool = True,
) -> bytes:
    """Safely read a repository index file.

    Args:
        file_path: Path to the file.
        max_size: Maximum allowed size in bytes, checked on the file and
            again after decompression (None disables limit).
        decompress: Transparently decompress gzip content.

    Returns:
        File contents as bytes.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc

    if decompress:
        data = decompress_if_gzip(data, max_size=max_size, source=str(path))
    return data


def safe_write_bytes(
    file_path: PathLike,
    data: bytes,
    *,
    overwrite: bool = True,
) -> Path:
    """Safely write bytes to a file using atomic replacement.

    Args:
        file_path: Destination path. Missing parent directories are created.
        data: Content to write.
        overwrite: Replace an existing file. When False an existing file
            raises :exc:`FileOperationError`.

    Returns:
        The resolved destination path.
    """
    path = Path(file_path)

    if not overwrite and path.exists():
        raise FileOperationError(
            f"File already exists: {path}",
            file_path=str(path),
            operation="write",
        )

    _atomic_write(path, data)
    logger.debug("Wrote %d bytes to %s", len(data), path)
    return path.resolve()


def validate_path(
    path: PathLike,
    *,
    base_dir: Optional[PathLike] = None,
) -> Path:
    """Resolve and validate a filesystem path.

    If ``base_dir`` is provided, the resolved path must be within it.
    """
    resolved = Path(path).expanduser().resolve(strict=False)

    if base_dir:
        base = Path(base_dir).expanduser().resolve(strict=False)
        try:
            resolved.relative_to(base)
        except ValueError:
            raise FileOperationError(
                f"Path outside allowed base directory: {resolved}",
                file_path=str(path),
                operation="validate",
            )

    return resolved
