"""Download package indexes from CRAN-like repositories.

Every repository publishes its source package index at
``<url>/src/contrib/PACKAGES.gz``. :class:`RepositoryFetcher` downloads
those indexes concurrently through the shared
:class:`~repodeps.utils.http.HTTPClient` and either hands back the raw
bytes or saves them under one directory per repository.

Typical usage::

    async with HTTPClient() as http:
        fetcher = RepositoryFetcher(http)
        indexes = await fetcher.fetch_all(config.repositories)

    for name, data in indexes.items():
        repo.read(decompress_if_gzip(data), source_name=name)
"""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urlparse
from typing import Dict, List, Sequence, Union

from repodeps.config import RepositoryConfig
from repodeps.exceptions import FileOperationError
from repodeps.utils.http import HTTPClient
from repodeps.utils.logger import get_logger
from repodeps.utils.filesystem import safe_write_bytes, validate_path
from repodeps.constants import PACKAGES_INDEX_FILENAME, PACKAGES_INDEX_PATH

logger = get_logger("fetcher")

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# Public API
__all__ = ["RepositoryFetcher", "packages_index_url", "repository_name_from_url"]


def packages_index_url(base_url: str) -> str:
    """Return the URL of the ``PACKAGES.gz`` index under ``base_url``.

    Example::

        >>> packages_index_url("https://cloud.r-project.org/")
        'https://cloud.r-project.org/src/contrib/PACKAGES.gz'
    """
    return f"{base_url.strip().rstrip('/')}/{PACKAGES_INDEX_PATH}"


def repository_name_from_url(url: str) -> str:
    """Derive a file-system safe repository name from its base URL.

    Example::

        >>> repository_name_from_url("https://cloud.r-project.org/")
        'cloud.r-project.org'
    """
    parsed = urlparse(url.strip())
    raw = f"{parsed.netloc}{parsed.path}" if parsed.netloc else url.strip()
    return _UNSAFE_NAME_CHARS.sub("_", raw.strip("/")) or "repository"


class RepositoryFetcher:
    """Concurrent downloader for repository indexes.

    Args:
        http: Open HTTP client. The fetcher never closes it.
    """

    def __init__(self, http: HTTPClient) -> None:
        self.http = http

    async def fetch_all(
        self,
        repositories: Sequence[RepositoryConfig],
    ) -> Dict[str, bytes]:
        """Download the index of every repository.

        Returns:
            Mapping of repository name to the raw (usually gzip-compressed)
            index, in the order given. Repositories whose download failed
            map to ``b""``; the failure is logged by the HTTP client.
        """
        urls = {repo.name: packages_index_url(repo.url) for repo in repositories}
        for name, url in urls.items():
            logger.info("Fetching %s index from %s", name, url)

        bodies = await self.http.batch_get_bytes(urls.values())
        return {name: bodies.get(url, b"") for name, url in urls.items()}

    async def save_all(
        self,
        repositories: Sequence[RepositoryConfig],
        out_dir: Union[str, Path],
        *,
        force: bool = False,
    ) -> List[Path]:
        """Download every index and write it to ``<out_dir>/<name>/PACKAGES.gz``.

        Repositories whose download failed are skipped with a warning.

        Args:
            repositories: Repositories to fetch.
            out_dir: Destination directory, created if missing.
            force: Overwrite index files that already exist.

        Returns:
            Paths of the files written.

        Raises:
            FileOperationError: A destination exists and ``force`` is not
                set, a repository name escapes ``out_dir``, or writing fails.
        """
        base = Path(out_dir)
        targets = {
            repo.name: validate_path(base / repo.name / PACKAGES_INDEX_FILENAME, base_dir=base)
            for repo in repositories
        }

        if not force:
            for target in targets.values():
                if target.exists():
                    raise FileOperationError(
                        f"File already exists: {target} (use --force to overwrite)",
                        file_path=str(target),
                        operation="write",
                    )

        written: List[Path] = []
        for name, data in (await self.fetch_all(repositories)).items():
            if not data:
                logger.warning("Skipping %s: nothing downloaded", name)
                continue
            written.append(safe_write_bytes(targets[name], data, overwrite=True))
            logger.info("Saved %s index to %s", name, targets[name])
        return written
