"""Per-book jhalfs manifest cache (wget-list and md5sums).

Cache files live at ``<metadata_dir>/cache/<book>-<kind>.txt``. A cached file
is reused as-is unless a refresh is forced; there is no expiry.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from pathlib import Path

from lpkg.books import get_profile
from lpkg.errors import ConfigError
from lpkg.files import write_atomic
from lpkg.net import fetch_text

logger = logging.getLogger(__name__)


class ManifestKind(enum.Enum):
    WGET_LIST = "wget-list"
    MD5SUMS = "md5sums"

    @property
    def filename(self) -> str:
        return f"{self.value}.txt"

    @property
    def description(self) -> str:
        if self is ManifestKind.WGET_LIST:
            return "source URL list"
        return "md5 checksum list"

    @classmethod
    def parse(cls, raw: str) -> ManifestKind:
        try:
            return cls(raw.lower())
        except ValueError:
            known = ", ".join(k.value for k in cls)
            raise ConfigError(f"Unknown manifest kind '{raw}'. Known kinds: {known}") from None


def manifest_url(book: str, kind: ManifestKind) -> str:
    """Return the upstream URL of *kind* for *book*.

    Raises:
        ConfigError: If *book* has no manifest URLs configured.
    """
    profile = get_profile(book)
    if kind is ManifestKind.WGET_LIST:
        return profile.wget_list_url
    return profile.md5sums_url


class ManifestCache:
    """Fetch-once cache of book manifests under ``<metadata_dir>/cache``."""

    def __init__(
        self,
        metadata_dir: Path,
        fetch: Callable[[str], str] | None = None,
    ) -> None:
        self.cache_dir = Path(metadata_dir) / "cache"
        self._fetch = fetch or fetch_text

    def path_for(self, book: str, kind: ManifestKind) -> Path:
        return self.cache_dir / f"{book.lower()}-{kind.filename}"

    def refresh(self, book: str, kind: ManifestKind, force: bool = False) -> Path:
        """Ensure the manifest is cached and return its path.

        An existing cache file is returned unchanged (no network call) unless
        *force* is set.

        Raises:
            ConfigError: Unknown book.
            FetchError: Transport failure or non-2xx response.
        """
        url = manifest_url(book, kind)
        path = self.path_for(book, kind)
        if path.exists() and not force:
            logger.debug("Using cached %s for %s: %s", kind.value, book, path)
            return path

        logger.info("Fetching %s for %s from %s", kind.description, book, url)
        body = self._fetch(url)
        write_atomic(path, body)
        return path

    def load(self, book: str, kind: ManifestKind) -> str:
        path = self.refresh(book, kind, force=False)
        return path.read_text(encoding="utf-8")
