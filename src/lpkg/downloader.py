"""Parallel source downloader with per-file MD5 verification.

One task per URL on a thread pool. A failing task (network error or checksum
mismatch) is reported in its own ``DownloadResult`` and never aborts the
rest of the batch; results come back in input order. Bodies stream to disk
with the MD5 computed on the fly.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from lpkg.errors import ChecksumMismatch
from lpkg.files import write_atomic_chunks
from lpkg.net import filename_from_url, open_url

logger = logging.getLogger(__name__)

GNU_HOST = "ftp.gnu.org"

STATUS_OK = "ok"
STATUS_MISMATCH = "checksum-mismatch"
STATUS_ERROR = "error"

_CHUNK = 64 * 1024


@dataclass
class DownloadResult:
    url: str
    filename: str
    status: str
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def apply_mirror(url: str, mirror: str | None) -> str:
    """Swap the GNU host for *mirror* (a bare host name)."""
    return url.replace(GNU_HOST, mirror) if mirror else url


def parse_md5sums(text: str) -> dict[str, str]:
    """``"<md5>  <filename>"`` lines → ``{filename: md5}``; malformed lines are skipped."""
    checksums: dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            checksums[parts[1]] = parts[0].lower()
    return checksums


def parse_wget_list(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip() and not line.startswith("#")]


def _stream(response: BinaryIO, digest: Any) -> Iterator[bytes]:
    for chunk in iter(lambda: response.read(_CHUNK), b""):
        digest.update(chunk)
        yield chunk


def _download_one(
    url: str,
    target_dir: Path,
    mirror: str | None,
    md5_map: Mapping[str, str],
    opener: Callable[[str], BinaryIO],
) -> DownloadResult:
    download_url = apply_mirror(url, mirror)
    filename = ""
    digest = hashlib.md5()
    try:
        filename = filename_from_url(download_url)
        path = target_dir / filename
        with opener(download_url) as response:
            write_atomic_chunks(path, _stream(response, digest))
    except Exception as exc:
        logger.warning("Download of %s failed: %s", download_url, exc)
        return DownloadResult(url=url, filename=filename, status=STATUS_ERROR, error=str(exc))

    expected = md5_map.get(filename)
    if expected:
        actual = digest.hexdigest()
        if actual != expected.lower():
            err = ChecksumMismatch(filename, expected, actual)
            logger.warning("%s", err)
            return DownloadResult(
                url=url, filename=filename, status=STATUS_MISMATCH, path=path, error=str(err)
            )

    logger.info("Downloaded %s", filename)
    return DownloadResult(url=url, filename=filename, status=STATUS_OK, path=path)


def download_files(
    urls: list[str],
    target_dir: Path,
    mirror: str | None = None,
    md5_map: Mapping[str, str] | None = None,
    workers: int = 4,
    *,
    opener: Callable[[str], BinaryIO] | None = None,
) -> list[DownloadResult]:
    """Download every URL into *target_dir* and report each outcome.

    Bodies are streamed to disk; *opener* returns a readable response for a
    URL and defaults to lpkg.net.open_url.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    checksums = dict(md5_map or {})
    open_response = opener or open_url

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = [
            executor.submit(_download_one, url, target_dir, mirror, checksums, open_response)
            for url in urls
        ]
        return [future.result() for future in futures]
