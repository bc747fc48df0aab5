"""HTTP fetch helpers shared by the harvester, manifest cache and downloader.

- Allowed URL schemes: https:// and http:// only.
- Timeout: 30 seconds (connect + read) unless overridden.
- Redirects are followed up to a fixed limit.
- Any transport failure or non-2xx status raises FetchError carrying the URL.
"""

from __future__ import annotations

import logging
import shutil
import urllib.error
import urllib.parse
import urllib.request
from http.client import HTTPResponse
from pathlib import Path

from lpkg.errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = "lpkg/0.1 (+https://www.linuxfromscratch.org)"
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_MAX_REDIRECTS = 5
_ALLOWED_SCHEMES = {"https", "http"}
_CHUNK = 64 * 1024


def validate_scheme(url: str) -> None:
    try:
        parsed = urllib.parse.urlparse(url)
    except ValueError as exc:
        raise FetchError(url, f"malformed URL: {exc}") from exc
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise FetchError(
            url,
            f"unsupported URL scheme '{parsed.scheme}'. Only https:// and http:// are allowed.",
        )


def open_url(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
) -> HTTPResponse:
    """Open *url* and return the response; the caller must close it."""
    validate_scheme(url)
    request = urllib.request.Request(url, headers={"User-Agent": user_agent})
    opener = urllib.request.build_opener(_LimitedRedirectHandler(max_redirects))
    try:
        response: HTTPResponse = opener.open(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        raise FetchError(url, f"HTTP {exc.code}") from exc
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise FetchError(url, str(exc)) from exc

    status = getattr(response, "status", 200)
    if not 200 <= status < 300:
        response.close()
        raise FetchError(url, f"HTTP {status}")
    return response


def fetch_text(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
) -> str:
    """Fetch *url* and return the decoded body text."""
    logger.debug("GET %s", url)
    response = open_url(
        url, timeout=timeout, user_agent=user_agent, max_redirects=max_redirects
    )
    try:
        body = response.read()
    except OSError as exc:
        raise FetchError(url, f"reading response body: {exc}") from exc
    finally:
        response.close()
    charset = response.headers.get_content_charset() or "utf-8"
    return body.decode(charset, errors="replace")


def fetch_bytes(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
) -> bytes:
    """Fetch *url* and return the raw body."""
    logger.debug("GET %s", url)
    response = open_url(
        url, timeout=timeout, user_agent=user_agent, max_redirects=max_redirects
    )
    try:
        return response.read()
    except OSError as exc:
        raise FetchError(url, f"reading response body: {exc}") from exc
    finally:
        response.close()


def filename_from_url(url: str) -> str:
    """Return the last non-empty path segment of *url*."""
    try:
        path = urllib.parse.urlparse(url).path
    except ValueError as exc:
        raise FetchError(url, f"malformed URL: {exc}") from exc
    name = path.rstrip("/").rsplit("/", 1)[-1]
    if not name:
        raise FetchError(url, "cannot determine filename from URL")
    return urllib.parse.unquote(name)


def download_to(url: str, dest_dir: Path, *, timeout: float = DEFAULT_TIMEOUT) -> Path:
    """Stream *url* into *dest_dir* and return the written path.

    The filename comes from the final (post-redirect) URL.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    response = open_url(url, timeout=timeout)
    try:
        final_url = response.geturl() or url
        outpath = dest_dir / filename_from_url(final_url)
        with outpath.open("wb") as fh:
            shutil.copyfileobj(response, fh, _CHUNK)
    except OSError as exc:
        raise FetchError(url, f"writing download: {exc}") from exc
    finally:
        response.close()
    return outpath


class _LimitedRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Raise FetchError after more than *max_redirects* redirects."""

    def __init__(self, max_redirects: int) -> None:
        self._max_redirects = max_redirects
        self._count = 0

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        self._count += 1
        if self._count > self._max_redirects:
            raise FetchError(req.full_url, f"too many redirects (>{self._max_redirects})")
        return super().redirect_request(req, fp, code, msg, headers, newurl)
