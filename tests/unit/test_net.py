"""Tests for the HTTP fetch helpers — urllib is patched, no network access."""

from __future__ import annotations

import urllib.error
from email.message import Message
from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest

from lpkg.errors import FetchError
from lpkg.net import download_to, fetch_bytes, fetch_text, filename_from_url, validate_scheme


def _response(body: bytes, *, status: int = 200, charset: str | None = None, url: str = ""):
    headers = Message()
    headers["Content-Type"] = f"text/html; charset={charset}" if charset else "text/html"
    response = MagicMock()
    response.status = status
    response.headers = headers
    stream = BytesIO(body)
    response.read.side_effect = stream.read
    response.geturl.return_value = url
    return response


def _patch_opener(response=None, error: Exception | None = None):
    opener = MagicMock()
    if error is not None:
        opener.open.side_effect = error
    else:
        opener.open.return_value = response
    return patch("lpkg.net.urllib.request.build_opener", return_value=opener)


# ------------------------------------------------------------------
# Scheme validation
# ------------------------------------------------------------------


@pytest.mark.parametrize("url", ["https://example.org", "http://example.org/x"])
def test_scheme_allowed(url):
    validate_scheme(url)  # no exception


@pytest.mark.parametrize("url", ["ftp://ftp.gnu.org/gnu", "file:///etc/passwd"])
def test_scheme_rejected(url):
    with pytest.raises(FetchError, match="unsupported URL scheme"):
        validate_scheme(url)


def test_malformed_url_raises_fetch_error():
    with pytest.raises(FetchError, match="malformed URL"):
        validate_scheme("http://[::1/b-1.tar.xz")
    with pytest.raises(FetchError, match="malformed URL"):
        filename_from_url("http://[::1/b-1.tar.xz")


# ------------------------------------------------------------------
# fetch_text / fetch_bytes
# ------------------------------------------------------------------


def test_fetch_text_decodes_charset():
    body = "Bücher".encode("latin-1")
    with _patch_opener(_response(body, charset="latin-1")):
        assert fetch_text("https://example.org/") == "Bücher"


def test_fetch_text_defaults_to_utf8():
    with _patch_opener(_response("λ".encode("utf-8"))):
        assert fetch_text("https://example.org/") == "λ"


def test_fetch_bytes_closes_response():
    response = _response(b"\x00\x01")
    with _patch_opener(response):
        assert fetch_bytes("https://example.org/a.bin") == b"\x00\x01"
    response.close.assert_called_once()


def test_http_error_carries_status():
    error = urllib.error.HTTPError("https://example.org/x", 404, "Not Found", Message(), None)
    with _patch_opener(error=error):
        with pytest.raises(FetchError, match="HTTP 404") as excinfo:
            fetch_text("https://example.org/x")
    assert excinfo.value.url == "https://example.org/x"


def test_transport_error():
    with _patch_opener(error=urllib.error.URLError("name resolution failed")):
        with pytest.raises(FetchError, match="name resolution failed"):
            fetch_text("https://nowhere.invalid/")


def test_non_2xx_status_rejected():
    with _patch_opener(_response(b"", status=304)):
        with pytest.raises(FetchError, match="HTTP 304"):
            fetch_bytes("https://example.org/")


# ------------------------------------------------------------------
# Filenames and downloads
# ------------------------------------------------------------------


def test_filename_from_url():
    assert filename_from_url("https://a/b/gcc-15.2.0.tar.xz?x=1") == "gcc-15.2.0.tar.xz"
    assert filename_from_url("https://a/b/dir/") == "dir"
    assert filename_from_url("https://a/some%20file.patch") == "some file.patch"
    with pytest.raises(FetchError):
        filename_from_url("https://a/")


def test_download_to_uses_final_url(tmp_path):
    response = _response(b"archive", url="https://mirror.test/dl/binutils-2.45.tar.xz")
    with _patch_opener(response):
        path = download_to("https://example.org/latest", tmp_path / "src")
    assert path == tmp_path / "src" / "binutils-2.45.tar.xz"
    assert path.read_bytes() == b"archive"
