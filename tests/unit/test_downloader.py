"""Tests for the parallel source downloader."""

from __future__ import annotations

import hashlib
import io

from lpkg.downloader import (
    STATUS_ERROR,
    STATUS_MISMATCH,
    STATUS_OK,
    apply_mirror,
    download_files,
    parse_md5sums,
    parse_wget_list,
)
from lpkg.errors import FetchError

BODIES = {
    "https://example.org/src/alpha-1.0.tar.xz": b"alpha",
    "https://example.org/src/beta-2.0.tar.gz": b"beta",
    "https://example.org/src/gamma-3.0.tar.bz2": b"gamma",
    "https://example.org/src/delta-4.0.tar.xz": b"delta",
}


def _md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def _open(url: str) -> io.BytesIO:
    try:
        return io.BytesIO(BODIES[url])
    except KeyError:
        raise FetchError(url, "HTTP 404") from None


# ------------------------------------------------------------------
# Parsing helpers
# ------------------------------------------------------------------


def test_parse_md5sums():
    text = "DEE5B4267E0305A99A3C9D6131F45759  binutils-2.45.tar.xz\n\nmalformed\n"
    assert parse_md5sums(text) == {"binutils-2.45.tar.xz": "dee5b4267e0305a99a3c9d6131f45759"}


def test_parse_wget_list_skips_blanks_and_comments():
    text = "# sources\nhttps://a/x.tar.xz\n\n  https://a/y.patch  \n"
    assert parse_wget_list(text) == ["https://a/x.tar.xz", "https://a/y.patch"]


def test_apply_mirror():
    url = "https://ftp.gnu.org/gnu/make/make-4.4.1.tar.gz"
    assert apply_mirror(url, "ftp.fau.de") == "https://ftp.fau.de/gnu/make/make-4.4.1.tar.gz"
    assert apply_mirror(url, None) == url
    assert apply_mirror("https://kernel.org/linux.tar.xz", "ftp.fau.de") == "https://kernel.org/linux.tar.xz"


# ------------------------------------------------------------------
# Batch behaviour
# ------------------------------------------------------------------


def test_one_bad_checksum_fails_only_that_file(tmp_path):
    urls = list(BODIES)
    md5_map = {url.rsplit("/", 1)[-1]: _md5(body) for url, body in BODIES.items()}
    md5_map["gamma-3.0.tar.bz2"] = "0" * 32

    results = download_files(urls, tmp_path, md5_map=md5_map, workers=3, opener=_open)

    assert [r.url for r in results] == urls
    assert sum(r.ok for r in results) == len(urls) - 1
    mismatches = [r for r in results if r.status == STATUS_MISMATCH]
    assert [r.filename for r in mismatches] == ["gamma-3.0.tar.bz2"]
    assert "MD5 mismatch" in mismatches[0].error
    assert (tmp_path / "alpha-1.0.tar.xz").read_bytes() == b"alpha"


def test_fetch_error_is_reported_per_file(tmp_path):
    urls = ["https://example.org/src/alpha-1.0.tar.xz", "https://example.org/src/missing-0.1.tar.xz"]
    results = download_files(urls, tmp_path, opener=_open)

    assert [r.status for r in results] == [STATUS_OK, STATUS_ERROR]
    assert "HTTP 404" in results[1].error
    assert results[1].path is None


def test_unknown_checksum_is_accepted(tmp_path):
    results = download_files(["https://example.org/src/beta-2.0.tar.gz"], tmp_path, opener=_open)
    assert results[0].ok
    assert results[0].path == tmp_path / "beta-2.0.tar.gz"


def test_url_without_filename(tmp_path):
    results = download_files(["https://example.org/"], tmp_path, opener=_open)
    assert results[0].status == STATUS_ERROR
    assert results[0].filename == ""


def test_mirror_used_for_fetch_but_not_reported(tmp_path):
    seen: list[str] = []

    def _recording(url: str) -> io.BytesIO:
        seen.append(url)
        return io.BytesIO(b"data")

    url = "https://ftp.gnu.org/gnu/bash/bash-5.3.tar.gz"
    results = download_files([url], tmp_path / "sources", mirror="mirror.test", opener=_recording)

    assert seen == ["https://mirror.test/gnu/bash/bash-5.3.tar.gz"]
    assert results[0].url == url
    assert (tmp_path / "sources" / "bash-5.3.tar.gz").exists()


def test_empty_batch(tmp_path):
    assert download_files([], tmp_path / "out", opener=_open) == []
    assert (tmp_path / "out").is_dir()


def test_malformed_url_does_not_abort_batch(tmp_path):
    urls = [
        "https://example.org/src/alpha-1.0.tar.xz",
        "http://[::1/b-1.tar.xz",
        "https://example.org/src/beta-2.0.tar.gz",
    ]
    results = download_files(urls, tmp_path, workers=2, opener=_open)

    assert [r.url for r in results] == urls
    assert [r.status for r in results] == [STATUS_OK, STATUS_ERROR, STATUS_OK]
    assert "malformed URL" in results[1].error


def test_unexpected_opener_error_is_reported_per_file(tmp_path):
    def _flaky(url: str) -> io.BytesIO:
        if "beta" in url:
            raise RuntimeError("connection reset mid-handshake")
        return _open(url)

    urls = ["https://example.org/src/alpha-1.0.tar.xz", "https://example.org/src/beta-2.0.tar.gz"]
    results = download_files(urls, tmp_path, opener=_flaky)

    assert [r.status for r in results] == [STATUS_OK, STATUS_ERROR]
    assert results[1].filename == "beta-2.0.tar.gz"
    assert "connection reset" in results[1].error
    assert not (tmp_path / "beta-2.0.tar.gz").exists()


class _ChunkCountingStream(io.BytesIO):
    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.reads = 0

    def read(self, size: int | None = -1) -> bytes:
        self.reads += 1
        return super().read(size)


def test_large_body_is_streamed_in_chunks(tmp_path):
    body = bytes(range(256)) * 1024  # 256 KiB
    stream = _ChunkCountingStream(body)
    url = "https://example.org/src/big-1.0.tar.xz"

    results = download_files([url], tmp_path, md5_map={"big-1.0.tar.xz": _md5(body)}, opener=lambda u: stream)

    assert results[0].ok
    assert (tmp_path / "big-1.0.tar.xz").read_bytes() == body
    assert stream.reads > 2
    assert stream.closed


def test_read_error_mid_stream_leaves_no_file(tmp_path):
    class _Broken(io.BytesIO):
        def read(self, size: int | None = -1) -> bytes:
            raise OSError("connection dropped")

    url = "https://example.org/src/alpha-1.0.tar.xz"
    results = download_files([url], tmp_path, opener=lambda u: _Broken())

    assert results[0].status == STATUS_ERROR
    assert "connection dropped" in results[0].error
    assert list(tmp_path.iterdir()) == []
