"""Tests for the single-page book catalog parser."""

from __future__ import annotations

from lpkg.parsing.catalog import BookCatalogParser, BookPackage, fetch_book

BOOK_URL = "https://linuxfromscratch.org/~thomas/multilib-m32/book.html"


def _by_section(packages: list[BookPackage]) -> dict[str, BookPackage]:
    return {p.section: p for p in packages}


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------


def test_unversioned_headings_are_skipped(book_page):
    packages = BookCatalogParser("mlfs").parse(book_page, BOOK_URL)
    assert len(packages) == 6
    assert all(p.name != "Introduction" for p in packages)


def test_padded_sections_and_variants(book_page):
    packages = _by_section(BookCatalogParser("mlfs").parse(book_page, BOOK_URL))

    binutils = packages["5.02"]
    assert (binutils.name, binutils.version, binutils.variant) == ("Binutils", "2.45", "Pass 1")
    assert binutils.stage == "cross-toolchain"
    assert binutils.href == f"{BOOK_URL}#ch-tools-binutils-pass1"

    assert packages["5.04"].variant == "API Headers"
    assert packages["8.29"].variant == "multilib"
    assert packages["8.29"].stage == "system"
    assert packages["8.07"].name == "Bzip2"


def test_unpadded_sections_for_blfs(book_page):
    packages = BookCatalogParser("blfs").parse(book_page, BOOK_URL)
    sections = [p.section for p in packages]
    assert "8.7" in sections
    assert "5.2" in sections
    assert all(p.stage is None for p in packages)


def test_href_drops_existing_fragment(book_page):
    packages = BookCatalogParser("mlfs").parse(book_page, f"{BOOK_URL}#top")
    assert packages[0].href == f"{BOOK_URL}#ch-tools-binutils-pass1"


def test_identifier_includes_variant():
    pkg = BookPackage(book="mlfs", name="GCC", version="15.2.0", variant="Pass 1")
    assert pkg.identifier() == "mlfs-GCC-pass-1"
    assert BookPackage(book="lfs", name="Bzip2").identifier() == "lfs-Bzip2"


# ------------------------------------------------------------------
# fetch_book
# ------------------------------------------------------------------


def test_fetch_book_requests_book_html(book_page):
    seen: list[str] = []

    def _fetch(url: str) -> str:
        seen.append(url)
        return book_page

    packages = fetch_book("mlfs", "https://mirror.test/mlfs/", fetch=_fetch)
    assert seen == ["https://mirror.test/mlfs/book.html"]
    assert len(packages) == 6
