"""Catalog parser: a book's single-page ``book.html`` → one BookPackage per package heading."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from lpkg.books import BookProfile, get_profile, stage_for_chapter
from lpkg.net import fetch_text
from lpkg.parsing.base import PageParser
from lpkg.parsing.text import split_catalog_title


@dataclass
class BookPackage:
    book: str
    name: str
    version: str | None = None
    chapter: int | None = None
    section: str | None = None
    href: str | None = None
    md5: str | None = None
    stage: str | None = None
    variant: str | None = None
    notes: str | None = None

    def identifier(self) -> str:
        """``<book>-<name>`` plus a lowercase, dash-joined variant when present."""
        if self.variant:
            return f"{self.book}-{self.name}-{self.variant.replace(' ', '-').lower()}"
        return f"{self.book}-{self.name}"


class BookCatalogParser(PageParser):
    """Collect every versioned ``h1.sect1`` heading of a rendered book.

    Headings without a version (introductions, notes) are skipped.
    """

    def parse(self, html: str, url: str) -> list[BookPackage]:
        document = self.soup(html)
        results: list[BookPackage] = []

        for element in self.headings(document):
            heading = self.parse_heading_element(element)
            if heading is None:
                continue
            parts = split_catalog_title(heading.title)
            if parts is None:
                continue
            name, version, variant = parts

            if self.profile.padded_sections:
                section = f"{heading.chapter}.{heading.section:02d}"
            else:
                section = f"{heading.chapter}.{heading.section}"

            href = None
            if element.get("id"):
                href = f"{url.split('#', 1)[0]}#{element['id']}"

            results.append(
                BookPackage(
                    book=self.book,
                    name=name,
                    version=version,
                    chapter=heading.chapter,
                    section=section,
                    href=href,
                    stage=stage_for_chapter(heading.chapter) if self.profile.staged else None,
                    variant=variant,
                )
            )

        return results


def fetch_book(
    book: str | BookProfile,
    base_url: str | None = None,
    *,
    fetch: Callable[[str], str] | None = None,
) -> list[BookPackage]:
    """Fetch ``<base_url>/book.html`` for *book* and parse its catalog.

    Raises:
        FetchError: The page could not be fetched.
    """
    profile = book if isinstance(book, BookProfile) else get_profile(book)
    base = (base_url or profile.base_url).rstrip("/")
    url = f"{base}/book.html"
    html = (fetch or fetch_text)(url)
    return BookCatalogParser(profile).parse(html, url)
