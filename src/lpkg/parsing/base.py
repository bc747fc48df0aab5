"""Base page parser interface shared by the harvester, builder and catalog reader."""

from __future__ import annotations

import urllib.parse
from abc import ABC, abstractmethod
from typing import Any

from bs4 import BeautifulSoup, Tag

from lpkg.books import BookProfile, get_profile
from lpkg.parsing.text import Heading, normalize_whitespace, parse_heading


class PageParser(ABC):
    """Abstract base for every LFS-family page parser.

    Subclasses implement ``parse()`` and may use the heading helpers, which
    read the selectors from the book's :class:`BookProfile`, so no parser
    hardcodes per-book markup.
    """

    def __init__(self, book: str | BookProfile = "lfs") -> None:
        self.profile = book if isinstance(book, BookProfile) else get_profile(book)

    @property
    def book(self) -> str:
        return self.profile.name

    @abstractmethod
    def parse(self, html: str, url: str) -> Any:
        """Parse the page *html* fetched from *url*."""

    @staticmethod
    def soup(html: str | bytes) -> BeautifulSoup:
        return BeautifulSoup(html, "html.parser")

    @staticmethod
    def element_text(element: Tag, separator: str = " ") -> str:
        """Normalised text content of *element*."""
        return normalize_whitespace(element.get_text(separator))

    def headings(self, document: BeautifulSoup) -> list[Tag]:
        return document.select(self.profile.heading_selector)

    def first_heading(self, document: BeautifulSoup) -> Tag | None:
        return document.select_one(self.profile.heading_selector)

    def parse_heading_element(self, element: Tag) -> Heading | None:
        return parse_heading(self.element_text(element))

    @staticmethod
    def resolve_href(page_url: str, href: str) -> str | None:
        """Resolve *href* against *page_url*; None if it cannot be made absolute."""
        href = href.strip()
        if not href:
            return None
        resolved = urllib.parse.urljoin(page_url, href)
        if not urllib.parse.urlparse(resolved).scheme:
            return None
        return resolved

    @staticmethod
    def pre_text(element: Tag) -> str:
        """Raw text of a ``<pre>`` block with its line structure kept."""
        return element.get_text()
