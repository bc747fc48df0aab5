"""Page parsers for LFS-family books.

All parsers share the heading/name-version core in :mod:`lpkg.parsing.text`
and read per-book selectors from :mod:`lpkg.books`.
"""

from lpkg.parsing.base import PageParser
from lpkg.parsing.catalog import BookCatalogParser, BookPackage, fetch_book
from lpkg.parsing.harvest import HarvestResult, MetadataPageParser, harvest, resolve_page_url
from lpkg.parsing.instructions import BuildInfo, InstructionPageParser

__all__ = [
    "BookCatalogParser",
    "BookPackage",
    "BuildInfo",
    "HarvestResult",
    "InstructionPageParser",
    "MetadataPageParser",
    "PageParser",
    "fetch_book",
    "harvest",
    "resolve_page_url",
]
