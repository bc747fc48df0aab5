"""Per-book profile table: base URLs, manifest URLs and page selectors.

Every book-specific detail lives here so the parsers share a single code path.
"""

from __future__ import annotations

from dataclasses import dataclass

from lpkg.errors import ConfigError

BOOKS: tuple[str, ...] = ("mlfs", "lfs", "blfs", "glfs")

_STAGES: dict[int, str] = {
    5: "cross-toolchain",
    6: "temporary-tools",
    7: "temporary-tools",
    8: "system",
    9: "system-configuration",
    10: "system-finalization",
}


@dataclass(frozen=True)
class BookProfile:
    """Static description of one LFS-family book.

    Attributes:
        name: Short book identifier (lfs, mlfs, blfs, glfs).
        base_url: Default root URL of the rendered book (no trailing slash).
        wget_list_url: URL of the book's wget-list manifest.
        md5sums_url: URL of the book's md5sums manifest.
        heading_selector: CSS selector for the numbered package heading.
        userinput_selector: CSS selector for harvestable command blocks.
        command_selector: CSS selector for command blocks replayed by the builder.
        staged: Whether catalog entries carry a build stage.
        padded_sections: Whether catalog section labels zero-pad the section number.
    """

    name: str
    base_url: str
    wget_list_url: str
    md5sums_url: str
    heading_selector: str = "h1.sect1"
    userinput_selector: str = "pre.userinput"
    command_selector: str = "pre.kbd.command, pre.userinput kbd.command"
    staged: bool = True
    padded_sections: bool = True


PROFILES: dict[str, BookProfile] = {
    "mlfs": BookProfile(
        name="mlfs",
        base_url="https://linuxfromscratch.org/~thomas/multilib-m32",
        wget_list_url="https://www.linuxfromscratch.org/~thomas/multilib-m32/wget-list-sysv",
        md5sums_url="https://www.linuxfromscratch.org/~thomas/multilib-m32/md5sums",
    ),
    "lfs": BookProfile(
        name="lfs",
        base_url="https://www.linuxfromscratch.org/lfs/view/12.1",
        wget_list_url="https://www.linuxfromscratch.org/lfs/view/12.1/wget-list",
        md5sums_url="https://www.linuxfromscratch.org/lfs/view/12.1/md5sums",
    ),
    "blfs": BookProfile(
        name="blfs",
        base_url="https://www.linuxfromscratch.org/blfs/view/systemd",
        wget_list_url="https://anduin.linuxfromscratch.org/BLFS/view/systemd/wget-list",
        md5sums_url="https://anduin.linuxfromscratch.org/BLFS/view/systemd/md5sums",
        staged=False,
        padded_sections=False,
    ),
    "glfs": BookProfile(
        name="glfs",
        base_url="https://www.linuxfromscratch.org/glfs/view/glfs",
        wget_list_url="https://www.linuxfromscratch.org/glfs/view/glfs/wget-list",
        md5sums_url="https://www.linuxfromscratch.org/glfs/view/glfs/md5sums",
        staged=False,
        padded_sections=False,
    ),
}


def get_profile(book: str) -> BookProfile:
    """Return the profile for *book* (case-insensitive).

    Raises:
        ConfigError: If the book is not one of the known books.
    """
    try:
        return PROFILES[book.lower()]
    except KeyError:
        raise ConfigError(
            f"Unknown book '{book}'. Known books: {', '.join(BOOKS)}"
        ) from None


def stage_for_chapter(chapter: int) -> str | None:
    """Map a chapter number onto its coarse build stage, or None."""
    return _STAGES.get(chapter)


def parse_books_csv(raw: str) -> list[str]:
    """Split a comma-separated book list, lowercase and de-duplicate it in order."""
    seen: list[str] = []
    for part in raw.split(","):
        book = part.strip().lower()
        if book and book not in seen:
            seen.append(book)
    return seen
