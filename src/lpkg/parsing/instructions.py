"""Instruction parser for the build orchestrator.

A lighter sibling of the harvester tuned for pages whose build commands live
in ``pre.kbd.command`` blocks (the LFS cross-toolchain chapters). The result
is ephemeral: the orchestrator re-parses the live page on every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from lpkg.books import BookProfile
from lpkg.parsing.base import PageParser

_DOWNLOAD_SUFFIXES = (".tar.xz", ".tar.gz", ".tgz")
_CONFIGURE_PREFIXES = ("../configure", "./configure")


@dataclass
class BuildInfo:
    version: str | None = None
    download_url: str | None = None
    configure_args: list[str] = field(default_factory=list)
    build_cmds: list[str] = field(default_factory=list)
    install_cmds: list[str] = field(default_factory=list)
    sbu: str | None = None
    disk_space: str | None = None


class InstructionPageParser(PageParser):
    """Parse one package page into a :class:`BuildInfo`.

    *identity* is the lowercase package name looked for in the heading
    (``"binutils"`` for the cross-toolchain bootstrap).
    """

    def __init__(self, book: str | BookProfile = "lfs", identity: str = "binutils") -> None:
        super().__init__(book)
        self.identity = identity.lower()

    def parse(self, html: str, url: str = "") -> BuildInfo:
        document = self.soup(html)
        info = BuildInfo()
        info.version = self._version(document)
        info.download_url = self._download_url(document, url)
        info.sbu, info.disk_space = self._sizing(document)
        self._commands(document, info)

        if not info.build_cmds and info.install_cmds:
            info.build_cmds.append("make")
        return info

    def _version(self, document: BeautifulSoup) -> str | None:
        heading = self.first_heading(document)
        if heading is None:
            return None
        text = self.element_text(heading)
        tokens = text.split()
        token = next((t for t in tokens if self.identity in t.lower()), None)
        if token is None:
            return None
        if "-" in token:
            version = token.split("-", 1)[1].strip()
            return version or None
        # "Binutils 2.45" style: first token that starts with a digit
        return next((t for t in tokens if t[:1].isdigit()), None)

    def _download_url(self, document: BeautifulSoup, page_url: str) -> str | None:
        for link in document.select("a[href]"):
            href = str(link["href"]).strip()
            if href.endswith(_DOWNLOAD_SUFFIXES):
                if not page_url:
                    return href
                return self.resolve_href(page_url, href) or href
        return None

    def _sizing(self, document: BeautifulSoup) -> tuple[str | None, str | None]:
        sbu: str | None = None
        disk: str | None = None
        for seg in document.select(".segmentedlist .seg"):
            title_el = seg.select_one("strong.segtitle")
            body_el = seg.select_one("span.segbody")
            if title_el is None or body_el is None:
                continue
            title = title_el.get_text().lower()
            body = self.element_text(body_el)
            if "approximate build time" in title:
                sbu = body
            elif "required disk space" in title:
                disk = body
        return sbu, disk

    def _commands(self, document: BeautifulSoup, info: BuildInfo) -> None:
        for pre in document.select(self.profile.command_selector):
            text = self.pre_text(pre).strip()
            if text.startswith(_CONFIGURE_PREFIXES):
                info.configure_args = parse_configure_args(text)
                continue

            for line in (raw.strip() for raw in text.splitlines()):
                if line.startswith("make install"):
                    if line not in info.install_cmds:
                        info.install_cmds.append(line)
                elif line == "make" or line.startswith("make "):
                    if line not in info.build_cmds:
                        info.build_cmds.append(line)


def parse_configure_args(block: str) -> list[str]:
    """Return the arguments following the ``configure`` token of a command block.

    Backslash line continuations are joined first, so a two-line block
    continuing ``../configure --prefix=$LFS/tools`` with ``--disable-nls``
    yields ``["--prefix=$LFS/tools", "--disable-nls"]``.
    """
    joined = " ".join(line.rstrip().rstrip("\\").strip() for line in block.splitlines())
    tokens = joined.split()
    for idx, token in enumerate(tokens):
        if "configure" in token:
            return [t for t in tokens[idx + 1:] if t]
    return []
