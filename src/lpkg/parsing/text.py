"""Shared heading / naming / command heuristics for every page parser."""

from __future__ import annotations

import re
from dataclasses import dataclass

_HEADING_RE = re.compile(r"^(?P<chapter>\d+)\.(?P<section>\d+)\.\s+(?P<title>.+)$")
_NUMERIC_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)")

_ARCHIVE_SUFFIXES = (".tar", ".tar.gz", ".tar.bz2", ".tar.xz", ".tgz", ".zip")
_PATCH_SUFFIXES = (".patch",)
_SIGNATURE_SUFFIXES = (".sig", ".asc")


@dataclass(frozen=True)
class Heading:
    """A parsed ``<chapter>.<section>. <title>`` heading."""

    chapter: int
    section: int
    title: str

    @property
    def label(self) -> str:
        return f"{self.chapter}.{self.section}"


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace (including U+00A0) to one space and trim."""
    return " ".join(text.replace("\u00a0", " ").split())


def slugify(text: str) -> str:
    """Lowercase ASCII alphanumerics joined by single dashes.

    >>> slugify("GCC 15.2.0 (multilib)")
    'gcc-15-2-0-multilib'
    """
    out: list[str] = []
    prev_dash = False
    for ch in text:
        if ch.isascii() and ch.isalnum():
            out.append(ch.lower())
            prev_dash = False
        elif not prev_dash:
            out.append("-")
            prev_dash = True
    return "".join(out).strip("-")


def parse_heading(text: str) -> Heading | None:
    """Parse a numbered heading; returns None when the numbering does not match."""
    match = _HEADING_RE.match(normalize_whitespace(text))
    if not match:
        return None
    return Heading(
        chapter=int(match["chapter"]),
        section=int(match["section"]),
        title=match["title"].strip(),
    )


def _version_split_index(text: str) -> int | None:
    """Index of the last '-' that is immediately followed by a digit."""
    for idx in range(len(text) - 1, -1, -1):
        if text[idx] == "-" and idx + 1 < len(text) and text[idx + 1].isdigit():
            name = text[:idx].strip()
            rest = text[idx + 1:].strip()
            if name and rest:
                return idx
    return None


def split_name_version(title: str) -> tuple[str, str, str | None]:
    """Split a package title into ``(name, version, variant)``.

    The version starts after the last ``-`` that is followed by a digit; a
    ``" - "`` suffix is the variant. Without a version, the whole title is the
    name and the version is ``"unknown"``.

    >>> split_name_version("Binutils-2.45 - Pass 1")
    ('Binutils', '2.45', 'Pass 1')
    >>> split_name_version("XML::Parser-2.47")
    ('XML::Parser', '2.47', None)
    """
    base = title.strip()
    variant: str | None = None
    if " - " in base:
        base, _, suffix = base.rpartition(" - ")
        base = base.strip()
        variant = suffix.strip() or None

    idx = _version_split_index(base)
    if idx is None:
        return base, "unknown", variant
    return base[:idx].strip(), base[idx + 1:].strip(), variant


def split_catalog_title(title: str) -> tuple[str, str, str | None] | None:
    """Catalog flavour of :func:`split_name_version`.

    Returns None for titles without a version (introductions, notes). A
    parenthesised suffix such as ``"(multilib)"`` counts as the variant when
    there is no ``" - "`` suffix, and so do words trailing the version
    (``"Linux-6.16.9 API Headers"``).
    """
    text = title.strip()
    idx = _version_split_index(text)
    if idx is None:
        return None
    name = text[:idx].strip()
    remainder = text[idx + 1:].strip()
    variant: str | None = None
    if " - " in remainder:
        remainder, _, suffix = remainder.partition(" - ")
        variant = suffix.strip()
    elif " (" in remainder:
        remainder, _, note = remainder.partition(" (")
        variant = note.rstrip(")").strip()
    elif " " in remainder:
        remainder, _, variant = remainder.partition(" ")
    return name, remainder.strip(), variant or None


def classify_phase(commands: list[str]) -> str:
    """Classify a command block into install / test / configure / setup / build."""
    joined = "\n".join(commands).lower()
    if "make install" in joined:
        return "install"
    if "make -k check" in joined or "make check" in joined:
        return "test"
    if "configure" in joined:
        return "configure"
    if "tar -xf" in joined or "mkdir " in joined:
        return "setup"
    return "build"


def parse_numeric(text: str) -> float | None:
    """Return the first integer or decimal number in *text*."""
    match = _NUMERIC_RE.search(text)
    return float(match.group(1)) if match else None


def classify_artifact_url(href: str) -> str | None:
    """Return primary / patch / signature for downloadable links, else None."""
    lower = href.lower()
    if lower.endswith(_ARCHIVE_SUFFIXES):
        return "primary"
    if lower.endswith(_PATCH_SUFFIXES):
        return "patch"
    if lower.endswith(_SIGNATURE_SUFFIXES):
        return "signature"
    return None


def is_archive_name(name: str) -> bool:
    return name.endswith((".tar", ".tgz", ".zip")) or ".tar." in name
