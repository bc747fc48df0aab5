"""Harvester: one LFS-family package page → draft PackageMetadata.

Only the primary heading is mandatory. Every other extraction step degrades
to an entry in ``status.issues`` so an operator can finish the draft by hand.
"""

from __future__ import annotations

import hashlib
import logging
import re
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag

from lpkg.books import BookProfile, get_profile, stage_for_chapter
from lpkg.errors import HarvestError, LpkgError
from lpkg.metadata.manifest import ManifestCache, ManifestKind
from lpkg.metadata.models import (
    Artifacts,
    BuildPhase,
    Checksum,
    PackageInfo,
    PackageMetadata,
    Provenance,
    SourceInfo,
    SourceUrl,
    Status,
)
from lpkg.net import fetch_bytes
from lpkg.parsing.base import PageParser
from lpkg.parsing.text import (
    classify_artifact_url,
    classify_phase,
    is_archive_name,
    normalize_whitespace,
    parse_numeric,
    slugify,
    split_name_version,
)

logger = logging.getLogger(__name__)

ISSUE_NO_ANCHOR = "Could not locate anchor id for primary heading"
ISSUE_NO_SOURCES = "No source URLs with archive extensions detected"
ISSUE_NO_BUILD_STEPS = 'No <pre class="userinput"> blocks found for build commands'

_TAR_TOKEN = "tar -xf"


@dataclass
class HarvestResult:
    metadata: PackageMetadata
    slug: str

    @property
    def package_id(self) -> str:
        return self.metadata.package.id


# ------------------------------------------------------------------
# Page URL resolution
# ------------------------------------------------------------------


def resolve_page_url(book: str, page: str, base_url: str | None = None) -> str:
    """Turn *page* into an absolute URL.

    Absolute http(s) URLs pass through. Otherwise *page* is joined onto
    *base_url* (or the book's default base URL) and ``.html`` is appended
    when missing; an empty page means ``index.html``.
    """
    if page.startswith(("http://", "https://")):
        return page

    base = (base_url or get_profile(book).base_url).rstrip("/")
    page_path = page.lstrip("/") or "index.html"
    if not page_path.endswith(".html"):
        page_path += ".html"
    return f"{base}/{page_path}"


# ------------------------------------------------------------------
# Parser
# ------------------------------------------------------------------


class MetadataPageParser(PageParser):
    """Extract a draft :class:`PackageMetadata` from a package page.

    *manifests* is consulted for the wget-list fallback and for checksums;
    without it both lookups are skipped.
    """

    def __init__(
        self,
        book: str | BookProfile = "lfs",
        manifests: ManifestCache | None = None,
    ) -> None:
        super().__init__(book)
        self.manifests = manifests

    def parse(self, page: str | bytes, url: str) -> HarvestResult:
        """Parse *page* (raw body bytes, or already decoded text) fetched from *url*.

        ``provenance.content_hash`` is the SHA-256 of the raw body; text input
        is hashed as its UTF-8 encoding.
        """
        raw = page if isinstance(page, bytes) else page.encode("utf-8")
        document = self.soup(page)
        html = document.decode() if isinstance(page, bytes) else page

        heading_el = self.first_heading(document)
        if heading_el is None:
            raise HarvestError(f"No <{self.profile.heading_selector}> heading found on {url}")
        heading_text = self.element_text(heading_el)
        heading = self.parse_heading_element(heading_el)
        if heading is None:
            raise HarvestError(f"Unable to parse heading '{heading_text}' on {url}")

        name, version, variant = split_name_version(heading.title)
        slug_base = slugify(name)
        slug = f"{slug_base}-{slugify(variant)}" if variant else slug_base
        stage = stage_for_chapter(heading.chapter)

        anchor_id = self._locate_anchor(document, heading_el, slug_base, html)

        source_urls = self._collect_source_urls(document, url)
        archive = self._archive_from_commands(document) or _archive_from_urls(source_urls)

        if not source_urls:
            source_urls = self._fallback_urls(slug_base, version)
            if archive is None:
                archive = _archive_from_urls(source_urls)
            if archive is None:
                logger.warning(
                    "Unable to infer archive name from source URLs for %s %s", slug_base, version
                )

        checksums = self._resolve_checksums(archive)
        sbu, disk = self._extract_artifacts(document)
        steps = self._extract_build_steps(document)

        issues: list[str] = []
        if anchor_id is None:
            issues.append(ISSUE_NO_ANCHOR)
        if not source_urls:
            issues.append(ISSUE_NO_SOURCES)
        if not steps:
            issues.append(ISSUE_NO_BUILD_STEPS)

        body = document.find("body")
        book_release = str(body.get("id") or "") if isinstance(body, Tag) else ""

        metadata = PackageMetadata(
            package=PackageInfo(
                id=f"{self.book}/{slug}",
                name=name,
                version=version,
                book=self.book,
                chapter=heading.chapter,
                section=heading.label,
                stage=stage,
                variant=variant,
                anchors={"section": f"{url}#{anchor_id}"} if anchor_id else {},
            ),
            source=SourceInfo(urls=source_urls, archive=archive, checksums=checksums),
            artifacts=Artifacts(sbu=sbu, disk=disk),
            build=steps,
            provenance=Provenance(
                book_release=book_release,
                page_url=url,
                retrieved_at=datetime.now(timezone.utc).isoformat(),
                content_hash=hashlib.sha256(raw).hexdigest(),
            ),
            status=Status(state="draft", issues=issues),
        )
        return HarvestResult(metadata=metadata, slug=slug)

    # ------------------------------------------------------------------
    # Anchor resolution
    # ------------------------------------------------------------------

    def _locate_anchor(
        self, document: BeautifulSoup, heading: Tag, slug_base: str, html: str
    ) -> str | None:
        if heading.get("id"):
            return str(heading["id"])

        for child in heading.children:
            if isinstance(child, Tag):
                child_id = child.get("id") or child.get("name")
                if child_id:
                    return str(child_id)

        if slug_base:
            for anchor in document.select("a[id]"):
                anchor_id = str(anchor["id"])
                if slug_base in anchor_id:
                    return anchor_id

            match = re.search(rf'id="([^"]*{re.escape(slug_base)}[^"]*)"', html)
            if match:
                return match.group(1)
        return None

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _collect_source_urls(self, document: BeautifulSoup, page_url: str) -> list[SourceUrl]:
        seen: set[str] = set()
        results: list[SourceUrl] = []
        for link in document.find_all("a", href=True):
            href = str(link["href"])
            kind = classify_artifact_url(urllib.parse.urlparse(href).path)
            if kind is None:
                continue
            resolved = self.resolve_href(page_url, href)
            if resolved is None or resolved in seen:
                continue
            seen.add(resolved)
            results.append(SourceUrl(url=resolved, kind=kind))
        return results

    def _fallback_urls(self, slug_base: str, version: str) -> list[SourceUrl]:
        if self.manifests is None:
            return []
        try:
            manifest = self.manifests.load(self.book, ManifestKind.WGET_LIST)
        except LpkgError as exc:
            logger.warning("Failed to consult wget-list for %s %s: %s", slug_base, version, exc)
            return []

        needle = f"{slug_base.replace('_', '-')}-{version}"
        logger.debug("Searching wget-list for '%s'", needle)
        entries: list[SourceUrl] = []
        for line in manifest.splitlines():
            if needle not in line:
                continue
            candidate = line.strip()
            if urllib.parse.urlparse(candidate).scheme in ("http", "https", "ftp"):
                entries.append(SourceUrl(url=candidate, kind="primary"))
            else:
                logger.warning("Unable to parse URL from wget-list line: %s", candidate)
        if entries:
            logger.info("Using %d URL(s) from wget-list for %s %s", len(entries), slug_base, version)
        else:
            logger.warning("No wget-list entries matched '%s'", needle)
        return entries

    def _archive_from_commands(self, document: BeautifulSoup) -> str | None:
        for pre in document.select(self.profile.userinput_selector):
            for line in self.pre_text(pre).splitlines():
                start = line.find(_TAR_TOKEN)
                if start == -1:
                    continue
                parts = line[start + len(_TAR_TOKEN):].split()
                if not parts:
                    continue
                cleaned = parts[0].strip("\"',")
                if is_archive_name(cleaned):
                    while cleaned.startswith("../"):
                        cleaned = cleaned[3:]
                    return cleaned
        return None

    def _resolve_checksums(self, archive: str | None) -> list[Checksum]:
        if archive is None or self.manifests is None:
            return []
        try:
            manifest = self.manifests.load(self.book, ManifestKind.MD5SUMS)
        except LpkgError as exc:
            logger.warning("Failed to resolve checksums for %s: %s", archive, exc)
            return []

        for line in manifest.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[1] == archive:
                return [Checksum(alg="md5", value=parts[0].lower())]
        return []

    # ------------------------------------------------------------------
    # Sizing and build steps
    # ------------------------------------------------------------------

    def _extract_artifacts(self, document: BeautifulSoup) -> tuple[float | None, int | None]:
        sbu: float | None = None
        disk: int | None = None
        for seg in document.select("div.segmentedlist div.seg"):
            title_el = seg.select_one("strong.segtitle")
            body_el = seg.select_one("span.segbody")
            if title_el is None or body_el is None:
                continue
            title = normalize_whitespace(title_el.get_text())
            value = parse_numeric(normalize_whitespace(body_el.get_text()))
            if value is None:
                continue
            if "Approximate build time" in title:
                sbu = value
            elif "Required disk space" in title:
                disk = int(value)
        return sbu, disk

    def _extract_build_steps(self, document: BeautifulSoup) -> list[BuildPhase]:
        steps: list[BuildPhase] = []
        for pre in document.select(self.profile.userinput_selector):
            commands = [line.strip() for line in self.pre_text(pre).splitlines() if line.strip()]
            if not commands:
                continue
            steps.append(BuildPhase(phase=classify_phase(commands), commands=commands))
        return steps


def _archive_from_urls(urls: list[SourceUrl]) -> str | None:
    for entry in urls:
        segment = urllib.parse.urlparse(entry.url).path.rsplit("/", 1)[-1]
        if segment:
            return urllib.parse.unquote(segment)
    return None


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def harvest(
    book: str,
    page: str,
    base_url: str | None = None,
    *,
    manifests: ManifestCache | None = None,
    fetch: Callable[[str], str | bytes] | None = None,
) -> HarvestResult:
    """Fetch *page* of *book* and return its draft metadata.

    *fetch* defaults to :func:`lpkg.net.fetch_bytes`, so the content hash covers
    the body exactly as served.

    Raises:
        ConfigError: Unknown book.
        FetchError: The page could not be fetched.
        HarvestError: The primary heading is missing or unparseable.
    """
    book = book.lower()
    profile = get_profile(book)
    url = resolve_page_url(book, page, base_url)
    body = (fetch or fetch_bytes)(url)
    return MetadataPageParser(profile, manifests=manifests).parse(body, url)
