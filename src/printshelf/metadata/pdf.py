"""Metadata extraction from the PDF pages model sites let users save.

Links are pulled with ``pdftohtml`` and first-page text with ``pdftotext``
(both from poppler). Everything that can be derived without those tools, such
as platform detection and link classification, is plain string parsing.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Callable, List, Literal, Optional
from urllib.parse import unquote

from pydantic import BaseModel, Field

LOGGER = logging.getLogger(__name__)

SourcePlatform = Literal["makerworld", "printables", "thangs"]

LINK_TIMEOUT_SECONDS = 10
TEXT_TIMEOUT_SECONDS = 5
DESCRIPTION_LIMIT = 500

_HREF = re.compile(r'href="([^"]+)"')
_CC_LICENSE = re.compile(r"creativecommons\.org/licenses/([^/?#]+)/([^/?#]+)")

_DESIGNER_BY_PLATFORM: dict[Optional[str], re.Pattern[str]] = {
    "makerworld": re.compile(r"(?:Remixed )?by\s+(.+?)\s+MakerWorld", re.IGNORECASE),
    "printables": re.compile(r"by\s+(.+?)\s*\|"),
    "thangs": re.compile(r"by\s+(.+?)\s+on\s+Thangs", re.IGNORECASE),
    None: re.compile(r"by\s+(.+?)$", re.IGNORECASE),
}

_MAKERWORLD_SOURCE = re.compile(r"makerworld\.com/en/models/\d+")
_MAKERWORLD_PROFILE = re.compile(r"makerworld\.com/en/@")
_MAKERWORLD_TAG = re.compile(r"keyword=tag:%20([^&]+)")
_PRINTABLES_SOURCE = re.compile(r"printables\.com/model/\d+-[^/]+$")
_PRINTABLES_PROFILE = re.compile(r"printables\.com/@")
_THANGS_SOURCE = re.compile(r"thangs\.com/designer/[^/]+/3d-model/")
_THANGS_PROFILE = re.compile(r"thangs\.com/designer/[^/]+/?$")
_THANGS_DESIGNER = re.compile(r"thangs\.com/designer/([^/]+)")
_THANGS_TAG = re.compile(r"thangs\.com/tag/([^/?#]+)")
_AT_HANDLE = re.compile(r"/@([^/?#]+)")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class LinkMetadata(BaseModel):
    """Fields recovered from the hyperlinks embedded in a PDF."""

    source_platform: Optional[SourcePlatform] = None
    source_url: Optional[str] = None
    designer: Optional[str] = None
    designer_url: Optional[str] = None
    license: Optional[str] = None
    license_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    def add_tag(self, raw: str) -> None:
        tag = unquote(raw).lower().strip()
        if tag and tag not in self.tags:
            self.tags.append(tag)


class PdfMetadata(LinkMetadata):
    """Everything extracted from a PDF, including its description."""

    description: Optional[str] = None

    def as_row(self) -> dict[str, Optional[str]]:
        """Return the columns persisted in ``model_metadata``."""
        return self.model_dump(exclude={"tags"})


def detect_platform(filename: str) -> Optional[SourcePlatform]:
    """Return the site a PDF was saved from, judged by its filename."""
    lowered = filename.lower()
    if "makerworld" in lowered:
        return "makerworld"
    if "printables" in lowered:
        return "printables"
    if "thangs" in lowered:
        return "thangs"
    return None


def extract_designer_from_filename(
    filename: str, platform: Optional[SourcePlatform]
) -> Optional[str]:
    """Return the designer named in a saved page's filename, if any.

    >>> extract_designer_from_filename("Dragon by Jane Doe MakerWorld.pdf", "makerworld")
    'Jane Doe'
    """
    base = Path(filename).name
    if base.endswith(".pdf"):
        base = base[: -len(".pdf")]
    match = _DESIGNER_BY_PLATFORM[platform].search(base)
    return match.group(1).strip() if match else None


def parse_license_from_url(url: str) -> str:
    """Return a short license identifier such as ``CC-BY-NC-4.0`` for a Creative Commons URL."""
    match = _CC_LICENSE.search(url)
    if match:
        return f"CC-{match.group(1).upper()}-{match.group(2)}"
    if "public-domain" in url or "cc0" in url:
        return "CC-PD"
    return "CC"


def classify_links(links: List[str], platform: Optional[SourcePlatform]) -> LinkMetadata:
    """Sort hyperlinks into source, designer, license, and tag fields.

    The first Creative Commons link sets the license regardless of platform.
    Other links are interpreted with the URL conventions of ``platform``.

    Args:
        links: Hyperlink targets in document order.
        platform: Site the PDF was saved from, when known.

    Returns:
        LinkMetadata: Classified fields; unknown platforms only yield a license.
    """
    result = LinkMetadata(source_platform=platform)
    for link in links:
        if result.license_url is None and "creativecommons.org/licenses/" in link:
            result.license_url = link
            result.license = parse_license_from_url(link)
            continue
        if (
            result.license_url is None
            and "creativecommons.org/share-your-work/public-domain" in link
        ):
            result.license_url = link
            result.license = "CC-PD"
            continue

        if platform == "makerworld":
            _classify_makerworld(link, result)
        elif platform == "printables":
            _classify_printables(link, result)
        elif platform == "thangs":
            _classify_thangs(link, result)
    return result


def parse_description(text: str) -> Optional[str]:
    """Return the paragraph after a ``Description`` or ``Summary`` heading.

    Collection stops at the first blank line, at a short heading-like line, or
    once enough text has been gathered. Fragments of 20 characters or fewer are
    discarded.
    """
    for marker in ("Description\n", "Summary\n"):
        index = text.find(marker)
        if index == -1:
            continue
        lines: list[str] = []
        for line in text[index + len(marker) :].strip().split("\n"):
            stripped = line.strip()
            if not stripped and lines:
                break
            if lines and 0 < len(stripped) < 20 and not stripped.endswith((".", ",")):
                break
            if stripped:
                lines.append(stripped)
            if len(" ".join(lines)) > DESCRIPTION_LIMIT:
                break
        description = " ".join(lines)[:DESCRIPTION_LIMIT]
        if len(description) > 20:
            return description
    return None


def extract_links(path: Path, *, runner: Runner = subprocess.run) -> List[str]:
    """Return every ``href`` target in the PDF via ``pdftohtml``.

    Raises:
        OSError: If ``pdftohtml`` is not installed.
        subprocess.SubprocessError: If the tool fails or times out.
    """
    completed = runner(
        ["pdftohtml", "-stdout", "-noframes", "-i", str(path)],
        capture_output=True,
        text=True,
        timeout=LINK_TIMEOUT_SECONDS,
        check=True,
    )
    return _HREF.findall(completed.stdout)


def extract_text(path: Path, *, runner: Runner = subprocess.run) -> Optional[str]:
    """Return the PDF's first-page text via ``pdftotext``, or ``None`` on failure."""
    try:
        completed = runner(
            ["pdftotext", "-l", "1", str(path), "-"],
            capture_output=True,
            text=True,
            timeout=TEXT_TIMEOUT_SECONDS,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        LOGGER.debug("pdftotext failed for %s: %s", path, exc)
        return None
    return completed.stdout.strip() or None


class PdfMetadataReader:
    """Collect :class:`PdfMetadata` for a PDF file."""

    def __init__(self, *, runner: Runner = subprocess.run) -> None:
        self._runner = runner

    def read(self, path: Path) -> PdfMetadata:
        """Extract metadata from ``path``.

        Link extraction failures fall back to filename parsing; text extraction
        failures leave the description empty.
        """
        platform = detect_platform(path.name)
        try:
            links = extract_links(path, runner=self._runner)
        except (OSError, subprocess.SubprocessError) as exc:
            LOGGER.debug("pdftohtml failed for %s: %s", path, exc)
            links = []

        classified = classify_links(links, platform)
        if not classified.designer:
            classified.designer = extract_designer_from_filename(path.name, platform)

        text = extract_text(path, runner=self._runner)
        description = parse_description(text) if text else None
        return PdfMetadata(**classified.model_dump(), description=description)

    def read_text(self, path: Path) -> Optional[str]:
        """Return raw first-page text for use as categorization context."""
        return extract_text(path, runner=self._runner)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _classify_makerworld(link: str, result: LinkMetadata) -> None:
    if result.source_url is None and _MAKERWORLD_SOURCE.search(link):
        result.source_url = link
    if result.designer_url is None and _MAKERWORLD_PROFILE.search(link):
        result.designer_url = link
        handle = _AT_HANDLE.search(link)
        if handle:
            result.designer = unquote(handle.group(1))
    tag = _MAKERWORLD_TAG.search(link)
    if tag:
        result.add_tag(tag.group(1))


def _classify_printables(link: str, result: LinkMetadata) -> None:
    if result.source_url is None and _PRINTABLES_SOURCE.search(link):
        result.source_url = link
    if result.designer_url is None and _PRINTABLES_PROFILE.search(link):
        result.designer_url = link
        handle = _AT_HANDLE.search(link)
        if handle:
            result.designer = re.sub(r"_\d+$", "", unquote(handle.group(1)))


def _classify_thangs(link: str, result: LinkMetadata) -> None:
    if result.source_url is None and _THANGS_SOURCE.search(link):
        result.source_url = re.sub(r"/memberships/?$", "", link)
    if result.designer_url is None and _THANGS_PROFILE.search(link):
        result.designer_url = link
        designer = _THANGS_DESIGNER.search(link)
        if designer:
            result.designer = unquote(designer.group(1))
    if not result.designer:
        designer = _THANGS_DESIGNER.search(link)
        if designer:
            result.designer = unquote(designer.group(1))
    tag = _THANGS_TAG.search(link)
    if tag:
        result.add_tag(tag.group(1))


__all__ = [
    "SourcePlatform",
    "LinkMetadata",
    "PdfMetadata",
    "PdfMetadataReader",
    "detect_platform",
    "extract_designer_from_filename",
    "parse_license_from_url",
    "classify_links",
    "parse_description",
    "extract_links",
    "extract_text",
]
