"""PDF metadata parsing tests using canned poppler output."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

from printshelf.metadata.pdf import (
    PdfMetadataReader,
    classify_links,
    detect_platform,
    extract_designer_from_filename,
    parse_description,
    parse_license_from_url,
)

MAKERWORLD_HTML = """
<a href="https://makerworld.com/en/models/12345#profileId-1">Dragon</a>
<a href="https://makerworld.com/en/@jane_doe">Jane</a>
<a href="https://makerworld.com/en/search/models?keyword=tag:%20Fantasy%20Art&amp;x=1">tag</a>
<a href="https://makerworld.com/en/search/models?keyword=tag:%20dragon">tag</a>
<a href="https://creativecommons.org/licenses/by-nc/4.0/">license</a>
"""

MAKERWORLD_TEXT = """Articulated Dragon
Description
A fully articulated dragon that prints in place without supports.
It takes about six hours.

Comments
"""


def _runner(outputs: dict[str, str], failing: frozenset[str] = frozenset()) -> Any:
    def _run(args: list[str], **_: Any) -> subprocess.CompletedProcess[str]:
        tool = args[0]
        if tool in failing:
            raise FileNotFoundError(tool)
        return subprocess.CompletedProcess(args, 0, stdout=outputs.get(tool, ""), stderr="")

    return _run


def test_detect_platform_from_filename() -> None:
    assert detect_platform("Dragon by Jane MakerWorld.pdf") == "makerworld"
    assert detect_platform("Vase by Bob | Printables.com.pdf") == "printables"
    assert detect_platform("Gear by Sam on Thangs.pdf") == "thangs"
    assert detect_platform("notes.pdf") is None


def test_extract_designer_from_filename_per_platform() -> None:
    assert extract_designer_from_filename("Dragon by Jane Doe MakerWorld.pdf", "makerworld") == (
        "Jane Doe"
    )
    assert (
        extract_designer_from_filename("Vase by Bob Smith | Printables.com.pdf", "printables")
        == "Bob Smith"
    )
    assert extract_designer_from_filename("Gear by Sam on Thangs.pdf", "thangs") == "Sam"
    assert extract_designer_from_filename("Gear by Sam.pdf", None) == "Sam"
    assert extract_designer_from_filename("Gear.pdf", None) is None


def test_parse_license_from_url() -> None:
    assert parse_license_from_url("https://creativecommons.org/licenses/by-sa/4.0/") == (
        "CC-BY-SA-4.0"
    )
    assert parse_license_from_url("https://creativecommons.org/publicdomain/zero/cc0") == "CC-PD"
    assert parse_license_from_url("https://example.com/license") == "CC"


def test_classify_links_for_printables() -> None:
    links = [
        "https://www.printables.com/@BobSmith_123456",
        "https://www.printables.com/model/98765-desk-vase",
        "https://creativecommons.org/licenses/by/4.0/",
    ]

    result = classify_links(links, "printables")

    assert result.source_url == "https://www.printables.com/model/98765-desk-vase"
    assert result.designer == "BobSmith"
    assert result.designer_url == "https://www.printables.com/@BobSmith_123456"
    assert result.license == "CC-BY-4.0"


def test_classify_links_for_thangs() -> None:
    links = [
        "https://thangs.com/designer/SamMakes/3d-model/gear-12345/memberships",
        "https://thangs.com/tag/mechanical",
    ]

    result = classify_links(links, "thangs")

    assert result.source_url == "https://thangs.com/designer/SamMakes/3d-model/gear-12345"
    assert result.designer == "SamMakes"
    assert result.tags == ["mechanical"]


def test_parse_description_stops_at_blank_line() -> None:
    description = parse_description(MAKERWORLD_TEXT)

    assert description == (
        "A fully articulated dragon that prints in place without supports. "
        "It takes about six hours."
    )
    assert parse_description("Description\nToo short\n") is None
    assert parse_description("No heading here") is None


def test_reader_combines_links_text_and_filename(tmp_path: Path) -> None:
    pdf = tmp_path / "Dragon by Jane Doe MakerWorld.pdf"
    pdf.write_bytes(b"%PDF-1.4")
    reader = PdfMetadataReader(
        runner=_runner({"pdftohtml": MAKERWORLD_HTML, "pdftotext": MAKERWORLD_TEXT})
    )

    metadata = reader.read(pdf)

    assert metadata.source_platform == "makerworld"
    assert metadata.source_url == "https://makerworld.com/en/models/12345#profileId-1"
    assert metadata.designer == "jane_doe"
    assert metadata.tags == ["fantasy art", "dragon"]
    assert metadata.license == "CC-BY-NC-4.0"
    assert metadata.description is not None
    assert "tags" not in metadata.as_row()


def test_reader_falls_back_to_filename_without_poppler(tmp_path: Path) -> None:
    pdf = tmp_path / "Dragon by Jane Doe MakerWorld.pdf"
    pdf.write_bytes(b"%PDF-1.4")
    reader = PdfMetadataReader(runner=_runner({}, failing=frozenset({"pdftohtml", "pdftotext"})))

    metadata = reader.read(pdf)

    assert metadata.designer == "Jane Doe"
    assert metadata.source_url is None
    assert metadata.description is None
    assert reader.read_text(pdf) is None
