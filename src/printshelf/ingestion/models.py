"""Data models for staged downloads and their import results."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from printshelf.classification.models import (
    CategorizationRequest,
    CategorySuggestion,
    Confidence,
)


class IngestionItem(BaseModel):
    """A top-level entry of the staging directory.

    Attributes:
        filename: Entry name.
        filepath: Absolute path of the entry.
        is_folder: Whether the entry is a folder.
        file_count: Model and archive files contained in the entry.
        file_size: Combined size in bytes of those files.
        model_files: Model file names, capped for categorizer context.
        readme_excerpt: Leading text of a readme, if one was found.
        pdf_tags: Tags parsed from the first bundled PDF.
        pdf_designer: Designer parsed from the first bundled PDF.
        pdf_text: First-page text of the first bundled PDF.
        suggested_category: Category proposed by a categorizer.
        confidence: Confidence of the suggestion.
    """

    filename: str
    filepath: str
    is_folder: bool
    file_count: int = 0
    file_size: int = 0
    model_files: List[str] = Field(default_factory=list)
    readme_excerpt: Optional[str] = None
    pdf_tags: List[str] = Field(default_factory=list)
    pdf_designer: Optional[str] = None
    pdf_text: Optional[str] = None
    suggested_category: Optional[str] = None
    confidence: Optional[Confidence] = None

    @property
    def match_name(self) -> str:
        """Name used for matching: the folder name, or the file stem."""
        return self.filename if self.is_folder else Path(self.filename).stem

    def to_request(self) -> CategorizationRequest:
        text_parts = [part for part in (self.readme_excerpt, self.pdf_text) if part]
        return CategorizationRequest(
            key=self.filepath,
            name=self.match_name,
            is_folder=self.is_folder,
            file_count=self.file_count,
            model_files=list(self.model_files),
            pdf_tags=list(self.pdf_tags),
            designer=self.pdf_designer,
            text="\n".join(text_parts) or None,
        )

    def apply(self, suggestion: CategorySuggestion) -> None:
        self.suggested_category = suggestion.category
        self.confidence = suggestion.confidence


class IngestionScanResult(BaseModel):
    """Staged items with suggestions and which tier produced them."""

    directory: str
    items: List[IngestionItem] = Field(default_factory=list)
    used_llm: bool = False


class ImportItem(BaseModel):
    """A staged item the user has assigned to a category."""

    filepath: str = ""
    category: str = ""
    is_folder: Optional[bool] = None


class ImportResult(BaseModel):
    """Outcome of importing one staged item."""

    filepath: str
    filename: str
    success: bool
    error: Optional[str] = None
    model_id: Optional[int] = None
    target: Optional[str] = None


class ImportSummary(BaseModel):
    """Per-item import results plus totals."""

    results: List[ImportResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success)


__all__ = [
    "IngestionItem",
    "IngestionScanResult",
    "ImportItem",
    "ImportResult",
    "ImportSummary",
]
