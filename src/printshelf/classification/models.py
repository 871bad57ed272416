"""Data models shared by the category suggestion tiers."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Confidence = Literal["high", "medium", "low"]
SuggestionSource = Literal["exact", "fuzzy", "hint", "llm", "default"]

CONFIDENCE_LEVELS: tuple[Confidence, ...] = ("high", "medium", "low")


class CategorizationRequest(BaseModel):
    """Everything known about a staged item that can hint at its category.

    Attributes:
        key: Identity of the item, usually its path.
        name: Primary name (folder name or file stem).
        is_folder: Whether the item is a folder.
        file_count: Number of model/archive files in the item.
        model_files: Model file names inside the item.
        pdf_tags: Tags parsed from a bundled PDF.
        designer: Designer parsed from a bundled PDF.
        text: Readme or PDF excerpt.
    """

    key: str
    name: str
    is_folder: bool = True
    file_count: int = 0
    model_files: List[str] = Field(default_factory=list)
    pdf_tags: List[str] = Field(default_factory=list)
    designer: Optional[str] = None
    text: Optional[str] = None


class CategorySuggestion(BaseModel):
    """A suggested category and how much to trust it."""

    category: str
    confidence: Confidence
    score: float = 0.0
    source: SuggestionSource = "fuzzy"


class CategorizationProgress(BaseModel):
    """State of the single categorization run.

    Attributes:
        active: Whether a run is underway.
        status: ``idle``, ``running``, ``complete``, or ``failed``.
        items_total: Items submitted.
        items_processed: Items with a suggestion so far.
        batches_total: LLM batches planned.
        batches_processed: LLM batches finished, successfully or not.
        used_llm: Whether any suggestion came from the LLM.
        results: Suggestions keyed by request key.
        error: Failure message for a run that aborted.
    """

    active: bool = False
    status: Literal["idle", "running", "complete", "failed"] = "idle"
    items_total: int = 0
    items_processed: int = 0
    batches_total: int = 0
    batches_processed: int = 0
    used_llm: bool = False
    results: Dict[str, CategorySuggestion] = Field(default_factory=dict)
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


__all__ = [
    "Confidence",
    "SuggestionSource",
    "CONFIDENCE_LEVELS",
    "CategorizationRequest",
    "CategorySuggestion",
    "CategorizationProgress",
]
