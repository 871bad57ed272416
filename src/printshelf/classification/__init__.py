"""Category suggestion for staged downloads: fuzzy matching and LLM batches."""

from .engine import FuzzyCategorizer
from .errors import CategorizationError, CategorizationInProgressError, MissingAPIKeyError
from .llm import LLMCategorizer
from .models import (
    CategorizationProgress,
    CategorizationRequest,
    CategorySuggestion,
    Confidence,
)
from .service import CategorizationService

__all__ = [
    "FuzzyCategorizer",
    "LLMCategorizer",
    "CategorizationService",
    "CategorizationError",
    "CategorizationInProgressError",
    "MissingAPIKeyError",
    "CategorizationProgress",
    "CategorizationRequest",
    "CategorySuggestion",
    "Confidence",
]
