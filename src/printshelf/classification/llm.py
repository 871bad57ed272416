"""LLM-backed category suggestions built on DSPy's language-model client."""

from __future__ import annotations

import json
import logging
import re
from typing import Callable, Iterator, Mapping, Optional, Sequence

import dspy

from printshelf.config.models import LLMSettings

from .models import CONFIDENCE_LEVELS, CategorizationRequest, CategorySuggestion

LOGGER = logging.getLogger(__name__)

Completion = Callable[[str], str]

EXCERPT_LIMIT = 300
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")

DEFAULT_PROMPT = (
    "You are categorizing 3D printing model files into an existing collection. "
    "The existing categories are:\n"
    "\n"
    "{categories}\n"
    "{descriptions}\n"
    "For each item below, suggest the best matching category from the list above. "
    'If none fit well, use "{default_category}". Also rate your confidence: '
    '"high" if you\'re quite sure, "medium" if it\'s a reasonable guess, '
    '"low" if you\'re unsure.\n'
    "\n"
    "Items to categorize:\n"
    "{items}\n"
    "\n"
    "Respond with ONLY a JSON array, one entry per item, in order:\n"
    '[{{"category": "...", "confidence": "high|medium|low"}}, ...]\n'
    "\n"
    "No explanation, just the JSON array."
)


class LLMCategorizer:
    """Ask a language model to place staged items into existing categories.

    Items are sent in batches. Each response is parsed leniently: entries that
    are missing or malformed come back as ``None`` so callers can fall back to
    the fuzzy tier for just those items.
    """

    def __init__(
        self,
        api_key: str,
        settings: LLMSettings,
        *,
        completion: Optional[Completion] = None,
        prompt_template: Optional[str] = None,
        default_category: str = "Uncategorized",
    ) -> None:
        self._settings = settings
        self._template = prompt_template or DEFAULT_PROMPT
        self._default_category = default_category
        self._completion = completion or self._build_completion(api_key)

    @property
    def batch_size(self) -> int:
        return self._settings.batch_size

    def batches(
        self, requests: Sequence[CategorizationRequest]
    ) -> Iterator[Sequence[CategorizationRequest]]:
        """Yield ``requests`` in slices of ``batch_size``."""
        size = max(1, self._settings.batch_size)
        for start in range(0, len(requests), size):
            yield requests[start : start + size]

    def categorize_batch(
        self,
        requests: Sequence[CategorizationRequest],
        categories: Sequence[str],
        descriptions: Optional[Mapping[str, str]] = None,
    ) -> list[Optional[CategorySuggestion]]:
        """Return one suggestion (or ``None``) per request, in input order.

        Raises:
            Exception: Whatever the underlying completion raises; callers treat
                a raised batch as failed and fall back to fuzzy matching.
        """
        prompt = self.build_prompt(requests, categories, descriptions or {})
        response = self._completion(prompt)
        return self.parse_response(response, len(requests))

    def build_prompt(
        self,
        requests: Sequence[CategorizationRequest],
        categories: Sequence[str],
        descriptions: Mapping[str, str],
    ) -> str:
        values = {
            "categories": ", ".join(categories),
            "descriptions": _describe_categories(categories, descriptions),
            "items": "\n".join(
                _describe_item(index, request) for index, request in enumerate(requests, start=1)
            ),
            "default_category": self._default_category,
        }
        try:
            return self._template.format(**values)
        except (KeyError, IndexError, ValueError) as exc:
            LOGGER.warning("Custom categorization prompt is invalid (%s); using the default.", exc)
            return DEFAULT_PROMPT.format(**values)

    def parse_response(self, text: str, count: int) -> list[Optional[CategorySuggestion]]:
        """Parse the first JSON array in ``text`` into ``count`` suggestions."""
        results: list[Optional[CategorySuggestion]] = [None] * count
        match = _JSON_ARRAY.search(text or "")
        if match is None:
            LOGGER.warning("No JSON array found in categorization response")
            return results
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Unable to parse categorization response: %s", exc)
            return results
        if not isinstance(parsed, list):
            return results

        for index, entry in enumerate(parsed[:count]):
            if not isinstance(entry, dict):
                continue
            category = str(entry.get("category") or "").strip() or self._default_category
            confidence = entry.get("confidence")
            results[index] = CategorySuggestion(
                category=category,
                confidence=confidence if confidence in CONFIDENCE_LEVELS else "low",
                source="llm",
            )
        return results

    def _build_completion(self, api_key: str) -> Completion:
        model = self._settings.model
        if "/" not in model and self._settings.provider:
            model = f"{self._settings.provider}/{model}"
        lm_kwargs: dict[str, object] = {
            "model": model,
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "api_key": api_key,
        }
        if self._settings.api_base_url:
            lm_kwargs["api_base"] = self._settings.api_base_url
        language_model = dspy.LM(**lm_kwargs)

        def _complete(prompt: str) -> str:
            outputs = language_model(prompt)
            if not outputs:
                return ""
            first = outputs[0]
            return first if isinstance(first, str) else str(first.get("text", ""))

        return _complete


def _describe_item(index: int, request: CategorizationRequest) -> str:
    kind = "folder" if request.is_folder else "file"
    plural = "" if request.file_count == 1 else "s"
    lines = [f'{index}. "{request.name}" ({kind}, {request.file_count} model file{plural})']
    if request.model_files:
        lines.append(f"   Files: {', '.join(request.model_files)}")
    if request.pdf_tags:
        lines.append(f"   Tags: {', '.join(request.pdf_tags)}")
    if request.designer:
        lines.append(f"   Designer: {request.designer}")
    if request.text:
        excerpt = " ".join(request.text.split())[:EXCERPT_LIMIT]
        lines.append(f"   Notes: {excerpt}")
    return "\n".join(lines)


def _describe_categories(categories: Sequence[str], descriptions: Mapping[str, str]) -> str:
    described = [
        f"- {category}: {descriptions[category]}"
        for category in categories
        if descriptions.get(category)
    ]
    if not described:
        return ""
    return "\nCategory descriptions:\n" + "\n".join(described) + "\n"


__all__ = ["LLMCategorizer", "Completion", "DEFAULT_PROMPT"]
