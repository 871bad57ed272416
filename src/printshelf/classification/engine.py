"""Fuzzy category matching for staged model downloads.

Names are compared with the categories already present in the library. A
literal phrase match wins outright; otherwise each category is scored by how
many of its tokens appear among the item's tokens (expanded through synonym
groups). Secondary context such as model file names, PDF tags, and readme text
is scored the same way but can never reach high confidence on its own. When
nothing matches, counts learned from earlier imports break the tie.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping, Optional, Sequence

from printshelf.config.models import CategorizationSettings

from .models import CategorizationRequest, CategorySuggestion
from .text import SynonymIndex, normalize_phrase, raw_tokens, tokenize

LOGGER = logging.getLogger(__name__)

HintLookup = Callable[[Iterable[str]], Mapping[str, int]]

_PHRASE_TOKEN_LENGTH = 4


class FuzzyCategorizer:
    """Suggest categories without any network calls."""

    def __init__(
        self,
        settings: CategorizationSettings,
        hint_lookup: Optional[HintLookup] = None,
    ) -> None:
        self._settings = settings
        self._noise = frozenset(word.lower() for word in settings.noise_words)
        self._synonyms = SynonymIndex(settings.synonym_groups)
        self._phrase_only = frozenset(name.lower() for name in settings.phrase_only_categories)
        self._hint_lookup = hint_lookup

    @property
    def default_category(self) -> str:
        return self._settings.default_category

    def tokens(self, text: str) -> list[str]:
        """Return the tokens of ``text`` used for matching and hint learning."""
        return tokenize(text, self._noise)

    def suggest(
        self, request: CategorizationRequest, categories: Sequence[str]
    ) -> CategorySuggestion:
        """Return the best category for ``request`` among ``categories``.

        Args:
            request: Item to categorize.
            categories: Existing library categories.

        Returns:
            CategorySuggestion: Winning category with confidence and score.
        """
        primary_phrase = normalize_phrase(request.name)
        primary_tokens = self._synonyms.expand(self.tokens(request.name))
        secondary_tokens = self._synonyms.expand(self._secondary_tokens(request))

        best: Optional[tuple[bool, float, int, str]] = None
        for category in categories:
            phrase = normalize_phrase(category)
            if not phrase:
                continue
            exact = phrase in primary_phrase
            if exact:
                score = 1.0
            elif self.is_phrase_only(category):
                score = 0.0
            else:
                category_tokens = self.tokens(category)
                primary = _token_score(category_tokens, primary_tokens)
                secondary = min(
                    self._settings.secondary_score_cap,
                    _token_score(category_tokens, secondary_tokens),
                )
                score = max(primary, secondary)
            candidate = (exact, score, len(category), category)
            if best is None or candidate[:3] > best[:3]:
                best = candidate

        if best is not None and (best[0] or best[1] > 0):
            exact, score, _, category = best
            high = exact or score >= self._settings.high_confidence_threshold
            return CategorySuggestion(
                category=category,
                confidence="high" if high else "medium",
                score=score,
                source="exact" if exact else "fuzzy",
            )

        hinted = self._hinted_category(request.name, categories)
        if hinted is not None:
            return CategorySuggestion(category=hinted, confidence="low", source="hint")
        return CategorySuggestion(
            category=self._settings.default_category, confidence="low", source="default"
        )

    def is_phrase_only(self, category: str) -> bool:
        """Return True for categories that only match on their literal phrase."""
        if category.lower() in self._phrase_only:
            return True
        words = raw_tokens(category)
        return bool(words) and all(len(word) < _PHRASE_TOKEN_LENGTH for word in words)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _secondary_tokens(self, request: CategorizationRequest) -> list[str]:
        tokens: list[str] = []
        for filename in request.model_files:
            tokens.extend(self.tokens(filename))
        for tag in request.pdf_tags:
            tokens.extend(self.tokens(tag))
        if request.text:
            tokens.extend(self.tokens(request.text[: self._settings.text_char_limit]))
        return tokens

    def _hinted_category(self, name: str, categories: Sequence[str]) -> Optional[str]:
        if self._hint_lookup is None:
            return None
        tokens = self.tokens(name)
        if not tokens:
            return None
        known = set(categories)
        counts = {
            category: count
            for category, count in self._hint_lookup(tokens).items()
            if category in known and count > 0
        }
        if not counts:
            return None
        return max(counts, key=lambda category: (counts[category], len(category)))


def _token_score(category_tokens: Sequence[str], item_tokens: Iterable[str]) -> float:
    """Return the fraction of category tokens found among the item tokens."""
    if not category_tokens:
        return 0.0
    items = list(item_tokens)
    if not items:
        return 0.0
    matched = sum(
        1
        for wanted in category_tokens
        if any(wanted in token or token in wanted for token in items)
    )
    return matched / len(category_tokens)


__all__ = ["FuzzyCategorizer", "HintLookup"]
