"""Category suggestion tests for the fuzzy and LLM tiers."""

from __future__ import annotations

import json
from typing import Iterable, Mapping

import pytest

from printshelf.catalog.repository import CatalogRepository
from printshelf.catalog.settings import ANTHROPIC_API_KEY, CATEGORIZATION_PROMPT, SettingsStore
from printshelf.classification import (
    CategorizationRequest,
    CategorizationService,
    FuzzyCategorizer,
    LLMCategorizer,
    MissingAPIKeyError,
)
from printshelf.classification.text import SynonymIndex, normalize_phrase, tokenize
from printshelf.config.models import CategorizationSettings, LLMSettings

CATEGORIES = ["Art", "Garden", "Kitchen", "Toys"]


def _request(name: str, **extra: object) -> CategorizationRequest:
    return CategorizationRequest(
        key=f"/staging/{name}", name=name, **extra  # type: ignore[arg-type]
    )


def _fuzzy(hints: Mapping[str, int] | None = None) -> FuzzyCategorizer:
    def _lookup(tokens: Iterable[str]) -> Mapping[str, int]:
        return dict(hints or {})

    return FuzzyCategorizer(CategorizationSettings(), hint_lookup=_lookup)


def _settings_store() -> SettingsStore:
    return SettingsStore(CatalogRepository(":memory:"))


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def test_normalize_phrase_and_tokenize() -> None:
    assert normalize_phrase("Kitchen_Tools-(v2)") == "kitchen tools v2"
    assert tokenize("FreeDragonModel_v2.stl", ["free", "model", "stl"]) == ["dragon"]


def test_synonym_index_expands_groups() -> None:
    index = SynonymIndex([["toys", "toy", "figurine"]])

    assert index.expand(["figurine"]) == {"toys", "toy", "figurine"}
    assert index.expand(["dragon"]) == {"dragon"}


# ---------------------------------------------------------------------------
# Fuzzy tier
# ---------------------------------------------------------------------------


def test_exact_phrase_match_wins() -> None:
    suggestion = _fuzzy().suggest(_request("Kitchen Helpers"), CATEGORIES)

    assert suggestion.category == "Kitchen"
    assert suggestion.confidence == "high"
    assert suggestion.source == "exact"


def test_synonym_token_match_is_high_confidence() -> None:
    suggestion = _fuzzy().suggest(_request("Dragon_Figurine"), CATEGORIES)

    assert suggestion.category == "Toys"
    assert suggestion.confidence == "high"
    assert suggestion.source == "fuzzy"


def test_secondary_context_never_reaches_high_confidence() -> None:
    request = _request("Widget", model_files=["planter_base.stl"])

    suggestion = _fuzzy().suggest(request, CATEGORIES)

    assert suggestion.category == "Garden"
    assert suggestion.confidence == "medium"
    assert suggestion.score == pytest.approx(0.79)


def test_short_categories_only_match_their_phrase() -> None:
    fuzzy = _fuzzy()

    assert fuzzy.is_phrase_only("Art")
    assert fuzzy.suggest(_request("Dragon Head"), ["Art"]).category == "Uncategorized"
    assert fuzzy.suggest(_request("Wall Art Frame"), ["Art"]).category == "Art"


def test_exact_match_is_a_plain_substring() -> None:
    fuzzy = _fuzzy()

    suggestion = fuzzy.suggest(_request("ArtDeco Lamp"), ["Art"])

    assert suggestion.category == "Art"
    assert suggestion.source == "exact"
    assert fuzzy.suggest(_request("Cartoon Cat"), ["Art"]).category == "Art"


def test_learned_hints_break_ties() -> None:
    suggestion = _fuzzy({"Toys": 3, "Unknown": 9}).suggest(_request("Zorblax"), CATEGORIES)

    assert suggestion.category == "Toys"
    assert suggestion.confidence == "low"
    assert suggestion.source == "hint"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Kitchen Spice Rack", ("Kitchen", "high")),
        ("xyz123_widget", ("Uncategorized", "low")),
    ],
)
def test_suggestions_against_small_library(name: str, expected: tuple[str, str]) -> None:
    suggestion = _fuzzy().suggest(_request(name), ["Toys", "Kitchen", "Tools"])

    assert (suggestion.category, suggestion.confidence) == expected


def test_default_category_when_nothing_matches() -> None:
    suggestion = _fuzzy().suggest(_request("Zorblax"), CATEGORIES)

    assert suggestion.category == "Uncategorized"
    assert suggestion.source == "default"


# ---------------------------------------------------------------------------
# LLM tier
# ---------------------------------------------------------------------------


def test_parse_response_is_lenient() -> None:
    categorizer = LLMCategorizer("key", LLMSettings(), completion=lambda prompt: "")
    text = (
        "Sure! Here you go:\n"
        '[{"category": "Toys", "confidence": "high"}, {"category": "", "confidence": "sure"}]'
    )

    results = categorizer.parse_response(text, 3)

    assert results[0] is not None and results[0].category == "Toys"
    assert results[0].source == "llm"
    assert results[1] is not None
    assert results[1].category == "Uncategorized"
    assert results[1].confidence == "low"
    assert results[2] is None
    assert categorizer.parse_response("no json at all", 2) == [None, None]


def test_build_prompt_lists_items_and_descriptions() -> None:
    categorizer = LLMCategorizer("key", LLMSettings(), completion=lambda prompt: "")
    request = _request(
        "Dragon", file_count=2, model_files=["body.stl", "wing.stl"], designer="Jane"
    )

    prompt = categorizer.build_prompt([request], CATEGORIES, {"Toys": "Figures and fidgets"})

    assert '1. "Dragon" (folder, 2 model files)' in prompt
    assert "Files: body.stl, wing.stl" in prompt
    assert "Designer: Jane" in prompt
    assert "- Toys: Figures and fidgets" in prompt


def test_invalid_custom_prompt_falls_back_to_default() -> None:
    categorizer = LLMCategorizer(
        "key", LLMSettings(), completion=lambda prompt: "", prompt_template="{missing}"
    )

    prompt = categorizer.build_prompt([_request("Dragon")], CATEGORIES, {})

    assert "Respond with ONLY a JSON array" in prompt


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


def test_service_requires_api_key() -> None:
    service = CategorizationService(_fuzzy(), _settings_store(), LLMSettings())

    with pytest.raises(MissingAPIKeyError):
        service.run([_request("Dragon")], CATEGORIES)


def test_service_falls_back_to_fuzzy_for_failed_batches() -> None:
    prompts: list[str] = []

    def _complete(prompt: str) -> str:
        prompts.append(prompt)
        if "Broken" in prompt:
            raise RuntimeError("rate limited")
        return json.dumps([{"category": "Garden", "confidence": "medium"}])

    store = _settings_store()
    store.set(ANTHROPIC_API_KEY, "sk-test")
    service = CategorizationService(
        _fuzzy(), store, LLMSettings(batch_size=1), completion=_complete
    )
    seen: list[int] = []

    results = service.run(
        [_request("Pot Holder"), _request("Broken Toy")],
        CATEGORIES,
        on_progress=lambda progress: seen.append(progress.batches_processed),
    )

    assert len(prompts) == 2
    assert results["/staging/Pot Holder"].source == "llm"
    assert results["/staging/Pot Holder"].category == "Garden"
    assert results["/staging/Broken Toy"].source != "llm"
    assert results["/staging/Broken Toy"].category == "Toys"
    assert seen == [1, 2]
    progress = service.progress()
    assert progress.status == "complete"
    assert progress.used_llm
    assert not progress.active


def test_service_uses_stored_prompt_template() -> None:
    prompts: list[str] = []

    def _complete(prompt: str) -> str:
        prompts.append(prompt)
        return "[]"

    store = _settings_store()
    store.set(CATEGORIZATION_PROMPT, "Pick from {categories} for {items}")
    service = CategorizationService(
        _fuzzy(), store, LLMSettings(api_key="sk-config"), completion=_complete
    )

    results = service.run([_request("Dragon")], ["Toys"])

    assert prompts[0].startswith("Pick from Toys for")
    assert results["/staging/Dragon"].source == "default"
