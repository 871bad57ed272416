"""Background categorization runs combining the LLM and fuzzy tiers."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Sequence

from printshelf.catalog.settings import ANTHROPIC_API_KEY, CATEGORIZATION_PROMPT, SettingsStore
from printshelf.config.models import LLMSettings

from .engine import FuzzyCategorizer
from .errors import CategorizationInProgressError, MissingAPIKeyError
from .llm import Completion, LLMCategorizer
from .models import CategorizationProgress, CategorizationRequest, CategorySuggestion

LOGGER = logging.getLogger(__name__)


class CategorizationService:
    """Run LLM categorization with progress reporting and fuzzy fallback.

    Only one run may be active at a time. Items the LLM does not answer for,
    including every item of a failed batch, receive the fuzzy suggestion.
    """

    def __init__(
        self,
        fuzzy: FuzzyCategorizer,
        settings_store: SettingsStore,
        llm_settings: LLMSettings,
        *,
        completion: Optional[Completion] = None,
    ) -> None:
        self._fuzzy = fuzzy
        self._settings = settings_store
        self._llm_settings = llm_settings
        self._completion = completion
        self._lock = threading.Lock()
        self._progress = CategorizationProgress()
        self._thread: Optional[threading.Thread] = None

    def progress(self) -> CategorizationProgress:
        with self._lock:
            return self._progress.model_copy(deep=True)

    def api_key(self) -> Optional[str]:
        """Return the configured API key, preferring the application config."""
        return self._llm_settings.api_key or self._settings.get(ANTHROPIC_API_KEY) or None

    def run(
        self,
        requests: Sequence[CategorizationRequest],
        categories: Sequence[str],
        descriptions: Optional[Mapping[str, str]] = None,
        on_progress: Optional[Callable[[CategorizationProgress], None]] = None,
    ) -> dict[str, CategorySuggestion]:
        """Categorize ``requests`` synchronously.

        Raises:
            MissingAPIKeyError: If no API key is configured.
            CategorizationInProgressError: If another run is active.
        """
        categorizer = self._begin(requests)
        try:
            return self._execute(categorizer, requests, categories, descriptions, on_progress)
        except Exception as exc:
            self._fail(exc)
            raise

    def start(
        self,
        requests: Sequence[CategorizationRequest],
        categories: Sequence[str],
        descriptions: Optional[Mapping[str, str]] = None,
    ) -> threading.Thread:
        """Categorize ``requests`` on a background thread; poll :meth:`progress`.

        Raises:
            MissingAPIKeyError: If no API key is configured.
            CategorizationInProgressError: If another run is active.
        """
        categorizer = self._begin(requests)

        def _target() -> None:
            try:
                self._execute(categorizer, requests, categories, descriptions, None)
            except Exception as exc:  # pragma: no cover
                self._fail(exc)

        thread = threading.Thread(target=_target, name="printshelf-categorize", daemon=True)
        self._thread = thread
        thread.start()
        return thread

    def wait(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _begin(self, requests: Sequence[CategorizationRequest]) -> LLMCategorizer:
        api_key = self.api_key()
        if not api_key:
            raise MissingAPIKeyError(
                "No API key configured. Set it with "
                "`printshelf settings set anthropic_api_key <key>` or `llm.api_key`."
            )
        with self._lock:
            if self._progress.active:
                raise CategorizationInProgressError()
            categorizer = LLMCategorizer(
                api_key,
                self._llm_settings,
                completion=self._completion,
                prompt_template=self._settings.get(CATEGORIZATION_PROMPT),
                default_category=self._fuzzy.default_category,
            )
            size = max(1, categorizer.batch_size)
            self._progress = CategorizationProgress(
                active=True,
                status="running",
                items_total=len(requests),
                batches_total=(len(requests) + size - 1) // size,
                started_at=datetime.now(timezone.utc),
            )
        return categorizer

    def _execute(
        self,
        categorizer: LLMCategorizer,
        requests: Sequence[CategorizationRequest],
        categories: Sequence[str],
        descriptions: Optional[Mapping[str, str]],
        on_progress: Optional[Callable[[CategorizationProgress], None]],
    ) -> dict[str, CategorySuggestion]:
        results: dict[str, CategorySuggestion] = {}
        for batch in categorizer.batches(requests):
            try:
                answers = categorizer.categorize_batch(batch, categories, descriptions)
            except Exception as exc:
                LOGGER.warning("Categorization batch failed; using fuzzy matching: %s", exc)
                answers = [None] * len(batch)

            used_llm = False
            for request, answer in zip(batch, answers):
                if answer is None:
                    answer = self._fuzzy.suggest(request, categories)
                else:
                    used_llm = True
                results[request.key] = answer

            with self._lock:
                self._progress.batches_processed += 1
                self._progress.items_processed = len(results)
                self._progress.used_llm = self._progress.used_llm or used_llm
                self._progress.results = dict(results)
            if on_progress is not None:
                on_progress(self.progress())

        with self._lock:
            self._progress.active = False
            self._progress.status = "complete"
            self._progress.completed_at = datetime.now(timezone.utc)
        LOGGER.info("Categorized %d items", len(results))
        return results

    def _fail(self, exc: Exception) -> None:
        LOGGER.error("Categorization failed: %s", exc)
        with self._lock:
            self._progress.active = False
            self._progress.status = "failed"
            self._progress.error = str(exc)
            self._progress.completed_at = datetime.now(timezone.utc)


__all__ = ["CategorizationService"]
