"""Runtime key/value settings stored in the catalog ``config`` table."""

from __future__ import annotations

from typing import Optional

from .repository import CatalogRepository

INGESTION_DIRECTORY = "ingestion_directory"
ANTHROPIC_API_KEY = "anthropic_api_key"
CATEGORIZATION_PROMPT = "categorization_prompt"
MODEL_DIRECTORY = "model_directory"
FILE_WATCHER_ENABLED = "file_watcher_enabled"

KNOWN_KEYS = (
    INGESTION_DIRECTORY,
    ANTHROPIC_API_KEY,
    CATEGORIZATION_PROMPT,
    MODEL_DIRECTORY,
    FILE_WATCHER_ENABLED,
)

_SECRET_KEYS = frozenset({ANTHROPIC_API_KEY})


class SettingsStore:
    """Typed accessors over the string-valued settings table."""

    def __init__(self, repository: CatalogRepository) -> None:
        self._repository = repository

    def get(self, key: str) -> Optional[str]:
        return self._repository.get_setting(key)

    def set(self, key: str, value: str) -> None:
        self._repository.set_setting(key, value)

    def unset(self, key: str) -> None:
        self._repository.delete_setting(key)

    def get_bool(self, key: str) -> bool:
        return (self.get(key) or "").strip().lower() == "true"

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, "true" if value else "false")

    def items(self, *, mask_secrets: bool = True) -> dict[str, str]:
        """Return every stored setting, masking credentials unless asked not to."""
        values = self._repository.all_settings()
        if mask_secrets:
            for key in _SECRET_KEYS & values.keys():
                values[key] = mask_secret(values[key])
        return dict(sorted(values.items()))

    @property
    def model_directory(self) -> Optional[str]:
        return self.get(MODEL_DIRECTORY) or None

    @property
    def ingestion_directory(self) -> Optional[str]:
        return self.get(INGESTION_DIRECTORY) or None

    @property
    def watcher_enabled(self) -> bool:
        return self.get_bool(FILE_WATCHER_ENABLED)


def mask_secret(value: str) -> str:
    """Return ``value`` with all but its last four characters hidden.

    >>> mask_secret("sk-abcdef1234")
    '*********1234'
    """
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


__all__ = [
    "SettingsStore",
    "mask_secret",
    "INGESTION_DIRECTORY",
    "ANTHROPIC_API_KEY",
    "CATEGORIZATION_PROMPT",
    "MODEL_DIRECTORY",
    "FILE_WATCHER_ENABLED",
    "KNOWN_KEYS",
]
