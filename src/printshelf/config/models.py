"""Configuration models describing printshelf settings."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_NOISE_WORDS = [
    "free",
    "3d",
    "print",
    "model",
    "stl",
    "file",
    "files",
    "download",
    "printable",
    "printing",
    "printer",
    "printed",
    "the",
    "and",
    "for",
    "with",
    "from",
    "this",
    "that",
    "new",
    "set",
    "version",
    "design",
    "ready",
    "high",
    "quality",
    "low",
    "poly",
    "obj",
    "fbx",
    "gcode",
]

DEFAULT_SYNONYM_GROUPS = [
    ["toys", "toy", "figurine", "figurines", "miniature", "miniatures"],
    ["kitchen", "cooking", "utensil", "utensils", "cookware"],
    ["tools", "tool", "wrench", "jig", "clamp"],
    ["garden", "gardening", "planter", "planters", "plant", "pot"],
    ["storage", "organizer", "organiser", "container", "bin", "box"],
    ["holiday", "holidays", "christmas", "halloween", "easter"],
    ["games", "game", "boardgame", "tabletop", "dice"],
]


class PrintshelfBaseModel(BaseModel):
    """Shared configuration for printshelf Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class DatabaseSettings(PrintshelfBaseModel):
    """Relational store location.

    Attributes:
        path: SQLite database file. ``~`` is expanded when the catalog opens.
    """

    path: str = "~/.printshelf/catalog.db"


class LLMSettings(PrintshelfBaseModel):
    """LLM configuration options.

    Attributes:
        provider: Identifier for the language-model provider.
        model: Model name to target when issuing requests.
        temperature: Sampling temperature for generative calls.
        max_tokens: Maximum number of tokens in responses.
        batch_size: Number of items sent per categorization request.
        api_key: Optional credential overriding the stored ``anthropic_api_key`` setting.
        api_base_url: Optional custom endpoint for self-hosted gateways.
    """

    provider: str = "anthropic"
    model: str = "claude-3-5-haiku-latest"
    temperature: float = 0.0
    max_tokens: int = 4_000
    batch_size: int = Field(default=20, ge=1)
    api_key: Optional[str] = None
    api_base_url: Optional[str] = None


class ScanningOptions(PrintshelfBaseModel):
    """Options governing library traversal and indexing.

    Attributes:
        ignored_directories: Directory names never descended into.
        ignored_prefixes: Name prefixes that hide a directory from the scanner.
        container_prefix: Prefix marking a grouping folder that is never a model.
        paid_folder: Folder name holding designer subfolders of purchased models.
        original_folder: Folder name marking self-designed models.
        extract_archive_previews: Whether image-less models get previews from archives.
        dedupe_images: Whether visually identical images are hidden after a scan.
        extract_pdf_metadata: Whether PDFs bundled with models are parsed for metadata.
        read_finder_tags: Whether macOS Finder color tags are imported.
        trash_directory: Destination for trashed loose files.
    """

    ignored_directories: List[str] = Field(default_factory=lambda: ["node_modules"])
    ignored_prefixes: List[str] = Field(default_factory=lambda: [".", "!"])
    container_prefix: str = "~"
    paid_folder: str = "Paid"
    original_folder: str = "Original Creations"
    extract_archive_previews: bool = True
    dedupe_images: bool = True
    extract_pdf_metadata: bool = True
    read_finder_tags: bool = False
    trash_directory: str = "~/.printshelf/trash"


class WatchSettings(PrintshelfBaseModel):
    """Debounce settings for the library watcher.

    Attributes:
        debounce_seconds: Quiet period required before a sync scan starts.
        max_wait_seconds: Upper bound on how long continuous activity can delay a scan.
    """

    debounce_seconds: float = Field(default=20.0, ge=0)
    max_wait_seconds: float = Field(default=300.0, ge=0)


class CategorizationSettings(PrintshelfBaseModel):
    """Tunables for the fuzzy category matcher.

    Attributes:
        high_confidence_threshold: Token score at or above which a match is ``high``.
        secondary_score_cap: Ceiling applied to matches found only in secondary text.
        text_char_limit: Maximum characters of readme/PDF text considered.
        noise_words: Tokens ignored when comparing names against categories.
        synonym_groups: Groups of interchangeable tokens.
        phrase_only_categories: Categories that only match on their literal phrase.
        default_category: Category returned when nothing matches.
    """

    high_confidence_threshold: float = Field(default=0.8, ge=0, le=1)
    secondary_score_cap: float = Field(default=0.79, ge=0, le=1)
    text_char_limit: int = 2_000
    noise_words: List[str] = Field(default_factory=lambda: list(DEFAULT_NOISE_WORDS))
    synonym_groups: List[List[str]] = Field(
        default_factory=lambda: [list(group) for group in DEFAULT_SYNONYM_GROUPS]
    )
    phrase_only_categories: List[str] = Field(default_factory=list)
    default_category: str = "Uncategorized"


class IngestionOptions(PrintshelfBaseModel):
    """Staging directory options.

    Attributes:
        default_directory: Fallback staging directory when none is stored in the catalog.
        readme_char_limit: Maximum characters read from a readme for context.
        max_listed_model_files: Maximum model filenames forwarded to categorizers.
    """

    default_directory: Optional[str] = None
    readme_char_limit: int = 1_000
    max_listed_model_files: int = 20


class LoggingSettings(PrintshelfBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
        file: Log file location; ``None`` disables file logging.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 5
    file: Optional[str] = "~/.printshelf/printshelf.log"


class CLIOptions(PrintshelfBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class PrintshelfConfig(PrintshelfBaseModel):
    """Top-level configuration struct for printshelf.

    Attributes:
        database: Relational store settings.
        llm: Language model settings.
        scanning: Library traversal settings.
        watch: Watcher debounce settings.
        categorization: Fuzzy matcher tunables.
        ingestion: Staging directory settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    scanning: ScanningOptions = Field(default_factory=ScanningOptions)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    categorization: CategorizationSettings = Field(default_factory=CategorizationSettings)
    ingestion: IngestionOptions = Field(default_factory=IngestionOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "PrintshelfBaseModel",
    "DatabaseSettings",
    "LLMSettings",
    "ScanningOptions",
    "WatchSettings",
    "CategorizationSettings",
    "IngestionOptions",
    "LoggingSettings",
    "CLIOptions",
    "PrintshelfConfig",
    "DEFAULT_NOISE_WORDS",
    "DEFAULT_SYNONYM_GROUPS",
]
