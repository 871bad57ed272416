"""Command line interface for the printshelf catalog."""

from __future__ import annotations

import difflib
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.syntax import Syntax
from rich.table import Table

from printshelf.catalog.errors import (
    CatalogError,
    InvariantViolationError,
    RecordNotFoundError,
)
from printshelf.catalog.settings import (
    ANTHROPIC_API_KEY,
    FILE_WATCHER_ENABLED,
    INGESTION_DIRECTORY,
    KNOWN_KEYS,
    MODEL_DIRECTORY,
    mask_secret,
)
from printshelf.classification.errors import (
    CategorizationInProgressError,
    MissingAPIKeyError,
)
from printshelf.classification.models import CONFIDENCE_LEVELS, CategorizationProgress
from printshelf.config import ConfigError, ConfigManager
from printshelf.config.models import PrintshelfConfig
from printshelf.context import AppContext
from printshelf.errors import PrintshelfError
from printshelf.ingestion.errors import IngestionConfigurationError
from printshelf.ingestion.models import ImportItem, IngestionScanResult
from printshelf.logging_setup import configure_logging
from printshelf.organization.errors import ImportConflictError, OrganizationError
from printshelf.scanning.errors import ScanConfigurationError, ScanInProgressError
from printshelf.scanning.models import ScanMode

console = Console()

_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (ScanInProgressError, "scan_in_progress"),
    (CategorizationInProgressError, "categorization_in_progress"),
    (MissingAPIKeyError, "missing_api_key"),
    (ScanConfigurationError, "config_error"),
    (IngestionConfigurationError, "config_error"),
    (ConfigError, "config_error"),
    (ImportConflictError, "conflict"),
    (OrganizationError, "organization_error"),
    (InvariantViolationError, "invariant_violation"),
    (RecordNotFoundError, "not_found"),
    (CatalogError, "catalog_error"),
)

_DIRECTORY_KEYS = frozenset({MODEL_DIRECTORY, INGESTION_DIRECTORY})
_BOOLEAN_KEYS = frozenset({FILE_WATCHER_ENABLED})


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _error_code(exc: Exception) -> str:
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "error"


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _output_modes(
    ctx: click.Context,
    config: PrintshelfConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Resolve quiet/summary flags against configured defaults.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` values.

    Raises:
        click.ClickException: If the flags conflict.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _load_config(json_output: bool) -> PrintshelfConfig:
    try:
        manager = ConfigManager()
        manager.ensure_exists()
        config = manager.load()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        raise
    configure_logging(config.logging)
    return config


@contextmanager
def _app_context(json_output: bool) -> Iterator[AppContext]:
    """Yield a fully wired :class:`AppContext`, translating domain errors."""
    config = _load_config(json_output)
    try:
        app = AppContext.build(config)
    except PrintshelfError as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=json_output, original=exc)
        raise
    try:
        yield app
    except (PrintshelfError, ValueError) as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=json_output, original=exc)
    finally:
        app.close()


def _require_model_directory(app: AppContext) -> Path:
    directory = app.settings.model_directory
    if not directory:
        raise ScanConfigurationError(
            "Model directory not configured. Run `printshelf scan PATH` or "
            "`printshelf settings set model_directory PATH`."
        )
    return Path(directory).expanduser()


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="printshelf")
def cli() -> None:
    """Printshelf catalogs a folder tree of 3D-printable models."""


# ---------------------------------------------------------------------- #
# Scanning                                                               #
# ---------------------------------------------------------------------- #


@cli.command()
@click.argument(
    "path", required=False, type=click.Path(exists=True, file_okay=False, path_type=str)
)
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in ScanMode]),
    default=ScanMode.FULL_SYNC.value,
    show_default=True,
    help="full rebuilds, full_sync reconciles, add_only only adds new folders.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the scan summary as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(
    ctx: click.Context,
    path: str | None,
    mode: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Index the model library at PATH (saved for later runs) or the saved directory.

    Args:
        ctx: Click context for parameter source inspection.
        path: Optional library root; stored as the model directory when given.
        mode: Scan mode name.
        json_output: When True, emit JSON instead of textual output.
        summary_mode: When True, restrict output to summary lines and warnings.
        quiet: When True, suppress non-error output entirely.
    """
    with _app_context(json_output) as app:
        quiet_enabled, summary_only = _output_modes(
            ctx, app.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        if path is not None:
            root = Path(path).expanduser().resolve()
            app.settings.set(MODEL_DIRECTORY, str(root))
        else:
            root = _require_model_directory(app)

        scan_mode = ScanMode(mode)
        if json_output or quiet_enabled:
            summary = app.scanner.scan(root, scan_mode)
        else:
            with ThreadPoolExecutor(max_workers=1) as pool:
                future = pool.submit(app.scanner.scan, root, scan_mode)
                with console.status(f"Scanning {root} ({scan_mode.value})...") as status:
                    while not future.done():
                        progress = app.scanner.progress()
                        if progress.step_description:
                            status.update(
                                f"{progress.step_description} [{progress.overall_progress}%]"
                            )
                        time.sleep(0.2)
                summary = future.result()

        if json_output:
            console.print_json(data={"root": str(root), "summary": summary.model_dump(mode="json")})
            return

        metrics = summary.model_dump(mode="json")
        metrics.pop("mode")
        _emit_message(
            _format_summary_line(f"Scan ({scan_mode.value})", root, metrics),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )


@cli.command()
@click.argument("model_id", type=int)
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
def rescan(model_id: int, json_output: bool) -> None:
    """Re-index a single model folder in place."""
    with _app_context(json_output) as app:
        root = _require_model_directory(app)
        result = app.scanner.rescan_model(model_id, root)
        if json_output:
            console.print_json(data={"model_id": model_id, "indexed": result is not None})
            return
        if result is None:
            console.print(f"[yellow]Model {model_id} no longer holds any model files.[/yellow]")
        else:
            console.print(f"[green]Re-indexed model {model_id}.[/green]")


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit status information as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def status(ctx: click.Context, json_output: bool, summary_mode: bool, quiet: bool) -> None:
    """Display catalog totals, watcher setting, and configured directories."""
    with _app_context(json_output) as app:
        quiet_enabled, summary_only = _output_modes(
            ctx, app.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        stats = app.library.stats()
        directories = {
            "model_directory": app.settings.model_directory,
            "ingestion_directory": (
                app.settings.ingestion_directory or app.config.ingestion.default_directory
            ),
            "database": app.repository.path,
        }
        watcher_enabled = app.settings.watcher_enabled

        if json_output:
            console.print_json(
                data={
                    "counts": stats.model_dump(mode="json"),
                    "watcher_enabled": watcher_enabled,
                    "directories": directories,
                }
            )
            return

        table = Table(title="Catalog status")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_row("Models", str(stats.models))
        table.add_row("Soft-deleted models", str(stats.deleted_models))
        table.add_row("Model files", str(stats.model_files))
        table.add_row("Favorites", str(stats.favorites))
        table.add_row("Printed", str(stats.printed))
        table.add_row("Queued", str(stats.queued))
        table.add_row("Loose files", str(stats.loose_files))
        table.add_row("Categories", str(len(stats.categories)))
        table.add_row("Watcher", "enabled" if watcher_enabled else "disabled")
        for label, value in directories.items():
            table.add_row(label.replace("_", " ").capitalize(), value or "-")
        _emit_message(table, mode="detail", quiet=quiet_enabled, summary_only=summary_only)
        _emit_message(
            _format_summary_line(
                "Status",
                directories["model_directory"] or "(no library)",
                {"models": stats.models, "loose_files": stats.loose_files},
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )


# ---------------------------------------------------------------------- #
# Watching                                                               #
# ---------------------------------------------------------------------- #


@cli.command()
@click.argument(
    "path", required=False, type=click.Path(exists=True, file_okay=False, path_type=str)
)
def watch(path: str | None) -> None:
    """Watch the library in the foreground and sync it after changes settle."""
    with _app_context(False) as app:
        if path is not None:
            root = Path(path).expanduser().resolve()
            app.settings.set(MODEL_DIRECTORY, str(root))
        else:
            root = _require_model_directory(app)
        app.watcher.start(root)
        console.print(f"[cyan]Watching {root}. Press Ctrl+C to stop.[/cyan]")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            console.print("[yellow]Watch stopped by user request.[/yellow]")
        finally:
            app.watcher.stop()


@cli.group()
def watcher() -> None:
    """Manage the persisted file watcher setting."""


@watcher.command("enable")
def watcher_enable() -> None:
    """Enable automatic syncing for long-running sessions."""
    with _app_context(False) as app:
        app.settings.set_bool(FILE_WATCHER_ENABLED, True)
        console.print("[green]File watcher enabled.[/green]")


@watcher.command("disable")
def watcher_disable() -> None:
    """Disable automatic syncing."""
    with _app_context(False) as app:
        app.settings.set_bool(FILE_WATCHER_ENABLED, False)
        console.print("[green]File watcher disabled.[/green]")


@watcher.command("status")
@click.option("--json", "json_output", is_flag=True, help="Emit the watcher setting as JSON.")
def watcher_status(json_output: bool) -> None:
    """Show whether the watcher is enabled and what it would watch."""
    with _app_context(json_output) as app:
        payload = {
            "enabled": app.settings.watcher_enabled,
            "model_directory": app.settings.model_directory,
            "debounce_seconds": app.config.watch.debounce_seconds,
            "max_wait_seconds": app.config.watch.max_wait_seconds,
        }
        if json_output:
            console.print_json(data=payload)
            return
        state = "enabled" if payload["enabled"] else "disabled"
        console.print(f"Watcher {state}; library: {payload['model_directory'] or '-'}")
        console.print(
            f"Debounce {payload['debounce_seconds']}s, max wait {payload['max_wait_seconds']}s"
        )


# ---------------------------------------------------------------------- #
# Ingestion                                                              #
# ---------------------------------------------------------------------- #


def _render_ingestion(result: IngestionScanResult, *, json_output: bool, title: str) -> None:
    if json_output:
        console.print_json(data=result.model_dump(mode="json"))
        return
    if not result.items:
        console.print(f"[yellow]Nothing to import in {result.directory}.[/yellow]")
        return
    table = Table(title=f"{title} ({result.directory})")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Files", justify="right")
    table.add_column("Suggested category")
    table.add_column("Confidence")
    for item in result.items:
        table.add_row(
            item.filename,
            "folder" if item.is_folder else "file",
            str(item.file_count),
            item.suggested_category or "-",
            item.confidence or "-",
        )
    console.print(table)


@cli.group()
def ingest() -> None:
    """Review and import downloads waiting in the staging directory."""


@ingest.command("scan")
@click.option("--json", "json_output", is_flag=True, help="Emit staged items as JSON.")
def ingest_scan(json_output: bool) -> None:
    """List staged items with fuzzy category suggestions (no API calls)."""
    with _app_context(json_output) as app:
        _render_ingestion(app.ingestion.scan(), json_output=json_output, title="Staged items")


@ingest.command("categorize")
@click.option("--json", "json_output", is_flag=True, help="Emit staged items as JSON.")
def ingest_categorize(json_output: bool) -> None:
    """Ask the language model to categorize staged items, in batches."""
    with _app_context(json_output) as app:
        if json_output:
            result = app.ingestion.categorize()
        else:
            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total} batches"),
                console=console,
            ) as progress:
                task = progress.add_task("Categorizing", total=None)

                def _update(state: CategorizationProgress) -> None:
                    progress.update(
                        task, total=state.batches_total, completed=state.batches_processed
                    )

                result = app.ingestion.categorize(on_progress=_update)
        _render_ingestion(result, json_output=json_output, title="LLM suggestions")
        if not json_output and result.items and not result.used_llm:
            console.print(
                "[yellow]The language model gave no answers; showing fuzzy matches.[/yellow]"
            )


@ingest.command("import")
@click.option(
    "--assign",
    "assignments",
    type=(str, str),
    multiple=True,
    metavar="PATH CATEGORY",
    help="Import PATH into CATEGORY. Repeatable.",
)
@click.option(
    "--accept",
    type=click.Choice(list(CONFIDENCE_LEVELS)),
    default=None,
    help="Also import every staged item whose fuzzy suggestion is at least this confident.",
)
@click.option(
    "--folder/--file",
    "is_folder",
    default=None,
    help="Treat assigned paths as folders or files (inferred by default).",
)
@click.option("--json", "json_output", is_flag=True, help="Emit import results as JSON.")
def ingest_import(
    assignments: tuple[tuple[str, str], ...],
    accept: str | None,
    is_folder: bool | None,
    json_output: bool,
) -> None:
    """Move staged items into the library and index them."""
    if not assignments and accept is None:
        raise click.ClickException("Provide at least one --assign PATH CATEGORY or --accept.")

    with _app_context(json_output) as app:
        items = [
            ImportItem(
                filepath=str(Path(path).expanduser().resolve()) if path else "",
                category=category,
                is_folder=is_folder,
            )
            for path, category in assignments
        ]
        if accept is not None:
            allowed = CONFIDENCE_LEVELS[: CONFIDENCE_LEVELS.index(accept) + 1]
            assigned = {item.filepath for item in items}
            for staged in app.ingestion.scan().items:
                if staged.filepath in assigned or staged.confidence not in allowed:
                    continue
                if staged.suggested_category:
                    items.append(
                        ImportItem(
                            filepath=staged.filepath,
                            category=staged.suggested_category,
                            is_folder=staged.is_folder,
                        )
                    )

        summary = app.ingestion.import_items(items)
        if json_output:
            console.print_json(
                data={
                    "results": [result.model_dump(mode="json") for result in summary.results],
                    "summary": {"succeeded": summary.succeeded, "failed": summary.failed},
                }
            )
            return

        for result in summary.results:
            if result.success:
                console.print(f"[green]Imported {result.filename} -> {result.target}[/green]")
            else:
                console.print(f"[red]Failed {result.filename or '(unnamed)'}: {result.error}[/red]")
        console.print(
            _format_summary_line(
                "Import",
                app.settings.model_directory or "",
                {"succeeded": summary.succeeded, "failed": summary.failed},
            )
        )


# ---------------------------------------------------------------------- #
# Runtime settings and categories                                        #
# ---------------------------------------------------------------------- #


@cli.group()
def settings() -> None:
    """Read and write runtime settings stored in the catalog."""


@settings.command("list")
@click.option("--reveal", is_flag=True, help="Show secrets in full.")
@click.option("--json", "json_output", is_flag=True, help="Emit settings as JSON.")
def settings_list(reveal: bool, json_output: bool) -> None:
    """Show every stored setting."""
    with _app_context(json_output) as app:
        values = app.settings.items(mask_secrets=not reveal)
        if json_output:
            console.print_json(data=values)
            return
        if not values:
            console.print("[yellow]No settings stored.[/yellow]")
            return
        for key, value in values.items():
            console.print(f"{key} = {value}")


@settings.command("get")
@click.argument("key")
@click.option("--reveal", is_flag=True, help="Show secrets in full.")
def settings_get(key: str, reveal: bool) -> None:
    """Print the value stored for KEY."""
    with _app_context(False) as app:
        value = app.settings.get(key)
        if value is None:
            raise click.ClickException(f"Setting '{key}' is not set.")
        click.echo(mask_secret(value) if key == ANTHROPIC_API_KEY and not reveal else value)


@settings.command("set")
@click.argument("key", type=click.Choice(list(KNOWN_KEYS)))
@click.argument("value")
def settings_set(key: str, value: str) -> None:
    """Store VALUE under KEY."""
    with _app_context(False) as app:
        if key in _DIRECTORY_KEYS:
            directory = Path(value).expanduser().resolve()
            if not directory.is_dir():
                raise click.ClickException(f"Directory does not exist: {directory}")
            value = str(directory)
        elif key in _BOOLEAN_KEYS:
            lowered = value.strip().lower()
            if lowered not in {"true", "false"}:
                raise click.ClickException(f"{key} must be 'true' or 'false'.")
            value = lowered
        app.settings.set(key, value)
        shown = mask_secret(value) if key == ANTHROPIC_API_KEY else value
        console.print(f"[green]Set {key} = {shown}[/green]")


@settings.command("unset")
@click.argument("key")
def settings_unset(key: str) -> None:
    """Remove KEY from the settings table."""
    with _app_context(False) as app:
        app.settings.unset(key)
        console.print(f"[green]Removed {key}.[/green]")


@cli.group()
def categories() -> None:
    """Inspect library categories and their descriptions."""


@categories.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit categories as JSON.")
def categories_list(json_output: bool) -> None:
    """List categories present in the catalog."""
    with _app_context(json_output) as app:
        names = app.library.categories()
        descriptions = app.repository.category_descriptions()
        if json_output:
            console.print_json(
                data={
                    "categories": [
                        {"name": name, "description": descriptions.get(name)} for name in names
                    ]
                }
            )
            return
        table = Table(title="Categories")
        table.add_column("Category")
        table.add_column("Description")
        for name in names:
            table.add_row(name, descriptions.get(name, ""))
        console.print(table)


@categories.command("describe")
@click.argument("category")
@click.argument("description", required=False, default="")
def categories_describe(category: str, description: str) -> None:
    """Set (or clear, when DESCRIPTION is omitted) the description sent to the language model."""
    with _app_context(False) as app:
        app.repository.set_category_description(category, description.strip() or None)
        if description.strip():
            console.print(f"[green]Described {category}.[/green]")
        else:
            console.print(f"[green]Cleared description for {category}.[/green]")


# ---------------------------------------------------------------------- #
# Library operations                                                     #
# ---------------------------------------------------------------------- #


@cli.group()
def model() -> None:
    """Annotate catalogued models."""


@model.command("favorite")
@click.argument("model_id", type=int)
@click.option("--remove", is_flag=True, help="Remove from favorites instead.")
def model_favorite(model_id: int, remove: bool) -> None:
    """Add MODEL_ID to (or remove it from) favorites."""
    with _app_context(False) as app:
        if remove:
            changed = app.library.remove_favorite(model_id)
        else:
            changed = app.library.add_favorite(model_id)
        verb = "Removed" if remove else "Added"
        if changed:
            console.print(f"[green]{verb} favorite {model_id}.[/green]")
        else:
            console.print("[yellow]No change.[/yellow]")


@model.command("queue")
@click.argument("model_id", type=int)
@click.option("--priority", type=int, default=0, show_default=True)
@click.option("--remove", is_flag=True, help="Remove from the print queue instead.")
def model_queue(model_id: int, priority: int, remove: bool) -> None:
    """Add MODEL_ID to (or remove it from) the print queue."""
    with _app_context(False) as app:
        if remove:
            changed = app.library.dequeue(model_id)
        else:
            changed = app.library.enqueue(model_id, priority=priority)
        if changed:
            console.print(f"[green]{'Dequeued' if remove else 'Queued'} {model_id}.[/green]")
        else:
            console.print("[yellow]No change.[/yellow]")


@model.command("printed")
@click.argument("model_id", type=int)
@click.option("--rating", type=click.Choice(["good", "bad"]), default=None)
@click.option("--notes", type=str, default=None)
@click.option("--undo", is_flag=True, help="Remove every print record instead.")
def model_printed(model_id: int, rating: str | None, notes: str | None, undo: bool) -> None:
    """Record that MODEL_ID was printed; it leaves the print queue."""
    with _app_context(False) as app:
        if undo:
            removed = app.library.unmark_printed(model_id)
            console.print(
                f"[green]Cleared prints for {model_id}.[/green]"
                if removed
                else "[yellow]No change.[/yellow]"
            )
            return
        app.library.mark_printed(model_id, rating, notes)  # type: ignore[arg-type]
        console.print(f"[green]Marked {model_id} as printed.[/green]")


@model.command("tag")
@click.argument("model_id", type=int)
@click.argument("tag")
@click.option("--remove", is_flag=True, help="Remove the tag instead.")
def model_tag(model_id: int, tag: str, remove: bool) -> None:
    """Add TAG to (or remove it from) MODEL_ID."""
    with _app_context(False) as app:
        if remove:
            app.library.untag_model(model_id, tag)
        else:
            app.library.tag_model(model_id, tag)
        tags = app.repository.list_model_tags(model_id)
        console.print(f"[green]Tags: {', '.join(tags) or '-'}[/green]")


@model.command("asset")
@click.argument("model_id", type=int)
@click.argument("asset_id", type=int)
@click.argument("action", type=click.Choice(["primary", "hide", "unhide"]))
def model_asset(model_id: int, asset_id: int, action: str) -> None:
    """Make ASSET_ID the primary image, or hide/unhide it."""
    with _app_context(False) as app:
        if action == "primary":
            app.library.set_primary_asset(model_id, asset_id)
        elif action == "hide":
            app.library.hide_asset(model_id, asset_id)
        else:
            app.library.unhide_asset(model_id, asset_id)
        console.print(f"[green]Asset {asset_id}: {action} applied.[/green]")


@cli.group()
def loose() -> None:
    """Organize model files that sit directly in category folders."""


@loose.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit loose files as JSON.")
def loose_list(json_output: bool) -> None:
    """List loose files found by the last scan."""
    with _app_context(json_output) as app:
        records = app.repository.list_loose_files()
        if json_output:
            console.print_json(
                data={"loose_files": [record.model_dump(mode="json") for record in records]}
            )
            return
        table = Table(title="Loose files")
        table.add_column("ID", justify="right")
        table.add_column("Category")
        table.add_column("File")
        for record in records:
            table.add_row(str(record.id), record.category or "-", record.filename)
        console.print(table)


@loose.command("organize")
@click.argument("loose_ids", nargs=-1, type=int, required=True)
@click.option("--folder", "folder_name", required=True, help="Name of the new model folder.")
@click.option("--category", required=True, help="Category folder to create it in.")
def loose_organize(loose_ids: tuple[int, ...], folder_name: str, category: str) -> None:
    """Move LOOSE_IDS into a new model folder and index it."""
    with _app_context(False) as app:
        model_id = app.library.organize_loose_files(loose_ids, folder_name, category)
        console.print(f"[green]Created model {model_id} in {category}/{folder_name}.[/green]")


@loose.command("trash")
@click.argument("loose_id", type=int)
def loose_trash(loose_id: int) -> None:
    """Move a loose file into the trash directory."""
    with _app_context(False) as app:
        destination = app.library.trash_loose_file(loose_id)
        console.print(f"[green]Moved to {destination}.[/green]")


@cli.group()
def designers() -> None:
    """Browse designers and link paid models to them."""


@designers.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit designers as JSON.")
def designers_list(json_output: bool) -> None:
    """List designers with their model counts."""
    with _app_context(json_output) as app:
        records = app.library.list_designers()
        if json_output:
            console.print_json(
                data={"designers": [record.model_dump(mode="json") for record in records]}
            )
            return
        table = Table(title="Designers")
        table.add_column("ID", justify="right")
        table.add_column("Designer")
        table.add_column("Models", justify="right")
        table.add_column("Profile")
        for record in records:
            table.add_row(
                str(record.id), record.name, str(record.model_count), record.profile_url or "-"
            )
        console.print(table)


@designers.command("show")
@click.argument("designer_id", type=int)
@click.option("--json", "json_output", is_flag=True, help="Emit the designer as JSON.")
def designers_show(designer_id: int, json_output: bool) -> None:
    """Show DESIGNER_ID and their models, newest first."""
    with _app_context(json_output) as app:
        detail = app.library.designer(designer_id)
        if json_output:
            console.print_json(data=detail.model_dump(mode="json"))
            return
        designer = detail.designer
        console.print(f"[bold]{designer.name}[/bold] {designer.profile_url or ''}".rstrip())
        table = Table(title=f"{len(detail.models)} models")
        table.add_column("ID", justify="right")
        table.add_column("Model")
        table.add_column("Added")
        for record in detail.models:
            table.add_row(str(record.id), record.filename, (record.date_added or "-")[:10])
        console.print(table)


@designers.command("add")
@click.argument("name")
@click.option("--url", "profile_url", default=None, help="Designer profile URL.")
def designers_add(name: str, profile_url: str | None) -> None:
    """Create a designer called NAME (an existing one is reused)."""
    with _app_context(False) as app:
        designer = app.library.create_designer(name, profile_url)
        console.print(f"[green]Designer {designer.id}: {designer.name}.[/green]")


@designers.command("rename")
@click.argument("designer_id", type=int)
@click.argument("name")
def designers_rename(designer_id: int, name: str) -> None:
    """Rename DESIGNER_ID to NAME."""
    with _app_context(False) as app:
        designer = app.library.update_designer(designer_id, name=name)
        console.print(f"[green]Renamed designer {designer.id} to {designer.name}.[/green]")


@designers.command("set-url")
@click.argument("designer_id", type=int)
@click.argument("profile_url", required=False, default="")
def designers_set_url(designer_id: int, profile_url: str) -> None:
    """Set (or clear, when PROFILE_URL is omitted) the profile URL of DESIGNER_ID."""
    with _app_context(False) as app:
        designer = app.library.update_designer(designer_id, profile_url=profile_url)
        url = designer.profile_url or "no profile URL"
        console.print(f"[green]{designer.name}: {url}.[/green]")


@designers.command("delete")
@click.argument("designer_id", type=int)
def designers_delete(designer_id: int) -> None:
    """Delete DESIGNER_ID; their models stay in the catalog."""
    with _app_context(False) as app:
        unlinked = app.library.delete_designer(designer_id)
        console.print(
            f"[green]Deleted designer {designer_id} ({unlinked} models unlinked).[/green]"
        )


@designers.command("sync")
@click.option("--json", "json_output", is_flag=True, help="Emit the sync counts as JSON.")
def designers_sync(json_output: bool) -> None:
    """Link paid models to designer folders and fill profile URLs from PDF metadata."""
    with _app_context(json_output) as app:
        result = app.library.sync_designers()
        if json_output:
            console.print_json(data=result.model_dump(mode="json"))
            return
        console.print(
            f"[green]Designers: {result.created} created, {result.linked} linked, "
            f"{result.profiles_filled} profiles filled.[/green]"
        )


# ---------------------------------------------------------------------- #
# Application configuration                                              #
# ---------------------------------------------------------------------- #


@cli.group()
def config() -> None:
    """Manage printshelf configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before_data = manager.load_file_overrides()
    before = manager.read_text().splitlines()
    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if manager.load_file_overrides() == before_data:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    after = manager.read_text().splitlines()
    diff = difflib.unified_diff(
        before,
        after,
        fromfile="config.yaml (before)",
        tofile="config.yaml (after)",
        lineterm="",
    )
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
