"""Filesystem watcher that debounces library changes into sync scans."""

from __future__ import annotations

import logging
import os
import re
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from printshelf.catalog.settings import FILE_WATCHER_ENABLED, SettingsStore
from printshelf.config.models import WatchSettings
from printshelf.scanning.errors import ScanError
from printshelf.scanning.models import ScanMode

LOGGER = logging.getLogger(__name__)

IGNORE_RE = re.compile(r"^\.|\.icloud$|\.tmp$|\.DS_Store$")
_PAID_RE = re.compile(r"^paid$", re.IGNORECASE)


class ScanTrigger(Protocol):
    """The part of the scanner the watcher depends on."""

    @property
    def is_scanning(self) -> bool: ...

    def start_scan(self, root: Path, mode: ScanMode = ...) -> Any: ...


class Cancellable(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Cancellable]


class WatcherState(str, Enum):
    """Lifecycle state reported by :meth:`WatcherService.status`."""

    DISABLED = "disabled"
    WATCHING_IDLE = "watching_idle"
    WATCHING_PENDING = "watching_pending"
    FLUSHING = "flushing"


@dataclass(slots=True)
class WatcherStatus:
    """Snapshot of the watcher.

    Attributes:
        enabled: Persisted enabled flag.
        active: Whether any directory is currently watched.
        last_triggered: When the watcher last started a scan.
        pending_changes: Events seen since the last flush.
        watched_directories: Directories with an active watch.
        state: Current lifecycle state.
    """

    enabled: bool
    active: bool
    last_triggered: Optional[datetime]
    pending_changes: int
    watched_directories: list[str] = field(default_factory=list)
    state: WatcherState = WatcherState.DISABLED


def _default_timer(delay: float, callback: Callable[[], None]) -> Cancellable:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class WatcherService:
    """Watch the library's upper levels and trigger ``full_sync`` scans.

    Watches are shallow: the root, each category folder, and the designer
    folders under any paid folder. Each relevant event re-arms a single
    debounce timer; continuous activity is capped so a scan still starts once
    ``max_wait_seconds`` have passed since the first pending event.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        scanner: ScanTrigger,
        watch_settings: WatchSettings,
        *,
        observer_factory: Callable[[], Any] = Observer,
        timer_factory: TimerFactory = _default_timer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings_store
        self._scanner = scanner
        self._debounce = watch_settings.debounce_seconds
        self._max_wait = watch_settings.max_wait_seconds
        self._observer_factory = observer_factory
        self._timer_factory = timer_factory
        self._clock = clock

        self._lock = threading.RLock()
        self._observer: Any = None
        self._watched: list[Path] = []
        self._root: Optional[Path] = None
        self._timer: Optional[Cancellable] = None
        self._first_event_at: Optional[float] = None
        self._pending = 0
        self._last_triggered: Optional[datetime] = None
        self._flushing = False
        self._enabled = False

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def initialize(self) -> None:
        """Start watching when the persisted settings ask for it."""
        self._enabled = self._settings.watcher_enabled
        if not self._enabled:
            return
        directory = self._settings.model_directory
        if directory:
            self.start(Path(directory))
        else:
            LOGGER.warning("Watcher enabled but no model directory configured")

    def start(self, directory: Path) -> None:
        """Replace the current watch set with one rooted at ``directory``."""
        self.stop()
        with self._lock:
            self._enabled = True
            self._root = directory
            targets = self._watch_targets(directory)
            observer = self._observer_factory()
            handler = _LibraryEventHandler(self)
            for target in targets:
                try:
                    observer.schedule(handler, str(target), recursive=False)
                except OSError as exc:
                    LOGGER.debug("Unable to watch %s: %s", target, exc)
                    continue
                self._watched.append(target)
            observer.start()
            self._observer = observer
        LOGGER.info("Watching %s (%d directories)", directory, len(self._watched))

    def stop(self) -> None:
        """Cancel any pending flush and remove every watch."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._first_event_at = None
            self._pending = 0
            observer, self._observer = self._observer, None
            had_watches = bool(self._watched)
            self._watched = []
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
        if had_watches:
            LOGGER.info("Watcher stopped")

    def set_enabled(self, enabled: bool) -> None:
        """Persist the enabled flag and start or stop watching accordingly."""
        self._settings.set_bool(FILE_WATCHER_ENABLED, enabled)
        self._enabled = enabled
        if not enabled:
            self.stop()
            return
        directory = self._settings.model_directory
        if directory:
            self.start(Path(directory))
        else:
            LOGGER.warning("No model directory configured; cannot start watcher")

    def restart(self, directory: Path) -> None:
        """Point the watcher at a new directory if it is enabled."""
        if self._enabled:
            self.start(directory)

    def status(self) -> WatcherStatus:
        with self._lock:
            if not self._enabled:
                state = WatcherState.DISABLED
            elif self._flushing:
                state = WatcherState.FLUSHING
            elif self._pending:
                state = WatcherState.WATCHING_PENDING
            else:
                state = WatcherState.WATCHING_IDLE
            return WatcherStatus(
                enabled=self._enabled,
                active=bool(self._watched),
                last_triggered=self._last_triggered,
                pending_changes=self._pending,
                watched_directories=[str(path) for path in self._watched],
                state=state,
            )

    def record_event(self, name: str) -> None:
        """Count a change to a direct child called ``name`` and re-arm the debounce timer."""
        if not name or IGNORE_RE.search(name):
            return
        with self._lock:
            self._pending += 1
            now = self._clock()
            if self._first_event_at is None:
                self._first_event_at = now
            if self._timer is not None:
                self._timer.cancel()
            delay = 0.0 if now - self._first_event_at >= self._max_wait else self._debounce
            self._timer = self._timer_factory(delay, self.flush)
            self._timer.start()

    def flush(self) -> None:
        """Start a ``full_sync`` scan for the changes seen since the last flush.

        The directory being watched is scanned; the stored model directory is
        only used when nothing has been watched yet.
        """
        with self._lock:
            self._timer = None
            self._first_event_at = None
            count, self._pending = self._pending, 0
            if count == 0:
                return
            self._flushing = True
        try:
            if self._scanner.is_scanning:
                LOGGER.info("Skipping auto-scan; scan already in progress (%d changes)", count)
                return
            directory = self._root or self._settings.model_directory
            if not directory:
                LOGGER.warning("Cannot auto-scan; no model directory configured")
                return
            self._last_triggered = datetime.now(timezone.utc)
            LOGGER.info("Auto-scan triggered (full_sync, %d changes)", count)
            try:
                self._scanner.start_scan(Path(directory), ScanMode.FULL_SYNC)
            except ScanError as exc:
                LOGGER.warning("Auto-scan failed to start: %s", exc)
        finally:
            with self._lock:
                self._flushing = False

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _watch_targets(self, directory: Path) -> list[Path]:
        targets = [directory]
        for child in self._subdirectories(directory):
            targets.append(child)
            if _PAID_RE.match(child.name):
                targets.extend(self._subdirectories(child))
                continue
            for nested in self._subdirectories(child):
                if _PAID_RE.match(nested.name):
                    targets.append(nested)
                    targets.extend(self._subdirectories(nested))
        return targets

    def _subdirectories(self, directory: Path) -> list[Path]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            LOGGER.debug("Unable to read %s: %s", directory, exc)
            return []
        return [entry for entry in entries if entry.is_dir() and not IGNORE_RE.search(entry.name)]


class _LibraryEventHandler(FileSystemEventHandler):
    """Forward create, delete, and move events to the watcher."""

    def __init__(self, service: WatcherService) -> None:
        super().__init__()
        self._service = service

    def on_created(self, event: FileSystemEvent) -> None:  # type: ignore[override]
        self._service.record_event(_event_name(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:  # type: ignore[override]
        self._service.record_event(_event_name(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:  # type: ignore[override]
        destination = getattr(event, "dest_path", "") or event.src_path
        self._service.record_event(_event_name(destination))


def _event_name(path: str | bytes) -> str:
    return os.path.basename(os.fsdecode(path).rstrip(os.sep))


__all__ = ["WatcherService", "WatcherStatus", "WatcherState", "IGNORE_RE"]
