"""Library watcher that turns filesystem activity into sync scans."""

from .service import IGNORE_RE, WatcherService, WatcherState, WatcherStatus

__all__ = ["IGNORE_RE", "WatcherService", "WatcherState", "WatcherStatus"]
