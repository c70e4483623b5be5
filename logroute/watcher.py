"""
File-based configuration watcher for hot-reload.

This module provides a file watcher that monitors a logging configuration file
and reloads the logger's filters when the file is modified. Uses the watchdog
library for efficient file system monitoring.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .constants import LogConstants

if TYPE_CHECKING:
    from .logger import Filter, Logger


class LogConfigWatcher:
    """
    Watches a configuration file and reloads a logger when it changes.

    Uses watchdog for efficient file system monitoring with debouncing to
    avoid rapid re-reads on multiple write events. A reload that fails leaves
    the previous filters in place and is reported on stderr.

    Example:
        >>> watcher = LogConfigWatcher(logger).configure("etc/logroute.yaml")
        >>> watcher.start()
        >>> # File changes are now automatically detected
        >>> watcher.stop()
    """

    def __init__(self, logger: Logger) -> None:
        self._logger = logger
        self._observer: Any = None  # watchdog Observer
        self._config_path: Path | None = None
        self._section: str = LogConstants.DEFAULT_SECTION
        self._base_dir: Path | None = None
        self._debounce_ms: int = 500
        self._timer: threading.Timer | None = None
        self._lock = threading.RLock()
        self._running = False
        self._on_reload_callbacks: list[Callable[[Mapping[str, Filter]], None]] = []
        self.reloads = 0
        self.failures = 0

    def configure(
        self,
        config_path: str | Path,
        section: str = LogConstants.DEFAULT_SECTION,
        debounce_ms: int = 500,
        base_dir: str | Path | None = None,
    ) -> LogConfigWatcher:
        """
        Configure the watcher (fluent API).

        Args:
            config_path: Path to the configuration file to watch
            section: YAML section containing the filters (default: "logging")
            debounce_ms: Quiet period after the last change event before the
                         file is reloaded
            base_dir: Directory relative filenames resolve against

        Returns:
            Self for method chaining
        """
        with self._lock:
            self._config_path = Path(config_path).resolve()
            self._section = section
            self._debounce_ms = debounce_ms
            self._base_dir = Path(base_dir) if base_dir is not None else None
        return self

    def _create_file_handler(self) -> Any:  # pragma: no cover
        """Create watchdog event handler for config file changes."""
        from watchdog.events import FileSystemEventHandler

        watcher = self  # Closure reference

        class ConfigFileHandler(FileSystemEventHandler):  # type: ignore[misc]
            def on_modified(self, event: Any) -> None:
                if event.is_directory:
                    return
                if Path(event.src_path).resolve() == watcher._config_path:
                    watcher._on_file_changed()

            on_created = on_modified

            def on_moved(self, event: Any) -> None:
                # Editors that save via rename-over
                if Path(event.dest_path).resolve() == watcher._config_path:
                    watcher._on_file_changed()

        return ConfigFileHandler()

    def start(self) -> LogConfigWatcher:
        """Start watching for file changes."""
        try:
            from watchdog.observers import Observer
        except ImportError:
            raise ImportError(
                "watchdog is required for hot-reload. Install with: pip install watchdog"
            ) from None

        with self._lock:
            if self._running:
                return self
            if self._config_path is None:
                raise ValueError("Config path not set. Call configure() first.")

            self._observer = Observer()
            self._observer.schedule(
                self._create_file_handler(),
                str(self._config_path.parent),
                recursive=False,
            )
            self._observer.start()
            self._running = True
        return self

    def stop(self) -> None:
        """Stop watching for file changes; a pending reload is dropped."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=2.0)
                self._observer = None
            self._running = False

    def is_running(self) -> bool:
        """Check if watcher is active."""
        with self._lock:
            return self._running

    def __enter__(self) -> LogConfigWatcher:
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def _on_file_changed(self) -> None:
        """
        Handle file change event with debouncing.

        Every event restarts the timer, so a burst of writes is reloaded once,
        after the last one.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce_ms / 1000, self._on_quiet)
            self._timer.daemon = True
            self._timer.start()

    def _on_quiet(self) -> None:
        with self._lock:
            if self._timer is threading.current_thread():
                self._timer = None
        self._reload_config()

    def _notify_callbacks(self, filters: Mapping[str, Filter]) -> None:
        with self._lock:
            callbacks = list(self._on_reload_callbacks)

        for callback in callbacks:
            try:
                callback(filters)
            except Exception as e:
                sys.stderr.write(f"[LogConfigWatcher] Reload callback failed: {e}\n")

    def _reload_config(self) -> bool:
        """Reload configuration from file. Returns True on success."""
        if self._config_path is None:
            return False

        try:
            self._logger.load_configuration(
                self._config_path, section=self._section, base_dir=self._base_dir
            )
        except Exception as e:
            self.failures += 1
            sys.stderr.write(f"[LogConfigWatcher] Failed to reload config: {e}\n")
            return False

        self.reloads += 1
        self._notify_callbacks(self._logger.filters)
        return True

    def add_reload_callback(self, callback: Callable[[Mapping[str, Filter]], None]) -> None:
        """
        Add callback to be notified on config reload.

        Args:
            callback: Function called after a successful reload with the
                      logger's new filter mapping
        """
        with self._lock:
            self._on_reload_callbacks.append(callback)

    def remove_reload_callback(
        self, callback: Callable[[Mapping[str, Filter]], None]
    ) -> None:
        with self._lock:
            try:
                self._on_reload_callbacks.remove(callback)
            except ValueError:
                pass  # Callback not found, ignore

    def reload_now(self) -> bool:
        """
        Force immediate config reload.

        Useful for testing or manual trigger without file modification.

        Returns:
            True if the configuration was applied
        """
        return self._reload_config()
