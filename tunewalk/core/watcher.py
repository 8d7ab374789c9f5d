#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Keep the browser listing in sync with changes on disk."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from watchdog.events import FileSystemEvent

from ..debug import debug_log
from ..ui.tui import tui_manager


class DirectoryChangeHandler(FileSystemEventHandler):
    """Flag the listing stale when direct children appear, vanish or move."""

    def __init__(self, watcher: "DirectoryWatcher") -> None:
        super().__init__()
        self.watcher = watcher

    def _touches_directory(self, path) -> bool:
        if not path:
            return False
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        return Path(path).parent == self.watcher.directory

    def _mark(self, event: "FileSystemEvent") -> None:
        paths = (event.src_path, getattr(event, "dest_path", ""))
        if any(self._touches_directory(path) for path in paths):
            self.watcher.changed.set()

    def on_created(self, event: "FileSystemEvent") -> None:
        self._mark(event)

    def on_deleted(self, event: "FileSystemEvent") -> None:
        self._mark(event)

    def on_moved(self, event: "FileSystemEvent") -> None:
        self._mark(event)


class DirectoryWatcher:
    """Watches the directory on screen; the UI loop polls :meth:`consume_change`."""

    def __init__(self) -> None:
        self.directory: Optional[Path] = None
        self.changed = threading.Event()
        self.observer: Optional[Observer] = None
        self._handler = DirectoryChangeHandler(self)
        self._watch = None

    def watch(self, directory) -> bool:
        """Point the watcher at ``directory``; returns False if watching is unavailable."""
        directory = Path(directory)
        if directory == self.directory and self._watch is not None:
            return True

        try:
            if self.observer is None:
                self.observer = Observer()
                self.observer.start()
            if self._watch is not None:
                self.observer.unschedule(self._watch)
                self._watch = None
            self.directory = directory
            self._watch = self.observer.schedule(self._handler, str(directory), recursive=False)
        except OSError as exc:
            tui_manager.log(f"Live refresh unavailable for {directory}: {exc}")
            self.directory = directory
            self._watch = None
            return False

        self.changed.clear()
        debug_log("WATCH_DIRECTORY", f"Watching {directory}")
        return True

    def consume_change(self) -> bool:
        """Return True once per burst of changes since the last call."""
        if self.changed.is_set():
            self.changed.clear()
            return True
        return False

    def stop(self) -> None:
        if not self.observer:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
        self._watch = None
