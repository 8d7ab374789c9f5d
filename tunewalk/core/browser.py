#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Directory listing, media classification and cursor navigation."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .. import MEDIA_EXTENSIONS, UI_BACK_LABEL, UI_QUIT_LABEL
from ..debug import debug_log, update_state
from ..ui.tui import tui_manager

KIND_BACK = "back"
KIND_QUIT = "quit"
KIND_DIRECTORY = "directory"
KIND_MEDIA = "media"
KIND_FILE = "file"

ACTION_IGNORE = "ignore"
ACTION_QUIT = "quit"
ACTION_NAVIGATE = "navigate"
ACTION_PLAY = "play"

DEFAULT_VIEW_HEIGHT = 10


def is_media_file(path) -> bool:
    """True for regular files with a playable extension (case-insensitive)."""
    path = Path(path)
    return path.suffix.lower() in MEDIA_EXTENSIONS and path.is_file()


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: Optional[Path]
    kind: str

    @property
    def is_synthetic(self) -> bool:
        return self.kind in (KIND_BACK, KIND_QUIT)

    @property
    def is_playable(self) -> bool:
        return self.kind == KIND_MEDIA


@dataclass(frozen=True)
class DirectoryListing:
    directory: Path
    entries: List[DirectoryEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> DirectoryEntry:
        return self.entries[index]

    def __iter__(self):
        return iter(self.entries)

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]


def _classify(entry: os.DirEntry) -> str:
    try:
        if entry.is_dir():
            return KIND_DIRECTORY
        if entry.is_file() and os.path.splitext(entry.name)[1].lower() in MEDIA_EXTENSIONS:
            return KIND_MEDIA
    except OSError:
        pass
    return KIND_FILE


def list_directory(path) -> DirectoryListing:
    """List ``path`` with the synthetic Back/Quit entries first.

    Children keep the order the filesystem enumerates them in. Raises
    ``OSError`` when the directory cannot be read.
    """
    directory = Path(path)
    entries = [
        DirectoryEntry(UI_BACK_LABEL, directory.parent, KIND_BACK),
        DirectoryEntry(UI_QUIT_LABEL, None, KIND_QUIT),
    ]
    with os.scandir(directory) as iterator:
        for child in iterator:
            entries.append(DirectoryEntry(child.name, directory / child.name, _classify(child)))
    return DirectoryListing(directory, entries)


@dataclass
class NavigationCursor:
    """Selected index plus the first visible row of the list window."""

    selected: int = 0
    scroll_offset: int = 0
    view_height: int = DEFAULT_VIEW_HEIGHT

    def reset(self) -> None:
        self.selected = 0
        self.scroll_offset = 0

    def move_up(self, length: int) -> None:
        if self.selected > 0:
            self.selected -= 1
        self.clamp(length)

    def move_down(self, length: int) -> None:
        if self.selected < length - 1:
            self.selected += 1
        self.clamp(length)

    def clamp(self, length: int) -> None:
        """Re-establish bounds after the listing or view height changed."""
        self.view_height = max(1, self.view_height)
        if length <= 0:
            self.reset()
            return

        self.selected = min(max(self.selected, 0), length - 1)
        max_offset = max(0, length - self.view_height)
        if self.selected < self.scroll_offset:
            self.scroll_offset = self.selected
        elif self.selected >= self.scroll_offset + self.view_height:
            self.scroll_offset = self.selected - self.view_height + 1
        self.scroll_offset = min(max(self.scroll_offset, 0), max_offset)

    def visible_range(self, length: int) -> range:
        end = min(self.scroll_offset + self.view_height, length)
        return range(self.scroll_offset, end)


@dataclass(frozen=True)
class Activation:
    action: str
    path: Optional[Path] = None


class FileBrowser:
    """Current directory, its listing, and the cursor over it."""

    def __init__(self, start_path=None, view_height: int = DEFAULT_VIEW_HEIGHT):
        self.current_path = Path(start_path or os.getcwd()).resolve()
        self.cursor = NavigationCursor(view_height=view_height)
        self.listing = list_directory(self.current_path)

    @property
    def selected_entry(self) -> DirectoryEntry:
        return self.listing[self.cursor.selected]

    def set_view_height(self, view_height: int) -> None:
        self.cursor.view_height = view_height
        self.cursor.clamp(len(self.listing))

    def move_up(self) -> None:
        self.cursor.move_up(len(self.listing))

    def move_down(self) -> None:
        self.cursor.move_down(len(self.listing))

    def navigate(self, path) -> bool:
        """Enter ``path``; an unreadable directory leaves the browser where it was."""
        target = Path(path)
        try:
            listing = list_directory(target)
        except OSError as exc:
            tui_manager.log(f"Cannot open {target}: {exc.strerror or exc}")
            return False

        self.current_path = target
        self.listing = listing
        self.cursor.reset()
        debug_log("NAVIGATE", f"Entered {target}", {"entries": len(listing)})
        update_state("browser", "current_path", str(target), "Directory changed")
        return True

    def go_back(self) -> bool:
        """Move to the parent directory; a no-op at the filesystem root."""
        parent = self.current_path.parent
        if parent == self.current_path:
            return False
        return self.navigate(parent)

    def refresh(self) -> None:
        """Rebuild the listing in place, keeping the cursor index where possible."""
        try:
            self.listing = list_directory(self.current_path)
        except OSError as exc:
            tui_manager.log(f"Cannot refresh {self.current_path}: {exc.strerror or exc}")
            return
        self.cursor.clamp(len(self.listing))

    def activate(self) -> Activation:
        """Act on the selected entry; directories are entered here, media is handed back."""
        entry = self.selected_entry
        if entry.kind == KIND_QUIT:
            return Activation(ACTION_QUIT)
        if entry.kind == KIND_BACK:
            if self.go_back():
                return Activation(ACTION_NAVIGATE, self.current_path)
            return Activation(ACTION_IGNORE)
        if entry.kind == KIND_DIRECTORY:
            if self.navigate(entry.path):
                return Activation(ACTION_NAVIGATE, self.current_path)
            return Activation(ACTION_IGNORE)
        if entry.kind == KIND_MEDIA and is_media_file(entry.path):
            return Activation(ACTION_PLAY, entry.path)
        return Activation(ACTION_IGNORE)
