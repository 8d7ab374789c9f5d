#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Browsing and playback session exports for TuneWalk."""

import importlib
from typing import Any

_EXPORTS = {
    'FileBrowser': 'tunewalk.core.browser',
    'NavigationCursor': 'tunewalk.core.browser',
    'list_directory': 'tunewalk.core.browser',
    'is_media_file': 'tunewalk.core.browser',
    'SessionController': 'tunewalk.core.session',
    'PlaybackSnapshot': 'tunewalk.core.session',
    'DirectoryWatcher': 'tunewalk.core.watcher',
}

__all__ = list(_EXPORTS)


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = importlib.import_module(_EXPORTS[name])
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'tunewalk.core' has no attribute {name!r}")
