#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Media player process control and IPC queries for TuneWalk."""

import importlib
from typing import Any

_EXPORTS = {
    'PlayerProcessManager': 'tunewalk.player.process',
    'PlayerSession': 'tunewalk.player.process',
    'PlayerStartError': 'tunewalk.player.process',
    'PlaybackStateClient': 'tunewalk.player.ipc',
    'query_property': 'tunewalk.player.ipc',
}

__all__ = list(_EXPORTS)


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = importlib.import_module(_EXPORTS[name])
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'tunewalk.player' has no attribute {name!r}")
