#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Utility helpers shared across TuneWalk."""

from typing import Optional

__all__ = ("format_clock",)


def format_clock(seconds: Optional[float]) -> str:
    """Format seconds as ``M:SS`` (or ``H:MM:SS``); unknown values render as ``--:--``."""
    if seconds is None or seconds < 0:
        return "--:--"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
