#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Test helpers for TuneWalk."""

import sys
import time
from pathlib import Path

FAKE_PLAYER = Path(__file__).with_name("fake_player.py")


def fake_player_command():
    """Command prefix that launches the fake mpv with the running interpreter."""
    return [sys.executable, str(FAKE_PLAYER)]


def wait_until(predicate, timeout=5.0, interval=0.05):
    """Poll ``predicate`` until it returns a truthy value or ``timeout`` passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(interval)
    return predicate()
