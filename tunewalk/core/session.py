#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Playback session state machine.

The controller ties the player process to the IPC state client and hands the
UI one immutable :class:`PlaybackSnapshot` per tick. It is driven entirely
from the UI loop thread: ``tick()`` is the only place the endpoint is polled,
and every query is a bounded connect-or-fail call, so a player that is slow to
open its socket shows up as "loading" instead of stalling the redraw.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .. import (
    IPC_TIMEOUT,
    STARTUP_GRACE,
    STATE_IDLE,
    STATE_PAUSED,
    STATE_PLAYING,
    STATE_STARTING,
)
from ..debug import debug_log, update_state
from ..player.ipc import PROPERTY_DURATION, PROPERTY_POSITION, PlaybackStateClient
from ..player.process import PlayerProcessManager, PlayerSession, PlayerStartError
from ..ui.tui import tui_manager


@dataclass(frozen=True)
class PlaybackSnapshot:
    state: str = STATE_IDLE
    label: Optional[str] = None
    position: Optional[float] = None
    duration: Optional[float] = None
    error: Optional[str] = None
    pid: Optional[int] = None

    @property
    def is_loading(self) -> bool:
        return self.state == STATE_STARTING

    @property
    def progress(self) -> Optional[float]:
        """Fraction of the media played, or None while either value is unknown."""
        if self.position is None or not self.duration or self.duration <= 0:
            return None
        return min(max(self.position / self.duration, 0.0), 1.0)


IDLE_SNAPSHOT = PlaybackSnapshot()


class SessionController:
    """Owns the playback session lifecycle on behalf of the UI loop."""

    def __init__(
        self,
        manager: Optional[PlayerProcessManager] = None,
        ipc_timeout: float = IPC_TIMEOUT,
        startup_grace: float = STARTUP_GRACE,
    ):
        self.manager = manager or PlayerProcessManager()
        self.ipc_timeout = ipc_timeout
        self.startup_grace = startup_grace
        self.last_error: Optional[str] = None
        self._last_position: Optional[float] = None
        self._last_duration: Optional[float] = None
        self._snapshot = IDLE_SNAPSHOT

    @property
    def session(self) -> Optional[PlayerSession]:
        return self.manager.session

    @property
    def state(self) -> str:
        session = self.session
        if session is None:
            return STATE_IDLE
        if session.paused:
            return STATE_PAUSED
        if session.ready:
            return STATE_PLAYING
        return STATE_STARTING

    def _set_error(self, message: Optional[str]) -> None:
        self.last_error = message
        if message:
            tui_manager.log(message)
        update_state("session", "error", message)

    def _reset_progress(self) -> None:
        self._last_position = None
        self._last_duration = None

    def select(self, media_path) -> bool:
        """Start playing ``media_path``, fully stopping any current session first."""
        media_path = Path(media_path)
        self._reset_progress()
        self.last_error = None
        try:
            self.manager.start(media_path)
        except PlayerStartError as exc:
            self._set_error(str(exc))
            self._snapshot = PlaybackSnapshot(error=self.last_error)
            return False

        update_state("session", "state", self.state, f"Selected {media_path.name}")
        self._snapshot = self._build_snapshot()
        return True

    def toggle_pause(self) -> bool:
        session = self.session
        if session is None:
            return False

        paused = not session.paused
        if not self.manager.set_paused(paused):
            return False

        verb = "Paused" if paused else "Resumed"
        tui_manager.log(f"[{session.label}] {verb}")
        update_state("session", "state", self.state, "Pause toggled")
        self._snapshot = self._build_snapshot()
        return True

    def stop(self) -> None:
        session = self.session
        if session is None:
            return
        self.manager.stop()
        self._reset_progress()
        tui_manager.log(f"[{session.label}] Stopped")
        update_state("session", "state", STATE_IDLE, "Stopped by user")
        self._snapshot = PlaybackSnapshot(error=self.last_error)

    def shutdown(self) -> None:
        """Final cleanup path; safe to call repeatedly."""
        if self.session is not None:
            debug_log("SESSION_SHUTDOWN", "Stopping player on exit")
        self.manager.stop()
        self._reset_progress()
        self._snapshot = IDLE_SNAPSHOT

    def _check_exit(self) -> None:
        session = self.session
        if session is None:
            return

        returncode = self.manager.poll()
        if returncode is None:
            return

        self._reset_progress()
        lifetime = time.monotonic() - session.started_at
        if not session.ready and (returncode != 0 or lifetime < self.startup_grace):
            self._set_error(f"[{session.label}] Player exited immediately (code {returncode})")
        else:
            tui_manager.log(f"[{session.label}] Finished (code {returncode})")
        update_state("session", "state", STATE_IDLE, "Player exited")

    def _build_snapshot(self) -> PlaybackSnapshot:
        session = self.session
        if session is None:
            return PlaybackSnapshot(error=self.last_error)
        return PlaybackSnapshot(
            state=self.state,
            label=session.label,
            position=self._last_position,
            duration=self._last_duration,
            pid=session.pid,
        )

    def tick(self) -> PlaybackSnapshot:
        """Refresh the snapshot; called once per UI loop iteration."""
        self._check_exit()
        session = self.session

        if session is not None and not session.paused:
            client = PlaybackStateClient(session.endpoint, self.ipc_timeout)
            position = client.query(PROPERTY_POSITION)
            duration = client.query(PROPERTY_DURATION)
            if position is not None or duration is not None:
                if not session.ready:
                    session.ready = True
                    debug_log("SESSION_READY", f"Endpoint answered for {session.label}")
                    update_state("session", "state", STATE_PLAYING, "Endpoint ready")
                if position is not None:
                    self._last_position = position
                if duration is not None:
                    self._last_duration = duration

        self._snapshot = self._build_snapshot()
        return self._snapshot

    def snapshot(self) -> PlaybackSnapshot:
        return self._snapshot
