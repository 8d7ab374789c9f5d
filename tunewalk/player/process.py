#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Lifecycle management for the external media player process."""

import itertools
import os
import signal
import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .. import PLAYER_EXECUTABLE, STOP_TIMEOUT
from ..debug import debug_log, log_error, update_state
from ..ui.tui import tui_manager

PLAYER_ARGS = ("--quiet", "--audio-display=no", "--terminal=no")
KILL_TIMEOUT = 1.0


class PlayerStartError(RuntimeError):
    """Raised when the player executable cannot be launched."""


@dataclass
class PlayerSession:
    """The one player process currently owned by the manager."""

    process: subprocess.Popen
    media_path: Path
    endpoint: str
    session_id: int
    paused: bool = False
    ready: bool = False
    started_at: float = field(default_factory=time.monotonic)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def label(self) -> str:
        return self.media_path.name


class PlayerProcessManager:
    """Owns at most one player process and its IPC endpoint."""

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        endpoint_dir: Optional[str] = None,
        stop_timeout: float = STOP_TIMEOUT,
    ):
        self.command: List[str] = list(command) if command else [PLAYER_EXECUTABLE]
        self.endpoint_dir = endpoint_dir or tempfile.gettempdir()
        self.stop_timeout = stop_timeout
        self.session: Optional[PlayerSession] = None
        self._session_ids = itertools.count(1)

    @property
    def is_running(self) -> bool:
        return self.session is not None

    def endpoint_for(self, session_id: int) -> str:
        """Per-session socket path, unique across sessions and controller processes."""
        return os.path.join(self.endpoint_dir, f"tunewalk-{os.getpid()}-{session_id}.sock")

    def build_command(self, media_path: Path, endpoint: str) -> List[str]:
        return [
            *self.command,
            *PLAYER_ARGS,
            f"--input-ipc-server={endpoint}",
            "--",
            str(media_path),
        ]

    def start(self, media_path) -> PlayerSession:
        """Replace any running session with a new player for ``media_path``."""
        if self.session is not None:
            self.stop()

        media_path = Path(media_path)
        session_id = next(self._session_ids)
        endpoint = self.endpoint_for(session_id)
        _remove_endpoint(endpoint)
        cmd = self.build_command(media_path, endpoint)

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            log_error("SPAWN_FAILED", "player", str(exc), {"command": cmd[0]})
            raise PlayerStartError(f"Failed to start {self.command[0]}: {exc}") from exc

        self.session = PlayerSession(
            process=process,
            media_path=media_path,
            endpoint=endpoint,
            session_id=session_id,
        )
        tui_manager.log(f"[{media_path.name}] Player started (pid {process.pid})")
        debug_log(
            "PLAYER_STARTED",
            f"Spawned player for {media_path.name}",
            {"pid": process.pid, "endpoint": endpoint, "session_id": session_id},
        )
        update_state("player", "pid", process.pid, "Player spawned")
        return self.session

    def stop(self) -> None:
        """Terminate and reap the owned player; no-op when nothing is owned."""
        session = self.session
        if session is None:
            return

        process = session.process
        try:
            if process.poll() is None:
                process.terminate()
                if session.paused:
                    # A stopped process only acts on SIGTERM once continued
                    process.send_signal(signal.SIGCONT)
                try:
                    process.wait(timeout=self.stop_timeout)
                except subprocess.TimeoutExpired:
                    process.kill()
                    tui_manager.log(f"[{session.label}] Force killed player (pid {process.pid})")
                    process.wait(timeout=KILL_TIMEOUT)
        except ProcessLookupError:
            process.poll()
        except BaseException:
            # Ownership is only released once the player is reaped; if this
            # wait fails too, the session stays owned for the next stop()
            _kill_and_reap(process)
            self._release(session)
            raise
        self._release(session)

    def _release(self, session: PlayerSession) -> None:
        self.session = None
        _remove_endpoint(session.endpoint)
        debug_log("PLAYER_STOPPED", f"Player for {session.label} stopped", {"pid": session.pid})
        update_state("player", "pid", None, "Player reaped")

    def set_paused(self, paused: bool) -> bool:
        """Suspend or continue the whole player process; returns True when a signal was sent."""
        session = self.session
        if session is None or session.paused == paused:
            return False

        try:
            session.process.send_signal(signal.SIGSTOP if paused else signal.SIGCONT)
        except ProcessLookupError:
            return False

        session.paused = paused
        update_state("player", "paused", paused, "Pause toggled")
        return True

    def poll(self) -> Optional[int]:
        """Non-blocking liveness check; returns the exit code once the player has exited."""
        session = self.session
        if session is None:
            return None

        returncode = session.process.poll()
        if returncode is None:
            return None

        self.session = None
        _remove_endpoint(session.endpoint)
        debug_log(
            "PLAYER_EXITED",
            f"Player for {session.label} exited on its own",
            {"pid": session.pid, "returncode": returncode},
        )
        update_state("player", "pid", None, "Player exited")
        return returncode


def _kill_and_reap(process: subprocess.Popen) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass
    process.wait(timeout=KILL_TIMEOUT)


def _remove_endpoint(endpoint: str) -> None:
    try:
        os.unlink(endpoint)
    except FileNotFoundError:
        pass
    except OSError as exc:
        debug_log("ENDPOINT_CLEANUP", f"Could not remove {endpoint}", {"error": str(exc)})
