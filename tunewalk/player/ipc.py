#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Query live playback properties from mpv over its JSON IPC socket."""

import json
import os
import socket
import time
from typing import Optional

from .. import IPC_TIMEOUT
from ..debug import debug_log

PROPERTY_POSITION = "time-pos"
PROPERTY_DURATION = "duration"

MAX_REPLY_BYTES = 65536


def build_request(property_name: str) -> bytes:
    """Encode a ``get_property`` request as one newline-terminated JSON line."""
    payload = {"command": ["get_property", property_name]}
    return json.dumps(payload).encode("utf-8") + b"\n"


def parse_reply(line) -> Optional[float]:
    """Return the numeric ``data`` of a successful reply, or None for anything else."""
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    try:
        reply = json.loads(line)
    except (TypeError, ValueError):
        return None

    if not isinstance(reply, dict) or reply.get("error") != "success":
        return None

    data = reply.get("data")
    # bool is an int subclass; mpv never reports these properties as flags
    if isinstance(data, bool) or not isinstance(data, (int, float)):
        return None
    return float(data)


def _read_reply_line(sock: socket.socket, deadline: float) -> Optional[bytes]:
    """Read lines until a command reply arrives; asynchronous events are skipped.

    Gives up with None once ``deadline`` (a ``time.monotonic`` value) passes,
    however steadily the player keeps streaming events.
    """
    buffer = b""
    while len(buffer) < MAX_REPLY_BYTES:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        sock.settimeout(remaining)
        chunk = sock.recv(4096)
        if not chunk:
            break
        buffer += chunk
        while b"\n" in buffer:
            line, buffer = buffer.split(b"\n", 1)
            if not line.strip():
                continue
            try:
                message = json.loads(line)
            except ValueError:
                return line
            if isinstance(message, dict) and "event" in message and "error" not in message:
                continue
            return line
    return buffer or None


def query_property(endpoint, property_name: str, timeout: float = IPC_TIMEOUT) -> Optional[float]:
    """Fetch one numeric property from the player listening on ``endpoint``.

    A fresh connection is opened for every query. Every failure mode (missing
    socket, refused connection, timeout, empty or malformed reply) collapses to
    ``None`` so callers can treat the value as "not known yet".
    """
    if not endpoint or not os.path.exists(endpoint):
        return None

    deadline = time.monotonic() + timeout
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.settimeout(timeout)
        sock.connect(str(endpoint))
        sock.sendall(build_request(property_name))
        line = _read_reply_line(sock, deadline)
    except (socket.timeout, OSError) as exc:
        debug_log("IPC_UNAVAILABLE", f"{property_name} query failed", {"endpoint": str(endpoint), "error": str(exc)})
        return None
    finally:
        try:
            sock.close()
        except OSError:
            pass

    if line is None:
        return None
    return parse_reply(line)


class PlaybackStateClient:
    """Convenience wrapper bound to one session endpoint."""

    def __init__(self, endpoint, timeout: float = IPC_TIMEOUT):
        self.endpoint = endpoint
        self.timeout = timeout

    def query(self, property_name: str) -> Optional[float]:
        return query_property(self.endpoint, property_name, self.timeout)

    def position(self) -> Optional[float]:
        return self.query(PROPERTY_POSITION)

    def duration(self) -> Optional[float]:
        return self.query(PROPERTY_DURATION)
