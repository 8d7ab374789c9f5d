#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
import json
import os
import shutil
import socket
import tempfile
import threading
import time
import unittest

from tunewalk.player.ipc import (
    PlaybackStateClient,
    build_request,
    parse_reply,
    query_property,
)


class ReplyParsingTests(unittest.TestCase):
    def test_request_is_single_json_line(self):
        raw = build_request("time-pos")
        self.assertTrue(raw.endswith(b"\n"))
        self.assertEqual(raw.count(b"\n"), 1)
        self.assertEqual(json.loads(raw), {"command": ["get_property", "time-pos"]})

    def test_success_reply_returns_float(self):
        self.assertEqual(parse_reply('{"data": 12.5, "error": "success"}'), 12.5)
        self.assertEqual(parse_reply(b'{"data": 3, "error": "success", "request_id": 0}'), 3.0)

    def test_error_reply_is_unknown(self):
        self.assertIsNone(parse_reply('{"error": "property unavailable"}'))

    def test_non_numeric_data_is_unknown(self):
        self.assertIsNone(parse_reply('{"data": "12", "error": "success"}'))
        self.assertIsNone(parse_reply('{"data": true, "error": "success"}'))
        self.assertIsNone(parse_reply('{"data": null, "error": "success"}'))

    def test_malformed_reply_is_unknown(self):
        self.assertIsNone(parse_reply("not json"))
        self.assertIsNone(parse_reply("[1, 2]"))
        self.assertIsNone(parse_reply(""))


class FakeEndpoint:
    """One-shot UNIX socket server driven by a handler(conn) callback."""

    def __init__(self, handler):
        self.directory = tempfile.mkdtemp(prefix="tw-ipc-")
        self.path = os.path.join(self.directory, "mpv.sock")
        self.server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.server.bind(self.path)
        self.server.listen(4)
        self.requests = []
        self.handler = handler
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        try:
            conn, _ = self.server.accept()
        except OSError:
            return
        with conn:
            self.requests.append(conn.recv(4096))
            self.handler(conn)

    def close(self):
        self.server.close()
        self.thread.join(timeout=2)
        shutil.rmtree(self.directory, ignore_errors=True)


class QueryPropertyTests(unittest.TestCase):
    def _endpoint(self, handler):
        endpoint = FakeEndpoint(handler)
        self.addCleanup(endpoint.close)
        return endpoint

    def test_missing_endpoint_returns_unknown_quickly(self):
        started = time.monotonic()
        value = query_property("/tmp/tunewalk-does-not-exist.sock", "time-pos")
        self.assertIsNone(value)
        self.assertLess(time.monotonic() - started, 0.2)

    def test_empty_endpoint_is_unknown(self):
        self.assertIsNone(query_property(None, "duration"))
        self.assertIsNone(query_property("", "duration"))

    def test_stale_socket_file_is_unknown(self):
        directory = tempfile.mkdtemp(prefix="tw-ipc-")
        self.addCleanup(shutil.rmtree, directory, True)
        path = os.path.join(directory, "stale.sock")
        server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        server.bind(path)
        server.close()  # file stays behind with nobody listening

        started = time.monotonic()
        self.assertIsNone(query_property(path, "time-pos"))
        self.assertLess(time.monotonic() - started, 0.2)

    def test_reads_value_and_skips_events(self):
        def handler(conn):
            conn.sendall(b'{"event": "playback-restart"}\n{"data": 42.0, "error": "success"}\n')

        endpoint = self._endpoint(handler)
        self.assertEqual(query_property(endpoint.path, "time-pos", timeout=1.0), 42.0)
        self.assertEqual(json.loads(endpoint.requests[0]), {"command": ["get_property", "time-pos"]})

    def test_silent_player_times_out_to_unknown(self):
        release = threading.Event()

        def handler(conn):
            release.wait(2)

        endpoint = self._endpoint(handler)
        self.addCleanup(release.set)
        started = time.monotonic()
        self.assertIsNone(query_property(endpoint.path, "duration", timeout=0.05))
        self.assertLess(time.monotonic() - started, 0.2)

    def test_event_stream_does_not_extend_the_timeout(self):
        release = threading.Event()

        def handler(conn):
            while not release.is_set():
                try:
                    conn.sendall(b'{"event": "audio-reconfig"}\n')
                except OSError:
                    return
                release.wait(0.03)

        endpoint = self._endpoint(handler)
        self.addCleanup(release.set)
        started = time.monotonic()
        self.assertIsNone(query_property(endpoint.path, "time-pos", timeout=0.05))
        self.assertLess(time.monotonic() - started, 0.2)

    def test_closed_without_reply_is_unknown(self):
        endpoint = self._endpoint(lambda conn: None)
        self.assertIsNone(query_property(endpoint.path, "duration", timeout=1.0))

    def test_client_wrapper_asks_for_duration(self):
        def handler(conn):
            conn.sendall(b'{"data": 200, "error": "success"}\n')

        endpoint = self._endpoint(handler)
        client = PlaybackStateClient(endpoint.path, timeout=1.0)
        self.assertEqual(client.duration(), 200.0)
        self.assertIn(b'"duration"', endpoint.requests[0])


if __name__ == "__main__":
    unittest.main()
