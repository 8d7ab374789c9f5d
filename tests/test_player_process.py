#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
import os
import shutil
import signal
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import psutil

from tunewalk.player.process import PlayerProcessManager, PlayerStartError

from tests import fake_player_command, wait_until


class PlayerProcessTestCase(unittest.TestCase):
    def setUp(self):
        self.endpoint_dir = tempfile.mkdtemp(prefix="tw-")
        self.addCleanup(shutil.rmtree, self.endpoint_dir, True)
        self.manager = PlayerProcessManager(
            command=fake_player_command(),
            endpoint_dir=self.endpoint_dir,
            stop_timeout=2.0,
        )
        self.addCleanup(self.manager.stop)
        log_patch = mock.patch("tunewalk.player.process.tui_manager.log")
        self.log_mock = log_patch.start()
        self.addCleanup(log_patch.stop)

    def assertReaped(self, pid):
        self.assertFalse(psutil.pid_exists(pid), f"player {pid} still exists")


class PlayerProcessManagerTests(PlayerProcessTestCase):
    def test_command_puts_media_path_last(self):
        manager = PlayerProcessManager(command=["mpv"], endpoint_dir="/tmp")
        cmd = manager.build_command(Path("/music/-odd name.mp3"), "/tmp/x.sock")
        self.assertEqual(cmd[0], "mpv")
        self.assertIn("--quiet", cmd)
        self.assertIn("--terminal=no", cmd)
        self.assertIn("--input-ipc-server=/tmp/x.sock", cmd)
        self.assertEqual(cmd[-2:], ["--", "/music/-odd name.mp3"])

    def test_endpoints_are_unique_per_session(self):
        first = self.manager.endpoint_for(1)
        second = self.manager.endpoint_for(2)
        self.assertNotEqual(first, second)
        self.assertIn(str(os.getpid()), first)
        self.assertTrue(first.startswith(self.endpoint_dir))

    def test_start_owns_one_running_process(self):
        session = self.manager.start("/music/a.mp3")
        self.assertTrue(self.manager.is_running)
        self.assertIs(self.manager.session, session)
        self.assertEqual(session.label, "a.mp3")
        self.assertFalse(session.paused)
        self.assertTrue(psutil.pid_exists(session.pid))
        self.assertIn("Player started", self.log_mock.call_args[0][0])

    def test_replacing_session_reaps_previous_player_first(self):
        first = self.manager.start("/music/a.mp3")
        first_pid = first.pid
        observed = []
        original_popen = subprocess.Popen

        def spy_popen(*args, **kwargs):
            observed.append(psutil.pid_exists(first_pid))
            return original_popen(*args, **kwargs)

        with mock.patch("tunewalk.player.process.subprocess.Popen", side_effect=spy_popen):
            second = self.manager.start("/music/b.mp3")

        self.assertEqual(observed, [False])
        self.assertReaped(first_pid)
        self.assertIs(self.manager.session, second)
        self.assertNotEqual(first.endpoint, second.endpoint)
        self.assertTrue(psutil.pid_exists(second.pid))

    def test_stop_reaps_and_removes_endpoint(self):
        session = self.manager.start("/music/a.mp3")
        self.assertTrue(wait_until(lambda: os.path.exists(session.endpoint)))

        self.manager.stop()

        self.assertIsNone(self.manager.session)
        self.assertReaped(session.pid)
        self.assertFalse(os.path.exists(session.endpoint))

    def test_stop_is_idempotent(self):
        self.manager.stop()
        self.manager.start("/music/a.mp3")
        self.manager.stop()
        self.manager.stop()
        self.assertFalse(self.manager.is_running)

    def test_pause_suspends_the_process(self):
        session = self.manager.start("/music/a.mp3")
        process = psutil.Process(session.pid)

        self.assertTrue(self.manager.set_paused(True))
        self.assertTrue(session.paused)
        self.assertTrue(wait_until(lambda: process.status() == psutil.STATUS_STOPPED))

        # Same state again sends nothing
        self.assertFalse(self.manager.set_paused(True))

        self.assertTrue(self.manager.set_paused(False))
        self.assertFalse(session.paused)
        self.assertTrue(wait_until(lambda: process.status() != psutil.STATUS_STOPPED))

    def test_stop_while_paused_terminates(self):
        session = self.manager.start("/music/no-ipc.mp3")
        self.manager.set_paused(True)
        self.manager.stop()
        self.assertReaped(session.pid)

    def test_set_paused_without_session_is_noop(self):
        self.assertFalse(self.manager.set_paused(True))

    def test_missing_executable_raises_and_owns_nothing(self):
        manager = PlayerProcessManager(
            command=["/nonexistent/tunewalk-player"],
            endpoint_dir=self.endpoint_dir,
        )
        with self.assertRaises(PlayerStartError):
            manager.start("/music/a.mp3")
        self.assertIsNone(manager.session)

    def test_poll_detects_exit_and_clears_ownership(self):
        session = self.manager.start("/music/crash.mp3")
        returncode = wait_until(lambda: self.manager.poll())
        self.assertEqual(returncode, 3)
        self.assertIsNone(self.manager.session)
        self.assertReaped(session.pid)

    def test_poll_while_running_returns_none(self):
        self.manager.start("/music/no-ipc.mp3")
        self.assertIsNone(self.manager.poll())
        self.assertTrue(self.manager.is_running)

    def test_stop_escalates_to_kill(self):
        session = self.manager.start("/music/no-ipc.mp3")
        self.manager.stop_timeout = 0.2
        with mock.patch.object(session.process, "terminate"):
            self.manager.stop()
        self.assertReaped(session.pid)
        self.assertIn("Force killed", self.log_mock.call_args[0][0])

    def _term_ignoring_manager(self):
        manager = PlayerProcessManager(
            command=["sh", "-c", 'trap "" TERM; exec sleep 30'],
            endpoint_dir=self.endpoint_dir,
            stop_timeout=2.0,
        )
        self.addCleanup(manager.stop)
        return manager

    def test_interrupted_stop_still_reaps_the_player(self):
        manager = self._term_ignoring_manager()
        session = manager.start("/music/a.mp3")
        real_wait = session.process.wait
        calls = []

        def interrupted_wait(timeout=None):
            calls.append(timeout)
            if len(calls) == 1:
                raise KeyboardInterrupt
            return real_wait(timeout=timeout)

        with mock.patch.object(session.process, "wait", side_effect=interrupted_wait):
            with self.assertRaises(KeyboardInterrupt):
                manager.stop()

        self.assertIsNone(manager.session)
        self.assertReaped(session.pid)

    def test_failed_reap_keeps_ownership_for_retry(self):
        manager = self._term_ignoring_manager()
        session = manager.start("/music/a.mp3")

        with mock.patch.object(session.process, "wait", side_effect=KeyboardInterrupt):
            with self.assertRaises(KeyboardInterrupt):
                manager.stop()

        self.assertIs(manager.session, session)
        manager.stop()
        self.assertIsNone(manager.session)
        self.assertReaped(session.pid)

    def test_vanished_process_is_tolerated(self):
        session = self.manager.start("/music/no-ipc.mp3")
        os.kill(session.pid, signal.SIGKILL)
        wait_until(lambda: psutil.Process(session.pid).status() == psutil.STATUS_ZOMBIE)
        self.manager.stop()
        self.assertIsNone(self.manager.session)


if __name__ == "__main__":
    unittest.main()
