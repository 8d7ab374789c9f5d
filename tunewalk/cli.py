#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#

import argparse
import atexit
import os
import queue
import select
import signal
import sys
import threading
import time
from pathlib import Path

from tunewalk import (
    CMD_BACK,
    CMD_CLOSE,
    CMD_DOWN,
    CMD_HELP,
    CMD_LOG,
    CMD_OPEN,
    CMD_PAUSE,
    CMD_QUIT,
    CMD_STOP,
    CMD_UP,
    PLAYER_EXECUTABLE,
    TICK_INTERVAL,
    VERSION,
)
from tunewalk.core.browser import ACTION_NAVIGATE, ACTION_PLAY, ACTION_QUIT, FileBrowser
from tunewalk.core.session import SessionController
from tunewalk.core.watcher import DirectoryWatcher
from tunewalk.debug import debug_log, debug_manager, set_debug_mode
from tunewalk.player.process import PlayerProcessManager
from tunewalk.ui.tui import tui_manager

__all__ = [
    "KeyDecoder",
    "decode_keys",
    "dispatch_command",
    "setup_input_handler",
    "restore_terminal_settings",
    "default_log_dir",
    "main",
]

ESCAPE_SEQUENCES = {
    "\x1b[A": CMD_UP,
    "\x1bOA": CMD_UP,
    "\x1b[B": CMD_DOWN,
    "\x1bOB": CMD_DOWN,
    "\x1b[C": CMD_OPEN,
    "\x1bOC": CMD_OPEN,
    "\x1b[D": CMD_BACK,
    "\x1bOD": CMD_BACK,
}

KEY_COMMANDS = {
    "k": CMD_UP,
    "j": CMD_DOWN,
    "l": CMD_OPEN,
    "\r": CMD_OPEN,
    "\n": CMD_OPEN,
    "h": CMD_BACK,
    "\x7f": CMD_BACK,
    "\x08": CMD_BACK,
    "p": CMD_PAUSE,
    " ": CMD_PAUSE,
    "s": CMD_STOP,
    "q": CMD_QUIT,
    "\x03": CMD_QUIT,
    "?": CMD_HELP,
    "c": CMD_LOG,
    "\x1b": CMD_CLOSE,
}


def _split_keys(data):
    """Decode ``data``; returns the commands and any unfinished escape sequence at the end."""
    commands = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == "\x1b":
            if i + 1 == len(data):
                return commands, data[i:]
            if data[i + 1] in ("[", "O"):
                # CSI/SS3 sequences run up to their final byte
                j = i + 2
                while j < len(data) and not ("@" <= data[j] <= "~"):
                    j += 1
                if j == len(data):
                    return commands, data[i:]
                command = ESCAPE_SEQUENCES.get(data[i:j + 1])
                if command:
                    commands.append(command)
                i = j + 1
                continue

        command = KEY_COMMANDS.get(char) or KEY_COMMANDS.get(char.lower())
        if command:
            commands.append(command)
        i += 1
    return commands, ""


class KeyDecoder:
    """Holds an escape sequence split across reads until the rest arrives."""

    def __init__(self):
        self.pending = ""

    def feed(self, data):
        commands, self.pending = _split_keys(self.pending + data)
        return commands

    def flush(self):
        """Resolve a held-back prefix once input goes quiet; a lone Esc closes dialogs."""
        pending, self.pending = self.pending, ""
        return [CMD_CLOSE] if pending == "\x1b" else []


def decode_keys(data):
    """Translate one complete chunk of terminal input into command names."""
    decoder = KeyDecoder()
    return decoder.feed(data) + decoder.flush()


def dispatch_command(command, browser, controller, watcher=None, tui=tui_manager):
    """Apply one command; returns False when the program should quit."""
    if tui.help_dialog_visible and command in (CMD_QUIT, CMD_CLOSE, CMD_HELP):
        tui.hide_help_dialog()
        return True

    if command == CMD_UP:
        browser.move_up()
    elif command == CMD_DOWN:
        browser.move_down()
    elif command == CMD_OPEN:
        activation = browser.activate()
        if activation.action == ACTION_QUIT:
            return False
        if activation.action == ACTION_NAVIGATE and watcher is not None:
            watcher.watch(activation.path)
        elif activation.action == ACTION_PLAY:
            controller.select(activation.path)
    elif command == CMD_BACK:
        if browser.go_back() and watcher is not None:
            watcher.watch(browser.current_path)
    elif command == CMD_PAUSE:
        controller.toggle_pause()
    elif command == CMD_STOP:
        controller.stop()
    elif command == CMD_QUIT:
        tui.set_quitting(True)
        return False
    elif command == CMD_HELP:
        tui.toggle_help_dialog()
    elif command == CMD_LOG:
        tui.toggle_chronicle()
    elif command == CMD_CLOSE:
        tui.hide_help_dialog()
    return True


def setup_input_handler(commands, quit_requested):
    """Put stdin in cbreak mode and decode keys into ``commands`` on a daemon thread."""
    import termios
    import tty

    fd = sys.stdin.fileno()
    original_settings = termios.tcgetattr(fd)
    tty.setcbreak(fd)

    decoder = KeyDecoder()

    def input_handler():
        while not quit_requested.is_set():
            try:
                readable, _, _ = select.select([fd], [], [], TICK_INTERVAL)
                if not readable:
                    for command in decoder.flush():
                        commands.put(command)
                    continue
                data = os.read(fd, 64)
            except (OSError, ValueError):
                break
            if not data:
                break
            for command in decoder.feed(data.decode("utf-8", errors="ignore")):
                commands.put(command)

    input_thread = threading.Thread(target=input_handler, name="tunewalk-input", daemon=True)
    input_thread.start()
    return original_settings, input_thread


def restore_terminal_settings(original_settings):
    """Simple terminal restoration"""
    if original_settings is not None:
        try:
            import termios

            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, original_settings)
        except (OSError, ValueError):
            pass


def default_log_dir():
    cache_home = os.environ.get("XDG_CACHE_HOME") or os.path.join(Path.home(), ".cache")
    return Path(cache_home) / "tunewalk" / "logs"


def main(argv=None):
    """Main entry point for TuneWalk."""
    parser = argparse.ArgumentParser(
        description="TuneWalk - browse the current directory and play media with mpv",
        epilog=f"TuneWalk v{VERSION}",
    )
    parser.add_argument(
        "--player",
        default=PLAYER_EXECUTABLE,
        help=f"Media player executable speaking the mpv IPC protocol (default: {PLAYER_EXECUTABLE})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode with detailed state information",
    )
    parser.add_argument(
        "--disable-logging",
        action="store_true",
        help="Disable the per-session log file",
    )
    parser.add_argument("--version", action="version", version=f"TuneWalk {VERSION}")

    args = parser.parse_args(argv)

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        print("Error: TuneWalk needs an interactive terminal.")
        return 1

    try:
        browser = FileBrowser(os.getcwd())
    except OSError as exc:
        print(f"Error: cannot read the current directory ({exc})")
        return 1

    if args.debug:
        set_debug_mode(True)
        debug_log(
            "STARTUP",
            "TuneWalk starting with debug mode enabled",
            {"directory": str(browser.current_path), "player": args.player, "version": VERSION},
        )

    if not args.disable_logging:
        try:
            logs_dir = default_log_dir()
            logs_dir.mkdir(parents=True, exist_ok=True)
            log_file_path = logs_dir / f"tunewalk-{time.strftime('%Y%m%d-%H%M%S')}.log"
            tui_manager.start_file_logging(log_file_path)
            tui_manager.log(f"Session log: {log_file_path}")
        except OSError as exc:
            print(f"Warning: could not initialize file logging ({exc})")

    controller = SessionController(PlayerProcessManager(command=[args.player]))
    watcher = DirectoryWatcher()
    commands = queue.Queue()
    quit_requested = threading.Event()
    original_terminal_settings = None
    cleaned_up = False

    def cleanup():
        """Stop the player and give the terminal back; runs once."""
        nonlocal cleaned_up
        if cleaned_up:
            return
        cleaned_up = True
        quit_requested.set()

        try:
            controller.shutdown()
        except Exception as exc:
            print(f"Warning: player cleanup failed ({exc})")
        try:
            watcher.stop()
        except Exception:
            pass
        try:
            tui_manager.stop_live_display()
            tui_manager.disable_tui()
        except Exception:
            pass
        restore_terminal_settings(original_terminal_settings)
        if args.debug and debug_manager:
            debug_manager.print_state_summary()
        tui_manager.stop_file_logging()

    def request_quit(signum=None, frame=None):
        tui_manager.set_quitting(True)
        debug_log("SIGNAL", f"Received signal {signum}, shutting down")
        quit_requested.set()

    atexit.register(cleanup)
    signal.signal(signal.SIGTERM, request_quit)
    signal.signal(signal.SIGHUP, request_quit)

    tui_manager.update_browser(browser)
    tui_manager.update_snapshot(controller.snapshot())
    tui_manager.enable_tui()

    def timeout_handler(signum, frame):
        raise TimeoutError("TUI startup timeout")

    old_handler = signal.signal(signal.SIGALRM, timeout_handler)
    signal.alarm(3)
    try:
        tui_manager.start_live_display()
        signal.alarm(0)
    except Exception as exc:
        signal.alarm(0)
        cleanup()
        print(f"Error starting TUI: {exc}")
        return 1
    finally:
        signal.signal(signal.SIGALRM, old_handler)

    try:
        original_terminal_settings, _ = setup_input_handler(commands, quit_requested)
        watcher.watch(browser.current_path)
        tui_manager.log(f"Browsing {browser.current_path}. Press ? for help, q to quit.")

        while not quit_requested.is_set():
            try:
                pending = [commands.get(timeout=TICK_INTERVAL)]
            except queue.Empty:
                pending = []
            while True:
                try:
                    pending.append(commands.get_nowait())
                except queue.Empty:
                    break

            for command in pending:
                if not dispatch_command(command, browser, controller, watcher):
                    quit_requested.set()
                    break
            if quit_requested.is_set():
                break

            if watcher.consume_change():
                browser.refresh()
            browser.set_view_height(tui_manager.list_view_height())

            tui_manager.update_snapshot(controller.tick())
            tui_manager.update_display()

    except KeyboardInterrupt:
        tui_manager.set_quitting(True)
        tui_manager.log("Interrupted by user (Ctrl+C)")
    finally:
        cleanup()

    return 0


if __name__ == "__main__":
    sys.exit(main())
