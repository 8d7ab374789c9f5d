#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#

__version__ = "0.1"
__author__ = "Martynas Jocius"
__license__ = "MIT"

VERSION = __version__

STATE_IDLE = "Idle"
STATE_STARTING = "Starting"
STATE_PLAYING = "Playing"
STATE_PAUSED = "Paused"

CMD_UP = "up"
CMD_DOWN = "down"
CMD_OPEN = "open"
CMD_BACK = "back"
CMD_PAUSE = "pause"
CMD_STOP = "stop"
CMD_QUIT = "quit"
CMD_HELP = "help"
CMD_CLOSE = "close"
CMD_LOG = "log"

DEBUG_MODE = False

PLAYER_EXECUTABLE = "mpv"
MEDIA_EXTENSIONS = (".mp3", ".mp4", ".mkv", ".flac", ".wav", ".ogg")

TICK_INTERVAL = 0.1
IPC_TIMEOUT = 0.05
STARTUP_GRACE = 1.0
STOP_TIMEOUT = 2.0

UI_APP_NAME = "TuneWalk"
UI_PANEL_BROWSER = "Browser"
UI_PANEL_NOW_PLAYING = "Now Playing"
UI_PANEL_CHRONICLE = "Activity"
UI_BACK_LABEL = "Back"
UI_QUIT_LABEL = "Quit"
UI_LOADING = "(loading...)"
UI_NOTHING_PLAYING = "Nothing playing"
