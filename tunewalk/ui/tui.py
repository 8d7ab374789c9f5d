#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#

import os
import time
from collections import deque
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import psutil
from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .. import (
    STATE_IDLE,
    STATE_PAUSED,
    STATE_PLAYING,
    STATE_STARTING,
    UI_APP_NAME,
    UI_LOADING,
    UI_NOTHING_PLAYING,
    UI_PANEL_BROWSER,
    UI_PANEL_CHRONICLE,
    UI_PANEL_NOW_PLAYING,
    VERSION,
)
from ..debug import debug_log, update_state
from ..utils import format_clock

HEADER_HEIGHT = 3
NOW_PLAYING_HEIGHT = 5
CHRONICLE_HEIGHT = 8

DEFAULT_PANEL_PADDING = (0, 1)

ENTRY_STYLES = {
    "back": "bold yellow",
    "quit": "bold yellow",
    "directory": "bold bright_blue",
    "media": "bright_green",
    "file": "dim white",
}

STATE_COLORS = {
    STATE_PLAYING: "bright_green",
    STATE_PAUSED: "yellow",
    STATE_STARTING: "cyan",
    STATE_IDLE: "dim white",
}


@dataclass
class LayoutContext:
    panel_padding: Tuple[int, int]
    terminal_width: int
    terminal_height: int
    header_height: int
    now_playing_height: int
    display_footer: bool
    footer_height: int
    browser_height: int


@dataclass
class HelpDialogBuilder:
    app_name: str
    version: str
    keymaps: Sequence[Tuple[str, str]] = (
        ("Up / k", "Move up"),
        ("Down / j", "Move down"),
        ("Enter / l", "Open or play"),
        ("Bksp / h", "Parent directory"),
        ("p / Space", "Pause / resume"),
        ("s", "Stop playback"),
        ("c", "Toggle activity log"),
        ("?", "Show help"),
        ("q", "Quit TuneWalk"),
        ("Esc", "Close dialog"),
    )

    def build(self) -> "Group":
        title, tagline, divider = self._build_header()
        content: List = [
            Align.center(title),
            Text(""),
            Align.center(tagline),
            Text(""),
            Align.center(divider),
            Text(""),
            self._build_table(),
            Text(""),
            Align.center(divider),
            Text(""),
            Align.center(self._build_footer()),
        ]
        return Group(*content)

    def _build_header(self) -> Tuple[Text, Text, Text]:
        title_text = Text(f"{self.app_name} {self.version}", style="bold bright_cyan")
        tagline_text = Text("Browse folders, play media with mpv", style="white")
        divider_text = Text("─" * 60, style="dim white")
        return title_text, tagline_text, divider_text

    def _build_table(self) -> Table:
        help_table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
        help_table.add_column("Key", style="bold yellow", width=12)
        help_table.add_column("Action", style="white", width=22, justify="left")
        help_table.add_column("Key", style="bold yellow", width=12)
        help_table.add_column("Action", style="white", width=22, justify="left")

        keymap_list = list(self.keymaps)
        for i in range(0, len(keymap_list), 2):
            first_key, first_action = keymap_list[i]
            if i + 1 < len(keymap_list):
                second_key, second_action = keymap_list[i + 1]
            else:
                second_key, second_action = "", ""
            help_table.add_row(first_key, first_action, second_key, second_action)

        return help_table

    def _build_footer(self) -> Text:
        footer_text = Text()
        footer_text.append("Press ", style="dim white")
        footer_text.append("q", style="bold yellow")
        footer_text.append(" or ", style="dim white")
        footer_text.append("Esc", style="bold yellow")
        footer_text.append(" to close this dialog", style="dim white")
        return footer_text


class TUIManager:
    """Manages the terminal user interface for TuneWalk."""

    def __init__(self):
        self.console = Console()
        self.log_buffer = deque(maxlen=50)  # Keep last 50 log messages
        self.log_file_handle = None
        self.log_file_path = None
        self.live_display = None
        self.tui_enabled = False
        self.chronicle_visible = True
        self.help_dialog_visible = False
        self.is_quitting = False

        self.browser = None
        self.snapshot = None

        self.progress_chars = ["◐", "◓", "◑", "◒"]
        self.progress_animation_index = 0
        self.loading_chars = ["○", "●"]
        self.loading_animation_index = 0

        self.last_cpu_check = 0
        self.cached_cpu_percent = 0.0

        # Tmux compatibility
        self.is_tmux = os.environ.get("TMUX") is not None
        self.last_update_time = 0
        self.update_throttle = 0.1 if self.is_tmux else 0.05
        self.cached_terminal_size = None
        self.last_size_check = 0

    def _get_safe_terminal_size(self):
        """Get terminal size with a short cache and sane minimums"""
        current_time = time.time()
        cache_duration = 0.6 if self.is_tmux else 0.5
        if (
            self.cached_terminal_size is not None
            and current_time - self.last_size_check < cache_duration
        ):
            return self.cached_terminal_size

        try:
            size = self.console.size
            width, height = size.width, size.height
            if width <= 0 or height <= 0:
                width, height = 80, 24
        except Exception:
            width, height = 80, 24

        self.cached_terminal_size = (max(width, 40), max(height, 12))
        self.last_size_check = current_time
        return self.cached_terminal_size

    def set_quitting(self, quitting=True):
        self.is_quitting = quitting

    def get_progress_symbol(self):
        """Get the current progress symbol"""
        if self.is_quitting:
            return "⏹"
        symbol = self.progress_chars[self.progress_animation_index]
        self.progress_animation_index = (self.progress_animation_index + 1) % len(self.progress_chars)
        return symbol

    def get_loading_symbol(self):
        symbol = self.loading_chars[self.loading_animation_index]
        self.loading_animation_index = (self.loading_animation_index + 1) % len(self.loading_chars)
        return symbol

    def enable_tui(self):
        """Enable TUI mode"""
        self.tui_enabled = True

    def disable_tui(self):
        """Disable TUI mode"""
        self.tui_enabled = False
        if self.live_display:
            self.live_display.stop()
            self.live_display = None

    def log(self, message):
        """Add a log message to the activity panel, the session log file, or stdout"""
        timestamped = f"{time.strftime('%H:%M:%S')} {message}"

        if self.log_file_handle:
            try:
                self.log_file_handle.write(timestamped + "\n")
                self.log_file_handle.flush()
            except Exception:
                pass

        if self.tui_enabled:
            self.log_buffer.append(timestamped)
            if self.chronicle_visible:
                self.update_display()
        else:
            print(message)

    def start_file_logging(self, log_path):
        """Enable file logging to the specified path."""
        try:
            if self.log_file_handle:
                self.stop_file_logging()
            self.log_file_handle = open(log_path, "w", encoding="utf-8")
            self.log_file_path = log_path
        except Exception as exc:
            self.log_file_handle = None
            self.log_file_path = None
            print(f"Warning: unable to start file logging ({exc})")

    def stop_file_logging(self):
        """Close file logging if active."""
        if self.log_file_handle:
            try:
                self.log_file_handle.flush()
                self.log_file_handle.close()
            except Exception:
                pass
            finally:
                self.log_file_handle = None
                self.log_file_path = None

    def update_browser(self, browser):
        self.browser = browser

    def update_snapshot(self, snapshot):
        self.snapshot = snapshot

    def toggle_chronicle(self):
        """Toggle activity panel visibility"""
        self.chronicle_visible = not self.chronicle_visible
        state_label = "shown" if self.chronicle_visible else "hidden"
        self.log(f"{UI_PANEL_CHRONICLE} {state_label}. Press c to toggle.")
        update_state("tui", "chronicle_visible", self.chronicle_visible, "User toggled log panel")

    def show_help_dialog(self):
        self.help_dialog_visible = True
        debug_log("HELP_DIALOG_SHOW", "Help dialog opened")

    def hide_help_dialog(self):
        if self.help_dialog_visible:
            self.help_dialog_visible = False
            debug_log("HELP_DIALOG_HIDE", "Help dialog closed")

    def toggle_help_dialog(self):
        if self.help_dialog_visible:
            self.hide_help_dialog()
        else:
            self.show_help_dialog()

    def list_view_height(self) -> int:
        """Rows available for directory entries inside the browser panel."""
        context = self._build_layout_context()
        vertical_pad = context.panel_padding[0] * 2
        return max(1, context.browser_height - 2 - vertical_pad)

    def create_layout(self) -> Layout:
        """Create the TUI layout."""
        context = self._build_layout_context()
        layout = Layout()
        self._apply_layout_split(layout, context)
        self._populate_header(layout, context)
        self._populate_browser(layout, context)
        self._populate_now_playing(layout, context)
        if context.display_footer:
            self._populate_footer(layout, context)
        if self.help_dialog_visible:
            return self._build_help_overlay(context)
        return layout

    def _build_layout_context(self) -> LayoutContext:
        terminal_width, terminal_height = self._get_safe_terminal_size()
        display_footer = self.chronicle_visible
        footer_height = CHRONICLE_HEIGHT if display_footer else 0
        browser_height = max(
            3,
            terminal_height - HEADER_HEIGHT - NOW_PLAYING_HEIGHT - footer_height,
        )
        return LayoutContext(
            panel_padding=DEFAULT_PANEL_PADDING,
            terminal_width=terminal_width,
            terminal_height=terminal_height,
            header_height=HEADER_HEIGHT,
            now_playing_height=NOW_PLAYING_HEIGHT,
            display_footer=display_footer,
            footer_height=footer_height,
            browser_height=browser_height,
        )

    def _apply_layout_split(self, layout: Layout, context: LayoutContext) -> None:
        sections = [
            Layout(name="header", size=context.header_height),
            Layout(name="browser", ratio=1, minimum_size=3),
            Layout(name="now_playing", size=context.now_playing_height),
        ]
        if context.display_footer:
            sections.append(Layout(name="footer", size=context.footer_height))
        layout.split_column(*sections)

    def _current_state(self) -> str:
        if self.snapshot is None:
            return STATE_IDLE
        return self.snapshot.state

    def _get_playback_indicator(self, state: str) -> str:
        if self.is_quitting:
            return self.get_progress_symbol()
        if state == STATE_STARTING:
            return self.get_loading_symbol()
        if state == STATE_PAUSED:
            return "❚❚"
        if state == STATE_PLAYING:
            return self.get_progress_symbol()
        return "■"

    def _populate_header(self, layout: Layout, context: LayoutContext) -> None:
        app_text = Text(f"{UI_APP_NAME} {VERSION}", style="bold white")

        help_text = Text("Press ? for help", style="bold white")

        state = self._current_state()
        metrics_text = self._build_system_metrics_text(self._get_playback_indicator(state), state)

        if context.terminal_width >= 70:
            header_table = Table.grid(expand=True)
            header_table.add_column(justify="left")
            header_table.add_column(justify="center")
            header_table.add_column(justify="right")
            header_table.add_row(app_text, metrics_text, help_text)
        else:
            header_table = Table.grid(expand=True)
            header_table.add_column(justify="left")
            header_table.add_column(justify="right")
            header_table.add_row(app_text, metrics_text)

        layout["header"].update(Panel(header_table, border_style="green", padding=(0, 2)))

    def _build_system_metrics_text(self, indicator_symbol: str, playback_state: str) -> Text:
        metrics_text = Text()
        metrics_text.append(f"{indicator_symbol} {playback_state}", style="bright_white")

        try:
            current_time = time.time()
            if current_time - self.last_cpu_check > 1.0:
                self.cached_cpu_percent = psutil.cpu_percent(interval=None)
                self.last_cpu_check = current_time

            ram_percent = psutil.virtual_memory().percent
            metrics_text.append("  ", style="dim white")
            metrics_text.append(f"CPU: {int(self.cached_cpu_percent)}%", style="yellow")
            metrics_text.append("  ", style="dim white")
            metrics_text.append(f"RAM: {int(ram_percent)}%", style="green")
        except Exception:
            metrics_text.append("  System metrics unavailable", style="dim red")

        return metrics_text

    def _render_entry(self, entry, selected: bool, max_width: int) -> Text:
        if entry.is_synthetic:
            label = f"[{entry.name}]"
        elif entry.kind == "directory":
            label = f"{entry.name}/"
        else:
            label = entry.name

        if len(label) > max_width:
            label = label[: max(1, max_width - 3)] + "..."

        style = ENTRY_STYLES.get(entry.kind, "white")
        if selected:
            style = f"{style} reverse"
        return Text(label.ljust(max_width) if selected else label, style=style)

    def _populate_browser(self, layout: Layout, context: LayoutContext) -> None:
        browser = self.browser
        if browser is None:
            layout["browser"].update(Panel(Text("No directory loaded", style="dim"), title=UI_PANEL_BROWSER))
            return

        listing = browser.listing
        cursor = browser.cursor
        max_width = max(10, context.terminal_width - 6)
        rows = [
            self._render_entry(listing[index], index == cursor.selected, max_width)
            for index in cursor.visible_range(len(listing))
        ]

        hints = []
        if cursor.scroll_offset > 0:
            hints.append("▲ more above")
        if cursor.scroll_offset + cursor.view_height < len(listing):
            hints.append("▼ more below")

        layout["browser"].update(
            Panel(
                Group(*rows),
                title=Text(str(browser.current_path)),
                title_align="left",
                subtitle="  ".join(hints) or None,
                border_style="blue",
                padding=context.panel_padding,
            )
        )

    def _create_progress_bar(self, current, total, color, available_width=None):
        """Create a progress bar with elapsed/total clock on the right"""
        clock = f" {format_clock(current)} / {format_clock(total)}"
        if available_width is None:
            bar_width = 20
        else:
            bar_width = max(8, available_width - len(clock))

        if not total or total <= 0 or current is None:
            bar_text = Text("░" * bar_width, style=f"dim {color}")
            bar_text.append(clock, style=f"dim {color}")
            return bar_text

        progress = min(max(current / total, 0.0), 1.0)
        filled = int(progress * bar_width)
        bar_text = Text()
        bar_text.append("█" * filled, style=color)
        bar_text.append("░" * (bar_width - filled), style=f"dim {color}")
        bar_text.append(clock, style=color)
        return bar_text

    def _populate_now_playing(self, layout: Layout, context: LayoutContext) -> None:
        snapshot = self.snapshot
        content = Text()

        if snapshot is None or snapshot.label is None:
            content.append(UI_NOTHING_PLAYING, style="dim white")
            if snapshot is not None and snapshot.error:
                content.append("\n")
                content.append(snapshot.error, style="bold red")
        else:
            color = STATE_COLORS.get(snapshot.state, "white")
            content.append(f"{snapshot.label}", style="bold cyan")
            content.append(f"  [{snapshot.state.lower()}]", style=color)
            content.append("\n")
            if snapshot.is_loading:
                content.append(f"{self.get_loading_symbol()} {UI_LOADING}", style="dim cyan")
            else:
                bar_width = max(20, context.terminal_width - 8)
                content.append_text(
                    self._create_progress_bar(snapshot.position, snapshot.duration, color, bar_width)
                )

        layout["now_playing"].update(
            Panel(
                content,
                title=UI_PANEL_NOW_PLAYING,
                title_align="left",
                subtitle="p: pause/resume  s: stop",
                border_style="magenta",
                padding=context.panel_padding,
            )
        )

    def _populate_footer(self, layout: Layout, context: LayoutContext) -> None:
        log_inner = max(1, context.footer_height - 2)
        visible_lines = list(self.log_buffer)[-log_inner:]
        if len(visible_lines) < log_inner:
            visible_lines = [""] * (log_inner - len(visible_lines)) + visible_lines

        max_log_width = max(20, context.terminal_width - 6)
        log_text = Text("\n".join(line[:max_log_width] for line in visible_lines))

        layout["footer"].update(
            Panel(
                log_text,
                title=UI_PANEL_CHRONICLE,
                title_align="left",
                border_style="yellow",
                padding=context.panel_padding,
            )
        )

    def _build_help_overlay(self, context: LayoutContext) -> Layout:
        dialog_content = HelpDialogBuilder(UI_APP_NAME, VERSION).build()

        content_height = 20
        dialog_height = min(content_height, context.terminal_height - 2)
        dialog_width = min(80, context.terminal_width - 4)

        top_space = max(1, (context.terminal_height - dialog_height) // 2)
        bottom_space = max(1, context.terminal_height - dialog_height - top_space)
        side_margin = max(1, (context.terminal_width - dialog_width) // 2)

        overlay = Layout()
        overlay.split_column(
            Layout(name="overlay_top", size=top_space),
            Layout(name="overlay_center", size=dialog_height),
            Layout(name="overlay_bottom", size=bottom_space),
        )
        overlay["overlay_center"].split_row(
            Layout(name="overlay_left", size=side_margin),
            Layout(name="overlay_dialog", size=dialog_width),
            Layout(name="overlay_right", size=side_margin),
        )
        overlay["overlay_dialog"].update(
            Panel(dialog_content, title="Help & Keybindings", border_style="bright_cyan", padding=(1, 2))
        )
        for name in ("overlay_top", "overlay_bottom", "overlay_left", "overlay_right"):
            overlay[name].update("")

        return overlay

    def start_live_display(self):
        """Start the live TUI display"""
        if not self.tui_enabled:
            return

        refresh_rate = 5 if self.is_tmux else 10
        self.live_display = Live(
            self.create_layout(),
            console=self.console,
            refresh_per_second=refresh_rate,
            screen=True,
        )
        self.live_display.start()

    def update_display(self, force=False):
        """Update the live display with throttling for tmux compatibility"""
        if not self.tui_enabled or not self.live_display:
            return

        current_time = time.time()
        if not force and current_time - self.last_update_time < self.update_throttle:
            return

        try:
            self.live_display.update(self.create_layout())
            self.last_update_time = current_time
        except Exception as exc:
            debug_log("TUI_RENDER_ERROR", f"Render failed: {exc}")

    def stop_live_display(self):
        """Stop the live TUI display"""
        if self.live_display:
            try:
                self.live_display.stop()
            except Exception:
                pass
            finally:
                self.live_display = None
                try:
                    self.console.show_cursor(True)
                except Exception:
                    pass


# Global TUI manager instance
tui_manager = TUIManager()
