#!/usr/bin/env python3
#
# TuneWalk
# Copyright (c) 2025 Martynas Jocius
#
"""Debug utilities for TuneWalk."""

import time
from typing import Dict, Any, List, Optional
from .. import DEBUG_MODE


class DebugManager:
    """Collects structured debug events and tracks component state."""

    def __init__(self):
        self.enabled = False
        self.start_time = time.time()
        self.state_changes = []
        self.current_state = {}

    def enable(self):
        """Enable debug mode."""
        self.enabled = True
        self.debug_log("DEBUG_MODE_ENABLED", "Debug mode activated")

    def disable(self):
        """Disable debug mode."""
        if self.enabled:
            self.debug_log("DEBUG_MODE_DISABLED", "Debug mode deactivated")
        self.enabled = False

    def _emit(self, lines: List[str]):
        # Route through the TUI log while the live display owns the screen
        from ..ui import tui

        # The TUI module may still be initializing when debug is enabled from the environment
        manager = getattr(tui, "tui_manager", None)
        if manager is not None and manager.tui_enabled and manager.live_display:
            for line in lines:
                manager.log(line)
        else:
            for line in lines:
                print(line)

    def debug_log(self, event_type: str, message: str, data: Optional[Dict[str, Any]] = None):
        """Record a debug event and echo it."""
        if not self.enabled:
            return

        timestamp = time.time()
        runtime = timestamp - self.start_time

        entry = {
            "timestamp": timestamp,
            "runtime_seconds": round(runtime, 3),
            "event_type": event_type,
            "message": message,
        }
        if data:
            entry["data"] = data
        self.state_changes.append(entry)

        prefix = f"[DEBUG:{runtime:7.3f}s]"
        lines = [f"{prefix} {event_type}: {message}"]
        if data:
            lines.extend(f"{prefix}   {key}: {value}" for key, value in data.items())
        self._emit(lines)

    def update_state(self, component: str, key: str, value: Any, description: str = ""):
        """Update tracked state and log the transition."""
        if not self.enabled:
            return

        component_state = self.current_state.setdefault(component, {})
        old_value = component_state.get(key)
        component_state[key] = value

        change_desc = f"{description} " if description else ""
        self.debug_log(
            "STATE_CHANGE",
            f"{change_desc}{component}.{key}: {old_value} -> {value}",
            {
                "component": component,
                "key": key,
                "old_value": old_value,
                "new_value": value,
            },
        )

    def log_error(self, error_type: str, component: str, error_msg: str, details: Dict[str, Any] = None):
        """Log an error with context."""
        if not self.enabled:
            return

        error_data = {"component": component, "error_message": error_msg}
        if details:
            error_data.update(details)
        self.debug_log("ERROR", f"{component}: {error_type} - {error_msg}", error_data)

    def get_current_state(self) -> Dict[str, Any]:
        """Get current tracked state snapshot."""
        return {
            "runtime_seconds": round(time.time() - self.start_time, 3),
            "debug_enabled": self.enabled,
            "state": {name: dict(values) for name, values in self.current_state.items()},
            "total_state_changes": len(self.state_changes),
        }

    def print_state_summary(self):
        """Print tracked component state, typically on shutdown."""
        if not self.enabled:
            return

        state = self.get_current_state()
        prefix = f"[DEBUG:{state['runtime_seconds']:7.3f}s]"
        lines = [
            f"{prefix} === STATE SUMMARY ===",
            f"{prefix} Runtime: {state['runtime_seconds']}s",
            f"{prefix} Total state changes: {state['total_state_changes']}",
        ]
        for component, component_state in state["state"].items():
            lines.append(f"{prefix} {component}:")
            lines.extend(f"{prefix}   {key}: {value}" for key, value in component_state.items())
        lines.append(f"{prefix} === END STATE SUMMARY ===")
        self._emit(lines)


# Global debug manager instance
debug_manager = DebugManager()


def set_debug_mode(enabled: bool):
    """Set global debug mode state."""
    global DEBUG_MODE
    DEBUG_MODE = enabled
    if enabled:
        debug_manager.enable()
    else:
        debug_manager.disable()


def debug_log(event_type: str, message: str, data: Optional[Dict[str, Any]] = None):
    debug_manager.debug_log(event_type, message, data)


def update_state(component: str, key: str, value: Any, description: str = ""):
    debug_manager.update_state(component, key, value, description)


def log_error(error_type: str, component: str, error_msg: str, details: Dict[str, Any] = None):
    debug_manager.log_error(error_type, component, error_msg, details)
