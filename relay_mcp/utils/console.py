"""Console log formatting for the relay_mcp loggers.

Lines look like::

    14:02:11.042 10/18 | INFO     | services.sessions    | Opening SSH session to web1

Timestamps are US/Eastern. Colors are ANSI and can be switched off.
"""

import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo

COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
}

PREFIX = "relay_mcp."

# Most specific prefix first
COMPONENT_COLORS = (
    ("relay_mcp.server", COLORS["bright_cyan"]),
    ("relay_mcp.services.sessions", COLORS["bright_magenta"]),
    ("relay_mcp.services.gateway", COLORS["magenta"]),
    ("relay_mcp.services.orchestrator", COLORS["bright_blue"]),
    ("relay_mcp.services", COLORS["blue"]),
    ("relay_mcp.tools", COLORS["bright_blue"]),
    ("relay_mcp.resources", COLORS["cyan"]),
    ("relay_mcp.middleware", COLORS["yellow"]),
    ("relay_mcp.config", COLORS["green"]),
)

# Applied in order; later patterns never match the escape codes of earlier ones
HIGHLIGHTS = (
    (re.compile(r"(tool:(?:connect|disconnect))"), COLORS["bright_cyan"]),
    (re.compile(r"(\w+://[^\s]+)"), COLORS["bright_blue"]),
    (re.compile(r"(\d+\.?\d*ms)"), COLORS["bright_yellow"]),
    # user@host:port, user@host, host:port
    (
        re.compile(
            r"((?:[\w.\-]+@)?(?:\[[0-9a-fA-F:]+\]|[\w.\-]+):\d+"
            r"|[\w.\-]+@[\w.\-]+)"
        ),
        COLORS["bright_magenta"],
    ),
    (re.compile(r"((?:sessions|depth)=\d+)"), COLORS["cyan"]),
)

# First match wins
INDICATORS = (
    (("starting", "ready"), ">>>", COLORS["bright_green"]),
    (("shutting down", "shutdown"), "<<<", COLORS["bright_red"]),
    (("error", "failed"), "!!", COLORS["bright_red"]),
    (("warning", "slow"), "!", COLORS["bright_yellow"]),
    (("opening", "creating"), "+", COLORS["bright_cyan"]),
    (("closing", "releasing"), "-", COLORS["bright_yellow"]),
    (("gateway", "tunnel", "forwarding"), "=>", COLORS["magenta"]),
    (("reusing",), "~", COLORS["bright_magenta"]),
)

EST = ZoneInfo("America/New_York")


class ColorfulFormatter(logging.Formatter):
    """Formats records as aligned, colored columns."""

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def _paint(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _component(self, name: str) -> str:
        color = next(
            (c for prefix, c in COMPONENT_COLORS if name.startswith(prefix)),
            COLORS["white"],
        )
        short = name[len(PREFIX) :] if name.startswith(PREFIX) else name
        return self._paint(f"{short:<20}", color)

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=EST)
        when = self._paint(
            f"{stamp:%H:%M:%S}.{int(record.msecs):03d} {stamp:%m/%d}", COLORS["dim"]
        )
        level = self._paint(
            f"{record.levelname:<8}",
            LEVEL_COLORS.get(record.levelname, COLORS["white"]),
        )
        sep = self._paint("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())
        return f"{when} {sep} {level} {sep} {self._component(record.name)} {sep} {message}"

    def _highlight_message(self, message: str) -> str:
        """Color tool names, URIs, durations, servers and counters."""
        if not self.use_colors:
            return message
        for pattern, color in HIGHLIGHTS:
            message = pattern.sub(f"{color}\\1{COLORS['reset']}", message)
        return message


class MCPRequestFormatter(ColorfulFormatter):
    """Prefixes each line with a marker for the kind of event it reports."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.use_colors:
            return line

        text = record.getMessage().lower()
        for keywords, marker, color in INDICATORS:
            if any(k in text for k in keywords):
                return f"{color}{marker}{COLORS['reset']}{' ' * (4 - len(marker))}{line}"
        return f"    {line}"
