# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Logging configuration with the dashboard color palette.

Uses the same colors as the status dashboard so CLI output and log lines
look consistent.
"""

import sys
from typing import TYPE_CHECKING

from loguru import logger


if TYPE_CHECKING:
    from loguru import Record


COLORS = {
    "amber": "#FFB347",  # Warnings, reconnecting
    "mint": "#5FB88A",  # Success, connected
    "slate": "#8A9BA8",  # Secondary text, debug
    "ink": "#4B5A66",  # Separators, trace
    "paper": "#F2F4F5",  # Primary text
    "brick": "#C0503C",  # Errors
    "sky": "#5B9BD5",  # Info, identifiers
}

RESET = "\033[0m"


def _log_format(record: "Record") -> str:
    """Generate a colored loguru format string for a record.

    Applies a color per log level and appends structured extra fields
    (``logger.info("msg", key=value)``) as key=value pairs.

    Args:
        record: Loguru record containing log metadata, message, and level.

    Returns:
        Format string with loguru color tags.
    """
    level = record["level"].name

    level_colors = {
        "TRACE": f"<fg {COLORS['ink']}>",
        "DEBUG": f"<fg {COLORS['slate']}>",
        "INFO": f"<fg {COLORS['sky']}>",
        "SUCCESS": f"<fg {COLORS['mint']}>",
        "WARNING": f"<fg {COLORS['amber']}>",
        "ERROR": f"<fg {COLORS['brick']}>",
        "CRITICAL": f"<fg {COLORS['brick']}><bold>",
    }

    color = level_colors.get(level, f"<fg {COLORS['paper']}>")
    close = "</>"

    # Format: timestamp | level | module | message [extra]
    fmt = (
        f"<fg {COLORS['slate']}>{{time:HH:mm:ss}}{close}"
        f" <fg {COLORS['ink']}>│{close} "
        f"{color}{{level: <8}}{close}"
        f"<fg {COLORS['ink']}>│{close} "
        f"<fg {COLORS['slate']}>{{name}}{close}"
        f"<fg {COLORS['ink']}>:{close}"
        f"<fg {COLORS['paper']}>{{message}}{close}"
    )

    extra = record["extra"]
    if extra:
        extra_str = " ".join(f"{k}={v!r}" for k, v in extra.items())
        # Escape braces to prevent loguru format string injection
        extra_str = extra_str.replace("{", "{{").replace("}", "}}")
        fmt += f" <fg {COLORS['slate']}>│ {extra_str}{close}"

    fmt += "\n"

    if record["exception"]:
        fmt += "{exception}\n"

    return fmt


def configure_logging(level: str = "INFO") -> None:
    """Configure loguru with the dashboard palette.

    Removes the default handler and adds one writing to stderr.

    Args:
        level: Minimum log level to display (e.g., "DEBUG", "INFO", "WARNING").
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=_log_format,
        colorize=True,
    )


def _ansi_color(hex_color: str) -> str:
    """Convert a hex color code to an ANSI 24-bit foreground escape sequence.

    Args:
        hex_color: Hex color string with or without # prefix (e.g., "#FFB347").

    Returns:
        ANSI escape code for the color.
    """
    hex_color = hex_color.lstrip("#")
    r, g, b = int(hex_color[0:2], 16), int(hex_color[2:4], 16), int(hex_color[4:6], 16)
    return f"\033[38;2;{r};{g};{b}m"


def log_watch_startup(lookup_url: str, stream_url: str, version: str) -> None:
    """Print the endpoints used by ``watch`` to stderr.

    Args:
        lookup_url: Lookup endpoint URL.
        stream_url: Live update WebSocket URL.
        version: Application version string.
    """
    amber = _ansi_color(COLORS["amber"])
    sky = _ansi_color(COLORS["sky"])
    mint = _ansi_color(COLORS["mint"])
    slate = _ansi_color(COLORS["slate"])

    lines = [
        f"  {slate}Version:{RESET} {amber}v{version}{RESET}",
        f"  {slate}Lookup:{RESET}  {sky}{lookup_url}{RESET}",
        f"  {slate}Stream:{RESET}  {mint}{stream_url}{RESET}",
        "",
    ]
    sys.stderr.write("\n".join(lines))
    sys.stderr.flush()
