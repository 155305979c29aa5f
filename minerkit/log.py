"""Coloured, channel-tagged log lines written to the console."""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntFlag
from typing import TextIO

__all__ = [
    "LogFlag",
    "LogSettings",
    "Channel",
    "SETTINGS",
    "strip_colors",
    "get_thread_name",
    "set_thread_name",
    "make_prefix",
    "simple_debug_out",
    "emit",
    "cnote",
    "cwarn",
]

RESET = "\x1b[0m"

BLACK = "\x1b[30m"
COAL = "\x1b[90m"
GRAY = "\x1b[37m"
WHITE = "\x1b[97m"
MAROON = "\x1b[31m"
RED = "\x1b[91m"
GREEN = "\x1b[32m"
LIME = "\x1b[92m"
ORANGE = "\x1b[33m"
YELLOW = "\x1b[93m"
NAVY = "\x1b[34m"
BLUE = "\x1b[94m"
VIOLET = "\x1b[35m"
PURPLE = "\x1b[95m"
TEAL = "\x1b[36m"
CYAN = "\x1b[96m"

BLACK_BOLD = "\x1b[1;30m"
COAL_BOLD = "\x1b[1;90m"
GRAY_BOLD = "\x1b[1;37m"
WHITE_BOLD = "\x1b[1;97m"
MAROON_BOLD = "\x1b[1;31m"
RED_BOLD = "\x1b[1;91m"
GREEN_BOLD = "\x1b[1;32m"
LIME_BOLD = "\x1b[1;92m"
ORANGE_BOLD = "\x1b[1;33m"
YELLOW_BOLD = "\x1b[1;93m"
NAVY_BOLD = "\x1b[1;34m"
BLUE_BOLD = "\x1b[1;94m"
VIOLET_BOLD = "\x1b[1;35m"
PURPLE_BOLD = "\x1b[1;95m"
TEAL_BOLD = "\x1b[1;36m"
CYAN_BOLD = "\x1b[1;96m"

ON_BLACK = "\x1b[40m"
ON_COAL = "\x1b[100m"
ON_GRAY = "\x1b[47m"
ON_WHITE = "\x1b[107m"
ON_MAROON = "\x1b[41m"
ON_RED = "\x1b[101m"
ON_GREEN = "\x1b[42m"
ON_LIME = "\x1b[102m"
ON_ORANGE = "\x1b[43m"
ON_YELLOW = "\x1b[103m"
ON_NAVY = "\x1b[44m"
ON_BLUE = "\x1b[104m"
ON_VIOLET = "\x1b[45m"
ON_PURPLE = "\x1b[105m"
ON_TEAL = "\x1b[46m"
ON_CYAN = "\x1b[106m"

BLACK_UNDER = "\x1b[4;30m"
GRAY_UNDER = "\x1b[4;37m"
MAROON_UNDER = "\x1b[4;31m"
GREEN_UNDER = "\x1b[4;32m"
ORANGE_UNDER = "\x1b[4;33m"
NAVY_UNDER = "\x1b[4;34m"
VIOLET_UNDER = "\x1b[4;35m"
TEAL_UNDER = "\x1b[4;36m"


class LogFlag(IntFlag):
    """Verbosity bits that can be summed into the log options."""

    JSON = 1
    PER_GPU = 2
    CONNECT = 32
    SWITCH = 64
    SUBMIT = 128
    PROGRAMFLOW = 256
    NEXT = 512


@dataclass
class LogSettings:
    """Process-wide logging switches."""

    options: int = 0
    no_color: bool = False
    syslog: bool = False
    stdout: bool = False


SETTINGS = LogSettings()


class Channel(Enum):
    """Log channels; each value is the coloured tag that opens a line."""

    LOG = GRAY + ".."
    WARN = RED + " X"
    NOTE = BLUE + " i"


def strip_colors(text: str) -> str:
    """Remove escape sequences, from ESC up to and including the next ``m``."""
    out = []
    skipping = False
    for char in text:
        if not skipping and char == "\x1b":
            skipping = True
        elif skipping and char == "m":
            skipping = False
        elif not skipping:
            out.append(char)
    return "".join(out)


def get_thread_name() -> str:
    """Name of the calling thread."""
    return threading.current_thread().name


def set_thread_name(name: str) -> None:
    """Rename the calling thread for log output."""
    threading.current_thread().name = name


def make_prefix(channel: Channel, now: datetime | None = None) -> str:
    """The text that opens a log line on ``channel``."""
    thread = f"{get_thread_name():<8}"
    if SETTINGS.syslog:
        return f"{thread} {RESET}"
    stamp = (now or datetime.now()).strftime("%X")
    return f"{channel.value} {VIOLET}{stamp} {BLUE}{thread} {RESET}"


def simple_debug_out(text: str, stream: TextIO | None = None) -> str:
    """Write one line, without colours when they are switched off; return what was written."""
    if stream is None:
        stream = sys.stdout if SETTINGS.stdout else sys.stderr
    line = (strip_colors(text) if SETTINGS.no_color else text) + "\n"
    try:
        stream.write(line)
        stream.flush()
    except (OSError, ValueError):
        pass
    return line


def emit(channel: Channel, *args: object) -> str:
    """Log the concatenated ``args`` on ``channel``; return the line written."""
    text = make_prefix(channel) + "".join(str(arg) for arg in args)
    return simple_debug_out(text)


def cnote(*args: object) -> str:
    """Log on the note channel."""
    return emit(Channel.NOTE, *args)


def cwarn(*args: object) -> str:
    """Log on the warning channel."""
    return emit(Channel.WARN, *args)