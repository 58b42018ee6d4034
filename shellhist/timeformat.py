"""Parsing helpers for shell-provided history lines and timestamps."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_REGEX_SPECIALS = set("\\.+*?()|[]{}^$")

_SIMPLE_DIRECTIVES = {
    "t": "\t",
    "Y": "[0-9]{4}",
    "G": "[0-9]{4}",
    "g": "[0-9]{2}",
    "C": "[0-9]{2}",
    "u": "[0-9]",
    "w": "[0-9]",
    "m": "[0-9]{2}",
    "d": "[0-9]{2}",
    "H": "[0-9]{2}",
    "I": "[0-9]{2}",
    "U": "[0-9]{2}",
    "V": "[0-9]{2}",
    "W": "[0-9]{2}",
    "y": "[0-9]{2}",
    "M": "[0-9]{2}",
    "j": "[0-9]{3}",
    "S": "[0-9]{2}",
    "a": "(Sun|Mon|Tue|Wed|Thu|Fri|Sat)",
    "b": "(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)",
    "h": "(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)",
    "e": "[0-9 ]{2}",
    "k": "[0-9 ]{2}",
    "l": "[0-9 ]{2}",
    "n": "\n",
    "p": "(AM|PM)",
    "P": "(am|pm)",
    "s": "\\d+",
    "z": "[+-][0-9]{4}",
}

# Composite directives; %c and friends assume the POSIX locale.
_COMPOSITE_DIRECTIVES = {
    "F": "%Y-%m-%d",
    "D": "%m/%d/%y",
    "T": "%H:%M:%S",
    "c": "%a %b %e %H:%M:%S %Y",
    "r": "%I:%M:%S %p",
    "R": "%H:%M",
    "x": "%m/%d/%y",
    "X": "%H:%M:%S",
}


class UnsupportedTimeFormatError(ValueError):
    """Raised for a HISTTIMEFORMAT that cannot be turned into a regex."""


def _quote_meta(char: str) -> str:
    return "\\" + char if char in _REGEX_SPECIALS else char


def build_regex_from_time_format(time_format: str) -> str:
    """Build a regex matching text produced by a strftime-style format."""
    parts: list[str] = []
    after_percent = False
    for char in time_format:
        if after_percent:
            after_percent = False
            if char == "%":
                parts.append(_quote_meta(char))
            elif char in _SIMPLE_DIRECTIVES:
                parts.append(_SIMPLE_DIRECTIVES[char])
            elif char in _COMPOSITE_DIRECTIVES:
                parts.append(build_regex_from_time_format(_COMPOSITE_DIRECTIVES[char]))
            else:
                raise UnsupportedTimeFormatError(
                    f"unsupported time format directive %{char}"
                )
        elif char == "%":
            after_percent = True
        else:
            parts.append(_quote_meta(char))
    return "".join(parts)


def maybe_skip_bash_hist_time_prefix(cmd_line: str, time_format: str | None) -> str:
    """Strip a leading timestamp written according to HISTTIMEFORMAT."""
    if not time_format:
        return cmd_line
    try:
        pattern = re.compile("^" + build_regex_from_time_format(time_format))
    except re.error as err:
        raise UnsupportedTimeFormatError(
            f"failed to parse regex for HISTTIMEFORMAT variable: {err}"
        ) from err
    return pattern.sub(lambda _match: "", cmd_line, count=1)


def parse_cross_platform_time(value: str) -> datetime:
    """Parse a Unix timestamp given in seconds or nanoseconds."""
    digits = value[:-1] if value.endswith("N") else value
    try:
        number = int(digits, 10)
    except ValueError as err:
        raise ValueError(f"invalid timestamp {value!r}") from err
    if len(digits) >= 18:
        return _EPOCH + timedelta(microseconds=number // 1000)
    return _EPOCH + timedelta(seconds=number)


def get_last_command(history: str) -> str:
    """Extract the command from a `history 1` line such as ' 33  ls'."""
    if history == "":
        return ""
    split = history.strip().split(" ", 1)
    if len(split) <= 1:
        raise ValueError(f"got unexpected bash history line: {history!r}")
    split = split[1].split(" ", 1)
    if len(split) <= 1:
        raise ValueError(f"got unexpected bash history line: {history!r}")
    return split[1]


def trim_trailing_whitespace(s: str) -> str:
    """Drop one trailing newline and then one trailing space."""
    return s.removesuffix("\n").removesuffix(" ")