"""Reading and changing individual configuration options."""

from __future__ import annotations

from typing import Iterable

from shellhist.config import ClientConfig, ConfigError
from shellhist.entry import CustomColumnDefinition

_BOOL_VALUES = {"true": True, "false": False}

# Accepted log level names mapped to their canonical spelling.
_LOG_LEVELS = {
    "panic": "panic",
    "fatal": "fatal",
    "error": "error",
    "warn": "warning",
    "warning": "warning",
    "info": "info",
    "debug": "debug",
    "trace": "trace",
}

_QUOTE_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def _quote(text: str) -> str:
    """Double-quote a string, escaping quotes, backslashes and control characters."""
    parts = []
    for char in text:
        if char in _QUOTE_ESCAPES:
            parts.append(_QUOTE_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            parts.append(f"\\x{ord(char):02x}")
        else:
            parts.append(char)
    return '"' + "".join(parts) + '"'


def validate_color(color: str) -> str:
    """Check that ``color`` looks like ``#rrggbb`` and return it."""
    if not color.startswith("#") or len(color) != 7:
        raise ConfigError(
            f"color {color!r} is invalid, it should be a hexadecimal color like #663399"
        )
    return color


def parse_bool(value: str) -> bool:
    """Parse the literal strings ``true`` and ``false``."""
    try:
        return _BOOL_VALUES[value]
    except KeyError:
        raise ConfigError(
            f"Unexpected config value {value}, must be one of: true, false"
        ) from None


def parse_log_level(value: str) -> str:
    """Parse a log level name, returning its canonical spelling."""
    try:
        return _LOG_LEVELS[value.lower()]
    except KeyError:
        raise ConfigError(
            f"invalid log level: not a valid log level: {value!r}"
        ) from None


def add_custom_column(config: ClientConfig, name: str, command: str) -> None:
    """Add a custom column; names must be unique ignoring case."""
    for existing in config.custom_columns:
        if existing.column_name.casefold() == name.casefold():
            raise ConfigError(
                f"cannot create a column named {_quote(existing.column_name)} "
                f"since there is already one named {_quote(name)}"
            )
    config.custom_columns.append(
        CustomColumnDefinition(column_name=name, column_command=command)
    )


def delete_custom_column(config: ClientConfig, name: str) -> None:
    """Remove a custom column and stop displaying it."""
    remaining = [c for c in config.custom_columns if c.column_name != name]
    if len(remaining) == len(config.custom_columns):
        current = [c.column_name for c in config.custom_columns]
        raise ConfigError(
            f"Did not find a column with name {_quote(name)} to delete "
            f"(current columns = {current!r})"
        )
    config.custom_columns = remaining
    config.displayed_columns = [c for c in config.displayed_columns if c != name]


def add_displayed_columns(config: ClientConfig, columns: Iterable[str]) -> None:
    """Append columns to the list of displayed columns."""
    config.displayed_columns.extend(columns)


def delete_displayed_columns(config: ClientConfig, columns: Iterable[str]) -> None:
    """Stop displaying every column named in ``columns``."""
    deleted = set(columns)
    config.displayed_columns = [c for c in config.displayed_columns if c not in deleted]


def format_displayed_columns(config: ClientConfig) -> str:
    """Displayed columns on one line, quoting those that contain a space."""
    parts = [
        (_quote(col) if " " in col else col) + " " for col in config.displayed_columns
    ]
    return "".join(parts) + "\n"


def format_custom_columns(config: ClientConfig) -> str:
    """One ``name:   command`` line per custom column."""
    return "".join(
        f"{c.column_name}:   {c.column_command}\n" for c in config.custom_columns
    )


def format_color_scheme(config: ClientConfig) -> str:
    """The configured colours, one per line."""
    scheme = config.color_scheme
    return (
        f"selected-text: {scheme.selected_text}\n"
        f"selected-background: {scheme.selected_background}\n"
        f"border-color: {scheme.border_color}\n"
    )