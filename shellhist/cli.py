"""Command-line entry point for enabling, disabling and configuring recording."""

from __future__ import annotations

import argparse
import json
import os
import sys
from functools import partial
from typing import Any, Callable, Optional, Sequence

from shellhist.config import (
    ClientConfig,
    ConfigError,
    config_path,
    format_key_bindings,
    load_config,
    save_config,
    set_key_binding,
)
from shellhist.settings import (
    add_custom_column,
    add_displayed_columns,
    delete_custom_column,
    delete_displayed_columns,
    format_color_scheme,
    format_custom_columns,
    format_displayed_columns,
    parse_bool,
    parse_log_level,
    validate_color,
)

Handler = Callable[[ClientConfig, argparse.Namespace], str]

_AI_COMPLETION_NOTE = (
    "Note that AI completion requests are sent to the shared hiSHtory backend and then "
    "to OpenAI. Requests are not logged, but still be careful not to put anything "
    "sensitive in queries."
)
_PRESAVING_NOTE = (
    "If enabled, there is a slight risk of duplicate history entries. If disabled, "
    "non-terminating history entries will not be recorded."
)
_CONTROL_R_MESSAGE = (
    "Updated the control-r integration, please restart your shell for this to take effect...\n"
)

# Command name, config attribute, help text for the true/false options.
_BOOL_OPTIONS: tuple[tuple[str, str, str], ...] = (
    ("enable-control-r", "control_r_search_enabled",
     "Whether hishtory replaces your shell's default control-r"),
    ("filter-duplicate-commands", "filter_duplicate_commands",
     "Whether hishtory filters out duplicate commands when displaying your history"),
    ("beta-mode", "beta_mode", "Enable beta-mode to opt-in to unreleased features"),
    ("highlight-matches", "highlight_matches",
     "Whether hishtory highlights matches in the search results"),
    ("ai-completion", "ai_completion", "Enable AI completion for searches starting with '?'"),
    ("presaving", "enable_presaving",
     "Enable 'presaving' of shell entries that never finish running"),
    ("compact-mode", "force_compact_mode",
     "Whether the TUI runs in compact mode to minimize wasted terminal space"),
    ("full-screen", "full_screen_rendering",
     "Whether or not hishtory is configured to run in full-screen mode"),
)

_LONG_HELP = {"ai-completion": _AI_COMPLETION_NOTE, "presaving": _PRESAVING_NOTE}

# Command name, config attribute, help text for free-form string options.
_STRING_OPTIONS: tuple[tuple[str, str, str], ...] = (
    ("timestamp-format", "timestamp_format",
     "The format string to use for formatting the timestamp"),
    ("ai-completion-endpoint", "ai_completion_endpoint",
     "The AI endpoint to use for AI completions"),
)

_COLOR_OPTIONS: tuple[tuple[str, str, str], ...] = (
    ("selected-text", "selected_text",
     "Set the color of the selected text to the given hexadecimal color"),
    ("selected-background", "selected_background",
     "Set the background color of the selected row to the given hexadecimal color"),
    ("border-color", "border_color", "Set the color of the table borders"),
)


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def _get_bool(attribute: str, config: ClientConfig, args: argparse.Namespace) -> str:
    return _format_bool(getattr(config, attribute)) + "\n"


def _set_bool(attribute: str, config: ClientConfig, args: argparse.Namespace) -> str:
    setattr(config, attribute, parse_bool(args.value))
    return _CONTROL_R_MESSAGE if attribute == "control_r_search_enabled" else ""


def _get_string(attribute: str, config: ClientConfig, args: argparse.Namespace) -> str:
    return f"{getattr(config, attribute)}\n"


def _set_string(attribute: str, config: ClientConfig, args: argparse.Namespace) -> str:
    setattr(config, attribute, args.value)
    return ""


def _set_color(attribute: str, config: ClientConfig, args: argparse.Namespace) -> str:
    setattr(config.color_scheme, attribute, validate_color(args.value))
    return ""


def _get_default_filter(config: ClientConfig, args: argparse.Namespace) -> str:
    return json.dumps(config.default_filter, ensure_ascii=False)


def _set_default_filter(config: ClientConfig, args: argparse.Namespace) -> str:
    config.default_filter = args.value
    return ""


def _set_displayed_columns(config: ClientConfig, args: argparse.Namespace) -> str:
    config.displayed_columns = list(args.columns)
    return ""


def _get_log_level(config: ClientConfig, args: argparse.Namespace) -> str:
    return f"{config.log_level}\n"


def _set_log_level(config: ClientConfig, args: argparse.Namespace) -> str:
    config.log_level = parse_log_level(args.value)
    return ""


def _set_key_bindings(config: ClientConfig, args: argparse.Namespace) -> str:
    set_key_binding(config, args.action, args.keys)
    return ""


def _set_enabled(enabled: bool, config: ClientConfig, args: argparse.Namespace) -> str:
    config.is_enabled = enabled
    return ""


def _add_custom_column(config: ClientConfig, args: argparse.Namespace) -> str:
    add_custom_column(config, args.name, args.command)
    return ""


def _add_displayed_column(config: ClientConfig, args: argparse.Namespace) -> str:
    add_displayed_columns(config, [args.column])
    return ""


def _delete_custom_column(config: ClientConfig, args: argparse.Namespace) -> str:
    delete_custom_column(config, args.name)
    return ""


def _delete_displayed_columns(config: ClientConfig, args: argparse.Namespace) -> str:
    delete_displayed_columns(config, args.columns)
    return ""


def _leaf(subparsers: Any, name: str, handler: Handler, mutates: bool,
          help_text: str, aliases: Sequence[str] = (), description: Optional[str] = None
          ) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        name, aliases=list(aliases), help=help_text, description=description or help_text
    )
    parser.set_defaults(handler=handler, mutates=mutates)
    return parser


def _group(subparsers: Any, name: str, help_text: str,
           aliases: Sequence[str] = ()) -> tuple[argparse.ArgumentParser, Any]:
    parser = subparsers.add_parser(name, aliases=list(aliases), help=help_text,
                                   description=help_text)
    parser.set_defaults(handler=None, help_parser=parser, exit_code=1)
    return parser, parser.add_subparsers(title="commands")


def _build_config_get(subparsers: Any) -> None:
    _, sub = _group(subparsers, "config-get", "Get the value of a config option")
    for name, attribute, help_text in _BOOL_OPTIONS:
        _leaf(sub, name, partial(_get_bool, attribute), False, help_text,
              description=_LONG_HELP.get(name))
    for name, attribute, help_text in _STRING_OPTIONS:
        _leaf(sub, name, partial(_get_string, attribute), False, help_text)
    _leaf(sub, "default-filter", _get_default_filter, False,
          "The default filter that is applied to all search queries")
    _leaf(sub, "displayed-columns", lambda c, a: format_displayed_columns(c), False,
          "The list of columns that hishtory displays", aliases=["displayed-column"])
    _leaf(sub, "custom-columns", lambda c, a: format_custom_columns(c), False,
          "The list of custom columns that hishtory is tracking", aliases=["custom-column"])
    _leaf(sub, "color-scheme", lambda c, a: format_color_scheme(c), False,
          "Get the currently configured color scheme for selected text in the TUI")
    _leaf(sub, "log-level", _get_log_level, False,
          "Get the current log level for hishtory logs")
    _leaf(sub, "key-bindings", lambda c, a: format_key_bindings(c), False,
          "Get the currently configured key bindings for the TUI")


def _build_config_set(subparsers: Any) -> None:
    _, sub = _group(subparsers, "config-set", "Set the value of a config option")
    for name, attribute, help_text in _BOOL_OPTIONS:
        parser = _leaf(sub, name, partial(_set_bool, attribute), True, help_text,
                       description=_LONG_HELP.get(name))
        parser.add_argument("value", choices=["true", "false"])
    for name, attribute, help_text in _STRING_OPTIONS:
        parser = _leaf(sub, name, partial(_set_string, attribute), True, help_text)
        parser.add_argument("value")
    parser = _leaf(sub, "default-filter", _set_default_filter, True,
                   "Add a default filter that will be applied to all search queries")
    parser.add_argument("value")
    parser = _leaf(sub, "displayed-columns", _set_displayed_columns, True,
                   "The list of columns that hishtory displays",
                   aliases=["displayed-column"])
    parser.add_argument("columns", nargs="+")
    parser = _leaf(sub, "log-level", _set_log_level, True,
                   "Set the log level for hishtory logs")
    parser.add_argument("value", choices=["error", "warn", "info", "debug"])
    parser = _leaf(sub, "key-bindings", _set_key_bindings, True,
                   "Set custom key bindings for the TUI")
    parser.add_argument("action")
    parser.add_argument("keys", nargs="+")
    _, colors = _group(sub, "color-scheme", "Set a custom color scheme")
    for name, attribute, help_text in _COLOR_OPTIONS:
        parser = _leaf(colors, name, partial(_set_color, attribute), True, help_text)
        parser.add_argument("value")


def _build_config_add(subparsers: Any) -> None:
    _, sub = _group(subparsers, "config-add", "Add a config option")
    parser = _leaf(sub, "custom-columns", _add_custom_column, True,
                   "Add a custom column", aliases=["custom-column"])
    parser.add_argument("name")
    parser.add_argument("command")
    parser = _leaf(sub, "displayed-columns", _add_displayed_column, True,
                   "Add a column to be displayed", aliases=["displayed-column"])
    parser.add_argument("column")


def _build_config_delete(subparsers: Any) -> None:
    _, sub = _group(subparsers, "config-delete", "Delete a config option",
                    aliases=["config-remove"])
    parser = _leaf(sub, "custom-columns", _delete_custom_column, True,
                   "Delete a custom column", aliases=["custom-column"])
    parser.add_argument("name")
    parser = _leaf(sub, "displayed-columns", _delete_displayed_columns, True,
                   "Delete a displayed column", aliases=["displayed-column"])
    parser.add_argument("columns", nargs="+")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for every supported command."""
    parser = argparse.ArgumentParser(prog="hishtory", description="hiSHtory: Better shell history")
    parser.set_defaults(handler=None, help_parser=parser, exit_code=0)
    subparsers = parser.add_subparsers(title="commands")
    _leaf(subparsers, "enable", partial(_set_enabled, True), True, "Enable hiSHtory recording")
    _leaf(subparsers, "disable", partial(_set_enabled, False), True,
          "Disable hiSHtory recording")
    _build_config_get(subparsers)
    _build_config_set(subparsers)
    _build_config_add(subparsers)
    _build_config_delete(subparsers)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a command and return the process exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code in (0, None) else 1
    if args.handler is None:
        args.help_parser.print_help()
        return args.exit_code
    path = config_path(os.path.expanduser("~"))
    try:
        config = load_config(path)
        output = args.handler(config, args)
        if args.mutates:
            save_config(config, path)
    except ConfigError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
    if output:
        print(output, end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())