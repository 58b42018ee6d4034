"""Client configuration: model, defaults, persistence and key bindings."""

from __future__ import annotations

import json
import os
import posixpath
import tempfile
import uuid
from dataclasses import dataclass, field, fields
from typing import Any

from shellhist.data import CONFIG_PATH, get_hishtory_path
from shellhist.entry import CustomColumnDefinition


class ConfigError(ValueError):
    """Raised when the configuration cannot be read, parsed or updated."""


def _keys(*values: str) -> Any:
    return field(default_factory=lambda: list(values))


@dataclass
class KeyBindings:
    """Keys bound to each action in the interactive search interface."""

    up: list[str] = _keys("up", "alt+OA", "ctrl+p")
    down: list[str] = _keys("down", "alt+OB", "ctrl+n")
    page_up: list[str] = _keys("pgup")
    page_down: list[str] = _keys("pgdown")
    select_entry: list[str] = _keys("enter")
    select_entry_and_change_dir: list[str] = _keys("ctrl+x")
    left: list[str] = _keys("left")
    right: list[str] = _keys("right")
    table_left: list[str] = _keys("shift+left")
    table_right: list[str] = _keys("shift+right")
    delete_entry: list[str] = _keys("ctrl+k")
    help: list[str] = _keys("ctrl+h")
    quit: list[str] = _keys("esc", "ctrl+c", "ctrl+d")
    jump_start_of_input: list[str] = _keys("ctrl+a")
    jump_end_of_input: list[str] = _keys("ctrl+e")
    word_left: list[str] = _keys("ctrl+left")
    word_right: list[str] = _keys("ctrl+right")

    def to_dict(self) -> dict[str, list[str]]:
        return {f.name: list(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> KeyBindings:
        bindings = cls()
        for f in fields(cls):
            value = payload.get(f.name)
            if value is not None:
                setattr(bindings, f.name, [str(key) for key in value])
        return bindings


@dataclass
class ColorScheme:
    """Colours used for the selected row and the table borders."""

    selected_text: str = "#FFFF99"
    selected_background: str = "#3300FF"
    border_color: str = "#585858"

    def to_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ColorScheme:
        scheme = cls()
        for f in fields(cls):
            value = payload.get(f.name)
            if value is not None:
                setattr(scheme, f.name, str(value))
        return scheme


# Action name on the command line, field name, separator used when listing.
_KEY_BINDING_ACTIONS: tuple[tuple[str, str, str], ...] = (
    ("up", "up", "\t\t\t"),
    ("down", "down", "\t\t\t"),
    ("page-up", "page_up", "\t\t"),
    ("page-down", "page_down", "\t\t"),
    ("select-entry", "select_entry", "\t\t"),
    ("select-entry-and-cd", "select_entry_and_change_dir", "\t"),
    ("left", "left", "\t\t\t"),
    ("right", "right", "\t\t\t"),
    ("table-left", "table_left", "\t\t"),
    ("table-right", "table_right", "\t\t"),
    ("delete-entry", "delete_entry", "\t\t"),
    ("help", "help", "\t\t\t"),
    ("quit", "quit", "\t\t\t"),
    ("jump-start-of-input", "jump_start_of_input", "\t"),
    ("jump-end-of-input", "jump_end_of_input", "\t"),
    ("word-left", "word_left", "\t\t"),
    ("word-right", "word_right", "\t\t"),
)

_DEFAULT_DISPLAYED_COLUMNS = ("Hostname", "CWD", "Timestamp", "Runtime", "Exit Code", "Command")


@dataclass
class ClientConfig:
    """Everything persisted in the client's configuration file."""

    user_secret: str = ""
    is_enabled: bool = False
    device_id: str = ""
    last_saved_history_line: str = ""
    last_presaved_history_line: str = ""
    have_missed_uploads: bool = False
    missed_upload_timestamp: int = 0
    pending_deletion_requests: list[dict[str, Any]] = field(default_factory=list)
    is_offline: bool = False
    control_r_search_enabled: bool = False
    highlight_matches: bool = False
    ai_completion: bool = False
    enable_presaving: bool = False
    displayed_columns: list[str] = field(
        default_factory=lambda: list(_DEFAULT_DISPLAYED_COLUMNS)
    )
    timestamp_format: str = "Jan 2 2006 15:04:05 MST"
    custom_columns: list[CustomColumnDefinition] = field(default_factory=list)
    beta_mode: bool = False
    filter_duplicate_commands: bool = False
    default_filter: str = ""
    color_scheme: ColorScheme = field(default_factory=ColorScheme)
    force_compact_mode: bool = False
    ai_completion_endpoint: str = ""
    log_level: str = "info"
    full_screen_rendering: bool = False
    key_bindings: KeyBindings = field(default_factory=KeyBindings)

    _JSON_NAMES = {"control_r_search_enabled": "enable_control_r_search"}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "custom_columns":
                value = [
                    {"column_name": c.column_name, "column_command": c.column_command}
                    for c in value
                ]
            elif isinstance(value, (ColorScheme, KeyBindings)):
                value = value.to_dict()
            elif isinstance(value, list):
                value = list(value)
            result[self._JSON_NAMES.get(f.name, f.name)] = value
        return result

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ClientConfig:
        if not isinstance(payload, dict):
            raise ConfigError(f"config must be a JSON object, got {type(payload).__name__}")
        config = cls()
        try:
            for f in fields(cls):
                key = cls._JSON_NAMES.get(f.name, f.name)
                if key not in payload or payload[key] is None:
                    continue
                value = payload[key]
                if f.name == "custom_columns":
                    value = [
                        CustomColumnDefinition(
                            column_name=item.get("column_name", ""),
                            column_command=item.get("column_command", ""),
                        )
                        for item in value
                    ]
                elif f.name == "color_scheme":
                    value = ColorScheme.from_dict(value)
                elif f.name == "key_bindings":
                    value = KeyBindings.from_dict(value)
                elif f.name == "missed_upload_timestamp":
                    value = int(value)
                elif f.name in ("displayed_columns", "pending_deletion_requests"):
                    value = list(value)
                setattr(config, f.name, value)
        except (TypeError, ValueError, AttributeError) as err:
            raise ConfigError(f"failed to parse config: {err}") from err
        return config


def config_path(homedir: str) -> str:
    """Location of the configuration file under the given home directory."""
    return posixpath.normpath("/".join([homedir, get_hishtory_path(), CONFIG_PATH]))


def load_config(path: str) -> ClientConfig:
    """Read and parse the configuration file at ``path``."""
    try:
        with open(path, encoding="utf-8") as handle:
            contents = handle.read()
    except OSError as err:
        raise ConfigError(f"failed to read config file {path}: {err}") from err
    try:
        payload = json.loads(contents)
    except json.JSONDecodeError as err:
        raise ConfigError(f"failed to parse config file {path}: {err}") from err
    return ClientConfig.from_dict(payload)


def save_config(config: ClientConfig, path: str) -> None:
    """Atomically write the configuration to ``path``."""
    directory = os.path.dirname(path) or "."
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".config-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(config.to_dict(), handle, separators=(",", ":"))
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    except OSError as err:
        raise ConfigError(f"failed to persist config to disk: {err}") from err


def new_install_config(user_secret: str, is_offline: bool) -> ClientConfig:
    """A configuration with the defaults wanted for a fresh installation."""
    return ClientConfig(
        user_secret=user_secret or str(uuid.uuid4()),
        is_enabled=True,
        device_id=str(uuid.uuid4()),
        control_r_search_enabled=True,
        highlight_matches=True,
        # Offline installs start without AI completion; it can still be enabled.
        ai_completion=not is_offline,
        is_offline=is_offline,
        enable_presaving=True,
    )


def apply_upgraded_defaults(config: ClientConfig, raw_contents: str) -> ClientConfig:
    """Turn on defaults for options that an older config file never set."""
    if "enable_control_r_search" not in raw_contents:
        config.control_r_search_enabled = True
    if "highlight_matches" not in raw_contents:
        config.highlight_matches = True
    if "enable_presaving" not in raw_contents:
        config.enable_presaving = True
    if "ai_completion" not in raw_contents:
        # New feature: keep it off for people upgrading.
        config.ai_completion = False
    return config


def set_key_binding(config: ClientConfig, action: str, keys: list[str]) -> None:
    """Bind ``keys`` to the named action."""
    for name, attribute, _ in _KEY_BINDING_ACTIONS:
        if name == action:
            setattr(config.key_bindings, attribute, list(keys))
            return
    raise ConfigError(
        f"unknown action {action!r}, run `hishtory config-get keybindings` to see the "
        "list of currently configured key bindings"
    )


def format_key_bindings(config: ClientConfig) -> str:
    """List every action with its keys, one per line."""
    return "".join(
        f"{name}: {separator}{' '.join(getattr(config.key_bindings, attribute))}\n"
        for name, attribute, separator in _KEY_BINDING_ACTIONS
    )