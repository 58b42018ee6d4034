"""Building history entries from the arguments passed by shell hooks."""

from __future__ import annotations

import getpass
import logging
import os
import socket
import subprocess
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from shellhist.data import CustomColumn, HistoryEntry
from shellhist.timeformat import (
    get_last_command,
    maybe_skip_bash_hist_time_prefix,
    parse_cross_platform_time,
    trim_trailing_whitespace,
)

logger = logging.getLogger(__name__)


class UnsupportedShellError(ValueError):
    """Raised when a history entry comes from a shell that is not supported."""


@dataclass
class CustomColumnDefinition:
    """A user-defined column whose value is produced by a shell command."""

    column_name: str
    column_command: str


@dataclass
class HistoryLineTracker:
    """Remembers the last bash history lines seen, to skip repeated hook calls.

    ``on_change`` is called whenever a remembered line changes, so the
    caller can persist the new state.
    """

    last_saved_history_line: str = ""
    last_presaved_history_line: str = ""
    on_change: Optional[Callable[["HistoryLineTracker"], None]] = None

    def should_skip(self, history_line: str, is_presave: bool) -> bool:
        """Return True if this line was already handled; otherwise record it."""
        if is_presave:
            if self.last_presaved_history_line == history_line:
                return True
            self.last_presaved_history_line = history_line
        else:
            if self.last_saved_history_line == history_line:
                return True
            self.last_saved_history_line = history_line
        if self.on_change is not None:
            self.on_change(self)
        return False


def extract_command_from_arg(
    shell: str, arg: str, tracker: HistoryLineTracker, is_presave: bool
) -> str:
    """Extract the command text from the hook argument for the given shell.

    An empty string means the command must not be recorded.
    """
    if shell == "bash":
        try:
            cmd = get_last_command(arg)
        except ValueError:
            return ""
        if cmd == "":
            return ""
        if tracker.should_skip(arg, is_presave) or cmd.startswith(" "):
            return ""
        return maybe_skip_bash_hist_time_prefix(cmd, os.environ.get("HISTTIMEFORMAT"))
    if shell in ("zsh", "fish"):
        cmd = trim_trailing_whitespace(arg)
        if cmd.startswith(" "):
            return ""
        return cmd
    raise UnsupportedShellError(
        f"tried to save a hishtory entry from an unsupported shell={shell!r}"
    )


def build_custom_columns(
    definitions: Sequence[CustomColumnDefinition],
) -> list[CustomColumn]:
    """Run each custom column command with bash and collect its output."""
    columns: list[CustomColumn] = []
    for definition in definitions:
        try:
            result = subprocess.run(
                ["bash", "-c", definition.column_command],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as err:
            raise RuntimeError(
                f"failed to execute custom command named {definition.column_name}"
            ) from err
        if result.returncode != 0:
            # A non-zero exit still yields a value; only warn about it.
            logger.warning(
                "failed to execute custom command named %s (stdout=%r, stderr=%r)",
                definition.column_name,
                result.stdout,
                result.stderr,
            )
        columns.append(CustomColumn(name=definition.column_name, value=result.stdout.strip()))
    return columns


def _cwd_without_substitution() -> str:
    try:
        return os.getcwd()
    except OSError:
        pwd = os.environ.get("PWD", "")
        if pwd.startswith("/"):
            return pwd
        raise


def get_cwd(homedir: str) -> tuple[str, str]:
    """Return (cwd with the home directory shown as ~, homedir)."""
    try:
        cwd = _cwd_without_substitution()
    except OSError as err:
        raise OSError(f"failed to get cwd for last command: {err}") from err
    if cwd == homedir:
        return "~/", homedir
    if cwd.startswith(homedir):
        return cwd.replace(homedir, "~", 1), homedir
    return cwd, homedir


def _build_pre_args_history_entry(
    device_id: str, homedir: str, definitions: Sequence[CustomColumnDefinition]
) -> HistoryEntry:
    cwd, home = get_cwd(homedir)
    return HistoryEntry(
        local_username=getpass.getuser(),
        hostname=socket.gethostname(),
        current_working_directory=cwd,
        home_directory=home,
        device_id=device_id,
        entry_id=str(uuid.uuid4()),
        custom_columns=build_custom_columns(definitions),
    )


def build_history_entry(
    args: Sequence[str],
    device_id: str,
    homedir: str,
    definitions: Sequence[CustomColumnDefinition],
    tracker: HistoryLineTracker,
) -> Optional[HistoryEntry]:
    """Build an entry from hook arguments: prog, subcommand, shell, exit code, command, start.

    Returns None when there is nothing to record.
    """
    if len(args) < 6:
        logger.warning(
            "build_history_entry called with args=%r, which has too few entries", list(args)
        )
        return None
    shell = args[2]
    entry = _build_pre_args_history_entry(device_id, homedir, definitions)
    try:
        entry.exit_code = int(args[3])
    except ValueError as err:
        raise ValueError(f"failed to build history entry: {err}") from err
    entry.start_time = parse_cross_platform_time(args[5])
    entry.end_time = datetime.now(timezone.utc)
    entry.command = extract_command_from_arg(shell, args[4], tracker, is_presave=False)
    if entry.command.strip() == "":
        return None
    return entry