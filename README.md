# shellhist

Building blocks for recording shell history: a history entry model with
AES-GCM encryption for a user secret, parsing of the arguments that shell
hooks pass in, helpers that add and remove hooks in bash, zsh and fish
startup files, and a JSON client configuration with a command line to
change it.

## Installation

```
pip install shellhist
```

## Command line

The `shellhist` command reads and changes the configuration file at
`~/.hishtory/.hishtory.config` (the directory can be changed with the
`HISHTORY_PATH` environment variable, relative to the home directory).
The file must already exist; see "Creating a configuration" below.

```
shellhist enable
shellhist disable
shellhist config-get displayed-columns
shellhist config-set highlight-matches true
shellhist config-set color-scheme selected-text "#663399"
shellhist config-set key-bindings up up ctrl+p
shellhist config-add custom-columns git_branch "git rev-parse --abbrev-ref HEAD"
shellhist config-delete displayed-columns Hostname
```

Command groups:

- `enable`, `disable` turn recording on or off in the configuration.
- `config-get` prints an option: `enable-control-r`,
  `filter-duplicate-commands`, `beta-mode`, `highlight-matches`,
  `ai-completion`, `presaving`, `compact-mode`, `full-screen`,
  `timestamp-format`, `ai-completion-endpoint`, `default-filter`,
  `displayed-columns`, `custom-columns`, `color-scheme`, `log-level`,
  `key-bindings`.
- `config-set` sets the same options. True/false options take `true` or
  `false`; `log-level` takes `error`, `warn`, `info` or `debug`;
  `displayed-columns` replaces the whole list; `key-bindings ACTION KEY...`
  binds keys to an action; `color-scheme` has the subcommands
  `selected-text`, `selected-background` and `border-color`, each taking a
  colour of the form `#rrggbb`.
- `config-add` (`custom-columns NAME COMMAND`, `displayed-columns NAME`) and
  `config-delete`, also spelt `config-remove` (`custom-columns NAME`,
  `displayed-columns NAME...`). Deleting a custom column also stops it being
  displayed; custom column names must be unique ignoring case.

An invalid value or a missing configuration file prints `Error: ...` to
standard error and exits with status 1. A command group given without a
subcommand prints its help and exits with status 1. Run `shellhist --help`
for the full list.

## Library

### Entries and encryption (`shellhist.data`)

`HistoryEntry` and `CustomColumn` are dataclasses with `to_dict` and
`from_dict`. `encrypt_history_entry` and `decrypt_history_entry` wrap an
entry in an `EncryptedHistoryEntry` bound to the user id derived from the
secret:

```python
from shellhist.data import HistoryEntry, encrypt_history_entry, decrypt_history_entry

entry = HistoryEntry(command="ls /tmp", exit_code=0)
encrypted = encrypt_history_entry("secret", entry)
assert decrypt_history_entry("secret", encrypted).command == "ls /tmp"
```

`user_id`, `encryption_key`, `encrypt` and `decrypt` are available on their
own; a wrong user id or mismatching entry ids raise `DecryptionError`.
`serialize_custom_columns` and `deserialize_custom_columns` convert custom
columns to and from compact JSON bytes.

### Hook arguments (`shellhist.timeformat`, `shellhist.entry`)

Bash `HISTTIMEFORMAT` prefixes can be stripped from history lines:

```python
from shellhist.timeformat import maybe_skip_bash_hist_time_prefix

maybe_skip_bash_hist_time_prefix("2019-07-12 13:02:31 ls", "%F %T ")  # "ls"
```

`build_regex_from_time_format`, `parse_cross_platform_time` (seconds or
nanoseconds, with an optional trailing `N`) and `get_last_command` are there
too. `shellhist.entry.build_history_entry` turns the hook arguments
(program, subcommand, shell, exit code, command, start time) into a
`HistoryEntry`, filling in user, host, working directory and any custom
columns, whose commands it runs with `bash -c`. Commands that start with a
space, are empty, or repeat the last bash history line are not recorded.
Only `bash`, `zsh` and `fish` are accepted.

### Shell integration (`shellhist.shellconfig`)

`configure_bashrc`, `configure_zshrc` and `configure_fish` write a hook
script you supply into the state directory and append a line that sources it
to `.bashrc` (and `.bash_profile` where needed), the zshrc (honouring
`ZDOTDIR`) or the fish config. With `skip_config_modification=True` they
print instructions instead of editing files. `uninstall_shell_config`
removes those lines and deletes the state directory.

### Configuration (`shellhist.config`, `shellhist.settings`)

`ClientConfig` holds every option, including `KeyBindings` and
`ColorScheme`. `load_config` and `save_config` read and atomically write the
JSON file; `config_path(homedir)` gives its location.

### Creating a configuration

```python
import os
from shellhist.config import config_path, new_install_config, save_config

save_config(new_install_config("", is_offline=True), config_path(os.path.expanduser("~")))
```

An empty user secret is replaced by a random one. `apply_upgraded_defaults`
turns on options that an older configuration file never mentioned.

## What it does not do

This package does not ship the shell hook scripts themselves, keep a
database of recorded commands, search or display history, talk to a sync
server, or install and update itself. There is no interactive search screen;
the key bindings and colour scheme are only stored in the configuration.

## Development

```
pip install -e .[test]
pytest
```