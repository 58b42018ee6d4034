"""Installing and removing the shell hooks in bash, zsh and fish configs."""

from __future__ import annotations

import os
import posixpath
import shutil
import stat
import subprocess
import sys

from shellhist.data import get_hishtory_path

_FRAGMENT_HEADER = "\n# Hishtory Config:\nexport PATH=\"$PATH:"
_SOURCE_PROFILE_FRAGMENT = "\n# Source .profile:\nsource ~/.profile\n"


def _join(*parts: str) -> str:
    """Join path elements with '/' and clean the result, ignoring empty parts."""
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    return posixpath.normpath(joined)


def _hishtory_dir(homedir: str) -> str:
    return _join(homedir, get_hishtory_path())


def bash_config_path(homedir: str) -> str:
    """Path of the bash hook script that the bashrc sources."""
    return _join(homedir, get_hishtory_path(), "config.sh")


def zsh_config_path(homedir: str) -> str:
    """Path of the zsh hook script that the zshrc sources."""
    return _join(homedir, get_hishtory_path(), "config.zsh")


def fish_config_path(homedir: str) -> str:
    """Path of the fish hook script that the fish config sources."""
    return _join(homedir, get_hishtory_path(), "config.fish")


def _fish_rc_path(homedir: str) -> str:
    return _join(homedir, ".config/fish/config.fish")


def zshrc_path(homedir: str) -> str:
    """The user's .zshrc, honouring ZDOTDIR."""
    zdotdir = os.environ.get("ZDOTDIR", "")
    if zdotdir:
        return _join(zdotdir, ".zshrc")
    return _join(homedir, ".zshrc")


def _fragment(homedir: str, script_path: str) -> str:
    return f"{_FRAGMENT_HEADER}{_hishtory_dir(homedir)}\"\nsource {script_path}\n"


def bash_config_fragment(homedir: str) -> str:
    """The lines appended to bash startup files."""
    return _fragment(homedir, bash_config_path(homedir))


def zsh_config_fragment(homedir: str) -> str:
    """The lines appended to the zshrc."""
    return _fragment(homedir, zsh_config_path(homedir))


def fish_config_fragment(homedir: str) -> str:
    """The lines appended to the fish config."""
    return _fragment(homedir, fish_config_path(homedir))


def _file_contains(path: str, fragment: str) -> bool:
    if not os.path.exists(path):
        return False
    with open(path, encoding="utf-8") as handle:
        return fragment in handle.read()


def is_bashrc_configured(homedir: str) -> bool:
    """Whether ~/.bashrc already sources the hook script."""
    return _file_contains(_join(homedir, ".bashrc"), bash_config_fragment(homedir))


def is_bash_profile_configured(homedir: str) -> bool:
    """Whether ~/.bash_profile already sources the hook script."""
    return _file_contains(_join(homedir, ".bash_profile"), bash_config_fragment(homedir))


def is_zsh_configured(homedir: str) -> bool:
    """Whether the zshrc already sources the hook script."""
    return _file_contains(zshrc_path(homedir), zsh_config_fragment(homedir))


def is_fish_configured(homedir: str) -> bool:
    """Whether the fish config already sources the hook script."""
    return _file_contains(_fish_rc_path(homedir), fish_config_fragment(homedir))


def bash_profile_needs_config(homedir: str) -> bool:
    """Whether ~/.bash_profile must also source the hook script on this platform."""
    if sys.platform == "darwin":
        return True
    if sys.platform.startswith("linux"):
        # On Linux only touch it when it already exists.
        return os.path.exists(_join(homedir, ".bash_profile"))
    return False


def convert_to_relative_path(path: str) -> str:
    """Show a path under the home directory with a leading ~."""
    homedir = os.path.expanduser("~")
    if not homedir or homedir == "~":
        return path
    if path.startswith(homedir):
        return path.replace(homedir, "~", 1)
    return path


def add_to_shell_config(
    shell_config_path: str, config_fragment: str, skip_config_modification: bool
) -> None:
    """Append a fragment to a shell config, or tell the user how to do it."""
    if skip_config_modification:
        print(
            f"Please edit {convert_to_relative_path(shell_config_path)!r} to add:\n\n"
            f"```\n{config_fragment.strip()}\n```\n\n",
            end="",
        )
        return
    try:
        with open(shell_config_path, "a", encoding="utf-8") as handle:
            handle.write(config_fragment)
    except OSError as err:
        raise OSError(f"failed to append to {shell_config_path}: {err}") from err


def _prepare_contents(config_contents: str) -> str:
    if os.environ.get("HISHTORY_TEST"):
        return tweak_config_for_tests(config_contents)
    return config_contents


def _write_script(path: str, contents: str) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(contents)
    os.chmod(path, 0o644)


def configure_bashrc(homedir: str, config_contents: str, skip_config_modification: bool) -> None:
    """Write the bash hook script and make bash startup files source it."""
    _write_script(bash_config_path(homedir), _prepare_contents(config_contents))
    fragment = bash_config_fragment(homedir)
    if not is_bashrc_configured(homedir):
        add_to_shell_config(_join(homedir, ".bashrc"), fragment, skip_config_modification)
    if bash_profile_needs_config(homedir):
        profile = _join(homedir, ".bash_profile")
        profile_existed = os.path.exists(profile)
        if not is_bash_profile_configured(homedir):
            add_to_shell_config(profile, fragment, skip_config_modification)
            if not profile_existed:
                # A freshly created .bash_profile stops bash from reading .profile.
                add_to_shell_config(profile, _SOURCE_PROFILE_FRAGMENT, skip_config_modification)


def configure_zshrc(homedir: str, config_contents: str, skip_config_modification: bool) -> None:
    """Write the zsh hook script and make the zshrc source it."""
    _write_script(zsh_config_path(homedir), _prepare_contents(config_contents))
    if is_zsh_configured(homedir):
        return
    add_to_shell_config(zshrc_path(homedir), zsh_config_fragment(homedir), skip_config_modification)


def configure_fish(homedir: str, config_contents: str, skip_config_modification: bool) -> None:
    """Write the fish hook script and make the fish config source it, if fish is installed."""
    if shutil.which("fish") is None:
        return
    _write_script(fish_config_path(homedir), _prepare_contents(config_contents))
    if is_fish_configured(homedir):
        return
    os.makedirs(_join(homedir, ".config/fish"), mode=0o744, exist_ok=True)
    add_to_shell_config(
        _fish_rc_path(homedir), fish_config_fragment(homedir), skip_config_modification
    )


def tweak_config_for_tests(config_contents: str) -> str:
    """Run the hooks in the foreground: enable background lines, drop foreground markers."""
    substitutions = 0
    removed = 0
    out: list[str] = []
    lines = config_contents.split("\n")
    for index, line in enumerate(lines):
        if "# Background Run" in line:
            following = lines[index + 1] if index + 1 < len(lines) else ""
            out.append(following.replace("# hishtory", "hishtory"))
            substitutions += 1
        elif "# Foreground Run" in line:
            removed += 1
            continue
        else:
            out.append(line)
    if not (substitutions == 2 and removed == 2):
        raise ValueError(
            f"failed to find substitution line in configContents={config_contents!r}"
        )
    return "".join(line + "\n" for line in out)


def copy_file(src: str, dst: str) -> None:
    """Copy a regular file's contents to dst."""
    mode = os.stat(src).st_mode
    if not stat.S_ISREG(mode):
        raise ValueError(f"{src} is not a regular file")
    shutil.copyfile(src, dst)


def strip_lines(file_path: str, lines: str) -> None:
    """Remove every line of a file that equals a non-blank line of ``lines``."""
    if not os.path.exists(file_path):
        return
    with open(file_path, encoding="utf-8") as handle:
        original = handle.read()
    to_remove = {line for line in lines.split("\n") if line.strip()}
    kept = "".join(line + "\n" for line in original.split("\n") if line not in to_remove)
    with open(file_path, "w", encoding="utf-8") as handle:
        handle.write(kept)


def uninstall_shell_config(homedir: str) -> None:
    """Remove the hooks from all shell configs and delete the state directory."""
    strip_lines(_join(homedir, ".bashrc"), bash_config_fragment(homedir))
    strip_lines(zshrc_path(homedir), zsh_config_fragment(homedir))
    strip_lines(_fish_rc_path(homedir), fish_config_fragment(homedir))
    state_dir = _hishtory_dir(homedir)
    if os.path.lexists(state_dir):
        shutil.rmtree(state_dir)


def warn_if_unsupported_bash_version() -> bool:
    """Warn when the installed bash is too old for the control-r hook; return whether it is."""
    if shutil.which("bash") is None:
        return False
    result = subprocess.run(
        ["bash", "--version"], capture_output=True, text=True, check=False
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"failed to check bash version: exit status {result.returncode}"
        )
    output = (result.stdout or "") + (result.stderr or "")
    if "version 3." in output:
        print(
            "Warning: Your current bash version does not support overriding control-r. "
            "Please upgrade to at least bash 5 to enable the control-r integration."
        )
        return True
    return False