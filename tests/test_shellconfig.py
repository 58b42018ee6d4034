import os
import subprocess

import pytest

from shellhist import shellconfig


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.delenv("HISHTORY_PATH", raising=False)
    monkeypatch.delenv("HISHTORY_TEST", raising=False)
    monkeypatch.delenv("ZDOTDIR", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".hishtory").mkdir()
    return str(tmp_path)


def test_bash_fragment_format(home):
    expected = (
        "\n# Hishtory Config:\nexport PATH=\"$PATH:"
        + home
        + "/.hishtory\"\nsource "
        + home
        + "/.hishtory/config.sh\n"
    )
    assert shellconfig.bash_config_fragment(home) == expected


def test_config_paths_use_hishtory_path(home, monkeypatch):
    monkeypatch.setenv("HISHTORY_PATH", "custom")
    assert shellconfig.zsh_config_path(home) == home + "/custom/config.zsh"
    assert shellconfig.fish_config_path(home) == home + "/custom/config.fish"


def test_zshrc_path_honours_zdotdir(home, monkeypatch):
    assert shellconfig.zshrc_path(home) == home + "/.zshrc"
    monkeypatch.setenv("ZDOTDIR", "/somewhere")
    assert shellconfig.zshrc_path(home) == "/somewhere/.zshrc"


def test_configure_bashrc_is_idempotent(home, monkeypatch):
    monkeypatch.setattr(shellconfig.sys, "platform", "linux")
    shellconfig.configure_bashrc(home, "hook contents", False)
    with open(shellconfig.bash_config_path(home)) as handle:
        assert handle.read() == "hook contents"
    assert shellconfig.is_bashrc_configured(home)
    shellconfig.configure_bashrc(home, "hook contents", False)
    with open(os.path.join(home, ".bashrc")) as handle:
        assert handle.read().count(shellconfig.bash_config_fragment(home)) == 1
    assert not os.path.exists(os.path.join(home, ".bash_profile"))


def test_configure_bashrc_on_darwin_creates_profile(home, monkeypatch):
    monkeypatch.setattr(shellconfig.sys, "platform", "darwin")
    shellconfig.configure_bashrc(home, "x", False)
    assert shellconfig.is_bash_profile_configured(home)
    with open(os.path.join(home, ".bash_profile")) as handle:
        assert "source ~/.profile" in handle.read()


def test_skip_modification_prints_instructions(home, capsys, monkeypatch):
    monkeypatch.setattr(shellconfig.sys, "platform", "linux")
    shellconfig.configure_zshrc(home, "zsh hook", True)
    out = capsys.readouterr().out
    assert "Please edit '~/.zshrc' to add:" in out
    assert not os.path.exists(os.path.join(home, ".zshrc"))
    assert not shellconfig.is_zsh_configured(home)


def test_add_to_shell_config_appends(home):
    target = os.path.join(home, "rc")
    shellconfig.add_to_shell_config(target, "one\n", False)
    shellconfig.add_to_shell_config(target, "two\n", False)
    with open(target) as handle:
        assert handle.read() == "one\ntwo\n"


def test_convert_to_relative_path(home):
    assert shellconfig.convert_to_relative_path(home + "/.bashrc") == "~/.bashrc"
    assert shellconfig.convert_to_relative_path("/etc/profile") == "/etc/profile"


def test_configure_fish_without_fish(home, monkeypatch):
    monkeypatch.setattr(shellconfig.shutil, "which", lambda name: None)
    shellconfig.configure_fish(home, "fish hook", False)
    assert not os.path.exists(shellconfig.fish_config_path(home))
    assert not shellconfig.is_fish_configured(home)


def test_configure_fish_with_fish(home, monkeypatch):
    monkeypatch.setattr(shellconfig.shutil, "which", lambda name: "/usr/bin/fish")
    shellconfig.configure_fish(home, "fish hook", False)
    assert shellconfig.is_fish_configured(home)
    with open(shellconfig.fish_config_path(home)) as handle:
        assert handle.read() == "fish hook"


def test_tweak_config_for_tests():
    lines = [
        "x",
        "# Background Run",
        "# hishtory bg1",
        "# Foreground Run",
        "y",
        "# Background Run",
        "# hishtory bg2",
        "# Foreground Run",
    ]
    result = shellconfig.tweak_config_for_tests("\n".join(lines))
    assert result == "x\nhishtory bg1\n# hishtory bg1\ny\nhishtory bg2\n# hishtory bg2\n"
    assert "Foreground Run" not in result


def test_tweak_config_for_tests_requires_markers():
    with pytest.raises(ValueError):
        shellconfig.tweak_config_for_tests("no markers here")


def test_hishtory_test_env_tweaks_written_script(home, monkeypatch):
    monkeypatch.setenv("HISHTORY_TEST", "1")
    with pytest.raises(ValueError):
        shellconfig.configure_zshrc(home, "plain", False)


def test_copy_file_round_trip(tmp_path):
    src = tmp_path / "src"
    src.write_bytes(b"\x00binary\xff")
    dst = tmp_path / "dst"
    shellconfig.copy_file(str(src), str(dst))
    assert dst.read_bytes() == b"\x00binary\xff"


def test_copy_file_rejects_directory(tmp_path):
    with pytest.raises(ValueError):
        shellconfig.copy_file(str(tmp_path), str(tmp_path / "out"))


def test_strip_lines_removes_matching(tmp_path):
    target = tmp_path / "rc"
    target.write_text("keep\nremove me\nalso keep")
    shellconfig.strip_lines(str(target), "\nremove me\n")
    assert target.read_text() == "keep\nalso keep\n"


def test_strip_lines_missing_file(tmp_path):
    target = tmp_path / "missing"
    shellconfig.strip_lines(str(target), "anything")
    assert not target.exists()


def test_uninstall_removes_hooks(home, monkeypatch):
    monkeypatch.setattr(shellconfig.sys, "platform", "linux")
    bashrc = os.path.join(home, ".bashrc")
    with open(bashrc, "w") as handle:
        handle.write("alias ll='ls -l'\n")
    shellconfig.configure_bashrc(home, "hook", False)
    shellconfig.configure_zshrc(home, "hook", False)
    assert shellconfig.is_bashrc_configured(home)
    shellconfig.uninstall_shell_config(home)
    assert not shellconfig.is_bashrc_configured(home)
    assert not shellconfig.is_zsh_configured(home)
    with open(bashrc) as handle:
        contents = handle.read()
    assert "alias ll='ls -l'" in contents
    assert "Hishtory Config" not in contents
    assert not os.path.exists(os.path.join(home, ".hishtory"))


def test_bash_profile_needs_config(home, monkeypatch):
    monkeypatch.setattr(shellconfig.sys, "platform", "darwin")
    assert shellconfig.bash_profile_needs_config(home) is True
    monkeypatch.setattr(shellconfig.sys, "platform", "win32")
    assert shellconfig.bash_profile_needs_config(home) is False
    monkeypatch.setattr(shellconfig.sys, "platform", "linux")
    assert shellconfig.bash_profile_needs_config(home) is False
    open(os.path.join(home, ".bash_profile"), "w").close()
    assert shellconfig.bash_profile_needs_config(home) is True


def test_warn_without_bash(monkeypatch):
    monkeypatch.setattr(shellconfig.shutil, "which", lambda name: None)
    assert shellconfig.warn_if_unsupported_bash_version() is False


def test_warn_for_old_bash(monkeypatch, capsys):
    monkeypatch.setattr(shellconfig.shutil, "which", lambda name: "/bin/bash")
    monkeypatch.setattr(
        shellconfig.subprocess,
        "run",
        lambda *a, **k: subprocess.CompletedProcess(a, 0, "GNU bash, version 3.2.57", ""),
    )
    assert shellconfig.warn_if_unsupported_bash_version() is True
    assert "Warning" in capsys.readouterr().out


def test_no_warn_for_new_bash(monkeypatch):
    monkeypatch.setattr(shellconfig.shutil, "which", lambda name: "/bin/bash")
    monkeypatch.setattr(
        shellconfig.subprocess,
        "run",
        lambda *a, **k: subprocess.CompletedProcess(a, 0, "GNU bash, version 5.2.15", ""),
    )
    assert shellconfig.warn_if_unsupported_bash_version() is False


def test_bash_version_failure_raises(monkeypatch):
    monkeypatch.setattr(shellconfig.shutil, "which", lambda name: "/bin/bash")
    monkeypatch.setattr(
        shellconfig.subprocess,
        "run",
        lambda *a, **k: subprocess.CompletedProcess(a, 2, "", "boom"),
    )
    with pytest.raises(RuntimeError):
        shellconfig.warn_if_unsupported_bash_version()