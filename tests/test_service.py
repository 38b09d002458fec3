import plistlib
import shutil
import sys
from pathlib import Path

import pytest

from steamgifts_bot import service
from steamgifts_bot.service import (
    ServiceError,
    install,
    is_active,
    is_installed,
    platform_name,
    render_launch_agent,
    render_startup_script,
    render_systemd_unit,
    service_path,
    status,
    supported,
    uninstall,
)

FAKE_SYSTEMCTL_OK = """#!/bin/sh
case "$2" in
  is-active) echo active ;;
esac
exit 0
"""

FAKE_SYSTEMCTL_FAIL = """#!/bin/sh
case "$2" in
  enable) echo boom; exit 1 ;;
  is-active) echo failed; exit 3 ;;
esac
exit 0
"""


@pytest.fixture
def linux_env(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def no_systemctl(monkeypatch):
    real_which = shutil.which
    monkeypatch.setattr(
        shutil, "which", lambda name, *a, **k: None if name == "systemctl" else real_which(name, *a, **k)
    )


def _fake_systemctl(tmp_path, monkeypatch, script):
    bindir = tmp_path / "bin"
    bindir.mkdir()
    exe = bindir / "systemctl"
    exe.write_text(script, encoding="utf-8")
    exe.chmod(0o755)
    monkeypatch.setenv("PATH", str(bindir))


@pytest.mark.parametrize(
    "plat, name, is_supported",
    [
        ("linux", "linux", True),
        ("win32", "windows", True),
        ("darwin", "darwin", True),
        ("freebsd14", "freebsd", False),
    ],
)
def test_platform_and_supported(monkeypatch, plat, name, is_supported):
    monkeypatch.setattr(sys, "platform", plat)
    assert platform_name() == name
    assert supported() is is_supported


def test_linux_service_path(linux_env):
    assert service_path() == linux_env / "systemd" / "user" / "steamgifts-bot.service"


def test_linux_service_path_without_home(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("HOME", raising=False)
    with pytest.raises(ServiceError, match="config dir"):
        service_path()


def test_linux_service_path_relative_xdg(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", "relative/dir")
    with pytest.raises(ServiceError, match="relative"):
        service_path()


def test_render_systemd_unit():
    unit = render_systemd_unit("/opt/bot/steamgifts-bot")
    assert 'ExecStart="/opt/bot/steamgifts-bot" run\n' in unit
    assert "Restart=always\n" in unit
    assert "Environment=NO_COLOR=1\n" in unit
    assert unit.endswith("WantedBy=default.target\n")


def test_render_launch_agent_round_trip():
    agent = plistlib.loads(render_launch_agent("/Applications/bot & co/steamgifts-bot").encode())
    assert agent["Label"] == service.PLIST_LABEL
    assert agent["ProgramArguments"] == ["/Applications/bot & co/steamgifts-bot", "run"]
    assert agent["RunAtLoad"] is True
    assert agent["KeepAlive"] is True
    assert agent["EnvironmentVariables"] == {"PATH": "/usr/local/bin:/usr/bin:/bin"}


def test_render_startup_script():
    script = render_startup_script(r"C:\bot\steamgifts-bot.exe")
    assert script == '@echo off\r\nstart "steamgifts-bot" /MIN "C:\\bot\\steamgifts-bot.exe" run\r\n'


def test_linux_install_without_systemctl(linux_env, no_systemctl):
    with pytest.raises(ServiceError, match="systemctl not on PATH") as info:
        install()
    unit_path = service_path()
    assert info.value.path == str(unit_path)
    assert "ExecStart=" in unit_path.read_text(encoding="utf-8")
    assert is_installed() is True
    assert is_active() is False
    assert status() == f"installed at {unit_path} — unknown"


def test_linux_install_with_systemctl(linux_env, monkeypatch):
    _fake_systemctl(linux_env, monkeypatch, FAKE_SYSTEMCTL_OK)
    path = install()
    assert path == str(service_path())
    assert Path(path).is_file()
    assert is_active() is True
    assert status() == f"installed at {path} — active"


def test_linux_install_enable_failure(linux_env, monkeypatch):
    _fake_systemctl(linux_env, monkeypatch, FAKE_SYSTEMCTL_FAIL)
    with pytest.raises(ServiceError, match="systemctl enable failed") as info:
        install()
    assert "boom" in str(info.value)
    assert info.value.path == str(service_path())
    assert is_active() is False
    assert status().endswith("— failed")


def test_linux_uninstall(linux_env, no_systemctl):
    path = service_path()
    path.parent.mkdir(parents=True)
    path.write_text("[Unit]\n", encoding="utf-8")
    uninstall()
    assert not path.exists()
    assert is_installed() is False
    assert status() == "not installed"
    uninstall()
    assert not path.exists()


def test_unsupported_platform(monkeypatch):
    monkeypatch.setattr(sys, "platform", "sunos5")
    with pytest.raises(ServiceError, match="not yet supported"):
        install()
    with pytest.raises(ServiceError, match="not yet supported"):
        uninstall()
    with pytest.raises(ServiceError):
        service_path()
    assert is_installed() is False
    assert is_active() is False
    assert status() == "not supported on this OS"


def test_windows_paths_and_status(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "win32")
    monkeypatch.setenv("APPDATA", str(tmp_path))
    expected = tmp_path / "Microsoft" / "Windows" / "Start Menu" / "Programs" / "Startup"
    assert service_path() == expected / "steamgifts-bot.bat"
    assert status() == "not installed"
    assert is_active() is False

    expected.mkdir(parents=True)
    (expected / "steamgifts-bot.bat").write_text("@echo off\r\n", encoding="utf-8")
    assert is_installed() is True
    assert is_active() is True
    assert status() == f"installed at {expected / 'steamgifts-bot.bat'}"

    uninstall()
    assert is_installed() is False


def test_windows_missing_appdata(monkeypatch):
    monkeypatch.setattr(sys, "platform", "win32")
    monkeypatch.delenv("APPDATA", raising=False)
    with pytest.raises(ServiceError, match="APPDATA"):
        service_path()
    assert is_installed() is False


def test_darwin_install_and_uninstall(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "platform", "darwin")
    monkeypatch.setenv("HOME", str(tmp_path))
    expected = tmp_path / "Library" / "LaunchAgents" / f"{service.PLIST_LABEL}.plist"
    assert service_path() == expected

    path = install()
    assert path == str(expected)
    agent = plistlib.loads(expected.read_bytes())
    assert agent["ProgramArguments"][1] == "run"
    assert is_installed() is True
    assert is_active() is True
    assert status() == f"installed at {expected}"

    uninstall()
    assert not expected.exists()
    assert status() == "not installed"