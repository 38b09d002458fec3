"""Install and remove a per-user background service that starts the bot on login.

Linux uses a systemd user unit, macOS a LaunchAgent plist and Windows a
script in the Startup folder. Other systems are reported as unsupported.
"""

from __future__ import annotations

import os
import plistlib
import re
import shutil
import subprocess
import sys
from pathlib import Path

UNIT_NAME = "steamgifts-bot.service"
PLIST_LABEL = "local.steamgifts-bot"
STARTUP_FILE_NAME = "steamgifts-bot.bat"
BOT_COMMAND = "steamgifts-bot"


class ServiceError(Exception):
    """A service operation failed.

    ``path`` is the file that was written before the failure, if any.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


def platform_name() -> str:
    """The identifier of the current system: linux, windows, darwin or other."""
    plat = sys.platform
    if plat.startswith("linux"):
        return "linux"
    if plat == "win32":
        return "windows"
    if plat == "darwin":
        return "darwin"
    return re.sub(r"\d+$", "", plat)


def supported() -> bool:
    """Report whether install does anything meaningful here."""
    return platform_name() in ("linux", "windows", "darwin")


def _user_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        if not os.path.isabs(xdg):
            raise ServiceError(
                "service: locate user config dir: path in $XDG_CONFIG_HOME is relative"
            )
        return Path(xdg)
    home = os.environ.get("HOME", "")
    if not home:
        raise ServiceError(
            "service: locate user config dir: neither $XDG_CONFIG_HOME nor $HOME are defined"
        )
    return Path(home) / ".config"


def _home_dir() -> Path:
    home = os.environ.get("HOME", "")
    if not home:
        raise ServiceError("service: home dir: $HOME is not defined")
    return Path(home)


def _startup_folder() -> Path:
    appdata = os.environ.get("APPDATA", "")
    if not appdata:
        raise ServiceError("service: %APPDATA% is not set")
    return Path(appdata, "Microsoft", "Windows", "Start Menu", "Programs", "Startup")


def service_path() -> Path:
    """The file the service install writes on this system."""
    plat = platform_name()
    if plat == "linux":
        return _user_config_dir() / "systemd" / "user" / UNIT_NAME
    if plat == "darwin":
        return _home_dir() / "Library" / "LaunchAgents" / f"{PLIST_LABEL}.plist"
    if plat == "windows":
        return _startup_folder() / STARTUP_FILE_NAME
    raise ServiceError("service install is not yet supported on this OS")


def render_systemd_unit(exe: str) -> str:
    """The systemd user unit that runs exe."""
    return (
        "[Unit]\n"
        "Description=steamgifts-bot — multi-account giveaway bot\n"
        "After=network-online.target\n"
        "Wants=network-online.target\n"
        "\n"
        "[Service]\n"
        f'ExecStart="{exe}" run\n'
        "Restart=always\n"
        "RestartSec=30\n"
        "Environment=NO_COLOR=1\n"
        "\n"
        "[Install]\n"
        "WantedBy=default.target\n"
    )


def render_launch_agent(exe: str) -> str:
    """The LaunchAgent plist that runs exe on login."""
    agent = {
        "Label": PLIST_LABEL,
        "ProgramArguments": [exe, "run"],
        "RunAtLoad": True,
        "KeepAlive": True,
        "StandardOutPath": "/tmp/steamgifts-bot.log",
        "StandardErrorPath": "/tmp/steamgifts-bot.log",
        "EnvironmentVariables": {"PATH": "/usr/local/bin:/usr/bin:/bin"},
    }
    return plistlib.dumps(agent, sort_keys=False).decode("utf-8")


def render_startup_script(exe: str) -> str:
    """The Startup-folder batch script that launches exe minimised."""
    return f'@echo off\r\nstart "steamgifts-bot" /MIN "{exe}" run\r\n'


def _executable() -> str:
    found = shutil.which(BOT_COMMAND)
    if found:
        return os.path.abspath(found)
    if sys.argv and sys.argv[0]:
        return os.path.abspath(sys.argv[0])
    return sys.executable


def _run(*args: str) -> tuple[int, str]:
    try:
        done = subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        return -1, str(exc)
    return done.returncode, done.stdout or ""


def _write(path: Path, content: str, what: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ServiceError(f"service: mkdir: {exc}") from exc
    try:
        path.write_text(content, encoding="utf-8", newline="")
    except OSError as exc:
        raise ServiceError(f"service: write {what}: {exc}") from exc


def install() -> str:
    """Install the service and return the path of the file written."""
    plat = platform_name()
    if not supported():
        raise ServiceError("service install is not yet supported on this OS")
    exe = _executable()
    path = service_path()
    if plat == "linux":
        _write(path, render_systemd_unit(exe), "unit")
        if shutil.which("systemctl") is None:
            raise ServiceError(
                "service: systemctl not on PATH — unit written but not enabled", str(path)
            )
        _run("systemctl", "--user", "daemon-reload")
        code, out = _run("systemctl", "--user", "enable", "--now", UNIT_NAME)
        if code != 0:
            raise ServiceError(
                f"service: systemctl enable failed: exit status {code} ({out})", str(path)
            )
    elif plat == "darwin":
        _write(path, render_launch_agent(exe), "plist")
    else:
        _write(path, render_startup_script(exe), "startup script")
        # Start now so the user need not log out and back in.
        try:
            subprocess.Popen(
                [exe, "run"], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
            )
        except OSError:
            pass
    return str(path)


def uninstall() -> None:
    """Stop and remove the service; removing an absent service is not an error."""
    plat = platform_name()
    if not supported():
        raise ServiceError("service install is not yet supported on this OS")
    path = service_path()
    if plat == "linux" and shutil.which("systemctl") is not None:
        _run("systemctl", "--user", "disable", "--now", UNIT_NAME)
        _run("systemctl", "--user", "daemon-reload")
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        raise ServiceError(f"service: remove {path.name}: {exc}") from exc


def is_installed() -> bool:
    """Report whether the service file exists."""
    if not supported():
        return False
    try:
        return service_path().exists()
    except ServiceError:
        return False


def _systemd_state() -> str:
    _, out = _run("systemctl", "--user", "is-active", UNIT_NAME)
    return out.strip()


def is_active() -> bool:
    """Report whether the service appears to be running."""
    plat = platform_name()
    if plat == "linux":
        return _systemd_state() == "active"
    # Elsewhere there is no cheap check, so installed implies active.
    return is_installed()


def status() -> str:
    """A human-readable status line."""
    plat = platform_name()
    if not supported():
        return "not supported on this OS"
    path = service_path()
    if not path.exists():
        return "not installed"
    if plat == "linux":
        state = _systemd_state() or "unknown"
        return f"installed at {path} — {state}"
    return f"installed at {path}"