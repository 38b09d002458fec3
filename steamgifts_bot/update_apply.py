"""Download a release archive and replace the running binary with it."""

from __future__ import annotations

import os
import platform
import tarfile
import tempfile
import zipfile
from typing import IO, Callable, Iterable

import requests

from .service import platform_name
from .update_check import Asset, Release, _executable

BINARY_NAME = "steamgifts-bot"
_CHUNK = 64 * 1024
_TIMEOUT = 30.0

ProgressFunc = Callable[[str, float], None]
"""Called with a phase ("downloading", "extracting", "installing", "done")
and the completion fraction within it."""

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


class UpdateError(Exception):
    """A self-update step failed."""


def _current_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def _exe_suffix() -> str:
    return ".exe" if platform_name() == "windows" else ""


def match_asset(
    assets: Iterable[Asset], goos: str | None = None, goarch: str | None = None
) -> Asset:
    """Find the asset for the given (default: current) system and architecture."""
    goos = goos or platform_name()
    goarch = goarch or _current_arch()
    arch_name = "x86_64" if goarch == "amd64" else goarch
    ext = ".zip" if goos == "windows" else ".tar.gz"
    for asset in assets:
        name = asset.name.lower()
        if goos in name and arch_name.lower() in name and name.endswith(ext):
            return asset
    raise UpdateError(f"update: no asset found for {goos}/{goarch}")


def download(
    url: str,
    dst: str | os.PathLike[str],
    expected_size: int = 0,
    on_progress: Callable[[float], None] | None = None,
) -> None:
    """Download url to dst, reporting the completed fraction when the size is known."""
    try:
        response = requests.get(url, stream=True, timeout=_TIMEOUT)
    except requests.RequestException as exc:
        raise UpdateError(f"update: download: {exc}") from exc
    with response:
        if response.status_code != 200:
            raise UpdateError(f"update: download returned {response.status_code}")
        try:
            total = int(response.headers.get("Content-Length", "0"))
        except ValueError:
            total = 0
        if total <= 0:
            total = expected_size
        try:
            out = open(dst, "wb")
        except OSError as exc:
            raise UpdateError(f"update: create archive: {exc}") from exc
        with out:
            done = 0
            try:
                for chunk in response.iter_content(_CHUNK):
                    out.write(chunk)
                    done += len(chunk)
                    if total > 0 and on_progress is not None:
                        on_progress(done / total)
            except (OSError, requests.RequestException) as exc:
                raise UpdateError(f"update: write archive: {exc}") from exc


def _write_binary(src: IO[bytes], dst_binary: str | os.PathLike[str]) -> None:
    try:
        fd = os.open(dst_binary, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o755)
        with os.fdopen(fd, "wb") as out:
            while chunk := src.read(_CHUNK):
                out.write(chunk)
    except OSError as exc:
        raise UpdateError(f"update: extract binary: {exc}") from exc


def _extract_tar_gz(archive_path: str, dst_binary: str | os.PathLike[str]) -> None:
    target = BINARY_NAME + _exe_suffix()
    try:
        archive = tarfile.open(archive_path, "r:gz")
    except (OSError, tarfile.TarError, EOFError) as exc:
        raise UpdateError(f"update: gzip: {exc}") from exc
    with archive:
        try:
            for member in archive:
                if os.path.basename(member.name) == target and member.isreg():
                    src = archive.extractfile(member)
                    if src is None:
                        break
                    with src:
                        _write_binary(src, dst_binary)
                    return
        except (OSError, tarfile.TarError, EOFError) as exc:
            raise UpdateError(f"update: tar: {exc}") from exc
    raise UpdateError(f"update: binary {target!r} not found in archive")


def _extract_zip(archive_path: str, dst_binary: str | os.PathLike[str]) -> None:
    target = BINARY_NAME + _exe_suffix()
    try:
        archive = zipfile.ZipFile(archive_path)
    except (OSError, zipfile.BadZipFile) as exc:
        raise UpdateError(f"update: open zip: {exc}") from exc
    with archive:
        for info in archive.infolist():
            if os.path.basename(info.filename) == target:
                try:
                    src = archive.open(info)
                except (OSError, zipfile.BadZipFile) as exc:
                    raise UpdateError(f"update: open zip entry: {exc}") from exc
                with src:
                    _write_binary(src, dst_binary)
                return
    raise UpdateError(f"update: binary {target!r} not found in zip")


def extract(archive_path: str | os.PathLike[str], dst_binary: str | os.PathLike[str]) -> None:
    """Extract the bot binary from a .zip or .tar.gz archive to dst_binary."""
    archive_path = os.fspath(archive_path)
    if archive_path.endswith(".zip"):
        _extract_zip(archive_path, dst_binary)
    else:
        _extract_tar_gz(archive_path, dst_binary)


def replace_binary(old_path: str | os.PathLike[str], new_path: str | os.PathLike[str]) -> None:
    """Swap old_path for new_path; on Windows the running binary is moved aside first."""
    old_path = os.fspath(old_path)
    new_path = os.fspath(new_path)
    if platform_name() == "windows":
        backup = old_path + ".old"
        try:
            os.remove(backup)
        except OSError:
            pass
        try:
            os.rename(old_path, backup)
        except OSError as exc:
            raise UpdateError(f"update: rename old binary: {exc}") from exc
        try:
            os.rename(new_path, old_path)
        except OSError as exc:
            try:
                os.rename(backup, old_path)
            except OSError:
                pass
            raise UpdateError(f"update: install new binary: {exc}") from exc
        return
    try:
        os.replace(new_path, old_path)
    except OSError as exc:
        raise UpdateError(f"update: replace binary: {exc}") from exc


def apply(release: Release, progress: ProgressFunc | None = None) -> str:
    """Install the release's asset for this system over the running binary.

    Returns the path of the replaced binary.
    """
    report: ProgressFunc = progress or (lambda phase, pct: None)
    asset = match_asset(release.assets)
    exe = _executable()
    try:
        tmp_dir = tempfile.TemporaryDirectory(prefix=".update-", dir=os.path.dirname(exe))
    except OSError as exc:
        raise UpdateError(f"update: create temp dir: {exc}") from exc
    with tmp_dir as work:
        archive_path = os.path.join(work, asset.name)
        report("downloading", 0.0)
        download(
            asset.browser_download_url,
            archive_path,
            asset.size,
            lambda pct: report("downloading", pct),
        )
        report("extracting", 0.0)
        new_binary = os.path.join(work, BINARY_NAME + _exe_suffix())
        extract(archive_path, new_binary)
        report("installing", 0.0)
        replace_binary(exe, new_binary)
    report("done", 1.0)
    return exe