"""Writing the configuration file to disk."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from .config import Config

_HEADER = (
    "# steamgifts-bot config — generated by `setup`. Re-run setup any time to edit.\n"
    "# This file contains session cookies; keep it private.\n\n"
)


def save_config_yaml(config: Config, path: str | os.PathLike[str]) -> None:
    """Write config as YAML to path, creating parent directories.

    The file holds session cookies, so it is created readable by its owner only.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    body = yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(_HEADER + body)