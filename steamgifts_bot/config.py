"""User-facing configuration schema, defaults, merging and validation."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping

from .filters import (
    FILTER_ALL,
    FILTER_GROUP,
    FILTER_MULTICOPY,
    FILTER_NEW,
    FILTER_RECOMMENDED,
    FILTER_WISHLIST,
    is_valid_filter,
    valid_filter_names,
)

MAX_POINTS = 400
"""The maximum points an account can hold."""

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

PLACEHOLDER_COOKIE = "REPLACE_WITH_YOUR_PHPSESSID"
"""The value shipped in example configs; never a usable session."""


class ConfigError(ValueError):
    """The configuration is malformed or would prevent the bot from running."""


@dataclass
class ScorerWeights:
    """Relative priority of each scoring component; None means unset."""

    wishlist: float | None = None
    sniper: float | None = None
    sniper_hours: float | None = None
    level: float | None = None
    cost_efficiency: float | None = None

    def to_dict(self) -> dict[str, float]:
        """Return the set weights as a plain mapping."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class AccountSettings:
    """Per-account knobs, set globally under ``defaults`` or per account.

    None marks a setting as unset so overrides can tell "use default"
    apart from an explicit zero.
    """

    min_points: int | None = None
    pause_minutes: int | None = None
    enter_pinned: bool | None = None
    max_entries_per_run: int | None = None
    user_agent: str = ""
    filters: list[str] = field(default_factory=list)
    max_pages: int | None = None
    max_entries_per_app: int | None = None
    proxy_url: str = ""
    steam_sync_enabled: bool | None = None
    steam_sync_interval_hours: int | None = None
    scorer: ScorerWeights | None = None

    def max_pages_value(self) -> int:
        """How many listing pages to fetch per filter (at least 1)."""
        if self.max_pages is None or self.max_pages < 1:
            return 1
        return self.max_pages

    def max_entries_per_app_value(self) -> int:
        """The per-game entry cap; 0 means unlimited."""
        return 0 if self.max_entries_per_app is None else self.max_entries_per_app

    def steam_sync_enabled_value(self) -> bool:
        """Whether automatic Steam sync is enabled."""
        return bool(self.steam_sync_enabled)

    def steam_sync_interval(self) -> timedelta:
        """The minimum gap between Steam sync attempts."""
        if self.steam_sync_interval_hours is None:
            return timedelta(hours=24)
        return timedelta(hours=self.steam_sync_interval_hours)

    def pause_duration(self) -> timedelta:
        """The pause between scan cycles."""
        if self.pause_minutes is None:
            return timedelta(minutes=15)
        return timedelta(minutes=self.pause_minutes)

    def min_points_value(self) -> int:
        """The minimum-points threshold."""
        return 0 if self.min_points is None else self.min_points

    def max_entries_value(self) -> int:
        """The per-run entry cap."""
        return 0 if self.max_entries_per_run is None else self.max_entries_per_run

    def enter_pinned_value(self) -> bool:
        """Whether pinned giveaways should be entered."""
        return bool(self.enter_pinned)

    def to_dict(self) -> dict[str, Any]:
        """Return the set fields as a plain mapping, omitting unset ones."""
        out: dict[str, Any] = {}
        for f in dataclasses.fields(AccountSettings):
            value = getattr(self, f.name)
            if value is None or value == "" or value == []:
                continue
            if isinstance(value, ScorerWeights):
                out[f.name] = value.to_dict()
            elif isinstance(value, list):
                out[f.name] = list(value)
            else:
                out[f.name] = value
        return out


@dataclass
class Account(AccountSettings):
    """A single site identity the bot operates on, with its overrides."""

    name: str = ""
    cookie: str = ""

    def settings(self) -> AccountSettings:
        """The override settings of this account on their own."""
        return AccountSettings(
            **{f.name: getattr(self, f.name) for f in dataclasses.fields(AccountSettings)}
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "cookie": self.cookie, **self.settings().to_dict()}


@dataclass
class Config:
    """The root configuration object."""

    defaults: AccountSettings = field(default_factory=AccountSettings)
    filters: list[str] = field(default_factory=list)
    accounts: list[Account] = field(default_factory=list)
    auto_update: bool | None = None
    update_check_interval_hours: int | None = None
    splash_screen: bool | None = None
    discord_webhook_url: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    scorer: ScorerWeights = field(default_factory=ScorerWeights)

    def auto_update_enabled(self) -> bool:
        """Whether automatic updates are enabled (default: true)."""
        return self.auto_update is None or self.auto_update

    def update_check_interval(self) -> timedelta:
        """The interval between background update checks (default: 6h, minimum 1h)."""
        if self.update_check_interval_hours is None:
            return timedelta(hours=6)
        if self.update_check_interval_hours < 1:
            return timedelta(hours=1)
        return timedelta(hours=self.update_check_interval_hours)

    def splash_screen_enabled(self) -> bool:
        """Whether the splash screen is shown on launch (default: true)."""
        return self.splash_screen is None or self.splash_screen

    def resolved(self, idx: int) -> AccountSettings:
        """Effective settings for one account: its overrides over the defaults."""
        if idx < 0 or idx >= len(self.accounts):
            return dataclasses.replace(self.defaults)
        account = self.accounts[idx]
        out = dataclasses.replace(self.defaults)
        for name in (
            "min_points",
            "pause_minutes",
            "enter_pinned",
            "max_entries_per_run",
            "max_pages",
            "max_entries_per_app",
            "steam_sync_enabled",
            "steam_sync_interval_hours",
            "scorer",
        ):
            value = getattr(account, name)
            if value is not None:
                setattr(out, name, value)
        if account.user_agent:
            out.user_agent = account.user_agent
        if account.proxy_url:
            out.proxy_url = account.proxy_url
        # Filter precedence: per-account, then defaults, then top-level filters.
        if account.filters:
            out.filters = list(account.filters)
        if not out.filters:
            out.filters = list(self.filters)
        return out

    def validate(self) -> None:
        """Raise ConfigError for the first problem that would stop the bot."""
        if not self.accounts:
            raise ConfigError(
                "no accounts configured: add at least one account or run `steamgifts-bot setup`"
            )
        seen: set[str] = set()
        for i, account in enumerate(self.accounts):
            name = account.name.strip()
            if not name:
                raise ConfigError(f"accounts[{i}]: name is required")
            if name in seen:
                raise ConfigError(f"accounts[{i}]: duplicate account name {name!r}")
            seen.add(name)

            if not account.cookie.strip() or account.cookie == PLACEHOLDER_COOKIE:
                raise ConfigError(
                    f"accounts[{i}] ({name}): cookie is empty or unset — "
                    "run `steamgifts-bot setup` to capture it"
                )

            settings = self.resolved(i)
            min_points = settings.min_points_value()
            if not 0 <= min_points <= MAX_POINTS:
                raise ConfigError(
                    f"accounts[{i}] ({name}): min_points {min_points} "
                    f"out of range [0,{MAX_POINTS}]"
                )
            if settings.pause_duration() < timedelta(minutes=1):
                raise ConfigError(f"accounts[{i}] ({name}): pause_minutes must be >= 1")
            if settings.max_entries_value() < 0:
                raise ConfigError(f"accounts[{i}] ({name}): max_entries_per_run must be >= 0")
            hours = settings.steam_sync_interval_hours
            if hours is not None and hours < 1:
                raise ConfigError(
                    f"accounts[{i}] ({name}): steam_sync_interval_hours must be >= 1 "
                    "to avoid hammering the site"
                )
            for flt in settings.filters:
                if not is_valid_filter(flt):
                    raise ConfigError(
                        f"accounts[{i}] ({name}): unknown filter {flt!r} "
                        f"(valid: {', '.join(valid_filter_names())})"
                    )

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as plain data suitable for YAML."""
        out: dict[str, Any] = {
            "defaults": self.defaults.to_dict(),
            "filters": list(self.filters),
            "accounts": [account.to_dict() for account in self.accounts],
        }
        if self.auto_update is not None:
            out["auto_update"] = self.auto_update
        if self.update_check_interval_hours is not None:
            out["update_check_interval_hours"] = self.update_check_interval_hours
        if self.splash_screen is not None:
            out["splash_screen"] = self.splash_screen
        out["discord_webhook_url"] = self.discord_webhook_url
        out["telegram_bot_token"] = self.telegram_bot_token
        out["telegram_chat_id"] = self.telegram_chat_id
        out["scorer"] = self.scorer.to_dict()
        return out


def defaults() -> Config:
    """A Config with the built-in out-of-the-box values and no accounts."""
    return Config(
        defaults=AccountSettings(
            min_points=50,
            pause_minutes=15,
            enter_pinned=False,
            max_entries_per_run=25,
            user_agent=DEFAULT_USER_AGENT,
            max_pages=3,
            steam_sync_enabled=True,
            steam_sync_interval_hours=24,
        ),
        filters=[
            FILTER_WISHLIST,
            FILTER_GROUP,
            FILTER_MULTICOPY,
            FILTER_RECOMMENDED,
            FILTER_NEW,
            FILTER_ALL,
        ],
        accounts=[],
    )


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where}: expected a mapping")
    return value


def _opt_int(data: Mapping[str, Any], key: str, where: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{where}.{key}: expected an integer, got {value!r}")
    return value


def _opt_bool(data: Mapping[str, Any], key: str, where: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigError(f"{where}.{key}: expected true or false, got {value!r}")
    return value


def _opt_float(data: Mapping[str, Any], key: str, where: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{where}.{key}: expected a number, got {value!r}")
    return float(value)


def _string(data: Mapping[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{where}.{key}: expected a string, got {value!r}")
    return value


def _string_list(data: Mapping[str, Any], key: str, where: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}.{key}: expected a list of strings")
    return list(value)


def _weights_from(data: Mapping[str, Any], where: str) -> ScorerWeights:
    return ScorerWeights(
        **{
            f.name: _opt_float(data, f.name, where)
            for f in dataclasses.fields(ScorerWeights)
        }
    )


def _settings_kwargs(data: Mapping[str, Any], where: str) -> dict[str, Any]:
    scorer_data = data.get("scorer")
    return {
        "min_points": _opt_int(data, "min_points", where),
        "pause_minutes": _opt_int(data, "pause_minutes", where),
        "enter_pinned": _opt_bool(data, "enter_pinned", where),
        "max_entries_per_run": _opt_int(data, "max_entries_per_run", where),
        "user_agent": _string(data, "user_agent", where),
        "filters": _string_list(data, "filters", where),
        "max_pages": _opt_int(data, "max_pages", where),
        "max_entries_per_app": _opt_int(data, "max_entries_per_app", where),
        "proxy_url": _string(data, "proxy_url", where),
        "steam_sync_enabled": _opt_bool(data, "steam_sync_enabled", where),
        "steam_sync_interval_hours": _opt_int(data, "steam_sync_interval_hours", where),
        "scorer": None
        if scorer_data is None
        else _weights_from(_mapping(scorer_data, f"{where}.scorer"), f"{where}.scorer"),
    }


def config_from_dict(data: Mapping[str, Any] | None) -> Config:
    """Build a Config from plain data such as a parsed YAML document.

    Unknown keys are ignored; values of the wrong type raise ConfigError.
    """
    root = _mapping(data, "config")
    accounts_data = root.get("accounts")
    if accounts_data is None:
        accounts_data = []
    if not isinstance(accounts_data, list):
        raise ConfigError("config.accounts: expected a list")
    accounts = []
    for i, entry in enumerate(accounts_data):
        where = f"accounts[{i}]"
        item = _mapping(entry, where)
        accounts.append(
            Account(
                name=_string(item, "name", where),
                cookie=_string(item, "cookie", where),
                **_settings_kwargs(item, where),
            )
        )
    return Config(
        defaults=AccountSettings(
            **_settings_kwargs(_mapping(root.get("defaults"), "defaults"), "defaults")
        ),
        filters=_string_list(root, "filters", "config"),
        accounts=accounts,
        auto_update=_opt_bool(root, "auto_update", "config"),
        update_check_interval_hours=_opt_int(root, "update_check_interval_hours", "config"),
        splash_screen=_opt_bool(root, "splash_screen", "config"),
        discord_webhook_url=_string(root, "discord_webhook_url", "config"),
        telegram_bot_token=_string(root, "telegram_bot_token", "config"),
        telegram_chat_id=_string(root, "telegram_chat_id", "config"),
        scorer=_weights_from(_mapping(root.get("scorer"), "scorer"), "scorer"),
    )