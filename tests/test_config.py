from datetime import timedelta

import pytest

from steamgifts_bot.config import (
    DEFAULT_USER_AGENT,
    PLACEHOLDER_COOKIE,
    Account,
    AccountSettings,
    Config,
    ConfigError,
    ScorerWeights,
    config_from_dict,
    defaults,
)


def test_defaults_fail_validation_without_accounts():
    with pytest.raises(ConfigError, match="no accounts"):
        defaults().validate()


def test_validate_happy_path():
    c = defaults()
    c.accounts = [Account(name="primary", cookie="token")]
    c.validate()
    assert c.resolved(0).min_points_value() == 50


def test_validate_rejects_placeholder_cookie():
    c = defaults()
    c.accounts = [Account(name="primary", cookie=PLACEHOLDER_COOKIE)]
    with pytest.raises(ConfigError, match="cookie is empty"):
        c.validate()


def test_validate_rejects_duplicate_names():
    c = defaults()
    c.accounts = [Account(name="x", cookie="token"), Account(name="x", cookie="secret")]
    with pytest.raises(ConfigError, match="duplicate"):
        c.validate()


def test_validate_rejects_unknown_filter():
    c = defaults()
    c.filters = ["wishlist", "bogus"]
    c.defaults.filters = []
    c.accounts = [Account(name="x", cookie="token")]
    with pytest.raises(ConfigError, match="unknown filter"):
        c.validate()


@pytest.mark.parametrize(
    "account, message",
    [
        (Account(name="", cookie="token"), "name is required"),
        (Account(name="x", cookie="  "), "cookie is empty"),
        (Account(name="x", cookie="token", min_points=500), "min_points"),
        (Account(name="x", cookie="token", pause_minutes=0), "pause_minutes"),
        (Account(name="x", cookie="token", max_entries_per_run=-1), "max_entries_per_run"),
        (
            Account(name="x", cookie="token", steam_sync_interval_hours=0),
            "steam_sync_interval_hours",
        ),
    ],
)
def test_validate_error_paths(account, message):
    c = defaults()
    c.accounts = [account]
    with pytest.raises(ConfigError, match=message):
        c.validate()


def test_resolved_applies_overrides():
    c = defaults()
    c.accounts = [
        Account(
            name="alt",
            cookie="token",
            min_points=200,
            pause_minutes=30,
            enter_pinned=True,
            filters=["wishlist"],
        )
    ]
    r = c.resolved(0)
    assert r.min_points_value() == 200
    assert r.pause_duration() == timedelta(minutes=30)
    assert r.enter_pinned_value() is True
    assert r.filters == ["wishlist"]


def test_resolved_falls_back_to_defaults():
    c = defaults()
    c.accounts = [Account(name="x", cookie="token")]
    r = c.resolved(0)
    assert r.min_points_value() == 50
    assert r.pause_duration() == timedelta(minutes=15)
    assert r.enter_pinned_value() is False
    assert r.filters == c.filters


def test_account_settings_unset_defaults():
    s = AccountSettings()
    assert s.max_pages_value() == 1
    assert s.max_entries_per_app_value() == 0
    assert s.steam_sync_enabled_value() is False
    assert s.steam_sync_interval() == timedelta(hours=24)
    assert s.pause_duration() == timedelta(minutes=15)
    assert s.min_points_value() == 0
    assert s.max_entries_value() == 0
    assert s.enter_pinned_value() is False


def test_account_settings_set_values():
    s = AccountSettings(
        max_pages=5,
        max_entries_per_app=3,
        steam_sync_enabled=True,
        steam_sync_interval_hours=12,
        pause_minutes=30,
        min_points=100,
        max_entries_per_run=10,
        enter_pinned=True,
    )
    assert s.max_pages_value() == 5
    assert s.max_entries_per_app_value() == 3
    assert s.steam_sync_enabled_value() is True
    assert s.steam_sync_interval() == timedelta(hours=12)
    assert s.pause_duration() == timedelta(minutes=30)
    assert s.min_points_value() == 100
    assert s.max_entries_value() == 10
    assert s.enter_pinned_value() is True


def test_max_pages_value_clamps_zero_to_one():
    assert AccountSettings(max_pages=0).max_pages_value() == 1


@pytest.mark.parametrize("idx", [-1, 100])
def test_resolved_out_of_bounds_returns_defaults(idx):
    assert defaults().resolved(idx).min_points_value() == 50


def test_resolved_merges_all_overrides():
    c = defaults()
    weights = ScorerWeights(wishlist=9.0)
    c.accounts = [
        Account(
            name="alt",
            cookie="token",
            min_points=200,
            pause_minutes=30,
            enter_pinned=True,
            max_entries_per_run=5,
            user_agent="custom-ua",
            filters=["wishlist"],
            max_pages=10,
            max_entries_per_app=2,
            proxy_url="socks5://localhost:1080",
            steam_sync_enabled=False,
            steam_sync_interval_hours=48,
            scorer=weights,
        )
    ]
    r = c.resolved(0)
    assert r.min_points_value() == 200
    assert r.pause_duration() == timedelta(minutes=30)
    assert r.enter_pinned_value() is True
    assert r.max_entries_value() == 5
    assert r.user_agent == "custom-ua"
    assert r.filters == ["wishlist"]
    assert r.max_pages_value() == 10
    assert r.max_entries_per_app_value() == 2
    assert r.proxy_url == "socks5://localhost:1080"
    assert r.steam_sync_enabled_value() is False
    assert r.steam_sync_interval() == timedelta(hours=48)
    assert r.scorer == weights


def test_resolved_filters_from_top_level():
    c = defaults()
    c.defaults.filters = []
    c.accounts = [Account(name="x", cookie="token")]
    assert c.resolved(0).filters == c.filters


def test_resolved_does_not_mutate_defaults():
    c = defaults()
    c.accounts = [Account(name="x", cookie="token", min_points=10)]
    c.resolved(0)
    assert c.defaults.min_points == 50


def test_config_level_toggles():
    c = Config()
    assert c.auto_update_enabled() is True
    assert c.splash_screen_enabled() is True
    assert c.update_check_interval() == timedelta(hours=6)
    c.auto_update = False
    c.splash_screen = False
    c.update_check_interval_hours = 0
    assert c.auto_update_enabled() is False
    assert c.splash_screen_enabled() is False
    assert c.update_check_interval() == timedelta(hours=1)
    c.update_check_interval_hours = 12
    assert c.update_check_interval() == timedelta(hours=12)


def test_defaults_values():
    c = defaults()
    assert c.defaults.user_agent == DEFAULT_USER_AGENT
    assert c.defaults.max_pages_value() == 3
    assert c.defaults.max_entries_value() == 25
    assert c.filters == ["wishlist", "group", "multicopy", "recommended", "new", "all"]
    assert c.accounts == []


def test_dict_round_trip():
    c = defaults()
    c.auto_update = False
    c.scorer = ScorerWeights(sniper=4.5)
    c.accounts = [Account(name="main", cookie="token", max_pages=2, filters=["dlc"])]
    assert config_from_dict(c.to_dict()) == c


def test_to_dict_omits_unset_account_settings():
    c = defaults()
    c.accounts = [Account(name="main", cookie="token")]
    data = c.to_dict()
    assert data["accounts"] == [{"name": "main", "cookie": "token"}]
    assert "auto_update" not in data
    assert data["scorer"] == {}
    assert data["defaults"]["min_points"] == 50


def test_config_from_dict_empty():
    c = config_from_dict({})
    assert c == Config()


def test_config_from_dict_rejects_wrong_types():
    with pytest.raises(ConfigError, match="min_points"):
        config_from_dict({"defaults": {"min_points": "many"}})
    with pytest.raises(ConfigError, match="accounts"):
        config_from_dict({"accounts": "nope"})
    with pytest.raises(ConfigError, match="enter_pinned"):
        config_from_dict({"accounts": [{"name": "x", "enter_pinned": 3}]})