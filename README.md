# steamgifts-bot

A Python library with the pieces a steamgifts.com giveaway bot is built
from:

- turning filter names into listing paths and paging through them
- parsing listing pages, the won-games page and the site's AJAX replies
- deciding which giveaways are joinable and ranking them by value
- a configuration schema with global defaults and per-account overrides,
  read from and written to YAML
- a jittered rate limiter for human-paced requests
- structured logging with secret redaction in log files
- Discord and Telegram win notifications
- Prometheus-style metrics over HTTP
- a small persistent state file (last Steam sync per account)
- installing the bot as a per-user background service
- checking for and applying new releases

Python 3.10 or newer is required. Install with pip from a checkout; the
`test` extra adds pytest and responses for the test suite.

## Filters and listing pages

```python
from steamgifts_bot.filters import filter_url, with_page, valid_filter_names
from steamgifts_bot.parser import parse_list_page, parse_wins_page, ParseError

print(valid_filter_names())
# ['wishlist', 'group', 'recommended', 'new', 'dlc', 'multicopy', 'all']

path = with_page(filter_url("wishlist"), 2)
# '/giveaways/search?type=wishlist&page=2'

try:
    account, giveaways = parse_list_page(html_bytes)
except ParseError as exc:
    # Cloudflare challenge, CAPTCHA, expired cookie or missing xsrf token
    print(exc)
else:
    joinable = [
        g for g in giveaways
        if g.joinable(account.points, 50, account.level, False)
    ]
```

`filter_url` raises `ValueError` for an unknown name; a raw path starting
with `/`, such as `/giveaways/search?type=group&copy_min=3`, is returned
unchanged. `parse_wins_page` returns a list of `WonGame` (name, url, code).

## Entering and syncing

`steamgifts_bot.responses` builds the form fields for the site's
`/ajax.php` endpoint and decodes its replies:

```python
from steamgifts_bot.responses import (
    build_entry_form, parse_entry_response, SiteResponseError,
)

form = build_entry_form("ABC1", account.xsrf_token)
# post `form` to /ajax.php with your own HTTP session, then:
try:
    result = parse_entry_response("ABC1", reply_body)
    print("points left:", result.points_value())
except SiteResponseError as exc:
    print(exc, exc.result)
```

`build_sync_form` and `parse_sync_response` do the same for a Steam sync.

## Ranking

```python
from steamgifts_bot.scorer import rank, default_weights, ScoringContext

context = ScoringContext(
    wishlist_codes={"ABC1"}, account_level=account.level, weights=default_weights()
)
for candidate in rank(joinable, context):
    print(round(candidate.score, 2), candidate.giveaway.name)
```

Giveaways closing soon with few entries, wishlisted games, level-locked
giveaways and cheap giveaways with good odds are boosted. Ties keep their
input order.

## Configuration

```python
import yaml
from steamgifts_bot.config import config_from_dict, defaults, ConfigError
from steamgifts_bot.configfile import save_config_yaml

with open("config.yml") as fh:
    cfg = config_from_dict(yaml.safe_load(fh))

try:
    cfg.validate()
except ConfigError as exc:
    print(exc)

settings = cfg.resolved(0)          # first account, overrides applied
print(settings.min_points_value(), settings.pause_duration())

save_config_yaml(cfg, "config.yml")  # created with owner-only permissions
```

`defaults()` gives a `Config` with the built-in values and no accounts. A
minimal `config.yml`:

```yaml
defaults:
  min_points: 50
  pause_minutes: 15
accounts:
  - name: main
    cookie: placeholder
```

## Rate limiting

```python
import threading
from steamgifts_bot.ratelimit import Limiter, WaitCancelled

limiter = Limiter(2.0, 6.0)        # seconds or timedeltas
stop = threading.Event()
try:
    limiter.wait(stop)
except WaitCancelled:
    pass
```

## Notifications, logging and metrics

```python
from steamgifts_bot.notify import Notifier, Win, NotifyError
from steamgifts_bot.logsetup import new_with_file, account_logger

notifier = Notifier(discord_url="https://discord.example.com/webhook")
if notifier.enabled():
    try:
        notifier.send_win(Win(game_name="Some Game", account_name="main"))
    except NotifyError as exc:
        print(exc)

with new_with_file("info", "auto", "logs/bot.log") as logger:
    account_logger(logger, "main").info("cycle finished", entered=3)
```

The file output is JSON, rotated into gzip backups once it passes 100 MB.
Values logged under keys such as `cookie`, `token`, `password` or
`webhook` are replaced with `***REDACTED***` in the file (not on the
console). `new_logger(stream, level, fmt)` builds a console-only logger;
formats are `auto`, `text` and `json`.

`steamgifts_bot.metrics` holds per-account counters and gauges such as
`ENTRIES_ATTEMPTED` and `POINTS`; `render_all()` returns them in the
Prometheus text format and `serve(addr, stop_event)` serves them on
`/metrics` until the event is set.

## State, services and updates

`steamgifts_bot.state.load(path)` returns a `Store` whose
`last_sync(account)` is the last recorded Steam sync (or `None`) and whose
`set_last_sync(account, when)` writes the file atomically;
`default_path_for(config_path)` puts `state.json` beside the config.

`steamgifts_bot.service.install()` registers a `steamgifts-bot run`
command to start on login (systemd user unit on Linux, LaunchAgent on
macOS, Startup folder script on Windows); `uninstall()`, `is_installed()`,
`is_active()` and `status()` manage it. The command is looked up on
`PATH`, falling back to the running script.

`steamgifts_bot.update_check.check(logger, version)` compares a version
with the latest release and logs a warning when a newer one exists;
`steamgifts_bot.update_apply.apply(release, progress)` downloads the
matching archive and replaces the installed binary.

## What this package does not do

It has no HTTP session for the site itself (fetching pages, sending
cookies, posting forms), no scan loop tying the pieces together, no
command-line program, no interactive setup wizard and no web dashboard.
Those are left to the application that uses it.