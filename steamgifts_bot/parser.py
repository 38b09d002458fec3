"""HTML parsers for steamgifts listing and wins pages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag

from .giveaway import AccountState, Giveaway

_COST_RE = re.compile(r"\((\d+)\s*P\)", re.ASCII)
_COPIES_RE = re.compile(r"(\d+)\s+Copies?", re.ASCII)
_ENTRIES_RE = re.compile(r"(\d[\d,]*)\s+entries?", re.ASCII)
_CODE_RE = re.compile(r"/giveaway/([A-Za-z0-9]+)/", re.ASCII)
_LEVEL_RE = re.compile(r"Level\s+(\d+)", re.ASCII)
_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ParseError(Exception):
    """A page could not be parsed into the expected content."""


@dataclass
class WonGame:
    """A game the user has won."""

    name: str
    url: str = ""
    code: str = ""


def _to_bytes(html: bytes | str) -> bytes:
    return html.encode("utf-8") if isinstance(html, str) else bytes(html)


def is_cloudflare_challenge(html: bytes | str) -> bool:
    """Detect Cloudflare's "Just a moment..." interstitial."""
    raw = _to_bytes(html)
    return b"Just a moment..." in raw and b"cf-browser-verification" in raw


def is_captcha_page(html: bytes | str) -> bool:
    """Detect reCAPTCHA or hCaptcha challenge pages."""
    raw = _to_bytes(html)
    return any(
        marker in raw
        for marker in (b"g-recaptcha", b"h-captcha", b"recaptcha/api", b"hcaptcha.com")
    )


def atoi_safe(s: str) -> int:
    """Parse an integer, ignoring surrounding space and commas; 0 on failure."""
    cleaned = s.strip().replace(",", "")
    if not _INT_RE.fullmatch(cleaned):
        return 0
    value = int(cleaned)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return 0
    return value


def parse_list_page(html: bytes | str) -> tuple[AccountState, list[Giveaway]]:
    """Extract the account state and giveaways from a listing page."""
    raw = _to_bytes(html)
    if is_cloudflare_challenge(raw):
        raise ParseError(
            "parse: received a Cloudflare challenge page instead of real content — "
            "the cookie may have expired or the site is temporarily blocking requests"
        )
    if is_captcha_page(raw):
        raise ParseError(
            "parse: page contains a CAPTCHA challenge — the account may be flagged. "
            "Solve the captcha manually in a browser, then restart the bot"
        )
    soup = BeautifulSoup(raw, "html.parser")
    state = _parse_account_state(soup)
    rows = (_parse_giveaway_row(row) for row in soup.select(".giveaway__row-inner-wrap"))
    return state, [g for g in rows if g is not None]


def _parse_account_state(soup: BeautifulSoup) -> AccountState:
    state = AccountState()
    state.xsrf_token = next(
        (
            value
            for field in soup.select('input[name="xsrf_token"]')
            if (value := field.get("value"))
        ),
        "",
    )
    if not state.xsrf_token:
        if soup.select('a[href*="?login"]') or soup.select(".nav__button--login"):
            raise ParseError(
                "parse: not signed in — your PHPSESSID cookie has expired. "
                "Run `steamgifts-bot setup` or paste a fresh cookie into config.yml"
            )
        raise ParseError(
            "parse: xsrf token missing — cookie may be invalid or the page structure changed"
        )

    avatar = soup.select_one("a.nav__avatar-outer-wrap")
    href = avatar.get("href") if avatar is not None else None
    if href is not None:
        parts = href.strip("/").split("/")
        if len(parts) >= 2 and parts[0] == "user":
            state.username = parts[1]

    points_el = soup.select_one(".nav__points")
    if points_el is not None:
        points_text = points_el.get_text().strip()
        if points_text:
            state.points = atoi_safe(points_text)
        # The level span is a sibling of the points, so search only that container.
        parent = points_el.parent
        if isinstance(parent, Tag):
            for span in parent.select("span[title]"):
                match = _LEVEL_RE.search(span.get_text())
                if match:
                    state.level = atoi_safe(match.group(1))
                    break
    return state


def _closest(tag: Tag, cls: str) -> Tag | None:
    node = tag
    while isinstance(node, Tag):
        if cls in (node.get("class") or []):
            return node
        node = node.parent
    return None


def _parse_giveaway_row(row: Tag) -> Giveaway | None:
    heading = row.select_one(".giveaway__heading__name")
    if heading is None:
        return None
    name = heading.get_text().strip()
    if not name:
        return None

    g = Giveaway(name=name)
    href = heading.get("href")
    if href is not None:
        g.url = href
        match = _CODE_RE.search(href)
        if match:
            g.code = match.group(1)
    if not g.code:
        return None

    for thin in row.select(".giveaway__heading__thin"):
        text = thin.get_text()
        if match := _COST_RE.search(text):
            g.cost = atoi_safe(match.group(1))
        if match := _COPIES_RE.search(text):
            g.copies = atoi_safe(match.group(1))
    if g.copies == 0:
        g.copies = 1

    for link in row.select(".giveaway__links a"):
        if match := _ENTRIES_RE.search(link.get_text()):
            g.entries = atoi_safe(match.group(1))

    for span in row.select(".giveaway__columns span[data-timestamp]"):
        stamp = span.get("data-timestamp") or ""
        if not _INT_RE.fullmatch(stamp):
            continue
        try:
            g.ends_at = datetime.fromtimestamp(int(stamp), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            continue
        break

    # "--negative" marks a level requirement the signed-in user does not meet.
    for element in row.select('[class*="giveaway__column--contributor-level"]'):
        if match := _LEVEL_RE.search(element.get_text()):
            g.level = atoi_safe(match.group(1))
            if "--negative" in " ".join(element.get("class") or []):
                g.unjoinable = True
            break

    if _closest(row, "pinned-giveaways__outer-wrap") is not None:
        g.pinned = True

    classes = row.get("class") or []
    outer = _closest(row, "giveaway__row-outer-wrap")
    if (
        "is-faded" in classes
        or "is-unjoinable" in classes
        or (outer is not None and "is-faded" in (outer.get("class") or []))
    ):
        g.unjoinable = True
    if row.select(".fa.fa-check"):
        g.entered = True
    return g


def parse_wins_page(html: bytes | str) -> list[WonGame]:
    """Extract won games from the wins page."""
    raw = _to_bytes(html)
    if is_cloudflare_challenge(raw):
        raise ParseError("parse wins: Cloudflare challenge")
    soup = BeautifulSoup(raw, "html.parser")
    wins: list[WonGame] = []
    for row in soup.select(".table__row-inner-wrap"):
        heading = row.select_one(".table__column__heading")
        name = heading.get_text().strip() if heading is not None else ""
        if not name:
            continue
        win = WonGame(name=name)
        href = heading.get("href")
        if href is not None:
            win.url = href
            if match := _CODE_RE.search(href):
                win.code = match.group(1)
        wins.append(win)
    return wins