"""Win notifications over Discord webhooks and Telegram bot messages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import requests

TELEGRAM_BASE_URL = "https://api.telegram.org"
DISCORD_COLOR_GREEN = 0x00FF00
_TIMEOUT = 10.0


class NotifyError(Exception):
    """A notification could not be delivered."""


@dataclass
class Win:
    """A won giveaway to notify about."""

    game_name: str
    account_name: str
    giveaway_url: str = ""


class Notifier:
    """Sends win notifications to the configured targets; empty values disable them."""

    def __init__(
        self,
        discord_url: str = "",
        telegram_token: str = "",
        telegram_chat: str = "",
        telegram_base_url: str = TELEGRAM_BASE_URL,
    ) -> None:
        self.discord_url = discord_url
        self.telegram_token = telegram_token
        self.telegram_chat = telegram_chat
        self.telegram_base_url = telegram_base_url.rstrip("/")
        self._session = requests.Session()

    def enabled(self) -> bool:
        """Report whether any target is configured."""
        return bool(self.discord_url) or self._telegram_enabled()

    def _telegram_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat)

    def send_win(self, win: Win) -> None:
        """Notify every configured target; raise the first failure after trying all."""
        first_error: NotifyError | None = None
        senders = []
        if self.discord_url:
            senders.append(self._send_discord)
        if self._telegram_enabled():
            senders.append(self._send_telegram)
        for send in senders:
            try:
                send(win)
            except NotifyError as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def _send_discord(self, win: Win) -> None:
        embed: dict[str, Any] = {
            "title": f"Won: {win.game_name}",
            "description": f"Account **{win.account_name}** won a giveaway!",
            "color": DISCORD_COLOR_GREEN,
            "fields": [
                {"name": "Game", "value": win.game_name, "inline": True},
                {"name": "Account", "value": win.account_name, "inline": True},
            ],
        }
        if win.giveaway_url:
            embed["url"] = win.giveaway_url
        self._post_json(self.discord_url, {"embeds": [embed]}, "discord")

    def _send_telegram(self, win: Win) -> None:
        text = f"*Won: {win.game_name}*\nAccount: {win.account_name}"
        if win.giveaway_url:
            text += f"\n[View giveaway]({win.giveaway_url})"
        url = f"{self.telegram_base_url}/bot{self.telegram_token}/sendMessage"
        payload = {"chat_id": self.telegram_chat, "text": text, "parse_mode": "Markdown"}
        self._post_json(url, payload, "telegram")

    def _post_json(self, url: str, payload: Any, label: str) -> None:
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise NotifyError(f"notify: {label} marshal: {exc}") from exc
        try:
            response = self._session.post(
                url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise NotifyError(f"notify: {label}: {exc}") from exc
        with response:
            if response.status_code >= 400:
                raise NotifyError(f"notify: {label} returned {response.status_code}")