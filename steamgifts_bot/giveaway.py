"""Domain types for giveaways and the signed-in account."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass
class Giveaway:
    """A single giveaway parsed from a listing page.

    ``code`` is the short ID from the giveaway URL and is what entries reference.
    ``ends_at`` is None when the end time could not be parsed.
    """

    code: str = ""
    name: str = ""
    url: str = ""
    cost: int = 0
    copies: int = 0
    entries: int = 0
    ends_at: datetime | None = None
    level: int = 0
    pinned: bool = False
    entered: bool = False
    unjoinable: bool = False

    def joinable(
        self,
        current_points: int,
        min_points: int,
        account_level: int,
        allow_pinned: bool,
    ) -> bool:
        """Report whether the bot should try to enter this giveaway."""
        if self.entered or self.unjoinable:
            return False
        # An unknown account level (0) lets the server decide.
        if self.level > 0 and account_level > 0 and account_level < self.level:
            return False
        if self.pinned and not allow_pinned:
            return False
        if self.ends_at is not None and _now_like(self.ends_at) > self.ends_at:
            return False
        if self.cost < 0:
            return False
        if self.cost > 0 and current_points - self.cost < min_points:
            return False
        return True


@dataclass
class AccountState:
    """What a listing page reveals about the signed-in account."""

    username: str = ""
    points: int = 0
    level: int = 0
    xsrf_token: str = ""


def _now_like(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return datetime.now()
    return datetime.now(timezone.utc)