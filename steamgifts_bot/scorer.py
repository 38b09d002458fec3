"""Priority scoring for giveaway candidates; higher scores are entered first.

The score is a weighted sum of a sniper boost, a wishlist boost, a
level-locked boost and cost efficiency.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from operator import attrgetter
from typing import Collection, Iterable

from .giveaway import Giveaway

DEFAULT_WISHLIST_WEIGHT = 5.0
DEFAULT_SNIPER_WEIGHT = 10.0
DEFAULT_SNIPER_HOURS = 2.0
DEFAULT_LEVEL_WEIGHT = 3.0
DEFAULT_COST_WEIGHT = 1.0

_LEVEL_MAX_BOOST = 10


@dataclass
class Weights:
    """Tunable scoring parameters."""

    wishlist: float = 0.0
    sniper: float = 0.0
    sniper_hours: float = 0.0
    level: float = 0.0
    cost: float = 0.0


def default_weights() -> Weights:
    """Weights with all built-in defaults."""
    return Weights(
        wishlist=DEFAULT_WISHLIST_WEIGHT,
        sniper=DEFAULT_SNIPER_WEIGHT,
        sniper_hours=DEFAULT_SNIPER_HOURS,
        level=DEFAULT_LEVEL_WEIGHT,
        cost=DEFAULT_COST_WEIGHT,
    )


@dataclass
class ScoringContext:
    """Per-cycle data the scorer needs beyond the giveaway itself."""

    wishlist_codes: Collection[str] = field(default_factory=frozenset)
    account_level: int = 0
    weights: Weights = field(default_factory=Weights)


@dataclass
class Candidate:
    """A giveaway with its computed score."""

    giveaway: Giveaway
    score: float

    @property
    def code(self) -> str:
        return self.giveaway.code


def rank(giveaways: Iterable[Giveaway], context: ScoringContext) -> list[Candidate]:
    """Score giveaways and sort them highest first, keeping ties in order."""
    now = datetime.now(timezone.utc)
    candidates = [Candidate(g, _score(g, context, now)) for g in giveaways]
    return sorted(candidates, key=attrgetter("score"), reverse=True)


def _score(g: Giveaway, context: ScoringContext, now: datetime) -> float:
    w = context.weights
    total = (
        sniper_score(g, now, w.sniper, w.sniper_hours)
        + value_score(g, w.cost)
        + level_score(g, context.account_level, w.level)
    )
    if g.code in context.wishlist_codes:
        total += w.wishlist
    return total


def level_score(giveaway: Giveaway, account_level: int, weight: float) -> float:
    """Boost level-locked giveaways, more so when they have few entries."""
    if giveaway.level <= 0 or account_level <= 0:
        return 0.0
    level_factor = min(giveaway.level / _LEVEL_MAX_BOOST, 1.0)
    entries = max(float(giveaway.entries), 1.0)
    scarcity = 1.0 / math.log2(entries + 1)
    return weight * level_factor * scarcity


def _aware(moment: datetime) -> datetime:
    return moment.astimezone() if moment.tzinfo is None else moment


def sniper_score(
    giveaway: Giveaway, now: datetime, weight: float, threshold_hours: float
) -> float:
    """Boost giveaways closing within the threshold, scaled by win rate."""
    if giveaway.ends_at is None:
        return 0.0
    ends_at = _aware(giveaway.ends_at)
    now = _aware(now)
    if ends_at < now or threshold_hours <= 0:
        return 0.0
    hours_left = (ends_at - now).total_seconds() / 3600
    if hours_left > threshold_hours:
        return 0.0
    urgency = 1.0 - hours_left / threshold_hours
    entries = max(float(giveaway.entries), 1.0)
    copies = max(float(giveaway.copies), 1.0)
    win_rate = min(copies / entries, 1.0)
    return weight * urgency * win_rate


def value_score(giveaway: Giveaway, weight: float) -> float:
    """Reward win probability per point spent, on a log scale."""
    entries = max(float(giveaway.entries), 1.0)
    copies = max(float(giveaway.copies), 1.0)
    cost = max(float(giveaway.cost), 1.0)
    expected = (copies / entries) / cost
    return weight * math.log1p(expected * 100)