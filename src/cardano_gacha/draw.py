from __future__ import annotations

import logging
import random
from bisect import bisect_left
from dataclasses import dataclass
from decimal import Decimal

from .project_constants import LOVELACE_PER_ADA
from .tiers import DEFAULT_TABLE, RewardTier, TierProfile, TierTable

log = logging.getLogger("draw")


@dataclass(frozen=True)
class DrawResult:
    tier: RewardTier
    rating: str
    score: int
    visual_token: str
    fallback: bool = False  # no band matched the draw value


def to_ada(lovelace: int) -> float:
    return round(lovelace / LOVELACE_PER_ADA, 6)


def to_lovelace(ada: float | int | str | Decimal) -> int:
    return int((Decimal(str(ada)) * LOVELACE_PER_ADA).to_integral_value())


def random_draw_value(rng: random.Random) -> float:
    """Uniform draw value in [0, 100)."""
    return rng.random() * 100


def draw_score(profile: TierProfile, rng: random.Random) -> int:
    return rng.randrange(profile.score_min, profile.score_max)


def draw_reward(
    r: float,
    rng: random.Random,
    table: TierTable = DEFAULT_TABLE,
) -> DrawResult:
    """
    Map a draw value r in [0, 100) to a reward.

    Tiers are walked rarest first; the first tier whose cumulative upper bound
    is >= r wins, so boundary values go to the rarer tier. Tier and rating
    depend on r alone, rng is only used for the score.
    """
    if not r >= 0:
        raise ValueError(f"Draw value must be in [0, 100), got {r!r}")

    # A zero-weight tier is never drawn, not even at r == its bound.
    bands = [b for b in table.bands() if b.profile.weight > 0]
    uppers = [b.upper for b in bands]
    idx = bisect_left(uppers, Decimal(r))

    if idx >= len(bands):
        log.warning("Draw value %r matched no tier; defaulting to Common.", r)
        profile = table.profile(RewardTier.COMMON)
        return _result(profile, rng, fallback=True)

    return _result(bands[idx].profile, rng)


def _result(profile: TierProfile, rng: random.Random, fallback: bool = False) -> DrawResult:
    return DrawResult(
        tier=profile.tier,
        rating=profile.rating,
        score=draw_score(profile, rng),
        visual_token=profile.visual,
        fallback=fallback,
    )
