from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, List, Mapping, Tuple

from .errors import InvalidConfiguration
from .project_constants import DEFAULT_TIER_TABLE


@total_ordering
class RewardTier(Enum):
    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"

    @property
    def rank(self) -> int:
        return _RARITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RewardTier):
            return NotImplemented
        return self.rank < other.rank

    def __str__(self) -> str:
        return self.value


_RARITY_RANK = {
    RewardTier.COMMON: 0,
    RewardTier.RARE: 1,
    RewardTier.EPIC: 2,
    RewardTier.LEGENDARY: 3,
}

# Rarest first: rarer tiers own the low end of [0, 100) and every boundary value.
DRAW_ORDER: Tuple[RewardTier, ...] = (
    RewardTier.LEGENDARY,
    RewardTier.EPIC,
    RewardTier.RARE,
    RewardTier.COMMON,
)

TOTAL_WEIGHT = Decimal(100)


@dataclass(frozen=True)
class TierProfile:
    tier: RewardTier
    weight: Decimal
    rating: str
    score_min: int
    score_max: int  # exclusive
    image: str
    visual: str = ""


@dataclass(frozen=True)
class TierBand:
    profile: TierProfile
    lower: Decimal
    upper: Decimal


@dataclass(frozen=True)
class TierTable:
    profiles: Tuple[TierProfile, ...]

    def __post_init__(self) -> None:
        _validate(self.profiles)

    def profile(self, tier: RewardTier) -> TierProfile:
        for p in self.profiles:
            if p.tier is tier:
                return p
        raise KeyError(tier)

    def bands(self) -> List[TierBand]:
        """Cumulative [lower, upper] threshold per tier, in draw order."""
        out: List[TierBand] = []
        cursor = Decimal(0)
        for p in self.profiles:
            out.append(TierBand(p, cursor, cursor + p.weight))
            cursor += p.weight
        return out

    @staticmethod
    def from_mapping(raw: Mapping[str, Mapping[str, Any]]) -> "TierTable":
        unknown = set(raw) - {t.value for t in RewardTier}
        if unknown:
            raise InvalidConfiguration(f"Unknown tier(s) in table: {sorted(unknown)}")

        profiles: List[TierProfile] = []
        for tier in DRAW_ORDER:
            entry = raw.get(tier.value)
            if entry is None:
                raise InvalidConfiguration(f"Tier table is missing {tier.value}.")
            try:
                profiles.append(
                    TierProfile(
                        tier=tier,
                        weight=Decimal(str(entry["weight"])),
                        rating=str(entry["rating"]),
                        score_min=int(entry["score_min"]),
                        score_max=int(entry["score_max"]),
                        image=str(entry["image"]),
                        visual=str(entry.get("visual", "")),
                    )
                )
            except (KeyError, TypeError, ValueError, InvalidOperation) as e:
                raise InvalidConfiguration(f"Bad entry for {tier.value}: {e!r}") from e
        return TierTable(tuple(profiles))


def _validate(profiles: Tuple[TierProfile, ...]) -> None:
    tiers = tuple(p.tier for p in profiles)
    if tiers != DRAW_ORDER:
        raise InvalidConfiguration(
            "Tier table must list Legendary, Epic, Rare, Common exactly once, in that order."
        )

    for p in profiles:
        if p.weight < 0:
            raise InvalidConfiguration(f"{p.tier}: weight must not be negative.")
        if p.score_min >= p.score_max:
            raise InvalidConfiguration(
                f"{p.tier}: score range [{p.score_min}, {p.score_max}) is empty."
            )
        if not p.rating:
            raise InvalidConfiguration(f"{p.tier}: rating letter is required.")

    ratings = [p.rating for p in profiles]
    if len(set(ratings)) != len(ratings):
        raise InvalidConfiguration(f"Rating letters must be distinct: {ratings}")

    total = sum((p.weight for p in profiles), Decimal(0))
    if total != TOTAL_WEIGHT:
        raise InvalidConfiguration(f"Tier weights sum to {total}, expected 100.")


def load_tier_table(path: str | None) -> TierTable:
    """
    Load the odds table from a JSON file, or the built-in table when path is empty.
    Expected shape: {"Legendary": {"weight": 1, "rating": "S", ...}, ...}
    """
    if not path:
        return TierTable.from_mapping(DEFAULT_TIER_TABLE)

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw: Dict[str, Any] = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfiguration(f"Tier table {path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise InvalidConfiguration(f"Tier table {path} must be a JSON object.")
    return TierTable.from_mapping(raw)


DEFAULT_TABLE = TierTable.from_mapping(DEFAULT_TIER_TABLE)
