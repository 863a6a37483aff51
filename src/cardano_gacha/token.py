from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .draw import DrawResult
from .project_constants import NFT_METADATA_LABEL, TOKEN_NAME_PREFIX, TOKEN_SUFFIX_RANGE
from .tiers import DEFAULT_TABLE, RewardTier, TierTable

_DESCRIPTION_RE = re.compile(r"^(?P<tier>[A-Za-z]+)\|(?P<score>\d+)pts\|(?P<rating>[A-Za-z]+)$")


@dataclass(frozen=True)
class TokenDescriptor:
    name: str
    description: str
    image: str
    tier: RewardTier
    score: int
    rating: str

    @property
    def attributes(self) -> Dict[str, Any]:
        return {"tier": self.tier.value, "score": self.score, "rating": self.rating}

    @property
    def asset_name_hex(self) -> str:
        return self.name.encode("utf-8").hex()

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "attributes": self.attributes,
        }


def encode_description(result: DrawResult) -> str:
    return f"{result.tier.value}|{result.score}pts|{result.rating}"


def decode_description(description: str) -> Tuple[RewardTier, int, str]:
    m = _DESCRIPTION_RE.match(description)
    if not m:
        raise ValueError(f"Not a gacha token description: {description!r}")
    return RewardTier(m.group("tier")), int(m.group("score")), m.group("rating")


def token_name(rating: str, suffix: int) -> str:
    return f"{TOKEN_NAME_PREFIX}{rating}{suffix}"


def build_token_descriptor(
    result: DrawResult,
    rng: random.Random,
    table: TierTable = DEFAULT_TABLE,
) -> TokenDescriptor:
    # Suffix only makes names unlikely to collide; nothing enforces uniqueness.
    suffix = rng.randrange(TOKEN_SUFFIX_RANGE)
    return TokenDescriptor(
        name=token_name(result.rating, suffix),
        description=encode_description(result),
        image=table.profile(result.tier).image,
        tier=result.tier,
        score=result.score,
        rating=result.rating,
    )


def build_mint_metadata(policy_id: str, descriptor: TokenDescriptor) -> Dict[int, Any]:
    """CIP-25 metadata: {721: {policy_id: {asset_name: {...}}}}."""
    return {NFT_METADATA_LABEL: {policy_id: {descriptor.name: descriptor.to_metadata()}}}
