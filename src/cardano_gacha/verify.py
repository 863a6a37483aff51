from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from .project_constants import NFT_METADATA_LABEL, TOKEN_NAME_PREFIX
from .tiers import DEFAULT_TABLE, TierTable
from .token import decode_description


def verify_token_metadata(metadata_path: str, table: TierTable = DEFAULT_TABLE) -> List[Dict[str, Any]]:
    """
    Re-check minted CIP-25 metadata against the odds table.
    Accepts {"721": {policy: {name: {...}}}} or the inner {policy: {...}} object.
    """
    with open(metadata_path, "r", encoding="utf-8") as f:
        meta = json.load(f)

    if not isinstance(meta, dict):
        raise RuntimeError("Metadata file must hold a JSON object.")
    meta = meta.get(str(NFT_METADATA_LABEL), meta)

    checked: List[Dict[str, Any]] = []
    for policy_id, assets in meta.items():
        if not isinstance(assets, dict):
            raise RuntimeError(f"Policy {policy_id}: expected an object of assets.")
        for name, token in assets.items():
            checked.append(verify_token(policy_id, name, token, table))

    if not checked:
        raise RuntimeError("No tokens found in metadata.")
    return checked


def verify_token(policy_id: str, name: str, token: Dict[str, Any], table: TierTable) -> Dict[str, Any]:
    where = f"{policy_id}.{name}"
    if token.get("name") != name:
        raise RuntimeError(f"{where}: name mismatch: key={name} metadata={token.get('name')}")

    try:
        tier, score, rating = decode_description(token["description"])
    except (KeyError, ValueError) as e:
        raise RuntimeError(f"{where}: unreadable description: {e}") from e

    attrs = token.get("attributes") or {}
    if attrs.get("tier") != tier.value:
        raise RuntimeError(f"{where}: tier mismatch: description={tier} attributes={attrs.get('tier')}")
    if attrs.get("score") != score:
        raise RuntimeError(f"{where}: score mismatch: description={score} attributes={attrs.get('score')}")
    if attrs.get("rating") != rating:
        raise RuntimeError(f"{where}: rating mismatch: description={rating} attributes={attrs.get('rating')}")

    profile = table.profile(tier)
    if rating != profile.rating:
        raise RuntimeError(f"{where}: {tier} must be rated {profile.rating}, got {rating}")
    if not profile.score_min <= score < profile.score_max:
        raise RuntimeError(
            f"{where}: score {score} outside {tier} range [{profile.score_min}, {profile.score_max})"
        )
    if token.get("image") != profile.image:
        raise RuntimeError(f"{where}: image {token.get('image')} is not the {tier} image")
    if not re.fullmatch(rf"{TOKEN_NAME_PREFIX}{re.escape(rating)}\d+", name):
        raise RuntimeError(f"{where}: token name does not match rating {rating}")

    return {"ok": True, "policy_id": policy_id, "name": name, "tier": tier, "score": score, "rating": rating}

