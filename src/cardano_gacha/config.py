from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

from .draw import to_lovelace
from .errors import InvalidConfiguration
from .project_constants import (
    DEFAULT_CONFIRM_TIMEOUT_S,
    DEFAULT_PULL_COST_ADA,
    DEFAULT_TREASURY_ADDRESS,
    LOVELACE_PER_ADA,
)
from .tiers import TierTable, load_tier_table


@dataclass(frozen=True)
class Settings:
    rpc_url: str | None
    treasury_address: str
    pull_cost_ada: Decimal
    confirm_timeout_s: float
    tier_table: TierTable

    @property
    def pull_cost_lovelace(self) -> int:
        return to_lovelace(self.pull_cost_ada)

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise RuntimeError(
                "Missing GACHA_RPC_URL (wallet bridge). Put it in .env or pass --rpc-url."
            )
        return self.rpc_url

    @staticmethod
    def from_env(
        rpc_url_override: str | None = None,
        pull_cost_override: str | None = None,
    ) -> "Settings":
        load_dotenv()

        # --rpc-url wins over the environment.
        rpc_url = rpc_url_override or os.getenv("GACHA_RPC_URL", "").strip() or None

        treasury = os.getenv("GACHA_TREASURY_ADDRESS", "").strip() or DEFAULT_TREASURY_ADDRESS
        if not treasury.startswith("addr"):
            raise InvalidConfiguration(f"Treasury address is not a bech32 address: {treasury!r}")

        raw_cost = pull_cost_override or os.getenv("GACHA_PULL_COST", "").strip()
        pull_cost = _positive_decimal("GACHA_PULL_COST", raw_cost or str(DEFAULT_PULL_COST_ADA))
        lovelace = pull_cost * LOVELACE_PER_ADA
        if lovelace % 1 != 0 or lovelace <= 0:
            raise InvalidConfiguration(
                f"GACHA_PULL_COST must be a whole number of lovelace, got {raw_cost!r}"
            )

        raw_timeout = os.getenv("GACHA_CONFIRM_TIMEOUT", "").strip()
        timeout = float(_positive_decimal("GACHA_CONFIRM_TIMEOUT", raw_timeout)) if raw_timeout else DEFAULT_CONFIRM_TIMEOUT_S

        table = load_tier_table(os.getenv("GACHA_TIER_TABLE_FILE", "").strip() or None)

        return Settings(
            rpc_url=rpc_url,
            treasury_address=treasury,
            pull_cost_ada=pull_cost,
            confirm_timeout_s=timeout,
            tier_table=table,
        )


def _positive_decimal(name: str, raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise InvalidConfiguration(f"{name} is not a number: {raw!r}") from e
    if not value.is_finite() or value <= 0:
        raise InvalidConfiguration(f"{name} must be positive, got {raw!r}")
    return value
