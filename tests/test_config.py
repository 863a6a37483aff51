import copy
import json
from decimal import Decimal

import pytest

from cardano_gacha import config as config_module
from cardano_gacha.config import Settings
from cardano_gacha.errors import InvalidConfiguration
from cardano_gacha.project_constants import DEFAULT_TIER_TABLE, DEFAULT_TREASURY_ADDRESS
from cardano_gacha.tiers import DEFAULT_TABLE, RewardTier

ENV_VARS = [
    "GACHA_RPC_URL",
    "GACHA_TREASURY_ADDRESS",
    "GACHA_PULL_COST",
    "GACHA_CONFIRM_TIMEOUT",
    "GACHA_TIER_TABLE_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # Keep a developer's .env out of the tests.
    monkeypatch.setattr(config_module, "load_dotenv", lambda: False)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()
    assert s.rpc_url is None
    assert s.treasury_address == DEFAULT_TREASURY_ADDRESS
    assert s.pull_cost_ada == Decimal(5)
    assert s.pull_cost_lovelace == 5_000_000
    assert s.confirm_timeout_s == 120.0
    assert s.tier_table == DEFAULT_TABLE


def test_env_values(monkeypatch) -> None:
    monkeypatch.setenv("GACHA_RPC_URL", "http://bridge:8080")
    monkeypatch.setenv("GACHA_TREASURY_ADDRESS", "addr_test1qqtreasury")
    monkeypatch.setenv("GACHA_PULL_COST", "2.5")
    monkeypatch.setenv("GACHA_CONFIRM_TIMEOUT", "30")

    s = Settings.from_env()
    assert s.require_rpc_url() == "http://bridge:8080"
    assert s.treasury_address == "addr_test1qqtreasury"
    assert s.pull_cost_lovelace == 2_500_000
    assert s.confirm_timeout_s == 30.0


def test_overrides_win(monkeypatch) -> None:
    monkeypatch.setenv("GACHA_RPC_URL", "http://env")
    monkeypatch.setenv("GACHA_PULL_COST", "5")
    s = Settings.from_env(rpc_url_override="http://cli", pull_cost_override="1")
    assert s.rpc_url == "http://cli"
    assert s.pull_cost_lovelace == 1_000_000


def test_missing_rpc_url_only_fails_when_needed() -> None:
    s = Settings.from_env()
    with pytest.raises(RuntimeError, match="GACHA_RPC_URL"):
        s.require_rpc_url()


@pytest.mark.parametrize("cost", ["0", "-5", "five", "NaN", "0.0000004", "1.0000001"])
def test_bad_pull_cost(monkeypatch, cost) -> None:
    monkeypatch.setenv("GACHA_PULL_COST", cost)
    with pytest.raises(InvalidConfiguration, match="GACHA_PULL_COST"):
        Settings.from_env()


def test_bad_treasury(monkeypatch) -> None:
    monkeypatch.setenv("GACHA_TREASURY_ADDRESS", "0xdeadbeef")
    with pytest.raises(InvalidConfiguration, match="bech32"):
        Settings.from_env()


def test_tier_table_file(monkeypatch, tmp_path) -> None:
    raw = copy.deepcopy(DEFAULT_TIER_TABLE)
    raw["Common"]["image"] = "ipfs://QmPlain"
    path = tmp_path / "odds.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    monkeypatch.setenv("GACHA_TIER_TABLE_FILE", str(path))

    s = Settings.from_env()
    assert s.tier_table.profile(RewardTier.COMMON).image == "ipfs://QmPlain"


def test_invalid_tier_table_aborts_startup(monkeypatch, tmp_path) -> None:
    raw = copy.deepcopy(DEFAULT_TIER_TABLE)
    raw["Legendary"]["weight"] = 2
    path = tmp_path / "odds.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    monkeypatch.setenv("GACHA_TIER_TABLE_FILE", str(path))

    with pytest.raises(InvalidConfiguration, match="sum to 101"):
        Settings.from_env()
