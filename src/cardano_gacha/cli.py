from __future__ import annotations

import argparse
import json
import logging
import random
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict

from .config import Settings
from .draw import draw_reward, random_draw_value
from .errors import GachaError, PaidButUnrewarded
from .pull import PullOrchestrator, PullReceipt
from .rpc import RpcClient
from .tiers import DRAW_ORDER
from .token import build_token_descriptor
from .verify import verify_token_metadata
from .wallet import WalletSession, short_address


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def cmd_odds(args: argparse.Namespace) -> int:
    settings = Settings.from_env(pull_cost_override=args.cost)
    table = settings.tier_table

    print("========================================")
    print("🎰 GACHA ODDS")
    print("========================================")
    print(f"Pull cost     : {settings.pull_cost_ada} ADA")
    print("----------------------------------------")
    for band in table.bands():
        p = band.profile
        print(
            f"{p.tier.value:<10} {p.rating}  {p.weight:>5}%  "
            f"draw {band.lower}-{band.upper}  score {p.score_min}-{p.score_max - 1}"
        )
    return 0


def cmd_draw(args: argparse.Namespace) -> int:
    """Offline draw for a given value; no ledger involved."""
    table = Settings.from_env().tier_table
    rng = random.Random(args.seed)

    value = args.value if args.value is not None else random_draw_value(rng)
    result = draw_reward(value, rng, table)
    descriptor = build_token_descriptor(result, rng, table)

    print(f"Draw value    : {value}")
    print(f"Tier          : {result.visual_token} {result.tier}")
    print(f"Rating        : {result.rating}")
    print(f"Score         : {result.score}")
    print(f"Token name    : {descriptor.name}")
    print(f"Description   : {descriptor.description}")
    print(f"Image         : {descriptor.image}")
    if result.fallback:
        print("(no tier matched; defaulted to Common)")
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    table = Settings.from_env().tier_table
    rng = random.Random(args.seed)
    log = logging.getLogger("simulate")

    if args.count <= 0:
        raise SystemExit("--count must be positive.")

    counts: Counter = Counter()
    fallbacks = 0
    for _ in range(args.count):
        result = draw_reward(random_draw_value(rng), rng, table)
        counts[result.tier] += 1
        fallbacks += result.fallback

    log.info("Simulated %d pulls (seed=%s)", args.count, args.seed)
    print(f"{'Tier':<10} {'Pulls':>8} {'Observed':>9} {'Expected':>9}")
    for tier in DRAW_ORDER:
        expected = table.profile(tier).weight
        observed = 100 * counts[tier] / args.count
        print(f"{tier.value:<10} {counts[tier]:>8} {observed:>8.2f}% {expected:>8}%")
    if fallbacks:
        log.warning("%d draws fell through to the Common fallback", fallbacks)
    return 0


def cmd_pull(args: argparse.Namespace) -> int:
    settings = Settings.from_env(rpc_url_override=args.rpc_url, pull_cost_override=args.cost)
    log = logging.getLogger("pull")

    rpc = RpcClient(settings.require_rpc_url(), timeout_s=args.timeout)
    try:
        wallet = WalletSession(rpc)
        wallet.connect(args.wallet)
        orchestrator = PullOrchestrator.from_settings(rpc, settings)

        log.info("Pull cost        : %s ADA", settings.pull_cost_ada)
        log.info("Treasury         : %s", short_address(settings.treasury_address))
        try:
            receipt = orchestrator.pull(wallet)
        except PaidButUnrewarded as e:
            log.error("%s", e)
            log.error("Keep this payment hash for reconciliation: %s", e.payment_tx)
            return 2
        except GachaError as e:
            log.error("%s", e)
            return 1
    finally:
        rpc.close()

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(receipt_to_json(receipt), f, indent=2)

    print("========================================")
    print("🎰 GACHA PULL")
    print("========================================")
    print(f"Wallet        : {short_address(receipt.identity)}")
    print(f"Payment tx    : {receipt.payment_tx}")
    print("----------------------------------------")
    print(f"{receipt.draw.visual_token} {receipt.draw.tier} NFT!")
    print(f"Rating        : {receipt.draw.rating}")
    print(f"Score         : {receipt.draw.score}")
    print(f"Token         : {receipt.descriptor.name}")
    print(f"Policy        : {receipt.policy_id}")
    print(f"Mint tx       : {receipt.explorer_url}")
    if args.out:
        print("----------------------------------------")
        print(f"🧾 Wrote receipt: {args.out}")
    return 0


def receipt_to_json(receipt: PullReceipt) -> Dict[str, Any]:
    return {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "wallet": receipt.identity,
        "payment_tx": receipt.payment_tx,
        "mint_tx": receipt.mint_tx,
        "explorer_url": receipt.explorer_url,
        "policy_id": receipt.policy_id,
        "token": {
            "name": receipt.descriptor.name,
            "asset_name_hex": receipt.descriptor.asset_name_hex,
            **receipt.descriptor.to_metadata(),
        },
    }


def cmd_verify(args: argparse.Namespace) -> int:
    table = Settings.from_env().tier_table
    results = verify_token_metadata(args.metadata, table)
    print("✅ METADATA VERIFIED")
    for r in results:
        print(f"{r['name']:<14}: {r['tier']} {r['rating']} ({r['score']} pts)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cardano-gacha",
        description="Pay-to-pull NFT gacha machine on Cardano.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override wallet bridge URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    o = sub.add_parser("odds", help="Show the tier table and pull cost.")
    o.add_argument("--cost", default=None, help="Override pull cost in ADA.")
    o.set_defaults(func=cmd_odds)

    d = sub.add_parser("draw", help="Draw offline for a given value (no payment, no mint).")
    d.add_argument("--value", type=float, default=None, help="Draw value in [0, 100).")
    d.add_argument("--seed", type=int, default=None, help="Seed for score and name suffix.")
    d.set_defaults(func=cmd_draw)

    s = sub.add_parser("simulate", help="Monte-Carlo the odds table offline.")
    s.add_argument("--count", type=int, default=10_000, help="Number of pulls.")
    s.add_argument("--seed", type=int, default=None, help="RNG seed.")
    s.set_defaults(func=cmd_simulate)

    pl = sub.add_parser("pull", help="Pay the treasury, draw and mint the reward NFT.")
    pl.add_argument("--wallet", required=True, help="Wallet name known to the bridge.")
    pl.add_argument("--cost", default=None, help="Override pull cost in ADA.")
    pl.add_argument("--out", default=None, help="Write a receipt JSON here.")
    pl.set_defaults(func=cmd_pull)

    v = sub.add_parser("verify", help="Verify minted CIP-25 metadata JSON.")
    v.add_argument("--metadata", required=True, help="Path to metadata JSON.")
    v.set_defaults(func=cmd_verify)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))
