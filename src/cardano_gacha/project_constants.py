"""
Project-wide immutable parameters for the gacha machine.

These values define the public rules of the draw.
Changing the odds changes what every pull is worth and MUST be publicly announced.
"""

# Cardano uses 6 decimals (1 ADA = 1_000_000 lovelace)
LOVELACE_PER_ADA = 1_000_000

# Default price of one pull, in ADA
DEFAULT_PULL_COST_ADA = 5

# Treasury on preprod (receives every pull payment)
DEFAULT_TREASURY_ADDRESS = (
    "addr_test1qq4uxwv55dqwufts3md0g9r6rn4vys3c3yjrzz4jfk8wcmh3kxqgjchqfdjz"
    "ccnzrx8cuyce96pc7hhn8pthpk9k46xqput4ca"
)

# CIP-25 NFT metadata label
NFT_METADATA_LABEL = 721

# Minted token names look like GACHA<rating><n>, n in [0, TOKEN_SUFFIX_RANGE)
TOKEN_NAME_PREFIX = "GACHA"
TOKEN_SUFFIX_RANGE = 1000

# Minting policy is locked this long after creation (ms)
POLICY_LOCK_MS = 1_000_000

# Mint transaction validity window (ms)
MINT_VALIDITY_MS = 200_000

# Confirmation waits
DEFAULT_CONFIRM_TIMEOUT_S = 120.0
CONFIRM_POLL_INTERVAL_S = 2.0

EXPLORER_TX_URL = "https://preprod.cardanoscan.io/transaction/"

# Odds table, in draw priority order (rarest first). Weights sum to 100.
DEFAULT_TIER_TABLE = {
    "Legendary": {
        "weight": 1,
        "rating": "S",
        "score_min": 95,
        "score_max": 100,
        "image": "ipfs://QmLegendary...",
        "visual": "🌟",
    },
    "Epic": {
        "weight": 9,
        "rating": "A",
        "score_min": 80,
        "score_max": 95,
        "image": "ipfs://QmEpic...",
        "visual": "💫",
    },
    "Rare": {
        "weight": 20,
        "rating": "B",
        "score_min": 60,
        "score_max": 80,
        "image": "ipfs://QmRare...",
        "visual": "✨",
    },
    "Common": {
        "weight": 70,
        "rating": "C",
        "score_min": 40,
        "score_max": 60,
        "image": "ipfs://QmCommon...",
        "visual": "⭐",
    },
}
