"""
Fixed parameters of the yield lottery.

These values are part of the public rules: escrow addresses are derived from
the seed prefixes below, so changing them changes every derived address.
"""

# Amounts are integer base units; 6 decimals when shown to humans
TOKEN_DECIMALS = 6

# Seed prefixes for derived escrow accounts
REGISTRY_SEED = "yield-lottery:registry"
LOTTERY_SEED_PREFIX = "yield-lottery:lottery:"
VENUE_SEED = "yield-lottery:venue-vault"
USER_SEED_PREFIX = "yield-lottery:user:"

# Yield accrual is expressed in basis points
BPS_DENOMINATOR = 10_000

# State file format version
STATE_VERSION = 1

# Weights and pot totals are unsigned 64-bit quantities
MAX_AMOUNT = 2**64 - 1
