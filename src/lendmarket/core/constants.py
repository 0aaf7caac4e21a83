"""
LendMarket Constants

Protocol-level numbers used by the lending engine and its collaborators.

NOTE: Values marked [PROTOCOL] are part of the lending rules that existing
listings were created under. Changing them alters which stored listings
remain valid, so they are deliberately not read from the environment.
"""

from typing import Final

# =============================================================================
# TIME CONSTANTS (in seconds)
# =============================================================================

SECONDS_PER_DAY: Final[int] = 86400  # 60 * 60 * 24
SECONDS_PER_30_DAYS: Final[int] = 2592000  # 60 * 60 * 24 * 30

# =============================================================================
# LENDING RULES [PROTOCOL - DO NOT CHANGE]
# =============================================================================

# Upper bound for a listing's loan period; zero periods are rejected
MAX_LENDING_PERIOD: Final[int] = SECONDS_PER_30_DAYS

# Keeps a claim bounded in the number of token transfers it performs
MAX_REVENUE_TOKENS: Final[int] = 10

# Revenue split percentages must add up to this
REVENUE_SPLIT_TOTAL: Final[int] = 100

# Allow list id meaning "anyone may borrow"
OPEN_ALLOW_LIST: Final[int] = 0

# Listing ids start at 1; 0 marks an unlinked list node
UNLINKED_LISTING_ID: Final[int] = 0
FIRST_LISTING_ID: Final[int] = 1

# =============================================================================
# ADDRESSES AND AMOUNTS
# =============================================================================

ZERO_ADDRESS: Final[str] = "0x" + "0" * 40
UINT256_MAX: Final[int] = 2**256 - 1
