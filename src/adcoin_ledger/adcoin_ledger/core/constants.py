"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_RECENT_LIMIT = 50
DEFAULT_RANKING_LIMIT = 10
DEFAULT_FEED_LIMIT = 50
MAX_PAGE_LIMIT = 500

DEFAULT_LEVEL_STEP = 500
DEFAULT_STAR_STEP = 1000
DEFAULT_ADCOIN_TO_RM_RATE = "0.01"
DEFAULT_POOL_LIMIT = 100000
DEFAULT_VIEW_CACHE_TTL_SECONDS = 60

DEFAULT_READ_RETRIES = 3
DEFAULT_READ_RETRY_DELAY_SECONDS = 0.5
DEFAULT_LOCK_WAIT_TIMEOUT_SECONDS = 5

# Largest value the INT balance and amount columns hold.
MAX_AMOUNT = 2_147_483_647

DEFAULT_SESSION_LIFETIME_DAYS = 7
