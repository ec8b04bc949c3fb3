import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "adcoin_test"),
    "connection_timeout": 2,
    "lock_wait_timeout": 2,
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# No caching or retry back-off in tests: every read sees the latest write.
VIEW_CACHE_TTL_SECONDS = 0
READ_RETRIES = 1
READ_RETRY_DELAY_SECONDS = 0

# Lifetime of a "remember me" login session
SESSION_LIFETIME_DAYS = 3
