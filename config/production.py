import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "adcoin_db"),
    "connection_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "5")),
    "lock_wait_timeout": int(os.getenv("DB_LOCK_WAIT_TIMEOUT", "5")),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

ADCOIN_LEVEL_STEP = int(os.getenv("ADCOIN_LEVEL_STEP", "500"))
ADCOIN_STAR_STEP = int(os.getenv("ADCOIN_STAR_STEP", "1000"))
ADCOIN_TO_RM_RATE = os.getenv("ADCOIN_TO_RM_RATE", "0.01")
ADCOIN_POOL_LIMIT = int(os.getenv("ADCOIN_POOL_LIMIT", "100000"))
VIEW_CACHE_TTL_SECONDS = float(os.getenv("VIEW_CACHE_TTL_SECONDS", "60"))
READ_RETRIES = int(os.getenv("READ_RETRIES", "3"))
READ_RETRY_DELAY_SECONDS = float(os.getenv("READ_RETRY_DELAY_SECONDS", "0.5"))

# Lifetime of a "remember me" login session
SESSION_LIFETIME_DAYS = int(os.getenv("SESSION_LIFETIME_DAYS", "7"))
