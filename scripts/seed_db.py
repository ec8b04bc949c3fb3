from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.adcoin_ledger.adcoin_ledger.database.bootstrap import (
    DEMO_OPERATOR_PASSWORD,
    DEMO_OPERATOR_USERNAME,
    apply_seed_sql,
    ensure_demo_operator,
)


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    ensure_demo_operator(db_config)

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(login: {DEMO_OPERATOR_USERNAME} / {DEMO_OPERATOR_PASSWORD})"
    )


if __name__ == "__main__":
    main()
