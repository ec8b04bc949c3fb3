from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.http import register_error_handlers
from .core.constants import DEFAULT_SESSION_LIFETIME_DAYS
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_operator, list_tables

from .container import Container, LedgerSettings, build_container
from .auth.controller import register as register_auth
from .ledger.controller import register as register_ledger

log = logging.getLogger("adcoin_ledger.main")

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.permanent_session_lifetime = timedelta(
        days=int(getattr(settings, "SESSION_LIFETIME_DAYS", DEFAULT_SESSION_LIFETIME_DAYS))
    )
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        log.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            log.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
            ensure_demo_operator(db_config)
            log.info("demo seed ready")

        container = build_container(db_config=db_config, ledger_settings=LedgerSettings.from_settings(settings))

    register_error_handlers(app)
    register_auth(app, container)
    register_ledger(app, container)

    return app
