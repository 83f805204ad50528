# backend/inventory_ledger/__init__.py
from __future__ import annotations

import logging

from flask import Flask
from sqlalchemy.orm import sessionmaker

from .config import Config
from .extensions import db


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)

    # Import models so metadata is complete before create_all
    from . import models  # noqa: F401

    from .ledger import EXTENSION_KEY, InventoryLedger
    from .services import LedgerStore

    with app.app_context():
        store = LedgerStore(sessionmaker(bind=db.engine, expire_on_commit=False))

    app.extensions[EXTENSION_KEY] = InventoryLedger(
        store,
        max_attempts=app.config["LEDGER_MAX_ATTEMPTS"],
        backoff_base=app.config["LEDGER_RETRY_BACKOFF"],
    )

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
