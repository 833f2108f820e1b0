# backend/saleflow/__init__.py
from __future__ import annotations

from typing import Any, Optional

from flask import Flask

from .config import Config
from .extensions import db, migrate
from .events import EventDispatcher


def create_app(config_overrides: Optional[dict[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # One dispatcher per app; sale handlers subscribe to it here
    dispatcher = EventDispatcher(app)
    from .handlers import register_handlers
    register_handlers(dispatcher)

    # Register blueprints
    from .routes.sales import sales_bp
    from .routes.inventory import inventory_bp

    app.register_blueprint(sales_bp)
    app.register_blueprint(inventory_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
