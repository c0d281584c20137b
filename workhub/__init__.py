"""
WorkHub Workplace Management Core
Flask Application Factory.

Usage:
    from workhub import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_migrate import Migrate

from workhub.config import config
from workhub.middleware.logging_config import configure_logging
from workhub.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    # ProductionConfig validates its environment on instantiation
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        os.makedirs(os.path.dirname(db_uri[len("sqlite:///"):]) or ".", exist_ok=True)
    with app.app_context():
        db.create_all()
        app.logger.info("db.create_all() completed successfully")

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("init-labels")
    def init_labels_cmd():
        """Reconcile the issue label set against the default labels."""
        from workhub.services.workspace import get_workspace

        labels = get_workspace().issues.initialize_labels()
        logger.info("Label set now holds %d labels.", len(labels))

    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Seed demo members, a project, notices and wiki pages."""
        from workhub.seed import seed_demo
        from workhub.services.workspace import get_workspace

        counts = seed_demo(get_workspace())
        logger.info("Seeded demo data: %s", counts)

    return app
