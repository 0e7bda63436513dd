# backend/shopkeep/__init__.py
from flask import Flask, request

from .config import Settings, SETTINGS_EXTENSION_KEY, current_settings
from .extensions import db, migrate

__all__ = ["create_app", "current_settings", "Settings"]


def create_app(settings: Settings | None = None) -> Flask:
    """
    Build the Flask app from an explicit Settings object.

    When settings is None they are read from the environment once, here.
    """
    if settings is None:
        settings = Settings.from_env()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(settings.flask_config())
    app.extensions[SETTINGS_EXTENSION_KEY] = settings

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401
    from .immutability import register_immutability_listeners
    register_immutability_listeners()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.inventory import inventory_bp
    from .routes.parties import parties_bp, customers_bp
    from .routes.invoices import invoices_bp
    from .routes.ledger import ledger_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(parties_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(ledger_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in settings.cors_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    if settings.auto_create_schema:
        with app.app_context():
            db.create_all()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
