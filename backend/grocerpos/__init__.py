# backend/grocerpos/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        # Applied before extensions bind so the engine sees the final URI
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.rate_limit import RateLimiter, RateLimitRule
    app.extensions["rate_limiter"] = RateLimiter({
        "auth": RateLimitRule(app.config["RATE_LIMIT_AUTH_MAX"], app.config["RATE_LIMIT_AUTH_WINDOW_SECONDS"]),
        "api": RateLimitRule(app.config["RATE_LIMIT_API_MAX"], app.config["RATE_LIMIT_API_WINDOW_SECONDS"]),
    })

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.sales import sales_bp
    from .routes.purchases import purchases_bp
    from .routes.inventory import inventory_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(inventory_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
