"""
Application factory for the BrewNear marketplace API.

This module provides a function to create and configure the Flask
application. All extensions (SQLAlchemy, Migrate, JWT, CORS) are
initialised here, together with the in-process services the routes
share: the realtime change feed, photo storage, the directions client
and the contact rate limiter. Individual blueprints for different
parts of the API are registered inside the factory to allow for
modular development and unit testing.

Environment variables control the database connection, secret key,
routing API key and storage location. In production, set
``DATABASE_URL``, ``JWT_SECRET_KEY``, ``ORS_API_KEY`` and
``STORAGE_DIR`` in your environment. A default configuration is
provided for development, using SQLite when no database URL is
available.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta

from flask import Flask
from flask_cors import CORS
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager

# instantiate extensions without binding them to an app yet.  They will
# be bound in create_app().  This pattern avoids issues with circular
# imports and makes testing easier.
from .db import db  # use shared db object from db.py
migrate = Migrate()
jwt = JWTManager()


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def create_app(test_config: dict | None = None) -> Flask:
    """Create and configure a Flask application.

    Parameters
    ----------
    test_config: dict | None, optional
        Optional configuration overrides used when running tests.

    Returns
    -------
    Flask
        A configured Flask application instance.
    """
    app = Flask(__name__)

    # Default configuration. Override using environment variables or
    # by passing a ``test_config`` mapping.
    app.config.update(
        SQLALCHEMY_DATABASE_URI=os.environ.get("DATABASE_URL", "sqlite:///brewnear.db"),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        JWT_SECRET_KEY=os.environ.get("JWT_SECRET_KEY", "please-change-this-secret-key"),
        JWT_ACCESS_TOKEN_EXPIRES=timedelta(days=1),
        ORS_API_KEY=os.environ.get("ORS_API_KEY"),
        ORS_BASE_URL=os.environ.get("ORS_BASE_URL", "https://api.openrouteservice.org/v2"),
        ORS_PROFILE=os.environ.get("ORS_PROFILE", "foot-walking"),
        ORS_TIMEOUT=float(os.environ.get("ORS_TIMEOUT", 10)),
        ORS_REQUESTS_PER_MINUTE=_env_int("ORS_REQUESTS_PER_MINUTE", 40),
        STORAGE_DIR=os.environ.get("STORAGE_DIR", os.path.join(app.instance_path, "storage")),
        STORAGE_PUBLIC_URL=os.environ.get("STORAGE_PUBLIC_URL", "/storage"),
        MAX_CONTENT_LENGTH=_env_int("MAX_CONTENT_LENGTH", 5 * 1024 * 1024),
        CORS_ORIGINS=os.environ.get("CORS_ORIGINS", "*"),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
        CONTACT_REQUESTS_PER_MINUTE=_env_int("CONTACT_REQUESTS_PER_MINUTE", 30),
        DEFAULT_SEARCH_RADIUS_KM=float(os.environ.get("DEFAULT_SEARCH_RADIUS_KM", 10)),
        REALTIME_HEARTBEAT_SECONDS=float(os.environ.get("REALTIME_HEARTBEAT_SECONDS", 15)),
    )

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialise extensions with the app
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    origins = app.config["CORS_ORIGINS"]
    if isinstance(origins, str) and origins != "*":
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    CORS(app, resources={r"/api/*": {"origins": origins}})

    from .directions import DirectionsClient
    from .realtime import ChangeFeed, install_session_hooks
    from .storage import BucketStorage
    from .util.rate_limit import RateLimiter

    app.extensions["change_feed"] = ChangeFeed()
    app.extensions["storage"] = BucketStorage(app.config["STORAGE_DIR"], app.config["STORAGE_PUBLIC_URL"])
    app.extensions["directions"] = DirectionsClient(
        app.config["ORS_API_KEY"],
        base_url=app.config["ORS_BASE_URL"],
        profile=app.config["ORS_PROFILE"],
        timeout=app.config["ORS_TIMEOUT"],
        rate_limiter=RateLimiter(app.config["ORS_REQUESTS_PER_MINUTE"], 60.0),
    )
    app.extensions["contact_rate_limiter"] = RateLimiter(app.config["CONTACT_REQUESTS_PER_MINUTE"], 60.0)
    install_session_hooks()

    # Register custom error handlers
    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints. Importing here avoids circular imports.
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.sellers import sellers_bp
    from .routes.drinks import drinks_bp
    from .routes.ratings import ratings_bp
    from .routes.favorites import favorites_bp
    from .routes.contacts import contacts_bp
    from .routes.orders import orders_bp
    from .routes.categories import categories_bp
    from .routes.realtime import realtime_bp
    from .routes.storage import storage_bp

    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(users_bp, url_prefix="/api")
    app.register_blueprint(sellers_bp, url_prefix="/api")
    app.register_blueprint(drinks_bp, url_prefix="/api")
    app.register_blueprint(ratings_bp, url_prefix="/api")
    app.register_blueprint(favorites_bp, url_prefix="/api")
    app.register_blueprint(contacts_bp, url_prefix="/api")
    app.register_blueprint(orders_bp, url_prefix="/api")
    app.register_blueprint(categories_bp, url_prefix="/api")
    app.register_blueprint(realtime_bp, url_prefix="/api")
    app.register_blueprint(storage_bp, url_prefix=app.config["STORAGE_PUBLIC_URL"])

    # Provide a simple health check route
    @app.route("/api/health")
    def health_check() -> dict[str, str]:
        """Return a simple health check response.

        This endpoint can be used by deployment platforms to verify
        that the application has started correctly.
        """
        return {"status": "ok"}

    return app
