"""
Flask application factory for the Toetsgenerator web frontend.
"""

import os

from flask import Flask, g
from flask_wtf.csrf import CSRFProtect

from toetsgen.database import get_engine, init_db
from toetsgen.llm_provider import get_provider_info
from toetsgen.web.blueprints import register_blueprints
from toetsgen.web.config_utils import apply_env_overrides, get_secret_key, load_config

csrf = CSRFProtect()


def create_app(config=None):
    """
    Create and configure the Flask application.

    Args:
        config: Application config dict (paths, llm settings, etc.)
                If None, loads from config.yaml.

    Returns:
        Configured Flask app instance
    """
    template_dir = os.path.join(os.path.dirname(__file__), "..", "..", "templates")
    static_dir = os.path.join(os.path.dirname(__file__), "..", "..", "static")

    app = Flask(
        __name__,
        template_folder=os.path.abspath(template_dir),
        static_folder=os.path.abspath(static_dir),
    )

    if config is None:
        config = load_config()
    else:
        config = apply_env_overrides(config)

    app.config["APP_CONFIG"] = config

    app.config["SECRET_KEY"] = get_secret_key()

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    if os.environ.get("FLASK_HTTPS"):
        app.config["SESSION_COOKIE_SECURE"] = True

    # WTF_CSRF_ENABLED can be set to False by test fixtures.
    csrf.init_app(app)

    # DATABASE_URL (env var) takes precedence over the SQLite path in config.
    database_url = os.environ.get("DATABASE_URL")
    db_path = config.get("paths", {}).get("database_file", "toetsgenerator.db")
    engine = get_engine(url=database_url) if database_url else get_engine(db_path)
    init_db(engine)
    app.config["DB_ENGINE"] = engine

    @app.teardown_appcontext
    def close_db_session(exception):
        """Close the database session at the end of each request."""
        session = g.pop("db_session", None)
        if session is not None:
            session.close()

    @app.context_processor
    def inject_globals():
        """Make current_user and provider info available in all templates."""
        return {
            "current_user": getattr(g, "current_user", None),
            "provider_info": get_provider_info(app.config["APP_CONFIG"]),
        }

    register_blueprints(app)

    return app
