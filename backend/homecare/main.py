import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from sqlalchemy import text

# Get logger for this module
logger = logging.getLogger(__name__)

# Load environment variables conditionally
# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()


def test_database_connection() -> bool:
    """Test database connection"""
    from homecare.db.session import get_engine
    from sqlalchemy.exc import SQLAlchemyError

    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
            return True
    except SQLAlchemyError as e:
        logger.error(
            "Database connection failed",
            extra={"context": {"error": str(e)}},
            exc_info=True,
        )
        return False


# Keep pytest from collecting the helper above when main is imported in tests
test_database_connection.__test__ = False


def create_app(config_overrides=None):
    """
    Build the billing API application.

    Args:
        config_overrides: optional mapping applied to ``app.config`` (tests)
    """
    env = os.getenv("FLASK_ENV", "development")
    is_production = env == "production"

    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("FLASK_SECRET_KEY", "dev-secret-key")
    testing_env = os.getenv("TESTING", "").lower().strip()
    if testing_env in ("true", "1", "yes"):
        app.config["TESTING"] = True
    if config_overrides:
        app.config.update(config_overrides)

    # Configure structured logging (after app creation so we can register hooks)
    from homecare.core.logging_config import setup_logging

    setup_logging(
        app=app,  # Pass app to register request/response hooks
        log_level=logging.INFO if is_production else logging.DEBUG,
        enable_sql_echo=os.getenv("SQL_ECHO", "0") == "1",
        # 1=files, 0=stdout only
        log_to_file=os.getenv("LOG_TO_FILE", "1") == "1",
        use_json_format=is_production,  # JSON logs in production, colored in dev
    )
    logger.info(
        "Logging configured",
        extra={"context": {"environment": env, "json_format": is_production}},
    )

    from homecare.core.config import log_notification_config, log_timezone_config

    log_timezone_config()
    log_notification_config()

    from homecare.core.auth import init_login_manager

    init_login_manager(app)

    from homecare.db.session import create_tables

    create_tables()

    from homecare.controllers.calendar_controller import calendar_bp

    app.register_blueprint(calendar_bp)

    @app.route("/health")
    def health_check():
        """Health check endpoint"""
        db_status = test_database_connection()
        return jsonify(
            {
                "status": "healthy" if db_status else "unhealthy",
                "database": "connected" if db_status else "disconnected",
            }
        ), (200 if db_status else 503)

    logger.info(
        "Application created",
        extra={"context": {"blueprints": list(app.blueprints)}},
    )
    return app


if __name__ == "__main__":
    create_app().run(
        host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000"))
    )
