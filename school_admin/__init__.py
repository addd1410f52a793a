import logging
import os
import sqlite3
from datetime import timedelta

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

from school_admin.config import CONFIGS, DevelopmentConfig

logger = logging.getLogger(__name__)

db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _sqlite_pragmas(dbapi_connection, connection_record):
    # Foreign keys are off by default in SQLite; WAL keeps readers unblocked by writers
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def create_app(config_name=None):
    """Build the application, bind the database and bootstrap the schema.

    ``config_name`` is one of ``development``, ``testing`` or ``production``;
    when omitted it is taken from ``FLASK_ENV``.
    """
    env = (config_name or os.environ.get("FLASK_ENV", "development")).lower()
    config_cls = CONFIGS.get(env, DevelopmentConfig)

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_cls)

    if config_cls is DevelopmentConfig:
        os.makedirs(app.instance_path, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = DevelopmentConfig.database_uri(app.instance_path)

    app.permanent_session_lifetime = timedelta(minutes=int(app.config["SESSION_TIMEOUT_MINUTES"]))

    logging.basicConfig(level=logging.INFO)

    db.init_app(app)

    from school_admin.errors import register_error_handlers
    from school_admin.auth import auth_bp
    from school_admin.routes import api_bp, health_bp

    register_error_handlers(app)
    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(health_bp)

    from school_admin.seed import init_db

    with app.app_context():
        init_db(seed_demo=app.config.get("SEED_DEMO_DATA", True))

    return app
