# pollboard/__init__.py

import logging
import os

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_jwt_extended import JWTManager
from sqlalchemy import event
from werkzeug.middleware.proxy_fix import ProxyFix

from pollboard.config import Config

# Extensions are created unbound and attached to each app in create_app
db = SQLAlchemy()  # Database ORM
migrate = Migrate()  # DB migrations (`flask db ...`)
limiter = Limiter(key_func=get_remote_address, default_limits=["10000/hour"])
jwt = JWTManager()  # Signs and decodes session tokens


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _ensure_sqlite_dir(uri):
    prefix = 'sqlite:///'
    if uri.startswith(prefix) and uri != prefix + ':memory:':
        directory = os.path.dirname(uri[len(prefix):])
        if directory:
            os.makedirs(directory, exist_ok=True)


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(level=app.config['LOG_LEVEL'])

    # Fix proxy headers for HTTPS
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    _ensure_sqlite_dir(app.config['SQLALCHEMY_DATABASE_URI'])

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    jwt.init_app(app)

    # Ensure model modules are imported so SQLAlchemy metadata is populated
    # for create_all and Flask-Migrate autogeneration.
    from pollboard.database import models  # noqa: F401
    from pollboard.database.init_db import init_db
    from pollboard.audit.audit_logger import AuditLogger
    from pollboard.services import CoreServices
    from pollboard.routes import bp, register_error_handlers
    from pollboard.cli import register_commands

    with app.app_context():
        if db.engine.dialect.name == 'sqlite':
            event.listen(db.engine, 'connect', _enable_sqlite_foreign_keys)

        audit_logger = AuditLogger(
            log_dir=app.config['AUDIT_LOG_DIR'], key_path=app.config['AUDIT_SIGNING_KEY_PATH']
        )
        app.extensions['pollboard'] = CoreServices(db.session, app.config, audit_logger)

        if app.config['AUTO_INIT_DB']:
            init_db(db.session, app.config, app.extensions['pollboard'].credentials)

    app.register_blueprint(bp)
    register_error_handlers(app)
    register_commands(app)
    return app
