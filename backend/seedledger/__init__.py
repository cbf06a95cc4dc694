from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

from .exceptions import LedgerError

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _enable_sqlite_savepoints(engine):
    """Let SQLAlchemy own BEGIN so SAVEPOINT (begin_nested) works on pysqlite."""
    @event.listens_for(engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


def _build_engine(db_url: str, timeout: float):
    if db_url.startswith('sqlite'):
        if db_url.endswith(':memory:'):
            # Ensure a single shared in-memory SQLite database across all sessions
            engine = create_engine(
                db_url,
                echo=False,
                connect_args={'check_same_thread': False, 'timeout': timeout},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(db_url, echo=False, connect_args={'check_same_thread': False, 'timeout': timeout})
        _enable_sqlite_savepoints(engine)
        return engine
    return create_engine(db_url, echo=False, pool_timeout=timeout, pool_pre_ping=True)


def _error_body(status: int, title: str, detail: str, extra: Optional[Dict[str, Any]] = None):
    body = dict(extra or {})
    body.update({'status': status, 'title': title, 'detail': detail})
    return {'error': body}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['DB_TIMEOUT_SECONDS'] = float(os.getenv('DB_TIMEOUT_SECONDS', '10'))
    app.config['DEFAULT_WEEKLY_SEED_LIMIT'] = int(os.getenv('DEFAULT_WEEKLY_SEED_LIMIT', '400'))
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    level = logging.getLevelName(str(app.config['LOG_LEVEL']).upper())
    if isinstance(level, int):
        app.logger.setLevel(level)
        logging.getLogger('seedledger').setLevel(level)

    # Database
    db_engine = _build_engine(app.config['DATABASE_URL'], app.config['DB_TIMEOUT_SECONDS'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.iam import iam_bp
    from .routes.records import records_bp
    from .routes.parties import parties_bp
    from .routes.item_types import item_types_bp
    from .routes.weekly_limits import weekly_limits_bp
    from .routes.pricing import pricing_bp
    from .routes.prices import prices_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(records_bp, url_prefix='/records')
    app.register_blueprint(parties_bp, url_prefix='/parties')
    app.register_blueprint(item_types_bp, url_prefix='/item-types')
    app.register_blueprint(weekly_limits_bp, url_prefix='/weekly-limits')
    app.register_blueprint(pricing_bp, url_prefix='/pricing')
    app.register_blueprint(prices_bp, url_prefix='/prices')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    def _rollback():
        if SessionLocal is not None:
            SessionLocal().rollback()

    # Unified error handlers producing standardized JSON shape
    @app.errorhandler(LedgerError)
    def handle_ledger_error(e: LedgerError):
        _rollback()
        if e.status_code >= 500:
            app.logger.error('Ledger failure: %s', e.message)
            return _error_body(e.status_code, e.title, 'Unexpected error')
        return {'error': e.to_dict()}, e.status_code

    @app.errorhandler(OperationalError)
    def handle_store_unavailable(e: OperationalError):
        _rollback()
        app.logger.warning('Store unavailable: %s', e)
        return _error_body(503, 'Service Unavailable', 'Store temporarily unavailable, retry the request', {'retryable': True})

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_body(e.code, e.name, e.description)
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        _rollback()
        return _error_body(500, 'Internal Server Error', 'Unexpected error')

    return app


def get_db():
    return SessionLocal()
