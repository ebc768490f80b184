from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from datetime import timedelta
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _error_payload(status: int, title: str, detail: Any, details=None):
    payload = {'error': detail, 'status': status, 'title': title}
    if details:
        payload['details'] = details
    return payload


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES_HOURS', '72')))
    app.config['MAX_LOGO_BYTES'] = int(os.getenv('MAX_LOGO_BYTES', str(2 * 1024 * 1024)))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    @jwt.unauthorized_loader
    def _missing_token(reason):
        return _error_payload(401, 'Unauthorized', 'Authentication required.'), 401

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return _error_payload(401, 'Unauthorized', 'Invalid session token.'), 401

    @jwt.expired_token_loader
    def _expired_token(header, payload):
        return _error_payload(401, 'Unauthorized', 'Session expired. Please sign in.'), 401

    from .routes.auth import auth_bp
    from .routes.vendors import vendors_bp
    from .routes.transactions import tx_bp
    from .routes.invoices import inv_bp
    from .routes.purchase_orders import po_bp
    from .routes.company import company_bp
    from .routes.admin import admin_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(vendors_bp)
    app.register_blueprint(tx_bp)
    app.register_blueprint(inv_bp)
    app.register_blueprint(po_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def remove_session(exc=None):
        SessionLocal.remove()

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            details = getattr(e, 'details', None)
            return _error_payload(e.code, e.name, e.description, details), e.code
        SessionLocal.rollback()
        if isinstance(e, IntegrityError):
            app.logger.warning('Integrity error: %s', e.orig)
            return _error_payload(409, 'Conflict', 'A record with this unique field already exists.'), 409
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    return app


def get_db():
    return SessionLocal()
