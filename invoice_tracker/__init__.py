from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

# config key -> (env default, caster)
ENV_DEFAULTS = {
    'JWT_SECRET_KEY': ('dev-secret', str),
    'DATABASE_URL': ('sqlite:///dev.db', str),
    'FUNCTIONS_BASE_URL': ('http://localhost:54321/functions/v1', str),
    'FUNCTIONS_API_KEY': ('', str),
    'FUNCTIONS_TIMEOUT': ('30', float),
    'RESET_PASSWORD_DEFAULT': ('ChangeMe@123', str),
    'LOG_LEVEL': ('INFO', str),
}


def _load_config(app: Flask, overrides: Optional[Dict[str, Any]]):
    for key, (default, cast) in ENV_DEFAULTS.items():
        app.config[key] = cast(os.getenv(key, default))
    if overrides:
        # tests and callers may override any env-derived value
        app.config.update(overrides)


def _init_db(db_url: str):
    global db_engine, SessionLocal
    if db_url.endswith(':memory:'):
        # every session must see the same in-memory database
        db_engine = create_engine(db_url, future=True, connect_args={'check_same_thread': False}, poolclass=StaticPool)
    else:
        db_engine = create_engine(db_url, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))


def _error_body(status: int, title: str, detail):
    return {'error': {'status': status, 'title': title, 'detail': detail}}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    app = Flask(__name__)
    _load_config(app, config)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    app.logger.setLevel(app.config['LOG_LEVEL'])

    _init_db(app.config['DATABASE_URL'])
    jwt.init_app(app)

    from .routes.iam import iam_bp
    from .routes.invoices import inv_bp
    from .routes.reports import rpt_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(inv_bp, url_prefix='/invoices')
    app.register_blueprint(rpt_bp, url_prefix='/reports')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    from .services.functions import FunctionInvocationError

    # Every error leaves the API as {'error': {status, title, detail}}
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_body(e.code, e.name, e.description)
        if isinstance(e, FunctionInvocationError):
            app.logger.warning('Remote function %s failed: %s', e.function_name, e.message)
            return _error_body(502, 'Bad Gateway', e.message)
        app.logger.exception('Unhandled exception')
        SessionLocal.rollback()
        return _error_body(500, 'Internal Server Error', 'Unexpected error')

    return app


def get_db():
    return SessionLocal()
