"""Application factory for accounts app."""

from typing import Any, Dict, Optional
import logging

from flask import Flask
from flask_wtf.csrf import CSRFProtect

from . import app_logging
from .auth import Auth
from .routes import ui
from .services import database
from .services.sessions import SessionStore

csrf = CSRFProtect()


def create_web_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Initialize and configure the accounts application.

    ``config`` overrides values from :mod:`accounts.config`, and is applied
    before any extension reads the configuration.
    """
    app = Flask('accounts')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)

    # Don't set SERVER_NAME, it switches flask blueprints to be
    # subdomain aware.
    app.config['SERVER_NAME'] = None

    if app.config.get('LOG_JSON'):
        app_logging.setup_logger(app.config['LOGLEVEL'])
    else:
        logging.getLogger('accounts').setLevel(app.config['LOGLEVEL'])

    database.init_app(app)
    SessionStore.init_app(app)
    csrf.init_app(app)
    Auth(app)   # Puts the session on request.auth.

    app.register_blueprint(ui.blueprint)

    if app.config['CREATE_DB']:
        with app.app_context():
            database.create_all()

    return app
