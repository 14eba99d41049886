"""Attaches the authenticated session (if any) to each request."""

from typing import Optional
import logging

from flask import Flask, request

from . import domain
from .services import exceptions
from .services.sessions import SessionStore

logger = logging.getLogger(__name__)


class Auth(object):
    """
    Resolves the session cookie into a :class:`.domain.Session`.

    The session is put on ``request.auth`` (``None`` for anonymous requests)
    so that routes can build a :class:`.domain.RequestContext`.

    .. code-block:: python

       def create_web_app() -> Flask:
          app = Flask('accounts')
          Auth(app)
          app.register_blueprint(ui.blueprint)
          return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Attach :meth:`.load_session` to the Flask app."""
        self.app = app
        self.app.before_request(self.load_session)

    def load_session(self) -> None:
        """Look for an active session, and attach it to the request."""
        request.auth = self.get_session()  # type: ignore

    def get_session(self) -> Optional[domain.Session]:
        cookie_name = self.app.config['AUTH_SESSION_COOKIE_NAME']
        cookie = request.cookies.get(cookie_name, None)
        if not cookie:
            return None
        try:
            return SessionStore.current_session().load(cookie)
        except exceptions.InvalidToken as e:
            logger.debug('Invalid session cookie: %s', e)
        except exceptions.ExpiredToken as e:
            logger.debug('Session is expired: %s', e)
        except exceptions.UnknownSession as e:
            logger.debug('No session available: %s', e)
        except exceptions.SessionStoreUnavailable as e:
            logger.error('Could not load session: %s', e)
        return None


def request_context() -> domain.RequestContext:
    """Describe the current Flask request for a controller."""
    return domain.RequestContext(
        ip_address=request.remote_addr,
        remote_host=request.host,
        session=getattr(request, 'auth', None)
    )
