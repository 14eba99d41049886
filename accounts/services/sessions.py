"""
Integration with the distributed session store.

Session data are kept in a key-value store (Redis) as a signed JSON web
token, keyed by session ID. When a session is created, a cookie value is
generated (also a JWT) that contains enough information to retrieve the
session and check that the cookie was issued for it.
"""

import logging
import uuid
import random
from datetime import datetime, timedelta
from typing import Any, Optional

import dateutil.parser
import fakeredis
import jwt
import redis
from redis.cluster import RedisCluster
from flask import Flask, current_app
from pytz import UTC

from .. import domain
from .exceptions import SessionCreationFailed, SessionDeletionFailed, \
    UnknownSession, InvalidToken, ExpiredToken, SessionStoreUnavailable

logger = logging.getLogger(__name__)


def _generate_nonce(length: int = 8) -> str:
    return ''.join([str(random.randint(0, 9)) for i in range(length)])


class SessionStore(object):
    """
    Manages a connection to Redis.

    In fact, the StrictRedis instance is thread safe and connections are
    attached at the time a command is executed. This class simply provides a
    container for configuration.
    """

    def __init__(self, connection: Any, secret: str,
                 duration: int = 7200) -> None:
        self.r = connection
        self._secret = secret
        self._duration = duration

    @classmethod
    def from_config(cls, config: dict) -> 'SessionStore':
        """Build a store from application configuration."""
        secret = config['JWT_SECRET']
        duration = int(config.get('SESSION_DURATION', '7200'))
        if config.get('REDIS_FAKE'):
            logger.debug('Using fake Redis')
            server = config.setdefault('REDIS_FAKE_SERVER',
                                       fakeredis.FakeServer())
            return cls(fakeredis.FakeStrictRedis(server=server), secret,
                       duration)

        host = config.get('REDIS_HOST', 'localhost')
        port = int(config.get('REDIS_PORT', '6379'))
        db = int(config.get('REDIS_DATABASE', '0'))
        token = config.get('REDIS_TOKEN', None)
        logger.debug('New Redis connection at %s, port %s', host, port)
        if str(config.get('REDIS_CLUSTER', '0')) == '1':
            connection = RedisCluster(host=host, port=port, password=token,
                                      require_full_coverage=False)
        else:
            connection = redis.StrictRedis(host=host, port=port, db=db,
                                           password=token)
        return cls(connection, secret, duration)

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """Set default configuration parameters for an application."""
        app.config.setdefault('REDIS_HOST', 'localhost')
        app.config.setdefault('REDIS_PORT', '6379')
        app.config.setdefault('REDIS_DATABASE', '0')
        app.config.setdefault('REDIS_TOKEN', None)
        app.config.setdefault('REDIS_CLUSTER', '0')
        app.config.setdefault('REDIS_FAKE', False)
        app.config.setdefault('JWT_SECRET', 'foosecret')
        app.config.setdefault('SESSION_DURATION', '7200')

    @classmethod
    def current_session(cls) -> 'SessionStore':
        """Get/create the :class:`.SessionStore` for this application."""
        app = current_app._get_current_object()  # type: ignore
        if 'session_store' not in app.extensions:
            app.extensions['session_store'] = cls.from_config(app.config)
        store: SessionStore = app.extensions['session_store']
        return store

    def create(self, authorizations: domain.Authorizations,
               ip_address: Optional[str], remote_host: Optional[str],
               user: Optional[domain.User] = None,
               persistent: bool = False,
               session_id: Optional[str] = None) -> domain.Session:
        """
        Create a new session.

        Parameters
        ----------
        authorizations : :class:`domain.Authorizations`
        ip_address : str
        remote_host : str
        user : :class:`domain.User`
        persistent : bool
            Whether the cookie should outlive the browser session.

        Returns
        -------
        :class:`.Session`
        """
        if session_id is None:
            session_id = str(uuid.uuid4())
        start_time = datetime.now(tz=UTC)
        end_time = start_time + timedelta(seconds=self._duration)
        session = domain.Session(
            session_id=session_id,
            user=user,
            start_time=start_time,
            end_time=end_time,
            authorizations=authorizations,
            ip_address=ip_address,
            remote_host=remote_host,
            nonce=_generate_nonce(),
            persistent=persistent
        )

        try:
            self.r.set(session_id, self._encode(domain.to_dict(session)),
                       ex=self._duration)
        except redis.exceptions.ConnectionError as e:
            raise SessionCreationFailed(f'Connection failed: {e}') from e
        except Exception as e:
            raise SessionCreationFailed(f'Failed to create: {e}') from e

        return session

    def generate_cookie(self, session: domain.Session) -> str:
        """Generate a cookie from a :class:`domain.Session`."""
        return self._pack_cookie({
            'user_id': session.user.user_id if session.user else None,
            'session_id': session.session_id,
            'nonce': session.nonce,
            'expires': session.end_time.isoformat()  # type: ignore
        })

    def delete(self, cookie: str) -> None:
        """Delete the session named in a session cookie."""
        cookie_data = self._unpack_cookie(cookie)
        self.delete_by_id(cookie_data['session_id'])

    def delete_by_id(self, session_id: str) -> None:
        """Delete a session in the key-value store by ID."""
        try:
            self.r.delete(session_id)
        except redis.exceptions.ConnectionError as e:
            raise SessionDeletionFailed(f'Connection failed: {e}') from e
        except Exception as e:
            raise SessionDeletionFailed(f'Failed to delete: {e}') from e

    def validate_session_against_cookie(self, session: domain.Session,
                                        cookie: str) -> None:
        """
        Validate session data against a cookie.

        Raises
        ------
        :class:`InvalidToken`
            Raised if the data in the cookie does not match the session data.
        """
        cookie_data = self._unpack_cookie(cookie)
        user_id = session.user.user_id if session.user else None
        if cookie_data['nonce'] != session.nonce \
                or user_id != cookie_data['user_id']:
            raise InvalidToken('Invalid token; likely a forgery')

    def load(self, cookie: str) -> domain.Session:
        """Load a session using a session cookie."""
        try:
            cookie_data = self._unpack_cookie(cookie)
            expires = dateutil.parser.parse(cookie_data['expires'])
        except (KeyError, ValueError, TypeError) as e:
            raise InvalidToken('Token payload malformed') from e

        if expires <= datetime.now(tz=UTC):
            raise ExpiredToken('Session has expired')

        session = self.load_by_id(cookie_data['session_id'])
        if session.expired:
            raise ExpiredToken('Session has expired')
        if session.user is None:
            raise InvalidToken('No user data are present')

        self.validate_session_against_cookie(session, cookie)
        return session

    def load_by_id(self, session_id: str) -> domain.Session:
        """Get session data by session ID."""
        try:
            session_jwt = self.r.get(session_id)
        except redis.exceptions.ConnectionError as e:
            raise SessionStoreUnavailable(f'Connection failed: {e}') from e
        except Exception as e:
            raise SessionStoreUnavailable(f'Failed to load: {e}') from e
        if not session_jwt:
            logger.debug('No such session: %s', session_id)
            raise UnknownSession(f'Failed to find session {session_id}')
        if isinstance(session_jwt, bytes):
            session_jwt = session_jwt.decode('ascii')
        return self._decode(session_jwt)

    def _encode(self, session_data: dict) -> str:
        return jwt.encode(session_data, self._secret, algorithm='HS256')

    def _decode(self, session_jwt: str) -> domain.Session:
        try:
            data = jwt.decode(session_jwt, self._secret, algorithms=['HS256'])
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Invalid or corrupted session token') from e
        return domain.session_from_dict(data)

    def _unpack_cookie(self, cookie: str) -> dict:
        secret = self._secret
        try:
            data = dict(jwt.decode(cookie, secret, algorithms=['HS256']))
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Session cookie is malformed') from e
        return data

    def _pack_cookie(self, cookie_data: dict) -> str:
        secret = self._secret
        return jwt.encode(cookie_data, secret, algorithm='HS256')
