"""Flask configuration."""
import secrets
import os

#################### General config for app ####################
DEFAULT_LOGIN_REDIRECT_URL = os.environ.get(
    'DEFAULT_LOGIN_REDIRECT_URL',
    '/restaurants'
)
"""URL to redirect the user to on a successful login or registration, if they
have not provided a usable `returnUrl` query param."""

DEFAULT_LOGOUT_REDIRECT_URL = os.environ.get(
    'DEFAULT_LOGOUT_REDIRECT_URL',
    DEFAULT_LOGIN_REDIRECT_URL
)
"""URL to redirect the user to on a logout."""


_relative_urls = r"(^\/(?![\/\\])[^\x00-\x20\x7f]*$)"
LOGIN_REDIRECT_REGEX = os.environ.get('LOGIN_REDIRECT_REGEX', _relative_urls)
"""Regex to check returnUrl of /login.

Only returnUrl values that match this regex will be used. All others will go
to the DEFAULT_LOGIN_REDIRECT_URL. The default value allows same-origin
relative paths only; protocol-relative URLs (``//host``, ``/\\host``) and
absolute URLs are rejected.
"""

#################### Sessions ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TOKEN = os.environ.get('REDIS_TOKEN', None)
"""This is the token used in the AUTH procedure."""
REDIS_CLUSTER = os.environ.get('REDIS_CLUSTER', '0')

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service.

Useful for testing and development."""

JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Secret used to sign session cookies and session records."""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '36000')
"""Lifetime of an authenticated session, in seconds."""

AUTH_SESSION_COOKIE_NAME = os.environ.get('AUTH_SESSION_COOKIE_NAME',
                                          'restaurant_session')
AUTH_SESSION_COOKIE_DOMAIN = os.environ.get('AUTH_SESSION_COOKIE_DOMAIN',
                                            None)
AUTH_SESSION_COOKIE_SECURE = bool(int(os.environ.get(
    'AUTH_SESSION_COOKIE_SECURE', '1')))

EXTERNAL_COOKIE_NAME = os.environ.get('EXTERNAL_COOKIE_NAME',
                                      'restaurant_external')
"""Cookie left by an external login provider. Cleared on the login form."""


#################### Lockout and password policy ####################
LOCKOUT_ON_FAILURE = bool(int(os.environ.get('LOCKOUT_ON_FAILURE', '0')))
"""Count failed password checks towards a lockout during login.

Off by default; users that are already locked out are still refused."""

LOCKOUT_MAX_FAILED_ATTEMPTS = int(os.environ.get(
    'LOCKOUT_MAX_FAILED_ATTEMPTS', '5'))
LOCKOUT_DURATION = int(os.environ.get('LOCKOUT_DURATION', '300'))
"""Seconds a user stays locked out."""

PASSWORD_REQUIRED_LENGTH = int(os.environ.get('PASSWORD_REQUIRED_LENGTH',
                                              '6'))
PASSWORD_REQUIRED_UNIQUE_CHARS = int(os.environ.get(
    'PASSWORD_REQUIRED_UNIQUE_CHARS', '1'))
PASSWORD_REQUIRE_DIGIT = bool(int(os.environ.get(
    'PASSWORD_REQUIRE_DIGIT', '1')))
PASSWORD_REQUIRE_LOWERCASE = bool(int(os.environ.get(
    'PASSWORD_REQUIRE_LOWERCASE', '1')))
PASSWORD_REQUIRE_UPPERCASE = bool(int(os.environ.get(
    'PASSWORD_REQUIRE_UPPERCASE', '1')))
PASSWORD_REQUIRE_NON_ALPHANUMERIC = bool(int(os.environ.get(
    'PASSWORD_REQUIRE_NON_ALPHANUMERIC', '1')))


#################### Database ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URI',
                                         'sqlite:///restaurant.db')

SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))
"""Create tables and seed roles when the app starts."""


#################### Minor configs ##############################
SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Sets the `Flask` secret key, used by the CSRF protection."""

WTF_CSRF_ENABLED = bool(int(os.environ.get('WTF_CSRF_ENABLED', '1')))

LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))

LOG_JSON = bool(int(os.environ.get('LOG_JSON', '0')))
"""Emit log records as JSON on stderr."""

#################### Flask configs ####################
"""See https://flask.palletsprojects.com/en/2.3.x/config/"""

APPLICATION_ROOT = os.environ.get('APPLICATION_ROOT', '/')
