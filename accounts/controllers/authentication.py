"""
Controllers for logging in and out of the restaurant site.

When a user logs in, they are issued a session key that is stored as a cookie
in their browser. That session ID is registered in the distributed keystore,
along with the user's identity and roles. On subsequent requests the session
is loaded from the cookie and handed to controllers in a
:class:`.domain.RequestContext`.
"""

from typing import Dict, Tuple, Any, Optional
import logging

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from flask import current_app, url_for
from http import HTTPStatus as status

from wtforms import BooleanField, StringField, PasswordField, Form
from wtforms.validators import DataRequired

from retry import retry

from .. import authorization
from ..domain import Authorizations, RequestContext, Session, \
    SignInResult, User
from ..next_page import good_next_page
from ..services import exceptions, identity
from ..services.database import transaction
from ..services.sessions import SessionStore

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

UNKNOWN_USER = 'Check your username and password.'
INVALID_CREDENTIALS = 'Invalid login or password.'


def login(method: str, form_data: MultiDict, context: RequestContext,
          return_url: Optional[str]) -> ResponseData:
    """
    Provide the login form, and log the user in when it is submitted.

    Parameters
    ----------
    method : str
        ``GET`` to show the form, ``POST`` to submit it.
    form_data : MultiDict
        Should include `login` and `password` data, and optionally
        `rememberMe`.
    context : :class:`.RequestContext`
        Client address of the request.
    return_url : str or None
        Page to which the user should be redirected upon login. Only used if
        it is a relative path on this site.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 303 (See Other) if all goes well.
    dict
        Headers to add to the response.

    """
    denied = authorization.require(context, authorization.ANONYMOUS)
    if denied is not None:
        return denied

    if method == 'GET':
        logger.debug('Request for login form')
        # Drop whatever an external login provider left behind, so that the
        # login starts from a clean slate.
        response_data = {
            'form': LoginForm(),
            'return_url': return_url,
            'cookies': {'external_cookie': ('', 0)}
        }
        return response_data, status.OK, {}

    logger.debug('Login form submitted')
    form = LoginForm(form_data)
    data: Dict[str, Any] = {'form': form, 'return_url': return_url}
    if not form.validate():
        logger.debug('Form data is not valid')
        return data, status.BAD_REQUEST, {}

    logger.debug('Login form is valid')
    lockout_on_failure = bool(current_app.config.get('LOCKOUT_ON_FAILURE'))
    try:
        authn = _do_authn(form.login.data, form.password.data,
                          lockout_on_failure)
    except Exception:
        logger.exception('Error during Authentication for %s',
                         form.login.data)
        # To the perspective of the attacker, same as a bad password:
        form.password.data = ''
        data.update({'error': INVALID_CREDENTIALS})
        return data, status.BAD_REQUEST, {}

    if authn is None:
        logger.debug('No user named %s', form.login.data)
        data.update({'error': UNKNOWN_USER})
        return data, status.BAD_REQUEST, {}

    result, user, auths = authn
    if result.is_locked_out:
        logger.debug('User %s is locked out', form.login.data)
        return {}, status.SEE_OTHER, {'Location': url_for('ui.lockout')}

    if not result.succeeded:
        logger.debug('Wrong password for %s', form.login.data)
        form.password.data = ''
        data.update({'error': INVALID_CREDENTIALS})
        return data, status.BAD_REQUEST, {}

    persistent = bool(form.remember_me.data)
    sessions = SessionStore.current_session()
    try:    # Create a session in the distributed session store.
        session = sessions.create(auths, context.ip_address,
                                  context.remote_host, user=user,
                                  persistent=persistent)
        cookie = sessions.generate_cookie(session)
        logger.debug('Created session: %s', session.session_id)
    except exceptions.SessionCreationFailed as e:
        logger.info('Could not create session: %s', e)
        raise InternalServerError('Cannot log in') from e

    # The UI route should use these to set cookies on the response.
    data.update({
        'cookies': {
            'auth_session_cookie': (cookie, _cookie_max_age(session))
        }
    })
    next_page = good_next_page(return_url)
    return data, status.SEE_OTHER, {'Location': next_page}


def logout(context: RequestContext, session_cookie: Optional[str],
           next_page: str) -> ResponseData:
    """
    Log the user out, and redirect to the landing page.

    Parameters
    ----------
    context : :class:`.RequestContext`
        Session resolved for the request, if any.
    session_cookie : str or None
        If not None, invalidates the session.
    next_page : str
        Page to which the user should be redirected upon logout.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 303 (See Other).
    dict
        Headers to add to the response.

    """
    denied = authorization.require(context, authorization.ANONYMOUS)
    if denied is not None:
        return denied

    logger.debug('Request to log out')
    if session_cookie:
        sessions = SessionStore.current_session()
        try:
            sessions.delete(session_cookie)
        except exceptions.SessionDeletionFailed as e:
            logger.debug('Logout failed: %s', e)
        except exceptions.InvalidToken as e:
            logger.debug('Unknown session: %s', e)

    data = {
        'cookies': {
            'auth_session_cookie': ('', 0),
            'external_cookie': ('', 0)
        }
    }
    return data, status.SEE_OTHER, {'Location': next_page}


class LoginForm(Form):
    """Log in form."""

    login = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])
    remember_me = BooleanField('Remember me?', name='rememberMe')


def _cookie_max_age(session: Session) -> Optional[int]:
    """Persistent sessions outlive the browser; others do not."""
    return session.expires if session.persistent else None


# Broken out to add retry and transaction logic.
@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_authn(login: str, password: str, lockout_on_failure: bool) \
        -> Optional[Tuple[SignInResult, User, Authorizations]]:
    with transaction():
        db_user = identity.find_by_name(login)
        if db_user is None:
            return None
        result = identity.password_sign_in(
            db_user, password, lockout_on_failure=lockout_on_failure
        )
        user = identity.to_domain(db_user)
        auths = Authorizations(roles=identity.get_roles(db_user))
        return result, user, auths
