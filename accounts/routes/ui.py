"""Provides Flask integration for the external user interface."""

import logging

from flask import Blueprint, render_template, request, make_response, \
    redirect, current_app, Response
from http import HTTPStatus as status

from ..auth import request_context
from ..controllers import account, authentication, pages, registration
from ..services import database

logger = logging.getLogger(__name__)
blueprint = Blueprint('ui', __name__, url_prefix='')


def set_cookies(response: Response, data: dict) -> None:
    """
    Update a :class:`.Response` with cookies in controller data.

    Contollers seeking to update cookies must include a 'cookies' key
    in their response data, mapping a cookie key to ``(value, max_age)``.
    A ``max_age`` of ``None`` sets a browser-session cookie; ``0`` removes
    the cookie.
    """
    cookies = data.pop('cookies', None)
    if cookies is None:
        return None
    for cookie_key, (cookie_value, max_age) in cookies.items():
        cookie_name = current_app.config[f'{cookie_key.upper()}_NAME']
        logger.debug('Set cookie %s, max_age %s', cookie_name, max_age)
        domain = current_app.config['AUTH_SESSION_COOKIE_DOMAIN']
        params = dict(httponly=True, domain=domain)
        if current_app.config['AUTH_SESSION_COOKIE_SECURE']:
            # Setting samesite to lax, to allow reasonable links to
            # authenticated views using GET requests.
            params.update({'secure': True, 'samesite': 'Lax'})
        response.set_cookie(cookie_name, cookie_value, max_age=max_age,
                            **params)


@blueprint.after_request
def apply_response_headers(response: Response) -> Response:
    """Prevent UI redress attacks."""
    response.headers['Content-Security-Policy'] = "frame-ancestors 'none'"
    response.headers['X-Frame-Options'] = 'DENY'
    return response


@blueprint.route('/login', methods=['GET', 'POST'])
def login() -> Response:
    """User can log in with username and password."""
    return_url = request.args.get('returnUrl')
    logger.debug('Request to log in, then redirect to %s', return_url)
    data, code, headers = authentication.login(request.method, request.form,
                                               request_context(), return_url)
    # Flask puts cookie-setting methods on the response, so we do that here
    # instead of in the controller.
    if code == status.SEE_OTHER:
        response = make_response(redirect(headers['Location'], code=code))
        set_cookies(response, data)
        return response

    response = make_response(
        render_template('accounts/login.html', **data), code, headers
    )
    set_cookies(response, data)
    return response


@blueprint.route('/register', methods=['GET', 'POST'])
def register() -> Response:
    """Interface for creating new accounts."""
    data, code, headers = registration.register(request.method, request.form,
                                                request_context())
    if code == status.SEE_OTHER:
        return make_response(redirect(headers['Location'], code=code))
    content = render_template('accounts/register.html', **data)
    return make_response(content, code, headers)


@blueprint.route('/logout', methods=['GET'])
def logout() -> Response:
    """Log out of the restaurant site."""
    session_cookie_key = current_app.config['AUTH_SESSION_COOKIE_NAME']
    session_cookie = request.cookies.get(session_cookie_key, None)
    next_page = current_app.config['DEFAULT_LOGOUT_REDIRECT_URL']
    logger.debug('Request to log out, then redirect to %s', next_page)
    data, code, headers = authentication.logout(request_context(),
                                                session_cookie, next_page)
    response = make_response(redirect(headers['Location'], code=code))
    set_cookies(response, data)
    return response


@blueprint.route('/account', methods=['GET'], endpoint='account')
def account_page() -> Response:
    """The logged-in user's profile, comments and reservations."""
    data, code, headers = account.personal_account(request_context())
    if code == status.SEE_OTHER:
        return make_response(redirect(headers['Location'], code=code))
    content = render_template('accounts/account.html', **data)
    return make_response(content, code, headers)


def _static_page(template: str) -> Response:
    data, code, headers = pages.static_page(request_context())
    if code == status.SEE_OTHER:
        return make_response(redirect(headers['Location'], code=code))
    return make_response(render_template(template, **data), code, headers)


@blueprint.route('/lockout', methods=['GET'])
def lockout() -> Response:
    """Shown when a login is refused because the user is locked out."""
    return _static_page('accounts/lockout.html')


@blueprint.route('/reset-password-confirmation', methods=['GET'])
def reset_password_confirmation() -> Response:
    """Shown after a password reset."""
    return _static_page('accounts/reset_password_confirmation.html')


@blueprint.route('/access-denied', methods=['GET'])
def access_denied() -> Response:
    """Shown to logged-in users who lack a required role."""
    return _static_page('accounts/access_denied.html')


@blueprint.route('/auth_status', methods=['GET'])
def auth_status() -> Response:
    """Get if the app is running and can reach its database."""
    if not database.is_available():
        return make_response("Database unavailable",
                             status.SERVICE_UNAVAILABLE)
    return make_response("OK")
