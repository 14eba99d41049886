"""
Controllers for registration.

Anyone can create a new account on the restaurant site with a username, an
e-mail address, a password and their name. The account is linked to a new
profile record and is granted the customer role. Registering does not log
the user in.
"""

from typing import Dict, Tuple, Any, List
import logging

from werkzeug.datastructures import MultiDict
from flask import current_app
from http import HTTPStatus as status

from wtforms import StringField, PasswordField, Form
from wtforms.validators import DataRequired, Email, Length

from retry import retry

from .. import authorization
from ..domain import IdentityResult, RequestContext, UserRegistration
from ..services import exceptions, identity
from ..services.database import transaction

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

USERNAME_TAKEN = 'A user with this username already exists!'
EMAIL_TAKEN = 'This email is already in use.'


def register(method: str, params: MultiDict,
             context: RequestContext) -> ResponseData:
    """Handle requests for the registration view."""
    denied = authorization.require(context, authorization.ANONYMOUS)
    if denied is not None:
        return denied

    data: Dict[str, Any]
    if method == 'GET':
        return {'form': RegistrationForm()}, status.OK, {}

    logger.debug('Registration form submitted')
    form = RegistrationForm(params)
    data = {'form': form, 'errors': []}
    if not form.validate():
        logger.debug('Registration form not valid')
        return data, status.BAD_REQUEST, {}

    # Both checks run, so that both problems are reported at once.
    if _username_exists(form.username.data):
        form.username.errors.append(USERNAME_TAKEN)
    if _email_exists(form.email.data):
        form.email.errors.append(EMAIL_TAKEN)
    if form.username.errors or form.email.errors:
        logger.debug('Username or email already in use')
        return data, status.BAD_REQUEST, {}

    logger.debug('Registration form is valid')
    result = _do_register(form.to_domain(), form.password.data)
    if not result.succeeded:
        _add_errors(form, data['errors'], result)
        return data, status.BAD_REQUEST, {}

    logger.info('Registered user %s', result.user.user_id)  # type: ignore
    location = current_app.config['DEFAULT_LOGIN_REDIRECT_URL']
    return data, status.SEE_OTHER, {'Location': location}


class RegistrationForm(Form):
    """User registration form."""

    username = StringField('Username',
                           validators=[Length(max=256), DataRequired()])
    email = StringField('Email address',
                        validators=[Email(), Length(max=256), DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])
    first_name = StringField('First name', name='firstName',
                             validators=[Length(max=50), DataRequired()])
    surname = StringField('Surname',
                          validators=[Length(max=50), DataRequired()])

    def to_domain(self) -> UserRegistration:
        """Generate a :class:`.UserRegistration` from this form's data."""
        return UserRegistration(
            username=self.username.data,
            email=self.email.data,
            first_name=self.first_name.data,
            surname=self.surname.data
        )


def _add_errors(form: RegistrationForm, errors: List[str],
                result: IdentityResult) -> None:
    """Put the reasons the account was refused on the form."""
    for error in result.errors:
        # A collision caught by the database rather than our own check.
        if error.code == identity.DUPLICATE_USERNAME:
            form.username.errors.append(USERNAME_TAKEN)
        elif error.code == identity.DUPLICATE_EMAIL:
            form.email.errors.append(EMAIL_TAKEN)
        else:
            errors.append(error.description)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _username_exists(username: str) -> bool:
    return identity.username_exists(username)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _email_exists(email: str) -> bool:
    return identity.email_exists(email)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_register(registration: UserRegistration,
                 password: str) -> IdentityResult:
    with transaction():
        result = identity.create_user(registration, password)
        if result.succeeded:
            identity.add_to_role(result.user,  # type: ignore
                                 authorization.CUSTOMER_ROLE)
        return result
