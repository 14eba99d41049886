"""
Provide methods for working with user identities.

This is the user manager and sign-in manager of the accounts service: it
looks users up, creates them together with their profile, grants roles, and
checks passwords while keeping the lockout counters up to date. Sessions are
not issued here; see :mod:`accounts.services.sessions`.
"""

from typing import Any, Callable, List, Optional, TypeVar
from datetime import datetime, timedelta
from functools import wraps
import logging

from flask import current_app
from pytz import UTC
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.security import check_password_hash, generate_password_hash

from ..domain import IdentityError, IdentityResult, SignInResult, User, \
    UserRegistration
from .database import current_session
from .database.models import DBEmployee, DBRole, DBUser
from .exceptions import NoSuchRole, NoSuchUser, Unavailable

logger = logging.getLogger(__name__)

ALLOWED_USERNAME_CHARACTERS = (
    'abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-._@+'
)

DUPLICATE_USERNAME = 'DuplicateUserName'
DUPLICATE_EMAIL = 'DuplicateEmail'
INVALID_USERNAME = 'InvalidUserName'

F = TypeVar('F', bound=Callable[..., Any])


def _translate_unavailable(func: F) -> F:
    """Raise :class:`.Unavailable` if the database cannot be reached."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except OperationalError as e:
            logger.error('Database unavailable: %s', e)
            raise Unavailable('Database is unavailable') from e
    return wrapper  # type: ignore


def normalize(value: str) -> str:
    """Key used for case-insensitive comparison of usernames and e-mails."""
    return value.strip().upper()


def to_domain(db_user: DBUser) -> User:
    """Generate a :class:`.User` from a database row."""
    return User(
        user_id=str(db_user.id),
        username=db_user.username,
        email=db_user.email,
        employee_id=str(db_user.employee_id)
    )


def get_roles(db_user: DBUser) -> List[str]:
    return [role.name for role in db_user.roles]


@_translate_unavailable
def find_by_name(username: str) -> Optional[DBUser]:
    """Get the user whose username is exactly ``username``, if any."""
    session = current_session()
    db_user: Optional[DBUser] = session.query(DBUser) \
        .filter(DBUser.username == username) \
        .first()
    return db_user


@_translate_unavailable
def username_exists(username: str) -> bool:
    """
    Determine whether a user with a particular username already exists.

    The comparison ignores case.
    """
    session = current_session()
    data = session.query(DBUser) \
        .filter(DBUser.normalized_username == normalize(username)) \
        .first()
    return data is not None


@_translate_unavailable
def email_exists(email: str) -> bool:
    """
    Determine whether a user with a particular address already exists.

    The comparison ignores case.
    """
    session = current_session()
    data = session.query(DBUser) \
        .filter(DBUser.normalized_email == normalize(email)) \
        .first()
    return data is not None


def _is_letter_or_digit(c: str) -> bool:
    return ('0' <= c <= '9') or ('a' <= c <= 'z') or ('A' <= c <= 'Z')


def validate_password(password: str) -> List[IdentityError]:
    """Check ``password`` against the configured password policy."""
    config = current_app.config
    errors = []
    required_length = int(config.get('PASSWORD_REQUIRED_LENGTH', 6))
    if len(password) < required_length:
        errors.append(IdentityError(
            'PasswordTooShort',
            f'Passwords must be at least {required_length} characters.'
        ))
    if config.get('PASSWORD_REQUIRE_NON_ALPHANUMERIC', True) \
            and all(_is_letter_or_digit(c) for c in password):
        errors.append(IdentityError(
            'PasswordRequiresNonAlphanumeric',
            'Passwords must have at least one non alphanumeric character.'
        ))
    if config.get('PASSWORD_REQUIRE_DIGIT', True) \
            and not any('0' <= c <= '9' for c in password):
        errors.append(IdentityError(
            'PasswordRequiresDigit',
            "Passwords must have at least one digit ('0'-'9')."
        ))
    if config.get('PASSWORD_REQUIRE_LOWERCASE', True) \
            and not any('a' <= c <= 'z' for c in password):
        errors.append(IdentityError(
            'PasswordRequiresLower',
            "Passwords must have at least one lowercase ('a'-'z')."
        ))
    if config.get('PASSWORD_REQUIRE_UPPERCASE', True) \
            and not any('A' <= c <= 'Z' for c in password):
        errors.append(IdentityError(
            'PasswordRequiresUpper',
            "Passwords must have at least one uppercase ('A'-'Z')."
        ))
    unique_chars = int(config.get('PASSWORD_REQUIRED_UNIQUE_CHARS', 1))
    if unique_chars > 1 and len(set(password)) < unique_chars:
        errors.append(IdentityError(
            'PasswordRequiresUniqueChars',
            f'Passwords must use at least {unique_chars} different'
            ' characters.'
        ))
    return errors


def validate_username(username: str) -> List[IdentityError]:
    if not username or any(c not in ALLOWED_USERNAME_CHARACTERS
                           for c in username):
        return [IdentityError(
            INVALID_USERNAME,
            f"User name '{username}' is invalid, can only contain letters"
            " or digits."
        )]
    return []


@_translate_unavailable
def create_user(registration: UserRegistration,
                password: str) -> IdentityResult:
    """
    Create a new user and the profile record linked to it.

    The rows are flushed but not committed; the caller owns the transaction.

    Parameters
    ----------
    registration : :class:`.domain.UserRegistration`
        User data for the new account.
    password : str
        Password for the account, checked against the password policy.

    Returns
    -------
    :class:`.domain.IdentityResult`
        On success, carries the created :class:`.domain.User`. On failure,
        carries one :class:`.domain.IdentityError` per problem found; nothing
        is left in the session.

    """
    errors = validate_username(registration.username) \
        + validate_password(password)
    if errors:
        logger.debug('Refusing to create user %s: %s', registration.username,
                     [e.code for e in errors])
        return IdentityResult.failed(*errors)

    session = current_session()
    db_employee = DBEmployee(
        first_name=registration.first_name,
        surname=registration.surname
    )
    db_user = DBUser(
        username=registration.username,
        normalized_username=normalize(registration.username),
        email=registration.email,
        normalized_email=normalize(registration.email),
        password_hash=generate_password_hash(password),
        lockout_enabled=True,
        access_failed_count=0,
        employee=db_employee
    )
    session.add(db_employee)
    session.add(db_user)
    try:
        session.flush()
    except IntegrityError as e:
        logger.debug('Uniqueness constraint rejected %s: %s',
                     registration.username, e)
        session.rollback()
        return IdentityResult.failed(*_duplicate_errors(registration))
    logger.debug('Created user %s with id %s', db_user.username, db_user.id)
    return IdentityResult.success(to_domain(db_user))


def _duplicate_errors(registration: UserRegistration) -> List[IdentityError]:
    """Work out which unique value a failed insert collided on."""
    errors = []
    if username_exists(registration.username):
        errors.append(IdentityError(
            DUPLICATE_USERNAME,
            f"Username '{registration.username}' is already taken."
        ))
    if email_exists(registration.email):
        errors.append(IdentityError(
            DUPLICATE_EMAIL,
            f"Email '{registration.email}' is already taken."
        ))
    if not errors:     # Lost the row we collided with; report both.
        errors = [
            IdentityError(DUPLICATE_USERNAME,
                          f"Username '{registration.username}' is already"
                          " taken."),
            IdentityError(DUPLICATE_EMAIL,
                          f"Email '{registration.email}' is already taken.")
        ]
    return errors


@_translate_unavailable
def add_to_role(user: User, role: str) -> None:
    """Grant ``role`` to ``user``."""
    session = current_session()
    db_role = session.query(DBRole) \
        .filter(DBRole.normalized_name == normalize(role)) \
        .first()
    if db_role is None:
        raise NoSuchRole(f'Role {role} does not exist')
    db_user = session.get(DBUser, int(user.user_id))  # type: ignore
    if db_user is None:
        raise NoSuchUser(f'User {user.user_id} does not exist')
    if db_role not in db_user.roles:
        db_user.roles.append(db_role)
        session.add(db_user)
    logger.debug('Added user %s to role %s', user.user_id, role)


def _now() -> datetime:
    return datetime.now(tz=UTC)


def is_locked_out(db_user: DBUser) -> bool:
    """A user is locked out until :attr:`.DBUser.lockout_end` passes."""
    if not db_user.lockout_enabled or db_user.lockout_end is None:
        return False
    lockout_end = db_user.lockout_end
    if lockout_end.tzinfo is None:     # SQLite drops the offset.
        lockout_end = lockout_end.replace(tzinfo=UTC)
    return lockout_end > _now()


def _access_failed(db_user: DBUser) -> None:
    config = current_app.config
    max_attempts = int(config.get('LOCKOUT_MAX_FAILED_ATTEMPTS', 5))
    duration = int(config.get('LOCKOUT_DURATION', 300))
    db_user.access_failed_count = (db_user.access_failed_count or 0) + 1
    if db_user.access_failed_count >= max_attempts:
        logger.info('Locking out user %s for %i seconds', db_user.id,
                    duration)
        db_user.lockout_end = _now() + timedelta(seconds=duration)
        db_user.access_failed_count = 0


@_translate_unavailable
def password_sign_in(db_user: DBUser, password: str,
                     lockout_on_failure: bool = False) -> SignInResult:
    """
    Check ``password`` for ``db_user``, tracking lockout state.

    Parameters
    ----------
    db_user : :class:`.DBUser`
    password : str
        Password (as entered).
    lockout_on_failure : bool
        Whether a wrong password counts towards locking the user out.

    Returns
    -------
    :class:`.SignInResult`
        ``LOCKED_OUT`` if the user is locked out, whatever the password.

    """
    session = current_session()
    if is_locked_out(db_user):
        logger.debug('User %s is locked out', db_user.id)
        return SignInResult.LOCKED_OUT

    if check_password_hash(db_user.password_hash, password):
        if db_user.access_failed_count:
            db_user.access_failed_count = 0
            session.add(db_user)
        return SignInResult.SUCCEEDED

    logger.debug('Wrong password for user %s', db_user.id)
    if lockout_on_failure and db_user.lockout_enabled:
        _access_failed(db_user)
        session.add(db_user)
        if is_locked_out(db_user):
            return SignInResult.LOCKED_OUT
    return SignInResult.FAILED

