"""Defines the core data structures for the restaurant accounts service."""

from typing import Any, Optional, NamedTuple, List
from datetime import date, datetime
from enum import Enum
import dateutil.parser
from pytz import UTC


class UserRegistration(NamedTuple):
    """Represents a request to register a new user."""

    username: str
    email: str
    first_name: str
    surname: str


class User(NamedTuple):
    """Represents an authenticated user of the restaurant site."""

    username: str
    """Login name, unique case-insensitively."""

    email: str
    """The user's e-mail address, unique case-insensitively."""

    user_id: Optional[str] = None
    """Unique identifier for the user. If ``None``, the user does not exist."""

    employee_id: Optional[str] = None
    """Identifier of the profile (employee) record linked to the user."""


class Authorizations(NamedTuple):
    """Authorization information associated with a :class:`.Session`."""

    roles: List[str] = []
    """Names of the roles granted to the user."""

    def has_role(self, role: str) -> bool:
        """Check whether ``role`` is granted, ignoring case."""
        return role.upper() in [r.upper() for r in self.roles]


class Session(NamedTuple):
    """Represents an authenticated session."""

    session_id: str
    """Unique identifier for the session."""

    start_time: datetime
    """The ISO-8601 datetime when the session was created."""

    user: Optional[User] = None
    """The user for which the session was created."""

    end_time: Optional[datetime] = None
    """The ISO-8601 datetime when the session ends."""

    authorizations: Optional[Authorizations] = None
    """Authorizations for the current session."""

    ip_address: Optional[str] = None
    """The IP address of the client for which the session was created."""

    remote_host: Optional[str] = None
    """The hostname of the client for which the session was created."""

    nonce: Optional[str] = None
    """A pseudo-random nonce generated when the session was created."""

    persistent: bool = False
    """Whether the session cookie should outlive the browser session."""

    @property
    def expired(self) -> bool:
        """Expired if the current time is later than :attr:`.end_time`."""
        return bool(self.end_time is not None
                    and datetime.now(tz=UTC) >= self.end_time)

    @property
    def expires(self) -> Optional[int]:
        """
        Number of seconds until the session expires.

        If the session is already expired, returns 0.
        """
        if self.end_time is None:
            return None
        duration = (self.end_time - datetime.now(tz=UTC)).total_seconds()
        return max(int(duration), 0)


class RequestContext(NamedTuple):
    """What a controller knows about the request it is handling."""

    ip_address: Optional[str] = None
    remote_host: Optional[str] = None
    session: Optional[Session] = None
    """The authenticated session, if the client presented a valid one."""

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and self.session.user is not None


class SignInResult(Enum):
    """Outcome of a password sign-in attempt."""

    SUCCEEDED = 'succeeded'
    LOCKED_OUT = 'locked_out'
    FAILED = 'failed'

    @property
    def succeeded(self) -> bool:
        return self is SignInResult.SUCCEEDED

    @property
    def is_locked_out(self) -> bool:
        return self is SignInResult.LOCKED_OUT


class IdentityError(NamedTuple):
    """A reason given by the identity service for refusing an operation."""

    code: str
    description: str


class IdentityResult(NamedTuple):
    """Outcome of an identity operation, e.g. account creation."""

    succeeded: bool
    errors: List[IdentityError] = []
    user: Optional[User] = None

    @classmethod
    def success(cls, user: Optional[User] = None) -> 'IdentityResult':
        return cls(succeeded=True, user=user)

    @classmethod
    def failed(cls, *errors: IdentityError) -> 'IdentityResult':
        return cls(succeeded=False, errors=list(errors))


class AccountComment(NamedTuple):
    """A comment left by the account holder, as shown on their page."""

    text: str
    created: Optional[datetime]
    restaurant_id: Optional[str]
    restaurant_name: Optional[str]


class AccountReservation(NamedTuple):
    """A table reservation made by the account holder."""

    date: Optional[datetime]
    persons: Optional[int]
    table_number: Optional[int]
    restaurant_id: Optional[str]
    restaurant_name: Optional[str]


class UserAccount(NamedTuple):
    """Read-only projection of a profile for the personal account page."""

    first_name: Optional[str]
    surname: Optional[str]
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    comments: List[AccountComment] = []
    reservations: List[AccountReservation] = []


# Helpers and private functions.


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    This just uses the built-in ``_asdict`` method on the intance, but also
    calls this on any child NamedTuple instances (recursively) so that the
    entire tree is cast to ``dict``.
    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}
    data = obj._asdict()  # type: ignore
    _data = {}

    def _cast(obj: Any) -> Any:
        if hasattr(obj, '_asdict'):
            obj = to_dict(obj)
        elif isinstance(obj, datetime):
            obj = obj.isoformat()
        elif isinstance(obj, list):
            obj = [_cast(o) for o in obj]
        return obj

    for key, value in data.items():
        _data[key] = _cast(value)
    return _data


def session_from_dict(data: dict) -> Session:
    """Rebuild a :class:`.Session` from the output of :func:`to_dict`."""
    user = data.get('user')
    auths = data.get('authorizations')
    end_time = data.get('end_time')
    return Session(
        session_id=data['session_id'],
        start_time=dateutil.parser.parse(data['start_time']),
        user=User(**user) if user else None,
        end_time=dateutil.parser.parse(end_time) if end_time else None,
        authorizations=Authorizations(**auths) if auths else None,
        ip_address=data.get('ip_address'),
        remote_host=data.get('remote_host'),
        nonce=data.get('nonce'),
        persistent=bool(data.get('persistent', False))
    )
