"""Provides exceptions occurring with external services."""


class Unavailable(RuntimeError):
    """The database could not be reached."""


class NoSuchUser(RuntimeError):
    """User does not exist."""


class NoSuchRole(RuntimeError):
    """Role does not exist."""


class SessionCreationFailed(RuntimeError):
    """Failed to create a session in the session store."""


class SessionDeletionFailed(RuntimeError):
    """Failed to delete a session in the session store."""


class UnknownSession(RuntimeError):
    """Failed to locate a session in the session store."""


class InvalidToken(ValueError):
    """Session cookie or session record is malformed or forged."""


class ExpiredToken(RuntimeError):
    """Session has expired."""


class SessionStoreUnavailable(RuntimeError):
    """The session store could not be reached."""
