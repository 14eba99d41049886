"""Helpers and Flask application integration for the restaurant database."""

from typing import Generator, Optional, Any
from contextlib import contextmanager
import logging

from flask import Flask
from sqlalchemy import text
from sqlalchemy.orm.session import Session

from ... import authorization
from .models import db, DBUser, DBRole, DBEmployee, DBRestaurant, \
    DBTableRestaurant, DBComment, DBReservation

logger = logging.getLogger(__name__)


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """Context manager for database transaction."""
    try:
        yield db.session
        # Flushed rows leave the session looking clean; always commit.
        db.session.commit()
    except Exception as e:
        logger.error('Commit failed, rolling back: %s', str(e))
        db.session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    db.init_app(app)

    @app.teardown_request
    def teardown_request(exception: Optional[BaseException]) -> None:
        if exception:
            db.session.rollback()


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database and seed the default roles."""
    db.create_all()
    with transaction() as session:
        for name in authorization.DEFAULT_ROLES:
            exists = session.query(DBRole) \
                .filter(DBRole.normalized_name == name.upper()) \
                .first()
            if not exists:
                logger.debug('Seeding role %s', name)
                session.add(DBRole(name=name, normalized_name=name.upper()))


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def is_available(**kwargs: Any) -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text('SELECT 1'))
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
