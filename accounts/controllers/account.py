"""Controller for the personal account page."""

from typing import Optional, Tuple
import logging

from flask import url_for
from http import HTTPStatus as status
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import selectinload
from werkzeug.exceptions import NotFound

from retry import retry

from .. import authorization
from ..domain import AccountComment, AccountReservation, RequestContext, \
    UserAccount
from ..services import exceptions
from ..services.database import current_session
from ..services.database.models import DBComment, DBEmployee, \
    DBReservation, DBTableRestaurant

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def personal_account(context: RequestContext) -> ResponseData:
    """
    Show the profile, comments and reservations of the logged-in user.

    Anonymous requests are sent to the login form, which returns them here.
    Raises :class:`.NotFound` if the user has no profile record.
    """
    denied = authorization.require(context, authorization.AUTHENTICATED,
                                   next_page=url_for('ui.account'))
    if denied is not None:
        return denied

    employee_id = context.session.user.employee_id  # type: ignore
    account = _get_account(employee_id)
    if account is None:
        logger.info('No profile %s for user %s', employee_id,
                    context.session.user.user_id)  # type: ignore
        raise NotFound('No such account')
    return {'account': account}, status.OK, {}


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _get_account(employee_id: str) -> Optional[UserAccount]:
    try:
        employee_pk = int(employee_id)
    except (TypeError, ValueError):
        return None
    session = current_session()
    try:
        db_employee = session.query(DBEmployee) \
            .options(
                selectinload(DBEmployee.comments)
                .joinedload(DBComment.restaurant),
                selectinload(DBEmployee.reservations)
                .joinedload(DBReservation.table)
                .joinedload(DBTableRestaurant.restaurant)
            ) \
            .filter(DBEmployee.id == employee_pk) \
            .first()
    except OperationalError as e:
        logger.error('Database unavailable: %s', e)
        raise exceptions.Unavailable('Database is unavailable') from e
    if db_employee is None:
        return None
    return _to_account(db_employee)


def _to_account(db_employee: DBEmployee) -> UserAccount:
    comments = [
        AccountComment(
            text=c.text,
            created=c.created,
            restaurant_id=str(c.restaurant_id),
            restaurant_name=c.restaurant.name if c.restaurant else None
        ) for c in db_employee.comments
    ]
    reservations = []
    for r in db_employee.reservations:
        restaurant = r.table.restaurant if r.table else None
        reservations.append(AccountReservation(
            date=r.date,
            persons=r.persons,
            table_number=r.table.number if r.table else None,
            restaurant_id=str(restaurant.id) if restaurant else None,
            restaurant_name=restaurant.name if restaurant else None
        ))
    return UserAccount(
        first_name=db_employee.first_name,
        surname=db_employee.surname,
        address=db_employee.address,
        date_of_birth=db_employee.date_of_birth,
        city=db_employee.city,
        phone=db_employee.phone,
        email=db_employee.email,
        comments=comments,
        reservations=reservations
    )
