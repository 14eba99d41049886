"""
Explicit authorization checks for request controllers.

Controllers receive a :class:`.domain.RequestContext` carrying the session
(if any) resolved for the request, and call :func:`check` before doing any
work. :func:`require` wraps the check and the redirect:

.. code-block:: python

   def personal_account(context: domain.RequestContext) -> ResponseData:
       denied = authorization.require(context, AUTHENTICATED,
                                      next_page='/account')
       if denied is not None:
           return denied
       ...

"""

from typing import NamedTuple, Optional, Tuple
from enum import Enum
import logging
from urllib.parse import urlencode

from flask import url_for
from http import HTTPStatus as status

from .domain import RequestContext

logger = logging.getLogger(__name__)

CUSTOMER_ROLE = 'customer'
"""Role granted to every self-registered user."""

DEFAULT_ROLES = [CUSTOMER_ROLE]
"""Roles that must exist in the database."""


class Authorization(Enum):
    """Result of an authorization check."""

    AUTHORIZED = 'authorized'
    UNAUTHORIZED = 'unauthorized'
    ANONYMOUS_ALLOWED = 'anonymous_allowed'


class Requirement(NamedTuple):
    """What a handler needs from the requester."""

    authenticated: bool = False
    role: Optional[str] = None


ANONYMOUS = Requirement()
AUTHENTICATED = Requirement(authenticated=True)


def check(context: RequestContext, requirement: Requirement) -> Authorization:
    """Decide whether the request in ``context`` satisfies ``requirement``."""
    if not requirement.authenticated:
        return Authorization.ANONYMOUS_ALLOWED
    if not context.is_authenticated:
        logger.debug('No valid session')
        return Authorization.UNAUTHORIZED
    if requirement.role is not None:
        auths = context.session.authorizations  # type: ignore
        if auths is None or not auths.has_role(requirement.role):
            logger.debug('Session lacks role %s', requirement.role)
            return Authorization.UNAUTHORIZED
    return Authorization.AUTHORIZED


def deny(context: RequestContext,
         next_page: Optional[str] = None) -> Tuple[dict, int, dict]:
    """
    Redirect a request that failed :func:`check`.

    Anonymous requests go to the login form, carrying ``next_page`` as the
    return URL; authenticated ones go to the access denied page.
    """
    if context.is_authenticated:
        location = url_for('ui.access_denied')
    else:
        location = url_for('ui.login')
        if next_page:
            query = urlencode({'returnUrl': next_page}, safe='/')
            location = f'{location}?{query}'
    return {}, status.SEE_OTHER, {'Location': location}


def require(context: RequestContext, requirement: Requirement,
            next_page: Optional[str] = None) \
        -> Optional[Tuple[dict, int, dict]]:
    """
    Run :func:`check`, and build the redirect if the request is refused.

    Returns ``None`` when the controller may go ahead.
    """
    if check(context, requirement) is Authorization.UNAUTHORIZED:
        return deny(context, next_page=next_page)
    return None
