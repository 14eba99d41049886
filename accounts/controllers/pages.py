"""Controller for the informational pages (lockout, access denied, etc)."""

from typing import Tuple

from http import HTTPStatus as status

from .. import authorization
from ..domain import RequestContext

ResponseData = Tuple[dict, int, dict]


def static_page(context: RequestContext) -> ResponseData:
    """Anyone may see these pages; there is nothing to load."""
    denied = authorization.require(context, authorization.ANONYMOUS)
    if denied is not None:
        return denied
    return {}, status.OK, {}
