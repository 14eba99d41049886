"""Return URL handling."""
import re
from typing import Optional

from flask import current_app


def is_local_url(next_page: Optional[str]) -> bool:
    """True if ``next_page`` is a relative path on this site."""
    pattern = current_app.config.get('LOGIN_REDIRECT_REGEX')
    return bool(next_page and len(next_page) < 300
                and re.fullmatch(pattern, next_page))


def good_next_page(next_page: Optional[str]) -> str:
    """Checks if a next_page is good and returns it.

    If not good, it will return the default.
    """
    default: str = current_app.config['DEFAULT_LOGIN_REDIRECT_URL']
    return next_page if next_page and is_local_url(next_page) else default
