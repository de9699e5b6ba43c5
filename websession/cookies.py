"""
Provides functions for reading and writing session cookies.

Duplicate cookies occur when the browser holds cookies with the same name
for both a domain and one of its subdomains, or for several paths. All of
them are sent with the request, in no particular order that the server can
influence, so :func:`request_cookies` returns every candidate value in header
order and leaves it to the caller to pick one.
"""

import re
from typing import Any, List

from werkzeug.datastructures import MultiDict
from werkzeug.http import dump_cookie, parse_cookie

from .domain import Options
from .exceptions import InvalidCookieName

# RFC 2616 token: visible ASCII minus separators.
_cookie_name_re = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def is_valid_name(name: str) -> bool:
    """Determine whether ``name`` can be used as a cookie name."""
    return bool(name) and _cookie_name_re.match(name) is not None


def validate_name(name: str) -> None:
    """
    Check that ``name`` can be used as a cookie name.

    Raises
    ------
    :class:`InvalidCookieName`

    """
    if not is_valid_name(name):
        raise InvalidCookieName(f'invalid character in cookie name: {name}')


def request_cookies(request: Any, name: str) -> List[str]:
    """
    Get every value sent for the cookie ``name``, in header order.

    By default, werkzeug uses a dict-based struct that supports only a single
    value per key. Passing :class:`MultiDict` to :func:`parse_cookie` keeps
    all of them.
    """
    raw_cookie = request.environ.get('HTTP_COOKIE', None)
    if raw_cookie is None:
        return []
    cookies = parse_cookie(raw_cookie, cls=MultiDict)
    values: List[str] = cookies.getlist(name)
    return values


def new_cookie(name: str, value: str, options: Options) -> str:
    """
    Render a ``Set-Cookie`` header value from session options.

    A non-positive ``max_age`` produces a cookie that expires immediately.
    """
    if options.max_age > 0:
        max_age, expires = options.max_age, None
    else:
        max_age, expires = 0, 0
    return dump_cookie(
        name,
        value,
        max_age=max_age,
        expires=expires,
        path=options.path,
        domain=options.domain,
        secure=options.secure,
        httponly=options.http_only,
        samesite=options.same_site
    )


def set_cookie(response: Any, name: str, value: str,
               options: Options) -> None:
    """Add a session cookie to ``response``."""
    response.headers.add('Set-Cookie', new_cookie(name, value, options))
