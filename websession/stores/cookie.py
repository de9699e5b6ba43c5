"""Stores the whole session payload in a signed (and encrypted) cookie."""

import logging
from typing import Any, List, Optional

from .. import cookies, securecookie
from ..domain import Matcher, Options, Session, first_matcher
from ..exceptions import DecodeError, MultiError
from .base import ExactStore

logger = logging.getLogger(__name__)


class CookieStore(ExactStore):
    """
    Stores sessions using secure cookies.

    Keys are given in pairs to allow key rotation, but the common case is a
    single authentication key and, optionally, an encryption key:

    .. code-block:: python

       store = CookieStore(b'hash-key', b'block-key')
       store.options.http_only = True

    The first key of each pair authenticates values and is required. The
    second encrypts them; it may be ``None`` or omitted in the last pair, and
    otherwise must be 16, 24 or 32 bytes long.
    """

    def __init__(self, *key_pairs: Optional[securecookie.Key]) -> None:
        self.codecs: List[securecookie.Codec] = \
            securecookie.codecs_from_pairs(*key_pairs)
        self.options = Options(path='/', max_age=securecookie.DEFAULT_MAX_AGE)
        self.set_max_age(self.options.max_age)

    def new(self, request: Any, name: str) -> Session:
        """Create a session, loading it from the first cookie ``name``."""
        cookies.validate_name(name)
        session = self._session(name)
        candidates = cookies.request_cookies(request, name)
        if candidates:
            self._decode(session, candidates[0])
        return session

    def new_exact(self, request: Any, name: str,
                  matcher: Matcher = first_matcher) -> Session:
        """Create a session, loading it from the cookie ``matcher`` picks."""
        cookies.validate_name(name)
        session = self._session(name)
        for value in cookies.request_cookies(request, name):
            if not self._decode(session, value):
                continue
            if matcher(session):
                return session
            # Discard the rejected candidate.
            session.values = {}
            session.is_new = True
        return session

    def save(self, request: Any, response: Any, session: Session) -> None:
        """
        Encode the session values into the session cookie.

        Raises
        ------
        :class:`EncodeError` or :class:`MultiError`
            The values could not be encoded; no cookie is set.

        """
        cookies.validate_name(session.name)
        encoded = securecookie.encode_multi(session.name, session.values,
                                            self.codecs)
        cookies.set_cookie(response, session.name, encoded, session.options)

    def set_max_age(self, age: int) -> None:
        """
        Set the maximum age for the store and its codecs.

        Sessions that were already created keep their own options; to delete
        a single session, set ``session.options.max_age = -1`` and save it.
        """
        self.options.max_age = age
        for codec in self.codecs:
            if isinstance(codec, securecookie.SecureCookie):
                codec.max_age = age

    def _session(self, name: str) -> Session:
        session = Session(self, name)
        session.options = self.options.copy()
        session.is_new = True
        return session

    def _decode(self, session: Session, value: str) -> bool:
        try:
            values = securecookie.decode_multi(session.name, value,
                                               self.codecs)
            if not isinstance(values, dict):
                raise DecodeError('session values are not a mapping')
        except (DecodeError, MultiError) as e:
            logger.debug('Could not decode session %r: %s', session.name, e)
            session.error = e
            return False
        session.values = values
        session.error = None
        session.is_new = False
        return True
