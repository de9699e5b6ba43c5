"""
Contracts for session stores.

A :class:`Store` can create, load and save sessions. An :class:`ExactStore`
can also choose among several cookies with the same name, using a
:data:`.Matcher` supplied by the caller.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..domain import Matcher, Session
from ..registry import get_registry


class Store(ABC):
    """Base class for session stores."""

    def get(self, request: Any, name: str) -> Session:
        """
        Get the session ``name`` after adding it to the request registry.

        Returns a new session if none exists; check :attr:`Session.is_new`.
        If a cookie exists but cannot be decoded, the returned session is new
        and the failure is available at :attr:`Session.error`.

        Raises
        ------
        :class:`InvalidCookieName`

        """
        return get_registry(request).get(self, name)

    @abstractmethod
    def new(self, request: Any, name: str) -> Session:
        """
        Create or load the session ``name`` without using the registry.

        Calling this twice for the same request decodes the cookie twice.
        Must always return a session, even if the cookie cannot be decoded.
        """

    @abstractmethod
    def save(self, request: Any, response: Any, session: Session) -> None:
        """Persist ``session`` and add its cookie to ``response``."""


class ExactStore(Store):
    """Base class for stores that can choose among same-named cookies."""

    def get_exact(self, request: Any, name: str, matcher: Matcher) -> Session:
        """
        Get the session ``name`` selected by ``matcher``, via the registry.

        See :meth:`new_exact`.
        """
        return get_registry(request).get_exact(self, name, matcher)

    @abstractmethod
    def new_exact(self, request: Any, name: str, matcher: Matcher) -> Session:
        """
        Create or load the session ``name`` without using the registry.

        Every cookie named ``name`` is decoded in header order, and the first
        session for which ``matcher`` returns ``True`` is used. Only that
        session's values are kept.
        """
