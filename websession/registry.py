"""
Request-scoped registry of sessions.

The registry is created the first time it is asked for during a request and
lives in the WSGI environ of that request, so any copy of the request object
that shares the environ also shares the registry. It caches the sessions
loaded for each (store, name) pair, so that a cookie is decoded at most once
per request, and it remembers every session that should be saved when the
response is ready.

Call :func:`clear_registry` at the end of the request when the environ may be
reused.
"""

import logging
from typing import Any, Dict, List, Tuple

from .cookies import validate_name
from .domain import Matcher, Session, first_matcher
from .exceptions import MultiError, SessionError

logger = logging.getLogger(__name__)

REGISTRY_KEY = 'websession.registry'


class Registry(object):
    """Caches and saves the sessions of a single request."""

    def __init__(self, request: Any) -> None:
        self.request = request
        # Stores hash by identity.
        self._sessions: Dict[Tuple[Any, str], Session] = {}
        self._pending: List[Session] = []

    def get(self, store: Any, name: str) -> Session:
        """Get the session ``name`` from ``store``, loading it if needed."""
        return self.get_exact(store, name, first_matcher)

    def get_exact(self, store: Any, name: str, matcher: Matcher) -> Session:
        """
        Get the session ``name`` from ``store``, loading it if needed.

        If the store supports it, ``matcher`` selects among several cookies
        with the same name. The first result for a (store, name) pair is
        cached for the rest of the request, including any decoding error
        attached to it.

        Raises
        ------
        :class:`InvalidCookieName`

        """
        validate_name(name)
        key = (store, name)
        if key in self._sessions:
            return self._sessions[key]

        # Imported here to avoid a cycle; the stores use the registry.
        from .stores.base import ExactStore
        if isinstance(store, ExactStore):
            session = store.new_exact(self.request, name, matcher)
        else:
            session = store.new(self.request, name)
        self._sessions[key] = session
        self._pending.append(session)
        return session

    def add_session(self, session: Session) -> None:
        """Schedule ``session`` for saving without caching it."""
        self._pending.append(session)

    @property
    def sessions(self) -> List[Session]:
        """Sessions to be saved, in the order they were registered."""
        return list(self._pending)

    def save(self, response: Any) -> None:
        """
        Save every registered session to ``response``.

        All sessions are attempted even if some of them fail.

        Raises
        ------
        :class:`MultiError`
            One entry per session that could not be saved.

        """
        errors: List[Exception] = []
        for session in self._pending:
            if session.store is None:
                errors.append(SessionError(
                    f'missing store for session {session.name!r}'))
                continue
            try:
                session.store.save(self.request, response, session)
            except Exception as e:
                logger.error('Error saving session %r: %s', session.name, e)
                errors.append(e)
        if errors:
            raise MultiError(errors)


def get_registry(request: Any) -> Registry:
    """Get the registry for ``request``, creating it on first use."""
    registry: Registry = request.environ.get(REGISTRY_KEY)
    if registry is None:
        registry = Registry(request)
        request.environ[REGISTRY_KEY] = registry
    return registry


def clear_registry(request: Any) -> None:
    """Drop the registry attached to ``request``, if any."""
    request.environ.pop(REGISTRY_KEY, None)


def save(request: Any, response: Any) -> None:
    """Save every session registered during ``request`` to ``response``."""
    get_registry(request).save(response)
