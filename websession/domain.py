"""Defines session concepts shared by the registry and the stores."""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

FLASHES_KEY = '_flash'
"""Key under which flash messages are queued when no other key is given."""


@dataclass
class Options(object):
    """
    Cookie attributes for a session.

    Stores hold a default instance and hand a copy to every session they
    create, so that changing the store defaults does not affect sessions that
    already exist.
    """

    path: Optional[str] = '/'
    domain: Optional[str] = None
    max_age: int = 0
    """Lifetime of the cookie in seconds. ``<= 0`` deletes the session."""

    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None
    """One of ``'Strict'``, ``'Lax'`` or ``'None'``, or ``None`` to omit."""

    def copy(self) -> 'Options':
        """Get an independent copy of these options."""
        return replace(self)


class Session(object):
    """
    Session state for a single cookie name.

    A session is always usable, even if the cookie that it was loaded from
    could not be decoded. In that case :attr:`is_new` is ``True`` and the
    failure is available at :attr:`error`.
    """

    def __init__(self, store: Any, name: str) -> None:
        self.store = store
        self._name = name
        self.id = ''
        self.values: Dict[Any, Any] = {}
        self.options = Options()
        self.is_new = True
        self.error: Optional[Exception] = None

    @property
    def name(self) -> str:
        """Name used to register the session and to set its cookie."""
        return self._name

    def flashes(self, key: str = FLASHES_KEY) -> List[Any]:
        """
        Get and remove the flash messages queued under ``key``.

        Returns
        -------
        list
            The messages in the order they were added; empty if there are
            none.

        """
        messages: List[Any] = self.values.pop(key, None) or []
        return messages

    def add_flash(self, value: Any, key: str = FLASHES_KEY) -> None:
        """Queue a flash message under ``key``."""
        self.values.setdefault(key, []).append(value)

    def save(self, request: Any, response: Any) -> None:
        """Persist the session with its store and set its cookie."""
        self.store.save(request, response, self)

    def __repr__(self) -> str:
        return f'<Session name={self._name!r} is_new={self.is_new}>'


Matcher = Callable[[Session], bool]
"""Selects a session when a request has several cookies with one name."""


def first_matcher(session: Session) -> bool:
    """Accept the first session that can be decoded."""
    return True
