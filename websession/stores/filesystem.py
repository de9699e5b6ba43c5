"""
Stores session payloads on disk, keyed by an id kept in a signed cookie.

Each session is written to ``<path>/session_<id>``. All file access goes
through a :class:`ReadWriteLock`; by default every
:class:`FilesystemStore` in the process shares :data:`FILE_LOCK`, so readers
run concurrently with each other but never alongside a writer.
"""

import os
import re
import logging
import tempfile
import threading
from base64 import b32encode
from contextlib import contextmanager
from typing import Any, Callable, Generator, List, Optional

from .. import cookies, securecookie
from ..domain import Matcher, Options, Session, first_matcher
from ..exceptions import DecodeError, MultiError, StorageError
from .base import ExactStore

logger = logging.getLogger(__name__)

ID_SIZE = 32
"""Number of random bytes in a session id."""

FILE_PREFIX = 'session_'

_session_id_re = re.compile(r'^[A-Z2-7]+$')


class ReadWriteLock(object):
    """
    A lock that admits many readers or a single writer.

    Waiting writers are served before new readers.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Generator[None, None, None]:
        """Hold the lock in shared mode."""
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Generator[None, None, None]:
        """Hold the lock in exclusive mode."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


FILE_LOCK = ReadWriteLock()
"""Shared by every :class:`FilesystemStore` that is not given its own lock."""


def generate_session_id(random_bytes: Callable[[int], bytes]) -> str:
    """Get a random id using only characters that are safe in file names."""
    return b32encode(random_bytes(ID_SIZE)).decode('ascii').rstrip('=')


class FilesystemStore(ExactStore):
    """
    Stores sessions in the filesystem.

    Parameters
    ----------
    path : str
        Directory where session files are written. Defaults to the system
        temporary directory.
    key_pairs : str or bytes
        Authentication and encryption keys; see :class:`.CookieStore`.
    lock : :class:`ReadWriteLock`
        Guards file access. Defaults to :data:`FILE_LOCK`.
    random_bytes : callable
        Source of random bytes for new session ids. Defaults to
        :func:`.securecookie.generate_random_key`.

    """

    def __init__(self, path: Optional[str] = None,
                 *key_pairs: Optional[securecookie.Key],
                 lock: Optional[ReadWriteLock] = None,
                 random_bytes: Optional[Callable[[int], bytes]] = None) \
            -> None:
        self.path = path or tempfile.gettempdir()
        self.codecs: List[securecookie.Codec] = \
            securecookie.codecs_from_pairs(*key_pairs)
        self.options = Options(path='/', max_age=securecookie.DEFAULT_MAX_AGE)
        self.lock = FILE_LOCK if lock is None else lock
        self.random_bytes = random_bytes or securecookie.generate_random_key
        self.set_max_age(self.options.max_age)

    def new(self, request: Any, name: str) -> Session:
        """Create a session, loading it from the first usable cookie."""
        return self.new_exact(request, name, first_matcher)

    def new_exact(self, request: Any, name: str,
                  matcher: Matcher = first_matcher) -> Session:
        """Create a session, loading it from the cookie ``matcher`` picks."""
        cookies.validate_name(name)
        session = Session(self, name)
        session.options = self.options.copy()
        session.is_new = True
        for value in cookies.request_cookies(request, name):
            try:
                session.id = self._decode_id(name, value)
                session.values = self._load(name, session.id)
            except (DecodeError, MultiError, StorageError) as e:
                logger.debug('Could not load session %r: %s', name, e)
                session.error = e
                session.id = ''
                session.values = {}
                continue
            session.error = None
            if matcher(session):
                session.is_new = False
                return session
            # Discard the rejected candidate.
            session.id = ''
            session.values = {}
        return session

    def save(self, request: Any, response: Any, session: Session) -> None:
        """
        Write the session to disk and set a cookie with its id.

        If ``session.options.max_age <= 0`` the session file is removed and
        the cookie is expired, so a deleted session does not depend on the
        browser discarding its cookie.

        Raises
        ------
        :class:`EncodeError` or :class:`MultiError`
            The session could not be encoded; nothing is written.
        :class:`StorageError`
            The session file could not be written or removed.

        """
        cookies.validate_name(session.name)
        if session.options.max_age <= 0:
            self._erase(session.id)
            cookies.set_cookie(response, session.name, '', session.options)
            return

        if not session.id:
            session.id = generate_session_id(self.random_bytes)
        encoded_id = securecookie.encode_multi(session.name, session.id,
                                               self.codecs)
        self._save(session)
        cookies.set_cookie(response, session.name, encoded_id,
                           session.options)

    def set_max_age(self, age: int) -> None:
        """
        Set the maximum age for the store and its codecs.

        Individual sessions can be deleted by setting
        ``session.options.max_age = -1`` and saving them.
        """
        self.options.max_age = age
        for codec in self.codecs:
            if isinstance(codec, securecookie.SecureCookie):
                codec.max_age = age

    def set_max_length(self, length: int) -> None:
        """
        Restrict the encoded length of new sessions to ``length``.

        Zero removes the limit; use with caution. The default is 4096.
        """
        for codec in self.codecs:
            if isinstance(codec, securecookie.SecureCookie):
                codec.max_length = length

    def filename(self, session_id: str) -> str:
        """Get the path of the file that holds the session ``session_id``."""
        return os.path.join(self.path, FILE_PREFIX + session_id)

    def _decode_id(self, name: str, value: str) -> str:
        session_id = securecookie.decode_multi(name, value, self.codecs)
        if not isinstance(session_id, str) \
                or not _session_id_re.match(session_id):
            raise DecodeError('invalid session id')
        return session_id

    def _load(self, name: str, session_id: str) -> dict:
        """Read a session file and decode its values."""
        with self.lock.read():
            try:
                with open(self.filename(session_id), 'rb') as f:
                    raw = f.read()
            except OSError as e:
                raise StorageError(f'Failed to read session: {e}') from e
        try:
            data = raw.decode('ascii')
        except UnicodeDecodeError as e:
            raise DecodeError('session file is corrupt') from e
        values = securecookie.decode_multi(name, data, self.codecs)
        if not isinstance(values, dict):
            raise DecodeError('session values are not a mapping')
        return values

    def _save(self, session: Session) -> None:
        """Encode the session values and write them to the session file."""
        data = securecookie.encode_multi(session.name, session.values,
                                         self.codecs)
        tmp_path: Optional[str] = None
        with self.lock.write():
            try:
                fd, tmp_path = tempfile.mkstemp(prefix='.' + FILE_PREFIX,
                                                dir=self.path)
                with os.fdopen(fd, 'w', encoding='ascii') as f:
                    f.write(data)
                os.replace(tmp_path, self.filename(session.id))
            except OSError as e:
                logger.error('Failed to write session %s: %s', session.id, e)
                if tmp_path is not None and os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise StorageError(f'Failed to write session: {e}') from e

    def _erase(self, session_id: str) -> None:
        """Remove a session file; a missing file is already erased."""
        if not session_id:
            return
        # TODO: take the write lock once removal racing a concurrent save of
        # the same id is confirmed to need serializing.
        with self.lock.read():
            try:
                os.remove(self.filename(session_id))
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error('Failed to remove session %s: %s', session_id, e)
                raise StorageError(f'Failed to remove session: {e}') from e
