"""
Session stores.

:class:`.CookieStore` keeps the whole session in the cookie;
:class:`.FilesystemStore` keeps only an id in the cookie and the session in a
file.
"""

from .base import Store, ExactStore
from .cookie import CookieStore
from .filesystem import FilesystemStore, ReadWriteLock, FILE_LOCK
