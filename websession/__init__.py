"""
Cookie and filesystem session storage for WSGI applications.

.. code-block:: python

   from websession import CookieStore, save

   store = CookieStore(b'a-32-byte-long-authentication-key')

   def view(request):
       session = store.get(request, 'session-name')
       session.values['foo'] = 'bar'
       response = Response('ok')
       save(request, response)
       return response

Sessions obtained with :meth:`.Store.get` are cached for the rest of the
request; see :mod:`.registry`. For Flask applications, see
:class:`.extension.Sessions`.
"""

from .domain import Options, Session, Matcher, first_matcher, FLASHES_KEY
from .exceptions import SessionError, InvalidCookieName, EncodeError, \
    DecodeError, MacInvalid, ExpiredToken, StorageError, MultiError
from .registry import Registry, get_registry, clear_registry, save
from .stores import Store, ExactStore, CookieStore, FilesystemStore
