"""Tests for :mod:`websession.registry`."""

from unittest import TestCase, mock

from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request, Response

from websession import registry
from websession.domain import Session
from websession.exceptions import InvalidCookieName, MultiError, \
    StorageError
from websession.stores import CookieStore, Store

HASH_KEY = b'0123456789abcdef0123456789abcdef'


class RecordingStore(Store):
    """A store that only supports the basic contract, and records calls."""

    def __init__(self, fail_save=False):
        self.created = []
        self.saved = []
        self.fail_save = fail_save

    def new(self, request, name):
        session = Session(self, name)
        self.created.append(session)
        return session

    def save(self, request, response, session):
        if self.fail_save:
            raise StorageError('disk full')
        self.saved.append(session.name)


def make_request(cookie=None):
    headers = {'Cookie': cookie} if cookie else {}
    return EnvironBuilder(headers=headers).get_request()


class TestRegistryGet(TestCase):
    """Sessions are loaded at most once per store and name."""

    def test_same_session(self):
        """The same session instance is returned on every call."""
        request = make_request()
        store = CookieStore(HASH_KEY)
        first = store.get(request, 'session')
        second = store.get(request, 'session')
        self.assertIs(first, second)
        self.assertIs(registry.get_registry(request).get(store, 'session'),
                      first)

    def test_not_decoded_again(self):
        """A cookie that changes during the request is not decoded again."""
        store = CookieStore(HASH_KEY)
        token = store.codecs[0].encode('session', {'foo': 'bar'})
        request = make_request(f'session={token}')
        first = store.get(request, 'session')

        other = store.codecs[0].encode('session', {'foo': 'baz'})
        request.environ['HTTP_COOKIE'] = f'session={other}'
        second = store.get(request, 'session')
        self.assertIs(first, second)
        self.assertEqual(second.values, {'foo': 'bar'})

    def test_error_is_cached(self):
        """A decoding error is remembered along with the session."""
        store = CookieStore(HASH_KEY)
        request = make_request('session=notatoken')
        first = store.get(request, 'session')
        self.assertTrue(first.is_new)
        self.assertIsNotNone(first.error)

        second = store.get(request, 'session')
        self.assertIs(second, first)
        self.assertIs(second.error, first.error)

    def test_keyed_by_store_and_name(self):
        """Different stores or names get different sessions."""
        request = make_request()
        store, other_store = CookieStore(HASH_KEY), CookieStore(HASH_KEY)
        session = store.get(request, 'session')
        self.assertIsNot(store.get(request, 'other'), session)
        self.assertIsNot(other_store.get(request, 'session'), session)
        self.assertEqual(
            len(registry.get_registry(request).sessions), 3
        )

    def test_basic_store(self):
        """Stores without matcher support are asked for a new session."""
        request = make_request()
        store = RecordingStore()
        reg = registry.get_registry(request)
        first = reg.get_exact(store, 'session', lambda s: False)
        second = reg.get(store, 'session')
        self.assertIs(first, second)
        self.assertEqual(len(store.created), 1)

    def test_invalid_name(self):
        """A name that cannot be a cookie name is rejected."""
        request = make_request()
        store = RecordingStore()
        with self.assertRaises(InvalidCookieName) as ctx:
            registry.get_registry(request).get(store, 'session:key')
        self.assertEqual(str(ctx.exception),
                         'invalid character in cookie name: session:key')
        self.assertEqual(store.created, [])
        self.assertEqual(registry.get_registry(request).sessions, [])


class TestRequestScope(TestCase):
    """The registry lives in the request environ."""

    def test_created_once(self):
        """The same registry is returned for the same request."""
        request = make_request()
        self.assertIs(registry.get_registry(request),
                      registry.get_registry(request))

    def test_shared_by_copies(self):
        """A copy of the request that shares the environ shares sessions."""
        request = make_request()
        store = CookieStore(HASH_KEY)
        session = store.get(request, 'session-key')
        session.values['test'] = 'test-value'

        copied = Request(request.environ)
        again = store.get(copied, 'session-key')
        self.assertIs(again, session)
        self.assertEqual(again.values['test'], 'test-value')

    def test_separate_requests(self):
        """Separate requests have separate registries."""
        store = CookieStore(HASH_KEY)
        self.assertIsNot(store.get(make_request(), 'session'),
                         store.get(make_request(), 'session'))

    def test_clear(self):
        """Clearing the registry forgets the sessions of the request."""
        request = make_request()
        store = CookieStore(HASH_KEY)
        session = store.get(request, 'session')
        registry.clear_registry(request)
        self.assertNotIn(registry.REGISTRY_KEY, request.environ)
        self.assertIsNot(store.get(request, 'session'), session)
        registry.clear_registry(make_request())


class TestSave(TestCase):
    """Tests for :func:`registry.save`."""

    def test_registration_order(self):
        """Sessions are saved in the order they were first requested."""
        request = make_request()
        store = RecordingStore()
        store.get(request, 'first')
        store.get(request, 'second')
        store.get(request, 'first')
        extra = Session(store, 'third')
        registry.get_registry(request).add_session(extra)

        registry.save(request, Response())
        self.assertEqual(store.saved, ['first', 'second', 'third'])

    def test_added_session_not_cached(self):
        """A session added for saving is not returned by ``get``."""
        request = make_request()
        store = RecordingStore()
        extra = Session(store, 'session')
        registry.get_registry(request).add_session(extra)
        self.assertIsNot(store.get(request, 'session'), extra)

    def test_errors_collected(self):
        """Every session is attempted; failures are raised together."""
        request = make_request()
        failing, working = RecordingStore(fail_save=True), RecordingStore()
        failing.get(request, 'broken')
        working.get(request, 'fine')
        registry.get_registry(request).add_session(Session(None, 'orphan'))

        with self.assertRaises(MultiError) as ctx:
            registry.save(request, Response())
        self.assertEqual(len(ctx.exception.errors), 2)
        self.assertEqual(working.saved, ['fine'])

    def test_unexpected_errors_collected(self):
        """Errors other than session errors do not stop the other saves."""
        request = make_request()
        failing, working = RecordingStore(), RecordingStore()
        failing.save = mock.MagicMock(side_effect=KeyError('boom'))
        failing.get(request, 'broken')
        working.get(request, 'fine')

        with self.assertRaises(MultiError) as ctx:
            registry.save(request, Response())
        self.assertIsInstance(ctx.exception.errors[0], KeyError)
        self.assertEqual(working.saved, ['fine'])

    def test_cookie_set(self):
        """Saving a cookie session adds a Set-Cookie header."""
        request = make_request()
        response = Response()
        store = CookieStore(HASH_KEY)
        store.get(request, 'session').values['foo'] = 'bar'
        registry.save(request, response)
        headers = response.headers.getlist('Set-Cookie')
        self.assertEqual(len(headers), 1)
        self.assertTrue(headers[0].startswith('session='))
