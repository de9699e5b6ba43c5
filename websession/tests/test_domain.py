"""Tests for :mod:`websession.domain`."""

from unittest import TestCase, mock

from websession import domain


class TestOptions(TestCase):
    """Tests for :class:`domain.Options`."""

    def test_copy_is_independent(self):
        """Changing a copy does not change the original, or vice versa."""
        options = domain.Options(path='/', max_age=60, same_site='Lax')
        copied = options.copy()
        self.assertEqual(copied, options)

        options.path = '/foo'
        copied.max_age = -1
        self.assertEqual(copied.path, '/')
        self.assertEqual(options.max_age, 60)


class TestFlashes(TestCase):
    """Flash messages are queued in the session values."""

    def setUp(self):
        """Create a session without a store."""
        self.session = domain.Session(None, 'session-key')

    def test_no_flashes(self):
        """A new session has no flashes."""
        self.assertEqual(self.session.flashes(), [])

    def test_flashes_drain_once(self):
        """Flashes come back in order, and only once."""
        self.session.add_flash('foo')
        self.session.add_flash('bar')
        self.assertEqual(self.session.flashes(), ['foo', 'bar'])
        self.assertEqual(self.session.flashes(), [])
        self.assertNotIn(domain.FLASHES_KEY, self.session.values)

    def test_custom_key(self):
        """Flashes under a custom key are kept apart from the default."""
        self.session.add_flash('foo')
        self.session.add_flash('baz', 'custom_key')
        self.assertEqual(self.session.flashes('custom_key'), ['baz'])
        self.assertEqual(self.session.flashes(), ['foo'])
        self.assertEqual(self.session.flashes('custom_key'), [])


class TestSession(TestCase):
    """Tests for :class:`domain.Session`."""

    def test_new_session(self):
        """A session starts out new and empty."""
        store = mock.MagicMock()
        session = domain.Session(store, 'hello')
        self.assertEqual(session.name, 'hello')
        self.assertIs(session.store, store)
        self.assertEqual(session.values, {})
        self.assertEqual(session.id, '')
        self.assertTrue(session.is_new)
        self.assertIsNone(session.error)

    def test_name_is_read_only(self):
        """The name cannot be changed after creation."""
        session = domain.Session(None, 'hello')
        with self.assertRaises(AttributeError):
            session.name = 'other'

    def test_save_routes_to_store(self):
        """Saving a session delegates to its store."""
        store = mock.MagicMock()
        session = domain.Session(store, 'hello')
        request, response = mock.MagicMock(), mock.MagicMock()
        session.save(request, response)
        store.save.assert_called_once_with(request, response, session)

    def test_first_matcher(self):
        """The default matcher accepts anything."""
        self.assertTrue(domain.first_matcher(domain.Session(None, 'x')))
