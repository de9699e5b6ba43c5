"""Provides Flask integration for session stores."""

import os
import logging
from typing import Any, Iterable, List, Mapping, Optional

from flask import Flask, Response, current_app, request

from . import config, registry
from .domain import Matcher, Options, Session, first_matcher
from .exceptions import ConfigurationError, MultiError
from .stores import CookieStore, FilesystemStore, ExactStore, Store
from .stores import cookie, filesystem

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'websession.Sessions'


def _flatten(key_pairs: Iterable[Any]) -> List[Any]:
    keys: List[Any] = []
    for pair in key_pairs:
        if isinstance(pair, (str, bytes)):
            pair = (pair,)
        hash_key, block_key = (tuple(pair) + (None,))[:2]
        keys += [hash_key, block_key]
    return keys


def store_from_config(app_config: Mapping[str, Any]) -> ExactStore:
    """
    Build the session store described by the application config.

    Raises
    ------
    :class:`ConfigurationError`
        No keys are configured, or the store type is unknown.

    """
    keys = _flatten(app_config.get('WEBSESSION_KEY_PAIRS') or [])
    if not keys:
        raise ConfigurationError('WEBSESSION_KEY_PAIRS is not set')

    kind = app_config.get('WEBSESSION_STORE', 'cookie')
    store: ExactStore
    try:
        if kind == 'cookie':
            store = CookieStore(*keys)
        elif kind == 'filesystem':
            store = FilesystemStore(
                app_config.get('WEBSESSION_FILESYSTEM_PATH'), *keys
            )
        else:
            raise ConfigurationError(f'Unknown session store: {kind}')
    except ValueError as e:
        raise ConfigurationError(f'Invalid session keys: {e}') from e

    store.options = Options(
        path=app_config.get('WEBSESSION_COOKIE_PATH', '/'),
        domain=app_config.get('WEBSESSION_COOKIE_DOMAIN'),
        secure=bool(app_config.get('WEBSESSION_COOKIE_SECURE')),
        http_only=bool(app_config.get('WEBSESSION_COOKIE_HTTPONLY')),
        same_site=app_config.get('WEBSESSION_COOKIE_SAMESITE')
    )
    store.set_max_age(int(app_config.get('WEBSESSION_MAX_AGE', 2592000)))
    return store


class Sessions(object):
    """
    Gives Flask views access to sessions kept in a :class:`.Store`.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask, make_response
       from websession.extension import Sessions, current_sessions


       def create_web_app() -> Flask:
           app = Flask('someapp')
           app.config.from_pyfile('config.py')
           Sessions(app)
           return app


       @app.route('/')
       def index():
           session = current_sessions().get('prefs')
           session.values['visits'] = session.values.get('visits', 0) + 1
           response = make_response('ok')
           current_sessions().save(response)
           return response

    Set ``WEBSESSION_SAVE_ON_RESPONSE`` to save every session used during a
    request automatically, and ``WEBSESSION_DEBUG`` to get additional
    debugging in the logs.
    """

    def __init__(self, app: Optional[Flask] = None,
                 store: Optional[Store] = None) -> None:
        """
        Initialize ``app`` with `Sessions`.

        Parameters
        ----------
        app : :class:`Flask`
        store : :class:`.Store`
            If not given, a store is built from the application config.

        """
        self.store = store
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Set configuration defaults and register request hooks on ``app``.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        app.config[EXTENSION_KEY] = self
        for key in dir(config):
            if key.startswith('WEBSESSION_'):
                app.config.setdefault(key, getattr(config, key))
        if self.store is None:
            self.store = store_from_config(app.config)

        if app.config['WEBSESSION_SAVE_ON_RESPONSE']:
            app.after_request(self.save_on_response)

        @app.teardown_request
        def teardown_request(exception: Optional[BaseException]) -> None:
            registry.clear_registry(request)

        if app.config.get('WEBSESSION_DEBUG') \
                or os.getenv('WEBSESSION_DEBUG'):
            self.session_debug()
            logger.debug('WEBSESSION_DEBUG is set; session debug logging on')

    def get(self, name: str) -> Session:
        """Get the session ``name`` for the current request."""
        return self._get_store().get(request._get_current_object(), name)

    def get_exact(self, name: str, matcher: Matcher = first_matcher) \
            -> Session:
        """Get the session ``name`` selected by ``matcher``."""
        store = self._get_store()
        if not isinstance(store, ExactStore):
            return store.get(request._get_current_object(), name)
        return store.get_exact(request._get_current_object(), name, matcher)

    def _get_store(self) -> Store:
        if self.store is None:
            raise ConfigurationError('Sessions has no store; call init_app')
        return self.store

    def save(self, response: Response) -> None:
        """Save every session used during the current request."""
        registry.save(request._get_current_object(), response)

    def save_on_response(self, response: Response) -> Response:
        """Save sessions before ``response`` is sent."""
        try:
            self.save(response)
        except MultiError as e:
            logger.error('Failed to save sessions: %s', e)
            raise
        return response

    def session_debug(self) -> None:
        """
        Set the session loggers to DEBUG.

        This is useful to see why a cookie was not accepted.
        """
        for log in (logger, registry.logger, cookie.logger,
                    filesystem.logger):
            log.setLevel(logging.DEBUG)


def current_sessions() -> Sessions:
    """Get the :class:`Sessions` extension of the current application."""
    try:
        sessions: Sessions = current_app.config[EXTENSION_KEY]
    except KeyError as e:
        raise ConfigurationError('Sessions is not initialized') from e
    return sessions


def current_store() -> Store:
    """Get the session store of the current application."""
    return current_sessions()._get_store()
