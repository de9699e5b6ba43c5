"""
Flask configuration defaults for session storage.

Keys are prefixed with ``WEBSESSION_`` so that they do not collide with
Flask's own ``SESSION_COOKIE_*`` settings.
"""

import os

WEBSESSION_STORE = os.environ.get('WEBSESSION_STORE', 'cookie')
"""Either ``cookie`` or ``filesystem``."""

WEBSESSION_AUTH_KEY = os.environ.get('WEBSESSION_AUTH_KEY')
"""Key used to sign session cookies. Required to build a store."""

WEBSESSION_ENCRYPTION_KEY = os.environ.get('WEBSESSION_ENCRYPTION_KEY')
"""Optional key used to encrypt session cookies; 16, 24 or 32 bytes."""

WEBSESSION_KEY_PAIRS = [(WEBSESSION_AUTH_KEY, WEBSESSION_ENCRYPTION_KEY)] \
    if WEBSESSION_AUTH_KEY else []
"""
Key pairs to use, newest first.

Set this in the application config to rotate keys, e.g.
``[(new_auth, new_encryption), (old_auth, old_encryption)]``.
"""

WEBSESSION_FILESYSTEM_PATH = os.environ.get('WEBSESSION_FILESYSTEM_PATH')
"""Directory for session files. Defaults to the temporary directory."""

WEBSESSION_MAX_AGE = os.environ.get('WEBSESSION_MAX_AGE', '2592000')
WEBSESSION_COOKIE_PATH = os.environ.get('WEBSESSION_COOKIE_PATH', '/')
WEBSESSION_COOKIE_DOMAIN = os.environ.get('WEBSESSION_COOKIE_DOMAIN')
WEBSESSION_COOKIE_SECURE = \
    os.environ.get('WEBSESSION_COOKIE_SECURE', '0') == '1'
WEBSESSION_COOKIE_HTTPONLY = \
    os.environ.get('WEBSESSION_COOKIE_HTTPONLY', '1') == '1'
WEBSESSION_COOKIE_SAMESITE = os.environ.get('WEBSESSION_COOKIE_SAMESITE')

WEBSESSION_SAVE_ON_RESPONSE = \
    os.environ.get('WEBSESSION_SAVE_ON_RESPONSE', '0') == '1'
"""Save every session used during a request when the response is sent."""

WEBSESSION_DEBUG = os.environ.get('WEBSESSION_DEBUG', '0') == '1'
"""Log session handling at DEBUG level. Not for long-term use."""
