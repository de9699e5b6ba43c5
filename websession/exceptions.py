"""Exceptions."""

from typing import List


class SessionError(RuntimeError):
    """Base class for session handling errors."""


class InvalidCookieName(SessionError, ValueError):
    """The session name cannot be used as a cookie name."""


class EncodeError(SessionError):
    """A value could not be serialized, encrypted or signed."""


class DecodeError(SessionError):
    """A cookie value is malformed and could not be decoded."""


class MacInvalid(DecodeError):
    """A cookie value failed signature verification; likely a forgery."""


class ExpiredToken(DecodeError):
    """A cookie value was issued outside of the accepted age window."""


class StorageError(SessionError):
    """Failed to read, write or remove a session in the backing storage."""


class MultiError(SessionError):
    """Collects the errors raised by a chain of operations."""

    def __init__(self, errors: List[Exception]) -> None:
        self.errors = list(errors)
        super(MultiError, self).__init__(
            '; '.join(str(e) for e in self.errors) or 'no errors'
        )


class ConfigurationError(SessionError):
    """A required configuration parameter is missing or invalid."""
