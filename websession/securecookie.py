"""
Authenticated and optionally encrypted cookie values.

A :class:`SecureCookie` serializes a value, optionally encrypts it with
AES-CTR, and wraps the result in a signed JWT whose claims bind the value to
the cookie name and to the time at which it was issued. This is the codec used
by the session stores; several codecs can be chained to support key rotation
(see :func:`codecs_from_pairs`, :func:`encode_multi` and
:func:`decode_multi`).
"""

import os
import binascii
from abc import ABC, abstractmethod
from base64 import urlsafe_b64encode, urlsafe_b64decode
from datetime import datetime
from typing import Any, List, Optional, Sequence, Union

import jwt
from pytz import UTC
from flask.json.tag import TaggedJSONSerializer
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .exceptions import DecodeError, EncodeError, ExpiredToken, MacInvalid, \
    MultiError

Key = Union[str, bytes]

ALGORITHM = 'HS256'
BLOCK_KEY_SIZES = (16, 24, 32)
IV_SIZE = 16

DEFAULT_MAX_AGE = 86400 * 30
DEFAULT_MAX_LENGTH = 4096


def _as_bytes(key: Key) -> bytes:
    if isinstance(key, str):
        return key.encode('utf-8')
    return key


def _now() -> int:
    """Get the current UNIX time."""
    return int(datetime.now(tz=UTC).timestamp())


def _check_keys(value: Any) -> None:
    """
    Reject mappings with non-string keys.

    JSON would turn them into strings, so the value would not load back
    unchanged.
    """
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodeError(f'mapping keys must be strings: {key!r}')
            _check_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_keys(item)


def generate_random_key(length: int) -> bytes:
    """Get ``length`` bytes from the operating system's secure generator."""
    return os.urandom(length)


class Codec(ABC):
    """Encodes and decodes named values for transport in a cookie."""

    @abstractmethod
    def encode(self, name: str, value: Any) -> str:
        """Encode ``value`` for the cookie ``name``."""

    @abstractmethod
    def decode(self, name: str, token: str) -> Any:
        """Decode a value previously encoded for the cookie ``name``."""


class SecureCookie(Codec):
    """
    Signs, and optionally encrypts, cookie values.

    Parameters
    ----------
    hash_key : str or bytes
        Key used to authenticate values with HMAC-SHA256. Required. A key of
        32 or 64 bytes is recommended.
    block_key : str or bytes
        Key used to encrypt values with AES. Optional; if given it must be
        16, 24 or 32 bytes long, selecting AES-128, AES-192 or AES-256.
    serializer : object
        Anything with ``dumps(value) -> str`` and ``loads(str) -> value``.
        Defaults to Flask's :class:`TaggedJSONSerializer`, which preserves
        tuples, bytes, datetimes and UUIDs across a round trip.

    Attributes
    ----------
    max_age : int
        Values issued more than this many seconds ago are rejected. Zero
        disables the check.
    min_age : int
        Values issued less than this many seconds ago are rejected. Zero
        disables the check.
    max_length : int
        Maximum length of an encoded value. Zero disables the check.

    """

    def __init__(self, hash_key: Key, block_key: Optional[Key] = None,
                 serializer: Any = None) -> None:
        if not hash_key:
            raise ValueError('hash key is not set')
        self._hash_key = _as_bytes(hash_key)
        self._block_key: Optional[bytes] = None
        if block_key:
            self._block_key = _as_bytes(block_key)
            if len(self._block_key) not in BLOCK_KEY_SIZES:
                raise ValueError(f'invalid block key size:'
                                 f' {len(self._block_key)}')
        self.serializer = serializer or TaggedJSONSerializer()
        self.max_age = DEFAULT_MAX_AGE
        self.min_age = 0
        self.max_length = DEFAULT_MAX_LENGTH

    def encode(self, name: str, value: Any) -> str:
        """
        Serialize, encrypt and sign ``value``.

        Parameters
        ----------
        name : str
            Name of the cookie; the signature covers it, so the token cannot
            be replayed under a different name.
        value : object
            Anything the serializer can handle.

        Returns
        -------
        str
            A token safe for use as a cookie value.

        Raises
        ------
        :class:`EncodeError`

        """
        _check_keys(value)
        try:
            data = self.serializer.dumps(value).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise EncodeError(f'could not serialize value: {e}') from e
        if self._block_key is not None:
            data = self._encrypt(data)
        claims = {
            'name': name,
            'iat': _now(),
            'val': urlsafe_b64encode(data).decode('ascii')
        }
        token: str = jwt.encode(claims, self._hash_key, algorithm=ALGORITHM)
        if self.max_length and len(token) > self.max_length:
            raise EncodeError('the value is too long')
        return token

    def decode(self, name: str, token: str) -> Any:
        """
        Verify, decrypt and deserialize ``token``.

        Raises
        ------
        :class:`MacInvalid`
            The signature does not match, or the token was issued for a
            different cookie name.
        :class:`ExpiredToken`
            The token is too old (or too new).
        :class:`DecodeError`
            The token is otherwise malformed.

        """
        if self.max_length and len(token) > self.max_length:
            raise DecodeError('the value is too long')
        try:
            claims = jwt.decode(token, self._hash_key, algorithms=[ALGORITHM],
                                options={'verify_iat': False})
        except jwt.exceptions.InvalidSignatureError as e:
            raise MacInvalid('the value is not valid') from e
        except jwt.exceptions.InvalidTokenError as e:
            raise DecodeError(f'the value could not be decoded: {e}') from e

        if claims.get('name') != name:
            raise MacInvalid('the value is not valid')
        try:
            issued_at = int(claims['iat'])
            payload = urlsafe_b64decode(claims['val'].encode('ascii'))
        except (KeyError, TypeError, ValueError, AttributeError,
                binascii.Error) as e:
            raise DecodeError('the value is malformed') from e

        now = _now()
        if self.min_age and issued_at > now - self.min_age:
            raise ExpiredToken('timestamp is too new')
        if self.max_age and issued_at < now - self.max_age:
            raise ExpiredToken('expired timestamp')

        if self._block_key is not None:
            payload = self._decrypt(payload)
        try:
            return self.serializer.loads(payload.decode('utf-8'))
        except (TypeError, ValueError, KeyError) as e:
            raise DecodeError('the value could not be deserialized') from e

    def _encrypt(self, data: bytes) -> bytes:
        iv = generate_random_key(IV_SIZE)
        encryptor = Cipher(algorithms.AES(self._block_key),
                           modes.CTR(iv)).encryptor()
        return iv + encryptor.update(data) + encryptor.finalize()

    def _decrypt(self, data: bytes) -> bytes:
        if len(data) <= IV_SIZE:
            raise DecodeError('the value could not be decrypted')
        iv, ciphertext = data[:IV_SIZE], data[IV_SIZE:]
        decryptor = Cipher(algorithms.AES(self._block_key),
                           modes.CTR(iv)).decryptor()
        return decryptor.update(ciphertext) + decryptor.finalize()


def codecs_from_pairs(*keys: Optional[Key]) -> List[Codec]:
    """
    Build a list of :class:`SecureCookie` codecs from key pairs.

    Keys are given flattened, ``hash_key, block_key, hash_key, block_key``;
    the block key of the last pair may be omitted. The first codec is used to
    encode, and all of them are tried in order to decode, which allows keys to
    be rotated without invalidating sessions issued with the older ones.
    """
    codecs: List[Codec] = []
    for i in range(0, len(keys), 2):
        block_key = keys[i + 1] if i + 1 < len(keys) else None
        codecs.append(SecureCookie(keys[i], block_key))
    return codecs


def encode_multi(name: str, value: Any, codecs: Sequence[Codec]) -> str:
    """Encode ``value`` with the first codec that succeeds."""
    if not codecs:
        raise EncodeError('no codecs provided')
    errors: List[Exception] = []
    for codec in codecs:
        try:
            return codec.encode(name, value)
        except EncodeError as e:
            errors.append(e)
    raise MultiError(errors)


def decode_multi(name: str, token: str, codecs: Sequence[Codec]) -> Any:
    """Decode ``token`` with the first codec that succeeds."""
    if not codecs:
        raise DecodeError('no codecs provided')
    errors: List[Exception] = []
    for codec in codecs:
        try:
            return codec.decode(name, token)
        except DecodeError as e:
            errors.append(e)
    raise MultiError(errors)
