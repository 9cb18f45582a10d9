from __future__ import annotations

import binascii
from dataclasses import dataclass
from typing import Any, Optional, Union

from . import auth, cipher
from .constants import (
    CIPHER_HEX_START,
    KEY_MATERIAL_SIZE,
    KEY_SIZE,
    MIN_TOKEN_LEN,
    NONCE_CRYPT_START,
    NONCE_LEN,
)
from .errors import InvalidTokenError, MalformedTokenError
from .kdf import derive_key, split_key_material
from .nonce import is_alnum, random_alnum
from .padding import pad, unpad
from .serializers import DEFAULT_SERIALIZER, Serializer, coerce


Secret = Union[str, bytes]


def _as_bytes(secret: Secret, name: str) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    if isinstance(secret, (bytes, bytearray, memoryview)):
        return bytes(secret)
    raise TypeError(f"{name} must be str or bytes, not {type(secret).__name__}")


@dataclass(frozen=True)
class TokenParts:
    digest: str
    nonce_crypt: bytes
    ciphertext: bytes

    @property
    def cipher_hex(self) -> str:
        return self.ciphertext.hex()


def split_token(token: Union[str, bytes]) -> TokenParts:
    """Split ``token`` into its three fields without touching any key.

    Raises MalformedTokenError for anything structurally wrong: non-ASCII
    text, fewer than 36 characters, a non-alphanumeric nonce field, and odd
    length or non-hex ciphertext.
    """
    if isinstance(token, (bytes, bytearray)):
        try:
            token = bytes(token).decode("ascii")
        except UnicodeDecodeError as exc:
            raise MalformedTokenError("Token is not ASCII") from exc
    if not isinstance(token, str):
        raise MalformedTokenError(f"Token must be str, not {type(token).__name__}")
    if not token.isascii():
        raise MalformedTokenError("Token is not ASCII")
    if len(token) < MIN_TOKEN_LEN:
        raise MalformedTokenError(f"Token shorter than {MIN_TOKEN_LEN} characters")

    digest = token[:NONCE_CRYPT_START]
    nonce_crypt = token[NONCE_CRYPT_START:CIPHER_HEX_START].encode("ascii")
    cipher_hex = token[CIPHER_HEX_START:]

    if not is_alnum(nonce_crypt):
        raise MalformedTokenError("Nonce field is not alphanumeric")
    # unhexlify, unlike bytes.fromhex, rejects embedded whitespace
    try:
        ciphertext = binascii.unhexlify(cipher_hex)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError(f"Ciphertext is not valid hex: {exc}") from exc
    return TokenParts(digest=digest, nonce_crypt=nonce_crypt, ciphertext=ciphertext)


class TokenCodec:
    """Encrypt-and-sign structured values into compact text tokens.

    Token layout::

        b64url(HMAC-SHA1(payload, validate_key || nonce_check))   28 chars
        nonce_crypt                                                 8 chars
        hex(AES-256-CBC(pad(nonce_check || payload)))               rest

    The AES key and IV come from ``EVP_BytesToKey(encrypt_key || nonce_crypt)``.
    Instances hold only the two secrets and are safe to share across threads.
    """

    def __init__(
        self,
        encrypt_key: Secret,
        validate_key: Secret,
        *,
        serializer: Optional[Serializer] = None,
        case_insensitive_digest: bool = False,
    ):
        self._encrypt_key = _as_bytes(encrypt_key, "encrypt_key")
        self._validate_key = _as_bytes(validate_key, "validate_key")
        self._serializer = serializer if serializer is not None else DEFAULT_SERIALIZER
        self._case_insensitive_digest = case_insensitive_digest

    @property
    def encrypt_key(self) -> bytes:
        return self._encrypt_key

    @property
    def validate_key(self) -> bytes:
        return self._validate_key

    def _key_iv(self, nonce_crypt: bytes) -> tuple[bytes, bytes]:
        material = derive_key(self._encrypt_key + nonce_crypt, KEY_MATERIAL_SIZE)
        return split_key_material(material, KEY_SIZE)

    def encode(self, value: Any) -> str:
        payload = self._serializer.dumps(value)

        nonce_check = random_alnum(NONCE_LEN)
        nonce_crypt = random_alnum(NONCE_LEN)

        key, iv = self._key_iv(nonce_crypt)
        encrypted = cipher.encrypt(key, iv, pad(nonce_check + payload))

        mac = auth.sign(payload, auth.digest_key(self._validate_key, nonce_check))
        return auth.encode_digest(mac) + nonce_crypt.decode("ascii") + encrypted.hex()

    def _open(self, token: Union[str, bytes]) -> bytes:
        """Run every check on ``token`` and return the authenticated payload bytes."""
        parts = split_token(token)
        if not self._case_insensitive_digest:
            # Reject a malformed digest before doing any crypto work.
            auth.decode_digest(parts.digest)

        key, iv = self._key_iv(parts.nonce_crypt)
        envelope = unpad(cipher.decrypt(key, iv, parts.ciphertext))
        if len(envelope) < NONCE_LEN:
            raise MalformedTokenError("Decrypted envelope is shorter than the check nonce")
        nonce_check, payload = envelope[:NONCE_LEN], envelope[NONCE_LEN:]

        auth.verify(
            payload,
            auth.digest_key(self._validate_key, nonce_check),
            parts.digest,
            case_insensitive=self._case_insensitive_digest,
        )
        return payload

    def decode(self, token: Union[str, bytes], shape: Any = None) -> Any:
        """Verify and decode ``token``, optionally checking the result against ``shape``.

        The MAC is checked before the payload reaches the deserializer.

        Raises:
            MalformedTokenError: structurally invalid token, bad hex or padding.
            AuthenticationError: digest mismatch (wrong keys or tampering).
            DeserializationError: authenticated payload is not valid for the serializer.
            ShapeMismatchError: payload does not fit ``shape``.
        """
        payload = self._open(token)
        return coerce(self._serializer.loads(payload), shape)

    def verify(self, token: Union[str, bytes]) -> bool:
        """Return True when ``token`` is well formed and authentic; the payload is not parsed."""
        try:
            self._open(token)
        except InvalidTokenError:
            return False
        return True


def seal(value: Any, encrypt_key: Secret, validate_key: Secret, **kwargs: Any) -> str:
    """Shorthand for ``TokenCodec(encrypt_key, validate_key, **kwargs).encode(value)``."""
    return TokenCodec(encrypt_key, validate_key, **kwargs).encode(value)


def unseal(
    token: Union[str, bytes],
    encrypt_key: Secret,
    validate_key: Secret,
    shape: Any = None,
    **kwargs: Any,
) -> Any:
    """Shorthand for ``TokenCodec(encrypt_key, validate_key, **kwargs).decode(token, shape)``."""
    return TokenCodec(encrypt_key, validate_key, **kwargs).decode(token, shape)
