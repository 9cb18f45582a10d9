"""
tokenseal — encrypted, signed tokens for structured values.

A token is a single ASCII string that carries a serialized value (JSON by
default) encrypted with AES-256-CBC and authenticated with HMAC-SHA1:

    <28-char url-safe base64 MAC><8-char alnum nonce><hex ciphertext>

Per-token key and IV are derived from the encryption secret and the public
nonce with OpenSSL's MD5 EVP_BytesToKey; a second, encrypted nonce salts the
MAC key. Suitable for session cookies and signed tickets where the server
keeps no state. Keys are supplied by the caller; nothing here generates,
rotates, or stores them.
"""

__version__ = "0.1"

from .codec import TokenCodec, TokenParts, seal, split_token, unseal
from .errors import (
    AuthenticationError,
    DeserializationError,
    EntropyError,
    InvalidTokenError,
    MalformedTokenError,
    SerializationError,
    ShapeMismatchError,
    TokenSealError,
)
from .serializers import JSONSerializer, Serializer

__all__ = [
    "TokenCodec",
    "TokenParts",
    "seal",
    "unseal",
    "split_token",
    "JSONSerializer",
    "Serializer",
    "TokenSealError",
    "SerializationError",
    "DeserializationError",
    "ShapeMismatchError",
    "InvalidTokenError",
    "MalformedTokenError",
    "AuthenticationError",
    "EntropyError",
]
