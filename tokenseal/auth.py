from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

from .constants import DIGEST_SIZE, DIGEST_TEXT_LEN
from .errors import AuthenticationError, MalformedTokenError


_B64URL_CHARS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


def sign(message: bytes, key: bytes) -> bytes:
    """HMAC-SHA1 of ``message`` under ``key`` (20 bytes)."""
    return hmac.new(key, message, hashlib.sha1).digest()


def digest_key(validate_key: bytes, nonce_check: bytes) -> bytes:
    # Salting the key with the per-token nonce ties each MAC to one token.
    return validate_key + nonce_check


def encode_digest(mac: bytes) -> str:
    """Standard base64 with '+' -> '-' and '/' -> '_'; the '=' pad is kept."""
    return base64.urlsafe_b64encode(mac).decode("ascii")


def decode_digest(text: str) -> bytes:
    if len(text) != DIGEST_TEXT_LEN or text[-1] != "=":
        raise MalformedTokenError("Digest field has the wrong shape")
    if not all(c in _B64URL_CHARS for c in text[:-1]):
        raise MalformedTokenError("Digest field contains invalid characters")
    try:
        mac = base64.b64decode(text, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError(f"Digest field is not valid base64: {exc}") from exc
    if len(mac) != DIGEST_SIZE:
        raise MalformedTokenError("Digest field has the wrong length")
    # 27 chars carry 162 bits; the two spare bits must be zero.
    if encode_digest(mac) != text:
        raise MalformedTokenError("Digest field is not canonical base64")
    return mac


def verify(message: bytes, key: bytes, digest_text: str, *, case_insensitive: bool = False) -> None:
    """Recompute the MAC of ``message`` and compare it with ``digest_text``.

    By default the raw MAC bytes are compared in constant time. With
    ``case_insensitive`` the encoded digests are compared after case folding,
    which accepts exactly what older producers of this format accept.
    """
    expected = sign(message, key)
    if case_insensitive:
        if len(digest_text) != DIGEST_TEXT_LEN or not digest_text.isascii():
            raise MalformedTokenError("Digest field has the wrong shape")
        ok = hmac.compare_digest(encode_digest(expected).lower(), digest_text.lower())
    else:
        ok = hmac.compare_digest(expected, decode_digest(digest_text))
    if not ok:
        raise AuthenticationError("Token digest mismatch")
