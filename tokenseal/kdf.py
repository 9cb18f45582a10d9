from __future__ import annotations

import hashlib


def _md5(data: bytes) -> bytes:
    return hashlib.md5(data).digest()


def derive_key(password: bytes, length: int) -> bytes:
    """Stretch ``password`` into ``length`` bytes, OpenSSL ``EVP_BytesToKey`` style.

    Single MD5 iteration without salt, which is what ``openssl enc -md md5
    -nosalt`` does. Each block hashes the previous block followed by the
    password: D1 = MD5(pw), Di = MD5(Di-1 || pw).

    Tokens depend on this exact construction, so it cannot be swapped for a
    different KDF without changing the format.
    """
    if length <= 0:
        raise ValueError("Key length must be positive")
    out = bytearray()
    block = b""
    while len(out) < length:
        block = _md5(block + password)
        out += block
    return bytes(out[:length])


def split_key_material(material: bytes, key_size: int) -> tuple[bytes, bytes]:
    return material[:key_size], material[key_size:]
