from __future__ import annotations

"""AES-256-CBC stage of the token format.

Every call builds its own cipher object from the per-token key and IV, so no
cipher state is shared between calls or threads. Padding is applied by the
caller (see ``tokenseal.padding``); the functions here only move whole blocks.
"""

from Cryptodome.Cipher import AES

from .constants import BLOCK_SIZE, IV_SIZE, KEY_SIZE
from .errors import MalformedTokenError


def _new_cipher(key: bytes, iv: bytes):
    return AES.new(key, AES.MODE_CBC, iv=iv)


def encrypt(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """Encrypt block-aligned ``plaintext``; output has the same length."""
    if len(key) != KEY_SIZE:
        raise ValueError(f"Key must be {KEY_SIZE} bytes")
    if len(iv) != IV_SIZE:
        raise ValueError(f"IV must be {IV_SIZE} bytes")
    if len(plaintext) % BLOCK_SIZE:
        raise ValueError("Plaintext must be padded to the AES block size")
    return _new_cipher(key, iv).encrypt(plaintext)


def decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    """Decrypt ``ciphertext``; every length problem is a malformed token."""
    if len(key) != KEY_SIZE:
        raise MalformedTokenError(f"Key must be {KEY_SIZE} bytes")
    if len(iv) != IV_SIZE:
        raise MalformedTokenError(f"IV must be {IV_SIZE} bytes")
    if not ciphertext:
        raise MalformedTokenError("Ciphertext is empty")
    if len(ciphertext) % BLOCK_SIZE:
        raise MalformedTokenError("Ciphertext length is not a multiple of the AES block size")
    try:
        return _new_cipher(key, iv).decrypt(ciphertext)
    except ValueError as exc:
        raise MalformedTokenError(f"Decryption failed: {exc}") from exc
