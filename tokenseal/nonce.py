from __future__ import annotations

from Cryptodome.Random import random as _strong_random

from .constants import ALPHANUM
from .errors import EntropyError


def random_alnum(n: int) -> bytes:
    """Return ``n`` symbols drawn uniformly from the 62-character alphanumeric set.

    One integer is drawn in ``[0, 62**n)`` and written out in base 62, so every
    one of the ``62**n`` strings is equally likely (no modulo bias).
    """
    if n <= 0:
        return b""
    base = len(ALPHANUM)
    try:
        r = _strong_random.randrange(base ** n)
    except OSError as exc:
        raise EntropyError(f"Secure randomness source failed: {exc}") from exc
    out = bytearray(n)
    for i in range(n):
        r, sym = divmod(r, base)
        out[i] = ALPHANUM[sym]
    return bytes(out)


def is_alnum(data: bytes) -> bool:
    return all(b in ALPHANUM for b in data)
