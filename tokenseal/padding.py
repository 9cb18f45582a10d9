from __future__ import annotations

from Cryptodome.Util import Padding as _Padding

from .constants import BLOCK_SIZE
from .errors import MalformedTokenError


def pad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """PKCS#7 pad ``data``; aligned input still gets a full block of padding."""
    return _Padding.pad(data, block_size, style="pkcs7")


def unpad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    # Cryptodome rejects empty/unaligned input, a zero or oversized length
    # byte, and pad bytes that disagree with the length byte.
    try:
        return _Padding.unpad(data, block_size, style="pkcs7")
    except ValueError as exc:
        raise MalformedTokenError(f"Bad padding: {exc}") from exc
