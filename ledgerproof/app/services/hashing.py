"""
Hashing primitives for journal verification.

Every hash in the journal is a raw 32-byte SHA-256 digest. Human-readable
forms (hex, prefixed hex, base64) are only produced for reporting.
"""

import base64
import binascii
import hashlib
import logging
import random
from typing import Any, Optional

from ledgerproof.app.errors import EnvironmentalFailureError, MalformedInputError
from ledgerproof.app.services.c14n import json_c14n_v1

logger = logging.getLogger(__name__)

HASH_LENGTH = 32
BITS_PER_BYTE = 8


def _new_sha256():
    try:
        return hashlib.new("sha256")
    except ValueError as exc:
        logger.error("Failed to create SHA-256 message digest: %s", exc)
        raise EnvironmentalFailureError("SHA-256 message digest is unavailable") from exc


def digest(data: bytes) -> bytes:
    """
    Compute the raw SHA-256 digest of arbitrary bytes.

    Raises:
        EnvironmentalFailureError: If SHA-256 is not available in this runtime
    """
    md = _new_sha256()
    md.update(data)
    return md.digest()


def hashes_equal(h1: bytes, h2: bytes) -> bool:
    """Exact byte-for-byte comparison."""
    return bytes(h1) == bytes(h2)


def flip_random_bit(original: bytes, rng: Optional[random.Random] = None) -> bytes:
    """
    Return a copy of ``original`` with exactly one bit toggled.

    The byte position and the bit within it are chosen uniformly at random.
    Only used to demonstrate that verification rejects altered hashes.

    Raises:
        MalformedInputError: If ``original`` is empty
    """
    if not original:
        raise MalformedInputError("Array cannot be empty!", field="original")
    rng = rng or random
    position = rng.randrange(len(original))
    bit = rng.randrange(BITS_PER_BYTE)
    altered = bytearray(original)
    altered[position] ^= 1 << bit
    return bytes(altered)


def hash_value(obj: Any) -> bytes:
    """
    Hash a JSON-compatible structure over its canonical representation.

    This is how transaction info, revision metadata and revision data
    contribute to block hashes.
    """
    return digest(json_c14n_v1(obj))


def require_hash(value: bytes, field: str, allow_empty: bool = False) -> bytes:
    """
    Check that ``value`` is a 32-byte hash (or empty, when allowed).

    Raises:
        MalformedInputError: On any other length
    """
    if allow_empty and len(value) == 0:
        return value
    if len(value) != HASH_LENGTH:
        raise MalformedInputError(
            f"{field} must be {HASH_LENGTH} bytes, got {len(value)}", field=field
        )
    return value


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def from_base64(text: str, field: str = "hash") -> bytes:
    """
    Decode standard base64 text.

    Raises:
        MalformedInputError: If ``text`` is not valid base64
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedInputError(f"{field} is not valid base64: {exc}", field=field) from exc


def sha256_hex(data: bytes) -> str:
    """
    Compute SHA-256 hash and return as lowercase hexadecimal string.

    Example:
        >>> sha256_hex(b"hello")
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return digest(data).hex()


def hash_prefix(value: Optional[bytes], length: int = 16) -> str:
    """Hex prefix of a hash for reports and logs; full hashes are never emitted."""
    if value is None:
        return "none"
    if len(value) == 0:
        return "empty"
    return value.hex()[:length]
