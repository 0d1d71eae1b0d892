"""
The "dot" operator: order-independent combination of two hashes.

Two hashes are concatenated with the lesser one first, where "lesser" is
decided by comparing bytes as signed 8-bit integers starting from the last
byte down to byte 0. The concatenation is then hashed with SHA-256. Because
the ordering is canonical, dot(a, b) == dot(b, a), which lets a verifier
combine siblings without knowing which one was on the left.
"""

from ledgerproof.app.errors import MalformedInputError
from ledgerproof.app.services.hashing import HASH_LENGTH, digest


def _signed(b: int) -> int:
    return b - 256 if b > 127 else b


def compare_hashes(h1: bytes, h2: bytes) -> int:
    """
    Compare two hashes by their signed byte values in little-endian order.

    Returns:
        Negative, zero or positive, like a classic comparator

    Raises:
        MalformedInputError: If either hash is not exactly 32 bytes
    """
    if len(h1) != HASH_LENGTH or len(h2) != HASH_LENGTH:
        raise MalformedInputError("Invalid hash.", field="hash")
    for i in range(HASH_LENGTH - 1, -1, -1):
        diff = _signed(h1[i]) - _signed(h2[i])
        if diff != 0:
            return diff
    return 0


def dot(h1: bytes, h2: bytes) -> bytes:
    """
    Combine two hashes into one.

    An empty operand is the identity element: the other operand is returned
    unchanged. This lets the first block of a strand, which has no previous
    block hash, be chained the same way as every other block.
    """
    if len(h1) == 0:
        return h2
    if len(h2) == 0:
        return h1
    if compare_hashes(h1, h2) < 0:
        concatenated = h1 + h2
    else:
        concatenated = h2 + h1
    return digest(concatenated)
