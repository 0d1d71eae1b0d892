"""
Merkle tree root computation over an ordered list of leaf hashes.

Each pass walks the list left to right, combining consecutive pairs with
dot(); a trailing element without a partner is carried to the next pass
unchanged. Passes repeat until a single hash remains. Leaves are never
sorted, so the same set of leaves in a different order may yield a
different root.
"""

from typing import Iterable, List

from ledgerproof.app.services.pair_hash import dot


def _combine_pass(hashes: List[bytes]) -> List[bytes]:
    combined = []
    it = iter(hashes)
    for left in it:
        right = next(it, None)
        if right is None:
            combined.append(left)
        else:
            combined.append(dot(left, right))
    return combined


def merkle_root(leaves: Iterable[bytes]) -> bytes:
    """
    Calculate the root hash of a Merkle tree whose base is ``leaves``.

    Returns:
        The root hash, or b"" when there are no leaves
    """
    remaining = list(leaves)
    if not remaining:
        return b""
    remaining = _combine_pass(remaining)
    while len(remaining) > 1:
        remaining = _combine_pass(remaining)
    return remaining[0]
