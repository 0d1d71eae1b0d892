"""
Hash chain validation over an ordered sequence of journal blocks.

Each block is first validated on its own (block_validator.verify_block), then
linked to its predecessor:

  blocks[i].previousBlockHash == blocks[i-1].blockHash
  dot(blocks[i].entriesHash, blocks[i-1].blockHash) == blocks[i].blockHash

The second check repeats the block hash computation against the predecessor's
hash so that a block constructed without going through verify_block still
cannot pass.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ledgerproof.app.errors import ValidationMismatchError
from ledgerproof.app.models.journal import BlockAddress, JournalBlock
from ledgerproof.app.services.block_validator import verify_block
from ledgerproof.app.services.hashing import hashes_equal
from ledgerproof.app.services.pair_hash import dot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainReport:
    block_count: int
    first_address: Optional[BlockAddress] = None
    last_address: Optional[BlockAddress] = None
    tip_block_hash: Optional[bytes] = None


def verify_link(previous: JournalBlock, block: JournalBlock) -> None:
    """
    Check that ``block`` is chained to ``previous``.

    Raises:
        ValidationMismatchError: If the link is broken
    """
    if not hashes_equal(previous.block_hash, block.previous_block_hash):
        raise ValidationMismatchError(
            "previous_block_hash",
            "Previous block hash doesn't match",
            block_address=block.block_address,
            expected=previous.block_hash,
            computed=block.previous_block_hash,
        )
    computed = dot(block.entries_hash, previous.block_hash)
    if not hashes_equal(computed, block.block_hash):
        raise ValidationMismatchError(
            "chain_link",
            "Block hash doesn't match entriesHash dot previousBlockHash, the chain is broken",
            block_address=block.block_address,
            expected=block.block_hash,
            computed=computed,
        )


def verify_chain(blocks: Iterable[JournalBlock]) -> ChainReport:
    """
    Validate every block and every link between consecutive blocks.

    An empty sequence is trivially valid.

    Raises:
        ValidationMismatchError: On the first invalid block or broken link
    """
    previous: Optional[JournalBlock] = None
    first: Optional[JournalBlock] = None
    count = 0

    for block in blocks:
        verify_block(block)
        if previous is not None:
            verify_link(previous, block)
        else:
            first = block
        previous = block
        count += 1

    if previous is None:
        return ChainReport(block_count=0)

    logger.info(
        "Hash chain verified: %d block(s) from %s to %s",
        count, first.block_address, previous.block_address,
    )
    return ChainReport(
        block_count=count,
        first_address=first.block_address,
        last_address=previous.block_address,
        tip_block_hash=previous.block_hash,
    )
