"""
Journal block hash validation.

A block's hash commits to everything recorded in it:

  entriesHashList  = [hash(transactionInfo), MerkleRoot(revision hashes), <system hashes>...]
  entriesHash      = MerkleRoot(entriesHashList)
  blockHash        = dot(entriesHash, previousBlockHash)

verify_block() recomputes each of these from the block's contents and raises
ValidationMismatchError on the first one that does not hold. Internal-only
system metadata appears only as hashes (system revisions, extra members of
entriesHashList); those are trusted as leaves.
"""

import logging
from typing import Set

from ledgerproof.app.errors import ValidationMismatchError
from ledgerproof.app.models.journal import JournalBlock, Revision
from ledgerproof.app.services.hashing import hash_value, hashes_equal
from ledgerproof.app.services.merkle import merkle_root
from ledgerproof.app.services.pair_hash import dot
from ledgerproof.app.services.proof import ProofInput, verify

logger = logging.getLogger(__name__)


def compute_revision_hash(revision: Revision) -> bytes:
    """dot(hash(metadata), hash(data)) for a user revision."""
    metadata_hash = hash_value(revision.metadata.hashable())
    data_hash = hash_value(revision.data)
    return dot(metadata_hash, data_hash)


def verify_revision_hash(revision: Revision) -> None:
    """
    Check that a revision's declared hash matches its metadata and data.

    System revisions only contain a hash which cannot be recomputed; they are
    accepted as-is.

    Raises:
        ValidationMismatchError: If the recomputed hash differs
    """
    if revision.is_system:
        return
    computed = compute_revision_hash(revision)
    if not hashes_equal(computed, revision.hash):
        raise ValidationMismatchError(
            "revision_hash",
            "Hash entry of revision and computed hash of revision do not match",
            block_address=revision.block_address,
            expected=revision.hash,
            computed=computed,
        )


def compute_transaction_info_hash(block: JournalBlock) -> bytes:
    return hash_value(block.transaction_info.hashable())


def compute_revisions_hash(block: JournalBlock) -> bytes:
    return merkle_root(revision.hash for revision in block.revisions or ())


def compute_entries_hash(block: JournalBlock) -> bytes:
    return merkle_root(block.entries_hash_list)


def verify_block(block: JournalBlock) -> None:
    """
    Validate that the components of a journal block make up its block hash.

    Steps (the first failure aborts):
    1. hash(transactionInfo) is a member of entriesHashList
    2. every user revision's hash matches its metadata and data
    3. MerkleRoot(revision hashes) is a member of entriesHashList
       (skipped when the block has no revisions)
    4. MerkleRoot(entriesHashList) equals entriesHash
    5. dot(entriesHash, previousBlockHash) equals blockHash

    Raises:
        ValidationMismatchError: Naming the check that failed
    """
    address = block.block_address
    entries: Set[bytes] = set(block.entries_hash_list)

    if compute_transaction_info_hash(block) not in entries:
        raise ValidationMismatchError(
            "transaction_info_hash",
            "Block transactionInfo hash is not contained in the block entries hash list",
            block_address=address,
        )

    if block.revisions:
        for revision in block.revisions:
            verify_revision_hash(revision)
        if compute_revisions_hash(block) not in entries:
            raise ValidationMismatchError(
                "revisions_hash",
                "Block revisions list hash is not contained in the block entries hash list",
                block_address=address,
            )

    computed_entries_hash = compute_entries_hash(block)
    if not hashes_equal(computed_entries_hash, block.entries_hash):
        raise ValidationMismatchError(
            "entries_hash",
            "Computed entries hash does not match entries hash provided in the block",
            block_address=address,
            expected=block.entries_hash,
            computed=computed_entries_hash,
        )

    computed_block_hash = dot(computed_entries_hash, block.previous_block_hash)
    if not hashes_equal(computed_block_hash, block.block_hash):
        raise ValidationMismatchError(
            "block_hash",
            "Computed block hash does not match block hash provided in the block",
            block_address=address,
            expected=block.block_hash,
            computed=computed_block_hash,
        )

    logger.debug("Block %s hash verified", address)


def verify_revision(revision: Revision, digest: bytes, proof_blob: ProofInput) -> bool:
    """
    Verify a document revision against a ledger digest.

    The revision's own hash is checked first (a mismatch there means the
    revision itself is corrupt and raises); the declared hash is then used as
    the leaf of the proof.
    """
    verify_revision_hash(revision)
    return verify(revision.hash, digest, proof_blob)


def verify_block_with_proof(block: JournalBlock, digest: bytes, proof_blob: ProofInput) -> bool:
    """Verify a block against a ledger digest, using its block hash as the leaf."""
    return verify(block.block_hash, digest, proof_blob)
