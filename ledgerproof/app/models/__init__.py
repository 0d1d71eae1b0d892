"""
Pydantic models for journal verification.
"""

from ledgerproof.app.models.journal import (
    BlockAddress,
    DocumentInfo,
    JournalBlock,
    LedgerDigest,
    Revision,
    RevisionMetadata,
    StatementInfo,
    TransactionInfo,
)

__all__ = [
    "BlockAddress",
    "DocumentInfo",
    "JournalBlock",
    "LedgerDigest",
    "Revision",
    "RevisionMetadata",
    "StatementInfo",
    "TransactionInfo",
]
