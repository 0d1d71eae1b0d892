"""
Rebuild journal blocks from journal stream records.

A stream delivers a block as one BLOCK_SUMMARY record (revision summaries
only) plus one REVISION_DETAILS record per revision. Blocks are reassembled by
looking each summarized revision up by hash, then ordered by sequence number
so the hash chain can be validated.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from ledgerproof.app.errors import MalformedInputError
from ledgerproof.app.models.journal import JournalBlock, Revision
from ledgerproof.app.models.streams import (
    BlockSummaryRecord,
    RevisionDetailsRecord,
    StreamRecord,
    parse_stream_record,
)
from ledgerproof.app.services.chain_validator import ChainReport, verify_chain
from ledgerproof.app.services.hashing import to_base64

logger = logging.getLogger(__name__)


def _select(records: Iterable[StreamRecord], stream_id: Optional[str]) -> List[StreamRecord]:
    if stream_id is None:
        return list(records)
    return [r for r in records if stream_id in r.qldb_stream_arn]


def summary_to_block(summary: BlockSummaryRecord, revisions_by_hash: Dict[bytes, Revision]) -> JournalBlock:
    """
    Build a JournalBlock from a block summary and the known revisions.

    Raises:
        MalformedInputError: If a summarized revision was not streamed
    """
    revisions = []
    for revision_summary in summary.revision_summaries:
        revision = revisions_by_hash.get(revision_summary.hash)
        if revision is None:
            raise MalformedInputError(
                f"Cannot find revision by hash {to_base64(revision_summary.hash)}",
                field="revisionSummaries",
            )
        revisions.append(revision)

    return JournalBlock(
        blockAddress=summary.block_address,
        transactionId=summary.transaction_id,
        blockTimestamp=summary.block_timestamp,
        blockHash=summary.block_hash,
        entriesHash=summary.entries_hash,
        previousBlockHash=summary.previous_block_hash,
        entriesHashList=summary.entries_hash_list,
        transactionInfo=summary.transaction_info,
        revisions=tuple(revisions),
    )


def assemble_blocks(records: Iterable[StreamRecord], stream_id: Optional[str] = None) -> List[JournalBlock]:
    """
    Turn stream records into journal blocks ordered by sequence number.

    Duplicate block summaries (streams deliver at least once) are collapsed.
    CONTROL records are ignored.
    """
    selected = _select(records, stream_id)

    revisions_by_hash: Dict[bytes, Revision] = {}
    for record in selected:
        if isinstance(record.payload, RevisionDetailsRecord):
            revision = record.payload.revision
            revisions_by_hash[revision.hash] = revision

    summaries: Dict[str, BlockSummaryRecord] = {}
    for record in selected:
        if isinstance(record.payload, BlockSummaryRecord):
            key = json.dumps(
                [record.payload.to_wire(), record.payload.transaction_info.hashable()], sort_keys=True
            )
            summaries.setdefault(key, record.payload)

    blocks = [summary_to_block(s, revisions_by_hash) for s in summaries.values()]
    blocks.sort(key=lambda b: b.block_address.sequence_no)
    logger.debug(
        "Assembled %d block(s) from %d stream record(s)", len(blocks), len(selected)
    )
    return blocks


def validate_stream_records(records: Iterable[Any], stream_id: Optional[str] = None) -> ChainReport:
    """
    Decode (if needed), assemble and hash-chain validate stream records.

    Raises:
        MalformedInputError: If a record cannot be decoded or assembled
        ValidationMismatchError: If the reassembled chain is invalid
    """
    decoded = [r if isinstance(r, StreamRecord) else parse_stream_record(r) for r in records]
    return verify_chain(assemble_blocks(decoded, stream_id))
