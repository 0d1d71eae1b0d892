"""
Journal stream record models.

A stream record wraps one of three payload kinds, selected by ``recordType``:

- CONTROL: stream lifecycle markers (CREATED, COMPLETED, CANCELLED)
- BLOCK_SUMMARY: a block without revision bodies, only revision summaries
- REVISION_DETAILS: one full revision plus the table it belongs to

The mapping from recordType to payload model is explicit; unknown record
types are rejected with UnsupportedVariantError.
"""

from typing import Any, Dict, Optional, Tuple, Type, Union

from pydantic import Field, ValidationError

from ledgerproof.app.errors import MalformedInputError, UnsupportedVariantError
from ledgerproof.app.models.journal import (
    BlockAddress,
    Hash,
    JournalModel,
    OptionalHash,
    Revision,
    TransactionInfo,
    malformed,
)
from ledgerproof.app.models.records import RevisionData, decode_revision_data


class ControlRecord(JournalModel):
    control_record_type: str = Field(..., alias="controlRecordType")


class RevisionSummary(JournalModel):
    document_id: Optional[str] = Field(default=None, alias="documentId")
    hash: Hash


class BlockSummaryRecord(JournalModel):
    """Block summary: every block field except full revision bodies."""
    block_address: BlockAddress = Field(..., alias="blockAddress")
    transaction_id: str = Field(..., alias="transactionId")
    block_timestamp: str = Field(..., alias="blockTimestamp")
    block_hash: Hash = Field(..., alias="blockHash")
    entries_hash: Hash = Field(..., alias="entriesHash")
    previous_block_hash: OptionalHash = Field(default=b"", alias="previousBlockHash")
    entries_hash_list: Tuple[Hash, ...] = Field(..., alias="entriesHashList")
    transaction_info: TransactionInfo = Field(..., alias="transactionInfo")
    revision_summaries: Tuple[RevisionSummary, ...] = Field(default=(), alias="revisionSummaries")


class TableInfo(JournalModel):
    table_name: str = Field(..., alias="tableName")
    table_id: str = Field(..., alias="tableId")


class RevisionDetailsRecord(JournalModel):
    table_info: TableInfo = Field(..., alias="tableInfo")
    revision: Revision

    def typed_data(self) -> RevisionData:
        """Decode the revision data using the model registered for its table."""
        if self.revision.data is None:
            raise MalformedInputError("System revisions carry no data", field="revision.data")
        return decode_revision_data(self.table_info.table_name, self.revision.data)


StreamRecordPayload = Union[ControlRecord, BlockSummaryRecord, RevisionDetailsRecord]

RECORD_TYPES: Dict[str, Type[JournalModel]] = {
    "CONTROL": ControlRecord,
    "BLOCK_SUMMARY": BlockSummaryRecord,
    "REVISION_DETAILS": RevisionDetailsRecord,
}


class StreamRecord(JournalModel):
    qldb_stream_arn: str = Field(..., alias="qldbStreamArn")
    record_type: str = Field(..., alias="recordType")
    payload: StreamRecordPayload


def parse_stream_record(data: Any) -> StreamRecord:
    """
    Decode a stream record, choosing the payload model from ``recordType``.

    Raises:
        UnsupportedVariantError: For an unknown recordType
        MalformedInputError: For missing or malformed fields
    """
    if not isinstance(data, dict):
        raise MalformedInputError("Stream record must be an object", field="record")
    for key in ("qldbStreamArn", "recordType", "payload"):
        if key not in data:
            raise MalformedInputError(f"Stream record is missing required field: {key}", field=key)

    record_type = data["recordType"]
    payload_model = RECORD_TYPES.get(record_type)
    if payload_model is None:
        raise UnsupportedVariantError("record type", record_type)

    try:
        payload = payload_model.model_validate(data["payload"])
    except ValidationError as exc:
        raise malformed(exc, f"{record_type} payload") from exc

    try:
        return StreamRecord(
            qldbStreamArn=data["qldbStreamArn"],
            recordType=record_type,
            payload=payload,
        )
    except ValidationError as exc:
        raise malformed(exc, "stream record") from exc
