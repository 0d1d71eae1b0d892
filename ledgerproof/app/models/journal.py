"""
Journal data models.

These models mirror the documents returned by the ledger service and found in
journal exports: blocks, revisions, transaction info and digests. Hash fields
travel as base64 text on the wire and are held as raw bytes in memory.

All models are frozen; a block is decoded once and then only read.
"""

import copy
import json
from typing import Annotated, Any, Dict, Iterable, List, Optional, Tuple

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    PrivateAttr,
    Strict,
    ValidationError,
    model_validator,
)

from ledgerproof.app.errors import MalformedInputError
from ledgerproof.app.services.hashing import HASH_LENGTH, from_base64, to_base64


def _decode_hash(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return from_base64(value)
    raise ValueError(f"expected base64 string, got {type(value).__name__}")


def _require_length(value: bytes) -> bytes:
    if len(value) != HASH_LENGTH:
        raise ValueError(f"hash must be {HASH_LENGTH} bytes, got {len(value)}")
    return value


def _require_length_or_empty(value: bytes) -> bytes:
    if len(value) == 0:
        return value
    return _require_length(value)


_serialize_hash = PlainSerializer(to_base64, return_type=str, when_used="json")

Hash = Annotated[
    bytes, BeforeValidator(_decode_hash), AfterValidator(_require_length), _serialize_hash
]
# The first block of a strand has no predecessor.
OptionalHash = Annotated[
    bytes, BeforeValidator(_decode_hash), AfterValidator(_require_length_or_empty), _serialize_hash
]


class JournalModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """JSON-compatible dict using wire (camelCase) names, base64 hashes."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReceivedModel(JournalModel):
    """
    A model whose hash covers the document exactly as it was received.

    Decoding drops unknown keys and normalizes values, so hashing the model
    itself would let injected or coerced content slip past verification. The
    received dict is kept alongside and is what gets hashed.
    """
    _received: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    @model_validator(mode="wrap")
    @classmethod
    def _keep_received(cls, data: Any, handler):
        model = handler(data)
        if isinstance(data, dict) and model._received is None:
            model._received = copy.deepcopy(data)
        return model

    def hashable(self) -> Dict[str, Any]:
        """The received document, or the wire form for models built in code."""
        if self._received is not None:
            return self._received
        return self.to_wire()


StrictStr = Annotated[str, Strict()]
StrictInt = Annotated[int, Strict()]


def malformed(exc: ValidationError, what: str) -> MalformedInputError:
    """Convert a pydantic ValidationError into a MalformedInputError naming the field."""
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first["loc"]) or what
    return MalformedInputError(f"{what} is malformed at {loc}: {first['msg']}", field=loc)


class BlockAddress(JournalModel):
    """Position of a block: strand identifier plus sequence number."""
    strand_id: str = Field(..., alias="strandId", description="Strand identifier")
    sequence_no: int = Field(..., alias="sequenceNo", ge=0, lt=2**63, description="Sequence number within the strand")

    def __str__(self) -> str:
        return f"{self.strand_id}/{self.sequence_no}"


class RevisionMetadata(ReceivedModel):
    """Metadata of a document revision; hashed as received as part of the revision hash."""
    id: StrictStr = Field(..., description="Document identifier")
    version: StrictInt = Field(..., description="Version number in the document history")
    tx_time: StrictStr = Field(..., alias="txTime", description="Transaction time (ISO 8601, kept verbatim)")
    tx_id: StrictStr = Field(..., alias="txId", description="Transaction identifier")


class Revision(JournalModel):
    """
    A document revision as recorded in a journal block.

    User revisions carry blockAddress, metadata, hash and data. System
    revisions carry only a hash: they cannot be recomputed but still take
    part in the block's revisions Merkle tree.
    """
    block_address: Optional[BlockAddress] = Field(default=None, alias="blockAddress")
    metadata: Optional[RevisionMetadata] = Field(default=None)
    hash: Hash = Field(..., description="Declared revision hash")
    data: Optional[Dict[str, Any]] = Field(default=None, description="User data of the revision")

    @model_validator(mode="after")
    def validate_required_fields(self):
        """User revisions must be complete; system revisions carry only a hash."""
        present = {
            "blockAddress": self.block_address is not None,
            "metadata": self.metadata is not None,
            "data": self.data is not None,
        }
        if any(present.values()) and not all(present.values()):
            missing = sorted(name for name, ok in present.items() if not ok)
            raise ValueError(f"Document is missing required fields: {missing}")
        return self

    @property
    def is_system(self) -> bool:
        return self.block_address is None and self.metadata is None and self.data is None


class StatementInfo(JournalModel):
    """A statement executed as part of a transaction."""
    statement: StrictStr
    start_time: StrictStr = Field(..., alias="startTime")
    statement_digest: Hash = Field(..., alias="statementDigest")


class DocumentInfo(JournalModel):
    """Table membership of a document touched by the transaction."""
    table_name: StrictStr = Field(..., alias="tableName")
    table_id: StrictStr = Field(..., alias="tableId")
    statements: Tuple[StrictInt, ...] = Field(..., description="Indexes into TransactionInfo.statements")


class TransactionInfo(ReceivedModel):
    """Statements of a transaction and the documents each one touched; hashed as received."""
    statements: Optional[Tuple[StatementInfo, ...]] = None
    documents: Optional[Dict[str, DocumentInfo]] = None


class JournalBlock(JournalModel):
    """
    A journal block recorded after a transaction committed.

    Hash relationships (checked by block_validator.verify_block):
      entriesHash = MerkleRoot(entriesHashList)
      blockHash   = dot(entriesHash, previousBlockHash)
      hash(transactionInfo) and MerkleRoot(revision hashes) are members of
      entriesHashList.
    """
    block_address: BlockAddress = Field(..., alias="blockAddress")
    transaction_id: str = Field(..., alias="transactionId")
    block_timestamp: str = Field(..., alias="blockTimestamp")
    block_hash: Hash = Field(..., alias="blockHash")
    entries_hash: Hash = Field(..., alias="entriesHash")
    previous_block_hash: OptionalHash = Field(default=b"", alias="previousBlockHash")
    entries_hash_list: Tuple[Hash, ...] = Field(..., alias="entriesHashList")
    transaction_info: TransactionInfo = Field(..., alias="transactionInfo")
    revisions: Optional[Tuple[Revision, ...]] = Field(default=None)


class LedgerDigest(JournalModel):
    """A trusted digest and the (opaque) address of the last block it covers."""
    digest: Hash
    digest_tip_address: Optional[BlockAddress] = Field(default=None, alias="digestTipAddress")


def parse_block(data: Any) -> JournalBlock:
    """
    Decode one journal block from a dict.

    Raises:
        MalformedInputError: If a required field is missing or malformed
    """
    try:
        return JournalBlock.model_validate(data)
    except ValidationError as exc:
        raise malformed(exc, "journal block") from exc


def parse_revision(data: Any) -> Revision:
    try:
        return Revision.model_validate(data)
    except ValidationError as exc:
        raise malformed(exc, "revision") from exc


def parse_digest(data: Any) -> LedgerDigest:
    try:
        return LedgerDigest.model_validate(data)
    except ValidationError as exc:
        raise malformed(exc, "ledger digest") from exc


def parse_blocks_text(text: str) -> List[JournalBlock]:
    """
    Decode blocks from a JSON array or from JSON Lines (one block per line).

    Raises:
        MalformedInputError: If the text is not valid JSON or a block is malformed
    """
    stripped = text.strip()
    if not stripped:
        return []
    try:
        if stripped.startswith("["):
            items: Iterable[Any] = json.loads(stripped)
        else:
            items = [json.loads(line) for line in stripped.splitlines() if line.strip()]
    except json.JSONDecodeError as exc:
        raise MalformedInputError(f"Block data is not valid JSON: {exc}", field="blocks") from exc
    return [parse_block(item) for item in items]
