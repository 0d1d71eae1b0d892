"""
Request models for the verification API.

Hashes and nested journal documents are accepted in their wire form and
decoded by the route handlers, so decoding failures surface as
malformed-input errors naming the offending field.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List, Union


class ProofVerificationRequest(BaseModel):
    """Request body for /v1/verify/proof."""
    leaf_hash: str = Field(..., alias="leafHash", description="Base64 hash of the revision or block being verified")
    digest: str = Field(..., description="Base64 trusted ledger digest")
    proof: Union[str, List[str]] = Field(..., description="Proof as Ion/JSON text or a list of base64 hashes")


class RevisionVerificationRequest(BaseModel):
    """Request body for /v1/verify/revision."""
    revision: Dict[str, Any] = Field(..., description="Revision document")
    digest: Dict[str, Any] = Field(..., description="Ledger digest with digestTipAddress")
    proof: Union[str, List[str]] = Field(..., description="Proof for the revision")


class BlockVerificationRequest(BaseModel):
    """Request body for /v1/verify/block."""
    block: Dict[str, Any] = Field(..., description="Journal block document")


class ChainVerificationRequest(BaseModel):
    """Request body for /v1/verify/chain."""
    blocks: List[Dict[str, Any]] = Field(default_factory=list, description="Journal blocks in chain order")


class StreamVerificationRequest(BaseModel):
    """Request body for /v1/verify/stream."""
    records: List[Dict[str, Any]] = Field(default_factory=list, description="Journal stream records")
    stream_id: Optional[str] = Field(default=None, alias="streamId", description="Only use records from this stream")
