"""
Journal verification endpoints.

These handlers decode journal documents from request bodies and hand them to
the verification services. Malformed input is rejected with 400 by the
application's MalformedInputError handler; a hash mismatch is a normal
response with ``valid: false`` and a failures list.
"""

import logging
import os
import uuid
from fastapi import APIRouter, HTTPException, Request
from typing import Dict, Any
from slowapi import Limiter
from slowapi.util import get_remote_address

from ledgerproof.app.errors import ValidationMismatchError
from ledgerproof.app.models.journal import parse_block, parse_digest, parse_revision
from ledgerproof.app.models.requests import (
    BlockVerificationRequest,
    ChainVerificationRequest,
    ProofVerificationRequest,
    RevisionVerificationRequest,
    StreamVerificationRequest,
)
from ledgerproof.app.routes.verify_utils import fail, fail_from_mismatch
from ledgerproof.app.services.block_validator import verify_block, verify_revision
from ledgerproof.app.services.chain_validator import verify_chain
from ledgerproof.app.services.hashing import from_base64, hash_prefix, require_hash
from ledgerproof.app.services.proof import verify
from ledgerproof.app.services.stream_assembler import validate_stream_records

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/verify", tags=["verification"])


def get_verify_limiter():
    """Create rate limiter that respects test mode environment variables."""
    disable_limits = (
        os.environ.get("ENV") == "TEST" or os.environ.get("DISABLE_RATE_LIMITS") == "1"
    )

    if disable_limits:
        return Limiter(key_func=lambda: str(uuid.uuid4()), enabled=False)
    else:
        return Limiter(key_func=get_remote_address)


limiter = get_verify_limiter()


def max_chain_blocks() -> int:
    return int(os.environ.get("LEDGERPROOF_MAX_CHAIN_BLOCKS", "10000"))


def _check_size(count: int) -> None:
    limit = max_chain_blocks()
    if count > limit:
        raise HTTPException(
            status_code=413,
            detail={
                "error": "too_many_blocks",
                "message": f"At most {limit} blocks can be verified per request",
            },
        )


@router.post("/proof")
@limiter.limit("100/minute")
async def verify_proof(request: Request, req_body: ProofVerificationRequest) -> Dict[str, Any]:
    """
    Verify a leaf hash against a trusted digest using a proof.

    A mismatch is reported as ``verified: false``.
    """
    leaf_hash = require_hash(from_base64(req_body.leaf_hash, "leafHash"), "leafHash")
    digest = require_hash(from_base64(req_body.digest, "digest"), "digest")
    verified = verify(leaf_hash, digest, req_body.proof)
    result: Dict[str, Any] = {"verified": verified, "failures": []}
    if not verified:
        result["failures"].append(
            fail("proof", "not_verified", {"leaf_prefix": hash_prefix(leaf_hash)})
        )
    return result


@router.post("/revision")
@limiter.limit("100/minute")
async def verify_revision_endpoint(request: Request, req_body: RevisionVerificationRequest) -> Dict[str, Any]:
    """Verify a document revision's own hash, then its proof against the digest."""
    revision = parse_revision(req_body.revision)
    ledger_digest = parse_digest(req_body.digest)
    try:
        verified = verify_revision(revision, ledger_digest.digest, req_body.proof)
    except ValidationMismatchError as exc:
        return {"verified": False, "failures": [fail_from_mismatch(exc)]}
    failures = [] if verified else [fail("proof", "not_verified")]
    return {"verified": verified, "failures": failures}


@router.post("/block")
@limiter.limit("100/minute")
async def verify_block_endpoint(request: Request, req_body: BlockVerificationRequest) -> Dict[str, Any]:
    """Validate a single journal block's internal hash consistency."""
    block = parse_block(req_body.block)
    try:
        verify_block(block)
    except ValidationMismatchError as exc:
        logger.info("Block %s failed verification: %s", block.block_address, exc.check)
        return {"valid": False, "block_address": str(block.block_address), "failures": [fail_from_mismatch(exc)]}
    return {"valid": True, "block_address": str(block.block_address), "failures": []}


@router.post("/chain")
@limiter.limit("20/minute")
def verify_chain_endpoint(request: Request, req_body: ChainVerificationRequest) -> Dict[str, Any]:
    """Validate every block and the hash chain linking them."""
    _check_size(len(req_body.blocks))
    blocks = [parse_block(b) for b in req_body.blocks]
    try:
        report = verify_chain(blocks)
    except ValidationMismatchError as exc:
        logger.info("Hash chain failed verification: %s", exc.message)
        return {"valid": False, "block_count": len(blocks), "failures": [fail_from_mismatch(exc)]}
    return {
        "valid": True,
        "block_count": report.block_count,
        "tip_block_hash_prefix": hash_prefix(report.tip_block_hash),
        "failures": [],
    }


@router.post("/stream")
@limiter.limit("20/minute")
def verify_stream_endpoint(request: Request, req_body: StreamVerificationRequest) -> Dict[str, Any]:
    """Reassemble blocks from stream records and validate their hash chain."""
    _check_size(len(req_body.records))
    try:
        report = validate_stream_records(req_body.records, stream_id=req_body.stream_id)
    except ValidationMismatchError as exc:
        return {"valid": False, "failures": [fail_from_mismatch(exc)]}
    return {
        "valid": True,
        "block_count": report.block_count,
        "tip_block_hash_prefix": hash_prefix(report.tip_block_hash),
        "failures": [],
    }
