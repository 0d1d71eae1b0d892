#!/usr/bin/env python3
"""
Journal Integrity Verifier

Verifies journal data offline:

  chain   Validate every block of a journal export (JSON array or JSON Lines)
          and the hash chain linking consecutive blocks.
  proof   Verify a revision or block hash against a trusted ledger digest
          using a proof.

Usage:
    python tools/verify_journal.py chain --blocks FILE [--json] [--verbose]
    python tools/verify_journal.py proof --leaf-hash B64 --digest B64 --proof TEXT|@FILE [--json]

Exit codes:
    0  PASS  - chain intact / proof verified
    1  FAIL  - hash mismatch, chain break, or proof not verified
    2  ERROR - unreadable file or malformed input
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

# Allow running as `python tools/verify_journal.py` without setting
# PYTHONPATH manually: insert the repo root so ledgerproof imports resolve.
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from ledgerproof.app.errors import MalformedInputError, ValidationMismatchError  # noqa: E402
from ledgerproof.app.models.journal import parse_blocks_text  # noqa: E402
from ledgerproof.app.services.chain_validator import verify_chain  # noqa: E402
from ledgerproof.app.services.hashing import from_base64, hash_prefix, require_hash  # noqa: E402
from ledgerproof.app.services.proof import parse_proof, verify  # noqa: E402

logger = logging.getLogger("verify_journal")


# ---------------------------------------------------------------------------
# Verification commands
# ---------------------------------------------------------------------------


def verify_chain_file(path: str) -> Dict[str, Any]:
    """Verify a block file. Returns a result dict with status PASS/FAIL/ERROR."""
    base: Dict[str, Any] = {
        "command": "chain",
        "source": path,
        "total_blocks": 0,
        "failure": None,
        "valid": False,
    }

    try:
        with open(path, "r", encoding="utf-8") as f:
            blocks = parse_blocks_text(f.read())
    except OSError as exc:
        return {**base, "status": "ERROR", "error": f"Cannot read {path}: {exc}"}
    except MalformedInputError as exc:
        return {**base, "status": "ERROR", "error": exc.message, "field": exc.field}

    base["total_blocks"] = len(blocks)
    for index, block in enumerate(blocks):
        logger.debug("Block %d/%d: %s", index + 1, len(blocks), block.block_address)

    try:
        report = verify_chain(blocks)
    except ValidationMismatchError as exc:
        return {
            **base,
            "status": "FAIL",
            "failure": {
                "check": exc.check,
                "reason": exc.message,
                "block_address": str(exc.block_address) if exc.block_address is not None else None,
                "expected_prefix": hash_prefix(exc.expected),
                "computed_prefix": hash_prefix(exc.computed),
            },
        }
    except MalformedInputError as exc:
        return {**base, "status": "ERROR", "error": exc.message, "field": exc.field}

    return {
        **base,
        "status": "PASS",
        "valid": True,
        "first_block": str(report.first_address) if report.first_address else None,
        "last_block": str(report.last_address) if report.last_address else None,
        "tip_block_hash_prefix": hash_prefix(report.tip_block_hash),
    }


def _read_proof_arg(value: str) -> str:
    if value.startswith("@"):
        with open(value[1:], "r", encoding="utf-8") as f:
            return f.read()
    return value


def verify_proof_args(leaf_hash: str, digest: str, proof: str) -> Dict[str, Any]:
    """Verify a leaf against a digest. Returns a result dict with status PASS/FAIL/ERROR."""
    base: Dict[str, Any] = {"command": "proof", "valid": False}
    try:
        leaf = require_hash(from_base64(leaf_hash, "leaf-hash"), "leaf-hash")
        trusted = require_hash(from_base64(digest, "digest"), "digest")
        parsed = parse_proof(_read_proof_arg(proof))
        verified = verify(leaf, trusted, parsed)
    except OSError as exc:
        return {**base, "status": "ERROR", "error": f"Cannot read proof: {exc}"}
    except MalformedInputError as exc:
        return {**base, "status": "ERROR", "error": exc.message, "field": exc.field}

    return {
        **base,
        "status": "PASS" if verified else "FAIL",
        "valid": verified,
        "proof_length": len(parsed),
        "leaf_prefix": hash_prefix(leaf),
    }


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Verify ledger journal blocks, hash chains and proofs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0  PASS  - chain intact / proof verified
  1  FAIL  - mismatch, chain break, or proof not verified
  2  ERROR - unreadable file or malformed input
""",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Output indented JSON to stdout",
    )
    common.add_argument(
        "--verbose",
        action="store_true",
        help="Log block-by-block progress to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    chain = sub.add_parser("chain", parents=[common], help="Validate a journal block file")
    chain.add_argument("--blocks", required=True, help="JSON array or JSON Lines file of blocks")

    proof = sub.add_parser("proof", parents=[common], help="Verify a hash against a digest with a proof")
    proof.add_argument("--leaf-hash", dest="leaf_hash", required=True, help="Base64 revision or block hash")
    proof.add_argument("--digest", required=True, help="Base64 ledger digest")
    proof.add_argument("--proof", required=True, help="Proof text, or @FILE to read it from a file")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else os.environ.get("LEDGERPROOF_LOG_LEVEL", "INFO")
    logging.basicConfig(stream=sys.stderr, level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "chain":
        result = verify_chain_file(args.blocks)
    else:
        result = verify_proof_args(args.leaf_hash, args.digest, args.proof)

    print(json.dumps(result, indent=2 if args.json_output else None))

    status = result.get("status", "FAIL")
    if status == "PASS":
        return 0
    if status == "ERROR":
        return 2
    return 1


if __name__ == "__main__":
    sys.exit(main())
