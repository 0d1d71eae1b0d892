"""
Verification utility functions.

Provides helpers for consistent failure reporting in verification endpoints.
"""

from typing import Dict, Any, Optional

from ledgerproof.app.errors import ValidationMismatchError
from ledgerproof.app.services.hashing import hash_prefix


def fail(check: str, error: str, debug: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create a standardized failure entry for verification results.

    Enforces consistent schema across all verification failure paths:
    - Always includes 'check' and 'error' fields
    - Optionally includes 'debug' field with structured data

    Examples:
        >>> fail("entries_hash", "mismatch", {"expected_prefix": "abc", "computed_prefix": "def"})
        {'check': 'entries_hash', 'error': 'mismatch', 'debug': {'expected_prefix': 'abc', 'computed_prefix': 'def'}}

        >>> fail("proof", "not_verified")
        {'check': 'proof', 'error': 'not_verified'}
    """
    out = {"check": check, "error": error}
    if debug:
        out["debug"] = debug
    return out


def fail_from_mismatch(exc: ValidationMismatchError) -> Dict[str, Any]:
    """
    Failure entry for a ValidationMismatchError.

    Hash leakage policy: only 16-character hex prefixes are reported.
    """
    debug: Dict[str, Any] = {"message": exc.message}
    if exc.block_address is not None:
        debug["block_address"] = str(exc.block_address)
    if exc.expected is not None or exc.computed is not None:
        debug["expected_prefix"] = hash_prefix(exc.expected)
        debug["computed_prefix"] = hash_prefix(exc.computed)
    return fail(exc.check, "mismatch", debug)
