"""
Error taxonomy for journal verification.

Three families of failure are distinguished:

- MalformedInputError: the input cannot be interpreted (wrong hash length,
  undecodable proof, missing document fields). Never retried.
- ValidationMismatchError: a recomputed hash does not match the declared one.
  Raised by block and chain validation, where a broken invariant means the
  journal was corrupted or tampered with. Proof verification reports the same
  condition as a plain ``False`` instead.
- EnvironmentalFailureError: the SHA-256 primitive is unavailable.
"""

from typing import Any, Optional


class LedgerProofError(Exception):
    """Base class for all verification errors."""


class MalformedInputError(LedgerProofError, ValueError):
    """Input could not be decoded or violates a structural requirement."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        out = {"error": "malformed_input", "message": self.message}
        if self.field:
            out["field"] = self.field
        return out


class UnsupportedVariantError(MalformedInputError):
    """A discriminant (table name, record type) has no known variant."""

    def __init__(self, kind: str, value: Any):
        super().__init__(f"Unsupported {kind}: {value}", field=kind)
        self.kind = kind
        self.value = value


class ValidationMismatchError(LedgerProofError):
    """
    A computed hash does not equal (or is not contained in) the declared value.

    Attributes:
        check: Short identifier of the failed invariant, e.g. "entries_hash"
        block_address: Address of the offending block, when known
        expected: Declared hash bytes, when a single value applies
        computed: Recomputed hash bytes, when a single value applies
    """

    def __init__(
        self,
        check: str,
        message: str,
        block_address: Any = None,
        expected: Optional[bytes] = None,
        computed: Optional[bytes] = None,
    ):
        if block_address is not None:
            message = f"{message} (block {block_address})"
        super().__init__(message)
        self.check = check
        self.message = message
        self.block_address = block_address
        self.expected = expected
        self.computed = computed


class EnvironmentalFailureError(LedgerProofError, RuntimeError):
    """The runtime cannot provide the cryptographic primitive."""
