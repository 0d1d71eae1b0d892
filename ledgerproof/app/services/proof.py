"""
Proof verification against a trusted ledger digest.

A proof is the ordered list of internal hashes on the path from a leaf (a
revision hash or a block hash) to the root of the ledger's Merkle tree.
Folding the leaf through the proof with dot() must reproduce the digest.

Wire format
-----------
Proofs are Ion values, decoded with the Ion library:

  Ion text:  [{{<base64>}}, {{<base64>}}, ...]
  JSON:      ["<base64>", "<base64>", ...]   (JSON text is also valid Ion)
  Wrapped:   {IonText: "<either of the above>"}, as the ledger API returns it

Ion binary is accepted as bytes. Anything other than a list of 32-byte blobs
or base64 strings is malformed; no partial result is ever returned.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Sequence, Tuple, Union

from amazon.ion import simpleion
from amazon.ion.core import IonType
from amazon.ion.exceptions import IonException

from ledgerproof.app.errors import MalformedInputError
from ledgerproof.app.services.hashing import from_base64, hashes_equal, require_hash
from ledgerproof.app.services.pair_hash import dot

logger = logging.getLogger(__name__)

_ION_BINARY_VERSION_MARKER = b"\xe0\x01\x00\xea"


@dataclass(frozen=True)
class Proof:
    internal_hashes: Tuple[bytes, ...]

    def __len__(self) -> int:
        return len(self.internal_hashes)


ProofInput = Union[Proof, str, bytes, Sequence[Union[str, bytes]]]


def _load_ion(blob: Union[str, bytes]) -> Any:
    try:
        return simpleion.loads(blob)
    except (IonException, ValueError) as exc:
        raise MalformedInputError(f"Failed to parse a Proof: {exc}", field="proof") from exc


def _ion_elements(blob: Union[str, bytes]) -> list:
    if isinstance(blob, str) and not blob.strip():
        raise MalformedInputError("Failed to parse a Proof: empty input", field="proof")
    value = _load_ion(blob)
    if isinstance(value, Mapping) and isinstance(value.get("IonText"), str):
        value = _load_ion(value["IonText"])
    if not isinstance(value, list) or getattr(value, "ion_type", IonType.LIST) is not IonType.LIST:
        raise MalformedInputError("Failed to parse a Proof: expected a list", field="proof")
    return list(value)


def _decode_elements(elements: Sequence[Union[str, bytes]]) -> Tuple[bytes, ...]:
    hashes = []
    for index, element in enumerate(elements):
        field = f"proof[{index}]"
        if isinstance(element, (bytes, bytearray)):
            value = bytes(element)
        elif isinstance(element, str):
            value = from_base64(str(element), field=field)
        else:
            raise MalformedInputError(
                f"{field} must be a blob or base64 string, got {type(element).__name__}", field=field
            )
        hashes.append(require_hash(value, field))
    return tuple(hashes)


def parse_proof(blob: ProofInput) -> Proof:
    """
    Decode a proof from its wire representation.

    Raises:
        MalformedInputError: If the proof cannot be decoded
    """
    if isinstance(blob, Proof):
        return blob
    if isinstance(blob, (bytes, bytearray)):
        blob = bytes(blob)
        if not blob.startswith(_ION_BINARY_VERSION_MARKER):
            try:
                blob = blob.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedInputError("Failed to parse a Proof: not UTF-8 text", field="proof") from exc

    if isinstance(blob, (str, bytes)):
        elements = _ion_elements(blob)
    elif isinstance(blob, (list, tuple)):
        elements = list(blob)
    else:
        raise MalformedInputError(
            f"Failed to parse a Proof from {type(blob).__name__}", field="proof"
        )

    return Proof(internal_hashes=_decode_elements(elements))


def build_candidate_digest(proof: Proof, leaf_hash: bytes) -> bytes:
    """Fold the leaf hash through the proof's internal hashes, in order."""
    candidate = leaf_hash
    for internal_hash in proof.internal_hashes:
        candidate = dot(candidate, internal_hash)
    return candidate


def verify(leaf_hash: bytes, digest: bytes, proof_blob: ProofInput) -> bool:
    """
    Verify a leaf against a trusted ledger digest.

    Returns:
        True if the candidate digest built from the proof equals ``digest``.
        A mismatch is a normal negative outcome, not an error.

    Raises:
        MalformedInputError: If the proof cannot be decoded or a hash has
            the wrong length
    """
    require_hash(leaf_hash, "leaf_hash")
    require_hash(digest, "digest")
    proof = parse_proof(proof_blob)
    candidate = build_candidate_digest(proof, leaf_hash)
    verified = hashes_equal(candidate, digest)
    logger.debug(
        "Proof with %d internal hashes %s", len(proof), "verified" if verified else "not verified"
    )
    return verified
