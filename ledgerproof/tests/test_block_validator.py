"""
Tests for journal block hash validation.

Covers the five block invariants, revision hash checks (including system
revisions) and block/revision verification against a digest with a proof.
"""

import json

import pytest

from ledgerproof.app.errors import ValidationMismatchError
from ledgerproof.app.models.journal import JournalBlock, parse_block, parse_revision
from ledgerproof.app.services.block_validator import (
    compute_entries_hash,
    compute_revision_hash,
    compute_transaction_info_hash,
    verify_block,
    verify_block_with_proof,
    verify_revision,
    verify_revision_hash,
)
from ledgerproof.app.services.hashing import digest, flip_random_bit, hash_value, to_base64
from ledgerproof.app.services.merkle import merkle_root
from ledgerproof.app.services.pair_hash import dot
from ledgerproof.tests.journal_factory import (
    make_block,
    make_block_dict,
    make_revision,
    make_system_revision,
    make_transaction_info,
)


def _scenario_block(**overrides) -> JournalBlock:
    """
    entriesHashList = [X, Y], entriesHash = dot(X, Y), previousBlockHash = P,
    blockHash = dot(dot(X, Y), P), no revisions, hash(transactionInfo) == X.
    """
    transaction_info = make_transaction_info(7)
    x = hash_value(transaction_info)
    y = digest(b"Y")
    p = digest(b"P")
    fields = {
        "blockAddress": {"strandId": "strand", "sequenceNo": 7},
        "transactionId": "tx-7",
        "blockTimestamp": "2024-03-01T10:00:07.000Z",
        "blockHash": to_base64(dot(dot(x, y), p)),
        "entriesHash": to_base64(dot(x, y)),
        "previousBlockHash": to_base64(p),
        "entriesHashList": [to_base64(x), to_base64(y)],
        "transactionInfo": transaction_info,
    }
    fields.update(overrides)
    return parse_block(fields)


# ---------------------------------------------------------------------------
# Scenario: two entries, no revisions
# ---------------------------------------------------------------------------


def test_scenario_block_verifies():
    verify_block(_scenario_block())


@pytest.mark.parametrize(
    "field,attribute,check",
    [
        ("blockHash", "block_hash", "block_hash"),
        ("entriesHash", "entries_hash", "entries_hash"),
        ("previousBlockHash", "previous_block_hash", "block_hash"),
    ],
)
def test_mutating_a_declared_hash_fails_with_named_check(field, attribute, check):
    block = _scenario_block()
    wire = block.to_wire()
    original = getattr(block, attribute)
    wire[field] = to_base64(flip_random_bit(original))

    with pytest.raises(ValidationMismatchError) as exc_info:
        verify_block(parse_block(wire))
    assert exc_info.value.check == check


def test_mutating_entries_list_fails_transaction_info_check():
    block = _scenario_block()
    wire = block.to_wire()
    wire["entriesHashList"][0] = to_base64(flip_random_bit(block.entries_hash_list[0]))

    with pytest.raises(ValidationMismatchError, match="transactionInfo hash") as exc_info:
        verify_block(parse_block(wire))
    assert exc_info.value.check == "transaction_info_hash"
    assert "strand/7" in str(exc_info.value)


def test_mutating_transaction_info_fails():
    block = _scenario_block()
    wire = block.to_wire()
    wire["transactionInfo"]["statements"][0]["statement"] = "DELETE FROM Vehicle"

    with pytest.raises(ValidationMismatchError) as exc_info:
        verify_block(parse_block(wire))
    assert exc_info.value.check == "transaction_info_hash"


def test_mutating_second_entry_fails_entries_check():
    block = _scenario_block()
    wire = block.to_wire()
    wire["entriesHashList"][1] = to_base64(digest(b"not Y"))

    with pytest.raises(ValidationMismatchError) as exc_info:
        verify_block(parse_block(wire))
    assert exc_info.value.check == "entries_hash"
    assert exc_info.value.expected == block.entries_hash


# ---------------------------------------------------------------------------
# Blocks with revisions
# ---------------------------------------------------------------------------


def test_factory_block_with_user_and_system_revisions_verifies():
    block = make_block(3, digest(b"previous"))
    assert len(block.revisions) == 2
    assert block.revisions[1].is_system
    verify_block(block)


def test_block_without_previous_hash_verifies():
    block = make_block(1)
    assert block.previous_block_hash == b""
    assert block.block_hash == compute_entries_hash(block)
    verify_block(block)


def test_block_with_empty_revision_list_skips_revision_check():
    verify_block(make_block(4, digest(b"prev"), revisions=[]))


def test_tampered_revision_data_fails_revision_check():
    wire = make_block_dict(5, digest(b"prev"))
    wire["revisions"][0]["data"]["Color"] = "Black"

    with pytest.raises(ValidationMismatchError) as exc_info:
        verify_block(parse_block(wire))
    assert exc_info.value.check == "revision_hash"


@pytest.mark.parametrize(
    "inject,check",
    [
        (lambda b: b["transactionInfo"].update(injected="DROP TABLE Vehicle"), "transaction_info_hash"),
        (lambda b: b["transactionInfo"]["statements"][0].update(injectedStmt="DELETE FROM Person"), "transaction_info_hash"),
        (lambda b: b["transactionInfo"]["documents"]["doc-5"].update(note="x"), "transaction_info_hash"),
        (lambda b: b["revisions"][0]["metadata"].update(injectedMeta="owner=mallory"), "revision_hash"),
    ],
    ids=["transaction-info", "statement", "document", "revision-metadata"],
)
def test_injected_content_breaks_the_hash(inject, check):
    """Unknown keys are not part of the model but are part of the hashed document."""
    wire = make_block_dict(5, digest(b"prev"))
    inject(wire)

    with pytest.raises(ValidationMismatchError) as exc_info:
        verify_block(parse_block(wire))
    assert exc_info.value.check == check


def test_revision_missing_from_entries_fails_revisions_check():
    """A consistent revision that was not part of the block's Merkle base."""
    wire = make_block_dict(5, digest(b"prev"))
    wire["revisions"].append(make_revision(5, 1))

    with pytest.raises(ValidationMismatchError) as exc_info:
        verify_block(parse_block(wire))
    assert exc_info.value.check == "revisions_hash"


def test_system_revision_hash_is_trusted():
    revision = parse_revision(make_system_revision(9))
    verify_revision_hash(revision)


def test_revision_hash_is_dot_of_metadata_and_data():
    revision = parse_revision(make_revision(2))
    expected = dot(hash_value(revision.metadata.hashable()), hash_value(revision.data))
    assert compute_revision_hash(revision) == expected == revision.hash


def test_transaction_info_hash_matches_first_entry():
    block = make_block(2)
    assert compute_transaction_info_hash(block) == block.entries_hash_list[0]


def test_block_is_not_mutated_by_verification():
    block = make_block(6, digest(b"prev"))
    before = json.dumps(block.to_wire(), sort_keys=True)
    verify_block(block)
    assert json.dumps(block.to_wire(), sort_keys=True) == before


# ---------------------------------------------------------------------------
# Verification against a digest
# ---------------------------------------------------------------------------


def test_verify_block_with_proof():
    block = make_block(8, digest(b"prev"))
    sibling = digest(b"other block")
    ledger_digest = merkle_root([block.block_hash, sibling])
    proof = json.dumps([to_base64(sibling)])

    assert verify_block_with_proof(block, ledger_digest, proof) is True
    assert verify_block_with_proof(block, flip_random_bit(ledger_digest), proof) is False


def test_verify_revision_against_digest():
    revision = parse_revision(make_revision(3))
    sibling = digest(b"sibling revision")
    ledger_digest = dot(revision.hash, sibling)
    proof = "[{{" + to_base64(sibling) + "}}]"

    assert verify_revision(revision, ledger_digest, proof) is True
    assert verify_revision(revision, flip_random_bit(ledger_digest), proof) is False


def test_verify_revision_with_corrupt_revision_raises():
    wire = make_revision(3)
    wire["data"]["Make"] = "Tesla"
    revision = parse_revision(wire)

    with pytest.raises(ValidationMismatchError):
        verify_revision(revision, digest(b"any"), "[]")
