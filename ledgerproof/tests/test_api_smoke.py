"""
Smoke tests for the ledgerproof API.

Tests the verification endpoints end to end:
- Health checks
- Proof, revision, block, chain and stream verification
- Malformed input (400), request validation (422) and size limits (413)
"""

import inspect
import json

import pytest
from fastapi.testclient import TestClient

from ledgerproof.app.errors import EnvironmentalFailureError
from ledgerproof.app.main import app
from ledgerproof.app.routes import verify as verify_routes
from ledgerproof.app.services import hashing
from ledgerproof.app.services.hashing import hash_prefix, to_base64
from ledgerproof.app.services.merkle import merkle_root
from ledgerproof.app.services.pair_hash import dot
from ledgerproof.tests.journal_factory import h, make_block_dict, make_revision


@pytest.fixture(scope="function")
def client():
    with TestClient(app) as test_client:
        yield test_client


def test_health_check(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_health_status(client):
    response = client.get("/v1/health/status")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "ledgerproof"}


def test_root(client):
    assert client.get("/").json()["service"] == "ledgerproof"


class TestProofEndpoint:
    def _body(self, leaf, root, proof):
        return {"leafHash": to_base64(leaf), "digest": to_base64(root), "proof": proof}

    def test_verified(self, client):
        leaf, sibling = h("leaf"), h("sibling")
        response = client.post(
            "/v1/verify/proof",
            json=self._body(leaf, dot(leaf, sibling), json.dumps([to_base64(sibling)])),
        )
        assert response.status_code == 200
        assert response.json() == {"verified": True, "failures": []}

    def test_proof_as_list(self, client):
        leaves = [h(str(i)) for i in range(3)]
        root = merkle_root(leaves)
        response = client.post(
            "/v1/verify/proof",
            json=self._body(leaves[2], root, [to_base64(dot(leaves[0], leaves[1]))]),
        )
        assert response.json()["verified"] is True

    def test_not_verified(self, client):
        leaf = h("leaf")
        response = client.post("/v1/verify/proof", json=self._body(leaf, h("other"), "[]"))
        assert response.status_code == 200
        body = response.json()
        assert body["verified"] is False
        assert body["failures"] == [
            {"check": "proof", "error": "not_verified", "debug": {"leaf_prefix": hash_prefix(leaf)}}
        ]

    def test_malformed_proof(self, client):
        response = client.post("/v1/verify/proof", json=self._body(h("leaf"), h("root"), "not a proof"))
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "malformed_input"
        assert body["field"] == "proof"

    def test_wrong_length_leaf(self, client):
        body = {"leafHash": to_base64(b"short"), "digest": to_base64(h("root")), "proof": "[]"}
        response = client.post("/v1/verify/proof", json=body)
        assert response.status_code == 400
        assert response.json()["field"] == "leafHash"

    def test_missing_field_is_422_without_values(self, client):
        response = client.post("/v1/verify/proof", json={"leafHash": "c2VjcmV0"})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert "c2VjcmV0" not in response.text
        assert any(d["field"].endswith("digest") for d in body["details"])

    def test_sha256_unavailable_is_503(self, client, monkeypatch):
        def unavailable():
            raise EnvironmentalFailureError("SHA-256 message digest is unavailable")

        monkeypatch.setattr(hashing, "_new_sha256", unavailable)
        response = client.post(
            "/v1/verify/proof",
            json=self._body(h("leaf"), h("root"), json.dumps([to_base64(h("sibling"))])),
        )
        assert response.status_code == 503
        assert response.json()["error"] == "environment_failure"


class TestRevisionEndpoint:
    def test_verified(self, client):
        revision = make_revision(1)
        sibling = h("sibling")
        revision_hash = hashing.from_base64(revision["hash"])
        response = client.post("/v1/verify/revision", json={
            "revision": revision,
            "digest": {"digest": to_base64(dot(revision_hash, sibling))},
            "proof": [to_base64(sibling)],
        })
        assert response.status_code == 200
        assert response.json() == {"verified": True, "failures": []}

    def test_tampered_revision(self, client):
        revision = make_revision(1)
        revision["data"]["Color"] = "Red"
        response = client.post("/v1/verify/revision", json={
            "revision": revision,
            "digest": {"digest": to_base64(h("root"))},
            "proof": "[]",
        })
        body = response.json()
        assert body["verified"] is False
        assert body["failures"][0]["check"] == "revision_hash"

    def test_partial_revision(self, client):
        revision = make_revision(1)
        del revision["data"]
        response = client.post("/v1/verify/revision", json={
            "revision": revision,
            "digest": {"digest": to_base64(h("root"))},
            "proof": "[]",
        })
        assert response.status_code == 400


class TestBlockEndpoint:
    def test_valid_block(self, client):
        response = client.post("/v1/verify/block", json={"block": make_block_dict(5, h("prev"))})
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["block_address"].endswith("/5")

    def test_tampered_block_reports_prefixes_only(self, client):
        block = make_block_dict(5, h("prev"))
        block["entriesHash"] = to_base64(h("forged"))
        response = client.post("/v1/verify/block", json={"block": block})

        body = response.json()
        assert body["valid"] is False
        failure = body["failures"][0]
        assert failure["check"] == "entries_hash"
        assert failure["error"] == "mismatch"
        assert failure["debug"]["expected_prefix"] == hash_prefix(h("forged"))
        assert len(failure["debug"]["computed_prefix"]) == 16
        assert h("forged").hex() not in response.text

    def test_missing_block_field(self, client):
        block = make_block_dict(5)
        del block["transactionInfo"]
        response = client.post("/v1/verify/block", json={"block": block})
        assert response.status_code == 400
        assert response.json()["field"] == "transactionInfo"


class TestChainEndpoint:
    def test_valid_chain(self, client, chain_dicts):
        response = client.post("/v1/verify/chain", json={"blocks": chain_dicts})
        body = response.json()
        assert body["valid"] is True
        assert body["block_count"] == 3
        assert len(body["tip_block_hash_prefix"]) == 16

    def test_empty_chain(self, client):
        body = client.post("/v1/verify/chain", json={"blocks": []}).json()
        assert body["valid"] is True
        assert body["block_count"] == 0

    def test_broken_chain(self, client, chain_dicts):
        del chain_dicts[1]
        body = client.post("/v1/verify/chain", json={"blocks": chain_dicts}).json()
        assert body["valid"] is False
        assert body["failures"][0]["check"] == "previous_block_hash"
        assert body["failures"][0]["debug"]["block_address"].endswith("/3")

    def test_too_many_blocks(self, client, chain_dicts, monkeypatch):
        monkeypatch.setenv("LEDGERPROOF_MAX_CHAIN_BLOCKS", "2")
        response = client.post("/v1/verify/chain", json={"blocks": chain_dicts})
        assert response.status_code == 413
        assert response.json()["error"] == "too_many_blocks"


class TestStreamEndpoint:
    def _records(self, blocks, arn="arn:aws:qldb:us-east-1:123456789012:stream/ledger/stream-1"):
        records = []
        for block in blocks:
            revisions = block.pop("revisions", [])
            block["revisionSummaries"] = [{"hash": r["hash"]} for r in revisions]
            records.append({"qldbStreamArn": arn, "recordType": "BLOCK_SUMMARY", "payload": block})
            for revision in revisions:
                records.append({
                    "qldbStreamArn": arn,
                    "recordType": "REVISION_DETAILS",
                    "payload": {"tableInfo": {"tableName": "Vehicle", "tableId": "t"}, "revision": revision},
                })
        return records

    def test_valid_stream(self, client, chain_dicts):
        response = client.post(
            "/v1/verify/stream", json={"records": self._records(chain_dicts), "streamId": "stream-1"}
        )
        body = response.json()
        assert body["valid"] is True
        assert body["block_count"] == 3

    def test_stream_filter_excludes_everything(self, client, chain_dicts):
        response = client.post(
            "/v1/verify/stream", json={"records": self._records(chain_dicts), "streamId": "other"}
        )
        assert response.json()["block_count"] == 0

    def test_unknown_record_type(self, client):
        response = client.post("/v1/verify/stream", json={"records": [
            {"qldbStreamArn": "arn", "recordType": "HEARTBEAT", "payload": {}}
        ]})
        assert response.status_code == 400
        assert "HEARTBEAT" in response.json()["message"]

    def test_tampered_stream(self, client, chain_dicts):
        chain_dicts[2]["revisions"][0]["data"]["Make"] = "Volvo"
        body = client.post("/v1/verify/stream", json={"records": self._records(chain_dicts)}).json()
        assert body["valid"] is False
        assert body["failures"][0]["check"] == "revision_hash"



@pytest.mark.parametrize("endpoint", ["verify_chain_endpoint", "verify_stream_endpoint"])
def test_bulk_endpoints_run_in_threadpool(endpoint):
    """Hashing thousands of blocks must not block the event loop."""
    assert not inspect.iscoroutinefunction(getattr(verify_routes, endpoint))
