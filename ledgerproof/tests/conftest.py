"""
Pytest configuration for ledgerproof tests.

The environment variables are set at module level (not in pytest_configure)
because they need to be available before the API modules are imported during
pytest's collection phase.
"""

import os

# Set ENV=TEST to disable rate limiting BEFORE any modules are imported
os.environ["ENV"] = "TEST"
os.environ["DISABLE_RATE_LIMITS"] = "1"

import pytest

from ledgerproof.tests.journal_factory import make_chain_dicts


@pytest.fixture
def chain_dicts():
    """Three valid, linked blocks in wire form."""
    return make_chain_dicts(3)
