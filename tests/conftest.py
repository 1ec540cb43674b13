"""
Shared fixtures for the Ortomat backup server tests.
"""

import tempfile

import pytest

from ortomat_server.store import OrtomatStore
from ortomat_server.tools.seed import seed_demo_data

TEST_BCRYPT_ROUNDS = 4


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
async def store(data_dir):
    """Empty store with the schema created."""
    store = OrtomatStore(data_dir, wal_mode=False)
    await store.initialize()
    return store


@pytest.fixture
async def seeded_store(store):
    """Store filled with cross-referencing demo data across every kind."""
    await seed_demo_data(store, bcrypt_rounds=TEST_BCRYPT_ROUNDS)
    return store
