"""
Pytest configuration and fixtures for metadata registry tests.
"""

import pytest

from metadata_registry.manager import MetadataRegistry
from metadata_registry.providers import ManualSequence, StaticIdentityProvider
from metadata_registry.schema import Attribute
from metadata_registry.storage import InMemoryStore, MetadataStore, UriStore


OWNER = "owner_identity"
STRANGER = "stranger_identity"


@pytest.fixture
def owner_id():
    return OWNER


@pytest.fixture
def stranger_id():
    return STRANGER


@pytest.fixture
def identity():
    """Switchable caller identity, starting as the owner."""
    return StaticIdentityProvider(OWNER)


@pytest.fixture
def sequence():
    """Manually advanced sequence marker."""
    return ManualSequence(100)


@pytest.fixture
def metadata_store():
    return MetadataStore(InMemoryStore())


@pytest.fixture
def uri_store():
    return UriStore(InMemoryStore())


@pytest.fixture
def registry(metadata_store, uri_store, identity, sequence):
    """Registry over fresh in-memory stores, owned by OWNER."""
    return MetadataRegistry(metadata_store, uri_store, identity, sequence)


@pytest.fixture
def sample_record():
    """Keyword arguments for a valid registration."""
    return {
        "name": "Genesis Piece",
        "description": "The first token of the collection",
        "image_uri": "ipfs://QmGenesisImageHash",
        "attributes": [
            Attribute(trait_type="Background", value="Blue"),
            Attribute(trait_type="Rarity", value="Legendary"),
        ],
    }
