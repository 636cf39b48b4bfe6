import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from relgraph.api import create_app
from relgraph.domain.entity import Contact, Entity, Relationship
from relgraph.stores.local_store import LocalGraphStore
from tests.fakes import TENANT, FakeGraphStore, make_entity, make_relationship


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def chain_entities() -> list[Entity]:
    return [make_entity(entity_id) for entity_id in "ABCD"]


@pytest.fixture
def chain_relationships() -> list[Relationship]:
    return [
        make_relationship("A", "B"),
        make_relationship("B", "C"),
        make_relationship("C", "D"),
    ]


@pytest.fixture
def fake_store(
    chain_entities: list[Entity], chain_relationships: list[Relationship]
) -> FakeGraphStore:
    return FakeGraphStore(chain_entities, chain_relationships)


@pytest.fixture
def local_store(
    chain_entities: list[Entity], chain_relationships: list[Relationship]
) -> LocalGraphStore:
    return LocalGraphStore.from_data(
        entities=chain_entities,
        contacts=[Contact(id="P1", full_name="Pat Doe", tenant_id=TENANT)],
        relationships=chain_relationships,
    )


@pytest.fixture
def test_client(local_store: LocalGraphStore) -> TestClient:
    """Create test client backed by an in-memory local store."""
    app = create_app(store=local_store)
    return TestClient(app)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)
