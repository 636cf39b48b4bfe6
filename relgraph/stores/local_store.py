import json
import logging
import uuid
from pathlib import Path
from typing import List

from relgraph.domain.entity import Contact, Entity, Relationship
from relgraph.stores.base import GraphStore, StoreError

logger = logging.getLogger(__name__)


class LocalGraphStore(GraphStore):
    """Local graph store that keeps entities, contacts and relationships in a JSON file."""

    def __init__(self, filepath: str | Path | None = None) -> None:
        """Initialize LocalGraphStore.

        Args:
            filepath: Path to store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, will save to this path when save() is called.
                     If not provided, creates empty store in memory only.
        """
        self._filepath = str(filepath) if filepath else None

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            self._entities = [Entity.model_validate(e) for e in data.get("entities", [])]
            self._contacts = [Contact.model_validate(c) for c in data.get("contacts", [])]
            self._relationships = [
                Relationship.model_validate(r) for r in data.get("relationships", [])
            ]
        else:
            self._entities = []
            self._contacts = []
            self._relationships = []

    @classmethod
    def from_data(
        cls,
        entities: List[Entity] | None = None,
        contacts: List[Contact] | None = None,
        relationships: List[Relationship] | None = None,
    ) -> "LocalGraphStore":
        """Create LocalGraphStore from provided data (useful for testing)."""
        instance = cls(filepath=None)
        instance._entities = list(entities or [])
        instance._contacts = list(contacts or [])
        instance._relationships = list(relationships or [])
        return instance

    async def fetch_entities(self, tenant_id: str) -> List[Entity]:
        """Get the tenant's entities followed by its contacts as CONTACT entities."""
        entities = [e for e in self._entities if e.tenant_id == tenant_id]
        contacts = [c.to_entity() for c in self._contacts if c.tenant_id == tenant_id]
        return entities + contacts

    async def fetch_relationships(self, tenant_id: str) -> List[Relationship]:
        return [r for r in self._relationships if r.tenant_id == tenant_id]

    async def create_relationship(
        self, tenant_id: str, source_id: str, target_id: str, relationship_type: str
    ) -> Relationship:
        known = {e.id for e in await self.fetch_entities(tenant_id)}
        missing = [node_id for node_id in (source_id, target_id) if node_id not in known]
        if missing:
            raise StoreError(f"Unknown entities for tenant {tenant_id}: {', '.join(missing)}")

        relationship = Relationship(
            id=str(uuid.uuid4()),
            source_id=source_id,
            target_id=target_id,
            relationship_type=relationship_type,
            tenant_id=tenant_id,
        )
        self._relationships.append(relationship)
        if self._filepath:
            self.save()
        logger.info(
            f"Created relationship {source_id} -> {target_id} ({relationship.relationship_type})"
        )
        return relationship

    def save(self, filepath: str | None = None) -> None:
        """Save the store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        save_path = str(save_path)
        data = {
            "entities": [e.model_dump(mode="json") for e in self._entities],
            "contacts": [c.model_dump(mode="json") for c in self._contacts],
            "relationships": [r.model_dump(mode="json") for r in self._relationships],
        }
        with open(save_path, "w") as f:
            json.dump(data, f)
