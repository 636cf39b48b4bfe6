from typing import List, Protocol

from relgraph.domain.entity import Entity, Relationship


class StoreError(Exception):
    """Raised when the backing store cannot serve or accept a request."""


class GraphStore(Protocol):
    async def fetch_entities(self, tenant_id: str) -> List[Entity]:
        """Get all entities visible to the tenant, in snapshot order."""
        ...

    async def fetch_relationships(self, tenant_id: str) -> List[Relationship]:
        """Get all relationships visible to the tenant."""
        ...

    async def create_relationship(
        self, tenant_id: str, source_id: str, target_id: str, relationship_type: str
    ) -> Relationship:
        """Create a relationship between two existing entities."""
        ...
