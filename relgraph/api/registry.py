import asyncio

from loguru import logger

from relgraph.config import Settings, settings
from relgraph.explorer import GraphExplorer
from relgraph.stores.base import GraphStore


class ExplorerRegistry:
    """One explorer per tenant, created and loaded on first use.

    An explorer is only handed out once its first load has finished. Requests
    that arrive while that load is in flight wait for the same load.
    """

    def __init__(self, store: GraphStore, config: Settings = settings) -> None:
        self.store = store
        self.config = config
        self._explorers: dict[str, GraphExplorer] = {}
        self._opening: dict[str, asyncio.Task] = {}

    async def get(self, tenant_id: str) -> GraphExplorer:
        explorer = self._explorers.get(tenant_id)
        if explorer is not None:
            return explorer
        opening = self._opening.get(tenant_id)
        if opening is None:
            opening = asyncio.ensure_future(self._open(tenant_id))
            self._opening[tenant_id] = opening
        return await asyncio.shield(opening)

    async def _open(self, tenant_id: str) -> GraphExplorer:
        logger.info(f"Opening graph explorer for tenant {tenant_id}")
        explorer = GraphExplorer(self.store, tenant_id, config=self.config)
        try:
            await explorer.refresh()
            self._explorers[tenant_id] = explorer
        finally:
            self._opening.pop(tenant_id, None)
        return explorer

    def close(self, tenant_id: str) -> None:
        explorer = self._explorers.pop(tenant_id, None)
        if explorer is not None and explorer.simulation is not None:
            explorer.simulation.stop()
