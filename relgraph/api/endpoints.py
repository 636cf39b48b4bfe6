from fastapi import APIRouter, HTTPException, status
from loguru import logger

from relgraph.api.registry import ExplorerRegistry
from relgraph.api.schemas import (
    CreateRelationshipRequest,
    DepthRequest,
    DragRequest,
    ModeRequest,
    SeedsRequest,
    SelectRequest,
    TickRequest,
    ViewportRequest,
)
from relgraph.domain.entity import RELATIONSHIP_TYPES, Relationship
from relgraph.explorer import GraphFrame, NodeDetail


def _create_drag_endpoint(registry: ExplorerRegistry):
    """Create the drag endpoint handler."""

    async def drag(tenant_id: str, request: DragRequest) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        if request.phase == "start":
            handled = explorer.drag_start(request.node_id, request.x, request.y)
        elif request.phase == "move":
            handled = explorer.drag_move(request.node_id, request.x, request.y)
        else:
            handled = explorer.drag_end(request.node_id)
        if not handled:
            logger.debug(f"Drag {request.phase} ignored for node {request.node_id}")
        return explorer.frame()

    return drag


def _create_viewport_endpoint(registry: ExplorerRegistry):
    """Create the zoom/pan endpoint handler."""

    async def viewport(tenant_id: str, request: ViewportRequest) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        if request.reset:
            explorer.reset_view()
        if request.zoom is not None:
            explorer.zoom(request.zoom, (request.anchor_x, request.anchor_y))
        if request.pan_x or request.pan_y:
            explorer.pan(request.pan_x, request.pan_y)
        return explorer.frame()

    return viewport


def _create_relationship_endpoint(registry: ExplorerRegistry):
    """Create the relationship construction endpoint handler."""

    async def create_relationship(
        tenant_id: str, request: CreateRelationshipRequest
    ) -> Relationship:
        explorer = await registry.get(tenant_id)
        if explorer.loading:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Graph is loading")
        relationship = await explorer.create_relationship(
            request.source_id, request.target_id, request.relationship_type
        )
        if relationship is None:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=explorer.last_error or "Failed to create relationship",
            )
        return relationship

    return create_relationship


def get_endpoints_router(*, registry: ExplorerRegistry) -> APIRouter:  # noqa: C901
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @router.get("/api/relationship-types")
    async def relationship_types() -> list[str]:
        return RELATIONSHIP_TYPES

    @router.get("/api/tenants/{tenant_id}/graph")
    async def get_graph(tenant_id: str) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        return explorer.frame()

    @router.delete("/api/tenants/{tenant_id}/graph", status_code=status.HTTP_204_NO_CONTENT)
    async def close_graph(tenant_id: str) -> None:
        registry.close(tenant_id)

    @router.post("/api/tenants/{tenant_id}/graph/refresh")
    async def refresh(tenant_id: str) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        await explorer.refresh()
        return explorer.frame()

    @router.post("/api/tenants/{tenant_id}/graph/select")
    async def select(tenant_id: str, request: SelectRequest) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        try:
            explorer.select_node(request.node_id)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
        return explorer.frame()

    @router.post("/api/tenants/{tenant_id}/graph/deselect")
    async def deselect(tenant_id: str) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        explorer.deselect()
        return explorer.frame()

    @router.post("/api/tenants/{tenant_id}/graph/depth")
    async def set_depth(tenant_id: str, request: DepthRequest) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        explorer.set_depth(request.depth)
        return explorer.frame()

    @router.post("/api/tenants/{tenant_id}/graph/seeds")
    async def set_seeds(tenant_id: str, request: SeedsRequest) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        explorer.set_seeds(request.node_ids)
        return explorer.frame()

    @router.post("/api/tenants/{tenant_id}/graph/mode")
    async def set_mode(tenant_id: str, request: ModeRequest) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        explorer.set_layout_mode(request.mode)
        return explorer.frame()

    @router.post("/api/tenants/{tenant_id}/graph/tick")
    async def tick(tenant_id: str, request: TickRequest) -> GraphFrame:
        explorer = await registry.get(tenant_id)
        explorer.tick(request.steps)
        return explorer.frame()

    @router.get("/api/tenants/{tenant_id}/graph/nodes/{node_id}")
    async def node_detail(tenant_id: str, node_id: str) -> NodeDetail:
        explorer = await registry.get(tenant_id)
        detail = explorer.node_detail(node_id)
        if detail is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Node not found")
        return detail

    router.post("/api/tenants/{tenant_id}/graph/drag")(_create_drag_endpoint(registry))
    router.post("/api/tenants/{tenant_id}/graph/viewport")(_create_viewport_endpoint(registry))
    router.post(
        "/api/tenants/{tenant_id}/relationships", status_code=status.HTTP_201_CREATED
    )(_create_relationship_endpoint(registry))

    return router
