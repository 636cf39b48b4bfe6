from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relgraph.api.endpoints import get_endpoints_router
from relgraph.api.registry import ExplorerRegistry
from relgraph.config import Settings, settings
from relgraph.stores.base import GraphStore


def create_app(*, store: GraphStore, config: Settings = settings) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = ExplorerRegistry(store, config=config)
    app.state.registry = registry
    app.include_router(router=get_endpoints_router(registry=registry))

    return app
