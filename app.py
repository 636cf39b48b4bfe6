import sys

from loguru import logger

from relgraph.api import create_app
from relgraph.config import settings
from relgraph.stores.local_store import LocalGraphStore

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

logger.info(f"Loading graph store from {settings.local_store_path}")
store = LocalGraphStore(settings.local_store_path)
app = create_app(store=store)
