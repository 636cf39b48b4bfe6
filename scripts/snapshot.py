"""CLI for computing a laid-out subgraph from a local graph store and writing it as JSON"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

from relgraph.config import settings
from relgraph.domain.graph import LayoutMode
from relgraph.explorer import GraphExplorer
from relgraph.stores.local_store import LocalGraphStore


async def snapshot(
    store_path: str,
    tenant_id: str,
    seeds: list[str],
    depth: int,
    mode: LayoutMode,
    root: str | None,
) -> dict:
    store = LocalGraphStore(filepath=Path(store_path))
    explorer = GraphExplorer(store, tenant_id)
    if not await explorer.refresh():
        raise RuntimeError(explorer.last_error or "Failed to load graph")

    if seeds:
        explorer.set_seeds(seeds)
    explorer.set_depth(depth)
    if root:
        explorer.select_node(root)
    explorer.set_layout_mode(mode)
    explorer.settle()
    return explorer.frame().model_dump(mode="json")


def main(
    store_path: str,
    tenant_id: str,
    seeds: list[str],
    depth: int,
    mode: str,
    root: str | None,
    outfile: str | None,
) -> None:
    frame = asyncio.run(
        snapshot(store_path, tenant_id, seeds, depth, LayoutMode(mode), root)
    )
    logger.info(f"Laid out {len(frame['nodes'])} nodes and {len(frame['edges'])} edges")
    if outfile:
        with open(outfile, "w") as f:
            json.dump(frame, f, indent=2)
    else:
        json.dump(frame, sys.stdout, indent=2)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--store",
        type=str,
        required=False,
        help="Local graph store file",
        default=str(settings.local_store_path),
    )
    parser.add_argument(
        "--tenant", type=str, required=False, help="Tenant ID", default=settings.default_tenant_id
    )
    parser.add_argument("--seed", action="append", default=[], help="Seed node ID (repeatable)")
    parser.add_argument("--depth", type=int, choices=[1, 2, 3], default=settings.default_depth)
    parser.add_argument(
        "--mode", type=str, choices=[m.value for m in LayoutMode], default=LayoutMode.FORCE.value
    )
    parser.add_argument("--root", type=str, required=False, help="Hierarchy root node ID")
    parser.add_argument("--outfile", type=str, required=False, help="Output JSON file")

    args = parser.parse_args()

    main(
        store_path=args.store,
        tenant_id=args.tenant,
        seeds=args.seed,
        depth=args.depth,
        mode=args.mode,
        root=args.root,
        outfile=args.outfile,
    )
