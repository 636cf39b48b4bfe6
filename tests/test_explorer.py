"""Tests for the explorer interaction controller."""

import asyncio

import pytest

from relgraph.domain.graph import LayoutMode
from relgraph.explorer import GraphExplorer
from relgraph.render.geometry import NodeShape
from relgraph.stores.local_store import LocalGraphStore
from tests.fakes import TENANT, FakeGraphStore, GatedGraphStore, make_entity, make_relationship

pytestmark = pytest.mark.anyio


async def wait_until(condition, attempts: int = 100) -> None:
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


@pytest.fixture
def explorer(fake_store: FakeGraphStore) -> GraphExplorer:
    return GraphExplorer(fake_store, TENANT, width=1200, height=800)


async def test_refresh_loads_snapshot_and_builds_subgraph(explorer: GraphExplorer) -> None:
    assert await explorer.refresh() is True

    assert explorer.loading is False
    assert [e.id for e in explorer.entities] == ["A", "B", "C", "D"]
    # default seeds cover all four entities
    assert set(explorer.subgraph.node_ids()) == {"A", "B", "C", "D"}
    assert explorer.simulation is not None
    assert explorer.simulation.running


async def test_default_seeds_are_first_ten_entities() -> None:
    entities = [make_entity(f"E{i:02d}") for i in range(15)]
    explorer = GraphExplorer(FakeGraphStore(entities, []), TENANT)

    await explorer.refresh()

    assert explorer.seed_ids == [f"E{i:02d}" for i in range(10)]
    assert len(explorer.subgraph.nodes) == 10


async def test_set_depth_retraverses(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.focus_node("A")

    explorer.set_depth(1)
    assert set(explorer.subgraph.node_ids()) == {"A", "B"}

    explorer.set_depth(3)
    assert set(explorer.subgraph.node_ids()) == {"A", "B", "C", "D"}
    assert explorer.state.traversal_depth == 3


@pytest.mark.parametrize("depth", [0, 4, -1])
async def test_set_depth_rejects_out_of_range(explorer: GraphExplorer, depth: int) -> None:
    await explorer.refresh()

    with pytest.raises(ValueError):
        explorer.set_depth(depth)


async def test_depth_change_replaces_simulation(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    old_simulation = explorer.simulation

    explorer.set_depth(1)

    assert old_simulation.stopped
    assert explorer.simulation is not old_simulation
    assert explorer.simulation.subgraph is explorer.subgraph


async def test_seeds_control_the_visible_set(explorer: GraphExplorer) -> None:
    await explorer.refresh()

    explorer.set_seeds(["D", "D"])
    explorer.set_depth(1)

    assert explorer.state.seed_node_ids == ["D"]
    assert set(explorer.subgraph.node_ids()) == {"C", "D"}

    explorer.set_seeds([])
    assert explorer.seed_ids == ["A", "B", "C", "D"]


async def test_select_in_force_mode_does_not_retraverse(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    subgraph = explorer.subgraph
    simulation = explorer.simulation

    assert explorer.select_node("B") is True

    assert explorer.state.selected_node_id == "B"
    assert explorer.subgraph is subgraph
    assert explorer.simulation is simulation
    assert [n.id for n in explorer.frame().nodes if n.selected] == ["B"]


async def test_select_unknown_node_raises(explorer: GraphExplorer) -> None:
    await explorer.refresh()

    with pytest.raises(ValueError):
        explorer.select_node("NOPE")


async def test_toggle_mode_relayouts_without_retraversal(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.select_node("A")
    subgraph = explorer.subgraph
    simulation = explorer.simulation

    assert explorer.set_layout_mode(LayoutMode.HIERARCHY) is True

    assert explorer.subgraph is subgraph
    assert simulation.stopped
    assert explorer.simulation is None
    assert [n.id for n in explorer.hierarchy.nodes] == ["A", "B", "C", "D"]
    assert explorer.set_layout_mode("HIERARCHY") is False

    explorer.set_layout_mode(LayoutMode.FORCE)
    assert explorer.simulation is not None
    assert explorer.hierarchy.nodes == []


async def test_hierarchy_reroots_on_select(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.select_node("A")
    explorer.set_layout_mode(LayoutMode.HIERARCHY)

    explorer.select_node("C")

    assert explorer.hierarchy.root_id == "C"
    assert [n.id for n in explorer.hierarchy.nodes] == ["C", "D"]


async def test_hierarchy_root_with_only_inbound_edges(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.set_layout_mode(LayoutMode.HIERARCHY)

    explorer.select_node("D")

    frame = explorer.frame()
    assert [n.id for n in frame.nodes] == ["D"]
    assert frame.edges == []


async def test_hierarchy_without_selection_is_empty(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.set_layout_mode(LayoutMode.HIERARCHY)

    assert explorer.frame().nodes == []

    explorer.select_node("A")
    explorer.deselect()

    assert explorer.state.selected_node_id is None
    assert explorer.frame().nodes == []


async def test_hierarchy_frame_uses_tree_geometry(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.select_node("A")
    explorer.set_layout_mode(LayoutMode.HIERARCHY)

    frame = explorer.frame()

    assert all(node.shape.kind is NodeShape.CIRCLE for node in frame.nodes)
    assert [(e.source, e.target, e.type) for e in frame.edges] == [
        ("A", "B", "invested_in"),
        ("B", "C", "invested_in"),
        ("C", "D", "invested_in"),
    ]
    assert all(edge.path for edge in frame.edges)


async def test_drag_pins_and_releases(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.simulation.run(max_steps=1000)
    assert not explorer.simulation.running

    assert explorer.drag_start("B", 100.0, 100.0) is True
    assert explorer.simulation.running
    explorer.drag_move("B", 150.0, 120.0)
    explorer.tick(10)

    assert explorer.subgraph.node("B").pinned
    assert (explorer.subgraph.node("B").x, explorer.subgraph.node("B").y) == (150.0, 120.0)

    assert explorer.drag_end("B") is True
    explorer.tick(1)

    assert not explorer.subgraph.node("B").pinned
    assert explorer.simulation.alpha_target == 0.0
    assert (explorer.subgraph.node("B").x, explorer.subgraph.node("B").y) != (150.0, 120.0)


async def test_drag_is_ignored_outside_force_mode(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.select_node("A")
    explorer.set_layout_mode(LayoutMode.HIERARCHY)

    assert explorer.drag_start("A", 0, 0) is False
    assert explorer.drag_move("A", 0, 0) is False
    assert explorer.drag_end("A") is False


async def test_drag_of_unknown_node_is_ignored(explorer: GraphExplorer) -> None:
    await explorer.refresh()

    assert explorer.drag_start("NOPE", 0, 0) is False
    assert explorer.drag_move("B", 1, 1) is False


async def test_zoom_and_pan_do_not_move_nodes(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    before = explorer.simulation.positions()

    explorer.zoom(2.0, (600, 400))
    explorer.pan(30, -10)

    assert explorer.simulation.positions() == before
    assert explorer.frame().viewport.scale == 2.0

    explorer.reset_view()
    assert explorer.viewport.scale == 1.0


async def test_tick_advances_force_simulation_only(explorer: GraphExplorer) -> None:
    await explorer.refresh()

    assert explorer.tick(5) == 5
    assert explorer.simulation.steps == 5

    explorer.select_node("A")
    explorer.set_layout_mode(LayoutMode.HIERARCHY)
    assert explorer.tick(5) == 0


async def test_refresh_preserves_view_state(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.focus_node("B")
    explorer.set_depth(1)
    explorer.select_node("B")
    explorer.set_layout_mode(LayoutMode.HIERARCHY)
    state = explorer.state.model_copy()

    await explorer.refresh()

    assert explorer.state == state
    assert explorer.hierarchy.root_id == "B"


async def test_fetch_failure_keeps_previous_data(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    subgraph = explorer.subgraph
    explorer.store.fail_fetch = True

    assert await explorer.refresh() is False

    assert explorer.loading is False
    assert explorer.last_error == "store unavailable"
    assert explorer.subgraph is subgraph
    assert explorer.frame().last_error == "store unavailable"


async def test_last_issued_refresh_wins(chain_relationships) -> None:
    store = GatedGraphStore([make_entity("A")], chain_relationships)
    explorer = GraphExplorer(store, TENANT)

    first = asyncio.create_task(explorer.refresh())
    await wait_until(lambda: len(store.gates) == 1)
    store.entities = [make_entity("A"), make_entity("B")]
    second = asyncio.create_task(explorer.refresh())
    await wait_until(lambda: len(store.gates) == 2)

    store.gates[1].set()
    assert await second is True
    store.gates[0].set()
    assert await first is False

    assert [e.id for e in explorer.entities] == ["A", "B"]
    assert explorer.loading is False


async def test_interaction_is_ignored_while_loading(chain_relationships) -> None:
    store = GatedGraphStore([make_entity("A")], chain_relationships)
    explorer = GraphExplorer(store, TENANT)

    pending = asyncio.create_task(explorer.refresh())
    await wait_until(lambda: len(store.gates) == 1)

    assert explorer.loading is True
    assert explorer.select_node("A") is False
    assert explorer.set_depth(1) is False
    assert explorer.set_layout_mode(LayoutMode.HIERARCHY) is False
    assert await explorer.create_relationship("A", "B", "gp_of") is None

    store.gates[0].set()
    assert await pending is True
    assert explorer.state.selected_node_id is None


async def test_create_relationship_reloads_graph(local_store: LocalGraphStore) -> None:
    explorer = GraphExplorer(local_store, TENANT)
    await explorer.refresh()
    explorer.focus_node("P1")
    explorer.set_depth(1)
    assert explorer.subgraph.node_ids() == ["P1"]

    relationship = await explorer.create_relationship("P1", "A", "employed_at")

    assert relationship is not None
    assert set(explorer.subgraph.node_ids()) == {"P1", "A"}
    assert [(e.source, e.target, e.type) for e in explorer.subgraph.edges] == [
        ("P1", "A", "employed_at")
    ]


async def test_create_relationship_failure_leaves_state(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.store.fail_create = True
    fetches = explorer.store.fetch_calls

    assert await explorer.create_relationship("A", "D", "gp_of") is None

    assert explorer.last_error == "write rejected"
    assert explorer.store.fetch_calls == fetches
    assert len(explorer.relationships) == 3


async def test_node_detail_lists_linked_nodes(explorer: GraphExplorer) -> None:
    await explorer.refresh()

    detail = explorer.node_detail("B")

    assert detail.degree == 2
    assert detail.confidence == 90
    assert [(link.node_id, link.direction) for link in detail.linked] == [
        ("A", "inbound"),
        ("C", "outbound"),
    ]
    assert detail.entity.id == "B"
    assert explorer.node_detail("NOPE") is None


async def test_node_detail_for_entity_outside_visible_set() -> None:
    entities = [make_entity(f"E{i:02d}") for i in range(12)]
    explorer = GraphExplorer(FakeGraphStore(entities, [make_relationship("E00", "E01")]), TENANT)
    await explorer.refresh()

    detail = explorer.node_detail("E11")

    assert detail.degree == 0
    assert detail.label == "Entity E11"


async def test_frame_exposes_geometry_per_category(explorer: GraphExplorer) -> None:
    await explorer.refresh()

    frame = explorer.frame()

    assert frame.tenant_id == TENANT
    assert frame.view.layout_mode is LayoutMode.FORCE
    assert frame.running is True
    assert {node.shape.kind for node in frame.nodes} == {NodeShape.HEXAGON}
    assert len(frame.edges) == 3


async def test_settle_runs_force_layout_to_rest(explorer: GraphExplorer) -> None:
    await explorer.refresh()

    steps = explorer.settle()

    assert 0 < steps <= explorer.config.max_layout_steps
    assert explorer.simulation.steps == steps

    explorer.select_node("A")
    explorer.set_layout_mode(LayoutMode.HIERARCHY)
    assert explorer.settle() == 0


async def test_mode_toggle_during_drag_releases_the_node(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    explorer.drag_start("A", 10.0, 10.0)

    explorer.set_layout_mode(LayoutMode.HIERARCHY)
    explorer.set_layout_mode(LayoutMode.FORCE)

    assert explorer.drag_end("A") is False
    assert not explorer.subgraph.node("A").pinned
    assert not explorer.simulation.table.is_pinned("A")

    explorer.settle()
    node = explorer.subgraph.node("A")
    assert (node.x, node.y) != (10.0, 10.0)


async def test_unexpected_fetch_error_clears_loading(explorer: GraphExplorer) -> None:
    await explorer.refresh()
    subgraph = explorer.subgraph
    explorer.store.fetch_error = ConnectionError("connection reset")

    assert await explorer.refresh() is False

    assert explorer.loading is False
    assert explorer.last_error == "ConnectionError: connection reset"
    assert explorer.subgraph is subgraph
    assert explorer.set_depth(1) is True

    explorer.store.fetch_error = None
    assert await explorer.refresh() is True
    assert explorer.last_error is None
