"""Rooted tree layout built by following outbound edges from a root node."""

import logging

from pydantic import BaseModel

from relgraph.domain.entity import EntityCategory
from relgraph.domain.graph import GraphNode, Subgraph
from relgraph.render.geometry import tree_link_path

logger = logging.getLogger(__name__)

BREADTH_MARGIN = 200.0
DEPTH_MARGIN = 400.0


class HierarchyNode(BaseModel):
    id: str
    label: str
    category: EntityCategory
    depth: int
    parent_id: str | None = None
    x: float = 0.0
    y: float = 0.0


class HierarchyLink(BaseModel):
    source: str
    target: str
    path: str


class HierarchyLayout(BaseModel):
    """Positioned tree. Depth runs along x, siblings spread along y."""

    root_id: str | None = None
    nodes: list[HierarchyNode] = []
    links: list[HierarchyLink] = []

    def node(self, node_id: str) -> HierarchyNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class TreeNode:
    """Working node for the tidy tree algorithm."""

    def __init__(self, graph_node: GraphNode, parent: "TreeNode | None" = None, number: int = 0):
        self.graph_node = graph_node
        self.parent = parent
        self.children: list[TreeNode] = []
        self.depth = parent.depth + 1 if parent else 0
        self.number = number  # index among siblings
        # Buchheim/Walker bookkeeping
        self.prelim = 0.0
        self.mod = 0.0
        self.change = 0.0
        self.shift = 0.0
        self.thread: TreeNode | None = None
        self.ancestor: TreeNode = self
        self.default_ancestor: TreeNode | None = None
        self.x = 0.0
        self.depth_position = 0.0

    @property
    def id(self) -> str:
        return self.graph_node.id

    def add_child(self, graph_node: GraphNode) -> "TreeNode":
        child = TreeNode(graph_node, parent=self, number=len(self.children))
        self.children.append(child)
        return child

    def pre_order(self) -> list["TreeNode"]:
        ordered = []
        stack = [self]
        while stack:
            node = stack.pop()
            ordered.append(node)
            stack.extend(reversed(node.children))
        return ordered

    def post_order(self) -> list["TreeNode"]:
        ordered = []
        stack = [self]
        while stack:
            node = stack.pop()
            ordered.append(node)
            stack.extend(node.children)
        ordered.reverse()
        return ordered


def build_outbound_tree(subgraph: Subgraph, root_id: str) -> TreeNode | None:
    """Build a rooted tree by following outbound edges only.

    Nodes are placed depth-first in edge order, and a node already in the tree is
    never added again, so cycles and re-converging paths are pruned.

    Args:
        subgraph: Visible subgraph to build the tree from
        root_id: ID of the root node

    Returns:
        Root of the tree, or None if the root is not in the subgraph
    """
    nodes = {node.id: node for node in subgraph.nodes}
    if root_id not in nodes:
        return None

    outbound: dict[str, list[str]] = {}
    for edge in subgraph.edges:
        outbound.setdefault(edge.source, []).append(edge.target)

    root = TreeNode(nodes[root_id])
    visited = {root_id}
    stack = [(root, iter(outbound.get(root_id, [])))]
    while stack:
        parent, targets = stack[-1]
        for target_id in targets:
            if target_id in visited or target_id not in nodes:
                continue
            visited.add(target_id)
            child = parent.add_child(nodes[target_id])
            stack.append((child, iter(outbound.get(target_id, []))))
            break
        else:
            stack.pop()

    return root


def layout_hierarchy(
    subgraph: Subgraph, root_id: str | None, width: float, height: float
) -> HierarchyLayout:
    """Lay out the outbound tree rooted at ``root_id`` across the canvas.

    Args:
        subgraph: Visible subgraph
        root_id: Root node ID; no root gives an empty layout
        width: Canvas width, the depth axis
        height: Canvas height, the breadth axis

    Returns:
        HierarchyLayout with screen positions and link curves
    """
    if root_id is None:
        return HierarchyLayout()
    root = build_outbound_tree(subgraph, root_id)
    if root is None:
        logger.debug(f"Root {root_id} is not in the visible subgraph")
        return HierarchyLayout()

    breadth = max(height - BREADTH_MARGIN, 0.0)
    depth_extent = max(width - DEPTH_MARGIN, 0.0)
    _tidy_tree(root, breadth, depth_extent)

    offset_x = DEPTH_MARGIN / 2
    offset_y = BREADTH_MARGIN / 2
    ordered = root.pre_order()
    positions = {
        node.id: (node.depth_position + offset_x, node.x + offset_y) for node in ordered
    }

    nodes = [
        HierarchyNode(
            id=node.id,
            label=node.graph_node.label,
            category=node.graph_node.category,
            depth=node.depth,
            parent_id=node.parent.id if node.parent else None,
            x=positions[node.id][0],
            y=positions[node.id][1],
        )
        for node in ordered
    ]
    links = [
        HierarchyLink(
            source=node.parent.id,
            target=node.id,
            path=tree_link_path(positions[node.parent.id], positions[node.id]),
        )
        for node in ordered
        if node.parent is not None
    ]
    return HierarchyLayout(root_id=root_id, nodes=nodes, links=links)


def _separation(a: TreeNode, b: TreeNode) -> float:
    return 1.0 if a.parent is b.parent else 2.0


def _tidy_tree(root: TreeNode, breadth: float, depth_extent: float) -> None:
    """Reingold-Tilford layout in linear time (Buchheim et al.).

    Sets ``x`` along the breadth axis and ``depth_position`` along the depth axis.
    """
    anchor = TreeNode(root.graph_node)
    anchor.children = [root]
    root.parent = anchor

    for node in root.post_order():
        _first_walk(node)
    anchor.mod = -root.prelim
    for node in root.pre_order():
        node.x = node.prelim + node.parent.mod
        node.mod += node.parent.mod

    root.parent = None
    ordered = root.pre_order()
    left = min(ordered, key=lambda node: node.x)
    right = max(ordered, key=lambda node: node.x)
    bottom = max(node.depth for node in ordered)

    s = 1.0 if left is right else _separation(left, right) / 2
    tx = s - left.x
    kx = breadth / (right.x + s + tx)
    ky = depth_extent / (bottom or 1)
    for node in ordered:
        node.x = (node.x + tx) * kx
        node.depth_position = node.depth * ky


def _first_walk(v: TreeNode) -> None:
    siblings = v.parent.children
    w = siblings[v.number - 1] if v.number else None
    if v.children:
        _execute_shifts(v)
        midpoint = (v.children[0].prelim + v.children[-1].prelim) / 2
        if w is not None:
            v.prelim = w.prelim + _separation(v, w)
            v.mod = v.prelim - midpoint
        else:
            v.prelim = midpoint
    elif w is not None:
        v.prelim = w.prelim + _separation(v, w)
    v.parent.default_ancestor = _apportion(v, w, v.parent.default_ancestor or siblings[0])


def _next_left(v: TreeNode) -> TreeNode | None:
    return v.children[0] if v.children else v.thread


def _next_right(v: TreeNode) -> TreeNode | None:
    return v.children[-1] if v.children else v.thread


def _move_subtree(wm: TreeNode, wp: TreeNode, shift: float) -> None:
    change = shift / (wp.number - wm.number)
    wp.change -= change
    wp.shift += shift
    wm.change += change
    wp.prelim += shift
    wp.mod += shift


def _execute_shifts(v: TreeNode) -> None:
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.prelim += shift
        w.mod += shift
        change += w.change
        shift += w.shift + change


def _next_ancestor(vim: TreeNode, v: TreeNode, ancestor: TreeNode) -> TreeNode:
    return vim.ancestor if vim.ancestor.parent is v.parent else ancestor


def _apportion(v: TreeNode, w: TreeNode | None, ancestor: TreeNode) -> TreeNode:
    if w is None:
        return ancestor

    vip = vop = v
    vim = w
    vom = v.parent.children[0]
    sip = vip.mod
    sop = vop.mod
    sim = vim.mod
    som = vom.mod

    vim = _next_right(vim)
    vip = _next_left(vip)
    while vim is not None and vip is not None:
        vom = _next_left(vom)
        vop = _next_right(vop)
        vop.ancestor = v
        shift = vim.prelim + sim - vip.prelim - sip + _separation(vim, vip)
        if shift > 0:
            _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
            sip += shift
            sop += shift
        sim += vim.mod
        sip += vip.mod
        som += vom.mod
        sop += vop.mod
        vim = _next_right(vim)
        vip = _next_left(vip)

    if vim is not None and _next_right(vop) is None:
        vop.thread = vim
        vop.mod += sim - sop
    if vip is not None and _next_left(vom) is None:
        vom.thread = vip
        vom.mod += sip - som
        ancestor = v
    return ancestor
