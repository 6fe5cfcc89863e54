"""
Deterministic top-to-bottom layout for workflow graphs.

Every scope (the top level, or the children of a container) is a vertical
chain. Child positions are relative to their container, and containers grow
to fit their children. The same node list always yields the same positions,
so a position cache keyed by node id stays valid across reloads.
"""

from __future__ import annotations

from collections import defaultdict
from typing import AbstractSet, Dict, List, Optional, Tuple

from workflow_core.schema import Node, Position

NODE_WIDTH = 400.0
NODE_HEIGHT = 120.0
RANK_SEPARATION = 60.0
CONTAINER_PADDING = 40.0
CONTAINER_HEADER = 100.0


def layout(nodes: List[Node], containers: AbstractSet[str] = frozenset()) -> List[Node]:
    """Return copies of *nodes* with ``position``, ``width`` and ``height`` filled in."""
    scopes: Dict[Optional[str], List[Node]] = defaultdict(list)
    for node in nodes:
        scopes[node.parent_id].append(node)

    sizes: Dict[str, Tuple[float, float]] = {}

    def measure(node_id: str) -> Tuple[float, float]:
        if node_id in sizes:
            return sizes[node_id]
        if node_id not in containers:
            sizes[node_id] = (NODE_WIDTH, NODE_HEIGHT)
            return sizes[node_id]
        children = [measure(child.id) for child in scopes.get(node_id, [])]
        inner_width = max([w for w, _ in children], default=NODE_WIDTH)
        inner_height = sum(h for _, h in children) + RANK_SEPARATION * max(len(children) - 1, 0)
        sizes[node_id] = (
            inner_width + 2 * CONTAINER_PADDING,
            CONTAINER_HEADER + inner_height + CONTAINER_PADDING,
        )
        return sizes[node_id]

    for node in nodes:
        measure(node.id)

    positions: Dict[str, Position] = {}
    for parent_id, scope in scopes.items():
        scope_width = max(sizes[node.id][0] for node in scope)
        if parent_id is None:
            x_offset, y = 0.0, 0.0
        else:
            x_offset, y = CONTAINER_PADDING, CONTAINER_HEADER
        for node in scope:
            width, height = sizes[node.id]
            positions[node.id] = Position(x=x_offset + (scope_width - width) / 2, y=y)
            y += height + RANK_SEPARATION

    return [
        node.model_copy(
            update={
                "position": positions[node.id],
                "width": sizes[node.id][0],
                "height": sizes[node.id][1],
            }
        )
        for node in nodes
    ]


__all__ = ["layout", "NODE_WIDTH", "NODE_HEIGHT", "RANK_SEPARATION", "CONTAINER_PADDING", "CONTAINER_HEADER"]
