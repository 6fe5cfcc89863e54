"""
Workflow Graph Builder

Converts an ordered block list into the node/edge graph the canvas edits, and
walks an edited graph back into an ordered block list on save.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, MutableMapping, Optional, Set, Tuple

from shared.logger import get_logger

from .errors import GraphStructureError, UnsupportedBlockKind
from .layout import layout
from .schema import (
    Block,
    BlockType,
    Edge,
    ForLoopBlock,
    Graph,
    Node,
    parse_blocks,
)

logger = get_logger("workflow_core.graph_builder")


class BlockShape:
    """How one block kind maps onto canvas nodes."""

    container = False

    def __init__(self, node_type: str) -> None:
        self.node_type = node_type

    def expand(self, block: Block) -> Tuple[Block, List[Block]]:
        """Split *block* into the payload its node carries and the blocks nested inside it."""
        return block, []

    def collapse(self, block: Block, nested: List[Block]) -> Block:
        """Inverse of ``expand``."""
        return block


class LoopShape(BlockShape):
    """A container node whose children are the loop body, in order."""

    container = True

    def expand(self, block: Block) -> Tuple[Block, List[Block]]:
        if not isinstance(block, ForLoopBlock):
            raise UnsupportedBlockKind(block.block_type, block.label)
        return block.model_copy(update={"loop_blocks": []}), list(block.loop_blocks)

    def collapse(self, block: Block, nested: List[Block]) -> Block:
        return block.model_copy(update={"loop_blocks": list(nested)})


class BlockShapeRegistry:
    """Stores the shape of every supported block kind."""

    def __init__(self, initial: MutableMapping[str, BlockShape] | None = None) -> None:
        self._shapes: Dict[str, BlockShape] = dict(initial or {})

    def register(self, block_type: str, shape: BlockShape) -> None:
        self._shapes[_block_type_value(block_type)] = shape

    def get(self, block_type: Any, label: Optional[str] = None) -> BlockShape:
        try:
            return self._shapes[_block_type_value(block_type)]
        except KeyError:
            raise UnsupportedBlockKind(block_type, label) from None


def _block_type_value(block_type: Any) -> Any:
    return block_type.value if isinstance(block_type, BlockType) else block_type


def _register_builtin_shapes(registry: BlockShapeRegistry) -> None:
    registry.register(BlockType.TASK, BlockShape("task"))
    registry.register(BlockType.FOR_LOOP, LoopShape("loop"))
    registry.register(BlockType.CODE, BlockShape("codeBlock"))
    registry.register(BlockType.TEXT_PROMPT, BlockShape("textPrompt"))
    registry.register(BlockType.DOWNLOAD_TO_S3, BlockShape("download"))
    registry.register(BlockType.UPLOAD_TO_S3, BlockShape("upload"))
    registry.register(BlockType.SEND_EMAIL, BlockShape("sendEmail"))
    registry.register(BlockType.FILE_URL_PARSER, BlockShape("fileParser"))


block_shapes = BlockShapeRegistry()
_register_builtin_shapes(block_shapes)


def node_id_for(block: Block) -> str:
    """Node IDs are block labels, so reloading a definition keeps them stable."""
    return block.label


def edge_id_for(source: str, target: str) -> str:
    return f"{source}->{target}"


class WorkflowGraphBuilder:
    """Builds the canvas graph from a block list and back."""

    def __init__(self, shapes: Optional[BlockShapeRegistry] = None):
        self.shapes = shapes or block_shapes

    def to_graph(self, blocks: Iterable[Any]) -> Graph:
        """
        Convert an ordered block list into a positioned graph.

        Args:
            blocks: Block models or raw block mappings, in execution order

        Returns:
            Graph with one node per block (nested blocks included) and one edge
            per pair of adjacent blocks in the same scope

        Raises:
            UnsupportedBlockKind: If any block kind has no registered shape
            GraphStructureError: If two blocks share a label
        """
        blocks = parse_blocks(blocks)
        nodes: List[Node] = []
        edges: List[Edge] = []
        containers: Set[str] = set()
        seen: Set[str] = set()

        def expand_scope(scope: List[Block], parent_id: Optional[str]) -> None:
            previous: Optional[str] = None
            for block in scope:
                shape = self.shapes.get(block.block_type, block.label)
                node_id = node_id_for(block)
                if node_id in seen:
                    raise GraphStructureError(f"Block label '{block.label}' is used more than once")
                seen.add(node_id)

                payload, nested = shape.expand(block)
                nodes.append(Node(id=node_id, type=shape.node_type, parent_id=parent_id, block=payload))
                if shape.container:
                    containers.add(node_id)
                if previous is not None:
                    edges.append(Edge(id=edge_id_for(previous, node_id), source=previous, target=node_id))
                previous = node_id

                if nested:
                    expand_scope(nested, node_id)

        expand_scope(blocks, None)
        logger.debug("Built graph with %d nodes and %d edges", len(nodes), len(edges))
        return Graph(nodes=layout(nodes, containers), edges=edges)

    def to_blocks(self, graph: Graph) -> List[Block]:
        """
        Walk *graph* from its entry node back into an ordered block list.

        Each scope must be a single chain: one entry node, no forks or joins,
        every node reachable. Containers are walked recursively.

        Raises:
            GraphStructureError: If the graph cannot be read as a chain
            UnsupportedBlockKind: If a node wraps a block kind with no shape
        """
        nodes_by_id: Dict[str, Node] = {}
        for node in graph.nodes:
            if node.id in nodes_by_id:
                raise GraphStructureError(f"Node id '{node.id}' is used more than once")
            nodes_by_id[node.id] = node

        scopes: Dict[Optional[str], List[Node]] = defaultdict(list)
        for node in graph.nodes:
            if node.parent_id is not None:
                parent = nodes_by_id.get(node.parent_id)
                if parent is None:
                    raise GraphStructureError(f"Node '{node.id}' references missing parent '{node.parent_id}'")
                if not self.shapes.get(parent.block.block_type, parent.block.label).container:
                    raise GraphStructureError(f"Node '{node.id}' is nested in '{parent.id}', which is not a container")
            scopes[node.parent_id].append(node)

        outgoing: Dict[str, str] = {}
        incoming: Dict[str, str] = {}
        for edge in graph.edges:
            source = nodes_by_id.get(edge.source)
            target = nodes_by_id.get(edge.target)
            if source is None or target is None:
                raise GraphStructureError(f"Edge '{edge.id}' connects a node that does not exist")
            if source.parent_id != target.parent_id:
                raise GraphStructureError(f"Edge '{edge.id}' crosses a container boundary")
            if edge.source in outgoing:
                raise GraphStructureError(f"Node '{edge.source}' has more than one outgoing edge")
            if edge.target in incoming:
                raise GraphStructureError(f"Node '{edge.target}' has more than one incoming edge")
            outgoing[edge.source] = edge.target
            incoming[edge.target] = edge.source

        collected: Set[str] = set()

        def collect(parent_id: Optional[str]) -> List[Block]:
            scope = scopes.get(parent_id, [])
            if not scope:
                return []
            entries = [node for node in scope if node.id not in incoming]
            where = f"container '{parent_id}'" if parent_id else "the workflow"
            if len(entries) != 1:
                raise GraphStructureError(f"Expected one entry node in {where}, found {len(entries)}")

            ordered: List[str] = []
            current: Optional[str] = entries[0].id
            while current is not None:
                ordered.append(current)
                current = outgoing.get(current)
            if len(ordered) != len(scope):
                unreachable = sorted({node.id for node in scope} - set(ordered))
                raise GraphStructureError(f"Nodes not reachable from the entry of {where}: {', '.join(unreachable)}")
            collected.update(ordered)

            blocks: List[Block] = []
            for node_id in ordered:
                node = nodes_by_id[node_id]
                shape = self.shapes.get(node.block.block_type, node.block.label)
                nested = collect(node_id) if shape.container else []
                blocks.append(shape.collapse(node.block, nested))
            return blocks

        blocks = collect(None)
        # Nodes under a parent cycle never hang off the top-level scope.
        detached = sorted(nodes_by_id.keys() - collected)
        if detached:
            raise GraphStructureError(f"Nodes not reachable from the workflow entry: {', '.join(detached)}")
        return blocks

    def walk(self, graph: Graph) -> List[str]:
        """Block labels in execution order, descending into containers."""
        labels: List[str] = []

        def visit(blocks: List[Block]) -> None:
            for block in blocks:
                labels.append(block.label)
                _, nested = self.shapes.get(block.block_type, block.label).expand(block)
                visit(nested)

        visit(self.to_blocks(graph))
        return labels


# Global graph builder instance
_graph_builder = WorkflowGraphBuilder()


def get_workflow_graph_builder() -> WorkflowGraphBuilder:
    """Get global graph builder instance."""
    return _graph_builder


def get_elements(blocks: Iterable[Any]) -> Graph:
    return _graph_builder.to_graph(blocks)


def to_blocks(graph: Graph) -> List[Block]:
    return _graph_builder.to_blocks(graph)


__all__ = [
    "BlockShape",
    "LoopShape",
    "BlockShapeRegistry",
    "block_shapes",
    "node_id_for",
    "edge_id_for",
    "WorkflowGraphBuilder",
    "get_workflow_graph_builder",
    "get_elements",
    "to_blocks",
]
