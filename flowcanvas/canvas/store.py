"""
Node / Edge Store for the canvas.

Nodes and edges live in a networkx DiGraph: node attributes hold the Node
record and edge attributes hold the Edge record. The DiGraph gives cascade
deletion (removing a node drops its incident edges) and O(1) duplicate-pair
checks. A separate list keeps the user-visible node order.

Invariants:
- node and edge ids are unique and never reused
- node positions are finite and grid-snapped
- no self-loops, no duplicate (source, target) pairs
- every edge goes from a type with an output port to a type with an input port
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

import networkx as nx

from flowcanvas.canvas.block_config import BlockConfig, config_for, config_type_for, update_config
from flowcanvas.canvas.catalog import BlockCatalog
from flowcanvas.canvas.constants import GRID_SIZE, DUPLICATE_OFFSET
from flowcanvas.canvas.errors import (
    DuplicateEdge,
    InvalidEdge,
    NodeNotFound,
)
from flowcanvas.canvas.geometry import Point, snap_point

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    """Unique id such as 'node-3f2a...'."""
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Node:
    """A placed block."""
    id: str
    type: str
    label: str
    position: Point
    config: BlockConfig


@dataclass(frozen=True)
class Edge:
    """A directed connection from source's output port to target's input port."""
    id: str
    source_id: str
    target_id: str


class GraphStore:
    """Ordered node collection plus the edge set between them."""

    def __init__(self, catalog: BlockCatalog = None, grid_size: float = GRID_SIZE,
                 duplicate_offset: float = DUPLICATE_OFFSET):
        self.catalog = catalog or BlockCatalog()
        self.grid_size = grid_size
        self.duplicate_offset = duplicate_offset
        self._graph = nx.DiGraph()
        self._order: List[str] = []
        self._edge_pairs: Dict[str, Tuple[str, str]] = {}

    # --- Read access ---

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return tuple(self._graph.nodes[nid]['node'] for nid in self._order)

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return tuple(self._graph.edges[pair]['edge'] for pair in self._edge_pairs.values())

    def __len__(self) -> int:
        return len(self._order)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._graph

    def get_node(self, node_id: str) -> Node:
        if node_id not in self._graph:
            raise NodeNotFound(node_id)
        return self._graph.nodes[node_id]['node']

    def find_edge(self, source_id: str, target_id: str) -> Optional[Edge]:
        if self._graph.has_edge(source_id, target_id):
            return self._graph.edges[source_id, target_id]['edge']
        return None

    def edges_of(self, node_id: str) -> List[Edge]:
        """All edges touching node_id, outgoing first."""
        if node_id not in self._graph:
            raise NodeNotFound(node_id)
        out_edges = [self._graph.edges[e]['edge'] for e in self._graph.out_edges(node_id)]
        in_edges = [self._graph.edges[e]['edge'] for e in self._graph.in_edges(node_id)]
        return out_edges + in_edges

    def index_of(self, node_id: str) -> int:
        if node_id not in self._graph:
            raise NodeNotFound(node_id)
        return self._order.index(node_id)

    def to_networkx(self) -> nx.DiGraph:
        """Independent copy of the underlying graph."""
        return self._graph.copy()

    # --- Node mutations ---

    def _snap(self, position: Point) -> Point:
        position = Point.of(position)
        if not position.is_finite():
            raise ValueError(f"Node position must be finite, got {position!r}")
        return snap_point(position, self.grid_size)

    def _store_node(self, node: Node) -> None:
        self._graph.nodes[node.id]['node'] = node

    def add_node(self, block_type: str, position, config: BlockConfig = None,
                 label: str = None) -> Node:
        """Place a new block; the position is grid-snapped."""
        definition = self.catalog.get(block_type)
        if config is None:
            config = config_for(block_type)
        else:
            self._check_config(block_type, config)

        node = Node(
            id=generate_id('node'),
            type=block_type,
            label=label or definition.label,
            position=self._snap(position),
            config=config,
        )
        self._graph.add_node(node.id, node=node)
        self._order.append(node.id)
        logger.info(f"Added {block_type} node {node.id} at {node.position.as_tuple()}")
        return node

    def move_node(self, node_id: str, position) -> Node:
        node = self.get_node(node_id)
        snapped = self._snap(position)
        if snapped == node.position:
            return node
        node = replace(node, position=snapped)
        self._store_node(node)
        return node

    def remove_node(self, node_id: str) -> List[Edge]:
        """Delete a node and every edge touching it. Returns the removed edges."""
        removed = self.edges_of(node_id)
        for edge in removed:
            del self._edge_pairs[edge.id]
        self._graph.remove_node(node_id)
        self._order.remove(node_id)
        logger.info(f"Removed node {node_id} and {len(removed)} edge(s)")
        return removed

    def duplicate_node(self, node_id: str) -> Node:
        """Clone a node with a fresh id, offset diagonally."""
        source = self.get_node(node_id)
        offset = Point(self.duplicate_offset, self.duplicate_offset)
        return self.add_node(source.type, source.position + offset,
                             config=source.config, label=source.label)

    def _check_config(self, block_type: str, config: BlockConfig) -> None:
        expected = config_type_for(block_type)
        if type(config) is not expected:
            raise ValueError(
                f"{block_type} nodes take {expected.__name__}, not {type(config).__name__}")

    def set_config(self, node_id: str, config: BlockConfig) -> Node:
        node = self.get_node(node_id)
        self._check_config(node.type, config)
        node = replace(node, config=config)
        self._store_node(node)
        return node

    def configure_node(self, node_id: str, **fields) -> Node:
        """Update individual config fields of a node."""
        node = self.get_node(node_id)
        return self.set_config(node_id, update_config(node.config, **fields))

    def rename_node(self, node_id: str, label: str) -> Node:
        node = replace(self.get_node(node_id), label=label)
        self._store_node(node)
        return node

    def reorder_node(self, from_index: int, to_index: int) -> None:
        """Move the node at from_index to to_index in the ordered collection."""
        count = len(self._order)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise IndexError(f"Reorder {from_index} -> {to_index} out of range for {count} nodes")
        node_id = self._order.pop(from_index)
        self._order.insert(to_index, node_id)

    # --- Edge mutations ---

    def validate_edge(self, source_id: str, target_id: str) -> None:
        """Raise InvalidEdge if source -> target would break an invariant."""
        if source_id == target_id:
            raise InvalidEdge(source_id, target_id, "self-loop")
        for node_id in (source_id, target_id):
            if node_id not in self._graph:
                raise InvalidEdge(source_id, target_id, f"node {node_id} does not exist")
        source = self.get_node(source_id)
        target = self.get_node(target_id)
        if not self.catalog.has_output_port(source.type):
            raise InvalidEdge(source_id, target_id, f"{source.type} has no output port")
        if not self.catalog.has_input_port(target.type):
            raise InvalidEdge(source_id, target_id, f"{target.type} has no input port")
        if self._graph.has_edge(source_id, target_id):
            raise DuplicateEdge(source_id, target_id)

    def can_connect(self, source_id: str, target_id: str) -> bool:
        try:
            self.validate_edge(source_id, target_id)
        except InvalidEdge:
            return False
        return True

    def add_edge(self, source_id: str, target_id: str) -> Edge:
        self.validate_edge(source_id, target_id)
        edge = Edge(id=generate_id('edge'), source_id=source_id, target_id=target_id)
        self._graph.add_edge(source_id, target_id, edge=edge)
        self._edge_pairs[edge.id] = (source_id, target_id)
        logger.info(f"Connected {source_id} -> {target_id} ({edge.id})")
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        """Delete an edge. Returns False when it was not present."""
        pair = self._edge_pairs.pop(edge_id, None)
        if pair is None:
            return False
        self._graph.remove_edge(*pair)
        logger.info(f"Removed edge {edge_id}")
        return True
