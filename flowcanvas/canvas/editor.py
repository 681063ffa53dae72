"""
Canvas Editor - owns the stores, the viewport and the interaction state.

This controller coordinates between:
- Pointer/keyboard events from the host UI
- The pure interaction reducer
- The Node/Edge store and the viewport, which it mutates by applying the
  reducer's commands

Every event is handled to completion before the next one; there is no
background work. Store errors raised while applying a command (invalid or
duplicate edge, stale node id) are absorbed as no-ops.
"""

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, Union

from flowcanvas.canvas.catalog import BlockCatalog
from flowcanvas.canvas.constants import (
    GRID_SIZE,
    MIN_ZOOM,
    MAX_ZOOM,
    ZOOM_STEP,
    DUPLICATE_OFFSET,
    PALETTE_ORIGIN,
    PALETTE_STEP,
)
from flowcanvas.canvas.errors import InvalidEdge, NodeNotFound, UnknownBlockType
from flowcanvas.canvas.geometry import Point
from flowcanvas.canvas.hit_test import hit_test, output_port_position
from flowcanvas.canvas.interaction import (
    IDLE,
    AddEdge,
    AddNode,
    ClearSelection,
    Command,
    ConnectingFrom,
    Drop,
    Event,
    InteractionState,
    MoveNode,
    Panning,
    PointerDown,
    PointerUp,
    RemoveEdge,
    RemoveSelection,
    SelectNode,
    SetPan,
    Wheel,
    ZoomAt,
    reduce,
)
from flowcanvas.canvas.store import Edge, GraphStore, Node
from flowcanvas.canvas.viewport import Viewport, ViewportState

if TYPE_CHECKING:
    from flowcanvas.config import CanvasSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CanvasSnapshot:
    """Read-only projection consumed by the render layer and config panel."""
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]
    viewport: ViewportState
    selected_node_id: Optional[str]
    interaction: InteractionState
    pending_connection: Optional[Tuple[Point, Point]] = None  # canvas space

    @property
    def selected_node(self) -> Optional[Node]:
        for node in self.nodes:
            if node.id == self.selected_node_id:
                return node
        return None


class CanvasEditor:
    """Manages one canvas surface and resolves events into store mutations."""

    def __init__(self, catalog: BlockCatalog = None,
                 settings: 'CanvasSettings' = None):
        self.catalog = catalog or BlockCatalog()
        self.settings = settings
        self.zoom_step = getattr(settings, 'zoom_step', ZOOM_STEP)
        self.store = GraphStore(
            self.catalog,
            grid_size=getattr(settings, 'grid_size', GRID_SIZE),
            duplicate_offset=getattr(settings, 'duplicate_offset', DUPLICATE_OFFSET),
        )
        self.viewport = Viewport(
            min_zoom=getattr(settings, 'min_zoom', MIN_ZOOM),
            max_zoom=getattr(settings, 'max_zoom', MAX_ZOOM),
        )
        self._state: InteractionState = IDLE
        self._selected_node_id: Optional[str] = None
        self._surface_size: Optional[Point] = None
        self._on_change: Optional[Callable[[CanvasSnapshot], None]] = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._selected_node_id

    @property
    def selected_node(self) -> Optional[Node]:
        if self._selected_node_id is None:
            return None
        return self.store.get_node(self._selected_node_id)

    def set_on_change(self, callback: Callable[[CanvasSnapshot], None]):
        self._on_change = callback

    def _notify_change(self):
        if self._on_change:
            self._on_change(self.snapshot())

    # --- Event dispatch ---

    def _resolve_target(self, event: Event) -> Event:
        """Fill in the target of pointer events the host did not hit-test."""
        if isinstance(event, (PointerDown, PointerUp)) and event.target is None:
            canvas_point = self.viewport.screen_to_canvas(event.point)
            return replace(event, target=hit_test(self.store, canvas_point))
        return event

    def dispatch(self, event: Event) -> InteractionState:
        """Feed one event through the state machine and apply its commands."""
        point = getattr(event, 'point', None)
        if point is not None and not point.is_finite():
            logger.debug(f"Ignored event with non-finite point: {event!r}")
            return self._state

        event = self._resolve_target(event)
        previous = self._state
        transition = reduce(self._state, event, self.viewport.state, self.zoom_step)
        self._state = transition.state

        for command in transition.commands:
            self._apply(command)
        if isinstance(self._state, Panning) and isinstance(event, Wheel):
            # Zooming moved the pan; later moves continue from the zoomed view
            self._state = Panning(start_screen=event.point, start_pan=self.viewport.pan)

        if transition.commands or transition.state != previous:
            self._notify_change()
        return self._state

    def _apply(self, command: Command) -> None:
        if isinstance(command, ClearSelection):
            self._selected_node_id = None
        elif isinstance(command, SelectNode):
            self._selected_node_id = command.node_id
        elif isinstance(command, SetPan):
            self.viewport.set_pan(command.pan)
        elif isinstance(command, ZoomAt):
            self.viewport.zoom_by(command.factor, command.anchor)
        elif isinstance(command, MoveNode):
            try:
                self.store.move_node(command.node_id, command.position)
            except NodeNotFound:
                logger.debug(f"Drag target {command.node_id} vanished; ending drag")
                self._state = IDLE
        elif isinstance(command, AddEdge):
            try:
                self.store.add_edge(command.source_id, command.target_id)
            except InvalidEdge as e:
                logger.debug(f"Connection ignored: {e}")
        elif isinstance(command, RemoveEdge):
            if not self.store.remove_edge(command.edge_id):
                logger.debug(f"Edge {command.edge_id} already gone")
        elif isinstance(command, RemoveSelection):
            self.remove_selected(notify=False)
        elif isinstance(command, AddNode):
            try:
                node = self.store.add_node(command.block_type, command.position)
            except UnknownBlockType as e:
                logger.debug(f"Drop ignored: {e}")
                return
            self._selected_node_id = node.id
        else:
            raise TypeError(f"Unknown command: {command!r}")

    # --- Palette and toolbar operations ---

    def add_block(self, block_type: str, position=None) -> Node:
        """Place a block from a palette click; selects it."""
        if position is None:
            n = len(self.store)
            position = Point(PALETTE_ORIGIN[0] + n * PALETTE_STEP[0],
                             PALETTE_ORIGIN[1] + n * PALETTE_STEP[1])
        node = self.store.add_node(block_type, position)
        self._selected_node_id = node.id
        self._notify_change()
        return node

    def drop_template(self, screen_point: Point, descriptor: Union[str, Dict[str, Any]]) -> Optional[Node]:
        """Handle a palette item dropped on the surface."""
        definition = self.catalog.parse_descriptor(descriptor)
        before = len(self.store)
        self.dispatch(Drop(screen_point, definition.type))
        if len(self.store) == before:
            return None
        return self.store.nodes[-1]

    def select(self, node_id: Optional[str]) -> None:
        if node_id is not None and not self.store.has_node(node_id):
            logger.debug(f"Cannot select missing node {node_id}")
            return
        self._selected_node_id = node_id
        self._notify_change()

    def remove_node(self, node_id: str) -> bool:
        try:
            self.store.remove_node(node_id)
        except NodeNotFound:
            logger.debug(f"Remove ignored, node {node_id} not found")
            return False
        if self._selected_node_id == node_id:
            self._selected_node_id = None
        if getattr(self._state, 'node_id', None) == node_id or \
                getattr(self._state, 'source_node_id', None) == node_id:
            self._state = IDLE
        self._notify_change()
        return True

    def remove_selected(self, notify: bool = True) -> bool:
        if self._selected_node_id is None:
            return False
        node_id = self._selected_node_id
        self._selected_node_id = None
        try:
            self.store.remove_node(node_id)
        except NodeNotFound:
            logger.debug(f"Selected node {node_id} already removed")
            return False
        if notify:
            self._notify_change()
        return True

    def remove_edge(self, edge_id: str) -> bool:
        removed = self.store.remove_edge(edge_id)
        if removed:
            self._notify_change()
        return removed

    def duplicate_selected(self) -> Optional[Node]:
        if self._selected_node_id is None:
            return None
        try:
            node = self.store.duplicate_node(self._selected_node_id)
        except NodeNotFound:
            logger.debug(f"Duplicate ignored, node {self._selected_node_id} not found")
            return None
        self._selected_node_id = node.id
        self._notify_change()
        return node

    def configure_selected(self, **fields) -> Optional[Node]:
        """Edit config fields of the selected node (config panel)."""
        if self._selected_node_id is None:
            return None
        node = self.store.configure_node(self._selected_node_id, **fields)
        self._notify_change()
        return node

    def rename_selected(self, label: str) -> Optional[Node]:
        """Relabel the selected node; a blank label restores the catalog label."""
        if self._selected_node_id is None:
            return None
        node = self.store.get_node(self._selected_node_id)
        label = (label or '').strip() or self.catalog.get(node.type).label
        node = self.store.rename_node(node.id, label)
        self._notify_change()
        return node

    def _reorder_selected(self, to_front: bool) -> bool:
        if self._selected_node_id is None:
            return False
        ids = [n.id for n in self.store.nodes]
        from_index = ids.index(self._selected_node_id)
        to_index = len(ids) - 1 if to_front else 0
        if from_index == to_index:
            return False
        self.store.reorder_node(from_index, to_index)
        self._notify_change()
        return True

    def bring_to_front(self) -> bool:
        """Draw the selected node above the others; it also wins overlapping hits."""
        return self._reorder_selected(to_front=True)

    def send_to_back(self) -> bool:
        return self._reorder_selected(to_front=False)

    def set_surface(self, origin: Point, size: Point = None) -> None:
        """Record where the surface sits on screen and how big it is."""
        self.viewport.set_origin(origin)
        if size is not None:
            self._surface_size = size

    def _surface_centre(self) -> Optional[Point]:
        if self._surface_size is None:
            return None
        return self.viewport.origin + self._surface_size.scaled(0.5)

    def zoom_in(self) -> ViewportState:
        state = self.viewport.zoom_by(self.zoom_step, self._surface_centre())
        self._notify_change()
        return state

    def zoom_out(self) -> ViewportState:
        state = self.viewport.zoom_by(1 / self.zoom_step, self._surface_centre())
        self._notify_change()
        return state

    def reset_view(self) -> ViewportState:
        state = self.viewport.reset_view()
        self._notify_change()
        return state

    # --- Projection ---

    def pending_connection(self) -> Optional[Tuple[Point, Point]]:
        """(output port, cursor) in canvas space while a connection is drawn."""
        if not isinstance(self._state, ConnectingFrom):
            return None
        try:
            source = self.store.get_node(self._state.source_node_id)
        except NodeNotFound:
            return None
        return output_port_position(source), self._state.cursor

    def snapshot(self) -> CanvasSnapshot:
        return CanvasSnapshot(
            nodes=self.store.nodes,
            edges=self.store.edges,
            viewport=self.viewport.state,
            selected_node_id=self._selected_node_id,
            interaction=self._state,
            pending_connection=self.pending_connection(),
        )
