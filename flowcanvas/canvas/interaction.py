"""
Interaction State Machine - single source of truth for the pointer mode.

The machine is a pure reducer:

    reduce(state, event, view) -> Transition(state, commands)

It never touches the stores. Each transition returns the next state plus
the commands the editor must apply (move a node, add an edge, pan...).
Exactly one mode is active at a time:

    Idle | Panning | DraggingNode | ConnectingFrom

Escape, Cancel and any pointer-up (on the canvas or anywhere in the
document) collapse to Idle. The only store mutation a collapsing event may
carry is the AddEdge of a connection that completes over an input port.
"""

from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Optional, Tuple, Type, Union

from flowcanvas.canvas.constants import LEFT_BUTTON, MIDDLE_BUTTON, ZOOM_STEP
from flowcanvas.canvas.geometry import Point
from flowcanvas.canvas.viewport import ViewportState


# =============================================================================
# STATES
# =============================================================================

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Panning:
    start_screen: Point
    start_pan: Point


@dataclass(frozen=True)
class DraggingNode:
    node_id: str
    grab_offset: Point


@dataclass(frozen=True)
class ConnectingFrom:
    source_node_id: str
    cursor: Point  # live canvas point of the pointer


InteractionState = Union[Idle, Panning, DraggingNode, ConnectingFrom]

IDLE = Idle()


# =============================================================================
# TARGETS - what a pointer event landed on
# =============================================================================

@dataclass(frozen=True)
class EmptyCanvas:
    pass


@dataclass(frozen=True)
class NodeBody:
    node_id: str
    origin: Point  # node position at the time of the hit


@dataclass(frozen=True)
class OutputPort:
    node_id: str


@dataclass(frozen=True)
class InputPort:
    node_id: str


@dataclass(frozen=True)
class EdgePath:
    edge_id: str


@dataclass(frozen=True)
class Outside:
    """Pointer released somewhere in the document, off the canvas."""
    pass


Target = Union[EmptyCanvas, NodeBody, OutputPort, InputPort, EdgePath, Outside]


# =============================================================================
# EVENTS
# =============================================================================

@dataclass(frozen=True)
class PointerDown:
    point: Point  # screen space
    target: Optional[Target] = None  # None: editor hit-tests
    button: int = LEFT_BUTTON
    alt: bool = False


@dataclass(frozen=True)
class PointerMove:
    point: Point


@dataclass(frozen=True)
class PointerUp:
    point: Point
    target: Optional[Target] = None


@dataclass(frozen=True)
class KeyDown:
    key: str


@dataclass(frozen=True)
class Wheel:
    point: Point
    delta_y: float


@dataclass(frozen=True)
class Drop:
    point: Point
    block_type: str


@dataclass(frozen=True)
class Cancel:
    """Interaction aborted by the host (window blur, surface unmount)."""
    pass


Event = Union[PointerDown, PointerMove, PointerUp, KeyDown, Wheel, Drop, Cancel]


# =============================================================================
# COMMANDS - side effects for the editor to apply
# =============================================================================

@dataclass(frozen=True)
class ClearSelection:
    pass


@dataclass(frozen=True)
class SelectNode:
    node_id: str


@dataclass(frozen=True)
class SetPan:
    pan: Point


@dataclass(frozen=True)
class MoveNode:
    node_id: str
    position: Point  # canvas space, snapped by the store


@dataclass(frozen=True)
class AddEdge:
    source_id: str
    target_id: str


@dataclass(frozen=True)
class RemoveEdge:
    edge_id: str


@dataclass(frozen=True)
class RemoveSelection:
    pass


@dataclass(frozen=True)
class ZoomAt:
    factor: float
    anchor: Point  # screen space


@dataclass(frozen=True)
class AddNode:
    block_type: str
    position: Point  # canvas space


Command = Union[ClearSelection, SelectNode, SetPan, MoveNode, AddEdge,
                RemoveEdge, RemoveSelection, ZoomAt, AddNode]


class Transition(NamedTuple):
    state: InteractionState
    commands: Tuple[Command, ...] = ()


ESCAPE_KEYS = frozenset(['Escape', 'Esc'])
DELETE_KEYS = frozenset(['Delete', 'Backspace'])


# =============================================================================
# REDUCER
# =============================================================================

def _stay(state: InteractionState) -> Transition:
    return Transition(state, ())


def _idle(state: Idle, event: Event, view: ViewportState) -> Transition:
    if not isinstance(event, PointerDown):
        return _stay(state)

    if event.button == MIDDLE_BUTTON or (event.button == LEFT_BUTTON and event.alt):
        return Transition(Panning(start_screen=event.point, start_pan=view.pan))
    if event.button != LEFT_BUTTON:
        return _stay(state)

    target = event.target
    if isinstance(target, OutputPort):
        cursor = view.screen_to_canvas(event.point)
        return Transition(ConnectingFrom(source_node_id=target.node_id, cursor=cursor))
    if isinstance(target, NodeBody):
        grab_offset = view.screen_to_canvas(event.point) - target.origin
        return Transition(DraggingNode(node_id=target.node_id, grab_offset=grab_offset),
                          (SelectNode(target.node_id),))
    if isinstance(target, EdgePath):
        return Transition(IDLE, (RemoveEdge(target.edge_id),))
    if isinstance(target, InputPort):
        # Connections start from outputs only
        return _stay(state)
    return Transition(IDLE, (ClearSelection(),))


def _panning(state: Panning, event: Event, view: ViewportState) -> Transition:
    if isinstance(event, PointerMove):
        return Transition(state, (SetPan(state.start_pan + (event.point - state.start_screen)),))
    if isinstance(event, PointerUp):
        return Transition(IDLE)
    return _stay(state)


def _dragging(state: DraggingNode, event: Event, view: ViewportState) -> Transition:
    if isinstance(event, PointerMove):
        position = view.screen_to_canvas(event.point) - state.grab_offset
        return Transition(state, (MoveNode(state.node_id, position),))
    if isinstance(event, PointerUp):
        return Transition(IDLE)
    return _stay(state)


def _connecting(state: ConnectingFrom, event: Event, view: ViewportState) -> Transition:
    if isinstance(event, PointerMove):
        return Transition(ConnectingFrom(state.source_node_id, view.screen_to_canvas(event.point)))
    if isinstance(event, PointerUp):
        target = event.target
        if isinstance(target, InputPort) and target.node_id != state.source_node_id:
            return Transition(IDLE, (AddEdge(state.source_node_id, target.node_id),))
        return Transition(IDLE)
    return _stay(state)


_HANDLERS: Dict[Type, Callable[..., Transition]] = {
    Idle: _idle,
    Panning: _panning,
    DraggingNode: _dragging,
    ConnectingFrom: _connecting,
}


def _on_key(state: InteractionState, event: KeyDown) -> Transition:
    if event.key in ESCAPE_KEYS:
        return Transition(IDLE, (ClearSelection(),))
    if event.key in DELETE_KEYS and isinstance(state, Idle):
        return Transition(IDLE, (RemoveSelection(),))
    return _stay(state)


def reduce(state: InteractionState, event: Event, view: ViewportState,
           zoom_step: float = ZOOM_STEP) -> Transition:
    """Resolve one event against the current state. Pure."""
    if isinstance(event, KeyDown):
        return _on_key(state, event)
    if isinstance(event, Cancel):
        return Transition(IDLE)
    if isinstance(event, Wheel):
        if event.delta_y == 0:
            return _stay(state)
        factor = zoom_step if event.delta_y < 0 else 1 / zoom_step
        return Transition(state, (ZoomAt(factor, event.point),))
    if isinstance(event, Drop):
        return Transition(state, (AddNode(event.block_type, view.screen_to_canvas(event.point)),))

    try:
        handler = _HANDLERS[type(state)]
    except KeyError:
        raise TypeError(f"Unknown interaction state: {state!r}")
    return handler(state, event, view)
