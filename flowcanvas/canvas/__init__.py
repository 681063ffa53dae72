"""
Node-graph canvas for building data pipelines.

This package provides the editing core behind the canvas page:
- GraphStore: Nodes and edges with grid snapping and edge validation
- Viewport: Pan/zoom transform between screen and canvas space
- reduce: Pure interaction state machine (Idle, Panning, DraggingNode, ConnectingFrom)
- CanvasEditor: Applies events to the stores and produces snapshots
- ListenerScope: Document-level listeners released with the surface
- setup_canvas_handlers: NiceGUI event handlers for app.py integration

Usage:
    from flowcanvas.canvas import CanvasEditor, BlockCatalog
    from flowcanvas.canvas.handlers import setup_canvas_handlers
"""

from flowcanvas.canvas.constants import (
    GRID_SIZE,
    MIN_ZOOM,
    MAX_ZOOM,
    NODE_WIDTH,
    NODE_HEIGHT,
    PORT_HIT_RADIUS,
)
from flowcanvas.canvas.errors import (
    CanvasError,
    InvalidEdge,
    DuplicateEdge,
    NodeNotFound,
    UnknownBlockType,
)
from flowcanvas.canvas.geometry import Point, snap_point
from flowcanvas.canvas.viewport import Viewport, ViewportState
from flowcanvas.canvas.catalog import BlockCatalog, BlockDefinition
from flowcanvas.canvas.store import GraphStore, Node, Edge
from flowcanvas.canvas.interaction import reduce, IDLE
from flowcanvas.canvas.editor import CanvasEditor, CanvasSnapshot
from flowcanvas.canvas.listeners import ListenerScope
from flowcanvas.canvas.handlers import setup_canvas_handlers

__all__ = [
    'CanvasEditor',
    'CanvasSnapshot',
    'GraphStore',
    'Node',
    'Edge',
    'Viewport',
    'ViewportState',
    'BlockCatalog',
    'BlockDefinition',
    'ListenerScope',
    'Point',
    'snap_point',
    'reduce',
    'IDLE',
    'setup_canvas_handlers',
    'CanvasError',
    'InvalidEdge',
    'DuplicateEdge',
    'NodeNotFound',
    'UnknownBlockType',
    'GRID_SIZE',
    'MIN_ZOOM',
    'MAX_ZOOM',
    'NODE_WIDTH',
    'NODE_HEIGHT',
    'PORT_HIT_RADIUS',
]
