"""
Canvas visualizer that renders a CanvasSnapshot.

Two projections are produced from the same snapshot:
- SVG markup for the NiceGUI interactive_image surface. Everything is drawn
  in canvas coordinates inside one group carrying the viewport transform, so
  connectors are the exact curves the hit-tester measures against.
- A Graphviz Digraph of the pipeline for export (ui.graphviz / DOT files).

Rendering is a pure function of the snapshot; nothing here mutates state.
"""

import html
from typing import List

from graphviz import Digraph

from flowcanvas.canvas.block_config import summarize_config
from flowcanvas.canvas.catalog import BlockCatalog
from flowcanvas.canvas.constants import GRID_SIZE, NODE_WIDTH, NODE_HEIGHT
from flowcanvas.canvas.editor import CanvasSnapshot
from flowcanvas.canvas.geometry import bezier_path
from flowcanvas.canvas.hit_test import input_port_position, output_port_position
from flowcanvas.canvas.store import Node

CATEGORY_COLORS = {
    'data': '#3b82f6',       # blue
    'transform': '#a855f7',  # purple
    'visualize': '#22c55e',  # green
}
DEFAULT_COLOR = '#9ca3af'
SELECTED_COLOR = '#f59e0b'
EDGE_COLOR = '#64748b'
GRID_COLOR = '#e5e7eb'
PORT_RADIUS = 6
UNCONFIGURED_TEXT = 'Not configured'


def _color_for(node: Node, catalog: BlockCatalog) -> str:
    if node.type not in catalog:
        return DEFAULT_COLOR
    return CATEGORY_COLORS.get(catalog.get(node.type).category, DEFAULT_COLOR)


def _grid(snapshot: CanvasSnapshot, width: float, height: float, grid_size: float) -> str:
    view = snapshot.viewport
    step = grid_size * view.zoom
    return (
        f'<defs><pattern id="fc-grid" width="{step:g}" height="{step:g}" '
        f'patternUnits="userSpaceOnUse" x="{view.pan.x:g}" y="{view.pan.y:g}">'
        f'<circle cx="1" cy="1" r="1" fill="{GRID_COLOR}"/></pattern></defs>'
        f'<rect x="0" y="0" width="{width:g}" height="{height:g}" fill="url(#fc-grid)"/>'
    )


def _node(node: Node, catalog: BlockCatalog, selected: bool) -> str:
    x, y = node.position.x, node.position.y
    color = _color_for(node, catalog)
    stroke = SELECTED_COLOR if selected else color
    stroke_width = 3 if selected else 1.5
    summary = summarize_config(node.config) or UNCONFIGURED_TEXT

    parts = [
        f'<g class="fc-node" data-node-id="{html.escape(node.id)}">',
        f'<rect x="{x:g}" y="{y:g}" width="{NODE_WIDTH}" height="{NODE_HEIGHT}" rx="8" '
        f'fill="white" stroke="{stroke}" stroke-width="{stroke_width:g}"/>',
        f'<rect x="{x:g}" y="{y:g}" width="6" height="{NODE_HEIGHT}" rx="3" fill="{color}"/>',
        f'<text x="{x + 16:g}" y="{y + 32:g}" font-size="14" font-weight="600" '
        f'fill="#111827">{html.escape(node.label)}</text>',
        f'<text x="{x + 16:g}" y="{y + 56:g}" font-size="11" fill="#6b7280">'
        f'{html.escape(summary)}</text>',
    ]

    if node.type in catalog:
        definition = catalog.get(node.type)
        if definition.has_input_port:
            p = input_port_position(node)
            parts.append(f'<circle cx="{p.x:g}" cy="{p.y:g}" r="{PORT_RADIUS}" '
                         f'fill="white" stroke="{color}" stroke-width="2"/>')
        if definition.has_output_port:
            p = output_port_position(node)
            parts.append(f'<circle cx="{p.x:g}" cy="{p.y:g}" r="{PORT_RADIUS}" fill="{color}"/>')
    parts.append('</g>')
    return ''.join(parts)


def build_canvas_content(snapshot: CanvasSnapshot, catalog: BlockCatalog,
                         width: float, height: float,
                         grid_size: float = GRID_SIZE) -> str:
    """SVG elements for the interactive_image overlay (no outer <svg>)."""
    view = snapshot.viewport
    nodes_by_id = {n.id: n for n in snapshot.nodes}

    parts: List[str] = [_grid(snapshot, width, height, grid_size)]
    parts.append(f'<g transform="translate({view.pan.x:g} {view.pan.y:g}) scale({view.zoom:g})">')

    for edge in snapshot.edges:
        source = nodes_by_id.get(edge.source_id)
        target = nodes_by_id.get(edge.target_id)
        if source is None or target is None:
            continue
        d = bezier_path(output_port_position(source), input_port_position(target))
        parts.append(f'<path class="fc-edge" data-edge-id="{html.escape(edge.id)}" d="{d}" '
                     f'fill="none" stroke="{EDGE_COLOR}" stroke-width="2"/>')

    if snapshot.pending_connection is not None:
        start, cursor = snapshot.pending_connection
        parts.append(f'<path d="{bezier_path(start, cursor)}" fill="none" '
                     f'stroke="{SELECTED_COLOR}" stroke-width="2" stroke-dasharray="6 4"/>')

    for node in snapshot.nodes:
        parts.append(_node(node, catalog, node.id == snapshot.selected_node_id))

    parts.append('</g>')
    return ''.join(parts)


def build_canvas_svg(snapshot: CanvasSnapshot, catalog: BlockCatalog,
                     width: float, height: float,
                     grid_size: float = GRID_SIZE) -> str:
    """Standalone SVG document of the visible canvas."""
    content = build_canvas_content(snapshot, catalog, width, height, grid_size)
    return (f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:g}" height="{height:g}" '
            f'viewBox="0 0 {width:g} {height:g}">{content}</svg>')


def blank_surface(width: float, height: float) -> str:
    """Data URL of an empty image used as the interactive_image background."""
    svg = (f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:g}" height="{height:g}">'
           f'<rect width="100%" height="100%" fill="#f9fafb"/></svg>')
    return 'data:image/svg+xml;utf8,' + svg.replace('#', '%23')


def to_dot(snapshot: CanvasSnapshot, catalog: BlockCatalog = None) -> Digraph:
    """
    Build a Graphviz representation of the pipeline.

    Nodes keep their canvas positions as pinned 'pos' attributes (y flipped,
    in points) so neato/fdp reproduce the layout; dot ignores them and lays
    the pipeline out left to right.
    """
    dot = Digraph(name="flowcanvas", comment="Flowcanvas Pipeline")
    dot.attr(rankdir="LR")
    dot.attr('node', shape="box", style="rounded,filled", fillcolor="white")

    for node in snapshot.nodes:
        summary = summarize_config(node.config)
        label = f"{node.label}\n{summary}" if summary else node.label
        attrs = {'pos': f"{node.position.x:g},{-node.position.y:g}!"}
        if catalog is not None:
            attrs['color'] = _color_for(node, catalog)
        if node.id == snapshot.selected_node_id:
            attrs['penwidth'] = "2"
        dot.node(node.id, label=label, **attrs)

    for edge in snapshot.edges:
        dot.edge(edge.source_id, edge.target_id)

    return dot
