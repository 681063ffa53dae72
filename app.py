"""
Main NiceGUI application for flowcanvas.
Renders the pipeline canvas with ui.interactive_image, a block palette
grouped by category, an outline of placed blocks, a toolbar and a config
panel for the selected block.

All editing goes through flowcanvas.canvas.CanvasEditor; this file only
builds the layout and wires NiceGUI events to the canvas handlers.
"""

import dataclasses
import logging
import sys

from nicegui import ui

from dotenv import load_dotenv
load_dotenv()

from flowcanvas.config import ConfigError, load_canvas_settings, save_canvas_settings
from flowcanvas.canvas import BlockCatalog, CanvasEditor, ListenerScope, Point
from flowcanvas.canvas.block_config import FIELD_CHOICES, coerce_field_value
from flowcanvas.canvas.handlers import attach_global_listeners, setup_canvas_handlers
from flowcanvas.graph_viz import blank_surface, build_canvas_content, build_canvas_svg, to_dot

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1600
CANVAS_HEIGHT = 1000

CATEGORY_TITLES = {
    'data': 'Data',
    'transform': 'Transform',
    'visualize': 'Visualize',
}

try:
    settings = load_canvas_settings()
except ConfigError as e:
    logger.error(f"Invalid canvas settings: {e}")
    sys.exit(1)

catalog = BlockCatalog(settings.catalog_path)
if catalog.validation_errors:
    logger.warning(f"Block catalog loaded with {len(catalog.validation_errors)} problem(s)")


@ui.page('/')
def main_page():
    ui.query('body').style('margin: 0; padding: 0; overflow: hidden;')

    editor = CanvasEditor(catalog=catalog, settings=settings)
    editor.set_surface(Point(0, 0), Point(CANVAS_WIDTH, CANVAS_HEIGHT))
    scope = ListenerScope(name='canvas')
    state = {}

    # --- Rendering ---

    def refresh(snapshot=None):
        snapshot = snapshot or editor.snapshot()
        state['surface'].content = build_canvas_content(
            snapshot, catalog, CANVAS_WIDTH, CANVAS_HEIGHT, settings.grid_size)
        state['zoom_label'].text = f'{snapshot.viewport.zoom * 100:.0f}%'
        state['selection_buttons'].set_visibility(snapshot.selected_node_id is not None)

        outline_key = tuple((n.id, n.label) for n in snapshot.nodes)
        if state.get('outline_key') != outline_key:
            render_outline(snapshot)

        # Rebuild the panel on selection or connection changes, never while typing
        panel_key = (snapshot.selected_node_id,
                     tuple(e.id for e in connections_of(snapshot, snapshot.selected_node_id)))
        if state.get('panel_key') != panel_key:
            render_config_panel(snapshot)

    def connections_of(snapshot, node_id):
        if node_id is None:
            return []
        return [e for e in snapshot.edges if node_id in (e.source_id, e.target_id)]

    # --- Outline ---

    def render_outline(snapshot):
        state['outline_key'] = tuple((n.id, n.label) for n in snapshot.nodes)
        container = state['outline']
        container.clear()
        with container:
            if not snapshot.nodes:
                ui.label('Nothing placed yet').classes('text-xs text-gray-400')
            for node in snapshot.nodes:
                ui.item(node.label, on_click=lambda nid=node.id: editor.select(nid)).props('clickable dense')

    # --- Config Panel ---

    def apply_field(node_id, name, raw):
        node = editor.selected_node
        if node is None or node.id != node_id:
            return
        try:
            value = coerce_field_value(node.config, name, raw)
            editor.configure_selected(**{name: value})
        except ValueError as e:
            ui.notify(f'Invalid {name}: {e}', type='warning', position='bottom')

    def render_config_panel(snapshot):
        node = snapshot.selected_node
        connections = connections_of(snapshot, snapshot.selected_node_id)
        state['panel_key'] = (snapshot.selected_node_id, tuple(e.id for e in connections))
        container = state['panel']
        container.clear()
        with container:
            if node is None:
                ui.label('Select a block to configure it').classes('text-sm text-gray-500')
                return

            definition = catalog.get(node.type)
            ui.input('Label', value=node.label,
                     on_change=lambda e: editor.rename_selected(e.value)).props('debounce=500').classes('w-full')
            ui.label(definition.description).classes('text-xs text-gray-500')

            for field in dataclasses.fields(node.config):
                name = field.name
                value = getattr(node.config, name)
                title = name.replace('_', ' ').capitalize()
                handler = lambda e, n=name, nid=node.id: apply_field(nid, n, e.value)

                if name in FIELD_CHOICES:
                    ui.select(list(FIELD_CHOICES[name]), label=title, value=value,
                              on_change=handler).classes('w-full')
                elif isinstance(value, bool):
                    ui.switch(title, value=value, on_change=handler)
                elif isinstance(value, tuple):
                    ui.input(title, value=', '.join(value), placeholder='comma, separated',
                             on_change=handler).props('debounce=500').classes('w-full')
                elif name == 'rows':
                    ui.number(title, value=value, min=0, step=1, format='%.0f',
                              on_change=handler).classes('w-full')
                else:
                    ui.input(title, value=value or '',
                             on_change=handler).props('debounce=500').classes('w-full')

            missing = node.config.unconfigured_fields()
            if missing:
                ui.label(f"Not configured: {', '.join(missing)}").classes('text-xs text-amber-600')

            if connections:
                labels = {n.id: n.label for n in snapshot.nodes}
                ui.label('Connections').classes('text-xs uppercase text-gray-500 mt-3')
                for edge in connections:
                    if edge.source_id == node.id:
                        text = f'→ {labels[edge.target_id]}'
                    else:
                        text = f'← {labels[edge.source_id]}'
                    with ui.row().classes('items-center w-full'):
                        ui.label(text).classes('text-sm')
                        ui.space()
                        ui.button(icon='link_off', on_click=lambda eid=edge.id: editor.remove_edge(eid)) \
                            .props('flat dense round size=sm').tooltip('Disconnect')

    # --- Handlers ---

    handlers = setup_canvas_handlers(editor, scope, refresh)

    def add_block(block_type):
        editor.add_block(block_type)

    def export_dot():
        with ui.dialog() as dialog, ui.card().classes('w-[720px]'):
            ui.label('Pipeline (Graphviz DOT)').classes('text-lg font-bold')
            ui.code(to_dot(editor.snapshot(), catalog).source, language='dot').classes('w-full')
            ui.button('Close', on_click=dialog.close)
        dialog.open()

    def export_svg():
        svg = build_canvas_svg(editor.snapshot(), catalog, CANVAS_WIDTH, CANVAS_HEIGHT, settings.grid_size)
        with ui.dialog() as dialog, ui.card().classes('w-[720px]'):
            ui.label('Canvas (SVG)').classes('text-lg font-bold')
            ui.code(svg, language='xml').classes('w-full max-h-96 overflow-auto')
            ui.button('Close', on_click=dialog.close)
        dialog.open()

    def open_settings():
        with ui.dialog() as dialog, ui.card():
            ui.label('Canvas settings').classes('text-lg font-bold')
            grid = ui.number('Grid size', value=settings.grid_size, min=1, step=5)
            step = ui.number('Zoom step', value=settings.zoom_step, min=1.01, step=0.05)

            def save():
                try:
                    updated = dataclasses.replace(settings, grid_size=float(grid.value),
                                                  zoom_step=float(step.value))
                except (ConfigError, TypeError, ValueError) as e:
                    ui.notify(f'Invalid settings: {e}', type='warning')
                    return
                save_canvas_settings(updated)
                logger.info(f"Saved canvas settings: grid_size={updated.grid_size} zoom_step={updated.zoom_step}")
                ui.notify('Settings saved; they apply after a restart')
                dialog.close()

            with ui.row():
                ui.button('Save', on_click=save)
                ui.button('Cancel', on_click=dialog.close).props('flat')
        dialog.open()

    ui.keyboard(on_key=handlers['handle_keyboard'])

    # --- Layout Construction ---

    with ui.left_drawer(value=True).classes('bg-slate-50 w-64'):
        ui.label('Blocks').classes('text-lg font-bold')
        for category, title in CATEGORY_TITLES.items():
            ui.label(title).classes('text-xs uppercase text-gray-500 mt-3')
            for definition in catalog.palette(category):
                item = ui.item(definition.label,
                               on_click=lambda d=definition: add_block(d.type))
                item.props('draggable clickable dense').tooltip(definition.description)
                item.on('dragstart', lambda d=definition: handlers['handle_dragstart'](d.to_descriptor()))

        ui.label('On canvas').classes('text-lg font-bold mt-6')
        state['outline'] = ui.column().classes('w-full gap-0')

    with ui.right_drawer(value=True).classes('bg-white w-80'):
        ui.label('Configuration').classes('text-xs uppercase text-gray-500')
        state['panel'] = ui.column().classes('w-full gap-2')

    with ui.header().classes('items-center gap-2 bg-slate-800'):
        ui.label('Flowcanvas').classes('text-lg font-bold mr-4')
        ui.button(icon='zoom_out', on_click=editor.zoom_out).props('flat dense color=white').tooltip('Zoom out')
        state['zoom_label'] = ui.label('100%').classes('w-12 text-center')
        ui.button(icon='zoom_in', on_click=editor.zoom_in).props('flat dense color=white').tooltip('Zoom in')
        ui.button(icon='fit_screen', on_click=editor.reset_view).props('flat dense color=white').tooltip('Reset view')
        with ui.row().classes('gap-1') as selection_buttons:
            ui.button(icon='content_copy', on_click=editor.duplicate_selected).props('flat dense color=white').tooltip('Duplicate')
            ui.button(icon='delete', on_click=editor.remove_selected).props('flat dense color=white').tooltip('Delete')
            ui.button(icon='flip_to_front', on_click=editor.bring_to_front).props('flat dense color=white').tooltip('Bring to front')
            ui.button(icon='flip_to_back', on_click=editor.send_to_back).props('flat dense color=white').tooltip('Send to back')
        state['selection_buttons'] = selection_buttons
        ui.space()
        ui.button('Export DOT', on_click=export_dot).props('flat color=white')
        ui.button('Export SVG', on_click=export_svg).props('flat color=white')
        ui.button(icon='settings', on_click=open_settings).props('flat dense color=white').tooltip('Settings')

    surface = ui.interactive_image(
        blank_surface(CANVAS_WIDTH, CANVAS_HEIGHT),
        on_mouse=handlers['handle_mouse'],
        events=['mousedown', 'mousemove', 'mouseup'],
        cross=False,
    ).style(f'width: {CANVAS_WIDTH}px; height: {CANVAS_HEIGHT}px;')
    surface.on('wheel.prevent', handlers['handle_wheel'], ['offsetX', 'offsetY', 'deltaY'])
    surface.on('dragover.prevent', lambda: None)
    surface.on('drop.prevent', handlers['handle_drop'], ['offsetX', 'offsetY'])
    surface.on('contextmenu.prevent', lambda: None)
    state['surface'] = surface

    attach_global_listeners(scope, surface.id, handlers['handle_global_pointer_up'],
                            handlers['handle_cancel'])

    refresh()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Flowcanvas',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
    )
