"""
Canvas Handlers - NiceGUI event handlers for the canvas surface in app.py

This module turns raw NiceGUI event arguments into interaction events and
feeds them to a CanvasEditor, keeping the main application file focused on
layout. The translators at the top are pure so they can be tested without a
running UI.

Document-level listeners (pointer released anywhere, keyboard) are routed
through a ListenerScope; releasing the scope detaches them.
"""

import logging
from typing import Any, Callable, Dict, Optional

from nicegui import ui

from flowcanvas.canvas.constants import LEFT_BUTTON
from flowcanvas.canvas.editor import CanvasEditor, CanvasSnapshot
from flowcanvas.canvas.errors import UnknownBlockType
from flowcanvas.canvas.geometry import Point
from flowcanvas.canvas.interaction import (
    Cancel,
    Event,
    KeyDown,
    Outside,
    PointerDown,
    PointerMove,
    PointerUp,
    Wheel,
)
from flowcanvas.canvas.listeners import ListenerScope

logger = logging.getLogger(__name__)

GLOBAL_POINTER_UP = 'flowcanvas:pointerup'
WINDOW_BLUR = 'flowcanvas:blur'


def _args_of(event) -> Any:
    return event.args if hasattr(event, 'args') else event


def pointer_event_from_mouse(e) -> Optional[Event]:
    """Translate an interactive_image mouse event (image coordinates)."""
    point = Point(float(e.image_x), float(e.image_y))
    if e.type == 'mousedown':
        return PointerDown(point, button=getattr(e, 'button', LEFT_BUTTON),
                           alt=bool(getattr(e, 'alt', False)))
    if e.type == 'mousemove':
        return PointerMove(point)
    if e.type == 'mouseup':
        return PointerUp(point)
    return None


def key_event_from_keyboard(e) -> Optional[KeyDown]:
    """Only key presses matter; releases are dropped."""
    if not e.action.keydown:
        return None
    key = getattr(e.key, 'name', e.key)
    return KeyDown(str(key))


def wheel_event_from_args(event) -> Optional[Wheel]:
    raw = _args_of(event)
    if not isinstance(raw, dict):
        return None
    try:
        point = Point(float(raw['offsetX']), float(raw['offsetY']))
        delta_y = float(raw['deltaY'])
    except (KeyError, TypeError, ValueError):
        logger.debug(f"Malformed wheel payload: {raw!r}")
        return None
    return Wheel(point, delta_y)


def global_pointer_up_from_args(event) -> PointerUp:
    """Pointer released off the surface; JS reports surface-relative coordinates."""
    raw = _args_of(event)
    point = Point.of((raw.get('x', 0), raw.get('y', 0))) if isinstance(raw, dict) else Point()
    return PointerUp(point, target=Outside())


def attach_global_listeners(scope: ListenerScope, surface_id: int,
                            on_pointer_up: Callable, on_cancel: Callable) -> None:
    """
    Install the document-level pointer-up and window-blur listeners for one surface.

    Releases that land on the surface itself arrive through the surface's own
    mouse events, so the JS listener only reports the ones outside it. Both
    listeners are removed from the page when the scope is released, and the
    scope is released when the client disconnects.
    """
    client = ui.context.client
    up_key = f'__flowcanvas_up_{surface_id}'
    blur_key = f'__flowcanvas_blur_{surface_id}'

    ui.on(GLOBAL_POINTER_UP, on_pointer_up)
    ui.on(WINDOW_BLUR, on_cancel)
    client.run_javascript(f'''
        window.{up_key} = (e) => {{
            const el = document.getElementById('c{surface_id}');
            if (!el || el.contains(e.target)) return;
            const r = el.getBoundingClientRect();
            emitEvent('{GLOBAL_POINTER_UP}', {{x: e.clientX - r.left, y: e.clientY - r.top}});
        }};
        window.{blur_key} = () => emitEvent('{WINDOW_BLUR}');
        document.addEventListener('pointerup', window.{up_key});
        window.addEventListener('blur', window.{blur_key});
    ''')

    def detach():
        try:
            client.run_javascript(f'''
                if (window.{up_key}) {{
                    document.removeEventListener('pointerup', window.{up_key});
                    window.removeEventListener('blur', window.{blur_key});
                    delete window.{up_key};
                    delete window.{blur_key};
                }}
            ''')
        except RuntimeError as e:
            # Client already gone; the page and its listeners went with it
            logger.debug(f"Could not detach global listeners: {e}")

    scope.on_release(detach)
    client.on_disconnect(scope.release)


def setup_canvas_handlers(
    editor: CanvasEditor,
    scope: ListenerScope,
    refresh: Callable[[CanvasSnapshot], None],
) -> Dict[str, Callable]:
    """
    Set up all canvas event handlers.

    Args:
        editor: CanvasEditor instance
        scope: ListenerScope owning the document-level listeners
        refresh: Called with a new snapshot whenever the canvas changes

    Returns:
        Dict with handler functions for binding to UI events
    """
    editor.set_on_change(refresh)
    dragged: Dict[str, Any] = {'descriptor': None}

    def dispatch(event: Optional[Event]):
        if event is not None:
            editor.dispatch(event)

    scope.on('pointerup', lambda e: dispatch(global_pointer_up_from_args(e)))
    scope.on('keydown', lambda e: dispatch(key_event_from_keyboard(e)))
    scope.on('cancel', lambda e: dispatch(Cancel()))

    def handle_mouse(e):
        """Mouse events on the surface (image coordinates)."""
        dispatch(pointer_event_from_mouse(e))

    def handle_wheel(e):
        dispatch(wheel_event_from_args(e))

    def handle_keyboard(e):
        scope.emit('keydown', e)

    def handle_global_pointer_up(e):
        scope.emit('pointerup', e)

    def handle_cancel(e=None):
        """Window blur or surface teardown."""
        scope.emit('cancel', e)

    def handle_dragstart(descriptor: Dict[str, Any]):
        dragged['descriptor'] = descriptor

    def handle_drop(e):
        """Palette item dropped on the surface."""
        descriptor, dragged['descriptor'] = dragged['descriptor'], None
        raw = _args_of(e)
        if descriptor is None or not isinstance(raw, dict):
            return None
        point = Point(float(raw.get('offsetX', 0)), float(raw.get('offsetY', 0)))
        try:
            return editor.drop_template(point, descriptor)
        except (UnknownBlockType, ValueError) as err:
            logger.warning(f"Rejected drop of {descriptor!r}: {err}")
            ui.notify(f'Cannot place block: {err}', type='warning', position='bottom')
            return None

    return {
        'handle_mouse': handle_mouse,
        'handle_wheel': handle_wheel,
        'handle_keyboard': handle_keyboard,
        'handle_global_pointer_up': handle_global_pointer_up,
        'handle_cancel': handle_cancel,
        'handle_dragstart': handle_dragstart,
        'handle_drop': handle_drop,
    }
