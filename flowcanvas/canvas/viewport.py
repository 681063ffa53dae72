"""
Viewport Controller - pan/zoom transform between screen and canvas space.

    canvas = (screen - origin - pan) / zoom
    screen = canvas * zoom + pan + origin

`origin` is the on-screen top-left of the canvas surface; `pan` is a
screen-space translation. Zoom is clamped to [min_zoom, max_zoom].

Every zoom keeps the canvas point under a screen anchor fixed. Wheel zoom
passes the pointer, toolbar zoom passes the surface centre, and a call with
no anchor uses the surface origin.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

from flowcanvas.canvas.constants import MIN_ZOOM, MAX_ZOOM
from flowcanvas.canvas.geometry import Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewportState:
    """Immutable snapshot of the viewport transform."""
    zoom: float = 1.0
    pan: Point = Point()
    origin: Point = Point()

    def screen_to_canvas(self, point: Point) -> Point:
        return Point(
            (point.x - self.origin.x - self.pan.x) / self.zoom,
            (point.y - self.origin.y - self.pan.y) / self.zoom,
        )

    def canvas_to_screen(self, point: Point) -> Point:
        return Point(
            point.x * self.zoom + self.pan.x + self.origin.x,
            point.y * self.zoom + self.pan.y + self.origin.y,
        )


class Viewport:
    """Owns the pan offset and zoom factor of one canvas surface."""

    def __init__(self, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM,
                 origin: Point = Point()):
        if not (0 < min_zoom <= max_zoom):
            raise ValueError(f"Invalid zoom bounds: [{min_zoom}, {max_zoom}]")
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._state = ViewportState(zoom=self._clamp(1.0), origin=origin)

    @property
    def state(self) -> ViewportState:
        return self._state

    @property
    def zoom(self) -> float:
        return self._state.zoom

    @property
    def pan(self) -> Point:
        return self._state.pan

    @property
    def origin(self) -> Point:
        return self._state.origin

    def screen_to_canvas(self, point: Point) -> Point:
        return self._state.screen_to_canvas(point)

    def canvas_to_screen(self, point: Point) -> Point:
        return self._state.canvas_to_screen(point)

    def _clamp(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))

    def zoom_by(self, factor: float, anchor: Optional[Point] = None) -> ViewportState:
        """Multiply zoom by factor, clamp, and keep the anchor's canvas point fixed."""
        anchor = anchor if anchor is not None else self._state.origin
        if not math.isfinite(factor) or factor <= 0 or not anchor.is_finite():
            logger.debug(f"Rejected zoom factor={factor!r} anchor={anchor!r}")
            return self._state

        new_zoom = self._clamp(self._state.zoom * factor)
        if new_zoom == self._state.zoom:
            return self._state

        fixed = self._state.screen_to_canvas(anchor)
        pan = anchor - self._state.origin - fixed.scaled(new_zoom)
        self._state = replace(self._state, zoom=new_zoom, pan=pan)
        return self._state

    def set_zoom(self, zoom: float, anchor: Optional[Point] = None) -> ViewportState:
        if not math.isfinite(zoom) or zoom <= 0:
            logger.debug(f"Rejected zoom={zoom!r}")
            return self._state
        return self.zoom_by(zoom / self._state.zoom, anchor)

    def pan_by(self, delta: Point) -> ViewportState:
        """Translate by a screen-space delta (unbounded)."""
        if not delta.is_finite():
            logger.debug(f"Rejected pan delta={delta!r}")
            return self._state
        return self.set_pan(self._state.pan + delta)

    def set_pan(self, pan: Point) -> ViewportState:
        if not pan.is_finite():
            logger.debug(f"Rejected pan={pan!r}")
            return self._state
        self._state = replace(self._state, pan=pan)
        return self._state

    def set_origin(self, origin: Point) -> ViewportState:
        """Record where the canvas surface sits on screen."""
        if not origin.is_finite():
            logger.debug(f"Rejected origin={origin!r}")
            return self._state
        self._state = replace(self._state, origin=origin)
        return self._state

    def reset_view(self) -> ViewportState:
        self._state = replace(self._state, zoom=self._clamp(1.0), pan=Point())
        return self._state
