"""
Geometry helpers for the canvas: points, grid snapping and Bezier connectors.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from flowcanvas.canvas.constants import GRID_SIZE, BEZIER_MIN_CURVATURE


@dataclass(frozen=True)
class Point:
    """A 2D point or offset."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: 'Point') -> 'Point':
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: 'Point') -> 'Point':
        return Point(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> 'Point':
        return Point(self.x * factor, self.y * factor)

    def distance_to(self, other: 'Point') -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @classmethod
    def of(cls, value) -> 'Point':
        """Coerce a Point, an (x, y) pair or an {'x':, 'y':} dict."""
        if isinstance(value, Point):
            return value
        if isinstance(value, dict):
            return cls(float(value['x']), float(value['y']))
        x, y = value
        return cls(float(x), float(y))


def snap_value(value: float, grid_size: float = GRID_SIZE) -> float:
    """Round value to the nearest multiple of grid_size, halves upward."""
    return math.floor(value / grid_size + 0.5) * grid_size


def snap_point(point: Point, grid_size: float = GRID_SIZE) -> Point:
    """Snap both coordinates independently."""
    return Point(snap_value(point.x, grid_size), snap_value(point.y, grid_size))


def bezier_controls(start: Point, end: Point,
                    min_curvature: float = BEZIER_MIN_CURVATURE) -> Tuple[Point, Point]:
    """
    Control points for a horizontal S-shaped connector.

    The curve leaves the output port to the right and enters the input port
    from the left, with at least min_curvature of horizontal pull.
    """
    dx = max(abs(end.x - start.x) * 0.5, min_curvature)
    return Point(start.x + dx, start.y), Point(end.x - dx, end.y)


def bezier_point(start: Point, c1: Point, c2: Point, end: Point, t: float) -> Point:
    """Evaluate a cubic Bezier curve at t in [0, 1]."""
    u = 1 - t
    x = u ** 3 * start.x + 3 * u ** 2 * t * c1.x + 3 * u * t ** 2 * c2.x + t ** 3 * end.x
    y = u ** 3 * start.y + 3 * u ** 2 * t * c1.y + 3 * u * t ** 2 * c2.y + t ** 3 * end.y
    return Point(x, y)


def bezier_path(start: Point, end: Point) -> str:
    """SVG path data for the connector between two points."""
    c1, c2 = bezier_controls(start, end)
    return (f"M {start.x:g} {start.y:g} "
            f"C {c1.x:g} {c1.y:g}, {c2.x:g} {c2.y:g}, {end.x:g} {end.y:g}")


def sample_bezier(start: Point, end: Point, samples: int = 24) -> List[Point]:
    """Points along the connector, endpoints included."""
    c1, c2 = bezier_controls(start, end)
    return [bezier_point(start, c1, c2, end, i / samples) for i in range(samples + 1)]


def point_to_segment_distance(point: Point, a: Point, b: Point) -> Tuple[float, float]:
    """Distance from point to segment ab, and the clamped projection parameter t."""
    dx, dy = b.x - a.x, b.y - a.y
    if dx == 0 and dy == 0:
        return point.distance_to(a), 0.0
    t = max(0.0, min(1.0, ((point.x - a.x) * dx + (point.y - a.y) * dy) / (dx * dx + dy * dy)))
    closest = Point(a.x + t * dx, a.y + t * dy)
    return point.distance_to(closest), t


def distance_to_bezier(point: Point, start: Point, end: Point, samples: int = 24) -> float:
    """Approximate distance from point to the connector curve."""
    pts = sample_bezier(start, end, samples)
    return min(point_to_segment_distance(point, a, b)[0] for a, b in zip(pts, pts[1:]))
