from __future__ import annotations

import math
from dataclasses import dataclass

from app.optics.errors import DegenerateGeometryError
from app.optics.vec2 import Vec2


# Bounds slack for segment tests, in pixels per side.
SEGMENT_TOLERANCE = 1.0


@dataclass(frozen=True)
class Line:
    """Infinite non-vertical line y = slope * x + intercept."""

    slope: float
    intercept: float

    def __call__(self, x: float) -> float:
        return self.slope * x + self.intercept


def line_from_slope_and_point(p: Vec2, slope: float) -> Line:
    return Line(slope=slope, intercept=p.y - slope * p.x)


def line_through(p1: Vec2, p2: Vec2) -> Line:
    """Line through two points. Vertical lines cannot be represented."""
    if p1.x == p2.x:
        raise DegenerateGeometryError(f"vertical line through x={p1.x}")
    slope = (p2.y - p1.y) / (p2.x - p1.x)
    return line_from_slope_and_point(p1, slope)


def perpendicular_through(line: Line, p: Vec2) -> Line:
    if line.slope == 0:
        raise DegenerateGeometryError("perpendicular to a horizontal line is vertical")
    return line_from_slope_and_point(p, -1.0 / line.slope)


def intersect(a: Line, b: Line) -> Vec2:
    """Intersection of two lines.

    Parallel lines have no intersection; the result is then a NaN point, which
    fails every `is_within_segment` test.
    """
    if a.slope == b.slope:
        return Vec2(math.nan, math.nan)
    x = (b.intercept - a.intercept) / (a.slope - b.slope)
    return Vec2(x, a(x))


def angle_between(a: Line, b: Line) -> float:
    num = a.slope - b.slope
    den = 1.0 + a.slope * b.slope
    if den == 0:
        # Perpendicular lines: limit of atan(num / den).
        return math.copysign(math.pi / 2, num)
    return math.atan(num / den)


def normal_angle_between(a: Line, b: Line) -> float:
    """Angle between line `a` and the normal of line `b`.

    The sign tells which side of the normal `a` approaches from; downstream
    reflection slopes depend on it.
    """
    angle = angle_between(a, b)
    if angle > 0:
        return math.pi / 2 - angle
    return -math.pi / 2 - angle


def is_within_segment(p: Vec2, seg_a: Vec2, seg_b: Vec2, tolerance: float = SEGMENT_TOLERANCE) -> bool:
    """Axis-aligned bounding box test against the segment seg_a-seg_b.

    This is not a true on-segment test; it is only exact for points already
    known to lie on the segment's line.
    """
    lo_x = min(seg_a.x, seg_b.x) - tolerance
    hi_x = max(seg_a.x, seg_b.x) + tolerance
    lo_y = min(seg_a.y, seg_b.y) - tolerance
    hi_y = max(seg_a.y, seg_b.y) + tolerance
    return lo_x <= p.x <= hi_x and lo_y <= p.y <= hi_y
