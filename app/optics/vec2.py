from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Tuple

@dataclass(frozen=True)
class Vec2:
    """Point or vector in canvas pixel space (y grows downwards)."""

    x: float
    y: float

    def __add__(self, o: "Vec2") -> "Vec2":
        return Vec2(self.x + o.x, self.y + o.y)

    def __sub__(self, o: "Vec2") -> "Vec2":
        return Vec2(self.x - o.x, self.y - o.y)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


def rotate(v: Vec2, theta: float) -> Vec2:
    c = math.cos(theta)
    s = math.sin(theta)
    return Vec2(v.x * c - v.y * s, v.x * s + v.y * c)
