from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from app.optics.lines import Line, line_through
from app.optics.vec2 import Vec2


PX_PER_CM = 25
DEFAULT_SIDE_CM = 15.0
DEFAULT_TOP = 20.0


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def cm_to_px(cm: float, px_per_cm: float = PX_PER_CM) -> int:
    return _round_half_up(cm * px_per_cm)


Segment = Tuple[Vec2, Vec2]


@dataclass(frozen=True)
class Prism:
    """Right-isosceles prism with its hypotenuse on top.

        top_left ---- top_right     <- top face (measuring surface)
               \\        /
     front face \\      / back face
                 \\    /
                 bottom
    """

    top_left: Vec2
    top_right: Vec2
    bottom: Vec2

    @classmethod
    def from_side_length(cls, side_px: float, canvas_width: float, top: float = DEFAULT_TOP) -> "Prism":
        hypotenuse = _round_half_up(side_px * math.sqrt(2))
        half = _round_half_up(hypotenuse / 2)
        cx = canvas_width / 2
        return cls(
            top_left=Vec2(cx - half, top),
            top_right=Vec2(cx + half, top),
            bottom=Vec2(cx, top + half),
        )

    @property
    def vertices(self) -> Tuple[Vec2, Vec2, Vec2]:
        return (self.top_left, self.top_right, self.bottom)

    @property
    def front_segment(self) -> Segment:
        return (self.top_left, self.bottom)

    @property
    def top_segment(self) -> Segment:
        return (self.top_left, self.top_right)

    @property
    def back_segment(self) -> Segment:
        return (self.top_right, self.bottom)

    @property
    def front_face(self) -> Line:
        return line_through(*self.front_segment)

    @property
    def top_face(self) -> Line:
        return line_through(*self.top_segment)

    @property
    def back_face(self) -> Line:
        return line_through(*self.back_segment)
