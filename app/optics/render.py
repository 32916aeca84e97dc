from __future__ import annotations

import math
from typing import Dict, Iterable, Tuple

import svgwrite

from app.optics.trace import RayPath, TraceResult
from app.optics.vec2 import Vec2


BACKGROUND_COLOR = "#000000"
PRISM_COLOR = "#ffffff"
LIGHT_COLOR = "#ffffff"
RAY_COLOR = "#ffffff"
RAY_DIM_COLOR = "#444444"

PRISM_STROKE = 3
RAY_STROKE = 2
LIGHT_RADIUS = 3

LIGHT_SOURCE_ID = "light-source"


def _xy(p: Vec2) -> Tuple[float, float]:
    # -0.0 -> 0.0
    return (p.x + 0.0, p.y + 0.0)


def segment_color(path: RayPath, segment_index: int) -> str:
    """Colour of the `segment_index`-th leg of a ray.

    The leg from the light source is always bright and the leg towards the top
    face is always dim; the reflected legs are bright only for totally
    internally reflected rays.
    """
    if segment_index == 0:
        return RAY_COLOR
    if segment_index >= 2 and path.is_tir:
        return RAY_COLOR
    return RAY_DIM_COLOR


class SceneRenderer:
    """
    Draws a traced scene into an SVG surface.

    Canvas coordinates are used as-is (y grows downwards). Every call to
    `render` starts from an empty drawing, so rendering the same result twice
    yields the same document.

    Layers (bottom to top): prism, light source, rays.
    """

    def __init__(self, width: int = 800, height: int = 800, background: str = BACKGROUND_COLOR):
        self.width = width
        self.height = height
        self.background = background
        self.clear()

    def clear(self) -> None:
        # debug=False lets data-* attributes through.
        self.dwg = svgwrite.Drawing(size=(f"{self.width}px", f"{self.height}px"), profile="full", debug=False)
        self.dwg.viewbox(0, 0, self.width, self.height)
        self.dwg.add(self.dwg.rect(insert=(0, 0), size=(self.width, self.height), fill=self.background))
        self.layer_prism = self.dwg.add(self.dwg.g(id="layer-prism"))
        self.layer_light = self.dwg.add(self.dwg.g(id="layer-light"))
        self.layer_rays = self.dwg.add(self.dwg.g(id="layer-rays"))

    def draw_prism(self, vertices: Iterable[Vec2]) -> None:
        self.layer_prism.add(
            self.dwg.polygon(
                points=[_xy(v) for v in vertices],
                fill="none",
                stroke=PRISM_COLOR,
                stroke_width=PRISM_STROKE,
                id="prism",
            )
        )

    def draw_light_source(self, position: Vec2) -> None:
        """Draw the light marker; the page uses it as the drag handle."""
        circle = self.dwg.circle(
            center=_xy(position),
            r=LIGHT_RADIUS,
            fill=LIGHT_COLOR,
            id=LIGHT_SOURCE_ID,
            class_="draggable",
        )
        circle["data-x"] = repr(position.x)
        circle["data-y"] = repr(position.y)
        self.layer_light.add(circle)

    def draw_ray(self, path: RayPath) -> None:
        group = self.dwg.g(class_="ray tir" if path.is_tir else "ray partial")
        group["data-index"] = str(path.index)
        group["data-stage"] = path.stage.name.lower()
        for k, (p1, p2) in enumerate(path.segments()):
            if not (p1.is_finite() and p2.is_finite()):
                continue
            group.add(
                self.dwg.line(
                    start=_xy(p1),
                    end=_xy(p2),
                    stroke=segment_color(path, k),
                    stroke_width=RAY_STROKE,
                )
            )
        self.layer_rays.add(group)

    def render(self, result: TraceResult) -> "SceneRenderer":
        self.clear()
        self.draw_prism(result.prism.vertices)
        self.draw_light_source(result.light)
        for path in result.paths:
            self.draw_ray(path)
        return self

    def save(self, filename: str = "scene.svg") -> None:
        self.dwg.saveas(filename)

    def to_string(self) -> str:
        return self.dwg.tostring()


def _point(p: Vec2) -> Dict[str, float]:
    return {"x": p.x, "y": p.y}


def scene_to_dict(result: TraceResult) -> Dict:
    """JSON-ready scene graph of a trace."""
    return {
        "canvas": {"width": result.canvas_width},
        "prism": [_point(v) for v in result.prism.vertices],
        "light": _point(result.light),
        "critical_angle": {
            "rad": result.critical_angle,
            "deg": math.degrees(result.critical_angle),
        },
        "rays": [
            {
                "index": p.index,
                "points": [[q.x, q.y] for q in p.points],
                "stage": p.stage.name.lower(),
                "complete": p.complete,
                "is_tir": p.is_tir,
            }
            for p in result.paths
        ],
        "dropped": {stage.name.lower(): n for stage, n in result.dropped.items()},
    }
