from __future__ import annotations

from typing import Any, Dict

from app.optics.analysis import summarize
from app.optics.prism import Prism
from app.optics.render import SceneRenderer, scene_to_dict
from app.optics.schema import OpticalParametersModel, ParametersUpdateModel, TraceRequest
from app.optics.trace import OpticalParameters, TraceResult, trace_rays
from app.optics.vec2 import Vec2


def _vec(v) -> Vec2:
    return Vec2(float(v.x), float(v.y))


def to_parameters(m: OpticalParametersModel) -> OpticalParameters:
    return OpticalParameters(
        prism_index=float(m.prism_index),
        sample_index=float(m.sample_index),
        ray_count=int(m.ray_count),
        fan_angle_degrees=float(m.fan_angle),
    )


def from_parameters(p: OpticalParameters) -> Dict[str, Any]:
    return {
        "prism_index": p.prism_index,
        "sample_index": p.sample_index,
        "ray_count": p.ray_count,
        "fan_angle": p.fan_angle_degrees,
    }


def parameter_changes(update: ParametersUpdateModel) -> Dict[str, Any]:
    """Keyword changes for OpticalParameters from the fields set in `update`."""
    names = {"fan_angle": "fan_angle_degrees"}
    fields = update.model_dump(exclude_none=True, exclude={"type"})
    return {names.get(k, k): v for k, v in fields.items()}


def trace_request(req: TraceRequest, prism: Prism, canvas_width: float) -> TraceResult:
    return trace_rays(prism, _vec(req.light), to_parameters(req.parameters), canvas_width)


def simulate_scene(req: TraceRequest, prism: Prism, canvas_width: float) -> Dict:
    result = trace_request(req, prism, canvas_width)
    out = scene_to_dict(result)
    out["analysis"] = summarize(result)
    return out


def render_scene_svg(req: TraceRequest, prism: Prism, canvas_width: int, canvas_height: int) -> str:
    result = trace_request(req, prism, canvas_width)
    return SceneRenderer(canvas_width, canvas_height).render(result).to_string()
