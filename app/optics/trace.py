from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from app.optics.errors import DegenerateGeometryError, InvalidParametersError
from app.optics.lines import (
    Line,
    intersect,
    is_within_segment,
    line_from_slope_and_point,
    line_through,
    normal_angle_between,
    perpendicular_through,
)
from app.optics.prism import Prism
from app.optics.vec2 import Vec2, rotate


logger = logging.getLogger(__name__)

N_AIR = 1.0

RAY_COUNT_RANGE = (5, 100)
FAN_ANGLE_RANGE = (1.0, 45.0)


class Stage(IntEnum):
    """Last stage whose point was accepted for a ray."""

    INCIDENCE = 1  # front face
    REFLECTION = 2  # top face
    REFRACTION = 3  # back face
    EXIT = 4  # canvas right edge


@dataclass(frozen=True)
class OpticalParameters:
    prism_index: float = 1.5046
    sample_index: float = 1.3
    ray_count: int = 80
    fan_angle_degrees: float = 3.0

    def validate(self) -> "OpticalParameters":
        if not self.sample_index >= 1.0:
            raise InvalidParametersError(f"sample index must be >= 1, got {self.sample_index}")
        if not self.prism_index > self.sample_index:
            raise InvalidParametersError(
                f"prism index ({self.prism_index}) must exceed sample index ({self.sample_index})"
            )
        lo, hi = RAY_COUNT_RANGE
        if not lo <= self.ray_count <= hi:
            raise InvalidParametersError(f"ray count must be in [{lo}, {hi}], got {self.ray_count}")
        lo, hi = FAN_ANGLE_RANGE
        if not lo <= self.fan_angle_degrees <= hi:
            raise InvalidParametersError(f"fan angle must be in [{lo:g}, {hi:g}] degrees, got {self.fan_angle_degrees}")
        return self

    @property
    def critical_angle(self) -> float:
        return math.asin(self.sample_index / self.prism_index)


@dataclass(frozen=True)
class RayPath:
    """Polyline of one traced ray, starting at the light source.

    `points` holds the light position followed by one point per accepted
    stage, so its length is `stage + 1`.
    """

    index: int
    points: Tuple[Vec2, ...]
    stage: Stage
    attack_angle: float
    refraction_angle: Optional[float] = None
    reflection_angle: Optional[float] = None
    attack_angle_2: Optional[float] = None
    refraction_angle_2: Optional[float] = None
    is_tir: bool = False

    @property
    def complete(self) -> bool:
        return self.stage == Stage.EXIT

    def point_at(self, stage: Stage) -> Optional[Vec2]:
        if stage > self.stage:
            return None
        return self.points[int(stage)]

    def segments(self) -> List[Tuple[Vec2, Vec2]]:
        return list(zip(self.points[:-1], self.points[1:]))


@dataclass(frozen=True)
class TraceResult:
    prism: Prism
    light: Vec2
    parameters: OpticalParameters
    canvas_width: float
    critical_angle: float
    paths: Tuple[RayPath, ...]
    dropped: Dict[Stage, int] = field(default_factory=dict)

    @property
    def refracted_paths(self) -> List[RayPath]:
        return [p for p in self.paths if p.stage >= Stage.REFRACTION]

    @property
    def tir_flags(self) -> List[bool]:
        # One flag per ray that reached the back face, aligned with refracted_paths.
        return [p.is_tir for p in self.refracted_paths]

    @property
    def complete_paths(self) -> List[RayPath]:
        return [p for p in self.paths if p.complete]


@dataclass(frozen=True)
class _Setup:
    light: Vec2
    foot: Vec2
    front: Line
    top: Line
    back: Line
    prism: Prism
    front_normal_angle: float
    step: float
    prism_index: float
    critical_angle: float
    canvas_width: float


def _asin(v: float) -> Optional[float]:
    if not -1.0 <= v <= 1.0:
        return None
    return math.asin(v)


def fan_indices(ray_count: int) -> range:
    return range(-(ray_count // 2), -(-ray_count // 2))


def trace_rays(prism: Prism, light: Vec2, parameters: OpticalParameters, canvas_width: float) -> TraceResult:
    """Trace the ray fan from `light` through `prism`.

    Rays leaving a face segment are dropped at that stage; a ray that misses
    the front face produces no path at all.
    """
    parameters.validate()
    front = prism.front_face
    light_normal = perpendicular_through(front, light)
    setup = _Setup(
        light=light,
        foot=intersect(front, light_normal),
        front=front,
        top=prism.top_face,
        back=prism.back_face,
        prism=prism,
        front_normal_angle=math.atan(light_normal.slope),
        step=math.radians(parameters.fan_angle_degrees),
        prism_index=float(parameters.prism_index),
        critical_angle=parameters.critical_angle,
        canvas_width=float(canvas_width),
    )

    dropped: Dict[Stage, int] = {stage: 0 for stage in Stage}
    paths: List[RayPath] = []
    for i in fan_indices(int(parameters.ray_count)):
        path = _trace_one(i, setup, dropped)
        if path is not None:
            paths.append(path)

    logger.debug(
        "traced %d rays: %d kept, dropped per stage %s",
        parameters.ray_count,
        len(paths),
        {stage.name: n for stage, n in dropped.items() if n},
    )
    return TraceResult(
        prism=prism,
        light=light,
        parameters=parameters,
        canvas_width=setup.canvas_width,
        critical_angle=setup.critical_angle,
        paths=tuple(paths),
        dropped=dropped,
    )


def _trace_one(i: int, s: _Setup, dropped: Dict[Stage, int]) -> Optional[RayPath]:
    # The fan is built by rotating the light->foot vector and anchoring it at the foot.
    rotated = s.foot + rotate(s.foot - s.light, i * s.step)
    try:
        ray_line = line_through(s.light, rotated)
    except DegenerateGeometryError:
        logger.debug("ray %d: vertical incidence line, dropped", i)
        dropped[Stage.INCIDENCE] += 1
        return None

    incidence = intersect(s.front, ray_line)
    if not is_within_segment(incidence, *s.prism.front_segment):
        dropped[Stage.INCIDENCE] += 1
        return None

    attack = normal_angle_between(ray_line, s.front)
    # Uses the angle itself rather than its sine.
    refraction = _asin(attack * N_AIR / s.prism_index)
    points = [s.light, incidence]
    if refraction is None:
        dropped[Stage.REFLECTION] += 1
        return RayPath(index=i, points=tuple(points), stage=Stage.INCIDENCE, attack_angle=attack)

    leg = line_from_slope_and_point(incidence, math.tan(s.front_normal_angle - refraction))
    reflection = intersect(leg, s.top)
    if not is_within_segment(reflection, *s.prism.top_segment):
        dropped[Stage.REFLECTION] += 1
        return RayPath(
            index=i,
            points=tuple(points),
            stage=Stage.INCIDENCE,
            attack_angle=attack,
            refraction_angle=refraction,
        )

    reflection_angle = normal_angle_between(s.top, leg)
    is_tir = reflection_angle > s.critical_angle
    points.append(reflection)

    leg = line_from_slope_and_point(reflection, math.tan(math.pi / 2 - reflection_angle))
    refraction_point = intersect(leg, s.back)
    if not is_within_segment(refraction_point, *s.prism.back_segment):
        dropped[Stage.REFRACTION] += 1
        return RayPath(
            index=i,
            points=tuple(points),
            stage=Stage.REFLECTION,
            attack_angle=attack,
            refraction_angle=refraction,
            reflection_angle=reflection_angle,
            is_tir=is_tir,
        )

    attack_2 = normal_angle_between(s.back, leg)
    refraction_2 = _asin(attack_2 * s.prism_index / N_AIR)
    points.append(refraction_point)
    if refraction_2 is None:
        logger.debug("ray %d: no exit refraction at back face", i)
        dropped[Stage.EXIT] += 1
        return RayPath(
            index=i,
            points=tuple(points),
            stage=Stage.REFRACTION,
            attack_angle=attack,
            refraction_angle=refraction,
            reflection_angle=reflection_angle,
            attack_angle_2=attack_2,
            is_tir=is_tir,
        )

    # The back face normal sits at 45 degrees; the exit leg always runs to the canvas edge.
    leg = line_from_slope_and_point(refraction_point, math.tan(math.pi / 4 + refraction_2))
    points.append(Vec2(s.canvas_width, leg(s.canvas_width)))
    return RayPath(
        index=i,
        points=tuple(points),
        stage=Stage.EXIT,
        attack_angle=attack,
        refraction_angle=refraction,
        reflection_angle=reflection_angle,
        attack_angle_2=attack_2,
        refraction_angle_2=refraction_2,
        is_tir=is_tir,
    )
