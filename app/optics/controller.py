from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from app.optics.analysis import summarize
from app.optics.errors import InvalidParametersError
from app.optics.prism import Prism
from app.optics.render import SceneRenderer, scene_to_dict
from app.optics.scheduler import DEFAULT_DELAY, RedrawScheduler
from app.optics.settings import (
    DEFAULT_LIGHT,
    LIGHT_POS,
    PRISM_RI,
    RAYS_ANGLE,
    RAYS_NUM,
    SAMPLE_RI,
    SettingsStore,
    decode_light,
    encode_light,
)
from app.optics.trace import OpticalParameters, TraceResult, trace_rays
from app.optics.vec2 import Vec2


logger = logging.getLogger(__name__)


@dataclass
class SimulationState:
    """Everything that survives between frames."""

    parameters: OpticalParameters = field(default_factory=OpticalParameters)
    light_position: Vec2 = DEFAULT_LIGHT


@dataclass(frozen=True)
class Frame:
    result: TraceResult
    svg: str
    analysis: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "frame",
            "svg": self.svg,
            "scene": scene_to_dict(self.result),
            "analysis": self.analysis,
        }


def load_state(store: SettingsStore) -> SimulationState:
    defaults = OpticalParameters()
    try:
        params = OpticalParameters(
            prism_index=float(store.get(PRISM_RI, defaults.prism_index)),
            sample_index=float(store.get(SAMPLE_RI, defaults.sample_index)),
            ray_count=int(store.get(RAYS_NUM, defaults.ray_count)),
            fan_angle_degrees=float(store.get(RAYS_ANGLE, defaults.fan_angle_degrees)),
        ).validate()
    except (TypeError, ValueError) as exc:
        # InvalidParametersError is a ValueError too.
        logger.warning("stored parameters rejected (%s), using defaults", exc)
        params = defaults
    state = SimulationState(parameters=params, light_position=decode_light(store.get(LIGHT_POS)))
    logger.info("loaded simulation state: %s, light at %s", params, state.light_position.as_tuple())
    return state


def save_state(store: SettingsStore, state: SimulationState) -> None:
    p = state.parameters
    store.update(
        {
            PRISM_RI: p.prism_index,
            SAMPLE_RI: p.sample_index,
            RAYS_NUM: p.ray_count,
            RAYS_ANGLE: p.fan_angle_degrees,
            LIGHT_POS: encode_light(state.light_position),
        }
    )


class SimulationController:
    """Owns the simulation state and turns input events into frames.

    Input events mutate `state` immediately and request a redraw; the
    scheduler coalesces bursts so only the last request in a burst traces and
    renders. Frames are handed to `on_frame`.
    """

    def __init__(
        self,
        state: SimulationState,
        prism: Prism,
        canvas_width: int,
        canvas_height: int,
        on_frame: Optional[Callable[[Frame], None]] = None,
        store: Optional[SettingsStore] = None,
        delay: float = DEFAULT_DELAY,
        loop=None,
    ):
        self.state = state
        self.prism = prism
        self.canvas_width = canvas_width
        self.on_frame = on_frame
        self.store = store
        self.renderer = SceneRenderer(canvas_width, canvas_height)
        self.scheduler = RedrawScheduler(self._redraw, delay=delay, loop=loop)
        self.frames_rendered = 0

    def move_light(self, x: float, y: float) -> None:
        p = Vec2(float(x), float(y))
        if not p.is_finite():
            raise InvalidParametersError(f"light position must be finite, got {p.as_tuple()}")
        self.state.light_position = p
        self._persist()
        self.request_redraw()

    def update_parameters(self, **changes: Any) -> OpticalParameters:
        """Apply a partial parameter update; invalid updates leave the state untouched."""
        try:
            params = dataclasses.replace(self.state.parameters, **changes)
        except TypeError as exc:
            raise InvalidParametersError(str(exc)) from exc
        self.state.parameters = params.validate()
        self._persist()
        self.request_redraw()
        return self.state.parameters

    def request_redraw(self) -> None:
        self.scheduler.schedule()

    def render_frame(self) -> Frame:
        result = trace_rays(self.prism, self.state.light_position, self.state.parameters, self.canvas_width)
        svg = self.renderer.render(result).to_string()
        return Frame(result=result, svg=svg, analysis=summarize(result))

    def close(self) -> None:
        self.scheduler.cancel()

    def _redraw(self) -> None:
        frame = self.render_frame()
        self.frames_rendered += 1
        logger.info(
            "frame %d: %d/%d rays drawn, %d totally reflected",
            self.frames_rendered,
            len(frame.result.paths),
            self.state.parameters.ray_count,
            sum(frame.result.tir_flags),
        )
        if self.on_frame is not None:
            self.on_frame(frame)

    def _persist(self) -> None:
        if self.store is not None:
            save_state(self.store, self.state)
