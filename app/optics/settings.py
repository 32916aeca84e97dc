from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from app.optics.vec2 import Vec2


logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool]

RAYS_NUM = "optics_simulator_rays_num"
RAYS_ANGLE = "optics_simulator_rays_angle"
SAMPLE_RI = "optics_simulator_sample_ri"
PRISM_RI = "optics_simulator_prism_ri"
LIGHT_POS = "optics_simulator_light_pos"

DEFAULT_LIGHT = Vec2(60.0, 124.0)


class SettingsStore:
    """Flat key -> scalar store kept in a JSON file.

    With `path=None` values live in memory only.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self._values: Dict[str, Scalar] = {}
        if self.path is not None and self.path.exists():
            self._values = self._read()

    def _read(self) -> Dict[str, Scalar]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("ignoring unreadable settings file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring settings file %s: not a JSON object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, (str, int, float, bool))}

    def get(self, key: str, default: Optional[Scalar] = None) -> Optional[Scalar]:
        return self._values.get(key, default)

    def set(self, key: str, value: Scalar) -> None:
        if not isinstance(value, (str, int, float, bool)):
            raise TypeError(f"settings values must be scalars, got {type(value).__name__}")
        self._values[key] = value
        self._write()

    def update(self, values: Dict[str, Scalar]) -> None:
        for key, value in values.items():
            if not isinstance(value, (str, int, float, bool)):
                raise TypeError(f"settings values must be scalars, got {type(value).__name__} for {key}")
        self._values.update(values)
        self._write()

    def as_dict(self) -> Dict[str, Scalar]:
        return dict(self._values)

    def _write(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._values, indent=2, sort_keys=True), encoding="utf-8")


def encode_light(p: Vec2) -> str:
    return json.dumps([p.x, p.y])


def decode_light(raw: Optional[Scalar]) -> Vec2:
    if raw is None:
        return DEFAULT_LIGHT
    try:
        x, y = json.loads(raw) if isinstance(raw, str) else raw
        p = Vec2(float(x), float(y))
    except (TypeError, ValueError):
        logger.warning("invalid stored light position %r, using default", raw)
        return DEFAULT_LIGHT
    if not p.is_finite():
        logger.warning("non-finite stored light position %r, using default", raw)
        return DEFAULT_LIGHT
    return p
