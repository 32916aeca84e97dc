from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field


ENV_PREFIX = "PRISM_SIM_"


class AppConfig(BaseModel):
    canvas_width: int = Field(default=800, ge=100, le=4000)
    canvas_height: int = Field(default=800, ge=100, le=4000)
    prism_side_cm: float = Field(default=15.0, gt=0.0, description="Length of the prism's short sides (cm)")
    px_per_cm: float = Field(default=25.0, gt=0.0)
    debounce_ms: float = Field(default=25.0, ge=0.0, le=1000.0, description="Redraw debounce delay (ms)")
    settings_path: Optional[str] = Field(
        default=None,
        description="JSON file for persisted parameters; in-memory only when unset.",
    )
    frontend_dir: str = "frontend"
    log_level: str = "INFO"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build the config from PRISM_SIM_* variables (e.g. PRISM_SIM_CANVAS_WIDTH)."""
    env = os.environ if env is None else env
    values = {}
    for name in AppConfig.model_fields:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            values[name] = raw
    return AppConfig(**values)
