from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from app.optics.trace import TraceResult


# Relative brightness of the two ray classes, matching the render colours.
BRIGHT_WEIGHT = 1.0
DIM_WEIGHT = 0x44 / 0xFF


@dataclass(frozen=True)
class ExitProfile:
    ys: np.ndarray  # exit y on the canvas right edge, sorted
    tir: np.ndarray  # bool mask aligned with ys

    @property
    def weights(self) -> np.ndarray:
        return np.where(self.tir, BRIGHT_WEIGHT, DIM_WEIGHT)


def exit_profile(result: TraceResult) -> ExitProfile:
    paths = result.complete_paths
    ys = np.array([p.points[-1].y for p in paths], dtype=float)
    tir = np.array([p.is_tir for p in paths], dtype=bool)
    order = np.argsort(ys, kind="stable")
    return ExitProfile(ys=ys[order], tir=tir[order])


def find_borderline(result: TraceResult) -> Optional[float]:
    """Exit-edge y where dim rays give way to totally reflected ones.

    This is the light/dark boundary an observer sees through a refractometer.
    Returns None when every exiting ray falls in the same class.
    """
    prof = exit_profile(result)
    if prof.ys.size < 2:
        return None
    flips = np.nonzero(prof.tir[1:] != prof.tir[:-1])[0]
    if flips.size == 0:
        return None
    k = int(flips[0])
    return float(0.5 * (prof.ys[k] + prof.ys[k + 1]))


def intensity_profile(result: TraceResult, bins: int = 50) -> Optional[dict]:
    """Brightness-weighted histogram of exit points along the canvas right edge."""
    prof = exit_profile(result)
    if prof.ys.size == 0:
        return None

    y_min = float(prof.ys.min())
    y_max = float(prof.ys.max())
    if y_max - y_min < 1e-9:
        y_max = y_min + 1.0
    counts, edges = np.histogram(prof.ys, bins=bins, range=(y_min, y_max), weights=prof.weights)
    peak_idx = int(np.argmax(counts))

    return {
        "edge_x": float(result.canvas_width),
        "y_min": y_min,
        "y_max": y_max,
        "bins": int(bins),
        "counts": counts.tolist(),
        "edges": edges.tolist(),
        "peak": {"y": float(0.5 * (edges[peak_idx] + edges[peak_idx + 1])), "weight": float(counts[peak_idx])},
        "samples": int(prof.ys.size),
    }


def summarize(result: TraceResult) -> dict:
    prof = exit_profile(result)
    return {
        "critical_angle_deg": float(np.degrees(result.critical_angle)),
        "rays_traced": int(result.parameters.ray_count),
        "rays_kept": len(result.paths),
        "rays_exiting": int(prof.ys.size),
        "tir_count": int(np.count_nonzero(prof.tir)),
        "borderline_y": find_borderline(result),
        "profile": intensity_profile(result),
    }
