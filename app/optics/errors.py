from __future__ import annotations


class OpticsError(ValueError):
    """Base class for errors raised by the optics core."""


class InvalidParametersError(OpticsError):
    """Optical parameters outside their valid ranges."""


class DegenerateGeometryError(OpticsError):
    """A construction would need a vertical line or a zero-slope perpendicular."""
