from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class Vec2Model(BaseModel):
    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)


class OpticalParametersModel(BaseModel):
    prism_index: float = Field(default=1.5046, gt=1.0, description="Refractive index of the prism")
    sample_index: float = Field(default=1.3, ge=1.0, description="Refractive index of the sample on the top face")
    ray_count: int = Field(default=80, ge=5, le=100)
    fan_angle: float = Field(default=3.0, ge=1.0, le=45.0, description="Angular step between rays (degrees)")

    @model_validator(mode="after")
    def _prism_denser_than_sample(self) -> "OpticalParametersModel":
        if not self.prism_index > self.sample_index:
            raise ValueError("prism_index must be greater than sample_index")
        return self


class ParametersUpdateModel(BaseModel):
    """Partial update; unset fields keep their current value."""

    prism_index: Optional[float] = Field(default=None, gt=1.0)
    sample_index: Optional[float] = Field(default=None, ge=1.0)
    ray_count: Optional[int] = Field(default=None, ge=5, le=100)
    fan_angle: Optional[float] = Field(default=None, ge=1.0, le=45.0)


class TraceRequest(BaseModel):
    parameters: OpticalParametersModel = Field(default_factory=OpticalParametersModel)
    light: Vec2Model = Field(default_factory=lambda: Vec2Model(x=60.0, y=124.0))


class LightMessage(BaseModel):
    type: Literal["light"]
    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)


class ParametersMessage(ParametersUpdateModel):
    type: Literal["parameters"]


class SettingsUpdate(BaseModel):
    parameters: Optional[ParametersUpdateModel] = None
    light: Optional[Vec2Model] = None
