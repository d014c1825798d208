"""
Pydantic models for campground submissions
"""
import json
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Geometry(BaseModel):
    """A single GeoJSON point: [longitude, latitude]"""
    type: Literal["Point"] = "Point"
    coordinates: List[float]

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v):
        if len(v) != 2:
            raise ValueError("coordinates must hold exactly [longitude, latitude]")
        longitude, latitude = v
        if not -180 <= longitude <= 180:
            raise ValueError("longitude must be between -180 and 180")
        if not -90 <= latitude <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return v


def _parse_geometry(v):
    # Multipart forms send geometry as a JSON string
    if v is None or isinstance(v, (dict, Geometry)):
        return v
    if isinstance(v, str):
        if not v.strip():
            return None
        try:
            return json.loads(v)
        except ValueError:
            raise ValueError("geometry must be a JSON object")
    return v


class CampgroundCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., ge=0)
    description: str = Field(..., min_length=1)
    geometry: Optional[Geometry] = None

    @field_validator("geometry", mode="before")
    @classmethod
    def parse_geometry(cls, v):
        return _parse_geometry(v)


class CampgroundUpdate(BaseModel):
    """Fields left out of an update keep their stored values."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, min_length=1)
    geometry: Optional[Geometry] = None

    @field_validator("geometry", mode="before")
    @classmethod
    def parse_geometry(cls, v):
        return _parse_geometry(v)
