"""Feature records.

`FeatureIn` validates what a client or an import file submits,
`Feature` is the stored record and `Point` is the projection the tile
pipeline works on.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .aggregate import (MAX_LATITUDE, MAX_LONGITUDE, MAX_PPE, MIN_LATITUDE,
                        MIN_LONGITUDE, MIN_PPE)

Longitude = Annotated[float, Field(ge=MIN_LONGITUDE, le=MAX_LONGITUDE, description="Longitude")]
Latitude = Annotated[float, Field(ge=MIN_LATITUDE, le=MAX_LATITUDE, description="Latitude")]


class Point(NamedTuple):
    """PPE value at a location; the only fields the renderer reads."""

    ppe: float
    lon: float
    lat: float


class GeoPoint(BaseModel):
    """GeoJSON point, coordinates as ``[longitude, latitude]``."""

    type: Literal["Point"] = "Point"
    coordinates: Tuple[Longitude, Latitude]


class FeatureIn(BaseModel):
    """A feature as submitted for ingestion."""

    model_config = ConfigDict(populate_by_name=True)

    ppe: float = Field(..., ge=MIN_PPE, le=MAX_PPE,
                       description="PPE (Points Per Error) value - a quality indicator between 0-10")
    loc: GeoPoint
    timestamp: Optional[int] = None
    device_id: Optional[str] = Field(None, alias="deviceId")
    user_id: Optional[str] = Field(None, alias="userId")
    additional_data: Optional[dict[str, Any]] = Field(None, alias="additionalData")
    # Accepted for compatibility, always recomputed from the location.
    aggregate_id: Optional[Any] = Field(None, alias="aggregateId")

    @classmethod
    def from_point(cls, ppe, lon, lat, **kw):
        return cls(ppe=ppe, loc=GeoPoint(coordinates=(lon, lat)), **kw)

    @property
    def lon(self) -> float:
        return self.loc.coordinates[0]

    @property
    def lat(self) -> float:
        return self.loc.coordinates[1]


class Feature(BaseModel):
    """A stored feature."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    ppe: float
    lon: float
    lat: float
    aggregate_id: int = Field(..., alias="aggregateId")
    timestamp: int
    device_id: Optional[str] = Field(None, alias="deviceId")
    user_id: Optional[str] = Field(None, alias="userId")
    additional_data: Optional[dict[str, Any]] = Field(None, alias="additionalData")
