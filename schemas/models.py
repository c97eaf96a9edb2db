# schemas/models.py
import math
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Earthquake(BaseModel):
    """One row of the PHIVOLCS listing.

    `time` (epoch millis) and `depth` may be missing when the published text
    could not be parsed; lat, lon and mag are always finite.
    """

    date: str
    time: Optional[int] = None
    lat: float
    lon: float
    depth: Optional[float] = None
    mag: float
    place: str = ""

    @field_validator("time", "depth", mode="before")
    @classmethod
    def _drop_non_finite(cls, v):
        if isinstance(v, float) and not math.isfinite(v):
            return None
        return v


class EarthquakesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    earthquakes: List[Earthquake] = Field(default_factory=list)
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")

    @field_validator("last_updated")
    @classmethod
    def _assume_utc(cls, v):
        # entries written without an offset are UTC
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @computed_field
    @property
    def count(self) -> int:
        return len(self.earthquakes)


class ServiceInfo(BaseModel):
    message: str
    endpoint: str
