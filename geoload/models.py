"""Core data models shared by the import pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(slots=True)
class GeoIndexEntry:
    """One member of a geospatial index, ready to be written with GEOADD."""

    member_id: str
    longitude: float
    latitude: float

    def as_geoadd_args(self) -> Tuple[float, float, str]:
        return (self.longitude, self.latitude, self.member_id)
