from dataclasses import dataclass
from typing import Tuple

LatLon = Tuple[float, float]  # (lat, lon)


@dataclass(frozen=True)
class AreaUnit:
    """
    A census block reduced to its representative point.
    The polygon itself stays in the GeoDataFrame; routing only needs the centroid.
    """
    unit_id: str
    population: int
    centroid: LatLon

    def __post_init__(self):
        if self.population < 0:
            raise ValueError(f"population must be >= 0, got {self.population} for {self.unit_id}")
