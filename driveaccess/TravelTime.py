from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TravelTimeObservation:
    unit_id: str
    dest_id: str
    minutes: float


@dataclass(frozen=True)
class NearestDestination:
    """
    Result of the min-reduction for one origin.
    minutes is None when nothing was reachable or the request failed; error says which.
    """
    unit_id: str
    minutes: Optional[float] = None
    dest_id: Optional[str] = None
    dest_index: Optional[int] = None
    error: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return self.minutes is not None
