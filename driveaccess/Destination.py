from dataclasses import dataclass
from driveaccess.AreaUnit import LatLon


@dataclass(frozen=True)
class Destination:
    dest_id: str
    name: str
    pos: LatLon
