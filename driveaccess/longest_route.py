from dataclasses import dataclass
from typing import Iterable, Optional

from driveaccess.TravelTime import NearestDestination


@dataclass(frozen=True)
class LongestRoute:
    unit_id: str
    dest_id: str
    dest_index: int
    minutes: float


def select_longest(results: Iterable[NearestDestination]) -> Optional[LongestRoute]:
    """
    Unit whose nearest destination is furthest away.
    Equal times go to the lowest unit_id; missing times are skipped.
    """
    best: Optional[NearestDestination] = None
    for r in results:
        if not r.reachable:
            continue
        if best is None or r.minutes > best.minutes or \
                (r.minutes == best.minutes and r.unit_id < best.unit_id):
            best = r

    if best is None:
        return None
    return LongestRoute(
        unit_id=best.unit_id,
        dest_id=best.dest_id,
        dest_index=best.dest_index,
        minutes=best.minutes,
    )
