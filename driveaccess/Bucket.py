import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# upper edges of the finite buckets, minutes
BUCKET_EDGES = (5.0, 10.0, 15.0, 20.0)


class Bucket(Enum):
    UNDER_5 = ("<5min", -math.inf, BUCKET_EDGES[0])
    FROM_5_TO_10 = ("5-10min", BUCKET_EDGES[0], BUCKET_EDGES[1])
    FROM_10_TO_15 = ("10-15min", BUCKET_EDGES[1], BUCKET_EDGES[2])
    FROM_15_TO_20 = ("15-20min", BUCKET_EDGES[2], BUCKET_EDGES[3])
    OVER_20 = (">20min", BUCKET_EDGES[3], math.inf)
    UNKNOWN = ("unreachable", None, None)

    def __init__(self, label: str, lower: Optional[float], upper: Optional[float]):
        self.label = label
        self.lower = lower
        self.upper = upper

    def contains(self, minutes: float) -> bool:
        # half-open (lower, upper]
        if self.lower is None:
            return False
        return self.lower < minutes <= self.upper

    @classmethod
    def finite(cls):
        return [b for b in cls if b is not cls.UNKNOWN]


@dataclass(frozen=True)
class BucketSummary:
    bucket: Bucket
    population: int
    percent: int
