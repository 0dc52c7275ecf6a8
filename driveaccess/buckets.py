import math
from typing import List, Optional

import pandas as pd

from driveaccess.Bucket import Bucket, BucketSummary


def classify(minutes: Optional[float]) -> Bucket:
    """Every non-negative time lands in exactly one finite bucket; None/NaN is UNKNOWN."""
    if minutes is None or (isinstance(minutes, float) and math.isnan(minutes)):
        return Bucket.UNKNOWN
    if minutes < 0:
        raise ValueError(f"travel time cannot be negative: {minutes}")
    for b in Bucket.finite():
        if b.contains(minutes):
            return b
    # unreachable for finite input since the edges cover (-inf, inf]
    raise ValueError(f"no bucket for {minutes}")


def percent_round(part: float, total: float) -> int:
    if total <= 0:
        return 0
    return int(math.floor(100.0 * part / total + 0.5))


def aggregate(frame: pd.DataFrame,
              time_col: str = "min_time_min",
              pop_col: str = "population") -> List[BucketSummary]:
    """
    Population per bucket, all buckets in order (empty ones included).
    Units without a time are counted under UNKNOWN and stay in the denominator.
    """
    if frame.empty:
        return [BucketSummary(b, 0, 0) for b in Bucket]

    labels = frame[time_col].map(lambda v: classify(None if pd.isna(v) else float(v)).label)
    pop = frame[pop_col].groupby(labels, sort=False).sum()
    total = int(frame[pop_col].sum())

    out = []
    for b in Bucket:
        p = int(pop.get(b.label, 0))
        out.append(BucketSummary(b, p, percent_round(p, total)))
    return out


def summary_frame(summary: List[BucketSummary]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "bucket": [s.bucket.label for s in summary],
            "population": [s.population for s in summary],
            "percent": [s.percent for s in summary],
        }
    )
