import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence, Tuple

from driveaccess.AreaUnit import AreaUnit
from driveaccess.Destination import Destination
from driveaccess.TravelTime import NearestDestination, TravelTimeObservation
from driveaccess import local_osrm

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4


def chunked(units: Sequence[AreaUnit], size: int) -> List[List[AreaUnit]]:
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(units[i:i + size]) for i in range(0, len(units), size)]


def query_chunk(chunk: List[AreaUnit],
                destinations: Sequence[Destination],
                base: str,
                timeout: float) -> List[TravelTimeObservation]:
    """
    One table request for a chunk of origins against every destination.
    Unreachable pairs are dropped here, so they never count as observations.
    """
    dest_pts = tuple(d.pos for d in destinations)
    if len(chunk) == 1:
        rows = [list(local_osrm.table_cached(chunk[0].centroid, dest_pts, base, timeout))]
    else:
        rows = local_osrm.fetch_table([u.centroid for u in chunk], list(dest_pts), base, timeout)

    observations = []
    for unit, row in zip(chunk, rows):
        for dest, minutes in zip(destinations, row):
            if minutes is None:
                continue
            observations.append(TravelTimeObservation(unit.unit_id, dest.dest_id, minutes))
    return observations


def reduce_to_nearest(unit_ids: Sequence[str],
                      observations: Sequence[TravelTimeObservation],
                      destinations: Sequence[Destination]) -> Dict[str, NearestDestination]:
    """
    Group observations by origin and keep the minimum time.
    On equal times the destination listed first wins.
    """
    order = {d.dest_id: i for i, d in enumerate(destinations)}
    best: Dict[str, Tuple[float, int]] = {}
    for obs in observations:
        key = (obs.minutes, order[obs.dest_id])
        current = best.get(obs.unit_id)
        if current is None or key < current:
            best[obs.unit_id] = key

    out: Dict[str, NearestDestination] = {}
    for uid in unit_ids:
        if uid not in best:
            out[uid] = NearestDestination(uid, error="no reachable destination")
            continue
        minutes, idx = best[uid]
        out[uid] = NearestDestination(
            unit_id=uid,
            minutes=minutes,
            dest_id=destinations[idx].dest_id,
            dest_index=idx,
        )
    return out


def build_travel_time_matrix(units: Sequence[AreaUnit],
                             destinations: Sequence[Destination],
                             base: str = local_osrm.OSRM_DRIVE,
                             workers: int = DEFAULT_WORKERS,
                             batch_size: int = 1,
                             timeout: float = local_osrm.DEFAULT_TIMEOUT_S) \
        -> Tuple[Dict[str, NearestDestination], List[TravelTimeObservation]]:
    """
    Minimum driving time from every unit centroid to any destination.

    Each chunk of batch_size origins is one table request; chunks run on a
    bounded thread pool. A failed request marks its origins missing and the
    run goes on.
    """
    if not destinations:
        raise ValueError("need at least one destination")

    ids = [u.unit_id for u in units]
    if len(set(ids)) != len(ids):
        raise ValueError("area unit ids must be unique")

    results: Dict[str, Optional[NearestDestination]] = {uid: None for uid in ids}
    observations: List[TravelTimeObservation] = []
    if not units:
        return {}, observations

    chunks = chunked(units, batch_size)
    logger.info("Routing %d origins to %d destinations in %d requests (%d workers)",
                len(units), len(destinations), len(chunks), workers)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        futures = {pool.submit(query_chunk, c, destinations, base, timeout): c for c in chunks}
        for future in as_completed(futures):
            chunk = futures[future]
            try:
                chunk_obs = future.result()
            except (local_osrm.RoutingError, ValueError) as e:
                for unit in chunk:
                    logger.warning("Routing failed for origin %s: %s", unit.unit_id, e)
                    results[unit.unit_id] = NearestDestination(unit.unit_id, error=str(e))
                continue
            observations.extend(chunk_obs)
            done_ids = [u.unit_id for u in chunk]
            results.update(reduce_to_nearest(done_ids, chunk_obs, destinations))

    missing = [uid for uid, r in results.items() if not r.reachable]
    if missing:
        logger.warning("%d of %d origins have no travel time", len(missing), len(ids))

    return results, observations
