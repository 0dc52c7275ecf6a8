import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import geopandas as gpd
import pandas as pd

from driveaccess.Bucket import BucketSummary
from driveaccess.Destination import Destination
from driveaccess.TravelTime import NearestDestination, TravelTimeObservation
from driveaccess.buckets import aggregate, summary_frame
from driveaccess.geometry import normalize, to_area_units
from driveaccess.loader import load_area_units, load_boundary, load_destinations
from driveaccess.longest_route import LongestRoute, select_longest
from driveaccess.matrix import DEFAULT_WORKERS, build_travel_time_matrix
from driveaccess import local_osrm, render

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunConfig:
    blocks_path: Path
    boundary_path: Path
    destinations_path: Path
    out_dir: Path = Path("output")
    block_id_col: str = "GEOID"
    population_col: str = "population"
    dest_name_col: str = "name"
    dest_lon_col: str = "longitude"
    dest_lat_col: str = "latitude"
    osrm_base: str = local_osrm.OSRM_DRIVE
    workers: int = DEFAULT_WORKERS
    batch_size: int = 1
    timeout_s: float = local_osrm.DEFAULT_TIMEOUT_S
    render: bool = True


@dataclass
class RunResult:
    units: gpd.GeoDataFrame
    destinations: List[Destination]
    nearest: Dict[str, NearestDestination]
    observations: List[TravelTimeObservation]
    summary: List[BucketSummary]
    longest: Optional[LongestRoute]
    outputs: List[Path] = field(default_factory=list)


def attach_nearest(units: gpd.GeoDataFrame,
                   nearest: Dict[str, NearestDestination],
                   destinations: List[Destination]) -> gpd.GeoDataFrame:
    names = {d.dest_id: d.name for d in destinations}
    out = units.copy()
    rows = [nearest[uid] for uid in out["unit_id"]]
    out["min_time_min"] = [r.minutes if r.reachable else float("nan") for r in rows]
    out["nearest_dest_id"] = [r.dest_id for r in rows]
    out["nearest_dest"] = [names.get(r.dest_id) for r in rows]
    out["routing_error"] = [r.error for r in rows]
    return out


def run(config: RunConfig) -> RunResult:
    # inputs first: any problem here aborts before a single routing call
    blocks = load_area_units(config.blocks_path, config.block_id_col, config.population_col)
    boundary = load_boundary(config.boundary_path)
    destinations = load_destinations(
        config.destinations_path,
        name_col=config.dest_name_col,
        lon_col=config.dest_lon_col,
        lat_col=config.dest_lat_col,
    )

    units = normalize(blocks, boundary)
    nearest, observations = build_travel_time_matrix(
        to_area_units(units),
        destinations,
        base=config.osrm_base,
        workers=config.workers,
        batch_size=config.batch_size,
        timeout=config.timeout_s,
    )
    units = attach_nearest(units, nearest, destinations)

    summary = aggregate(units)
    for s in summary:
        logger.info("%-12s population %8d  %3d%%", s.bucket.label, s.population, s.percent)

    longest = select_longest(nearest.values())
    if longest is not None:
        logger.info("Longest drive: block %s, %.1f min to destination %s",
                    longest.unit_id, longest.minutes, longest.dest_id)

    result = RunResult(units, destinations, nearest, observations, summary, longest)

    out_dir = Path(config.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    nearest_csv = out_dir / "nearest.csv"
    pd.DataFrame(units.drop(columns="geometry")).to_csv(nearest_csv, index=False)
    buckets_csv = out_dir / "buckets.csv"
    summary_frame(summary).to_csv(buckets_csv, index=False)
    result.outputs += [nearest_csv, buckets_csv]

    if config.render:
        result.outputs.append(render.plot_overview(units, boundary, destinations, out_dir / "overview.png"))
        result.outputs.append(render.plot_travel_times(units, destinations, out_dir / "travel_times.png"))
        result.outputs.append(render.plot_waffle(summary, out_dir / "waffle.png"))
        route_map = render.draw_longest_route(longest, units, destinations,
                                              out_dir / "longest_route.html", base=config.osrm_base)
        if route_map is not None:
            result.outputs.append(route_map)

    logger.info("Wrote %s", ", ".join(str(p) for p in result.outputs))
    return result
