import logging
from pathlib import Path
from typing import List, Optional, Sequence

import folium
import geopandas as gpd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches

from driveaccess.Bucket import Bucket, BucketSummary
from driveaccess.Destination import Destination
from driveaccess.buckets import classify
from driveaccess.longest_route import LongestRoute
from driveaccess import local_osrm

logger = logging.getLogger(__name__)

BUCKET_COLORS = {
    Bucket.UNDER_5: "#1a9850",
    Bucket.FROM_5_TO_10: "#91cf60",
    Bucket.FROM_10_TO_15: "#fee08b",
    Bucket.FROM_15_TO_20: "#fc8d59",
    Bucket.OVER_20: "#d73027",
    Bucket.UNKNOWN: "#bdbdbd",
}

WAFFLE_ROWS = 10
WAFFLE_COLS = 10


def destinations_frame(destinations: Sequence[Destination]) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"dest_id": [d.dest_id for d in destinations], "name": [d.name for d in destinations]},
        geometry=gpd.points_from_xy([d.pos[1] for d in destinations], [d.pos[0] for d in destinations]),
        crs="EPSG:4326",
    )


def plot_overview(units: gpd.GeoDataFrame,
                  boundary: gpd.GeoDataFrame,
                  destinations: Sequence[Destination],
                  out: Path) -> Path:
    fig, ax = plt.subplots(figsize=(9, 9))
    units.to_crs("EPSG:4326").plot(ax=ax, color="#deebf7", edgecolor="#9ecae1", linewidth=0.2)
    boundary.to_crs("EPSG:4326").boundary.plot(ax=ax, color="#3D3733", linewidth=1.2)
    dests = destinations_frame(destinations)
    dests.plot(ax=ax, color="#d73027", markersize=40, zorder=3)
    for name, pt in zip(dests["name"], dests.geometry):
        ax.annotate(name, (pt.x, pt.y), xytext=(4, 4), textcoords="offset points", fontsize=8)
    ax.set_title(f"{len(units)} populated blocks, {len(dests)} destinations")
    ax.set_axis_off()
    fig.savefig(out, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return out


def plot_travel_times(units: gpd.GeoDataFrame,
                      destinations: Sequence[Destination],
                      out: Path,
                      time_col: str = "min_time_min") -> Path:
    frame = units.to_crs("EPSG:4326").copy()
    frame["bucket"] = [classify(None if v != v else v).label for v in frame[time_col]]

    fig, ax = plt.subplots(figsize=(9, 9))
    handles = []
    for b in Bucket:
        part = frame[frame["bucket"] == b.label]
        handles.append(mpatches.Patch(color=BUCKET_COLORS[b], label=b.label))
        if part.empty:
            continue
        hatch = "///" if b is Bucket.UNKNOWN else None
        part.plot(ax=ax, color=BUCKET_COLORS[b], edgecolor="white", linewidth=0.1, hatch=hatch)

    destinations_frame(destinations).plot(ax=ax, color="black", marker="*", markersize=80, zorder=3)
    ax.legend(handles=handles, title="Drive time", loc="lower left")
    ax.set_axis_off()
    fig.savefig(out, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return out


def waffle_cells(summary: List[BucketSummary], total_cells: int = WAFFLE_ROWS * WAFFLE_COLS) -> List[int]:
    """
    Largest-remainder split of total_cells by population share,
    so the grid is always full regardless of percent rounding.
    """
    total = sum(s.population for s in summary)
    if total == 0:
        return [0 for _ in summary]
    raw = [s.population * total_cells / total for s in summary]
    cells = [int(r) for r in raw]
    left = total_cells - sum(cells)
    order = sorted(range(len(raw)), key=lambda i: (-(raw[i] - cells[i]), i))
    for i in order[:left]:
        cells[i] += 1
    return cells


def plot_waffle(summary: List[BucketSummary], out: Path) -> Path:
    cells = waffle_cells(summary)
    colors = []
    for s, n in zip(summary, cells):
        colors.extend([BUCKET_COLORS[s.bucket]] * n)

    fig, ax = plt.subplots(figsize=(7, 7.5))
    for k, c in enumerate(colors):
        row, col = divmod(k, WAFFLE_COLS)
        ax.add_patch(mpatches.Rectangle((col, WAFFLE_ROWS - 1 - row), 0.9, 0.9, color=c))

    handles = [
        mpatches.Patch(color=BUCKET_COLORS[s.bucket], label=f"{s.bucket.label}: {s.percent}%")
        for s in summary if s.population > 0
    ]
    ax.legend(handles=handles, loc="upper center", bbox_to_anchor=(0.5, -0.02), ncol=3, frameon=False)
    ax.set_xlim(0, WAFFLE_COLS)
    ax.set_ylim(0, WAFFLE_ROWS)
    ax.set_aspect("equal")
    ax.set_axis_off()
    ax.set_title("Share of residents by drive time to nearest destination")
    fig.savefig(out, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return out


def draw_longest_route(longest: Optional[LongestRoute],
                       units: gpd.GeoDataFrame,
                       destinations: Sequence[Destination],
                       out: Path,
                       base: str = local_osrm.OSRM_DRIVE) -> Optional[Path]:
    if longest is None:
        logger.warning("No reachable unit, skipping longest-route map")
        return None

    row = units.loc[units["unit_id"] == longest.unit_id].iloc[0]
    start = (float(row["lat"]), float(row["lon"]))
    dest = destinations[longest.dest_index]

    m = folium.Map(location=start, zoom_start=12)
    folium.Marker(start, tooltip=f"Block {longest.unit_id}", icon=folium.Icon(color="blue")).add_to(m)
    folium.Marker(dest.pos, tooltip=dest.name, icon=folium.Icon(color="red")).add_to(m)

    try:
        r = local_osrm.route_cached(start[0], start[1], dest.pos[0], dest.pos[1], base)
    except local_osrm.RoutingError as e:
        logger.warning("Could not fetch route geometry for %s: %s", longest.unit_id, e)
    else:
        folium.PolyLine(r["geometry"], color="blue", weight=5, opacity=0.8,
                        tooltip=f"{longest.minutes:.1f} min to {dest.name}").add_to(m)
        m.fit_bounds([start, dest.pos])

    m.save(str(out))
    return out
