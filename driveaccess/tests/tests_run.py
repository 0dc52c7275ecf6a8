from dataclasses import replace

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from driveaccess.loader import InputError
from driveaccess.main import RunConfig, run


def write_inputs(tmp_path):
    blocks = gpd.GeoDataFrame(
        {"GEOID": ["b1", "b2", "b3", "b4"], "population": [100, 250, 40, 0]},
        geometry=[
            box(7.00, 51.00, 7.01, 51.01),
            box(7.02, 51.02, 7.03, 51.03),
            box(7.04, 51.04, 7.05, 51.05),
            box(7.06, 51.06, 7.07, 51.07),
        ],
        crs="EPSG:4326",
    )
    blocks.to_file(tmp_path / "blocks.geojson", driver="GeoJSON")
    gpd.GeoDataFrame(geometry=[box(6.99, 50.99, 7.10, 51.10)], crs="EPSG:4326") \
        .to_file(tmp_path / "city.geojson", driver="GeoJSON")
    pd.DataFrame({
        "name": ["Cafe", "Diner"],
        "longitude": [7.015, 7.035],
        "latitude": [51.015, 51.035],
    }).to_csv(tmp_path / "dest.csv", index=False)

    return RunConfig(
        blocks_path=tmp_path / "blocks.geojson",
        boundary_path=tmp_path / "city.geojson",
        destinations_path=tmp_path / "dest.csv",
        out_dir=tmp_path / "out",
        workers=2,
    )


def scenario_times(origin):
    # same times as the three-origin scenario, picked by block position
    lat, _ = origin
    if lat < 51.01:
        return [4, 9]
    if lat < 51.03:
        return [12, 25]
    return [None, 6]


def test_run_end_to_end(osrm, tmp_path):
    osrm.default = scenario_times
    result = run(write_inputs(tmp_path))

    assert list(result.units["unit_id"]) == ["b1", "b2", "b3"]
    assert result.nearest["b1"].minutes == pytest.approx(4)
    assert result.nearest["b2"].minutes == pytest.approx(12)
    assert result.nearest["b3"].dest_id == "1"

    by_label = {s.bucket.label: s.population for s in result.summary}
    assert by_label["<5min"] == 100
    assert by_label["5-10min"] == 40
    assert by_label["10-15min"] == 250
    assert sum(by_label.values()) == 390

    assert result.longest.unit_id == "b2"

    names = {p.name for p in result.outputs}
    assert names == {"nearest.csv", "buckets.csv", "overview.png", "travel_times.png",
                     "waffle.png", "longest_route.html"}
    nearest = pd.read_csv(tmp_path / "out" / "nearest.csv")
    assert list(nearest["nearest_dest"]) == ["Cafe", "Cafe", "Diner"]


def test_run_keeps_failed_origin_as_unknown(osrm, tmp_path):
    config = write_inputs(tmp_path)
    osrm.default = lambda origin: [None, None] if origin[0] > 51.04 else [2, 3]
    result = run(replace(config, render=False))

    assert not result.nearest["b3"].reachable
    unknown = [s for s in result.summary if s.bucket.label == "unreachable"][0]
    assert unknown.population == 40
    buckets = pd.read_csv(tmp_path / "out" / "buckets.csv")
    assert buckets["population"].sum() == 390


def test_bad_input_aborts_before_routing(osrm, tmp_path):
    config = write_inputs(tmp_path)
    (tmp_path / "dest.csv").write_text("name,lon,lat\nx,7.0,51.0\n")
    with pytest.raises(InputError):
        run(config)
    assert osrm.calls == []
