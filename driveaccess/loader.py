import logging
from pathlib import Path
from typing import List, Optional

import geopandas as gpd
import pandas as pd

from driveaccess.Destination import Destination

logger = logging.getLogger(__name__)


class InputError(ValueError):
    pass


def _require_file(path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"input file not found: {path}")
    return path


def _require_columns(frame: pd.DataFrame, cols: List[str], path: Path) -> None:
    missing = [c for c in cols if c not in frame.columns]
    if missing:
        raise InputError(f"{path.name} is missing columns {missing}; has {list(frame.columns)}")


def read_spatial(path) -> gpd.GeoDataFrame:
    path = _require_file(path)
    if path.suffix.lower() == ".parquet":
        gdf = gpd.read_parquet(path)
    else:
        gdf = gpd.read_file(path)
    if gdf.crs is None:
        raise InputError(f"{path.name} has no coordinate reference system")
    return gdf


def load_area_units(path, id_col: str = "GEOID", pop_col: str = "population") -> gpd.GeoDataFrame:
    """Population per census block, renamed to unit_id / population."""
    gdf = read_spatial(path)
    _require_columns(gdf, [id_col, pop_col], Path(path))

    pop = pd.to_numeric(gdf[pop_col], errors="coerce")
    if pop.isna().any():
        raise InputError(f"{Path(path).name}: non-numeric or missing values in {pop_col}")
    if (pop < 0).any():
        raise InputError(f"{Path(path).name}: negative values in {pop_col}")
    if (pop % 1 != 0).any():
        raise InputError(f"{Path(path).name}: fractional values in {pop_col}")

    gdf = gdf.rename(columns={id_col: "unit_id", pop_col: "population"})
    gdf["unit_id"] = gdf["unit_id"].astype(str)
    gdf["population"] = pop.astype(int).values
    if gdf["unit_id"].duplicated().any():
        raise InputError(f"{Path(path).name}: duplicate ids in {id_col}")

    logger.info("Loaded %d area units (population %d) from %s",
                len(gdf), int(gdf["population"].sum()), path)
    return gdf[["unit_id", "population", "geometry"]]


def load_boundary(path) -> gpd.GeoDataFrame:
    gdf = read_spatial(path)
    if gdf.empty:
        raise InputError(f"{Path(path).name} contains no features")
    logger.info("Loaded boundary with %d features from %s", len(gdf), path)
    return gdf[["geometry"]]


def load_destinations(path,
                      name_col: str = "name",
                      lon_col: str = "longitude",
                      lat_col: str = "latitude",
                      id_col: Optional[str] = None) -> List[Destination]:
    path = _require_file(path)
    df = pd.read_csv(path)
    cols = [name_col, lon_col, lat_col] + ([id_col] if id_col else [])
    _require_columns(df, cols, path)
    if df.empty:
        raise InputError(f"{path.name} lists no destinations")

    lat = pd.to_numeric(df[lat_col], errors="coerce")
    lon = pd.to_numeric(df[lon_col], errors="coerce")
    if lat.isna().any() or lon.isna().any():
        raise InputError(f"{path.name}: missing or non-numeric coordinates")
    if not (lat.between(-90, 90).all() and lon.between(-180, 180).all()):
        raise InputError(f"{path.name}: coordinates out of range (are lon/lat swapped?)")

    ids = df[id_col].astype(str) if id_col else pd.Series(range(len(df))).astype(str)
    if ids.duplicated().any():
        raise InputError(f"{path.name}: duplicate destination ids")

    dests = [
        Destination(dest_id=i, name=str(n), pos=(float(a), float(o)))
        for i, n, a, o in zip(ids, df[name_col], lat, lon)
    ]
    logger.info("Loaded %d destinations from %s", len(dests), path)
    return dests
