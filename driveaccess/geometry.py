import logging
from typing import List

import geopandas as gpd

from driveaccess.AreaUnit import AreaUnit

logger = logging.getLogger(__name__)

WGS84 = "EPSG:4326"
WEB_MERCATOR = "EPSG:3857"


def normalize(units: gpd.GeoDataFrame,
              boundary: gpd.GeoDataFrame,
              crs: str = WGS84,
              projected_crs: str = WEB_MERCATOR) -> gpd.GeoDataFrame:
    """
    Put both layers in one CRS, keep populated units whose centroid is inside
    the boundary and attach the centroid as lat/lon columns.
    """
    units = units.to_crs(crs)
    area = boundary.to_crs(crs).geometry.union_all()

    # centroids of lat/lon polygons are skewed, take them in a projected CRS
    centroids = units.geometry.to_crs(projected_crs).centroid.to_crs(crs)

    inside = centroids.within(area)
    populated = units["population"] > 0
    keep = inside & populated
    logger.info("Kept %d of %d units (%d outside boundary, %d unpopulated)",
                int(keep.sum()), len(units), int((~inside).sum()), int((inside & ~populated).sum()))

    out = units.loc[keep].copy()
    out["lat"] = centroids[keep].y.values
    out["lon"] = centroids[keep].x.values
    return out.reset_index(drop=True)


def to_area_units(frame: gpd.GeoDataFrame) -> List[AreaUnit]:
    return [
        AreaUnit(unit_id=str(uid), population=int(pop), centroid=(float(lat), float(lon)))
        for uid, pop, lat, lon in zip(frame["unit_id"], frame["population"], frame["lat"], frame["lon"])
    ]
