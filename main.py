import logging
import webbrowser
from pathlib import Path

from driveaccess.main import RunConfig, run
from driveaccess.local_osrm import OSRM_DRIVE

# Inputs (pre-downloaded)
DATA = Path("data")
BLOCKS = DATA / "blocks.gpkg"            # census blocks with population
BOUNDARY = DATA / "city_boundary.geojson"
DESTINATIONS = DATA / "destinations.csv"  # name, longitude, latitude

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

config = RunConfig(
    blocks_path=BLOCKS,
    boundary_path=BOUNDARY,
    destinations_path=DESTINATIONS,
    out_dir=Path("output"),
    osrm_base=OSRM_DRIVE,
    workers=4,
)
result = run(config)

route_map = config.out_dir / "longest_route.html"
if route_map in result.outputs:
    webbrowser.open(route_map.resolve().as_uri())
