import logging
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple, Dict, Any

import polyline
import requests

from driveaccess.AreaUnit import LatLon

logger = logging.getLogger(__name__)

OSRM_DRIVE = "http://localhost:5000"
PROFILE = "driving"
DEFAULT_TIMEOUT_S = 30.0


class RoutingError(RuntimeError):
    pass


# -------------------------
# small utils
# -------------------------
def coord_string(points: Sequence[LatLon]) -> str:
    # OSRM wants lon,lat
    return ";".join(f"{lon},{lat}" for lat, lon in points)


def is_duration(v) -> bool:
    # bool is an int subclass, reject it explicitly
    return v is None or (isinstance(v, (int, float)) and not isinstance(v, bool))


def seconds_to_minutes(values: List[Optional[float]]) -> List[Optional[float]]:
    return [None if v is None else v / 60.0 for v in values]


def _get_json(url: str, timeout: float) -> Dict[str, Any]:
    logger.debug("GET %s", url)
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
        data = r.json()
    except requests.RequestException as e:
        raise RoutingError(f"request to {url} failed: {e}") from e
    except ValueError as e:
        raise RoutingError(f"non-JSON response from {url}") from e

    if not isinstance(data, dict):
        raise RoutingError(f"expected a JSON object from {url}, got {type(data).__name__}")
    if data.get("code") != "Ok":
        raise RoutingError(f"OSRM returned {data.get('code')}: {data.get('message', '')}")
    return data


# -------------------------
# OSRM table fetch + cache
# -------------------------
def fetch_table(origins: Sequence[LatLon],
                destinations: Sequence[LatLon],
                base: str = OSRM_DRIVE,
                timeout: float = DEFAULT_TIMEOUT_S) -> List[List[Optional[float]]]:
    """
    One table request: len(origins) x len(destinations) travel times in minutes.
    Unreachable pairs come back as None.
    """
    if not origins or not destinations:
        raise ValueError("fetch_table needs at least one origin and one destination")

    n = len(origins)
    m = len(destinations)
    coords = coord_string(list(origins) + list(destinations))
    sources = ";".join(str(i) for i in range(n))
    dests = ";".join(str(n + j) for j in range(m))
    url = (
        f"{base}/table/v1/{PROFILE}/{coords}"
        f"?sources={sources}&destinations={dests}&annotations=duration"
    )

    data = _get_json(url, timeout)
    rows = data.get("durations")
    if not isinstance(rows, list) or len(rows) != n or \
            any(not isinstance(row, list) or len(row) != m for row in rows):
        raise RoutingError(f"expected a {n}x{m} duration matrix from {url}")
    if not all(is_duration(v) for row in rows for v in row):
        raise RoutingError(f"non-numeric duration in table from {url}")

    return [seconds_to_minutes(row) for row in rows]


@lru_cache(maxsize=50_000)
def table_cached(origin: LatLon,
                 destinations: Tuple[LatLon, ...],
                 base: str = OSRM_DRIVE,
                 timeout: float = DEFAULT_TIMEOUT_S) -> Tuple[Optional[float], ...]:
    # cache key is the origin tuple + the (hashable) destination tuple
    return tuple(fetch_table([origin], list(destinations), base, timeout)[0])


# -------------------------
# OSRM route fetch (for drawing)
# -------------------------
def fetch_route(start: LatLon,
                dest: LatLon,
                base: str = OSRM_DRIVE,
                timeout: float = DEFAULT_TIMEOUT_S) -> Dict[str, Any]:
    url = (
        f"{base}/route/v1/{PROFILE}/{coord_string([start, dest])}"
        "?overview=full&geometries=polyline&steps=false"
    )

    data = _get_json(url, timeout)
    routes = data.get("routes") or []
    if not isinstance(routes, list) or not routes:
        raise RoutingError(f"no route between {start} and {dest}")
    route = routes[0]
    if not isinstance(route, dict) or not isinstance(route.get("geometry"), str) or \
            not all(is_duration(route.get(k)) and route.get(k) is not None for k in ("distance", "duration")):
        raise RoutingError(f"malformed route from {url}")

    try:
        geometry = polyline.decode(route["geometry"])
    except (ValueError, IndexError, TypeError) as e:
        raise RoutingError(f"bad polyline in route from {url}") from e

    return {
        "geometry": geometry,
        "total_dist": route["distance"],
        "total_time": route["duration"],
    }


@lru_cache(maxsize=1_000)
def route_cached(a_lat: float, a_lon: float,
                 b_lat: float, b_lon: float,
                 base: str = OSRM_DRIVE) -> Dict[str, Any]:
    return fetch_route((a_lat, a_lon), (b_lat, b_lon), base)
