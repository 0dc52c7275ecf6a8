from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit, parse_qs

import polyline
import pytest
import requests

from driveaccess import local_osrm
from driveaccess.AreaUnit import AreaUnit
from driveaccess.Destination import Destination

LatLon = Tuple[float, float]


class FakeResponse:
    def __init__(self, data, status: int = 200):
        self.data = data
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.data


class FakeOsrm:
    """
    Stands in for an OSRM server. times maps an origin (lat, lon) to its
    minutes per destination (None = unreachable), default computes them for
    origins not in times; fail lists origins whose request should blow up.
    raw maps an origin to a verbatim JSON body returned for its request.
    """

    def __init__(self):
        self.times: Dict[LatLon, List[Optional[float]]] = {}
        self.fail: Dict[LatLon, Exception] = {}
        self.default = None
        self.raw: Dict[LatLon, object] = {}
        self.calls: List[str] = []

    def _points(self, url: str) -> List[LatLon]:
        coords = urlsplit(url).path.split("/driving/")[1]
        pts = []
        for pair in coords.split(";"):
            lon, lat = pair.split(",")
            pts.append((float(lat), float(lon)))
        return pts

    def get(self, url, timeout=None, **kwargs):
        self.calls.append(url)
        pts = self._points(url)
        query = parse_qs(urlsplit(url).query)

        if "/route/v1/" in url:
            return FakeResponse({
                "code": "Ok",
                "routes": [{"geometry": polyline.encode(pts), "distance": 1000.0, "duration": 120.0}],
            })

        n = len(query["sources"][0].split(";"))
        m = len(query["destinations"][0].split(";"))
        rows = []
        for origin in pts[:n]:
            if origin in self.fail:
                raise self.fail[origin]
            if origin in self.raw:
                return FakeResponse(self.raw[origin])
            mins = self.times[origin] if origin in self.times else self.default(origin)
            assert len(mins) == m
            rows.append([None if v is None else v * 60.0 for v in mins])
        return FakeResponse({"code": "Ok", "durations": rows})


@pytest.fixture(autouse=True)
def clear_caches():
    local_osrm.table_cached.cache_clear()
    local_osrm.route_cached.cache_clear()
    yield
    local_osrm.table_cached.cache_clear()
    local_osrm.route_cached.cache_clear()


@pytest.fixture
def osrm(monkeypatch):
    fake = FakeOsrm()
    monkeypatch.setattr(local_osrm.requests, "get", fake.get)
    return fake


@pytest.fixture
def two_destinations():
    return [
        Destination("0", "North", (51.25, 7.15)),
        Destination("1", "South", (51.20, 7.10)),
    ]


@pytest.fixture
def three_origins():
    return [
        AreaUnit("o1", 100, (51.21, 7.11)),
        AreaUnit("o2", 250, (51.22, 7.12)),
        AreaUnit("o3", 40, (51.23, 7.13)),
    ]
