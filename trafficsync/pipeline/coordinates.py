"""Coordinate normalisation to WGS84 latitude/longitude."""

from __future__ import annotations

import math
from functools import lru_cache

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

EARTH_RADIUS_M = 6378137.0
WGS84_WKIDS = {4326}
WEB_MERCATOR_WKIDS = {3857, 102100, 102113, 900913}


def web_mercator_to_wgs84(x: float, y: float) -> tuple[float, float]:
    """Inverse spherical Mercator. Returns ``(lat, lon)`` in degrees."""
    lon = x * 180.0 / (math.pi * EARTH_RADIUS_M)
    lat = (2.0 * math.atan(math.exp(y / EARTH_RADIUS_M)) - math.pi / 2.0) * 180.0 / math.pi
    return lat, lon


@lru_cache(maxsize=16)
def _transformer(source_epsg: int) -> Transformer:
    return Transformer.from_crs(CRS.from_epsg(source_epsg), CRS.from_epsg(4326), always_xy=True)


def _looks_projected(x: float, y: float) -> bool:
    return abs(x) > 180.0 or abs(y) > 90.0


def to_wgs84(x: float, y: float, wkid: int | None) -> tuple[float, float] | None:
    """Convert a point to ``(lat, lon)``.

    Without a wkid the CRS is inferred from magnitude: degrees stay as-is, anything
    outside the degree range is treated as Web Mercator metres.
    """
    if wkid is None:
        if _looks_projected(x, y):
            return web_mercator_to_wgs84(x, y)
        return y, x
    if wkid in WGS84_WKIDS:
        return y, x
    if wkid in WEB_MERCATOR_WKIDS:
        return web_mercator_to_wgs84(x, y)
    try:
        lon, lat = _transformer(wkid).transform(x, y)
    except (CRSError, ProjError):
        return None
    return lat, lon


def valid_lat_lon(lat: float | None, lon: float | None) -> bool:
    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    # Zero means "missing" upstream, never a real camera position.
    if lat == 0 or lon == 0:
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180
