"""Geospatial helpers: great-circle distance and geohash bucket selection."""
from __future__ import annotations

import math
from typing import List, Optional

import pygeohash as gh

EARTH_RADIUS_KM = 6371.0
# Shortest length of one degree of latitude, so the radius is never underestimated.
KM_PER_DEGREE_LAT = 110.574
KM_PER_DEGREE_LON_EQUATOR = 111.320
MAX_QUERY_PRECISION = 9


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def encode_geohash(lat: float, lng: float, precision: int) -> str:
    return gh.encode(lat, lng, precision=precision)


def geohash_cell_size_deg(precision: int) -> tuple[float, float]:
    """Returns (height, width) in degrees of a geohash cell at this precision."""
    bits = 5 * precision
    lon_bits = (bits + 1) // 2
    lat_bits = bits // 2
    return 180.0 / (2 ** lat_bits), 360.0 / (2 ** lon_bits)


def precision_for_radius(lat: float, radius_km: float, max_precision: int = MAX_QUERY_PRECISION) -> Optional[int]:
    """
    Finest geohash precision whose cell is at least as tall and as wide as the
    search radius at this latitude. The center cell plus its eight neighbours
    then covers the whole circle. Returns None when no precision qualifies.
    """
    radius_lat_deg = radius_km / KM_PER_DEGREE_LAT
    # Use the latitude of the circle edge closest to a pole, where a degree of
    # longitude is shortest.
    edge_lat = min(abs(lat) + radius_lat_deg, 90.0)
    cos_lat = math.cos(math.radians(edge_lat))
    if cos_lat <= 1e-9:
        return None
    radius_lon_deg = radius_km / (KM_PER_DEGREE_LON_EQUATOR * cos_lat)

    for precision in range(max_precision, 0, -1):
        height, width = geohash_cell_size_deg(precision)
        if height >= radius_lat_deg and width >= radius_lon_deg:
            return precision
    return None


def query_cells(lat: float, lng: float, radius_km: float) -> Optional[List[str]]:
    """
    Geohash prefixes whose union covers every point within radius_km of
    (lat, lng), in sorted order. None means the circle is too large, or it or
    its center cell touches a pole, and the caller must scan every entry.
    """
    radius_lat_deg = radius_km / KM_PER_DEGREE_LAT
    if abs(lat) + radius_lat_deg >= 90.0:
        return None
    precision = precision_for_radius(lat, radius_km)
    if precision is None:
        return None

    center = encode_geohash(lat, lng, precision)
    # A cell on the polar row has no neighbour beyond the pole.
    cell_lat, _, lat_err, _ = gh.decode_exactly(center)
    if cell_lat + lat_err >= 90.0 - 1e-9 or cell_lat - lat_err <= -90.0 + 1e-9:
        return None
    top = gh.get_adjacent(center, "top")
    bottom = gh.get_adjacent(center, "bottom")
    cells = {
        center,
        top,
        bottom,
        gh.get_adjacent(center, "left"),
        gh.get_adjacent(center, "right"),
        gh.get_adjacent(top, "left"),
        gh.get_adjacent(top, "right"),
        gh.get_adjacent(bottom, "left"),
        gh.get_adjacent(bottom, "right"),
    }
    return sorted(cells)


def prefix_range(prefix: str) -> tuple[str, str]:
    """Lexicographic [start, end) range of every geohash starting with prefix."""
    return prefix, prefix + "~"
